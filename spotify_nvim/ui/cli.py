# spotify_nvim/ui/cli.py
import argparse
import logging
import sys

from spotify_nvim.errors import ConfigurationError, SpotifyNvimError
from spotify_nvim.player.player import Player
from spotify_nvim.session import Session
from spotify_nvim.settings import Settings


def build_parser():
    parser = argparse.ArgumentParser(
        prog="spotify-nvim",
        description="Drive the spotify-nvim session from a terminal (credentials from SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET)",
    )
    parser.add_argument("--token-file", help="Where tokens are stored (default ~/.spotify_nvim_tokens.json)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("login", help="Authorize in the browser and store tokens")
    sub.add_parser("next", help="Skip to next track")
    sub.add_parser("previous", help="Skip to previous track")
    sub.add_parser("pause", help="Pause playback")

    search = sub.add_parser("search", help="Search tracks")
    search.add_argument("--artist", "-a")
    search.add_argument("--track", "-t")

    play = sub.add_parser("play", help="Play one or more spotify: URIs")
    play.add_argument("uris", nargs="+")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[spotify-nvim] %(levelname)s %(message)s",
    )

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        print(e, file=sys.stderr)
        return 1
    if args.token_file:
        settings.token_file = args.token_file

    session = Session(settings)
    player = Player(session)

    try:
        if args.command == "login":
            session.client()
            print(f"Tokens stored in {settings.token_file}")
            return 0

        if args.command == "next":
            outcome = player.next_track()
        elif args.command == "previous":
            outcome = player.previous_track()
        elif args.command == "pause":
            outcome = player.pause()
        elif args.command == "search":
            outcome = player.search_tracks(artist=args.artist, track=args.track)
            if outcome.ok:
                for t in outcome.value:
                    print(f"  {t.name} - {t.main_artist_name()}  {t.uri}")
        else:
            outcome = player.play(args.uris if len(args.uris) > 1 else args.uris[0])
    except SpotifyNvimError as e:
        print(e, file=sys.stderr)
        return 1
    finally:
        session.close()

    return 0 if outcome.ok else 1


if __name__ == "__main__":
    sys.exit(main())

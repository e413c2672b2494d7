# spotify_nvim/player/player.py
"""
Command dispatcher behind the editor commands.

Every operation:
- makes sure the session is initialized (may start the browser login)
- delegates to the Web API client
- never raises: failures are logged with the operation and its argument,
  and handed back as an Outcome so callers can still tell them apart

`wait` is how long an operation blocks for initialization; None waits until
the user finishes authorizing.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from spotify_nvim.errors import EmptyQueryError, InvalidArgumentError, SpotifyNvimError
from spotify_nvim.session import Session
from spotify_nvim.spotify.models import Track

logger = logging.getLogger(__name__)


@dataclass
class Outcome:
    ok: bool
    value: Any = None
    error: Optional[SpotifyNvimError] = None

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: SpotifyNvimError) -> "Outcome":
        return cls(ok=False, error=error)


def build_query(artist: Optional[str] = None, track: Optional[str] = None) -> str:
    """'artist:X track:Y ' style search query; empty string when nothing given."""
    query = ""
    if artist:
        query += f"artist:{artist} "
    if track:
        query += f"track:{track} "
    return query


def normalize_uris(uri_or_uris: Union[str, Sequence[str]]) -> List[str]:
    """A single URI becomes a one-element list; anything but str or a list of str is rejected."""
    if isinstance(uri_or_uris, str):
        return [uri_or_uris]
    if isinstance(uri_or_uris, (list, tuple)) and uri_or_uris and all(isinstance(u, str) for u in uri_or_uris):
        return list(uri_or_uris)
    raise InvalidArgumentError("SpotifyPlay expects a URI string or a non-empty list of URI strings")


class Player:
    """
    Usage:
      player = Player(session)
      player.next_track()
      tracks = player.search_tracks(artist="Radiohead").value
    """

    def __init__(self, session: Session, wait: Optional[float] = None):
        self.session = session
        self.wait = wait

    def next_track(self) -> Outcome:
        logger.info("Going to next track")
        return self._call("Error going to next track", lambda c: c.skip_to_next())

    def previous_track(self) -> Outcome:
        logger.info("Going to previous track")
        return self._call("Error going to previous track", lambda c: c.skip_to_previous())

    def pause(self) -> Outcome:
        return self._call("Error pausing playback", lambda c: c.pause())

    def search_tracks(self, artist: Optional[str] = None, track: Optional[str] = None) -> Outcome:
        query = build_query(artist, track)
        if not query:
            # checked before initializing so an empty search never hits the network
            err = EmptyQueryError()
            logger.error("%s", err)
            return Outcome.failure(err)

        limit = self.session.settings.search_limit
        return self._call(f'Error searching for "{query}"', lambda c: c.search_tracks(query, limit=limit))

    def play(self, uri_or_uris: Union[str, Sequence[str]]) -> Outcome:
        try:
            uris = normalize_uris(uri_or_uris)
        except InvalidArgumentError as e:
            logger.error('Error playing %r: "%s"', uri_or_uris, e)
            return Outcome.failure(e)
        return self._call(f"Error playing {json.dumps(uris)}", lambda c: c.play(uris))

    def _call(self, context: str, action) -> Outcome:
        try:
            client = self.session.client(timeout=self.wait)
            return Outcome.success(action(client))
        except SpotifyNvimError as e:
            logger.error('%s: "%s"', context, e)
            return Outcome.failure(e)


def tracks_for_editor(tracks: Optional[List[Track]]) -> Optional[List[dict]]:
    if tracks is None:
        return None
    return [t.to_dict() for t in tracks]

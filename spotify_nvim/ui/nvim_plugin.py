# spotify_nvim/ui/nvim_plugin.py
"""
Neovim remote plugin: registers the Spotify* commands and functions.

Commands that may sit waiting for the browser login run on a worker thread so
the editor never freezes. SpotifySearchTracks has to answer synchronously, so
it waits at most `sync_wait` seconds for initialization and returns nil if the
user still has to authorize.
"""

import logging
import threading

import pynvim

from spotify_nvim.errors import ConfigurationError, SpotifyNvimError
from spotify_nvim.log import configure_logging
from spotify_nvim.player.player import Player, tracks_for_editor
from spotify_nvim.session import Session
from spotify_nvim.settings import Settings

logger = logging.getLogger(__name__)


@pynvim.plugin
class SpotifyPlugin(object):
    def __init__(self, nvim, session=None):
        self.nvim = nvim
        configure_logging(nvim)
        self.session = session or Session(Settings())
        self.player = Player(self.session)
        self.sync_player = Player(self.session, wait=self.session.settings.sync_wait)

    def _in_background(self, fn, *args):
        t = threading.Thread(target=fn, args=args, name="spotify-nvim-cmd", daemon=True)
        t.start()
        return t

    # Setup ---------------------------------------------------------------
    @pynvim.function("SpotifyConfig", sync=True)
    def config(self, args):
        options = args[0] if args else {}
        try:
            self.session.configure(options)
        except ConfigurationError as e:
            logger.error("%s", e)
        return None

    @pynvim.command("SpotifyInit", nargs="*")
    def init(self, args):
        if self.session.initialized:
            return
        logger.info("Initializing Spotify plugin")
        self.session.begin().add_done_callback(self._report_init)

    def _report_init(self, fut):
        err = fut.exception()
        if err is not None:
            logger.error('Error occurred while initializing Spotify: "%s"', err)

    @pynvim.command("SpotifyAuthorize", nargs=1)
    def authorize(self, args):
        """Manual fallback: paste the URL the browser ended up on after login."""
        try:
            self.session.authorize_with_redirect(args[0])
        except SpotifyNvimError as e:
            logger.error("Authorization failed: %s", e)

    # Playback ------------------------------------------------------------
    @pynvim.command("SpotifyNextTrack", nargs="*")
    def next_track(self, args):
        self._in_background(self.player.next_track)

    @pynvim.command("SpotifyPreviousTrack", nargs="*")
    def previous_track(self, args):
        self._in_background(self.player.previous_track)

    @pynvim.command("SpotifyPause", nargs="*")
    def pause(self, args):
        self._in_background(self.player.pause)

    @pynvim.function("SpotifySearchTracks", sync=True)
    def search_tracks(self, args):
        filters = args[0] if args and isinstance(args[0], dict) else {}
        outcome = self.sync_player.search_tracks(artist=filters.get("artist"), track=filters.get("track"))
        return tracks_for_editor(outcome.value) if outcome.ok else None

    @pynvim.function("SpotifyPlay", sync=False)
    def play(self, args):
        if not args:
            logger.error("SpotifyPlay needs a URI or a list of URIs")
            return
        self._in_background(self.player.play, args[0])

    @pynvim.autocmd("VimLeavePre", pattern="*", sync=True)
    def on_leave(self, *args):
        self.session.close()

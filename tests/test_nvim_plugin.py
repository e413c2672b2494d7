# tests/test_nvim_plugin.py
import logging
import threading
from unittest.mock import MagicMock

import pytest

from spotify_nvim.errors import ConfigurationError
from spotify_nvim.log import NvimHandler, configure_logging
from spotify_nvim.session import Session
from spotify_nvim.settings import Settings
from spotify_nvim.spotify import token_store
from spotify_nvim.spotify.models import Track
from spotify_nvim.spotify.token_store import TokenPair
from spotify_nvim.ui.nvim_plugin import SpotifyPlugin


@pytest.fixture
def nvim():
    return MagicMock()


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def plugin(nvim, client, tmp_path):
    settings = Settings(client_id="id", client_secret="secret", token_file=str(tmp_path / "tokens.json"))
    token_store.persist(TokenPair("acc", "ref"), settings.token_file)
    session = Session(settings, client_factory=MagicMock(return_value=client))
    p = SpotifyPlugin(nvim, session=session)
    # run "background" work inline
    p._in_background = lambda fn, *args: fn(*args)
    return p


def _written(mock):
    return "".join(c.args[0] for c in mock.call_args_list)


def test_config_bad_options_logs_error(plugin, nvim):
    plugin.config([{"client_id": "only-id"}])
    assert "[spotify-nvim]: client_id and/or client_secret not passed to config" in _written(nvim.err_write)


def test_config_sets_token_file(plugin, tmp_path):
    other = tmp_path / "other.json"
    plugin.config([{"client_id": "a", "client_secret": "b", "token_file": str(other)}])
    assert plugin.session.settings.token_file == str(other)


def test_search_returns_track_dicts(plugin, client):
    client.search_tracks.return_value = [
        Track(id="t1", uri="spotify:track:t1", name="Creep", artists=[{"name": "Radiohead"}])
    ]
    result = plugin.search_tracks([{"artist": "Radiohead"}])
    assert result == [{"name": "Creep", "uri": "spotify:track:t1", "artist": "Radiohead", "album": None, "duration_ms": None}]
    client.search_tracks.assert_called_once_with("artist:Radiohead ", limit=50)


def test_empty_search_returns_none(plugin, nvim, client):
    assert plugin.search_tracks([{}]) is None
    assert plugin.search_tracks([]) is None
    client.search_tracks.assert_not_called()
    assert "No query passed to SpotifySearchTracks" in _written(nvim.err_write)


def test_next_and_previous(plugin, nvim, client):
    plugin.next_track([])
    plugin.previous_track([])
    client.skip_to_next.assert_called_once_with()
    client.skip_to_previous.assert_called_once_with()
    assert "[spotify-nvim]: Going to next track" in _written(nvim.out_write)


def test_play_single_uri(plugin, client):
    plugin.play(["spotify:track:123"])
    client.play.assert_called_once_with(["spotify:track:123"])


def test_play_without_args_logs(plugin, nvim, client):
    plugin.play([])
    client.play.assert_not_called()
    assert "SpotifyPlay needs a URI" in _written(nvim.err_write)


def test_init_with_stored_tokens(plugin):
    plugin.init([])
    plugin.session.begin().result(timeout=5)
    assert plugin.session.initialized


def test_init_without_credentials_reports_error(nvim, tmp_path):
    session = Session(Settings(token_file=str(tmp_path / "none.json")), client_factory=MagicMock())
    p = SpotifyPlugin(nvim, session=session)
    fut = session.begin()
    with pytest.raises(ConfigurationError):
        fut.result(timeout=5)
    # called on the test thread, which is the handler's loop thread
    p._report_init(fut)
    assert "Error occurred while initializing Spotify" in _written(nvim.err_write)
    assert not session.initialized


def test_handler_uses_async_call_off_loop_thread(nvim):
    logger = configure_logging(nvim)
    t = threading.Thread(target=lambda: logger.info("from worker"))
    t.start()
    t.join()
    nvim.async_call.assert_called_once_with(nvim.out_write, "[spotify-nvim]: from worker\n")


def test_configure_logging_is_idempotent(nvim):
    configure_logging(nvim)
    logger = configure_logging(nvim)
    assert sum(isinstance(h, NvimHandler) for h in logger.handlers) == 1
    assert logger.level == logging.INFO

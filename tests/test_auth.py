# tests/test_auth.py
import base64
import http.client
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from spotify_nvim.errors import AuthorizationError, ServerClosedError
from spotify_nvim.spotify import token_store
from spotify_nvim.spotify.auth import (
    AUTHORIZE_URL,
    TOKEN_URL,
    AuthFlow,
    Credentials,
    StartResult,
    authorize_url,
    code_from_redirect,
    exchange_code,
    refresh_tokens,
)
from spotify_nvim.spotify.token_store import TokenPair

CREDS = Credentials("my-id", "my-secret")
REDIRECT = "http://localhost:8888/callback"


def _mock_response(status_code=200, json_data=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_data or {}
    resp.text = str(json_data) if json_data else ""
    return resp


def _get(port, path):
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request("GET", path)
        resp = conn.getresponse()
        body = resp.read()
        return resp.status, resp.getheader("Location"), body
    finally:
        conn.close()


@pytest.fixture
def flow(tmp_path):
    f = AuthFlow(CREDS, str(tmp_path / "tokens.json"), port=0, redirect_uri=REDIRECT)
    yield f
    f.close()


def test_basic_auth_header():
    expected = "Basic " + base64.b64encode(b"my-id:my-secret").decode()
    assert CREDS.basic_auth_header() == expected


def test_credentials_repr_hides_secret():
    assert "my-secret" not in repr(CREDS)


def test_authorize_url_params():
    url = authorize_url(CREDS, REDIRECT, "user-modify-playback-state")
    assert url.startswith(AUTHORIZE_URL + "?")
    qs = parse_qs(urlparse(url).query)
    assert qs["response_type"] == ["code"]
    assert qs["client_id"] == ["my-id"]
    assert qs["scope"] == ["user-modify-playback-state"]
    assert qs["redirect_uri"] == [REDIRECT]


def test_exchange_code_posts_form_with_basic_auth():
    resp = _mock_response(200, {"access_token": "acc", "refresh_token": "ref"})
    with patch("spotify_nvim.spotify.auth.requests.post", return_value=resp) as post:
        pair = exchange_code(CREDS, "the-code", REDIRECT)

    assert pair == TokenPair("acc", "ref")
    args, kwargs = post.call_args
    assert args[0] == TOKEN_URL
    assert kwargs["data"] == {"code": "the-code", "redirect_uri": REDIRECT, "grant_type": "authorization_code"}
    assert kwargs["headers"]["Authorization"] == CREDS.basic_auth_header()


def test_exchange_code_non_200_raises():
    with patch("spotify_nvim.spotify.auth.requests.post", return_value=_mock_response(400, {"error": "invalid_grant"})):
        with pytest.raises(AuthorizationError):
            exchange_code(CREDS, "bad", REDIRECT)


def test_refresh_keeps_old_refresh_token_when_omitted():
    with patch("spotify_nvim.spotify.auth.requests.post", return_value=_mock_response(200, {"access_token": "new"})) as post:
        pair = refresh_tokens(CREDS, "ref")
    assert pair == TokenPair("new", "ref")
    assert post.call_args[1]["data"] == {"grant_type": "refresh_token", "refresh_token": "ref"}


def test_refresh_without_refresh_token_raises():
    with pytest.raises(AuthorizationError):
        refresh_tokens(CREDS, "")


def test_code_from_redirect():
    assert code_from_redirect("http://localhost:8888/callback?code=abc&state=x") == "abc"
    with pytest.raises(AuthorizationError):
        code_from_redirect("http://localhost:8888/callback?error=access_denied")
    with pytest.raises(AuthorizationError):
        code_from_redirect("http://localhost:8888/callback")


def test_start_without_credentials(tmp_path):
    f = AuthFlow(None, str(tmp_path / "tokens.json"), port=0)
    assert f.start() is StartResult.MISSING_CREDENTIALS
    assert not f.running


def test_start_twice_is_already_running(flow):
    assert flow.start() is StartResult.STARTED
    assert flow.start() is StartResult.ALREADY_RUNNING


def test_login_redirects_to_spotify(flow):
    flow.start()
    status, location, _ = _get(flow.port, "/login")
    assert status == 302
    assert location == authorize_url(CREDS, REDIRECT)


def test_root_serves_login_page(flow):
    flow.start()
    status, _, body = _get(flow.port, "/")
    assert status == 200
    assert b"/login" in body


def test_unknown_path_is_404(flow):
    flow.start()
    status, _, _ = _get(flow.port, "/nope")
    assert status == 404


def test_callback_success_persists_and_shuts_down(flow):
    flow.start()
    port = flow.port
    pair = TokenPair("acc", "ref")
    with patch("spotify_nvim.spotify.auth.exchange_code", return_value=pair) as exchange:
        status, location, _ = _get(port, "/callback?code=abc")

    assert status == 302
    assert location.startswith("/#success=")
    exchange.assert_called_once_with(CREDS, "abc", REDIRECT, timeout=flow.timeout)
    assert flow.wait(timeout=5) == pair
    assert token_store.load(flow.token_file) == pair

    flow.join(timeout=5)
    with pytest.raises(OSError):
        _get(port, "/login")


def test_callback_failure_keeps_listening(flow):
    flow.start()
    with patch("spotify_nvim.spotify.auth.exchange_code", side_effect=AuthorizationError("nope")):
        status, location, _ = _get(flow.port, "/callback?code=bad")

    assert status == 302
    assert location == "/#error=invalid_token"
    assert not flow.done
    # user can retry
    status, _, _ = _get(flow.port, "/login")
    assert status == 302


def test_callback_with_error_param(flow):
    flow.start()
    status, location, _ = _get(flow.port, "/callback?error=access_denied")
    assert location == "/#error=invalid_token"
    assert not flow.done


def test_complete_with_code_resolves(flow):
    flow.start()
    pair = TokenPair("acc", "ref")
    with patch("spotify_nvim.spotify.auth.exchange_code", return_value=pair):
        assert flow.complete_with_code("abc") == pair
    assert flow.wait(timeout=5) == pair


def test_close_twice_strict_raises(flow):
    flow.start()
    flow.close()
    flow.close()
    with pytest.raises(ServerClosedError):
        flow.close(strict=True)

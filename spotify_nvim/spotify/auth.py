# spotify_nvim/spotify/auth.py
"""
Spotify auth (Authorization Code grant with client secret).

Features:
- Builds the authorize URL the user is sent to from /login
- Spins a small local HTTP server that catches the /callback redirect
- Exchanges the code for an access/refresh token pair (HTTP Basic client auth)
- Refreshes the access token from the stored refresh token
- Persists the pair through token_store so later launches skip the browser

Notes for user:
- The redirect URI (default http://localhost:8888/callback) must be registered
  in your Spotify app settings exactly as configured here.
"""

from __future__ import annotations
import base64
import enum
import logging
import os
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from spotify_nvim.errors import AuthorizationError, AuthServerError, ServerClosedError
from spotify_nvim.spotify import token_store
from spotify_nvim.spotify.token_store import TokenPair

logger = logging.getLogger(__name__)

# Constants (kept here to be explicit)
SPOTIFY_ACCOUNTS = "https://accounts.spotify.com"
TOKEN_URL = SPOTIFY_ACCOUNTS + "/api/token"
AUTHORIZE_URL = SPOTIFY_ACCOUNTS + "/authorize"

# only playback control is needed; search works with any user token
DEFAULT_SCOPE = "user-modify-playback-state"
LOGIN_PAGE = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "public", "index.html")


@dataclass(frozen=True)
class Credentials:
    client_id: str
    client_secret: str

    def basic_auth_header(self) -> str:
        raw = f"{self.client_id}:{self.client_secret}".encode("utf8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def __repr__(self):
        # keep the secret out of logs
        return f"Credentials(client_id={self.client_id!r}, client_secret='***')"


class StartResult(enum.Enum):
    STARTED = "started"
    ALREADY_RUNNING = "already_running"
    MISSING_CREDENTIALS = "missing_credentials"


def authorize_url(credentials: Credentials, redirect_uri: str, scope: str = DEFAULT_SCOPE) -> str:
    params = {
        "response_type": "code",
        "client_id": credentials.client_id,
        "scope": scope,
        "redirect_uri": redirect_uri,
    }
    return AUTHORIZE_URL + "?" + urlencode(params)


def _token_request(credentials: Credentials, form: dict, timeout: Optional[float]) -> dict:
    headers = {"Authorization": credentials.basic_auth_header()}
    try:
        r = requests.post(TOKEN_URL, data=form, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise AuthorizationError(f"token request failed: {e}") from e

    if r.status_code != 200:
        raise AuthorizationError(f"token endpoint answered HTTP {r.status_code}: {r.text}")
    try:
        data = r.json()
    except ValueError as e:
        raise AuthorizationError("token endpoint did not return JSON") from e
    if not isinstance(data, dict) or not data.get("access_token"):
        raise AuthorizationError("token response has no access_token")
    return data


def exchange_code(credentials: Credentials, code: str, redirect_uri: str, timeout: Optional[float] = 15.0) -> TokenPair:
    """Server-to-server exchange of an authorization code for a token pair."""
    data = _token_request(
        credentials,
        {"code": code, "redirect_uri": redirect_uri, "grant_type": "authorization_code"},
        timeout,
    )
    return TokenPair(access_token=data["access_token"], refresh_token=data.get("refresh_token") or "")


def refresh_tokens(credentials: Credentials, refresh_token: str, timeout: Optional[float] = 15.0) -> TokenPair:
    if not refresh_token:
        raise AuthorizationError("No refresh token available: run :SpotifyInit again")
    data = _token_request(
        credentials,
        {"grant_type": "refresh_token", "refresh_token": refresh_token},
        timeout,
    )
    # refresh responses often omit refresh_token, keep the one we have
    return TokenPair(access_token=data["access_token"], refresh_token=data.get("refresh_token") or refresh_token)


def code_from_redirect(url: str) -> str:
    """Pull the authorization code out of a pasted redirect URL."""
    qs = parse_qs(urlparse(str(url or "").strip()).query)
    if "error" in qs:
        raise AuthorizationError(f"authorization was denied: {qs['error'][0]}")
    code = qs.get("code", [None])[0]
    if not code:
        raise AuthorizationError("no code found in the redirect URL")
    return code


class _CallbackHandler(BaseHTTPRequestHandler):
    """
    Routes for the local login server.
    The owning AuthFlow is reachable through self.server.flow.
    """
    server_version = "SpotifyNvimAuth/0.1"

    def do_GET(self):
        parsed = urlparse(self.path)
        qs = parse_qs(parsed.query)

        if parsed.path in ("/", "/index.html"):
            self._serve_login_page()
        elif parsed.path == "/login":
            self._redirect(self.server.flow.authorize_url)
        elif parsed.path == "/callback":
            self._callback(qs)
        else:
            self.send_error(404)

    def _callback(self, qs):
        flow = self.server.flow
        if "error" in qs:
            logger.error("Spotify authorization denied: %s", qs["error"][0])
            self._redirect("/#" + urlencode({"error": "invalid_token"}))
            return

        code = qs.get("code", [None])[0]
        if not code:
            self._redirect("/#" + urlencode({"error": "invalid_token"}))
            return

        try:
            pair = flow.exchange(code)
        except AuthorizationError as e:
            logger.error("Token exchange failed: %s", e)
            self._redirect("/#" + urlencode({"error": "invalid_token"}))
            return

        self._redirect("/#" + urlencode({"success": "authorized"}))
        flow.resolve(pair)

    def _redirect(self, location: str):
        self.send_response(302)
        self.send_header("Location", location)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _serve_login_page(self):
        try:
            with open(LOGIN_PAGE, "rb") as fh:
                body = fh.read()
        except OSError:
            self.send_error(404)
            return
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        # stdout/stderr belong to the editor RPC channel
        logger.debug("auth server: " + format, *args)


class AuthFlow:
    """
    One interactive authorization attempt.

    Usage pattern:
      flow = AuthFlow(credentials, token_file)
      if flow.start() is StartResult.STARTED:
          pair = flow.wait()   # blocks until /callback succeeded
    The listener shuts itself down after a successful exchange. A failed
    exchange leaves it running so the user can retry through /login.
    """

    def __init__(
        self,
        credentials: Optional[Credentials],
        token_file: str,
        port: int = 8888,
        redirect_uri: Optional[str] = None,
        scope: str = DEFAULT_SCOPE,
        timeout: Optional[float] = 15.0,
        host: str = "127.0.0.1",
    ):
        self.credentials = credentials
        self.token_file = token_file
        self.host = host
        self.scope = scope
        self.timeout = timeout
        self.redirect_uri = redirect_uri or f"http://localhost:{port}/callback"
        self.tokens: Optional[TokenPair] = None
        self._port = port
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._done: Future = Future()

    # Listener lifecycle ------------------------------------------
    @property
    def port(self) -> int:
        server = self._server
        if server is not None:
            return server.server_address[1]
        return self._port

    @property
    def login_url(self) -> str:
        return f"http://localhost:{self.port}"

    @property
    def authorize_url(self) -> str:
        return authorize_url(self.credentials, self.redirect_uri, self.scope)

    @property
    def running(self) -> bool:
        return self._server is not None

    def start(self) -> StartResult:
        if self.credentials is None:
            logger.error("You need to call SpotifyConfig with your client_id and client_secret first")
            return StartResult.MISSING_CREDENTIALS

        with self._lock:
            if self._server is not None:
                return StartResult.ALREADY_RUNNING
            if self._done.done():
                raise ServerClosedError("this authorization flow already finished")
            try:
                server = ThreadingHTTPServer((self.host, self._port), _CallbackHandler)
            except OSError as e:
                raise AuthServerError(f"could not listen on port {self._port}: {e}") from e
            server.daemon_threads = True
            server.flow = self
            self._server = server
            self._thread = threading.Thread(target=self._serve, args=(server,), name="spotify-nvim-auth", daemon=True)
            self._thread.start()

        logger.info("Please visit %s and authenticate", self.login_url)
        return StartResult.STARTED

    def _serve(self, server: ThreadingHTTPServer):
        try:
            server.serve_forever()
        finally:
            server.server_close()

    def close(self, strict: bool = False) -> None:
        with self._lock:
            server, self._server = self._server, None
            thread = self._thread
        if server is None:
            if strict:
                raise ServerClosedError("auth listener already closed")
            return
        server.shutdown()
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        logger.debug("Auth listener closed")

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the listener thread to exit (it does after a successful callback)."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    # Completion -----------------------------------------------------
    def exchange(self, code: str) -> TokenPair:
        """Trade the code for tokens, keep them in memory and persist them."""
        pair = exchange_code(self.credentials, code, self.redirect_uri, timeout=self.timeout)
        self.tokens = pair
        if token_store.persist(pair, self.token_file):
            logger.info("Wrote tokens to %s", self.token_file)
        return pair

    def resolve(self, pair: TokenPair) -> None:
        """Signal completion and take the listener down in the background."""
        with self._lock:
            if self._done.done():
                return
            self._done.set_result(pair)
        threading.Thread(target=self.close, name="spotify-nvim-auth-close", daemon=True).start()

    def complete_with_code(self, code: str) -> TokenPair:
        """Same as a browser hit on /callback, for users pasting the redirect URL."""
        if self.credentials is None:
            raise AuthorizationError("credentials are not configured")
        pair = self.exchange(code)
        self.resolve(pair)
        return pair

    def wait(self, timeout: Optional[float] = None) -> TokenPair:
        """Block until tokens were obtained. No timeout unless one is given."""
        return self._done.result(timeout)

    @property
    def done(self) -> bool:
        return self._done.done()

# spotify_nvim/session.py
"""
Per-process plugin state and the lazy initializer.

A Session owns the settings (credentials live there), the token pair, the Web
API client and the current auth flow. Initialization goes through a single
in-flight Future: the first caller starts one worker thread, every other
caller waits on that same Future, so there is never more than one auth flow
or one client construction at a time.

States: uninitialized -> initialized. A failed attempt clears the Future and
stays uninitialized so the user can fix config and try again.
"""

from __future__ import annotations
import logging
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import Callable, Optional

from spotify_nvim.errors import AuthorizationError, ConfigurationError, NotInitializedError
from spotify_nvim.settings import Settings
from spotify_nvim.spotify import token_store
from spotify_nvim.spotify.auth import AuthFlow, StartResult, code_from_redirect, refresh_tokens
from spotify_nvim.spotify.client import SpotifyClient
from spotify_nvim.spotify.token_store import TokenPair

logger = logging.getLogger(__name__)


class Session:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client_factory: Callable[..., SpotifyClient] = SpotifyClient,
        flow_factory: Callable[..., AuthFlow] = AuthFlow,
    ):
        self.settings = settings or Settings()
        self._client_factory = client_factory
        self._flow_factory = flow_factory
        self._lock = threading.Lock()
        # guards the token pair; held across a refresh exchange
        self._token_lock = threading.Lock()
        self._tokens: Optional[TokenPair] = None
        self._tokens_path: Optional[str] = None
        self._client: Optional[SpotifyClient] = None
        self._flow: Optional[AuthFlow] = None
        self._pending: Optional[Future] = None

    # State -----------------------------------------------------------
    @property
    def initialized(self) -> bool:
        return self._client is not None

    @property
    def tokens(self) -> Optional[TokenPair]:
        return self._tokens

    @property
    def flow(self) -> Optional[AuthFlow]:
        return self._flow

    def configure(self, options) -> None:
        """SpotifyConfig: set credentials/token file, then try the token file."""
        self.settings.configure(options)
        self.load_tokens()

    def load_tokens(self) -> bool:
        """
        Read the token file unless the pair in memory already came from it.
        A new token_file that can't be read keeps the current pair.
        """
        path = self.settings.token_file
        with self._token_lock:
            if self._tokens is not None and self._tokens_path == path:
                return True
            pair = token_store.load(path)
            if pair is None:
                return self._tokens is not None
            self._set_tokens(pair, path)
        logger.debug("Loaded tokens from %s", path)
        return True

    def _set_tokens(self, pair: TokenPair, path: str) -> None:
        self._tokens = pair
        self._tokens_path = path
        client = self._client
        if client is not None:
            client.set_access_token(pair.access_token)
            client.set_refresh_token(pair.refresh_token)

    # Lazy init -------------------------------------------------------
    def begin(self) -> Future:
        """
        Return the initialization Future, starting the work if nobody has.
        Already initialized -> an already-resolved Future.
        """
        with self._lock:
            if self._client is not None:
                done: Future = Future()
                done.set_result(self._client)
                return done
            if self._pending is not None:
                return self._pending
            fut: Future = Future()
            self._pending = fut

        worker = threading.Thread(target=self._initialize, args=(fut,), name="spotify-nvim-init", daemon=True)
        worker.start()
        return fut

    def client(self, timeout: Optional[float] = None) -> SpotifyClient:
        """Block until a client is available. Raises NotInitializedError on timeout."""
        fut = self.begin()
        try:
            return fut.result(timeout)
        except FutureTimeout:
            raise NotInitializedError(
                f"Waiting for Spotify authorization, visit {self.settings.login_url} and try again"
            ) from None

    def _initialize(self, fut: Future) -> None:
        try:
            client = self._build_client()
        except Exception as e:
            # hand the error to every waiter; next call starts over
            with self._lock:
                self._pending = None
            fut.set_exception(e)
            return

        with self._lock:
            self._client = client
            self._pending = None
        logger.info("Spotify initialized")
        fut.set_result(client)

    def _build_client(self) -> SpotifyClient:
        if self._tokens is None:
            self.load_tokens()
        if self._tokens is None:
            pair = self._run_auth_flow()
            with self._token_lock:
                self._set_tokens(pair, self.settings.token_file)

        pair = self._tokens
        return self._client_factory(
            pair.access_token,
            pair.refresh_token,
            refresher=self.refresh,
            timeout=self.settings.request_timeout,
        )

    def _run_auth_flow(self) -> TokenPair:
        s = self.settings
        flow = self._flow_factory(
            s.credentials,
            s.token_file,
            port=s.port,
            redirect_uri=s.redirect_uri,
            scope=s.scope,
            timeout=s.request_timeout,
        )
        result = flow.start()
        if result is StartResult.MISSING_CREDENTIALS:
            raise ConfigurationError(
                "Client credentials missing: call SpotifyConfig (or set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET) first"
            )

        self._flow = flow
        try:
            return flow.wait()
        finally:
            self._flow = None

    # Token refresh ---------------------------------------------------
    def refresh(self, stale_token: Optional[str] = None) -> str:
        """
        Trade the refresh token for a new access token and persist the pair.

        `stale_token` is the access token that was rejected. Refreshes are
        serialized; when the pair was already replaced since that token (or,
        without one, since this call started) the current token is returned
        and no second exchange happens.
        """
        creds = self.settings.credentials
        if creds is None:
            raise ConfigurationError("Cannot refresh the access token without client credentials")
        current = self._tokens
        seen = stale_token if stale_token is not None else (current.access_token if current else None)

        with self._token_lock:
            if self._tokens is None:
                raise AuthorizationError("No tokens to refresh")
            if seen is not None and self._tokens.access_token != seen:
                return self._tokens.access_token

            pair = refresh_tokens(creds, self._tokens.refresh_token, timeout=self.settings.request_timeout)
            path = self.settings.token_file
            self._tokens = pair
            self._tokens_path = path
            if self._client is not None:
                self._client.set_refresh_token(pair.refresh_token)
            token_store.persist(pair, path)
        logger.debug("Refreshed access token")
        return pair.access_token

    # Manual completion / teardown ---------------------------------------
    def authorize_with_redirect(self, url: str) -> TokenPair:
        """Finish a pending flow with the URL the browser was redirected to."""
        flow = self._flow
        if flow is None:
            raise AuthorizationError("No authorization in progress, run :SpotifyInit first")
        return flow.complete_with_code(code_from_redirect(url))

    def close(self) -> None:
        flow = self._flow
        if flow is not None:
            flow.close()
        client = self._client
        if client is not None:
            client.close()

# spotify_nvim/spotify/client.py
import logging
from typing import Callable, List, Optional, Sequence

import requests

from spotify_nvim.errors import RemoteCallError
from spotify_nvim.spotify.models import Track, tracks_from_search

logger = logging.getLogger(__name__)


class SpotifyClient:
    """
    Wrapper around the Spotify Web API.
    Only the playback/search pieces the editor commands need.

    `refresher` is called with the rejected access token when the API answers
    401; it must return a fresh access token (or raise). The request is then
    retried once.
    """

    BASE_URL = "https://api.spotify.com/v1"

    def __init__(
        self,
        access_token: str,
        refresh_token: str = "",
        refresher: Optional[Callable[[str], str]] = None,
        timeout: Optional[float] = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._refresher = refresher
        self.timeout = timeout
        self._http = session or requests.Session()

    def set_access_token(self, token: str) -> None:
        self._access_token = token

    def set_refresh_token(self, token: str) -> None:
        self._refresh_token = token

    @property
    def access_token(self) -> str:
        return self._access_token

    @property
    def refresh_token(self) -> str:
        return self._refresh_token

    def _headers(self, token: str):
        return {"Authorization": f"Bearer {token}"}

    def _request(self, operation: str, method: str, path: str, params=None, payload=None):
        url = f"{self.BASE_URL}/{path.lstrip('/')}"
        sent = self._access_token
        r = self._send(operation, method, url, params, payload, sent)

        # expired token: refresh and retry once
        if r.status_code == 401 and self._refresher is not None:
            logger.debug("%s got 401, refreshing access token", operation)
            self.set_access_token(self._refresher(sent))
            r = self._send(operation, method, url, params, payload, self._access_token)

        if r.status_code >= 400:
            raise RemoteCallError(operation, _error_message(r), status=r.status_code)
        if not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            return None

    def _send(self, operation, method, url, params, payload, token):
        try:
            return self._http.request(method, url, headers=self._headers(token), params=params, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteCallError(operation, str(e)) from e

    # Public API -----------------------------------------------------

    def search_tracks(self, query: str, limit: int = 50) -> List[Track]:
        data = self._request("search", "GET", "search", params={"q": query, "type": "track", "limit": limit})
        return tracks_from_search(data or {})

    def skip_to_next(self) -> None:
        self._request("next track", "POST", "me/player/next")

    def skip_to_previous(self) -> None:
        self._request("previous track", "POST", "me/player/previous")

    def play(self, uris: Sequence[str]) -> None:
        self._request("play", "PUT", "me/player/play", payload={"uris": list(uris)})

    def pause(self) -> None:
        self._request("pause", "PUT", "me/player/pause")

    def close(self) -> None:
        self._http.close()


def _error_message(r) -> str:
    # Web API errors look like {"error": {"status": 404, "message": "..."}}
    try:
        body = r.json()
    except ValueError:
        return r.text or r.reason or "request failed"
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    if isinstance(err, str):
        return err
    return r.text or "request failed"

# spotify_nvim/errors.py
"""Error types raised inside the plugin. None of them reach the editor as a crash."""

from typing import Optional


class SpotifyNvimError(Exception):
    """Base class for everything the plugin raises on purpose."""


class ConfigurationError(SpotifyNvimError):
    """Credentials missing or config dict malformed."""


class AuthorizationError(SpotifyNvimError):
    """Token endpoint refused the code / refresh token."""


class AuthServerError(SpotifyNvimError):
    """Local callback listener could not be started."""


class ServerClosedError(AuthServerError):
    """Listener was already shut down."""


class NotInitializedError(SpotifyNvimError):
    """Caller stopped waiting before authorization finished."""


class InvalidArgumentError(SpotifyNvimError):
    """An editor function got an argument of the wrong shape."""


class EmptyQueryError(SpotifyNvimError):
    def __init__(self, message: str = "No query passed to SpotifySearchTracks"):
        super().__init__(message)


class RemoteCallError(SpotifyNvimError):
    """A Web API call failed. Keeps the operation name and HTTP status (if any)."""

    def __init__(self, operation: str, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.operation = operation
        self.status = status

    def __str__(self):
        base = super().__str__()
        if self.status is not None:
            return f"{self.operation} failed (HTTP {self.status}): {base}"
        return f"{self.operation} failed: {base}"

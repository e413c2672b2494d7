# spotify_nvim/settings.py
"""
Runtime settings for the plugin.

Values come from two places:
- the editor, through SpotifyConfig({client_id, client_secret, token_file})
- the environment (SPOTIFY_CLIENT_ID etc), which the CLI relies on

Credentials are kept in memory only, never written next to the tokens.
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from spotify_nvim.errors import ConfigurationError
from spotify_nvim.spotify.auth import DEFAULT_SCOPE, Credentials

DEFAULT_TOKEN_FILE = os.path.expanduser("~/.spotify_nvim_tokens.json")
DEFAULT_PORT = 8888


@dataclass
class Settings:
    client_id: str = ""
    client_secret: str = ""
    token_file: str = DEFAULT_TOKEN_FILE
    port: int = DEFAULT_PORT
    redirect_uri: Optional[str] = None
    scope: str = DEFAULT_SCOPE
    search_limit: int = 50
    request_timeout: float = 15.0
    sync_wait: float = 2.0

    def __post_init__(self):
        self.token_file = os.path.expanduser(self.token_file)
        if not self.redirect_uri:
            self.redirect_uri = f"http://localhost:{self.port}/callback"

    @property
    def credentials(self) -> Optional[Credentials]:
        if not self.client_id or not self.client_secret:
            return None
        return Credentials(self.client_id, self.client_secret)

    @property
    def login_url(self) -> str:
        return f"http://localhost:{self.port}"

    def configure(self, options: Dict[str, Any]) -> None:
        """
        Apply the dict passed to SpotifyConfig.
        Both client_id and client_secret are required; on error nothing changes.
        """
        if not isinstance(options, dict):
            raise ConfigurationError("SpotifyConfig expects a dict like {'client_id': ..., 'client_secret': ...}")

        client_id = str(options.get("client_id") or "").strip()
        client_secret = str(options.get("client_secret") or "").strip()
        if not client_id or not client_secret:
            raise ConfigurationError("client_id and/or client_secret not passed to config")

        # token_file_path was the key used by earlier versions of the plugin
        token_file = options.get("token_file") or options.get("token_file_path")

        self.client_id = client_id
        self.client_secret = client_secret
        if token_file:
            self.token_file = os.path.expanduser(str(token_file))

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        kwargs: Dict[str, Any] = {
            "client_id": env.get("SPOTIFY_CLIENT_ID", ""),
            "client_secret": env.get("SPOTIFY_CLIENT_SECRET", ""),
        }
        if env.get("SPOTIFY_NVIM_TOKEN_FILE"):
            kwargs["token_file"] = env["SPOTIFY_NVIM_TOKEN_FILE"]
        if env.get("SPOTIFY_NVIM_PORT"):
            try:
                kwargs["port"] = int(env["SPOTIFY_NVIM_PORT"])
            except ValueError:
                raise ConfigurationError(f"SPOTIFY_NVIM_PORT must be a number, got {env['SPOTIFY_NVIM_PORT']!r}")
        return cls(**kwargs)

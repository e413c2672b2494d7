# spotify_nvim/spotify/token_store.py
"""
Token persistence: a tiny JSON file holding {"accessToken", "refreshToken"}.

Both functions are best effort. A write failure only costs a re-auth on the
next launch, and a bad/missing file just means we go through the login flow.
"""

from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

    def to_json(self) -> Dict[str, str]:
        return {"accessToken": self.access_token, "refreshToken": self.refresh_token}

    @classmethod
    def from_json(cls, obj: Any) -> "TokenPair":
        if not isinstance(obj, dict):
            raise ValueError("token document is not a JSON object")
        access = obj.get("accessToken")
        refresh = obj.get("refreshToken")
        if not isinstance(access, str) or not isinstance(refresh, str):
            raise ValueError("token document needs string accessToken and refreshToken")
        return cls(access_token=access, refresh_token=refresh)


def persist(pair: TokenPair, path: str) -> bool:
    """Write the pair to `path`. Returns False (and logs) instead of raising."""
    path = os.path.expanduser(path)
    try:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "w", encoding="utf8") as fh:
            json.dump(pair.to_json(), fh)
    except OSError as e:
        logger.error("Could not write tokens to %s: %s", path, e)
        return False
    logger.debug("Wrote tokens to %s", path)
    return True


def load(path: str) -> Optional[TokenPair]:
    """Read a pair from `path`; None for any problem with the file."""
    path = os.path.expanduser(path)
    if not os.path.exists(path):
        logger.debug("No token file at %s", path)
        return None
    try:
        with open(path, "r", encoding="utf8") as fh:
            data = json.load(fh)
        return TokenPair.from_json(data)
    except (OSError, ValueError) as e:
        # json.JSONDecodeError is a ValueError too
        logger.warning("Ignoring token file %s: %s", path, e)
        return None

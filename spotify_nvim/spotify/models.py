# spotify_nvim/spotify/models.py
"""
Track model returned by search.

The search endpoint returns full track objects; we keep the few fields the
editor side cares about (name, uri, artist, album, duration) and hold on to the
original payload in `raw` for anything else.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass
class Track:
    id: Optional[str]
    uri: Optional[str]
    name: str
    artists: List[Dict[str, Any]]
    album: Optional[Dict[str, Any]] = None
    duration_ms: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.artists is None:
            self.artists = []

    def main_artist_name(self) -> str:
        if not self.artists:
            return "Unknown"
        return self.artists[0].get("name") or "Unknown"

    def album_name(self) -> Optional[str]:
        if not self.album:
            return None
        return self.album.get("name")

    def to_dict(self) -> Dict[str, Any]:
        # what the editor gets back: msgpack-friendly, no nested payload
        return {
            "name": self.name,
            "uri": self.uri,
            "artist": self.main_artist_name(),
            "album": self.album_name(),
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_spotify_item(cls, item: Dict[str, Any]) -> "Track":
        """
        Accepts a track object, or an envelope like {"track": {...}}
        (playlist/recently-played shapes).
        """
        track_obj = item.get("track") if isinstance(item, dict) and "track" in item else item
        if not isinstance(track_obj, dict):
            track_obj = {}

        duration = track_obj.get("duration_ms")
        return cls(
            id=track_obj.get("id"),
            uri=track_obj.get("uri"),
            name=track_obj.get("name") or "",
            artists=list(track_obj.get("artists") or []),
            album=track_obj.get("album"),
            duration_ms=int(duration) if isinstance(duration, (int, float)) else None,
            raw=track_obj,
        )


def tracks_from_search(payload: Dict[str, Any]) -> List[Track]:
    items: Iterable[Dict[str, Any]] = (payload.get("tracks") or {}).get("items") or []
    return [Track.from_spotify_item(it) for it in items if it]

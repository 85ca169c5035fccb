"""Port interface for resolving tracks and playlists into playable metadata."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from holo_bot.domain.shared.types import NonEmptyStr

if TYPE_CHECKING:
    from ...domain.music.entities import ExtractedMetaData, PlaylistInfo, TrackInfo


class MetadataExtractor(ABC):
    """Interface for turning a URL, video ID or search query into track data."""

    @abstractmethod
    async def resolve_track(self, source: NonEmptyStr) -> "TrackInfo":
        """Resolve a single source into a playable track.

        Raises:
            TrackResolutionError: If the source cannot be resolved.
        """
        ...

    @abstractmethod
    async def resolve_playlist(self, source: NonEmptyStr) -> "PlaylistInfo":
        """Resolve playlist-level metadata; entries are produced lazily.

        Raises:
            PlaylistResolutionError: If the playlist reference itself is invalid.
        """
        ...

    @abstractmethod
    async def fetch_metadata(self, source: NonEmptyStr) -> "ExtractedMetaData | None":
        """Best-effort metadata lookup for a not-yet-buffered item. Never raises."""
        ...

    @abstractmethod
    def is_playlist(self, source: NonEmptyStr) -> bool:
        ...

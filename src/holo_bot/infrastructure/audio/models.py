"""Pydantic models for yt-dlp data transformation and configuration.

These are infrastructure-specific models for parsing external yt-dlp data,
caching extraction results, and configuring yt-dlp options.
"""

from __future__ import annotations

from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from holo_bot.domain.music.entities import ExtractedMetaData
from holo_bot.domain.shared.types import NonEmptyStr, NonNegativeFloat, NonNegativeInt, PositiveInt

CACHE_TTL: Final[int] = 3600
CACHE_MAX_SIZE: Final[int] = 500
DEFAULT_RETRIES: Final[int] = 3
DEFAULT_SOCKET_TIMEOUT: Final[int] = 10
DEFAULT_HTTP_CHUNK_SIZE: Final[int] = 1024 * 1024  # 1 MiB
LOG_URL_TRUNCATE: Final[int] = 60

UNAVAILABLE_TITLES: Final[frozenset[str]] = frozenset({"[Deleted video]", "[Private video]"})
UNAVAILABLE_AVAILABILITY: Final[frozenset[str]] = frozenset(
    {"private", "premium_only", "subscriber_only", "needs_auth"}
)


def _coerce_str(v: Any) -> str | None:
    """Convert empty / whitespace-only / non-string values to None."""
    if not isinstance(v, str) or not v.strip():
        return None
    return v


def _coerce_count(v: Any) -> int | None:
    """Coerce to non-negative int; return None for garbage values."""
    if v is None:
        return None
    try:
        val = int(v)
        return val if val >= 0 else None
    except (TypeError, ValueError):
        return None


# ── Pydantic models for yt-dlp data ────────────────────────────────────


class AudioFormatInfo(BaseModel):
    """A single audio format entry from yt-dlp extraction."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: NonEmptyStr | None = None
    acodec: NonEmptyStr | None = None


class ThumbnailInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    url: NonEmptyStr | None = None


class YtDlpTrackInfo(BaseModel):
    """Trimmed yt-dlp extraction result for a single video.

    Extra fields from yt-dlp are silently ignored, keeping memory usage low.
    Before-validators coerce garbage from external yt-dlp data gracefully.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: NonEmptyStr | None = None
    webpage_url: NonEmptyStr | None = None
    url: NonEmptyStr | None = None
    title: NonEmptyStr = "Unknown Title"
    duration: NonNegativeInt | None = None
    thumbnail: NonEmptyStr | None = None
    thumbnails: list[ThumbnailInfo] = Field(default_factory=list)
    uploader: NonEmptyStr | None = None
    channel: NonEmptyStr | None = None
    availability: NonEmptyStr | None = None
    formats: list[AudioFormatInfo] = Field(default_factory=list)

    @field_validator(
        "id", "webpage_url", "url", "thumbnail", "uploader", "channel", "availability",
        mode="before",
    )
    @classmethod
    def _coerce_empty_to_none(cls, v: Any) -> str | None:
        return _coerce_str(v)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, v: Any) -> str:
        """Fall back to default when yt-dlp sends empty or non-string title."""
        if not isinstance(v, str) or not v.strip():
            return "Unknown Title"
        return v

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, v: Any) -> int | None:
        return _coerce_count(v)

    @property
    def uploader_name(self) -> str | None:
        return self.uploader or self.channel

    @property
    def thumbnail_url(self) -> str | None:
        if self.thumbnail:
            return self.thumbnail
        return next((t.url for t in self.thumbnails if t.url), None)

    @property
    def unavailable_reason(self) -> str | None:
        if self.title in UNAVAILABLE_TITLES:
            return self.title.strip("[]")
        if self.availability in UNAVAILABLE_AVAILABILITY:
            return self.availability.replace("_", " ")
        return None

    def to_extracted_metadata(self) -> ExtractedMetaData:
        return ExtractedMetaData(
            title=self.title,
            uploader=self.uploader_name or "Unknown Uploader",
            duration_seconds=self.duration,
            thumbnail_url=self.thumbnail_url,
        )


class YtDlpPlaylistInfo(BaseModel):
    """Playlist-level fields of a flat yt-dlp playlist extraction."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: NonEmptyStr = "Unknown Title"
    description: str | None = None
    uploader: NonEmptyStr | None = None
    channel: NonEmptyStr | None = None
    availability: NonEmptyStr | None = None
    view_count: NonNegativeInt | None = None
    playlist_count: NonNegativeInt | None = None
    entries: list[YtDlpTrackInfo] = Field(default_factory=list)

    @field_validator("uploader", "channel", "availability", mode="before")
    @classmethod
    def _coerce_empty_to_none(cls, v: Any) -> str | None:
        return _coerce_str(v)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            return "Unknown Title"
        return v

    @field_validator("view_count", "playlist_count", mode="before")
    @classmethod
    def _coerce_counts(cls, v: Any) -> int | None:
        return _coerce_count(v)

    @field_validator("entries", mode="before")
    @classmethod
    def _drop_empty_entries(cls, v: Any) -> list[Any]:
        """yt-dlp yields ``None`` for entries it could not read at all."""
        if not isinstance(v, list):
            return []
        return [e if isinstance(e, dict) else {"title": "[Deleted video]"} for e in v]


class CacheEntry(BaseModel):
    """Cached metadata lookup with the time it was stored."""

    model_config = ConfigDict(frozen=True)

    metadata: ExtractedMetaData | None = None
    cached_at: NonNegativeFloat


# ── yt-dlp option models ───────────────────────────────────────────────


class YtDlpOpts(BaseModel):
    """Typed yt-dlp configuration options passed to YoutubeDL."""

    model_config = ConfigDict(frozen=True)

    quiet: bool = True
    noprogress: bool = True
    noplaylist: bool = True
    default_search: NonEmptyStr = "ytsearch"
    forceipv4: bool = True
    retries: PositiveInt = DEFAULT_RETRIES
    socket_timeout: PositiveInt = DEFAULT_SOCKET_TIMEOUT
    http_chunk_size: PositiveInt = DEFAULT_HTTP_CHUNK_SIZE
    format: NonEmptyStr | None = None
    skip_download: bool = True
    extract_flat: NonEmptyStr | bool = False
    ignoreerrors: bool = False

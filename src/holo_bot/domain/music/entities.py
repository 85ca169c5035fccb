"""Core entities for the music queue: requested items, resolved tracks and playlists."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from holo_bot.domain.shared.datetime_utils import utcnow
from holo_bot.domain.shared.types import (
    DiscordSnowflake,
    DurationSeconds,
    NonEmptyStr,
    NonNegativeInt,
    UtcDatetimeField,
)

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_UPLOADER = "Unknown Uploader"


class TrackMetaData(BaseModel):
    """Who asked for a track, and when."""

    model_config = ConfigDict(frozen=True)

    requested_by: DiscordSnowflake
    requested_at: UtcDatetimeField = Field(default_factory=utcnow)


class Listener(BaseModel):
    """A member connected to the bot's voice channel, as shown in listings."""

    model_config = ConfigDict(frozen=True)

    name: NonEmptyStr
    colour: NonNegativeInt = 0


class ExtractedMetaData(BaseModel):
    """Metadata fetched for an item that has not been buffered yet."""

    model_config = ConfigDict(frozen=True)

    title: str = UNKNOWN_TITLE
    uploader: str = UNKNOWN_UPLOADER
    duration_seconds: DurationSeconds | None = None
    thumbnail_url: str | None = None


class EnqueuedItem(BaseModel):
    """A user request waiting to be resolved into a playable track.

    ``source`` is a URL, a bare video ID or a ``ytsearch1:`` query.
    """

    model_config = ConfigDict(frozen=True)

    source: NonEmptyStr
    metadata: TrackMetaData
    extracted_metadata: ExtractedMetaData | None = None

    @classmethod
    def create(
        cls, source: str, requested_by: int, requested_at: datetime | None = None
    ) -> EnqueuedItem:
        return cls(
            source=source,
            metadata=TrackMetaData(
                requested_by=requested_by, requested_at=requested_at or utcnow()
            ),
        )

    def with_extracted_metadata(self, extracted: ExtractedMetaData | None) -> EnqueuedItem:
        """Return a copy carrying fetched metadata."""
        return self.model_copy(update={"extracted_metadata": extracted})

    def was_requested_by(self, user_id: int) -> bool:
        return self.metadata.requested_by == user_id


class TrackRequest(BaseModel):
    """Enqueue a single track."""

    model_config = ConfigDict(frozen=True)

    item: EnqueuedItem


class PlaylistRequest(BaseModel):
    """Enqueue every entry of a playlist, inheriting the request's metadata."""

    model_config = ConfigDict(frozen=True)

    item: EnqueuedItem


EnqueueType = TrackRequest | PlaylistRequest


class TrackInfo(BaseModel):
    """A track resolved into something the voice session can play."""

    model_config = ConfigDict(frozen=True)

    source_url: NonEmptyStr
    stream_url: NonEmptyStr | None = None
    title: str = UNKNOWN_TITLE
    uploader: str | None = None
    duration_seconds: DurationSeconds | None = None
    thumbnail_url: str | None = None

    @property
    def artist(self) -> str:
        return self.uploader or UNKNOWN_ARTIST


class PlaylistEntry(BaseModel):
    """One entry discovered while walking a playlist.

    ``error`` is set when the entry exists but cannot be played
    (deleted, private, region locked...).
    """

    model_config = ConfigDict(frozen=True)

    source_url: NonEmptyStr
    title: str = UNKNOWN_TITLE
    uploader: str | None = None
    duration_seconds: DurationSeconds | None = None
    thumbnail_url: str | None = None
    error: str | None = None

    @property
    def is_available(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PlaylistInfo:
    """Playlist-level metadata plus a lazy stream of its entries."""

    source_url: str
    entries: AsyncIterator[PlaylistEntry]
    title: str = UNKNOWN_TITLE
    description: str | None = None
    uploader: str = UNKNOWN_UPLOADER
    unlisted: bool = False
    view_count: int = 0
    video_count: int = 0


class TrackMin(BaseModel):
    """Compact description of a buffered track used in events."""

    model_config = ConfigDict(frozen=True)

    index: NonNegativeInt
    title: str = UNKNOWN_TITLE
    artist: str = UNKNOWN_ARTIST
    length_seconds: NonNegativeInt = 0
    thumbnail_url: str | None = None

    @classmethod
    def from_info(cls, index: int, info: TrackInfo) -> TrackMin:
        return cls(
            index=index,
            title=info.title,
            artist=info.artist,
            length_seconds=info.duration_seconds or 0,
            thumbnail_url=info.thumbnail_url,
        )


class QueueItem(BaseModel):
    """One row of a queue listing, buffered or still in the remainder."""

    model_config = ConfigDict(frozen=True)

    index: NonNegativeInt
    buffered: bool
    source: NonEmptyStr
    metadata: TrackMetaData | None = None
    requested_by_name: str | None = None
    colour: NonNegativeInt | None = None
    title: str | None = None
    artist: str | None = None
    length_seconds: NonNegativeInt | None = None
    thumbnail_url: str | None = None

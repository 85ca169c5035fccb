"""Events emitted by a guild's music queue.

Broadcast events (``QueueEvent``) describe the queue's lifecycle and are
delivered to every subscriber. Command results are answered to the single
caller that issued the command.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter

from holo_bot.domain.music.entities import QueueItem, TrackMin
from holo_bot.domain.music.value_objects import PlayStateResult
from holo_bot.domain.shared.types import DiscordSnowflake, NonNegativeInt, VolumeFloat


class MusicEvent(BaseModel):
    """Base class for all music queue events."""

    model_config = {"frozen": True}


# === Broadcast events ===


class PlaylistProcessingStart(MusicEvent):
    event_type: Literal["PlaylistProcessingStart"] = "PlaylistProcessingStart"
    title: str
    description: str | None = None
    uploader: str
    unlisted: bool = False
    views: NonNegativeInt = 0
    video_count: NonNegativeInt = 0


class PlaylistProcessingProgress(MusicEvent):
    event_type: Literal["PlaylistProcessingProgress"] = "PlaylistProcessingProgress"
    index: NonNegativeInt
    title: str
    artist: str
    length_seconds: NonNegativeInt = 0
    thumbnail_url: str | None = None


class PlaylistProcessingEnd(MusicEvent):
    event_type: Literal["PlaylistProcessingEnd"] = "PlaylistProcessingEnd"


class TrackEnqueued(MusicEvent):
    event_type: Literal["TrackEnqueued"] = "TrackEnqueued"
    track: TrackMin
    wait_seconds: NonNegativeInt = 0


class TrackEnqueuedBacklog(MusicEvent):
    event_type: Literal["TrackEnqueuedBacklog"] = "TrackEnqueuedBacklog"
    source: str


class QueueError(MusicEvent):
    event_type: Literal["QueueError"] = "QueueError"
    reason: str


class Terminated(MusicEvent):
    event_type: Literal["Terminated"] = "Terminated"


QueueEvent = Annotated[
    PlaylistProcessingStart
    | PlaylistProcessingProgress
    | PlaylistProcessingEnd
    | TrackEnqueued
    | TrackEnqueuedBacklog
    | QueueError
    | Terminated,
    Field(discriminator="event_type"),
]

queue_event_adapter: TypeAdapter[QueueEvent] = TypeAdapter(QueueEvent)


# === Command results ===


class TrackEnqueuedTop(MusicEvent):
    event_type: Literal["TrackEnqueuedTop"] = "TrackEnqueuedTop"
    track: TrackMin


class PlayingNow(MusicEvent):
    event_type: Literal["PlayingNow"] = "PlayingNow"
    track: TrackMin


class TracksSkipped(MusicEvent):
    event_type: Literal["TracksSkipped"] = "TracksSkipped"
    count: NonNegativeInt


class QueueCleared(MusicEvent):
    event_type: Literal["QueueCleared"] = "QueueCleared"
    count: NonNegativeInt


class TracksRemoved(MusicEvent):
    event_type: Literal["TracksRemoved"] = "TracksRemoved"
    count: NonNegativeInt


class DuplicatesRemoved(MusicEvent):
    event_type: Literal["DuplicatesRemoved"] = "DuplicatesRemoved"
    count: NonNegativeInt


class UserPurged(MusicEvent):
    event_type: Literal["UserPurged"] = "UserPurged"
    user_id: DiscordSnowflake
    count: NonNegativeInt


class QueueShuffled(MusicEvent):
    event_type: Literal["QueueShuffled"] = "QueueShuffled"


class PlayStateChanged(MusicEvent):
    event_type: Literal["PlayStateChanged"] = "PlayStateChanged"
    state: PlayStateResult


class VolumeChanged(MusicEvent):
    event_type: Literal["VolumeChanged"] = "VolumeChanged"
    volume: VolumeFloat


class NowPlaying(MusicEvent):
    event_type: Literal["NowPlaying"] = "NowPlaying"
    track: TrackMin | None = None


class QueueListing(MusicEvent):
    event_type: Literal["QueueListing"] = "QueueListing"
    items: list[QueueItem] = Field(default_factory=list)

    @property
    def buffered(self) -> list[QueueItem]:
        return [i for i in self.items if i.buffered]

    @property
    def unbuffered(self) -> list[QueueItem]:
        return [i for i in self.items if not i.buffered]


RemovalEvent = QueueCleared | TracksRemoved | DuplicatesRemoved | UserPurged

"""
Music Bounded Context

Domain types for the per-guild buffered playback queue.
"""

from holo_bot.domain.music.entities import (
    EnqueuedItem,
    EnqueueType,
    ExtractedMetaData,
    PlaylistEntry,
    PlaylistInfo,
    PlaylistRequest,
    QueueItem,
    TrackInfo,
    TrackMetaData,
    TrackMin,
    TrackRequest,
)
from holo_bot.domain.music.events import (
    PlaylistProcessingEnd,
    PlaylistProcessingProgress,
    PlaylistProcessingStart,
    QueueError,
    QueueEvent,
    Terminated,
    TrackEnqueued,
    TrackEnqueuedBacklog,
)
from holo_bot.domain.music.value_objects import (
    MAX_PLAYLIST_LENGTH,
    MAX_QUEUE_LENGTH,
    MAX_TRACK_LENGTH,
    PlayMode,
    PlayStateChange,
    RemovalCondition,
)

__all__ = [
    # Entities
    "EnqueuedItem",
    "EnqueueType",
    "TrackRequest",
    "PlaylistRequest",
    "TrackMetaData",
    "ExtractedMetaData",
    "TrackInfo",
    "PlaylistInfo",
    "PlaylistEntry",
    "TrackMin",
    "QueueItem",
    # Value Objects
    "PlayMode",
    "PlayStateChange",
    "RemovalCondition",
    "MAX_QUEUE_LENGTH",
    "MAX_PLAYLIST_LENGTH",
    "MAX_TRACK_LENGTH",
    # Events
    "QueueEvent",
    "PlaylistProcessingStart",
    "PlaylistProcessingProgress",
    "PlaylistProcessingEnd",
    "TrackEnqueued",
    "TrackEnqueuedBacklog",
    "QueueError",
    "Terminated",
]

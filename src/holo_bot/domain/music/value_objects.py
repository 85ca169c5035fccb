"""Immutable value objects and limits for the music queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Final

MAX_QUEUE_LENGTH: Final[int] = 10
"""Number of live, resolved tracks a guild buffers at once."""

MAX_PLAYLIST_LENGTH: Final[int] = 100
"""Entries taken from a single playlist expansion."""

MAX_TRACK_LENGTH: Final[timedelta] = timedelta(minutes=30)

UPDATE_CHANNEL_CAPACITY: Final[int] = 16
EVENT_CHANNEL_CAPACITY: Final[int] = 16
DEFAULT_VOLUME: Final[float] = 0.5

ESTIMATED_UNBUFFERED_TRACK_SECONDS: Final[int] = 180
"""Length assumed for remainder items when estimating wait times."""

VOLUME_EPSILON: Final[float] = 0.01


class PlayMode(Enum):
    """Playback state of a single audio track.

    State transitions:
    - PENDING -> PLAY (reached the head of the buffer)
    - PLAY <-> PAUSE
    - PENDING/PLAY/PAUSE -> STOP (stopped or skipped)
    - PLAY -> END (finished naturally)
    """

    PENDING = "pending"
    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    END = "end"

    @property
    def is_finished(self) -> bool:
        return self in {PlayMode.STOP, PlayMode.END}


class PlayStateChange(Enum):
    """Requested change to the current track's play state."""

    RESUME = "resume"
    PAUSE = "pause"
    TOGGLE_LOOP = "toggle_loop"


class PlayStateResult(Enum):
    """Outcome of a play state change."""

    PLAYING = "playing"
    PAUSED = "paused"
    STARTED_LOOPING = "started_looping"
    STOPPED_LOOPING = "stopped_looping"
    ALREADY_SET = "already_set"


# === Removal conditions ===


@dataclass(frozen=True)
class RemoveAll:
    """Remove every buffered and deferred track."""


@dataclass(frozen=True)
class RemoveDuplicates:
    """Remove every track whose source already appears earlier in the queue."""


@dataclass(frozen=True)
class RemoveIndices:
    """Remove tracks by zero-based position in the combined queue listing."""

    indices: tuple[int, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if any(i < 0 for i in self.indices):
            raise ValueError("Queue positions cannot be negative")


@dataclass(frozen=True)
class RemoveFromUser:
    """Remove every track requested by one user."""

    user_id: int


RemovalCondition = RemoveAll | RemoveDuplicates | RemoveIndices | RemoveFromUser

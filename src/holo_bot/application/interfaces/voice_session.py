"""Port interfaces for a guild's voice connection and the tracks it plays."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from holo_bot.domain.music.value_objects import DEFAULT_VOLUME, PlayMode
from holo_bot.domain.shared.exceptions import TrackStateError
from holo_bot.domain.shared.messages import LogTemplates
from holo_bot.domain.shared.types import DiscordSnowflake, NonEmptyStr

if TYPE_CHECKING:
    from ...domain.music.entities import TrackInfo, TrackMetaData

logger = logging.getLogger(__name__)

EndHandler = Callable[["AudioTrack"], Awaitable[None]]


class AudioTrack(ABC):
    """A resolved, playable track owned by one voice session.

    The base class keeps the play state bookkeeping; adapters implement the
    ``_start``/``_pause``/``_resume``/``_stop``/``_apply_volume`` hooks and call
    :meth:`finish` once the underlying audio source is exhausted. End handlers
    fire exactly once, whether the track ends naturally or is stopped.
    """

    def __init__(self, info: "TrackInfo", *, volume: float = DEFAULT_VOLUME) -> None:
        self.uuid: UUID = uuid4()
        self.info = info
        self.metadata: "TrackMetaData | None" = None
        self._volume = volume
        self._mode = PlayMode.PENDING
        self._looping = False
        self._started = False
        self._end_handlers: list[EndHandler] = []
        self._end_fired = False
        self._end_tasks: set[asyncio.Task[None]] = set()

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def mode(self) -> PlayMode:
        return self._mode

    @property
    def looping(self) -> bool:
        return self._looping

    @property
    def has_ended(self) -> bool:
        return self._end_fired

    def play(self) -> None:
        self._ensure_active("play")
        if self._mode is PlayMode.PLAY:
            return
        if self._started:
            self._resume()
        else:
            self._start()
            self._started = True
        self._mode = PlayMode.PLAY

    def pause(self) -> None:
        self._ensure_active("pause")
        if self._mode is PlayMode.PLAY:
            self._pause()
        self._mode = PlayMode.PAUSE

    def suspend(self) -> None:
        """Pause and give up the audio source while another track takes the head.

        The next :meth:`play` picks up where the track was suspended.
        """
        self.pause()
        if self._started:
            self._suspend()

    def stop(self) -> None:
        self._ensure_active("stop")
        self._mode = PlayMode.STOP
        self._stop()
        self._schedule_finish()

    def set_volume(self, volume: float) -> None:
        self._ensure_active("change the volume of")
        self._apply_volume(volume)
        self._volume = volume

    def enable_loop(self) -> None:
        self._ensure_active("loop")
        self._looping = True

    def disable_loop(self) -> None:
        self._ensure_active("unloop")
        self._looping = False

    def add_end_handler(self, handler: EndHandler) -> None:
        self._end_handlers.append(handler)

    async def finish(self, mode: PlayMode = PlayMode.END) -> None:
        """Mark the track as finished and run its end handlers once."""
        if self._end_fired:
            return
        self._end_fired = True
        if not self._mode.is_finished:
            self._mode = mode

        for handler in list(self._end_handlers):
            try:
                await handler(self)
            except Exception as e:
                logger.exception(LogTemplates.TRACK_END_HANDLER_ERROR, self.info.title, e)

    def _schedule_finish(self, mode: PlayMode = PlayMode.STOP) -> None:
        task = asyncio.get_running_loop().create_task(self.finish(mode))
        self._end_tasks.add(task)
        task.add_done_callback(self._end_tasks.discard)

    def _ensure_active(self, operation: str) -> None:
        if self._mode.is_finished:
            raise TrackStateError(operation, self._mode.value)

    @abstractmethod
    def _start(self) -> None:
        """Begin playback of the underlying audio source."""
        ...

    @abstractmethod
    def _pause(self) -> None:
        ...

    @abstractmethod
    def _resume(self) -> None:
        ...

    @abstractmethod
    def _stop(self) -> None:
        """Halt the underlying audio source; :meth:`finish` is scheduled by the caller."""
        ...

    @abstractmethod
    def _apply_volume(self, volume: float) -> None:
        ...

    def _suspend(self) -> None:
        """Release resources held by a paused source. Sources that can stay paused keep them."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.info.title!r} mode={self._mode.value}>"


class VoiceSession(ABC):
    """Interface for one guild's voice connection.

    ``lock`` guards the critical section in which a track is handed over to
    live playback, shared between the queue and the voice framework.
    """

    def __init__(self, guild_id: DiscordSnowflake) -> None:
        self._guild_id = guild_id
        self._lock = asyncio.Lock()

    @property
    def guild_id(self) -> DiscordSnowflake:
        return self._guild_id

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    @abstractmethod
    async def create_track(self, source: NonEmptyStr) -> AudioTrack:
        """Resolve a source into a playable track.

        Raises:
            TrackResolutionError: If the source cannot be resolved.
        """
        ...

    @abstractmethod
    async def leave(self) -> None:
        """Release the voice channel."""
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        ...

"""Ordered playback buffer of live tracks for one guild."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from ...domain.music.value_objects import PlayMode
from ...domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ..interfaces.voice_session import AudioTrack

logger = logging.getLogger(__name__)

R = TypeVar("R")


class TrackQueue:
    """FIFO of resolved tracks; the head is the one playing.

    A track that finishes is removed and the next head is started. Removal
    by :meth:`skip`, :meth:`stop` or :meth:`modify_queue` happens
    synchronously, so the track's own end notification finds nothing left
    to remove.
    """

    def __init__(self) -> None:
        self._tracks: list[AudioTrack] = []

    def __len__(self) -> int:
        return len(self._tracks)

    def is_empty(self) -> bool:
        return not self._tracks

    def current(self) -> AudioTrack | None:
        return self._tracks[0] if self._tracks else None

    def current_queue(self) -> list[AudioTrack]:
        return list(self._tracks)

    def add(self, track: AudioTrack) -> int:
        """Append ``track`` and start it if it is the new head. Returns its index."""
        self._tracks.append(track)
        track.add_end_handler(self._on_track_end)
        if len(self._tracks) == 1:
            self._start_head()
        return len(self._tracks) - 1

    def skip(self) -> AudioTrack | None:
        """Stop the current track and start the next one."""
        if not self._tracks:
            return None
        track = self._tracks.pop(0)
        if not track.mode.is_finished:
            track.stop()
        self._start_head()
        return track

    def stop(self) -> None:
        """Stop and drop every track."""
        tracks, self._tracks = self._tracks, []
        for track in tracks:
            if not track.mode.is_finished:
                track.stop()

    def pause(self) -> None:
        if current := self.current():
            current.pause()

    def resume(self) -> None:
        if current := self.current():
            current.play()

    def modify_queue(self, func: Callable[[list[AudioTrack]], R]) -> R:
        """Run ``func`` against the underlying list, in place.

        If the head changes, the new head is started and a displaced head that
        is still queued is suspended until it reaches the front again.
        """
        head = self.current()
        result = func(self._tracks)
        if self.current() is not head:
            if head is not None and head in self._tracks and not head.mode.is_finished:
                self._suspend(head)
            self._start_head()
        return result

    def _suspend(self, track: AudioTrack) -> None:
        try:
            track.suspend()
        except Exception as e:
            logger.error(LogTemplates.PLAYBACK_SUSPEND_FAILED, track.info.title, e)

    def _start_head(self) -> None:
        head = self.current()
        # A paused track only sits behind the head after play_now pushed it down.
        if head is None or head.mode not in (PlayMode.PENDING, PlayMode.PAUSE):
            return
        try:
            head.play()
        except Exception as e:
            logger.error(LogTemplates.PLAYBACK_FAILED_START, e)

    async def _on_track_end(self, track: AudioTrack) -> None:
        if track not in self._tracks:
            return
        was_head = self._tracks[0] is track
        self._tracks.remove(track)
        if was_head:
            self._start_head()

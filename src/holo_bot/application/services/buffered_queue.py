"""Buffered per-guild music queue.

A guild keeps at most ``max_queue_length`` resolved tracks live in its
voice session (the buffer); everything beyond that waits unresolved in the
remainder and is pulled in, one item per finished track, as space frees up.

All mutations go through a single event loop task that consumes a bounded
update channel, so the buffer and remainder are only ever touched by that
task. Tracks report their end by sending an update into the same channel.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import UUID

from ...domain.music.entities import (
    EnqueuedItem,
    EnqueueType,
    Listener,
    PlaylistEntry,
    PlaylistRequest,
    QueueItem,
    TrackInfo,
    TrackMetaData,
    TrackMin,
    TrackRequest,
)
from ...domain.music.events import (
    DuplicatesRemoved,
    MusicEvent,
    NowPlaying,
    PlayingNow,
    PlaylistProcessingEnd,
    PlaylistProcessingProgress,
    PlaylistProcessingStart,
    PlayStateChanged,
    QueueCleared,
    QueueError,
    QueueEvent,
    QueueListing,
    QueueShuffled,
    Terminated,
    TrackEnqueued,
    TrackEnqueuedBacklog,
    TrackEnqueuedTop,
    TracksRemoved,
    TracksSkipped,
    UserPurged,
    VolumeChanged,
)
from ...domain.music.value_objects import (
    DEFAULT_VOLUME,
    ESTIMATED_UNBUFFERED_TRACK_SECONDS,
    EVENT_CHANNEL_CAPACITY,
    MAX_PLAYLIST_LENGTH,
    MAX_QUEUE_LENGTH,
    MAX_TRACK_LENGTH,
    UPDATE_CHANNEL_CAPACITY,
    VOLUME_EPSILON,
    PlayMode,
    PlayStateChange,
    PlayStateResult,
    RemovalCondition,
    RemoveAll,
    RemoveDuplicates,
    RemoveFromUser,
    RemoveIndices,
)
from ...domain.shared.exceptions import (
    DomainError,
    PlaylistResolutionError,
    QueueTerminatedError,
    TrackTooLongError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates
from ...domain.shared.types import DiscordSnowflake
from ...utils.reply import format_duration
from .broadcast import EventBroadcaster, Subscription
from .cancellation import CancellationToken
from .track_queue import TrackQueue

if TYPE_CHECKING:
    from ..interfaces.metadata_extractor import MetadataExtractor
    from ..interfaces.voice_session import AudioTrack, VoiceSession

logger = logging.getLogger(__name__)


# === Updates consumed by the event loop ===


def _new_reply() -> asyncio.Future[MusicEvent]:
    return asyncio.get_running_loop().create_future()


@dataclass(slots=True)
class EnqueueRequest:
    request: EnqueueType


@dataclass(slots=True, frozen=True)
class TrackEnded:
    title: str


@dataclass(slots=True, frozen=True)
class ClientConnected:
    user_id: int
    listener: Listener


@dataclass(slots=True, frozen=True)
class ClientDisconnected:
    user_id: int


@dataclass(slots=True, frozen=True)
class Terminate:
    pass


@dataclass(kw_only=True)
class CommandRequest:
    """An update whose result is answered to the caller that sent it."""

    reply: asyncio.Future[MusicEvent] = field(default_factory=_new_reply)


@dataclass
class EnqueueTopRequest(CommandRequest):
    item: EnqueuedItem


@dataclass
class PlayNowRequest(CommandRequest):
    item: EnqueuedItem


@dataclass
class SkipRequest(CommandRequest):
    amount: int


@dataclass
class RemoveRequest(CommandRequest):
    condition: RemovalCondition


@dataclass
class ShuffleRequest(CommandRequest):
    pass


@dataclass
class PlayStateRequest(CommandRequest):
    change: PlayStateChange


@dataclass
class VolumeRequest(CommandRequest):
    volume: float


@dataclass
class NowPlayingRequest(CommandRequest):
    pass


@dataclass
class ShowQueueRequest(CommandRequest):
    pass


QueueUpdate = (
    EnqueueRequest | TrackEnded | ClientConnected | ClientDisconnected | Terminate | CommandRequest
)


# === Public handle ===


class BufferedQueue:
    """Handle to one guild's queue event loop.

    Must be constructed inside a running event loop. The loop runs until
    :meth:`close` is called or the cancellation token it was derived from is
    cancelled; it then stops every buffered track, clears the remainder,
    broadcasts ``Terminated`` and leaves the voice channel.
    """

    def __init__(
        self,
        voice_session: VoiceSession,
        guild_id: DiscordSnowflake,
        extractor: MetadataExtractor,
        *,
        volume: float = DEFAULT_VOLUME,
        max_queue_length: int = MAX_QUEUE_LENGTH,
        max_playlist_length: int = MAX_PLAYLIST_LENGTH,
        max_track_length: timedelta | None = MAX_TRACK_LENGTH,
        update_channel_capacity: int = UPDATE_CHANNEL_CAPACITY,
        event_channel_capacity: int = EVENT_CHANNEL_CAPACITY,
        parent_token: CancellationToken | None = None,
    ) -> None:
        self._guild_id = guild_id
        self._updates: asyncio.Queue[QueueUpdate] = asyncio.Queue(maxsize=update_channel_capacity)
        self._events: EventBroadcaster[QueueEvent] = EventBroadcaster(event_channel_capacity)
        self._token = (parent_token or CancellationToken()).child_token()

        self._handler = _QueueHandler(
            voice_session=voice_session,
            guild_id=guild_id,
            extractor=extractor,
            updates=self._updates,
            events=self._events,
            volume=volume,
            max_queue_length=max_queue_length,
            max_playlist_length=max_playlist_length,
            max_track_length=max_track_length,
            token=self._token,
        )
        self._task = asyncio.get_running_loop().create_task(
            self._handler.run(), name=f"music-queue-{guild_id}"
        )

    @property
    def guild_id(self) -> DiscordSnowflake:
        return self._guild_id

    @property
    def is_closed(self) -> bool:
        return self._token.is_cancelled or self._task.done()

    @property
    def receiver_count(self) -> int:
        return self._events.receiver_count

    def subscribe(self) -> Subscription[QueueEvent]:
        """Subscribe to broadcast queue events."""
        return self._events.subscribe()

    def close(self) -> None:
        """Request shutdown; the loop terminates on its next iteration."""
        self._token.cancel()

    async def wait_closed(self) -> None:
        await asyncio.wait({self._task})

    async def enqueue(self, request: EnqueueType) -> None:
        """Submit a track or playlist request.

        Only waits on channel backpressure; progress is reported through
        broadcast events.

        Raises:
            QueueTerminatedError: If the event loop has already exited.
        """
        await self._send(EnqueueRequest(request))

    async def enqueue_top(self, item: EnqueuedItem) -> MusicEvent:
        return await self._request(EnqueueTopRequest(item=item))

    async def play_now(self, item: EnqueuedItem) -> MusicEvent:
        return await self._request(PlayNowRequest(item=item))

    async def skip(self, amount: int = 1) -> MusicEvent:
        return await self._request(SkipRequest(amount=max(amount, 0)))

    async def remove(self, condition: RemovalCondition) -> MusicEvent:
        return await self._request(RemoveRequest(condition=condition))

    async def shuffle(self) -> MusicEvent:
        return await self._request(ShuffleRequest())

    async def set_play_state(self, change: PlayStateChange) -> MusicEvent:
        return await self._request(PlayStateRequest(change=change))

    async def set_volume(self, volume: float) -> MusicEvent:
        return await self._request(VolumeRequest(volume=volume))

    async def now_playing(self) -> MusicEvent:
        return await self._request(NowPlayingRequest())

    async def show(self) -> MusicEvent:
        return await self._request(ShowQueueRequest())

    async def client_connected(self, user_id: int, name: str, colour: int = 0) -> None:
        """Record a member who joined the voice channel, for queue listings."""
        await self._send(ClientConnected(user_id, Listener(name=name, colour=colour)))

    async def client_disconnected(self, user_id: int) -> None:
        await self._send(ClientDisconnected(user_id))

    async def _send(self, update: QueueUpdate) -> None:
        if self.is_closed:
            raise QueueTerminatedError(self._guild_id)
        # Whatever reaches the channel after the loop was told to stop is never dispatched.
        delivered = await self._token.until_cancelled(self._updates.put(update))
        if not delivered or self.is_closed:
            raise QueueTerminatedError(self._guild_id)

    async def _request(self, update: CommandRequest) -> MusicEvent:
        await self._send(update)
        await asyncio.wait({update.reply, self._task}, return_when=asyncio.FIRST_COMPLETED)
        if update.reply.done() and not update.reply.cancelled():
            return update.reply.result()
        raise QueueTerminatedError(self._guild_id, ErrorMessages.QUEUE_REQUEST_DROPPED)

    def __repr__(self) -> str:
        state = "closed" if self.is_closed else "running"
        return f"<BufferedQueue guild={self._guild_id} {state}>"


# === Event loop ===


class _QueueHandler:
    """State owned exclusively by one guild's event loop task."""

    def __init__(
        self,
        *,
        voice_session: VoiceSession,
        guild_id: DiscordSnowflake,
        extractor: MetadataExtractor,
        updates: asyncio.Queue[QueueUpdate],
        events: EventBroadcaster[QueueEvent],
        volume: float,
        max_queue_length: int,
        max_playlist_length: int,
        max_track_length: timedelta | None,
        token: CancellationToken,
    ) -> None:
        self.buffer = TrackQueue()
        self.remainder: deque[EnqueuedItem] = deque()
        self.listeners: dict[int, Listener] = {}

        self._voice_session = voice_session
        self._guild_id = guild_id
        self._extractor = extractor
        self._updates = updates
        self._events = events
        self._volume = volume
        self._max_queue_length = max_queue_length
        self._max_playlist_length = max_playlist_length
        self._max_track_length = max_track_length
        self._token = token
        self._closed = False

    @property
    def has_room(self) -> bool:
        return len(self.buffer) < self._max_queue_length

    async def run(self) -> None:
        logger.info(LogTemplates.QUEUE_STARTED, self._guild_id)
        cancelled = asyncio.ensure_future(self._token.cancelled())
        try:
            while True:
                update = await self._next_update(cancelled)
                logger.debug(LogTemplates.QUEUE_UPDATE_RECEIVED, type(update).__name__, self._guild_id)

                if isinstance(update, Terminate):
                    self._terminate()
                    break

                await self._dispatch(update)
        finally:
            cancelled.cancel()
            if not self._closed:
                self._terminate()
            self._drop_pending()
            await self._leave_voice()
            logger.info(LogTemplates.QUEUE_TERMINATED, self._guild_id)

    async def _next_update(self, cancelled: asyncio.Future[None]) -> QueueUpdate:
        receive = asyncio.ensure_future(self._updates.get())
        await asyncio.wait({receive, cancelled}, return_when=asyncio.FIRST_COMPLETED)

        if cancelled.done():
            if receive.done():
                self._reject(receive.result())
            else:
                receive.cancel()
            return Terminate()
        return receive.result()

    async def _dispatch(self, update: QueueUpdate) -> None:
        match update:
            case EnqueueRequest(request=request):
                try:
                    await self._enqueue(request)
                except Exception as e:
                    logger.exception(
                        LogTemplates.QUEUE_UPDATE_FAILED, type(update).__name__, self._guild_id, e
                    )
                    self._send_event(QueueError(reason=_reason(e)))

            case TrackEnded():
                try:
                    await self._track_ended()
                except Exception as e:
                    logger.exception(LogTemplates.QUEUE_TRACK_ENDED_ERROR, self._guild_id, e)

            case ClientConnected(user_id=user_id, listener=listener):
                logger.debug(LogTemplates.QUEUE_LISTENER_JOINED, listener.name, self._guild_id)
                self.listeners[user_id] = listener

            case ClientDisconnected(user_id=user_id):
                if (listener := self.listeners.pop(user_id, None)) is not None:
                    logger.debug(LogTemplates.QUEUE_LISTENER_LEFT, listener.name, self._guild_id)
                else:
                    logger.warning(LogTemplates.QUEUE_LISTENER_UNKNOWN, user_id, self._guild_id)

            case CommandRequest():
                try:
                    result = await self._run_command(update)
                except Exception as e:
                    logger.exception(
                        LogTemplates.QUEUE_UPDATE_FAILED, type(update).__name__, self._guild_id, e
                    )
                    result = QueueError(reason=_reason(e))
                if not update.reply.done():
                    update.reply.set_result(result)

    async def _run_command(self, update: CommandRequest) -> MusicEvent:
        match update:
            case EnqueueTopRequest(item=item):
                return await self._enqueue_top(item)
            case PlayNowRequest(item=item):
                return await self._play_now(item)
            case SkipRequest(amount=amount):
                return self._skip(amount)
            case RemoveRequest(condition=condition):
                return self._remove(condition)
            case ShuffleRequest():
                return self._shuffle()
            case PlayStateRequest(change=change):
                return self._change_play_state(change)
            case VolumeRequest(volume=volume):
                return self._change_volume(volume)
            case NowPlayingRequest():
                return self._now_playing()
            case ShowQueueRequest():
                return await self._show_queue()
            case _:
                raise TypeError(f"Unknown queue command: {update!r}")

    # --- lifecycle ---

    def _terminate(self) -> None:
        self._closed = True
        self.buffer.stop()
        self.remainder.clear()
        self._send_event(Terminated())
        self._events.close()

    def _reject(self, update: QueueUpdate) -> None:
        logger.debug(LogTemplates.QUEUE_LATE_UPDATE, type(update).__name__, self._guild_id)
        if isinstance(update, CommandRequest) and not update.reply.done():
            update.reply.cancel()

    def _drop_pending(self) -> None:
        while not self._updates.empty():
            self._reject(self._updates.get_nowait())

    async def _leave_voice(self) -> None:
        try:
            await self._voice_session.leave()
        except Exception as e:
            logger.error(LogTemplates.VOICE_LEAVE_FAILED, self._guild_id, e)

    # --- enqueueing ---

    async def _enqueue(self, request: EnqueueType) -> None:
        match request:
            case TrackRequest(item=item):
                if self.has_room:
                    await self._try_buffer(item, self._remaining_seconds())
                else:
                    self._defer(item)
            case PlaylistRequest(item=item):
                await self._enqueue_playlist(item)

    async def _enqueue_playlist(self, request: EnqueuedItem) -> None:
        try:
            playlist = await self._extractor.resolve_playlist(request.source)
        except PlaylistResolutionError as e:
            logger.warning(LogTemplates.QUEUE_TRACK_DROPPED, request.source, self._guild_id, e.message)
            self._send_event(QueueError(reason=e.message))
            return

        video_count = min(playlist.video_count, self._max_playlist_length)
        logger.info(LogTemplates.QUEUE_PLAYLIST_START, playlist.title, video_count, self._guild_id)
        self._send_event(
            PlaylistProcessingStart(
                title=playlist.title,
                description=playlist.description or None,
                uploader=playlist.uploader,
                unlisted=playlist.unlisted,
                views=playlist.view_count,
                video_count=video_count,
            )
        )

        wait_seconds = self._remaining_seconds()
        buffered = deferred = failed = 0
        index = 0
        try:
            async for entry in playlist.entries:
                if index >= self._max_playlist_length:
                    break
                index += 1

                if reason := self._reject_entry(index, entry):
                    logger.info(LogTemplates.QUEUE_PLAYLIST_ENTRY_FAILED, index, self._guild_id, reason)
                    self._send_event(QueueError(reason=reason))
                    failed += 1
                    continue

                self._send_event(
                    PlaylistProcessingProgress(
                        index=index,
                        title=entry.title,
                        artist=entry.uploader or "Unknown Artist",
                        length_seconds=entry.duration_seconds or 0,
                        thumbnail_url=entry.thumbnail_url,
                    )
                )

                item = EnqueuedItem(source=entry.source_url, metadata=request.metadata)
                if not self.has_room:
                    self._defer(item)
                    deferred += 1
                elif track := await self._try_buffer(item, wait_seconds):
                    buffered += 1
                    wait_seconds += track.length_seconds
                else:
                    failed += 1
        except Exception as e:
            logger.exception(LogTemplates.QUEUE_UPDATE_FAILED, "playlist entries", self._guild_id, e)
            self._send_event(QueueError(reason=ErrorMessages.PLAYLIST_ENTRIES_FAILED.format(reason=e)))

        self._send_event(PlaylistProcessingEnd())
        logger.info(LogTemplates.QUEUE_PLAYLIST_END, self._guild_id, buffered, deferred, failed)

    def _reject_entry(self, index: int, entry: PlaylistEntry) -> str | None:
        if entry.error is not None:
            return ErrorMessages.PLAYLIST_ENTRY_UNAVAILABLE.format(index=index, reason=entry.error)
        if self._is_too_long(entry.duration_seconds):
            return TrackTooLongError(
                entry.title,
                format_duration(entry.duration_seconds),
                format_duration(self._limit_seconds()),
            ).message
        return None

    def _defer(self, item: EnqueuedItem) -> None:
        self.remainder.append(item)
        logger.debug(
            LogTemplates.QUEUE_TRACK_BACKLOGGED, item.source, len(self.remainder), self._guild_id
        )
        self._send_event(TrackEnqueuedBacklog(source=item.source))

    async def _try_buffer(self, item: EnqueuedItem, wait_seconds: int) -> TrackMin | None:
        """Buffer ``item``, reporting a failure as a ``QueueError`` event instead of raising."""
        try:
            track = await self._buffer_item(item)
        except DomainError as e:
            logger.warning(LogTemplates.QUEUE_TRACK_DROPPED, item.source, self._guild_id, e.message)
            self._send_event(QueueError(reason=e.message))
            return None

        self._send_event(TrackEnqueued(track=track, wait_seconds=wait_seconds))
        return track

    async def _buffer_item(self, item: EnqueuedItem) -> TrackMin:
        """Resolve ``item`` and hand it to the voice session as a buffered track.

        Raises:
            TrackResolutionError: If the source cannot be resolved.
            TrackTooLongError: If the resolved track exceeds the length limit.
            DomainError: If the volume cannot be applied.
        """
        track = await self._voice_session.create_track(item.source)
        self._check_length(track.info)

        try:
            track.set_volume(self._volume)
        except Exception as e:
            logger.error(LogTemplates.QUEUE_VOLUME_SET_FAILED, track.info.title, self._guild_id, e)
            try:
                track.stop()
            except Exception as stop_error:
                logger.error(LogTemplates.QUEUE_STOP_FAILED, track.info.title, self._guild_id, stop_error)
            raise DomainError(
                ErrorMessages.VOLUME_CHANGE_FAILED.format(error=e), code="VOLUME_CHANGE_FAILED"
            ) from e

        track.metadata = item.metadata
        async with self._voice_session.lock:
            index = self.buffer.add(track)
            track.add_end_handler(self._on_track_end)

        logger.info(LogTemplates.QUEUE_TRACK_BUFFERED, track.info.title, index, self._guild_id)
        return TrackMin.from_info(index, track.info)

    async def _on_track_end(self, track: AudioTrack) -> None:
        if self._closed:
            logger.debug(LogTemplates.QUEUE_TRACK_ENDED_AFTER_CLOSE, self._guild_id)
            return
        # Nothing drains the channel once the loop stops, so give up on cancellation.
        update = TrackEnded(title=track.info.title)
        await self._token.until_cancelled(self._updates.put(update))

    async def _track_ended(self) -> None:
        # Pull the next playable item; unresolvable ones are dropped so a
        # failure never leaves a free slot while the remainder has items.
        while self.has_room and self.remainder:
            item = self.remainder.popleft()
            try:
                await self._buffer_item(item)
            except DomainError as e:
                logger.warning(LogTemplates.QUEUE_TRACK_DROPPED, item.source, self._guild_id, e.message)
                self._send_event(QueueError(reason=e.message))
                continue
            return

    # --- supplemental commands ---

    async def _enqueue_top(self, item: EnqueuedItem) -> MusicEvent:
        self._make_room()
        track = await self._buffer_item(item)

        if track.index > 1:
            self.buffer.modify_queue(lambda q: q.insert(1, q.pop(track.index)))
            track = track.model_copy(update={"index": 1})

        return TrackEnqueuedTop(track=track)

    async def _play_now(self, item: EnqueuedItem) -> MusicEvent:
        self.buffer.pause()
        self._make_room()
        try:
            track = await self._buffer_item(item)
        except DomainError:
            self.buffer.resume()
            raise

        if track.index > 0:
            self.buffer.modify_queue(lambda q: q.insert(0, q.pop(track.index)))
            track = track.model_copy(update={"index": 0})

        self.buffer.resume()
        return PlayingNow(track=track)

    def _make_room(self) -> None:
        """Push the last buffered track back to the front of the remainder when full."""
        if self.has_room:
            return
        evicted = self.buffer.modify_queue(lambda q: q.pop())
        if evicted.metadata is not None:
            self.remainder.appendleft(
                EnqueuedItem(source=evicted.info.source_url, metadata=evicted.metadata)
            )
        if not evicted.mode.is_finished:
            evicted.stop()

    def _skip(self, amount: int) -> MusicEvent:
        buffer_skip = min(amount, len(self.buffer))
        remainder_skip = min(amount - buffer_skip, len(self.remainder))

        for _ in range(remainder_skip):
            self.remainder.popleft()

        skipped = remainder_skip
        for _ in range(buffer_skip):
            if self.buffer.skip() is not None:
                skipped += 1
        return TracksSkipped(count=skipped)

    def _remove(self, condition: RemovalCondition) -> MusicEvent:
        if isinstance(condition, RemoveAll):
            count = len(self.buffer) + len(self.remainder)
            self.remainder.clear()
            self.buffer.stop()
            return QueueCleared(count=count)

        tracks = self.buffer.current_queue()
        buffer_len = len(tracks)

        match condition:
            case RemoveDuplicates():
                seen: set[str] = set()
                track_ids = set()
                for track in tracks:
                    if track.info.source_url in seen:
                        track_ids.add(track.uuid)
                    seen.add(track.info.source_url)
                positions = set()
                for i, item in enumerate(self.remainder):
                    if item.source in seen:
                        positions.add(i)
                    seen.add(item.source)
            case RemoveIndices(indices=indices):
                track_ids = {tracks[i].uuid for i in indices if i < buffer_len}
                positions = {i - buffer_len for i in indices if i >= buffer_len}
            case RemoveFromUser(user_id=user_id):
                track_ids = {
                    t.uuid for t in tracks if t.metadata is not None and t.metadata.requested_by == user_id
                }
                positions = {i for i, item in enumerate(self.remainder) if item.was_requested_by(user_id)}
            case _:
                raise TypeError(f"Unknown removal condition: {condition!r}")

        count = self._drop(track_ids, positions)

        match condition:
            case RemoveDuplicates():
                return DuplicatesRemoved(count=count)
            case RemoveFromUser(user_id=user_id):
                return UserPurged(user_id=user_id, count=count)
            case _:
                return TracksRemoved(count=count)

    def _drop(self, track_ids: set[UUID], positions: set[int]) -> int:
        removed_items = sum(1 for i in positions if i < len(self.remainder))
        if positions:
            self.remainder = deque(
                item for i, item in enumerate(self.remainder) if i not in positions
            )

        removed_tracks: list[AudioTrack] = []
        if track_ids:

            def extract(queue: list[AudioTrack]) -> None:
                removed_tracks.extend(t for t in queue if t.uuid in track_ids)
                queue[:] = [t for t in queue if t.uuid not in track_ids]

            self.buffer.modify_queue(extract)
            for track in removed_tracks:
                if not track.mode.is_finished:
                    track.stop()

        return removed_items + len(removed_tracks)

    def _shuffle(self) -> MusicEvent:
        if len(self.buffer) <= 2:
            return QueueShuffled()

        shuffled = list(self.remainder)
        random.shuffle(shuffled)
        self.remainder = deque(shuffled)

        def shuffle_upcoming(queue: list[AudioTrack]) -> None:
            upcoming = queue[1:]
            random.shuffle(upcoming)
            queue[1:] = upcoming

        self.buffer.modify_queue(shuffle_upcoming)
        return QueueShuffled()

    def _change_play_state(self, change: PlayStateChange) -> MusicEvent:
        current = self.buffer.current()
        if current is None:
            return QueueError(reason=ErrorMessages.NOTHING_PLAYING)
        if current.mode.is_finished:
            return QueueError(reason=ErrorMessages.TRACK_STATE_CHANGE_FINISHED)

        match change:
            case PlayStateChange.RESUME if current.mode is PlayMode.PAUSE:
                current.play()
                state = PlayStateResult.PLAYING
            case PlayStateChange.PAUSE if current.mode is PlayMode.PLAY:
                current.pause()
                state = PlayStateResult.PAUSED
            case PlayStateChange.TOGGLE_LOOP if not current.looping:
                current.enable_loop()
                state = PlayStateResult.STARTED_LOOPING
            case PlayStateChange.TOGGLE_LOOP:
                current.disable_loop()
                state = PlayStateResult.STOPPED_LOOPING
            case _:
                state = PlayStateResult.ALREADY_SET

        return PlayStateChanged(state=state)

    def _change_volume(self, volume: float) -> MusicEvent:
        if abs(volume - self._volume) <= VOLUME_EPSILON:
            return VolumeChanged(volume=self._volume)

        self._volume = volume
        try:
            for track in self.buffer.current_queue():
                track.set_volume(volume)
        except Exception as e:
            return QueueError(reason=ErrorMessages.VOLUME_CHANGE_FAILED.format(error=e))

        return VolumeChanged(volume=volume)

    def _now_playing(self) -> MusicEvent:
        current = self.buffer.current()
        if current is None:
            return NowPlaying(track=None)
        return NowPlaying(track=TrackMin.from_info(0, current.info))

    async def _show_queue(self) -> MusicEvent:
        items = [
            QueueItem(
                index=i,
                buffered=True,
                source=track.info.source_url,
                metadata=track.metadata,
                **self._requester(track.metadata),
                title=track.info.title,
                artist=track.info.artist,
                length_seconds=track.info.duration_seconds,
                thumbnail_url=track.info.thumbnail_url,
            )
            for i, track in enumerate(self.buffer.current_queue())
        ]

        await self._fetch_remainder_metadata()

        offset = len(items)
        for i, item in enumerate(self.remainder):
            extracted = item.extracted_metadata
            items.append(
                QueueItem(
                    index=offset + i,
                    buffered=False,
                    source=item.source,
                    metadata=item.metadata,
                    **self._requester(item.metadata),
                    title=extracted.title if extracted else None,
                    artist=extracted.uploader if extracted else None,
                    length_seconds=extracted.duration_seconds if extracted else None,
                    thumbnail_url=extracted.thumbnail_url if extracted else None,
                )
            )

        return QueueListing(items=items)

    def _requester(self, metadata: TrackMetaData | None) -> dict[str, object]:
        listener = self.listeners.get(metadata.requested_by) if metadata else None
        if listener is None:
            return {}
        return {"requested_by_name": listener.name, "colour": listener.colour}

    async def _fetch_remainder_metadata(self) -> None:
        missing = [i for i, item in enumerate(self.remainder) if item.extracted_metadata is None]
        if not missing:
            return

        fetched = await asyncio.gather(
            *(self._extractor.fetch_metadata(self.remainder[i].source) for i in missing)
        )
        for i, extracted in zip(missing, fetched):
            if extracted is not None:
                self.remainder[i] = self.remainder[i].with_extracted_metadata(extracted)

    # --- helpers ---

    def _remaining_seconds(self) -> int:
        buffered = sum(t.info.duration_seconds or 0 for t in self.buffer.current_queue())
        return buffered + ESTIMATED_UNBUFFERED_TRACK_SECONDS * len(self.remainder)

    def _limit_seconds(self) -> int:
        return int(self._max_track_length.total_seconds()) if self._max_track_length else 0

    def _is_too_long(self, duration_seconds: int | None) -> bool:
        if self._max_track_length is None or duration_seconds is None:
            return False
        return duration_seconds > self._limit_seconds()

    def _check_length(self, info: TrackInfo) -> None:
        if self._is_too_long(info.duration_seconds):
            raise TrackTooLongError(
                info.title,
                format_duration(info.duration_seconds),
                format_duration(self._limit_seconds()),
            )

    def _send_event(self, event: QueueEvent) -> None:
        # The broadcaster skips the send when nobody is subscribed.
        self._events.send(event)


def _reason(error: Exception) -> str:
    return error.message if isinstance(error, DomainError) else str(error)

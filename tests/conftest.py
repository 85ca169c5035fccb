import asyncio

import pytest
import pytest_asyncio

from holo_bot.application.interfaces.metadata_extractor import MetadataExtractor
from holo_bot.application.interfaces.voice_session import AudioTrack, VoiceSession
from holo_bot.application.services.buffered_queue import BufferedQueue
from holo_bot.domain.music.entities import (
    EnqueuedItem,
    ExtractedMetaData,
    PlaylistEntry,
    PlaylistInfo,
    PlaylistRequest,
    TrackInfo,
    TrackRequest,
)
from holo_bot.domain.music.value_objects import DEFAULT_VOLUME
from holo_bot.domain.shared.exceptions import PlaylistResolutionError, TrackResolutionError

GUILD_ID = 111111111111111111
USER_ID = 222222222222222222
OTHER_USER_ID = 333333333333333333
DEFAULT_DURATION = 180


# ============================================================================
# Fakes
# ============================================================================


class FakeAudioTrack(AudioTrack):
    """Audio track that records the hooks it receives instead of playing audio."""

    def __init__(self, info, *, volume=DEFAULT_VOLUME, fail_volume=False):
        super().__init__(info, volume=volume)
        self.calls: list[str] = []
        self.fail_volume = fail_volume

    def _start(self):
        self.calls.append("start")

    def _pause(self):
        self.calls.append("pause")

    def _resume(self):
        self.calls.append("resume")

    def _stop(self):
        self.calls.append("stop")

    def _suspend(self):
        self.calls.append("suspend")

    def _apply_volume(self, volume):
        if self.fail_volume:
            raise RuntimeError("volume rejected")
        self.calls.append(f"volume:{volume}")


class FakeExtractor(MetadataExtractor):
    """In-memory extractor; every source resolves to a track titled after it."""

    def __init__(self):
        self.failing: set[str] = set()
        self.durations: dict[str, int] = {}
        self.playlists: dict[str, dict] = {}
        self.resolved: list[str] = []
        self.metadata_requests: list[str] = []
        self.entries_pulled = 0

    def add_playlist(self, source, entries, **info):
        self.playlists[source] = {"entries": list(entries), **info}

    async def resolve_track(self, source):
        self.resolved.append(source)
        if source in self.failing:
            raise TrackResolutionError(source, "video unavailable")
        return TrackInfo(
            source_url=source,
            stream_url=f"https://stream.example.com/{source}",
            title=source,
            uploader="Uploader",
            duration_seconds=self.durations.get(source, DEFAULT_DURATION),
        )

    async def resolve_playlist(self, source):
        if source not in self.playlists:
            raise PlaylistResolutionError(source, "playlist could not be read")
        data = dict(self.playlists[source])
        entries = data.pop("entries")
        data.setdefault("video_count", len(entries))
        return PlaylistInfo(source_url=source, entries=self._iter(entries), **data)

    async def _iter(self, entries):
        for entry in entries:
            self.entries_pulled += 1
            yield entry

    async def fetch_metadata(self, source):
        self.metadata_requests.append(source)
        return ExtractedMetaData(
            title=f"Meta {source}",
            uploader="Uploader",
            duration_seconds=self.durations.get(source, DEFAULT_DURATION),
        )

    def is_playlist(self, source):
        return source.startswith("playlist:")


class FakeVoiceSession(VoiceSession):
    """Voice session that creates :class:`FakeAudioTrack` instances."""

    def __init__(self, extractor, guild_id=GUILD_ID):
        super().__init__(guild_id)
        self.extractor = extractor
        self.tracks: list[FakeAudioTrack] = []
        self.fail_volume_for: set[str] = set()
        self.leave_error: Exception | None = None
        self.leave_calls = 0

    async def create_track(self, source):
        info = await self.extractor.resolve_track(source)
        track = FakeAudioTrack(info, fail_volume=source in self.fail_volume_for)
        self.tracks.append(track)
        return track

    async def leave(self):
        self.leave_calls += 1
        if self.leave_error is not None:
            raise self.leave_error

    def is_connected(self):
        return self.leave_calls == 0

    def track(self, title):
        """Return the most recently created track with ``title``."""
        return next(t for t in reversed(self.tracks) if t.info.title == title)


# ============================================================================
# Helpers
# ============================================================================


def track_request(source, user_id=USER_ID):
    return TrackRequest(item=EnqueuedItem.create(source, user_id))


def playlist_request(source, user_id=USER_ID):
    return PlaylistRequest(item=EnqueuedItem.create(source, user_id))


def playlist_entries(*sources, error_at=()):
    return [
        PlaylistEntry(
            source_url=source,
            title=source,
            uploader="Uploader",
            duration_seconds=DEFAULT_DURATION,
            error="Private video" if i in error_at else None,
        )
        for i, source in enumerate(sources, start=1)
    ]


async def settle(queue, rounds=25):
    """Let scheduled track-end tasks run, then wait until the loop has handled them."""
    for _ in range(rounds):
        await asyncio.sleep(0)
    if not queue.is_closed:
        await queue.now_playing()


def buffered_titles(queue):
    return [t.info.title for t in queue._handler.buffer.current_queue()]


def remainder_sources(queue):
    return [item.source for item in queue._handler.remainder]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def voice_session(extractor):
    return FakeVoiceSession(extractor)


@pytest.fixture
def make_track():
    """Factory for standalone fake tracks."""

    def factory(title="Test Track", duration=DEFAULT_DURATION, **kwargs):
        info = TrackInfo(
            source_url=f"https://youtu.be/{title.replace(' ', '_')}",
            stream_url="https://stream.example.com/audio",
            title=title,
            duration_seconds=duration,
        )
        return FakeAudioTrack(info, **kwargs)

    return factory


@pytest_asyncio.fixture
async def make_queue(voice_session, extractor):
    """Factory for buffered queues bound to the fake voice session; closed on teardown."""
    queues: list[BufferedQueue] = []

    def factory(**kwargs):
        queue = BufferedQueue(voice_session, GUILD_ID, extractor, **kwargs)
        queues.append(queue)
        return queue

    yield factory

    for queue in queues:
        queue.close()
    for queue in queues:
        await queue.wait_closed()

"""
Unit Tests for TrackQueue and the AudioTrack play state

Tests for:
- Starting the head track when it is added
- Removing finished tracks and starting the next head
- Skip / stop / modify_queue removing tracks synchronously
- AudioTrack transitions and end handlers firing exactly once
"""

import asyncio

import pytest

from holo_bot.application.services.track_queue import TrackQueue
from holo_bot.domain.music.value_objects import PlayMode
from holo_bot.domain.shared.exceptions import TrackStateError


async def drain_tasks():
    for _ in range(5):
        await asyncio.sleep(0)


# =============================================================================
# AudioTrack Tests
# =============================================================================


class TestAudioTrack:
    """Tests for the shared play state bookkeeping of audio tracks."""

    def test_starts_pending(self, make_track):
        """Should start in PENDING without touching the audio source."""
        track = make_track()
        assert track.mode is PlayMode.PENDING
        assert track.calls == []

    def test_play_then_pause_then_resume(self, make_track):
        """Should start once and resume afterwards."""
        track = make_track()
        track.play()
        track.pause()
        track.play()

        assert track.mode is PlayMode.PLAY
        assert track.calls == ["start", "pause", "resume"]

    def test_play_twice_is_noop(self, make_track):
        """Should not restart an already playing track."""
        track = make_track()
        track.play()
        track.play()

        assert track.calls == ["start"]

    def test_pause_pending_does_not_touch_source(self, make_track):
        """Should mark a pending track paused without pausing the source."""
        track = make_track()
        track.pause()

        assert track.mode is PlayMode.PAUSE
        assert track.calls == []

    @pytest.mark.asyncio
    async def test_stop_fires_end_handlers_once(self, make_track):
        """Should run end handlers once, even if finish is called again."""
        track = make_track()
        ended = []

        async def handler(t):
            ended.append(t)

        track.add_end_handler(handler)
        track.play()
        track.stop()
        await drain_tasks()
        await track.finish()

        assert ended == [track]
        assert track.mode is PlayMode.STOP
        assert track.has_ended

    @pytest.mark.asyncio
    async def test_natural_end_marks_end(self, make_track):
        """Should mark a naturally finished track as END."""
        track = make_track()
        track.play()
        await track.finish()

        assert track.mode is PlayMode.END

    @pytest.mark.asyncio
    async def test_controls_rejected_after_finish(self, make_track):
        """Should refuse playback controls on a finished track."""
        track = make_track()
        track.play()
        await track.finish()

        with pytest.raises(TrackStateError):
            track.play()
        with pytest.raises(TrackStateError):
            track.set_volume(1.0)

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, make_track):
        """Should keep running end handlers after one raises."""
        track = make_track()
        ended = []

        async def broken(t):
            raise RuntimeError("boom")

        async def handler(t):
            ended.append(t)

        track.add_end_handler(broken)
        track.add_end_handler(handler)
        await track.finish()

        assert ended == [track]

    def test_loop_toggle(self, make_track):
        """Should enable and disable looping."""
        track = make_track()
        track.enable_loop()
        assert track.looping
        track.disable_loop()
        assert not track.looping


# =============================================================================
# TrackQueue Tests
# =============================================================================


class TestTrackQueue:
    """Tests for the ordered buffer of live tracks."""

    def test_add_starts_head_only(self, make_track):
        """Should start the first track and leave later ones pending."""
        queue = TrackQueue()
        first, second = make_track("one"), make_track("two")

        assert queue.add(first) == 0
        assert queue.add(second) == 1
        assert first.mode is PlayMode.PLAY
        assert second.mode is PlayMode.PENDING

    @pytest.mark.asyncio
    async def test_finished_head_starts_next(self, make_track):
        """Should remove a finished head and start the following track."""
        queue = TrackQueue()
        first, second = make_track("one"), make_track("two")
        queue.add(first)
        queue.add(second)

        await first.finish()

        assert queue.current_queue() == [second]
        assert second.mode is PlayMode.PLAY

    @pytest.mark.asyncio
    async def test_finished_middle_track_removed(self, make_track):
        """Should remove a finished non-head track without restarting the head."""
        queue = TrackQueue()
        tracks = [make_track(str(i)) for i in range(3)]
        for track in tracks:
            queue.add(track)

        await tracks[1].finish()

        assert queue.current_queue() == [tracks[0], tracks[2]]
        assert tracks[0].calls == ["start"]

    @pytest.mark.asyncio
    async def test_skip_removes_synchronously(self, make_track):
        """Should drop the skipped track before its end notification arrives."""
        queue = TrackQueue()
        first, second = make_track("one"), make_track("two")
        queue.add(first)
        queue.add(second)

        assert queue.skip() is first
        assert queue.current_queue() == [second]
        assert second.mode is PlayMode.PLAY

        await drain_tasks()
        assert queue.current_queue() == [second]

    def test_skip_empty(self):
        """Should return None when nothing is buffered."""
        assert TrackQueue().skip() is None

    @pytest.mark.asyncio
    async def test_stop_clears_all(self, make_track):
        """Should stop every track and empty the queue."""
        queue = TrackQueue()
        tracks = [make_track(str(i)) for i in range(3)]
        for track in tracks:
            queue.add(track)

        queue.stop()

        assert queue.is_empty()
        assert all(t.mode is PlayMode.STOP for t in tracks)

    def test_modify_queue_new_head_started(self, make_track):
        """Should start the new head after an in-place reorder."""
        queue = TrackQueue()
        first, second = make_track("one"), make_track("two")
        queue.add(first)
        queue.add(second)
        first.pause()

        queue.modify_queue(lambda q: q.reverse())

        assert queue.current() is second
        assert second.mode is PlayMode.PLAY

    @pytest.mark.asyncio
    async def test_paused_head_resumed_when_promoted(self, make_track):
        """Should resume a paused track that becomes the head again."""
        queue = TrackQueue()
        first, second = make_track("one"), make_track("two")
        queue.add(first)
        queue.add(second)
        first.pause()
        queue.modify_queue(lambda q: q.reverse())

        queue.skip()

        assert first.mode is PlayMode.PLAY
        assert first.calls == ["start", "pause", "suspend", "resume"]

    def test_displaced_head_suspended(self, make_track):
        """Should pause and suspend a head that another track moved in front of."""
        queue = TrackQueue()
        first, second = make_track("one"), make_track("two")
        queue.add(first)
        queue.add(second)

        queue.modify_queue(lambda q: q.insert(0, q.pop(1)))

        assert first.mode is PlayMode.PAUSE
        assert first.calls == ["start", "pause", "suspend"]
        assert second.calls == ["start"]

    def test_removed_head_not_suspended(self, make_track):
        """Should leave a head that was taken out of the queue to its caller."""
        queue = TrackQueue()
        first, second = make_track("one"), make_track("two")
        queue.add(first)
        queue.add(second)

        queue.modify_queue(lambda q: q.pop(0))

        assert "suspend" not in first.calls
        assert second.mode is PlayMode.PLAY

    def test_pause_and_resume_current(self, make_track):
        """Should pause and resume only the head."""
        queue = TrackQueue()
        first = make_track()
        queue.add(first)

        queue.pause()
        assert first.mode is PlayMode.PAUSE
        queue.resume()
        assert first.mode is PlayMode.PLAY

"""
Unit Tests for the Discord voice session adapter

Tests for:
- DiscordAudioTrack spawning FFmpeg only on start, with UA header and fade-in
- Bridging FFmpeg's after callback back to the event loop
- Restarting looping tracks, finishing on errors
- Releasing and respawning a paused track pushed behind a new head
- DiscordVoiceSession join/leave error handling and track creation
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from holo_bot.application.services.track_queue import TrackQueue
from holo_bot.config.settings import AudioSettings
from holo_bot.domain.music.entities import TrackInfo
from holo_bot.domain.music.value_objects import PlayMode
from holo_bot.infrastructure.discord.adapters.voice_session import (
    ANDROID_USER_AGENT,
    DiscordAudioTrack,
    DiscordVoiceSession,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_voice_client():
    """Voice client whose ``source`` follows what was last played."""
    client = MagicMock()
    client.guild.id = 123
    client.source = None
    client.is_connected.return_value = True
    client.disconnect = AsyncMock()

    def play(source, after=None):
        client.source = source

    client.play.side_effect = play
    return client


@pytest.fixture
def track_info():
    return TrackInfo(
        source_url="https://youtu.be/abc123def45",
        stream_url="https://stream.example.com/audio",
        title="Test Song",
        duration_seconds=200,
    )


@pytest.fixture
def ffmpeg():
    with (
        patch("discord.FFmpegPCMAudio") as mock_ffmpeg,
        patch("discord.PCMVolumeTransformer") as mock_volume,
    ):
        yield mock_ffmpeg, mock_volume


async def make_track(info, voice_client, **kwargs):
    return DiscordAudioTrack(
        info,
        voice_client,
        asyncio.get_running_loop(),
        ffmpeg_options={"before_options": "-reconnect 1", "options": "-vn"},
        **kwargs,
    )


async def run_pending():
    for _ in range(5):
        await asyncio.sleep(0)


# =============================================================================
# DiscordAudioTrack Tests
# =============================================================================


class TestDiscordAudioTrack:
    """Tests for FFmpeg-backed tracks."""

    @pytest.mark.asyncio
    async def test_no_source_until_started(self, track_info, mock_voice_client, ffmpeg):
        """Should not spawn FFmpeg for a pending track."""
        mock_ffmpeg, _ = ffmpeg
        await make_track(track_info, mock_voice_client)

        mock_ffmpeg.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_plays_ffmpeg_source(self, track_info, mock_voice_client, ffmpeg):
        """Should play an FFmpeg source with the Android user agent and a fade-in."""
        mock_ffmpeg, mock_volume = ffmpeg
        track = await make_track(track_info, mock_voice_client, volume=0.3)

        track.play()

        args, kwargs = mock_ffmpeg.call_args
        assert args[0] == "https://stream.example.com/audio"
        assert ANDROID_USER_AGENT in kwargs["before_options"]
        assert kwargs["before_options"].startswith("-reconnect 1")
        assert "afade=t=in" in kwargs["options"]
        mock_volume.assert_called_once_with(mock_ffmpeg.return_value, volume=0.3)
        mock_voice_client.play.assert_called_once()
        assert track.mode is PlayMode.PLAY

    @pytest.mark.asyncio
    async def test_start_failure_finishes_track(self, track_info, mock_voice_client, ffmpeg):
        """Should end the track when the voice client refuses to play."""
        mock_voice_client.play.side_effect = discord.ClientException("Already playing audio.")
        track = await make_track(track_info, mock_voice_client)
        ended = AsyncMock()
        track.add_end_handler(ended)

        track.play()
        await run_pending()

        ended.assert_awaited_once_with(track)
        assert track.has_ended

    @pytest.mark.asyncio
    async def test_missing_stream_url_finishes_track(self, mock_voice_client, ffmpeg):
        """Should end the track without spawning FFmpeg when there is no stream."""
        mock_ffmpeg, _ = ffmpeg
        info = TrackInfo(source_url="https://youtu.be/abc123def45", title="No Stream")
        track = await make_track(info, mock_voice_client)

        track.play()
        await run_pending()

        mock_ffmpeg.assert_not_called()
        assert track.has_ended

    @pytest.mark.asyncio
    async def test_pause_resume_active_source(self, track_info, mock_voice_client, ffmpeg):
        """Should pause and resume the voice client while this track is playing."""
        mock_voice_client.is_playing.return_value = True
        mock_voice_client.is_paused.return_value = True
        track = await make_track(track_info, mock_voice_client)
        track.play()

        track.pause()
        track.play()

        mock_voice_client.pause.assert_called_once()
        mock_voice_client.resume.assert_called_once()

    @pytest.mark.asyncio
    async def test_pause_ignores_foreign_source(self, track_info, mock_voice_client, ffmpeg):
        """Should not pause audio that belongs to another track."""
        mock_voice_client.is_playing.return_value = True
        track = await make_track(track_info, mock_voice_client)
        track.play()
        mock_voice_client.source = MagicMock()

        track.pause()

        mock_voice_client.pause.assert_not_called()

    @pytest.mark.asyncio
    async def test_stop_active_source(self, track_info, mock_voice_client, ffmpeg):
        """Should stop the voice client and report the track as stopped."""
        track = await make_track(track_info, mock_voice_client)
        track.play()

        track.stop()
        await run_pending()

        mock_voice_client.stop.assert_called_once()
        assert track.mode is PlayMode.STOP
        assert track.has_ended

    @pytest.mark.asyncio
    async def test_stop_pending_track(self, track_info, mock_voice_client, ffmpeg):
        """Should not touch the voice client for a track that never started."""
        track = await make_track(track_info, mock_voice_client)

        track.stop()
        await run_pending()

        mock_voice_client.stop.assert_not_called()
        assert track.mode is PlayMode.STOP

    @pytest.mark.asyncio
    async def test_volume_applied_to_source(self, track_info, mock_voice_client, ffmpeg):
        """Should change the volume of the live source."""
        _, mock_volume = ffmpeg
        track = await make_track(track_info, mock_voice_client)
        track.play()

        track.set_volume(1.2)

        assert mock_volume.return_value.volume == 1.2
        assert track.volume == 1.2

    @pytest.mark.asyncio
    async def test_after_callback_finishes_track(self, track_info, mock_voice_client, ffmpeg):
        """Should finish the track once FFmpeg reports the end."""
        track = await make_track(track_info, mock_voice_client)
        ended = AsyncMock()
        track.add_end_handler(ended)
        track.play()

        track._after(track._source, None)
        await run_pending()

        ended.assert_awaited_once_with(track)
        assert track.mode is PlayMode.END

    @pytest.mark.asyncio
    async def test_looping_track_restarts(self, track_info, mock_voice_client, ffmpeg):
        """Should replay a looping track instead of finishing it."""
        track = await make_track(track_info, mock_voice_client)
        track.play()
        track.enable_loop()

        track._after(track._source, None)
        await run_pending()

        assert mock_voice_client.play.call_count == 2
        assert not track.has_ended
        assert track.mode is PlayMode.PLAY

    @pytest.mark.asyncio
    async def test_looping_track_finishes_on_error(self, track_info, mock_voice_client, ffmpeg):
        """Should finish a looping track whose source failed."""
        track = await make_track(track_info, mock_voice_client)
        track.play()
        track.enable_loop()

        track._after(track._source, RuntimeError("stream broke"))
        await run_pending()

        assert mock_voice_client.play.call_count == 1
        assert track.has_ended


# =============================================================================
# Displaced Head Tests
# =============================================================================


class PlayerVoiceClient:
    """Voice client double that follows discord.py's player rules.

    ``play`` only refuses while a source is playing, so a paused player is
    replaced and its source is never cleaned up. ``stop`` ends the player,
    cleans the source up and reports through its ``after`` callback.
    """

    def __init__(self):
        self.guild = MagicMock(id=123)
        self.source = None
        self.replaced = []
        self._after = None
        self._paused = False

    def is_playing(self):
        return self.source is not None and not self._paused

    def is_paused(self):
        return self.source is not None and self._paused

    def play(self, source, *, after=None):
        if self.is_playing():
            raise discord.ClientException("Already playing audio.")
        if self.source is not None:
            self.replaced.append(self.source)
        self.source, self._after, self._paused = source, after, False

    def pause(self):
        self._paused = True

    def resume(self):
        self._paused = False

    def stop(self):
        source, after = self.source, self._after
        self.source, self._after, self._paused = None, None, False
        if source is not None:
            source.cleanup()
            if after is not None:
                after(None)


@pytest.fixture
def distinct_sources():
    """FFmpeg patches that hand out a new source object per spawn."""
    with (
        patch("discord.FFmpegPCMAudio") as mock_ffmpeg,
        patch("discord.PCMVolumeTransformer", side_effect=lambda *a, **k: MagicMock()),
    ):
        yield mock_ffmpeg


class TestDisplacedHead:
    """Tests for a paused head pushed down the queue by a new head."""

    @pytest.fixture
    def player(self):
        return PlayerVoiceClient()

    async def _tracks(self, player):
        first = await make_track(
            TrackInfo(source_url="a", stream_url="https://stream.example.com/a", title="A"),
            player,
        )
        second = await make_track(
            TrackInfo(source_url="b", stream_url="https://stream.example.com/b", title="B"),
            player,
        )
        return first, second

    @pytest.mark.asyncio
    async def test_new_head_does_not_replace_paused_player(self, player, distinct_sources):
        """Should release the paused track's source before the new head plays."""
        first, second = await self._tracks(player)
        queue = TrackQueue()
        queue.add(first)
        queue.pause()
        queue.add(second)

        queue.modify_queue(lambda q: q.insert(0, q.pop(1)))
        await run_pending()

        assert player.replaced == []
        assert player.source is second._source
        assert player.is_playing()
        assert first.mode is PlayMode.PAUSE
        assert not first.has_ended

    @pytest.mark.asyncio
    async def test_displaced_track_plays_again_after_new_head_ends(
        self, player, distinct_sources
    ):
        """Should respawn the displaced track once the track in front of it finishes."""
        first, second = await self._tracks(player)
        queue = TrackQueue()
        queue.add(first)
        queue.pause()
        queue.add(second)
        queue.modify_queue(lambda q: q.insert(0, q.pop(1)))
        await run_pending()

        player.stop()
        await run_pending()

        assert second.has_ended
        assert queue.current() is first
        assert first.mode is PlayMode.PLAY
        assert first._source is not None
        assert player.source is first._source
        assert player.is_playing()
        assert distinct_sources.call_count == 3

    @pytest.mark.asyncio
    async def test_released_source_end_is_ignored(self, player, distinct_sources):
        """Should not finish a suspended track when its released player reports the end."""
        first, _ = await self._tracks(player)
        ended = AsyncMock()
        first.add_end_handler(ended)
        first.play()

        first.suspend()
        await run_pending()

        ended.assert_not_awaited()
        assert player.source is None
        assert first.mode is PlayMode.PAUSE

    @pytest.mark.asyncio
    async def test_resume_seeks_to_suspended_position(self, player, distinct_sources):
        """Should restart FFmpeg at the position the track was suspended at."""
        first, _ = await self._tracks(player)
        first.play()
        first.suspend()
        await run_pending()
        first._offset = 42.5

        first.play()

        assert distinct_sources.call_args.kwargs["before_options"].startswith("-ss 42.50 ")
        assert player.source is first._source


# =============================================================================
# DiscordVoiceSession Tests
# =============================================================================


class TestDiscordVoiceSession:
    """Tests for the guild voice connection."""

    @pytest.fixture
    def mock_channel(self, mock_voice_client):
        channel = MagicMock()
        channel.id = 456
        channel.name = "Music"
        channel.guild.name = "Test Guild"
        channel.connect = AsyncMock(return_value=mock_voice_client)
        return channel

    @pytest.mark.asyncio
    async def test_join_connects_deafened(self, mock_channel, mock_voice_client, extractor):
        """Should connect self-deafened and wrap the voice client."""
        session = await DiscordVoiceSession.join(mock_channel, extractor)

        mock_channel.connect.assert_awaited_once_with(self_deaf=True)
        assert session.guild_id == 123
        assert session.voice_client is mock_voice_client

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            TimeoutError(),
            discord.ClientException("Already connected to a voice channel."),
            discord.Forbidden(MagicMock(status=403), "Missing Permissions"),
        ],
    )
    async def test_join_failure_returns_none(self, mock_channel, extractor, error):
        """Should return None when the connection cannot be made."""
        mock_channel.connect.side_effect = error

        assert await DiscordVoiceSession.join(mock_channel, extractor) is None

    @pytest.mark.asyncio
    async def test_create_track_uses_settings(self, mock_voice_client, extractor):
        """Should resolve the source and apply the configured default volume."""
        session = DiscordVoiceSession(
            mock_voice_client, extractor, AudioSettings(default_volume=0.9)
        )

        track = await session.create_track("https://youtu.be/abc123def45")

        assert isinstance(track, DiscordAudioTrack)
        assert track.info.source_url == "https://youtu.be/abc123def45"
        assert track.volume == 0.9
        assert track.mode is PlayMode.PENDING

    @pytest.mark.asyncio
    async def test_leave_disconnects(self, mock_voice_client, extractor):
        """Should force-disconnect the voice client."""
        session = DiscordVoiceSession(mock_voice_client, extractor)

        await session.leave()

        mock_voice_client.disconnect.assert_awaited_once_with(force=True)

    @pytest.mark.asyncio
    async def test_leave_when_disconnected(self, mock_voice_client, extractor):
        """Should do nothing if already disconnected."""
        mock_voice_client.is_connected.return_value = False
        session = DiscordVoiceSession(mock_voice_client, extractor)

        await session.leave()

        mock_voice_client.disconnect.assert_not_awaited()
        assert not session.is_connected()

    @pytest.mark.asyncio
    async def test_leave_error_logged(self, mock_voice_client, extractor):
        """Should swallow client errors while disconnecting."""
        mock_voice_client.disconnect.side_effect = discord.ClientException("Not connected.")
        session = DiscordVoiceSession(mock_voice_client, extractor)

        await session.leave()

    def test_channel_id(self, mock_voice_client, extractor):
        """Should expose the connected channel's id."""
        mock_voice_client.channel.id = 789
        session = DiscordVoiceSession(mock_voice_client, extractor)

        assert session.channel_id == 789

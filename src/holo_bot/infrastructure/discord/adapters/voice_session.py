"""Discord voice session implementing VoiceSession with FFmpeg-backed tracks."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import TYPE_CHECKING

import discord

from holo_bot.application.interfaces.voice_session import AudioTrack, VoiceSession
from holo_bot.config.settings import AudioSettings
from holo_bot.domain.music.value_objects import DEFAULT_VOLUME, PlayMode
from holo_bot.domain.shared.exceptions import TrackResolutionError
from holo_bot.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ....application.interfaces.metadata_extractor import MetadataExtractor
    from ....domain.music.entities import TrackInfo

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT: float = 10.0
FADE_IN_SECONDS: float = 0.5

# Matches yt-dlp's Android client user-agent to avoid YouTube 403 responses
ANDROID_USER_AGENT = "com.google.android.youtube/19.44.38 (Linux; U; Android 14) gzip"


class DiscordAudioTrack(AudioTrack):
    """A track played through a guild's ``discord.VoiceClient``.

    The FFmpeg source is only spawned when the track starts, so buffered
    tracks waiting behind the head hold no process. FFmpeg's ``after``
    callback runs on the player thread and is bridged back to the event loop.

    A voice client plays one source at a time and replaces a paused player
    when asked to play another, so a suspended track releases its source and
    respawns FFmpeg at the position it reached once it is resumed.
    """

    def __init__(
        self,
        info: TrackInfo,
        voice_client: discord.VoiceClient,
        loop: asyncio.AbstractEventLoop,
        *,
        ffmpeg_options: dict[str, str],
        volume: float = DEFAULT_VOLUME,
    ) -> None:
        super().__init__(info, volume=volume)
        self._voice_client = voice_client
        self._loop = loop
        self._ffmpeg_options = ffmpeg_options
        self._source: discord.PCMVolumeTransformer | None = None
        self._offset = 0.0
        self._playing_since: float | None = None

    @property
    def position(self) -> float:
        """Seconds of audio played so far."""
        if self._playing_since is None:
            return self._offset
        return self._offset + self._loop.time() - self._playing_since

    def _create_source(self, start_at: float = 0.0) -> discord.PCMVolumeTransformer:
        if not self.info.stream_url:
            raise TrackResolutionError(
                self.info.source_url, ErrorMessages.NO_STREAM_URL.format(title=self.info.title)
            )

        # User-Agent must match yt-dlp's Android client to prevent YouTube 403
        base_before_opts = self._ffmpeg_options.get("before_options", "")
        before_opts = f'{base_before_opts} -headers "User-Agent: {ANDROID_USER_AGENT}"'
        if start_at > 0:
            before_opts = f"-ss {start_at:.2f} {before_opts}"
        base_opts = self._ffmpeg_options.get("options", "")
        fade_opts = f'{base_opts} -af "afade=t=in:ss=0:d={FADE_IN_SECONDS}"'

        source = discord.FFmpegPCMAudio(
            self.info.stream_url,
            before_options=before_opts,
            options=fade_opts,
        )
        return discord.PCMVolumeTransformer(source, volume=self.volume)

    def _is_active_source(self) -> bool:
        return self._source is not None and self._voice_client.source is self._source

    def _start(self) -> None:
        self._play_from(0.0)

    def _play_from(self, offset: float) -> None:
        try:
            source = self._create_source(offset)
            self._source = source
            self._voice_client.play(source, after=partial(self._after, source))
        except (discord.ClientException, TrackResolutionError) as e:
            logger.error(LogTemplates.PLAYBACK_FAILED_START, e)
            self._cleanup_source()
            self._schedule_finish(PlayMode.END)
            return
        self._offset = offset
        self._playing_since = self._loop.time()
        logger.info(LogTemplates.PLAYBACK_STARTED, self.info.title, self._voice_client.guild.id)

    def _pause(self) -> None:
        if self._is_active_source() and self._voice_client.is_playing():
            self._voice_client.pause()
        self._offset = self.position
        self._playing_since = None

    def _resume(self) -> None:
        if self._source is None:
            logger.info(
                LogTemplates.PLAYBACK_RESTORED,
                self.info.title,
                self._voice_client.guild.id,
                self._offset,
            )
            self._play_from(self._offset)
        elif self._is_active_source() and self._voice_client.is_paused():
            self._voice_client.resume()
            self._playing_since = self._loop.time()

    def _suspend(self) -> None:
        # The after callback of a released source is ignored by _handle_source_end.
        source, self._source = self._source, None
        if source is None:
            return
        logger.info(
            LogTemplates.PLAYBACK_SUSPENDED, self.info.title, self._voice_client.guild.id, self._offset
        )
        if self._voice_client.source is source:
            self._voice_client.stop()
        else:
            self._release(source)

    def _stop(self) -> None:
        self._playing_since = None
        if self._is_active_source():
            self._voice_client.stop()
        else:
            self._cleanup_source()

    def _apply_volume(self, volume: float) -> None:
        if self._source is not None:
            self._source.volume = volume

    def _after(self, source: discord.AudioSource, error: Exception | None = None) -> None:
        """Runs on the audio player thread once ``source`` is exhausted or stopped."""
        guild_id = self._voice_client.guild.id
        logger.debug(LogTemplates.TRACK_ENDED, guild_id, error)
        if error:
            logger.warning(LogTemplates.PLAYBACK_ERROR, guild_id, error)

        asyncio.run_coroutine_threadsafe(self._handle_source_end(source, error), self._loop)

    async def _handle_source_end(
        self, source: discord.AudioSource, error: Exception | None
    ) -> None:
        if source is not self._source:
            return
        self._source = None
        self._playing_since = None
        if self.has_ended:
            return

        if self.looping and self.mode is PlayMode.PLAY and error is None:
            logger.info(
                LogTemplates.PLAYBACK_LOOP_RESTART, self.info.title, self._voice_client.guild.id
            )
            self._play_from(0.0)
            return

        await self.finish()

    def _cleanup_source(self) -> None:
        source, self._source = self._source, None
        if source is not None:
            self._release(source)

    @staticmethod
    def _release(source: discord.AudioSource) -> None:
        try:
            source.cleanup()
        except Exception as e:
            logger.debug(LogTemplates.FFMPEG_SOURCE_CLEANUP_ERROR, e)


class DiscordVoiceSession(VoiceSession):
    """One guild's live voice connection, plus the extractor used to resolve tracks."""

    def __init__(
        self,
        voice_client: discord.VoiceClient,
        extractor: MetadataExtractor,
        settings: AudioSettings | None = None,
    ) -> None:
        super().__init__(voice_client.guild.id)
        self._voice_client = voice_client
        self._extractor = extractor
        self._settings = settings or AudioSettings()

    @classmethod
    async def join(
        cls,
        channel: discord.VoiceChannel | discord.StageChannel,
        extractor: MetadataExtractor,
        settings: AudioSettings | None = None,
    ) -> DiscordVoiceSession | None:
        """Connect to ``channel`` and wrap the resulting voice client.

        Returns ``None`` when the connection could not be established.
        """
        try:
            async with asyncio.timeout(CONNECT_TIMEOUT):
                voice_client = await channel.connect(self_deaf=True)
        except TimeoutError:
            logger.error(LogTemplates.VOICE_CONNECTION_TIMEOUT, channel.id)
            return None
        except discord.Forbidden:
            logger.error(LogTemplates.VOICE_NO_PERMISSION, channel.id)
            return None
        except discord.ClientException as e:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, e)
            return None

        logger.info(LogTemplates.VOICE_CONNECTED, channel.name, channel.guild.name)
        return cls(voice_client, extractor, settings)

    @property
    def voice_client(self) -> discord.VoiceClient:
        return self._voice_client

    @property
    def channel_id(self) -> int | None:
        channel = self._voice_client.channel
        return channel.id if channel else None

    async def create_track(self, source: str) -> DiscordAudioTrack:
        info = await self._extractor.resolve_track(source)
        return DiscordAudioTrack(
            info,
            self._voice_client,
            asyncio.get_running_loop(),
            ffmpeg_options=self._settings.ffmpeg_options,
            volume=self._settings.default_volume,
        )

    async def leave(self) -> None:
        if not self._voice_client.is_connected():
            return
        try:
            await self._voice_client.disconnect(force=True)
            logger.info(LogTemplates.VOICE_DISCONNECTED, self.guild_id)
        except discord.ClientException as e:
            logger.warning(LogTemplates.VOICE_LEAVE_FAILED, self.guild_id, e)

    def is_connected(self) -> bool:
        return self._voice_client.is_connected()

"""Registry of per-guild music queues."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from ...domain.music.value_objects import DEFAULT_VOLUME
from ...domain.shared.messages import LogTemplates
from ...domain.shared.types import DiscordSnowflake
from .buffered_queue import BufferedQueue
from .cancellation import CancellationToken

if TYPE_CHECKING:
    from ...config.settings import MusicSettings
    from ..interfaces.metadata_extractor import MetadataExtractor
    from ..interfaces.voice_session import VoiceSession

logger = logging.getLogger(__name__)


class MusicData:
    """Owns at most one :class:`BufferedQueue` per guild.

    Every queue's cancellation token is a child of the registry's, so
    :meth:`shutdown` stops all of them at once.
    """

    def __init__(
        self,
        extractor: MetadataExtractor,
        settings: MusicSettings,
        *,
        default_volume: float = DEFAULT_VOLUME,
    ) -> None:
        self._extractor = extractor
        self._settings = settings
        self._default_volume = default_volume
        self._queues: dict[DiscordSnowflake, BufferedQueue] = {}
        self._token = CancellationToken()

    def register_guild(
        self, voice_session: VoiceSession, guild_id: DiscordSnowflake
    ) -> BufferedQueue:
        existing = self._queues.get(guild_id)
        if existing is not None:
            logger.warning(LogTemplates.MUSIC_GUILD_ALREADY_REGISTERED, guild_id)
            return existing

        queue = BufferedQueue(
            voice_session,
            guild_id,
            self._extractor,
            volume=self._default_volume,
            max_queue_length=self._settings.max_queue_length,
            max_playlist_length=self._settings.max_playlist_length,
            max_track_length=self._max_track_length(),
            update_channel_capacity=self._settings.update_channel_capacity,
            event_channel_capacity=self._settings.event_channel_capacity,
            parent_token=self._token,
        )
        self._queues[guild_id] = queue
        logger.info(LogTemplates.MUSIC_GUILD_REGISTERED, guild_id)
        return queue

    def deregister_guild(self, guild_id: DiscordSnowflake) -> BufferedQueue | None:
        """Remove the guild's queue and signal it to shut down."""
        queue = self._queues.pop(guild_id, None)
        if queue is None:
            logger.warning(LogTemplates.MUSIC_GUILD_NOT_REGISTERED, guild_id)
            return None

        queue.close()
        logger.info(LogTemplates.MUSIC_GUILD_DEREGISTERED, guild_id)
        return queue

    def get_queue(self, guild_id: DiscordSnowflake) -> BufferedQueue | None:
        queue = self._queues.get(guild_id)
        if queue is not None and queue.is_closed:
            # The loop exited on its own; forget it so the guild can re-register.
            del self._queues[guild_id]
            return None
        return queue

    def is_guild_registered(self, guild_id: DiscordSnowflake) -> bool:
        return self.get_queue(guild_id) is not None

    @property
    def guild_ids(self) -> list[DiscordSnowflake]:
        return list(self._queues)

    async def shutdown(self) -> None:
        """Close every queue and wait for their loops to exit."""
        queues = list(self._queues.values())
        self._queues.clear()
        logger.info(LogTemplates.MUSIC_SHUTDOWN, len(queues))

        self._token.cancel()
        await asyncio.gather(*(q.wait_closed() for q in queues))

    def _max_track_length(self) -> timedelta | None:
        seconds = self._settings.max_track_length_seconds
        return timedelta(seconds=seconds) if seconds else None

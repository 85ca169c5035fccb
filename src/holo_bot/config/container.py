"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for the extractor, the per-guild queue registry and
the Discord-side notifier. Components are created on-demand and cached for
reuse throughout the application.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.shared.messages import ErrorMessages

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord.ext.commands import Bot

    from ..application.interfaces.metadata_extractor import MetadataExtractor
    from ..application.services.music_data import MusicData
    from ..infrastructure.discord.services.queue_notifier import QueueEventNotifier
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed.
    """

    settings: Settings
    _bot: Bot | None = None

    _extractor: MetadataExtractor | None = None
    _music_data: MusicData | None = None
    _queue_notifier: QueueEventNotifier | None = None

    def set_bot(self, bot: Bot) -> None:
        """Set the Discord bot instance."""
        self._bot = bot

    @property
    def bot(self) -> Bot:
        """Get the Discord bot instance."""
        if self._bot is None:
            raise RuntimeError(ErrorMessages.BOT_NOT_INITIALIZED)
        return self._bot

    @property
    def extractor(self) -> MetadataExtractor:
        """Get the yt-dlp metadata extractor."""
        if self._extractor is None:
            from ..infrastructure.audio.ytdlp_extractor import YtDlpExtractor

            self._extractor = YtDlpExtractor(self.settings.audio)
        return self._extractor

    @property
    def music_data(self) -> MusicData:
        """Get the per-guild music queue registry."""
        if self._music_data is None:
            from ..application.services.music_data import MusicData

            self._music_data = MusicData(
                self.extractor,
                self.settings.music,
                default_volume=self.settings.audio.default_volume,
            )
        return self._music_data

    @property
    def queue_notifier(self) -> QueueEventNotifier:
        """Get the notifier relaying queue events to text channels."""
        if self._queue_notifier is None:
            from ..infrastructure.discord.services.queue_notifier import QueueEventNotifier

            self._queue_notifier = QueueEventNotifier()
        return self._queue_notifier

    async def shutdown(self) -> None:
        """Close every guild queue, then stop relaying their events."""
        if self._music_data is not None:
            await self._music_data.shutdown()

        if self._queue_notifier is not None:
            await self._queue_notifier.shutdown()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)

"""Posts a guild's broadcast queue events into the text channel it was joined from."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING

import discord

from holo_bot.domain.music.events import (
    PlaylistProcessingEnd,
    PlaylistProcessingProgress,
    PlaylistProcessingStart,
    QueueError,
    Terminated,
    TrackEnqueued,
    TrackEnqueuedBacklog,
)
from holo_bot.domain.shared.messages import DiscordUIMessages, LogTemplates
from holo_bot.utils.reply import format_duration, truncate

if TYPE_CHECKING:
    from discord.abc import Messageable

    from ....application.services.broadcast import Subscription
    from ....application.services.buffered_queue import BufferedQueue
    from ....domain.music.events import QueueEvent

logger = logging.getLogger(__name__)

# Playlist progress edits are throttled to stay clear of Discord's rate limits.
PROGRESS_EDIT_INTERVAL = 5
DESCRIPTION_MAX_LENGTH = 200


@dataclass(slots=True)
class _PlaylistProgress:
    start: PlaylistProcessingStart
    message: discord.Message | None = None
    processed: int = 0

    def build_embed(self, *, done: bool = False) -> discord.Embed:
        status = (
            DiscordUIMessages.EVENT_PLAYLIST_DONE.format(processed=self.processed)
            if done
            else DiscordUIMessages.EVENT_PLAYLIST_PROCESSING.format(
                processed=self.processed, total=self.start.video_count
            )
        )
        lines = [status]
        if self.start.description:
            lines.insert(0, truncate(self.start.description, DESCRIPTION_MAX_LENGTH))

        embed = discord.Embed(
            title=DiscordUIMessages.EVENT_PLAYLIST_TITLE.format(title=truncate(self.start.title)),
            description="\n\n".join(lines),
            color=discord.Color.green() if done else discord.Color.blurple(),
        )
        embed.add_field(name="\U0001f464 Uploader", value=self.start.uploader, inline=True)
        embed.add_field(name="\U0001f441\ufe0f Views", value=f"{self.start.views:,}", inline=True)
        if self.start.unlisted:
            embed.set_footer(text="Unlisted")
        return embed


def format_event(event: QueueEvent) -> str | None:
    """Render a single queue event as a chat line. Playlist events are rendered as embeds."""
    match event:
        case TrackEnqueued(track=track, wait_seconds=wait):
            return DiscordUIMessages.EVENT_TRACK_ENQUEUED.format(
                title=truncate(track.title),
                length=format_duration(track.length_seconds),
                wait=format_duration(wait),
            )
        case TrackEnqueuedBacklog(source=source):
            return DiscordUIMessages.EVENT_TRACK_ENQUEUED_BACKLOG.format(source=truncate(source))
        case QueueError(reason=reason):
            return DiscordUIMessages.EVENT_QUEUE_ERROR.format(reason=reason)
        case Terminated():
            return DiscordUIMessages.EVENT_TERMINATED
        case _:
            return None


class QueueEventNotifier:
    """One subscriber task per guild, relaying queue events to a text channel."""

    def __init__(self) -> None:
        self._tasks: dict[int, asyncio.Task[None]] = {}

    def is_running(self, guild_id: int) -> bool:
        task = self._tasks.get(guild_id)
        return task is not None and not task.done()

    def start(self, queue: BufferedQueue, channel: Messageable) -> None:
        """Subscribe to ``queue`` and start relaying its events to ``channel``."""
        self.stop(queue.guild_id)

        subscription = queue.subscribe()
        task = asyncio.get_running_loop().create_task(
            self._run(queue.guild_id, subscription, channel),
            name=f"queue-notifier-{queue.guild_id}",
        )
        self._tasks[queue.guild_id] = task
        # A task cancelled before its first step never reaches its own cleanup.
        task.add_done_callback(partial(self._forget, queue.guild_id, subscription))
        logger.info(LogTemplates.NOTIFIER_STARTED, queue.guild_id, getattr(channel, "id", None))

    def stop(self, guild_id: int) -> None:
        task = self._tasks.pop(guild_id, None)
        if task is not None and not task.done():
            task.cancel()

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _forget(
        self, guild_id: int, subscription: Subscription[QueueEvent], task: asyncio.Task[None]
    ) -> None:
        subscription.close()
        if self._tasks.get(guild_id) is task:
            del self._tasks[guild_id]

    async def _run(
        self, guild_id: int, subscription: Subscription[QueueEvent], channel: Messageable
    ) -> None:
        playlist: _PlaylistProgress | None = None
        async for event in subscription:
            match event:
                case PlaylistProcessingStart():
                    playlist = _PlaylistProgress(start=event)
                    playlist.message = await self._send(
                        guild_id, channel, embed=playlist.build_embed()
                    )
                case PlaylistProcessingProgress() if playlist is not None:
                    playlist.processed += 1
                    if playlist.processed % PROGRESS_EDIT_INTERVAL == 0:
                        await self._edit(guild_id, playlist)
                case PlaylistProcessingEnd() if playlist is not None:
                    await self._edit(guild_id, playlist, done=True)
                    playlist = None
                case TrackEnqueued() | TrackEnqueuedBacklog() if playlist is not None:
                    # Summarised by the playlist embed.
                    continue
                case _:
                    if content := format_event(event):
                        await self._send(guild_id, channel, content=content)

    @staticmethod
    async def _send(
        guild_id: int,
        channel: Messageable,
        *,
        content: str | None = None,
        embed: discord.Embed | None = None,
    ) -> discord.Message | None:
        try:
            if embed is not None:
                return await channel.send(embed=embed)
            return await channel.send(content)
        except discord.HTTPException as e:
            logger.warning(LogTemplates.NOTIFIER_SEND_FAILED, guild_id, e)
            return None

    @staticmethod
    async def _edit(guild_id: int, playlist: _PlaylistProgress, *, done: bool = False) -> None:
        if playlist.message is None:
            return
        try:
            await playlist.message.edit(embed=playlist.build_embed(done=done))
        except discord.HTTPException as e:
            logger.warning(LogTemplates.NOTIFIER_EDIT_FAILED, guild_id, e)

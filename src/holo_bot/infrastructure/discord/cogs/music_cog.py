"""Slash-command music cog delegating to the guild's buffered queue."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from holo_bot.domain.music.entities import EnqueuedItem, PlaylistRequest, TrackRequest
from holo_bot.domain.music.events import (
    DuplicatesRemoved,
    NowPlaying,
    PlayingNow,
    PlayStateChanged,
    QueueCleared,
    QueueError,
    QueueListing,
    QueueShuffled,
    TrackEnqueuedTop,
    TracksRemoved,
    TracksSkipped,
    UserPurged,
    VolumeChanged,
)
from holo_bot.domain.music.value_objects import (
    PlayStateChange,
    PlayStateResult,
    RemoveAll,
    RemoveDuplicates,
    RemoveFromUser,
    RemoveIndices,
)
from holo_bot.domain.shared.exceptions import QueueTerminatedError
from holo_bot.domain.shared.messages import DiscordUIMessages, LogTemplates
from holo_bot.infrastructure.discord.adapters.voice_session import DiscordVoiceSession
from holo_bot.infrastructure.discord.guards.voice_guards import (
    get_listener_queue,
    get_queue,
    get_voice_channel,
    send_ephemeral,
)
from holo_bot.utils.reply import format_duration, parse_positions, truncate

if TYPE_CHECKING:
    from ....application.services.buffered_queue import BufferedQueue
    from ....config.container import Container
    from ....domain.music.entities import QueueItem, TrackMin
    from ....domain.music.events import MusicEvent

logger = logging.getLogger(__name__)

QUEUE_PER_PAGE = 10

_PLAY_STATE_MESSAGES: dict[PlayStateResult, str] = {
    PlayStateResult.PLAYING: DiscordUIMessages.ACTION_RESUMED,
    PlayStateResult.PAUSED: DiscordUIMessages.ACTION_PAUSED,
    PlayStateResult.STARTED_LOOPING: DiscordUIMessages.ACTION_STARTED_LOOPING,
    PlayStateResult.STOPPED_LOOPING: DiscordUIMessages.ACTION_STOPPED_LOOPING,
    PlayStateResult.ALREADY_SET: DiscordUIMessages.ACTION_STATE_ALREADY_SET,
}


def describe_result(event: MusicEvent) -> str:
    """Render a command result as the reply shown to the invoking user."""
    match event:
        case TrackEnqueuedTop(track=track):
            return DiscordUIMessages.EVENT_TRACK_ENQUEUED_TOP.format(title=truncate(track.title))
        case PlayingNow(track=track):
            return DiscordUIMessages.EVENT_PLAYING_NOW.format(title=truncate(track.title))
        case TracksSkipped(count=count):
            return DiscordUIMessages.ACTION_SKIPPED.format(count=count)
        case QueueCleared(count=count):
            return DiscordUIMessages.ACTION_QUEUE_CLEARED.format(count=count)
        case TracksRemoved(count=count):
            return DiscordUIMessages.ACTION_TRACKS_REMOVED.format(count=count)
        case DuplicatesRemoved(count=count):
            return DiscordUIMessages.ACTION_DUPLICATES_REMOVED.format(count=count)
        case UserPurged(user_id=user_id, count=count):
            return DiscordUIMessages.ACTION_USER_PURGED.format(user_id=user_id, count=count)
        case QueueShuffled():
            return DiscordUIMessages.ACTION_SHUFFLED
        case PlayStateChanged(state=state):
            return _PLAY_STATE_MESSAGES[state]
        case VolumeChanged(volume=volume):
            return DiscordUIMessages.ACTION_VOLUME_CHANGED.format(volume=round(volume * 100))
        case NowPlaying(track=None):
            return DiscordUIMessages.STATE_NOTHING_PLAYING
        case QueueError(reason=reason):
            return DiscordUIMessages.EVENT_QUEUE_ERROR.format(reason=reason)
        case _:
            return DiscordUIMessages.ERROR_OCCURRED.format(error=type(event).__name__)


def build_now_playing_embed(track: TrackMin) -> discord.Embed:
    embed = discord.Embed(
        title=DiscordUIMessages.EMBED_NOW_PLAYING,
        description=f"**{truncate(track.title)}**",
        color=discord.Color.green(),
    )
    if track.thumbnail_url:
        embed.set_thumbnail(url=track.thumbnail_url)

    embed.add_field(
        name="\u23f1\ufe0f Duration",
        value=format_duration(track.length_seconds),
        inline=True,
    )
    embed.add_field(name="\U0001f464 Artist", value=truncate(track.artist, 64), inline=True)
    return embed


def _format_queue_item(item: QueueItem) -> tuple[str, str]:
    title = truncate(item.title or item.source)
    details = [format_duration(item.length_seconds)]
    if item.artist:
        details.append(truncate(item.artist, 40))
    if item.requested_by_name:
        details.append(truncate(item.requested_by_name, 32))
    elif item.metadata is not None:
        details.append(f"<@{item.metadata.requested_by}>")
    if not item.buffered:
        details.append("not loaded yet")
    return f"{item.index + 1}. {title}", " | ".join(details)


def build_queue_embed(listing: QueueListing, page: int) -> discord.Embed:
    total = len(listing.items)
    total_pages = max(1, math.ceil(total / QUEUE_PER_PAGE))
    page = max(1, min(page, total_pages))
    start_idx = (page - 1) * QUEUE_PER_PAGE
    shown = listing.items[start_idx : start_idx + QUEUE_PER_PAGE]

    # Coloured after the first requester on the page with a role colour.
    colour = next((item.colour for item in shown if item.colour), None)
    embed = discord.Embed(
        title=DiscordUIMessages.EMBED_QUEUE.format(
            total_tracks=total, page=page, total_pages=total_pages
        ),
        color=discord.Color(colour) if colour else discord.Color.blurple(),
    )

    for item in shown:
        name, value = _format_queue_item(item)
        embed.add_field(name=name, value=value, inline=False)

    known = sum(i.length_seconds or 0 for i in listing.items)
    if known:
        embed.set_footer(text=f"Total duration: {format_duration(known)}")
    return embed


class MusicCog(commands.GroupCog, group_name="music", group_description="Music playback."):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container
        super().__init__()

    async def cog_unload(self) -> None:
        await self.container.queue_notifier.shutdown()

    async def _listener_queue(self, interaction: discord.Interaction) -> BufferedQueue | None:
        guarded = await get_listener_queue(interaction, self.container.music_data)
        return guarded[1] if guarded else None

    async def _enqueued_item(
        self, interaction: discord.Interaction, query: str
    ) -> tuple[BufferedQueue, EnqueuedItem] | None:
        guarded = await get_listener_queue(interaction, self.container.music_data)
        if guarded is None:
            return None
        member, queue = guarded
        return queue, EnqueuedItem.create(query.strip(), member.id)

    async def _reply(
        self,
        interaction: discord.Interaction,
        content: str | None = None,
        *,
        embed: discord.Embed | None = None,
        ephemeral: bool = False,
    ) -> None:
        kwargs: dict = {"ephemeral": ephemeral}
        if embed is not None:
            kwargs["embed"] = embed
        if interaction.response.is_done():
            await interaction.followup.send(content, **kwargs)
        else:
            await interaction.response.send_message(content, **kwargs)

    async def _run(self, interaction: discord.Interaction, result: MusicEvent) -> None:
        await self._reply(
            interaction, describe_result(result), ephemeral=isinstance(result, QueueError)
        )

    # ─────────────────────────────────────────────────────────────────
    # Voice
    # ─────────────────────────────────────────────────────────────────

    @app_commands.command(name="join", description="Join your voice channel.")
    async def join(self, interaction: discord.Interaction) -> None:
        channel = await get_voice_channel(interaction)
        if channel is None:
            return

        assert interaction.guild is not None

        music_data = self.container.music_data
        if music_data.is_guild_registered(interaction.guild.id):
            await send_ephemeral(interaction, DiscordUIMessages.STATE_ALREADY_JOINED)
            return

        # Defer early because voice connection can exceed the 3-second interaction deadline
        await interaction.response.defer()

        session = await DiscordVoiceSession.join(
            channel, self.container.extractor, self.container.settings.audio
        )
        if session is None:
            await send_ephemeral(interaction, DiscordUIMessages.ERROR_COULD_NOT_JOIN_VOICE)
            return

        queue = music_data.register_guild(session, interaction.guild.id)
        if isinstance(interaction.channel, discord.abc.Messageable):
            self.container.queue_notifier.start(queue, interaction.channel)
        for listener in channel.members:
            if not listener.bot:
                await self._notify_listener(queue, listener, connected=True)

        await interaction.followup.send(DiscordUIMessages.SUCCESS_JOINED.format(channel=channel.name))

    @app_commands.command(name="leave", description="Stop playback and leave the voice channel.")
    async def leave(self, interaction: discord.Interaction) -> None:
        queue = await self._listener_queue(interaction)
        if queue is None:
            return

        self.container.music_data.deregister_guild(queue.guild_id)
        await interaction.response.send_message(DiscordUIMessages.SUCCESS_LEFT, ephemeral=True)

    @commands.Cog.listener()
    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        """Track listeners in the bot's channel and tear the queue down when the bot is disconnected."""
        if self.bot.user is not None and member.id == self.bot.user.id:
            if before.channel is not None and after.channel is None:
                guild_id = member.guild.id
                if self.container.music_data.get_queue(guild_id) is not None:
                    logger.info(LogTemplates.VOICE_BOT_DISCONNECTED, guild_id)
                    self.container.music_data.deregister_guild(guild_id)
            return

        if member.bot:
            return
        queue = self.container.music_data.get_queue(member.guild.id)
        voice_client = member.guild.voice_client
        if queue is None or voice_client is None or voice_client.channel is None:
            return

        channel_id = voice_client.channel.id
        was_listening = before.channel is not None and before.channel.id == channel_id
        is_listening = after.channel is not None and after.channel.id == channel_id
        if was_listening != is_listening:
            await self._notify_listener(queue, member, connected=is_listening)

    async def _notify_listener(
        self, queue: BufferedQueue, member: discord.Member, *, connected: bool
    ) -> None:
        try:
            if connected:
                await queue.client_connected(member.id, member.display_name, member.colour.value)
            else:
                await queue.client_disconnected(member.id)
        except QueueTerminatedError:
            logger.debug(LogTemplates.QUEUE_LISTENER_UPDATE_DROPPED, member.guild.id, member.id)

    # ─────────────────────────────────────────────────────────────────
    # Enqueueing
    # ─────────────────────────────────────────────────────────────────

    @app_commands.command(name="play", description="Queue a song or playlist by URL or search.")
    @app_commands.describe(query="YouTube URL, video/playlist ID or search query")
    async def play(self, interaction: discord.Interaction, query: str) -> None:
        prepared = await self._enqueued_item(interaction, query)
        if prepared is None:
            return
        queue, item = prepared

        if self.container.extractor.is_playlist(item.source):
            request: TrackRequest | PlaylistRequest = PlaylistRequest(item=item)
            message = DiscordUIMessages.SUCCESS_PLAYLIST_QUEUED
        else:
            request = TrackRequest(item=item)
            message = DiscordUIMessages.SUCCESS_REQUEST_QUEUED

        await interaction.response.send_message(message.format(query=truncate(query)))
        await queue.enqueue(request)

    @app_commands.command(name="playtop", description="Queue a song to play next.")
    @app_commands.describe(query="YouTube URL, video ID or search query")
    async def playtop(self, interaction: discord.Interaction, query: str) -> None:
        prepared = await self._enqueued_item(interaction, query)
        if prepared is None:
            return
        queue, item = prepared

        await interaction.response.defer()
        await self._run(interaction, await queue.enqueue_top(item))

    @app_commands.command(name="playnow", description="Play a song immediately.")
    @app_commands.describe(query="YouTube URL, video ID or search query")
    async def playnow(self, interaction: discord.Interaction, query: str) -> None:
        prepared = await self._enqueued_item(interaction, query)
        if prepared is None:
            return
        queue, item = prepared

        await interaction.response.defer()
        await self._run(interaction, await queue.play_now(item))

    # ─────────────────────────────────────────────────────────────────
    # Queue management
    # ─────────────────────────────────────────────────────────────────

    @app_commands.command(name="skip", description="Skip one or more tracks.")
    @app_commands.describe(amount="How many tracks to skip")
    async def skip(
        self, interaction: discord.Interaction, amount: app_commands.Range[int, 1, 100] = 1
    ) -> None:
        if queue := await self._listener_queue(interaction):
            await self._run(interaction, await queue.skip(amount))

    @app_commands.command(name="remove", description="Remove tracks by queue position.")
    @app_commands.describe(positions='Positions from /music queue, e.g. "2, 4-6"')
    async def remove(self, interaction: discord.Interaction, positions: str) -> None:
        queue = await self._listener_queue(interaction)
        if queue is None:
            return

        indices = parse_positions(positions)
        if indices is None:
            await send_ephemeral(
                interaction, DiscordUIMessages.ERROR_INVALID_INDICES.format(value=positions)
            )
            return

        await self._run(interaction, await queue.remove(RemoveIndices(indices)))

    @app_commands.command(name="clear", description="Remove every queued track.")
    async def clear(self, interaction: discord.Interaction) -> None:
        if queue := await self._listener_queue(interaction):
            await self._run(interaction, await queue.remove(RemoveAll()))

    @app_commands.command(name="dedupe", description="Remove duplicate tracks from the queue.")
    async def dedupe(self, interaction: discord.Interaction) -> None:
        if queue := await self._listener_queue(interaction):
            await self._run(interaction, await queue.remove(RemoveDuplicates()))

    @app_commands.command(name="purge", description="Remove every track a user added.")
    @app_commands.describe(user="Whose tracks to remove")
    async def purge(self, interaction: discord.Interaction, user: discord.Member) -> None:
        if queue := await self._listener_queue(interaction):
            await self._run(interaction, await queue.remove(RemoveFromUser(user.id)))

    @app_commands.command(name="shuffle", description="Shuffle the upcoming tracks.")
    async def shuffle(self, interaction: discord.Interaction) -> None:
        if queue := await self._listener_queue(interaction):
            await self._run(interaction, await queue.shuffle())

    @app_commands.command(name="queue", description="Show the current queue.")
    @app_commands.describe(page="Page number")
    async def queue(self, interaction: discord.Interaction, page: int = 1) -> None:
        queue = await get_queue(interaction, self.container.music_data)
        if queue is None:
            return

        await interaction.response.defer(ephemeral=True)
        listing = await queue.show()
        if not isinstance(listing, QueueListing):
            await self._run(interaction, listing)
            return
        if not listing.items:
            await self._reply(interaction, DiscordUIMessages.STATE_QUEUE_EMPTY, ephemeral=True)
            return

        await self._reply(interaction, embed=build_queue_embed(listing, page), ephemeral=True)

    # ─────────────────────────────────────────────────────────────────
    # Playback
    # ─────────────────────────────────────────────────────────────────

    @app_commands.command(name="pause", description="Pause the current track.")
    async def pause(self, interaction: discord.Interaction) -> None:
        if queue := await self._listener_queue(interaction):
            await self._run(interaction, await queue.set_play_state(PlayStateChange.PAUSE))

    @app_commands.command(name="resume", description="Resume the current track.")
    async def resume(self, interaction: discord.Interaction) -> None:
        if queue := await self._listener_queue(interaction):
            await self._run(interaction, await queue.set_play_state(PlayStateChange.RESUME))

    @app_commands.command(name="loop", description="Toggle looping of the current track.")
    async def loop(self, interaction: discord.Interaction) -> None:
        if queue := await self._listener_queue(interaction):
            await self._run(interaction, await queue.set_play_state(PlayStateChange.TOGGLE_LOOP))

    @app_commands.command(name="volume", description="Set the playback volume.")
    @app_commands.describe(percent="Volume in percent (0-200)")
    async def volume(
        self, interaction: discord.Interaction, percent: app_commands.Range[int, 0, 200]
    ) -> None:
        if queue := await self._listener_queue(interaction):
            await self._run(interaction, await queue.set_volume(percent / 100))

    @app_commands.command(name="nowplaying", description="Show the current track.")
    async def nowplaying(self, interaction: discord.Interaction) -> None:
        queue = await get_queue(interaction, self.container.music_data)
        if queue is None:
            return

        result = await queue.now_playing()
        if isinstance(result, NowPlaying) and result.track is not None:
            await self._reply(interaction, embed=build_now_playing_embed(result.track))
            return
        await self._run(interaction, result)


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError("Container not found on bot instance")

    await bot.add_cog(MusicCog(bot, container))

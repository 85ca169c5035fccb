"""Reusable guard functions for Discord slash commands.

These are free functions that accept explicit dependencies rather than relying
on a specific cog instance, making them usable from any cog.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord

from holo_bot.domain.shared.messages import DiscordUIMessages

if TYPE_CHECKING:
    from ....application.services.buffered_queue import BufferedQueue
    from ....application.services.music_data import MusicData


async def send_ephemeral(interaction: discord.Interaction, message: str) -> None:
    """Send an ephemeral message, handling both fresh and already-responded interactions."""
    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=True)
    else:
        await interaction.response.send_message(message, ephemeral=True)


async def get_member(interaction: discord.Interaction) -> discord.Member | None:
    """Validate that the interaction comes from a guild member. Returns None with error on failure."""
    if not interaction.guild:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
        return None

    user = interaction.user
    if not isinstance(user, discord.Member):
        await send_ephemeral(interaction, DiscordUIMessages.STATE_VERIFY_VOICE_FAILED)
        return None

    return user


async def get_voice_channel(
    interaction: discord.Interaction,
) -> discord.VoiceChannel | discord.StageChannel | None:
    """Return the member's current voice channel, replying with an error if there is none."""
    member = await get_member(interaction)
    if member is None:
        return None

    if not member.voice or not member.voice.channel:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE)
        return None

    return member.voice.channel


async def get_queue(
    interaction: discord.Interaction, music_data: MusicData
) -> BufferedQueue | None:
    """Return the guild's live queue. Returns None with error when the bot has not joined."""
    if not interaction.guild:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
        return None

    queue = music_data.get_queue(interaction.guild.id)
    if queue is None:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_NOT_IN_VOICE_QUEUE)
        return None

    return queue


async def get_listener_queue(
    interaction: discord.Interaction, music_data: MusicData
) -> tuple[discord.Member, BufferedQueue] | None:
    """Return the member and the guild's queue if the member is in the bot's voice channel.

    Replies with the reason and returns None otherwise.
    """
    member = await get_member(interaction)
    if member is None:
        return None

    if not member.voice or not member.voice.channel:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE)
        return None

    queue = await get_queue(interaction, music_data)
    if queue is None:
        return None

    assert interaction.guild is not None
    voice_client = interaction.guild.voice_client
    if voice_client and voice_client.channel and member.voice.channel.id != voice_client.channel.id:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_MUST_BE_IN_VOICE)
        return None

    return member, queue

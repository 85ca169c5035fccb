"""Guard functions for Discord cogs."""

from holo_bot.infrastructure.discord.guards.voice_guards import (
    get_member,
    get_queue,
    get_voice_channel,
    send_ephemeral,
)

__all__ = [
    "get_member",
    "get_queue",
    "get_voice_channel",
    "send_ephemeral",
]

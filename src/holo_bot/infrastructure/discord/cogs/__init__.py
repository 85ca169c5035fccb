"""Discord cogs - command handlers."""

from holo_bot.infrastructure.discord.cogs.music_cog import MusicCog

__all__ = [
    "MusicCog",
]

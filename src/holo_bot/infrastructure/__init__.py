"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Discord (bot, cogs, voice session, queue notifier)
- Audio (yt-dlp extraction, FFmpeg playback)
"""

from holo_bot.infrastructure.audio.ytdlp_extractor import YtDlpExtractor
from holo_bot.infrastructure.discord.adapters.voice_session import DiscordVoiceSession
from holo_bot.infrastructure.discord.bot import create_bot

__all__ = [
    "create_bot",
    "DiscordVoiceSession",
    "YtDlpExtractor",
]

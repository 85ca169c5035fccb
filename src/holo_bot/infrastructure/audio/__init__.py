"""Audio infrastructure - yt-dlp metadata extraction."""

from holo_bot.infrastructure.audio.models import (
    AudioFormatInfo,
    CacheEntry,
    YtDlpOpts,
    YtDlpPlaylistInfo,
    YtDlpTrackInfo,
)
from holo_bot.infrastructure.audio.ytdlp_extractor import YtDlpExtractor

__all__ = [
    "AudioFormatInfo",
    "CacheEntry",
    "YtDlpExtractor",
    "YtDlpOpts",
    "YtDlpPlaylistInfo",
    "YtDlpTrackInfo",
]

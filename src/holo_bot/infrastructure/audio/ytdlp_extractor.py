"""MetadataExtractor implementation using yt-dlp."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import AsyncIterator
from typing import Any, Final, cast

from yt_dlp import YoutubeDL

from holo_bot.application.interfaces.metadata_extractor import MetadataExtractor
from holo_bot.config.settings import AudioSettings
from holo_bot.domain.music.entities import (
    UNKNOWN_UPLOADER,
    ExtractedMetaData,
    PlaylistEntry,
    PlaylistInfo,
    TrackInfo,
)
from holo_bot.domain.shared.exceptions import PlaylistResolutionError, TrackResolutionError
from holo_bot.domain.shared.messages import ErrorMessages, LogTemplates
from holo_bot.infrastructure.audio.models import (
    CACHE_MAX_SIZE,
    CACHE_TTL,
    LOG_URL_TRUNCATE,
    AudioFormatInfo,
    CacheEntry,
    YtDlpOpts,
    YtDlpPlaylistInfo,
    YtDlpTrackInfo,
)

logger = logging.getLogger(__name__)

SEARCH_PREFIX: Final[str] = "ytsearch1:"

URL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(?:https?://|www\.)")

VIDEO_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_-]{11}$")

PLAYLIST_ID_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:PL|OL|UU|LL|FL|RD)[A-Za-z0-9_-]{10,}$"
)

PLAYLIST_PATTERNS: Final[list[re.Pattern[str]]] = [
    re.compile(r"[?&]list="),
    re.compile(r"/playlist\?"),
    re.compile(r"/sets/"),
]


def normalize_source(source: str) -> str:
    """Turn a URL, bare video/playlist ID or free-text query into something yt-dlp accepts."""
    source = source.strip()
    if URL_PATTERN.match(source) or source.startswith("ytsearch"):
        return source
    if VIDEO_ID_PATTERN.match(source):
        return f"https://youtu.be/{source}"
    if PLAYLIST_ID_PATTERN.match(source):
        return f"https://www.youtube.com/playlist?list={source}"
    return f"{SEARCH_PREFIX}{source}"


def _entry_url(entry: YtDlpTrackInfo) -> str | None:
    if entry.url and URL_PATTERN.match(entry.url):
        return entry.url
    if entry.webpage_url:
        return entry.webpage_url
    if entry.id:
        return f"https://www.youtube.com/watch?v={entry.id}"
    return None


class YtDlpExtractor(MetadataExtractor):
    """Resolves tracks and playlists with yt-dlp, running blocking calls in a thread."""

    def __init__(self, settings: AudioSettings | None = None) -> None:
        self._settings = settings or AudioSettings()
        self._format = self._settings.ytdlp_format or "bestaudio/best"
        self._cache_ttl = self._settings.metadata_cache_ttl_seconds or CACHE_TTL
        self._base_opts = YtDlpOpts(format=self._format)
        self._metadata_cache: dict[str, CacheEntry] = {}

    def _get_opts(self, **overrides: Any) -> YtDlpOpts:
        if overrides:
            return self._base_opts.model_copy(update=overrides)
        return self._base_opts

    def _get_playlist_opts(self) -> YtDlpOpts:
        return self._get_opts(noplaylist=False, extract_flat="in_playlist", ignoreerrors=True)

    # ── blocking helpers ───────────────────────────────────────────────

    def _extract_sync(self, url: str, opts: YtDlpOpts) -> dict[str, Any] | None:
        with YoutubeDL(params=cast(Any, opts.model_dump())) as ydl:
            data = ydl.extract_info(url, download=False)
        return dict(data) if isinstance(data, dict) else None

    def _extract_info_sync(self, url: str) -> YtDlpTrackInfo | None:
        try:
            data = self._extract_sync(url, self._get_opts())
        except Exception:
            logger.exception(LogTemplates.YTDLP_FAILED_EXTRACT_INFO, url[:LOG_URL_TRUNCATE])
            return None

        if data is None:
            return None

        # Search results come back wrapped in a one-entry playlist.
        entries = data.get("entries")
        if isinstance(entries, list):
            data = next((dict(e) for e in entries if isinstance(e, dict)), None)
            if data is None:
                return None

        return YtDlpTrackInfo.model_validate(data)

    def _extract_playlist_sync(self, url: str) -> YtDlpPlaylistInfo | None:
        try:
            data = self._extract_sync(url, self._get_playlist_opts())
        except Exception:
            logger.exception(LogTemplates.YTDLP_FAILED_EXTRACT_PLAYLIST, url[:LOG_URL_TRUNCATE])
            return None

        if data is None or "entries" not in data:
            return None
        return YtDlpPlaylistInfo.model_validate(data)

    # ── MetadataExtractor ──────────────────────────────────────────────

    async def resolve_track(self, source: str) -> TrackInfo:
        url = normalize_source(source)
        info = await asyncio.to_thread(self._extract_info_sync, url)
        if info is None:
            raise TrackResolutionError(source, "no results")

        stream_url = self._extract_stream_url(info)
        if not stream_url:
            logger.warning(LogTemplates.YTDLP_NO_STREAM_URL, info.title)
            raise TrackResolutionError(source, ErrorMessages.NO_STREAM_URL.format(title=info.title))

        return TrackInfo(
            source_url=info.webpage_url or url,
            stream_url=stream_url,
            title=info.title,
            uploader=info.uploader_name,
            duration_seconds=info.duration,
            thumbnail_url=info.thumbnail_url,
        )

    async def resolve_playlist(self, source: str) -> PlaylistInfo:
        url = normalize_source(source)
        if url.startswith(SEARCH_PREFIX):
            raise PlaylistResolutionError(source, "not a playlist URL or ID")

        playlist = await asyncio.to_thread(self._extract_playlist_sync, url)
        if playlist is None:
            raise PlaylistResolutionError(source, "playlist could not be read")

        return PlaylistInfo(
            source_url=url,
            entries=self._iter_entries(playlist.entries),
            title=playlist.title,
            description=playlist.description or None,
            uploader=playlist.uploader or playlist.channel or UNKNOWN_UPLOADER,
            unlisted=playlist.availability == "unlisted",
            view_count=playlist.view_count or 0,
            video_count=playlist.playlist_count or len(playlist.entries),
        )

    async def fetch_metadata(self, source: str) -> ExtractedMetaData | None:
        url = normalize_source(source)
        if url.startswith("ytsearch"):
            return None

        now = time.time()
        cached = self._metadata_cache.get(url)
        if cached is not None:
            if now - cached.cached_at < self._cache_ttl:
                logger.debug(LogTemplates.CACHE_HIT_URL, url[:LOG_URL_TRUNCATE])
                return cached.metadata
            self._metadata_cache.pop(url, None)

        try:
            info = await asyncio.to_thread(self._extract_info_sync, url)
        except Exception as e:
            logger.warning(LogTemplates.YTDLP_FAILED_METADATA, url[:LOG_URL_TRUNCATE], e)
            return None

        metadata = info.to_extracted_metadata() if info is not None else None
        self._store(url, metadata, now)
        return metadata

    def is_playlist(self, source: str) -> bool:
        source = source.strip()
        if PLAYLIST_ID_PATTERN.match(source):
            return True
        return any(pattern.search(source) for pattern in PLAYLIST_PATTERNS)

    # ── helpers ────────────────────────────────────────────────────────

    async def _iter_entries(self, entries: list[YtDlpTrackInfo]) -> AsyncIterator[PlaylistEntry]:
        for entry in entries:
            yield self._to_playlist_entry(entry)

    @staticmethod
    def _to_playlist_entry(entry: YtDlpTrackInfo) -> PlaylistEntry:
        url = _entry_url(entry)
        reason = entry.unavailable_reason
        if url is None:
            reason = reason or "missing URL"
        return PlaylistEntry(
            source_url=url or "unavailable",
            title=entry.title,
            uploader=entry.uploader_name,
            duration_seconds=entry.duration,
            thumbnail_url=entry.thumbnail_url,
            error=reason,
        )

    def _store(self, url: str, metadata: ExtractedMetaData | None, now: float) -> None:
        self._metadata_cache[url] = CacheEntry(metadata=metadata, cached_at=now)
        if len(self._metadata_cache) <= CACHE_MAX_SIZE:
            return

        expired = [
            k
            for k, entry in self._metadata_cache.items()
            if now - entry.cached_at >= self._cache_ttl
        ]
        for k in expired:
            self._metadata_cache.pop(k, None)
        if expired:
            logger.debug(LogTemplates.CACHE_EXPIRED_CLEANED, len(expired))

    def _extract_stream_url(self, info: YtDlpTrackInfo) -> str | None:
        if info.url:
            return info.url
        return self._extract_stream_from_formats(info.formats)

    @staticmethod
    def _extract_stream_from_formats(formats: list[AudioFormatInfo]) -> str | None:
        if not formats:
            return None
        audio_formats = [f for f in formats if f.acodec != "none" and f.url]
        if audio_formats:
            return audio_formats[-1].url
        return None

"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.music.value_objects import (
    DEFAULT_VOLUME,
    EVENT_CHANNEL_CAPACITY,
    MAX_PLAYLIST_LENGTH,
    MAX_QUEUE_LENGTH,
    MAX_TRACK_LENGTH,
    UPDATE_CHANNEL_CAPACITY,
)
from ..domain.shared.messages import ErrorMessages
from ..domain.shared.types import (
    ChannelCapacity,
    MaxPlaylistLength,
    MaxQueueLength,
    SnowflakeIds,
    VolumeFloat,
)


class DiscordSettings(BaseModel):
    """Discord bot configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    token: SecretStr = Field(
        default=SecretStr(""), validation_alias=AliasChoices("token", "bot_token", "discord_token")
    )
    command_prefix: str = Field(
        default="!",
        min_length=1,
        max_length=5,
        validation_alias=AliasChoices("command_prefix", "prefix"),
    )
    owner_ids: SnowflakeIds = Field(
        default_factory=tuple, validation_alias=AliasChoices("owner_ids", "owners")
    )
    test_guild_ids: SnowflakeIds = Field(
        default_factory=tuple, validation_alias=AliasChoices("test_guild_ids", "test_guilds")
    )
    sync_on_startup: bool = False


class AudioSettings(BaseModel):
    """Audio playback configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    default_volume: VolumeFloat = DEFAULT_VOLUME
    ffmpeg_options: dict[str, str] = Field(
        default_factory=lambda: {
            "before_options": "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5",
            "options": "-vn",
        }
    )
    ytdlp_format: str = "bestaudio/best"
    metadata_cache_ttl_seconds: int = Field(
        default=3600, ge=0, validation_alias=AliasChoices("metadata_cache_ttl_seconds", "cache_ttl")
    )


class MusicSettings(BaseModel):
    """Per-guild queue limits."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    max_queue_length: MaxQueueLength = MAX_QUEUE_LENGTH
    max_playlist_length: MaxPlaylistLength = MAX_PLAYLIST_LENGTH
    max_track_length_seconds: int = Field(
        default=int(MAX_TRACK_LENGTH.total_seconds()),
        ge=0,
        validation_alias=AliasChoices("max_track_length_seconds", "max_track_length"),
    )
    """Zero disables the track length limit."""
    update_channel_capacity: ChannelCapacity = UPDATE_CHANNEL_CAPACITY
    event_channel_capacity: ChannelCapacity = EVENT_CHANNEL_CAPACITY


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DISCORD__TOKEN, DISCORD__TEST_GUILD_IDS, etc. (nested with ``__``)
    - AUDIO__DEFAULT_VOLUME, AUDIO__YTDLP_FORMAT
    - MUSIC__MAX_QUEUE_LENGTH, MUSIC__MAX_PLAYLIST_LENGTH, ...
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        strict=True,
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    music: MusicSettings = Field(default_factory=MusicSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels)
            )
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()

"""Annotated Pydantic types shared by the queue's models and settings.

Snowflake fields run through :func:`validate_discord_snowflake`, so a bad
guild or user ID reports the same error wherever it is validated.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BeforeValidator, Field

from holo_bot.domain.shared.validators import validate_discord_snowflake

# ── Discord identifiers ─────────────────────────────────────────────

DiscordSnowflake = Annotated[int, AfterValidator(validate_discord_snowflake)]
"""Guild, user or channel ID: 1 … 2^64-1."""


def _as_tuple(v: object) -> object:
    # JSON arrays from the environment arrive as lists.
    return tuple(v) if isinstance(v, list) else v


SnowflakeIds = Annotated[tuple[DiscordSnowflake, ...], BeforeValidator(_as_tuple)]
"""Tuple of snowflakes; lists are accepted and converted."""


# ── Counts and measurements ─────────────────────────────────────────

NonNegativeInt = Annotated[int, Field(ge=0)]
PositiveInt = Annotated[int, Field(gt=0)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]
NonEmptyStr = Annotated[str, Field(min_length=1)]

VolumeFloat = Annotated[float, Field(ge=0.0, le=2.0)]
"""Volume multiplier; 1.0 is unchanged, 2.0 doubles the amplitude."""

DurationSeconds = Annotated[int, Field(ge=0, le=86_400)]
"""Track length in seconds, at most one day."""


# ── Queue limits ────────────────────────────────────────────────────

MaxQueueLength = Annotated[int, Field(gt=0, le=100)]
"""Tracks buffered ahead of playback per guild: 1 … 100."""

MaxPlaylistLength = Annotated[int, Field(gt=0, le=1000)]
"""Entries taken from one playlist: 1 … 1 000."""

ChannelCapacity = Annotated[int, Field(gt=0, le=1024)]
"""Slots in the queue's update or event channel: 1 … 1 024."""


# ── Timestamps ──────────────────────────────────────────────────────

def _ensure_utc(v: datetime) -> datetime:
    if not isinstance(v, datetime) or v.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return v.astimezone(UTC)


UtcDatetimeField = Annotated[datetime, BeforeValidator(_ensure_utc)]
"""Timezone-aware datetime, normalised to UTC."""

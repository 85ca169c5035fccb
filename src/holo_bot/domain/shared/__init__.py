"""
Shared Domain Kernel

Contains types, messages and exceptions shared across the package.
"""

from holo_bot.domain.shared.exceptions import (
    DomainError,
    InvalidOperationError,
    PlaylistResolutionError,
    QueueTerminatedError,
    TrackResolutionError,
    TrackStateError,
    TrackTooLongError,
)

__all__ = [
    "DomainError",
    "InvalidOperationError",
    "QueueTerminatedError",
    "TrackResolutionError",
    "PlaylistResolutionError",
    "TrackTooLongError",
    "TrackStateError",
]

"""Base exception classes for domain-level errors."""

from __future__ import annotations

from holo_bot.domain.shared.messages import ErrorMessages


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


class QueueTerminatedError(DomainError):
    """Raised when a request is sent to a queue whose event loop has exited."""

    def __init__(self, guild_id: int, message: str | None = None) -> None:
        msg = message or ErrorMessages.QUEUE_TERMINATED.format(guild_id=guild_id)
        super().__init__(msg, code="QUEUE_TERMINATED")
        self.guild_id = guild_id


class TrackResolutionError(DomainError):
    """Raised when a single track cannot be turned into a playable source."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(
            ErrorMessages.TRACK_RESOLUTION_FAILED.format(source=source, reason=reason),
            code="TRACK_RESOLUTION_FAILED",
        )
        self.source = source
        self.reason = reason


class PlaylistResolutionError(DomainError):
    """Raised when a playlist reference itself cannot be resolved."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(
            ErrorMessages.PLAYLIST_RESOLUTION_FAILED.format(source=source, reason=reason),
            code="PLAYLIST_RESOLUTION_FAILED",
        )
        self.source = source
        self.reason = reason


class TrackTooLongError(DomainError):
    """Raised when a resolved track exceeds the maximum allowed length."""

    def __init__(self, title: str, length: str, limit: str) -> None:
        super().__init__(
            ErrorMessages.TRACK_TOO_LONG.format(title=title, length=length, limit=limit),
            code="TRACK_TOO_LONG",
        )
        self.title = title


class TrackStateError(InvalidOperationError):
    """Raised when a playback control is applied to a finished track."""

    def __init__(self, operation: str, current_state: str) -> None:
        super().__init__(
            operation,
            current_state,
            ErrorMessages.TRACK_STATE_INVALID.format(operation=operation),
        )

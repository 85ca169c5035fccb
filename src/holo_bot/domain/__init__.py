"""
Domain Layer

Contains pure types and rules organized by bounded contexts:
- shared/: Cross-cutting types, messages and exceptions
- music/: Requested items, resolved tracks, queue events and limits
"""

from holo_bot.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]

"""
Error taxonomy for the review engine.

Every core operation either completes or raises one of these. Scheduling math
never raises: out-of-range values are clamped where they are computed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import QuotaUsage


class LexoraError(Exception):
    """Base class for all engine errors."""


class NotFound(LexoraError):
    """Unknown card or word."""


class InvalidRating(LexoraError):
    """Rating outside the again/hard/good/easy set."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid rating: {value!r}. Expected one of again, hard, good, easy.")


class QuotaExceeded(LexoraError):
    """
    New-word admission (or document size) denied by the tier quota.

    Reviewing known cards never raises this.
    """

    def __init__(self, message: str, usage: QuotaUsage | None = None):
        self.usage = usage
        super().__init__(message)


class StoreUnavailable(LexoraError):
    """Transient storage or collaborator failure. Safe to retry with backoff."""


class ConcurrentModification(LexoraError):
    """Version mismatch on write. The caller must reload and retry."""

    def __init__(self, user_id: str, word_id: str, expected: int | None, actual: int | None):
        self.user_id = user_id
        self.word_id = word_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Card ({user_id}, {word_id}) changed concurrently: "
            f"expected version {expected}, found {actual}"
        )

"""
Domain models for card scheduling and quota accounting.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .constants import UNLIMITED
from .errors import InvalidRating


class QueueState(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEWING = "reviewing"


class DifficultyRating(str, Enum):
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @classmethod
    def parse(cls, value: "str | DifficultyRating") -> "DifficultyRating":
        """Validate a raw rating before it reaches the scheduler."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidRating(value)


class Tier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


@dataclass(frozen=True)
class CardState:
    """
    Learning record for one user x word.

    Attributes:
        id: Sortable ULID; breaks ties between cards due at the same instant.
        interval_days: Time until the next due date, in (fractional) days.
        ease_factor: Multiplier controlling interval growth.
        due_at: Timezone-aware UTC timestamp.
        lapses: Count of "again" ratings since the last graduation.
        reps: Total ratings ever applied.
        version: Bumped by the store on every successful write.
    """

    id: str
    user_id: str
    word_id: str
    queue_state: QueueState
    interval_days: float
    ease_factor: float
    due_at: datetime
    lapses: int = 0
    reps: int = 0
    created_at: datetime | None = None
    last_reviewed_at: datetime | None = None
    version: int = 0

    def is_due(self, now: datetime) -> bool:
        return self.due_at <= now


@dataclass(frozen=True)
class TierLimits:
    """Limits for a subscription tier. -1 means unlimited."""

    daily_limit: int
    max_article_words: int


@dataclass(frozen=True)
class QuotaUsage:
    tier: Tier
    daily_limit: int
    used_today: int
    max_article_words: int

    @property
    def unlimited(self) -> bool:
        return self.daily_limit == UNLIMITED

    @property
    def remaining_today(self) -> int:
        if self.unlimited:
            return UNLIMITED
        return max(0, self.daily_limit - self.used_today)

    @property
    def exhausted(self) -> bool:
        return not self.unlimited and self.remaining_today == 0

    def as_dict(self) -> dict:
        return {
            "tier": self.tier.value,
            "daily_limit": self.daily_limit,
            "used_today": self.used_today,
            "remaining_today": self.remaining_today,
            "max_article_words": self.max_article_words,
        }


@dataclass(frozen=True)
class DailyEntry:
    """One ledger row: counters for a user on a calendar day (user's time zone)."""

    user_id: str
    day_key: str  # ISO date, e.g. "2026-10-18"
    used_today: int = 0
    reviewed_count: int = 0
    correct_count: int = 0


@dataclass(frozen=True)
class WordEntry:
    """Word metadata supplied by the content collaborator."""

    id: str
    word: str
    meaning: str
    pos: str | None = None
    pronunciation: str | None = None
    sentence: str | None = None


@dataclass
class CardSummary:
    id: str
    word_id: str
    word: str
    meaning: str
    type: str  # "new" or "extend"
    queue_state: QueueState
    due_at: datetime
    pronunciation: str | None = None
    pos: str | None = None
    sentence: str | None = None
    learned_meanings: list[str] = field(default_factory=list)


@dataclass
class ReviewBatch:
    cards: list[CardSummary]
    quota: QuotaUsage
    review_only: bool  # New words blocked by the quota

    @property
    def new_count(self) -> int:
        return sum(1 for c in self.cards if c.queue_state == QueueState.NEW)

    @property
    def review_count(self) -> int:
        return len(self.cards) - self.new_count


@dataclass(frozen=True)
class ReviewStats:
    today_due: int
    new_cards: int
    learning: int
    reviewing: int
    total_vocab: int
    completed_today: int
    # Share of today's ratings that were not "again"; None before the first
    accuracy: float | None = None

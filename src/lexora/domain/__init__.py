# Domain Package
from .errors import (
    ConcurrentModification,
    InvalidRating,
    LexoraError,
    NotFound,
    QuotaExceeded,
    StoreUnavailable,
)
from .models import (
    CardState,
    CardSummary,
    DailyEntry,
    DifficultyRating,
    QueueState,
    QuotaUsage,
    ReviewBatch,
    ReviewStats,
    Tier,
    TierLimits,
    WordEntry,
)

__all__ = [
    "CardState",
    "CardSummary",
    "ConcurrentModification",
    "DailyEntry",
    "DifficultyRating",
    "InvalidRating",
    "LexoraError",
    "NotFound",
    "QueueState",
    "QuotaExceeded",
    "QuotaUsage",
    "ReviewBatch",
    "ReviewStats",
    "StoreUnavailable",
    "Tier",
    "TierLimits",
    "WordEntry",
]

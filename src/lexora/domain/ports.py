"""
Ports (interfaces) for storage and external collaborators.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from .models import CardState, DailyEntry, QueueState, Tier, TierLimits, WordEntry


class CardStateRepository(ABC):
    """
    Port for the per-user, per-word learning records.

    Implementations:
        - InMemoryCardStateRepository: process-local dict guarded by a lock.
        - SqliteCardStateRepository: `card_states` table with version CAS.
    """

    @abstractmethod
    async def get(self, user_id: str, word_id: str) -> CardState | None:
        pass

    @abstractmethod
    async def due_before(
        self,
        user_id: str,
        now: datetime,
        limit: int | None = None,
        states: Iterable[QueueState] | None = None,
    ) -> list[CardState]:
        """
        Return cards with due_at <= now.

        Ordered by due_at ascending, ties broken by id ascending.

        Args:
            limit: Maximum number of cards; None returns all.
            states: Optional queue-state filter.
        """
        pass

    @abstractmethod
    async def put(self, state: CardState, expected_version: int | None) -> CardState:
        """
        Atomically replace the full record.

        Args:
            state: The complete new record.
            expected_version: Version the caller read; None when inserting.

        Returns:
            The stored record with its new version.

        Raises:
            ConcurrentModification: The stored version differs from expected_version.
        """
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[CardState]:
        pass


class QuotaLedgerRepository(ABC):
    """
    Port for per-user, per-day counters.

    Rows are append-only in time: a stale write never lands on a day before
    the one holding the user's newest write.
    """

    @abstractmethod
    async def get(self, user_id: str, day_key: str) -> DailyEntry | None:
        pass

    @abstractmethod
    async def increment(
        self,
        user_id: str,
        day_key: str,
        at: datetime,
        used: int = 0,
        reviewed: int = 0,
        correct: int = 0,
    ) -> DailyEntry:
        """
        Atomically add to the counters of the given day, creating the row lazily.

        Args:
            at: Server time of the write, used to detect stale writes.

        A write whose `at` is older than the user's newest write, for a day
        before that write's day, is applied to the newer day instead. Day keys
        alone are not compared: a user's time zone may move west.
        """
        pass


class TierLookup(ABC):
    """Resolves a user's subscription tier. Must not cache across calls."""

    @abstractmethod
    async def get_tier(self, user_id: str) -> Tier:
        pass


class TierPolicy(ABC):
    """Maps a tier to its limits."""

    @abstractmethod
    def limits_for(self, tier: Tier) -> TierLimits:
        pass


class TimezoneLookup(ABC):
    """Resolves the IANA time zone a user's calendar day is computed in."""

    @abstractmethod
    def timezone_for(self, user_id: str) -> str:
        pass


class WordCatalog(ABC):
    """Word metadata and meanings from the content collaborator."""

    @abstractmethod
    def get(self, word_id: str) -> WordEntry | None:
        pass

    @abstractmethod
    def siblings(self, word_id: str) -> list[WordEntry]:
        """Other meanings of the same lemma, excluding word_id itself."""
        pass

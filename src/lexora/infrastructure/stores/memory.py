"""
In-memory repositories.

Records are immutable dataclasses replaced wholesale under a lock, so a
reader always sees either the old or the new record, never a mix.
"""

import threading
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone

from lexora.domain.errors import ConcurrentModification
from lexora.domain.models import CardState, DailyEntry, QueueState
from lexora.domain.ports import CardStateRepository, QuotaLedgerRepository


class InMemoryCardStateRepository(CardStateRepository):
    def __init__(self, cards: Iterable[CardState] = ()):
        self._lock = threading.Lock()
        self._cards: dict[tuple[str, str], CardState] = {}
        for card in cards:
            self._cards[(card.user_id, card.word_id)] = card

    async def get(self, user_id: str, word_id: str) -> CardState | None:
        with self._lock:
            return self._cards.get((user_id, word_id))

    async def due_before(
        self,
        user_id: str,
        now: datetime,
        limit: int | None = None,
        states: Iterable[QueueState] | None = None,
    ) -> list[CardState]:
        now = _aware(now)
        wanted = set(states) if states is not None else None
        with self._lock:
            snapshot = list(self._cards.values())

        due = [
            card
            for card in snapshot
            if card.user_id == user_id
            and card.due_at <= now
            and (wanted is None or card.queue_state in wanted)
        ]
        due.sort(key=lambda card: (card.due_at, card.id))
        return due if limit is None else due[:limit]

    async def put(self, state: CardState, expected_version: int | None) -> CardState:
        key = (state.user_id, state.word_id)
        with self._lock:
            current = self._cards.get(key)
            actual = current.version if current else None
            if actual != expected_version:
                raise ConcurrentModification(state.user_id, state.word_id, expected_version, actual)
            stored = replace(state, version=(actual or 0) + 1)
            self._cards[key] = stored
            return stored

    async def list_for_user(self, user_id: str) -> list[CardState]:
        with self._lock:
            cards = [card for card in self._cards.values() if card.user_id == user_id]
        return sorted(cards, key=lambda card: card.id)


class InMemoryQuotaLedgerRepository(QuotaLedgerRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, str], DailyEntry] = {}
        # user_id -> (day_key, at) of the newest write
        self._newest: dict[str, tuple[str, datetime]] = {}

    async def get(self, user_id: str, day_key: str) -> DailyEntry | None:
        with self._lock:
            return self._entries.get((user_id, day_key))

    async def increment(
        self,
        user_id: str,
        day_key: str,
        at: datetime,
        used: int = 0,
        reviewed: int = 0,
        correct: int = 0,
    ) -> DailyEntry:
        at = _aware(at)
        with self._lock:
            newest = self._newest.get(user_id)
            # ISO dates compare chronologically as strings
            if newest is not None and at < newest[1] and newest[0] > day_key:
                day_key = newest[0]
            elif newest is None or at >= newest[1]:
                self._newest[user_id] = (day_key, at)

            key = (user_id, day_key)
            entry = self._entries.get(key) or DailyEntry(user_id=user_id, day_key=day_key)
            entry = replace(
                entry,
                used_today=entry.used_today + used,
                reviewed_count=entry.reviewed_count + reviewed,
                correct_count=entry.correct_count + correct,
            )
            self._entries[key] = entry
            return entry


def _aware(dt: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt

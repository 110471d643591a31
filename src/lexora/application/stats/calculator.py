"""
Review statistics calculator.

This is a pure computation module with no I/O.
"""

from datetime import datetime

from lexora.domain.models import CardState, DailyEntry, QueueState, ReviewStats


class ReviewStatsCalculator:
    """
    Computes dashboard counters from a user's cards and today's ledger row.

    Stateless and side-effect free.
    """

    def compute(
        self, cards: list[CardState], today: DailyEntry, now: datetime
    ) -> ReviewStats:
        due = [card for card in cards if card.is_due(now)]
        return ReviewStats(
            today_due=len(due),
            new_cards=self._count(due, QueueState.NEW),
            learning=self._count(due, QueueState.LEARNING),
            reviewing=self._count(due, QueueState.REVIEWING),
            total_vocab=len(cards),
            completed_today=today.reviewed_count,
            accuracy=self.accuracy(today),
        )

    def accuracy(self, today: DailyEntry) -> float | None:
        """
        Share of today's ratings that were not "again".
        """
        if today.reviewed_count == 0:
            return None
        return today.correct_count / today.reviewed_count

    def _count(self, cards: list[CardState], state: QueueState) -> int:
        return sum(1 for card in cards if card.queue_state == state)

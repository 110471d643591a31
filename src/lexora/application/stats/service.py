"""
Review Stats Service: application layer orchestrator.

Coordinates fetching cards and ledger rows and turning them into counters.
"""

import logging
from datetime import datetime

from lexora.application.quota import QuotaLedger
from lexora.domain.models import ReviewStats
from lexora.domain.ports import CardStateRepository

from .calculator import ReviewStatsCalculator

logger = logging.getLogger(__name__)


class ReviewStatsService:
    """
    Depends on the repository and ledger abstractions, not concrete adapters.
    """

    def __init__(
        self,
        cards: CardStateRepository,
        ledger: QuotaLedger,
        calculator: ReviewStatsCalculator | None = None,
    ):
        self._cards = cards
        self._ledger = ledger
        self._calc = calculator or ReviewStatsCalculator()

    async def get_stats(self, user_id: str, now: datetime) -> ReviewStats:
        cards = await self._cards.list_for_user(user_id)
        today = await self._ledger.daily_entry(user_id, now)
        return self._calc.compute(cards, today, now)


"""
Review session orchestrator.

Composes review batches, applies ratings through the scheduler and gates
new-word admission on the daily quota:
1. Due learning/reviewing cards are always served (reviewing is free)
2. Remaining batch slots are filled with new cards, bounded by the quota
3. A new card consumes quota when it is first rated
"""

import logging
from collections.abc import Callable
from datetime import datetime

from lexora.application.id_service import generate_card_id
from lexora.application.locks import KeyedLock
from lexora.application.quota import QuotaLedger
from lexora.application.scheduler import Scheduler
from lexora.application.stats import ReviewStatsService
from lexora.domain import constants as c
from lexora.domain.errors import (
    ConcurrentModification,
    LexoraError,
    NotFound,
    QuotaExceeded,
    StoreUnavailable,
)
from lexora.domain.models import (
    CardState,
    CardSummary,
    DifficultyRating,
    QueueState,
    QuotaUsage,
    ReviewBatch,
    ReviewStats,
)
from lexora.domain.ports import CardStateRepository, WordCatalog

logger = logging.getLogger(__name__)

REVIEW_STATES = (QueueState.LEARNING, QueueState.REVIEWING)


class ReviewService:
    def __init__(
        self,
        cards: CardStateRepository,
        ledger: QuotaLedger,
        catalog: WordCatalog,
        scheduler: Scheduler | None = None,
        default_batch_size: int = c.DEFAULT_BATCH_SIZE,
        max_batch_size: int = c.MAX_BATCH_SIZE,
        id_factory: Callable[[], str] = generate_card_id,
    ):
        self._cards = cards
        self._ledger = ledger
        self._catalog = catalog
        self._scheduler = scheduler or Scheduler()
        self._stats = ReviewStatsService(cards, ledger)
        self.default_batch_size = default_batch_size
        self.max_batch_size = max(max_batch_size, default_batch_size)
        self._new_id = id_factory
        # Lock order is always card -> quota
        self._card_locks = KeyedLock()
        self._quota_locks = KeyedLock()

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    async def quota_snapshot(self, user_id: str, now: datetime) -> QuotaUsage:
        return await self._ledger.current_usage(user_id, now)

    async def start_session(
        self, user_id: str, now: datetime, batch_size: int | None = None
    ) -> ReviewBatch:
        """
        Compose a bounded batch of due cards.

        When the quota is spent the batch degrades to review-only: due
        learning/reviewing cards are still returned, new cards are not.
        """
        size = self._batch_size(batch_size)
        usage = await self._ledger.current_usage(user_id, now)

        reviews = await self._cards.due_before(user_id, now, limit=size, states=REVIEW_STATES)

        free_slots = size - len(reviews)
        new_slots = free_slots if usage.unlimited else min(free_slots, usage.remaining_today)
        new_cards: list[CardState] = []
        if new_slots > 0:
            new_cards = await self._cards.due_before(
                user_id, now, limit=new_slots, states=(QueueState.NEW,)
            )

        if usage.exhausted:
            logger.info(
                f"Quota spent for {user_id} ({usage.used_today}/{usage.daily_limit}); "
                f"serving {len(reviews)} reviews only"
            )

        summaries = [await self._summarize(user_id, card) for card in reviews + new_cards]
        return ReviewBatch(cards=summaries, quota=usage, review_only=usage.exhausted)

    async def next_card(self, user_id: str, now: datetime) -> CardSummary | None:
        batch = await self.start_session(user_id, now, batch_size=1)
        return batch.cards[0] if batch.cards else None

    async def submit_rating(
        self,
        user_id: str,
        word_id: str,
        rating: DifficultyRating | str,
        now: datetime,
    ) -> CardState:
        """
        Apply a rating and persist the full new state.

        Raises:
            InvalidRating: rating is not again/hard/good/easy.
            NotFound: the user has no card for word_id.
            QuotaExceeded: the card is new and today's allowance is spent.
            ConcurrentModification: the record changed underneath us.
            StoreUnavailable: a store failed; a new card is left new and uncounted.
        """
        rating = DifficultyRating.parse(rating)

        async with self._card_locks.hold((user_id, word_id)):
            state = await self._cards.get(user_id, word_id)
            if state is None:
                raise NotFound(f"No card for word {word_id!r}")

            updated = self._scheduler.next(state, rating, now)

            if state.queue_state == QueueState.NEW:
                stored = await self._admit_new(state, updated, now)
            else:
                stored = await self._cards.put(updated, expected_version=state.version)

        # Review counters are best-effort once the rating is stored
        try:
            await self._ledger.record_review(
                user_id, now, correct=rating != DifficultyRating.AGAIN
            )
        except StoreUnavailable:
            logger.warning(f"Review counters not updated for {user_id}/{word_id}", exc_info=True)
        logger.debug(
            f"{user_id}/{word_id} rated {rating.value}: {state.queue_state.value} -> "
            f"{stored.queue_state.value}, interval {stored.interval_days:g}d"
        )
        return stored

    async def introduce_word(self, user_id: str, word_id: str, now: datetime) -> CardState:
        """
        First exposure to a word: create its new card. Idempotent.
        """
        if self._catalog.get(word_id) is None:
            raise NotFound(f"Unknown word {word_id!r}")

        async with self._card_locks.hold((user_id, word_id)):
            existing = await self._cards.get(user_id, word_id)
            if existing is not None:
                return existing

            card = self._scheduler.new_card(self._new_id(), user_id, word_id, now)
            try:
                return await self._cards.put(card, expected_version=None)
            except ConcurrentModification:
                # Created by another worker between our read and write
                existing = await self._cards.get(user_id, word_id)
                if existing is None:
                    raise
                return existing

    async def review_stats(self, user_id: str, now: datetime) -> ReviewStats:
        return await self._stats.get_stats(user_id, now)

    async def check_document_size(
        self, user_id: str, word_count: int, now: datetime
    ) -> QuotaUsage:
        usage = await self._ledger.current_usage(user_id, now)
        limit = usage.max_article_words
        if limit != c.UNLIMITED and word_count > limit:
            raise QuotaExceeded(
                f"Document has {word_count} words; the {usage.tier.value} tier allows {limit}",
                usage,
            )
        return usage

    async def _admit_new(
        self, state: CardState, updated: CardState, now: datetime
    ) -> CardState:
        # Check, persist and count under one per-user lock so concurrent
        # sessions cannot both spend the last slot.
        async with self._quota_locks.hold(state.user_id):
            usage = await self._ledger.current_usage(state.user_id, now)
            if usage.exhausted:
                logger.warning(
                    f"New word {state.word_id} denied for {state.user_id}: "
                    f"{usage.used_today}/{usage.daily_limit} used"
                )
                raise QuotaExceeded(
                    f"Daily limit of {usage.daily_limit} new words reached", usage
                )
            stored = await self._cards.put(updated, expected_version=state.version)
            try:
                await self._ledger.record(state.user_id, now, 1)
            except LexoraError:
                # Restore the new card; the admission was never counted
                logger.error(
                    f"Could not count new word {state.word_id} for {state.user_id}; "
                    "reverting card",
                    exc_info=True,
                )
                await self._cards.put(state, expected_version=stored.version)
                raise
            return stored

    async def _summarize(self, user_id: str, card: CardState) -> CardSummary:
        entry = self._catalog.get(card.word_id)
        if entry is None:
            logger.warning(f"No catalog entry for {card.word_id}; serving bare card")
            return CardSummary(
                id=card.id,
                word_id=card.word_id,
                word=card.word_id,
                meaning="",
                type="new",
                queue_state=card.queue_state,
                due_at=card.due_at,
            )

        learned = []
        for sibling in self._catalog.siblings(card.word_id):
            if await self._cards.get(user_id, sibling.id) is None:
                continue
            pos = f" ({sibling.pos})" if sibling.pos else ""
            learned.append(f"{sibling.meaning}{pos}")

        return CardSummary(
            id=card.id,
            word_id=card.word_id,
            word=entry.word,
            meaning=entry.meaning,
            type="extend" if learned else "new",
            queue_state=card.queue_state,
            due_at=card.due_at,
            pronunciation=entry.pronunciation,
            pos=entry.pos,
            sentence=entry.sentence,
            learned_meanings=learned,
        )

    def _batch_size(self, requested: int | None) -> int:
        if requested is None:
            return self.default_batch_size
        if requested < 1:
            raise ValueError(f"Batch size must be positive, got {requested}")
        return min(requested, self.max_batch_size)

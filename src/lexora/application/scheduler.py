"""
SM-2 family scheduler.

Maps (card state, rating, now) to the next card state. This is a pure
computation module with no I/O; out-of-range values are clamped, never raised.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from lexora.domain import constants as c
from lexora.domain.models import CardState, DifficultyRating, QueueState


@dataclass(frozen=True)
class SchedulerSettings:
    initial_ease: float = c.INITIAL_EASE
    min_ease: float = c.MIN_EASE
    relearn_step_days: float = c.RELEARN_STEP_MINUTES / c.MINUTES_PER_DAY
    graduation_interval_days: float = c.GRADUATION_INTERVAL_DAYS
    easy_interval_days: float = c.EASY_INTERVAL_DAYS
    max_interval_days: float = c.MAX_INTERVAL_DAYS
    hard_multiplier: float = c.HARD_MULTIPLIER
    easy_multiplier: float = c.EASY_MULTIPLIER

    @classmethod
    def from_config(cls, config) -> "SchedulerSettings":
        return cls(
            initial_ease=config.initial_ease,
            min_ease=config.min_ease,
            relearn_step_days=config.relearn_step_minutes / c.MINUTES_PER_DAY,
            graduation_interval_days=config.graduation_interval_days,
            easy_interval_days=config.easy_interval_days,
            max_interval_days=config.max_interval_days,
        )


def round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


class Scheduler:
    """
    Stateless and side-effect free.

    Rating effects:
        again: lapse, back to learning at the relearn step, ease -0.20.
        hard:  interval x1.2, ease -0.15.
        good:  new/learning graduate at the graduation interval; reviewing
               cards grow by the ease factor.
        easy:  interval x ease x1.3 (pre-rating ease), ease +0.15; new/learning
               cards graduate straight to the easy interval.
    """

    def __init__(self, settings: SchedulerSettings | None = None):
        self.settings = settings or SchedulerSettings()

    def new_card(
        self, card_id: str, user_id: str, word_id: str, now: datetime
    ) -> CardState:
        """Record for a word's first exposure, due immediately."""
        return CardState(
            id=card_id,
            user_id=user_id,
            word_id=word_id,
            queue_state=QueueState.NEW,
            interval_days=0.0,
            ease_factor=self.settings.initial_ease,
            due_at=now,
            created_at=now,
        )

    def next(self, state: CardState, rating: DifficultyRating, now: datetime) -> CardState:
        s = self.settings
        ease = state.ease_factor
        interval = max(0.0, state.interval_days)
        queue = state.queue_state
        lapses = state.lapses
        in_learning = queue in (QueueState.NEW, QueueState.LEARNING)

        if rating == DifficultyRating.AGAIN:
            lapses += 1
            queue = QueueState.LEARNING
            interval = s.relearn_step_days
            ease -= c.AGAIN_EASE_PENALTY

        elif rating == DifficultyRating.HARD:
            interval *= s.hard_multiplier
            if in_learning:
                queue = QueueState.LEARNING
                interval = max(interval, s.relearn_step_days)
            ease -= c.HARD_EASE_PENALTY

        elif rating == DifficultyRating.GOOD:
            if in_learning:
                queue = QueueState.REVIEWING
                interval = max(interval, s.graduation_interval_days)
            else:
                interval *= ease

        elif rating == DifficultyRating.EASY:
            if in_learning:
                queue = QueueState.REVIEWING
                interval = max(interval, s.easy_interval_days)
            else:
                interval *= ease * s.easy_multiplier
            ease += c.EASY_EASE_BONUS

        if queue == QueueState.REVIEWING and state.queue_state != QueueState.REVIEWING:
            lapses = 0

        interval = self._clamp_interval(interval)
        ease = max(s.min_ease, round(ease, 4))

        return replace(
            state,
            queue_state=queue,
            interval_days=interval,
            ease_factor=ease,
            due_at=now + timedelta(days=interval),
            lapses=lapses,
            reps=state.reps + 1,
            last_reviewed_at=now,
        )

    def _clamp_interval(self, interval: float) -> float:
        # Whole days once at least a day; sub-day steps are kept as-is
        if interval >= 1:
            interval = round_half_up(interval)
        return min(max(interval, 0.0), self.settings.max_interval_days)

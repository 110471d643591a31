"""
Quota ledger: per-user, per-day usage counters with tier-derived limits.

The ledger counts; it never gates. Admission decisions belong to the
review service, which compares the snapshot against the limit.
"""

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from lexora.domain import constants as c
from lexora.domain.models import DailyEntry, QuotaUsage, Tier, TierLimits
from lexora.domain.ports import QuotaLedgerRepository, TierLookup, TierPolicy, TimezoneLookup

logger = logging.getLogger(__name__)


class ConfigTierPolicy(TierPolicy):
    """Tier limits taken from AppConfig (or explicit values in tests)."""

    def __init__(self, limits: dict[Tier, TierLimits] | None = None):
        self._limits = limits or {
            Tier.FREE: TierLimits(c.FREE_DAILY_LIMIT, c.FREE_MAX_ARTICLE_WORDS),
            Tier.PREMIUM: TierLimits(c.PREMIUM_DAILY_LIMIT, c.PREMIUM_MAX_ARTICLE_WORDS),
        }

    @classmethod
    def from_config(cls, config) -> "ConfigTierPolicy":
        return cls(
            {
                Tier.FREE: TierLimits(config.free_daily_limit, config.free_max_article_words),
                Tier.PREMIUM: TierLimits(
                    config.premium_daily_limit, config.premium_max_article_words
                ),
            }
        )

    def limits_for(self, tier: Tier) -> TierLimits:
        # Unknown tiers fall back to the most restrictive limits
        return self._limits.get(tier) or self._limits[Tier.FREE]


def day_key(now: datetime, tz_name: str) -> str:
    """
    Calendar day of `now` in the given IANA time zone, as an ISO date.

    Naive datetimes are taken to be UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name)).date().isoformat()


class QuotaLedger:
    """
    Application service over the ledger repository.

    The day boundary is computed lazily from `now` at every call; there is no
    reset job. Tier and limits are resolved on every read, so an upgrade is
    visible on the next call without touching stored rows.
    """

    def __init__(
        self,
        repo: QuotaLedgerRepository,
        tiers: TierLookup,
        policy: TierPolicy,
        timezones: TimezoneLookup,
    ):
        self._repo = repo
        self._tiers = tiers
        self._policy = policy
        self._timezones = timezones

    def day_key_for(self, user_id: str, now: datetime) -> str:
        return day_key(now, self._timezones.timezone_for(user_id))

    async def current_usage(self, user_id: str, now: datetime) -> QuotaUsage:
        tier = await self._tiers.get_tier(user_id)
        limits = self._policy.limits_for(tier)
        entry = await self._repo.get(user_id, self.day_key_for(user_id, now))
        return QuotaUsage(
            tier=tier,
            daily_limit=limits.daily_limit,
            used_today=entry.used_today if entry else 0,
            max_article_words=limits.max_article_words,
        )

    async def record(self, user_id: str, now: datetime, n: int = 1) -> DailyEntry:
        """
        Add `n` to today's usage. Never clamps at the limit so the count stays
        an accurate audit trail.

        `now` must be server-observed time.
        """
        if n < 0:
            raise ValueError(f"Cannot record negative usage: {n}")
        key = self.day_key_for(user_id, now)
        entry = await self._repo.increment(user_id, key, now, used=n)
        if entry.day_key != key:
            logger.warning(
                f"Stale usage record for {user_id} on {key}; counted against {entry.day_key}"
            )
        return entry

    async def record_review(self, user_id: str, now: datetime, correct: bool) -> DailyEntry:
        key = self.day_key_for(user_id, now)
        return await self._repo.increment(
            user_id, key, now, reviewed=1, correct=1 if correct else 0
        )

    async def daily_entry(self, user_id: str, now: datetime) -> DailyEntry:
        key = self.day_key_for(user_id, now)
        return await self._repo.get(user_id, key) or DailyEntry(user_id=user_id, day_key=key)

import logging
from collections.abc import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from lexora.domain.constants import DEFAULT_TIMEZONE, REQUEST_TIMEOUT
from lexora.domain.errors import StoreUnavailable
from lexora.domain.models import Tier
from lexora.domain.ports import TierLookup, TimezoneLookup


class StaticTierLookup(TierLookup):
    """Tiers from configuration: listed users are premium, everyone else is free."""

    def __init__(self, premium_users: Iterable[str] = ()):
        self._premium = set(premium_users)

    def set_tier(self, user_id: str, tier: Tier):
        if tier == Tier.PREMIUM:
            self._premium.add(user_id)
        else:
            self._premium.discard(user_id)

    async def get_tier(self, user_id: str) -> Tier:
        return Tier.PREMIUM if user_id in self._premium else Tier.FREE


class HttpTierLookup(TierLookup):
    """
    Adapter for the subscription service (HTTP API).

    Expects `GET {url}/users/{user_id}/tier` to answer `{"tier": "free" | "premium"}`.
    A 404 means the user has no active subscription; any other failure
    raises StoreUnavailable.
    """

    def __init__(
        self,
        url: str = "http://localhost:8090",
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.logger = logging.getLogger(__name__)

    async def get_tier(self, user_id: str) -> Tier:
        endpoint = f"{self.url}/users/{user_id}/tier"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(endpoint)
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"Tier service unreachable at {self.url}: {e}") from e

        if response.status_code == 404:
            return Tier.FREE
        try:
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPStatusError, ValueError) as e:
            raise StoreUnavailable(f"Tier service error for {user_id}: {e}") from e
        if not isinstance(payload, dict):
            raise StoreUnavailable(f"Unexpected tier service response: {payload!r}")

        raw = payload.get("tier")
        try:
            return Tier(raw)
        except ValueError:
            self.logger.warning(f"Unknown tier {raw!r} for {user_id}; treating as free")
            return Tier.FREE


class StaticTimezoneLookup(TimezoneLookup):
    """Per-user IANA zones from configuration, with a default for everyone else."""

    def __init__(self, default: str = DEFAULT_TIMEZONE, overrides: dict[str, str] | None = None):
        self.default = default
        self._overrides = dict(overrides or {})
        for user_id, tz in self._overrides.items():
            try:
                ZoneInfo(tz)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"Unknown time zone {tz!r} for user {user_id}") from e

    def timezone_for(self, user_id: str) -> str:
        return self._overrides.get(user_id, self.default)

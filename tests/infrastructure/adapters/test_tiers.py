import httpx
import pytest

from lexora.domain.errors import StoreUnavailable
from lexora.domain.models import Tier
from lexora.infrastructure.adapters.tiers import (
    HttpTierLookup,
    StaticTierLookup,
    StaticTimezoneLookup,
)


def lookup_with(handler) -> HttpTierLookup:
    return HttpTierLookup(url="http://tiers.test/", transport=httpx.MockTransport(handler))


class TestStaticTierLookup:
    @pytest.mark.asyncio
    async def test_premium_users(self):
        tiers = StaticTierLookup(["alice"])
        assert await tiers.get_tier("alice") == Tier.PREMIUM
        assert await tiers.get_tier("bob") == Tier.FREE

    @pytest.mark.asyncio
    async def test_set_tier(self):
        tiers = StaticTierLookup(["alice"])
        tiers.set_tier("alice", Tier.FREE)
        tiers.set_tier("bob", Tier.PREMIUM)

        assert await tiers.get_tier("alice") == Tier.FREE
        assert await tiers.get_tier("bob") == Tier.PREMIUM


class TestHttpTierLookup:
    @pytest.mark.asyncio
    async def test_reads_tier(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"tier": "premium"})

        assert await lookup_with(handler).get_tier("alice") == Tier.PREMIUM
        assert seen == ["http://tiers.test/users/alice/tier"]

    @pytest.mark.asyncio
    async def test_not_found_is_free(self):
        lookup = lookup_with(lambda request: httpx.Response(404))
        assert await lookup.get_tier("alice") == Tier.FREE

    @pytest.mark.asyncio
    async def test_unknown_tier_is_free(self, caplog):
        lookup = lookup_with(lambda request: httpx.Response(200, json={"tier": "gold"}))

        assert await lookup.get_tier("alice") == Tier.FREE
        assert "Unknown tier 'gold'" in caplog.text

    @pytest.mark.asyncio
    async def test_server_error_unavailable(self):
        lookup = lookup_with(lambda request: httpx.Response(503))
        with pytest.raises(StoreUnavailable):
            await lookup.get_tier("alice")

    @pytest.mark.asyncio
    async def test_connection_error_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(StoreUnavailable) as exc:
            await lookup_with(handler).get_tier("alice")
        assert "unreachable" in str(exc.value)

    @pytest.mark.asyncio
    async def test_client_error_unavailable(self):
        lookup = lookup_with(lambda request: httpx.Response(401))
        with pytest.raises(StoreUnavailable):
            await lookup.get_tier("alice")

    @pytest.mark.asyncio
    async def test_non_json_body_unavailable(self):
        lookup = lookup_with(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(StoreUnavailable):
            await lookup.get_tier("alice")

    @pytest.mark.asyncio
    async def test_non_object_body_unavailable(self):
        lookup = lookup_with(lambda request: httpx.Response(200, json=["premium"]))
        with pytest.raises(StoreUnavailable):
            await lookup.get_tier("alice")


class TestStaticTimezoneLookup:
    def test_default_and_overrides(self):
        zones = StaticTimezoneLookup("Europe/Berlin", {"kenji": "Asia/Tokyo"})
        assert zones.timezone_for("kenji") == "Asia/Tokyo"
        assert zones.timezone_for("alice") == "Europe/Berlin"

    def test_invalid_zone(self):
        with pytest.raises(ValueError, match="kenji"):
            StaticTimezoneLookup("UTC", {"kenji": "Nowhere/City"})

from datetime import datetime, timedelta, timezone

import pytest

from lexora.application.quota import ConfigTierPolicy, QuotaLedger
from lexora.application.review_service import ReviewService
from lexora.domain.models import CardState, QueueState, WordEntry
from lexora.infrastructure.adapters.catalog import InMemoryWordCatalog
from lexora.infrastructure.adapters.tiers import StaticTierLookup, StaticTimezoneLookup
from lexora.infrastructure.stores.memory import (
    InMemoryCardStateRepository,
    InMemoryQuotaLedgerRepository,
)

T0 = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)

WORDS = [
    WordEntry("run_v1", "run", "to move fast on foot", pos="verb", sentence="She runs daily."),
    WordEntry("run_n1", "run", "a period of running", pos="noun"),
    WordEntry("apple", "apple", "a round fruit", pos="noun", pronunciation="/ˈæp.əl/"),
] + [WordEntry(f"w{i:02d}", f"word{i:02d}", f"meaning {i}") for i in range(40)]


def make_card(
    word_id: str,
    queue_state: QueueState = QueueState.REVIEWING,
    due_at: datetime = T0,
    interval_days: float = 1.0,
    ease_factor: float = 2.5,
    card_id: str | None = None,
    user_id: str = "alice",
    version: int = 1,
) -> CardState:
    return CardState(
        id=card_id or f"card_{word_id}",
        user_id=user_id,
        word_id=word_id,
        queue_state=queue_state,
        interval_days=interval_days,
        ease_factor=ease_factor,
        due_at=due_at,
        created_at=due_at - timedelta(days=30),
        version=version,
    )


@pytest.fixture
def now():
    return T0


@pytest.fixture
def catalog():
    return InMemoryWordCatalog(WORDS)


@pytest.fixture
def tiers():
    return StaticTierLookup()


@pytest.fixture
def timezones():
    return StaticTimezoneLookup("UTC", {"kenji": "Asia/Tokyo"})


@pytest.fixture
def ledger_repo():
    return InMemoryQuotaLedgerRepository()


@pytest.fixture
def ledger(ledger_repo, tiers, timezones):
    return QuotaLedger(ledger_repo, tiers, ConfigTierPolicy(), timezones)


@pytest.fixture
def make_service(ledger, catalog):
    """Factory: ReviewService over an in-memory card store seeded with `cards`."""

    def _make(cards=(), **kwargs):
        repo = InMemoryCardStateRepository(cards)
        return ReviewService(repo, ledger, catalog, **kwargs), repo

    return _make


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config files
    monkeypatch.setenv("HOME", str(home))
    return home

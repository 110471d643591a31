"""Tests for store and collaborator selection."""

import pytest

from lexora.application.config import AppConfig
from lexora.application.factory import (
    build_review_service,
    get_catalog,
    get_repositories,
    get_tier_lookup,
)
from lexora.domain.models import Tier
from lexora.infrastructure.adapters.catalog import CatalogError
from lexora.infrastructure.adapters.tiers import HttpTierLookup, StaticTierLookup
from lexora.infrastructure.stores.memory import InMemoryCardStateRepository
from lexora.infrastructure.stores.sqlite import SqliteCardStateRepository


def make_config(**kwargs) -> AppConfig:
    return AppConfig.model_construct(**kwargs)


def test_memory_store():
    cards, _ = get_repositories(make_config(store="memory"))
    assert isinstance(cards, InMemoryCardStateRepository)


def test_sqlite_store(tmp_path):
    path = tmp_path / "data" / "lexora.db"
    cards, ledger = get_repositories(make_config(store="sqlite", database_path=path))

    assert isinstance(cards, SqliteCardStateRepository)
    assert cards.db is ledger.db
    assert path.exists()
    cards.db.close()


@pytest.mark.asyncio
async def test_static_tiers():
    tiers = get_tier_lookup(make_config(tier_backend="static", premium_users=["alice"]))

    assert isinstance(tiers, StaticTierLookup)
    assert await tiers.get_tier("alice") == Tier.PREMIUM


def test_http_tiers():
    tiers = get_tier_lookup(make_config(tier_backend="http", tier_service_url="http://t:1/"))

    assert isinstance(tiers, HttpTierLookup)
    assert tiers.url == "http://t:1"


def test_missing_catalog_is_empty(caplog):
    catalog = get_catalog(make_config(catalog_path=None))

    assert len(catalog) == 0
    assert "No word catalog configured" in caplog.text


def test_catalog_loaded_leniently(tmp_path):
    path = tmp_path / "words.yaml"
    path.write_text(
        "words:\n  - {id: a, word: a, meaning: first}\n  - {id: b}\n", encoding="utf-8"
    )

    catalog = get_catalog(make_config(catalog_path=path))

    assert len(catalog) == 1


def test_unreadable_catalog_raises(tmp_path):
    with pytest.raises(CatalogError):
        get_catalog(make_config(catalog_path=tmp_path / "absent.yaml"))


@pytest.mark.asyncio
async def test_build_review_service_uses_config_limits(now):
    config = make_config(free_daily_limit=3, default_batch_size=5, max_batch_size=7)

    service = build_review_service(config)
    usage = await service.quota_snapshot("alice", now)

    assert usage.daily_limit == 3
    assert service.default_batch_size == 5
    assert service.max_batch_size == 7

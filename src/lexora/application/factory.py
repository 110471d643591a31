"""
Service Factory
Centralizes the logic for selecting store and collaborator adapters.
"""

import logging

from lexora.application.config import AppConfig
from lexora.application.quota import ConfigTierPolicy, QuotaLedger
from lexora.application.review_service import ReviewService
from lexora.application.scheduler import Scheduler, SchedulerSettings
from lexora.domain.ports import (
    CardStateRepository,
    QuotaLedgerRepository,
    TierLookup,
    WordCatalog,
)
from lexora.infrastructure.adapters.catalog import InMemoryWordCatalog, load_catalog
from lexora.infrastructure.adapters.tiers import (
    HttpTierLookup,
    StaticTierLookup,
    StaticTimezoneLookup,
)
from lexora.infrastructure.stores.memory import (
    InMemoryCardStateRepository,
    InMemoryQuotaLedgerRepository,
)
from lexora.infrastructure.stores.sqlite import (
    SqliteCardStateRepository,
    SqliteDatabase,
    SqliteQuotaLedgerRepository,
)

logger = logging.getLogger(__name__)


def get_repositories(config: AppConfig) -> tuple[CardStateRepository, QuotaLedgerRepository]:
    """
    Returns the card and ledger repositories for the configured store.
    """
    if config.store == "sqlite":
        db = SqliteDatabase(config.database_path)
        logger.info(f"Store: SQLite ({config.database_path})")
        return SqliteCardStateRepository(db), SqliteQuotaLedgerRepository(db)

    logger.info("Store: in-memory")
    return InMemoryCardStateRepository(), InMemoryQuotaLedgerRepository()


def get_tier_lookup(config: AppConfig) -> TierLookup:
    if config.tier_backend == "http":
        return HttpTierLookup(url=config.tier_service_url)
    return StaticTierLookup(config.premium_users)


def get_catalog(config: AppConfig) -> WordCatalog:
    if config.catalog_path is None:
        logger.warning("No word catalog configured; cards will be served without meanings")
        return InMemoryWordCatalog()
    return load_catalog(config.catalog_path, strict=False)


def build_quota_ledger(config: AppConfig, repo: QuotaLedgerRepository) -> QuotaLedger:
    return QuotaLedger(
        repo=repo,
        tiers=get_tier_lookup(config),
        policy=ConfigTierPolicy.from_config(config),
        timezones=StaticTimezoneLookup(config.default_timezone, config.user_timezones),
    )


def build_review_service(config: AppConfig) -> ReviewService:
    cards, ledger_repo = get_repositories(config)
    return ReviewService(
        cards=cards,
        ledger=build_quota_ledger(config, ledger_repo),
        catalog=get_catalog(config),
        scheduler=Scheduler(SchedulerSettings.from_config(config)),
        default_batch_size=config.default_batch_size,
        max_batch_size=config.max_batch_size,
    )

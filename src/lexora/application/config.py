from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from lexora.domain import constants as c

CONFIG_FILES = [
    Path.home() / ".config/lexora/config.toml",
    Path.home() / ".lexora.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for the Lexora review engine.
    Supports loading from:
    1. Environment variables (LEXORA_*)
    2. Config file (~/.config/lexora/config.toml)
    3. Manual overrides (CLI, tests)
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXORA_",
        extra="ignore",
    )

    # Storage
    store: Literal["memory", "sqlite"] = "memory"
    database_path: Path = Field(default_factory=lambda: Path.home() / ".config/lexora/lexora.db")
    catalog_path: Path | None = None

    # Collaborators
    tier_backend: Literal["static", "http"] = "static"
    tier_service_url: str = "http://localhost:8090"
    premium_users: list[str] = Field(default_factory=list)
    default_timezone: str = c.DEFAULT_TIMEZONE
    user_timezones: dict[str, str] = Field(default_factory=dict)

    # Scheduler
    initial_ease: float = c.INITIAL_EASE
    min_ease: float = c.MIN_EASE
    relearn_step_minutes: float = c.RELEARN_STEP_MINUTES
    graduation_interval_days: float = c.GRADUATION_INTERVAL_DAYS
    easy_interval_days: float = c.EASY_INTERVAL_DAYS
    max_interval_days: float = c.MAX_INTERVAL_DAYS

    # Tier limits (-1 = unlimited)
    free_daily_limit: int = c.FREE_DAILY_LIMIT
    free_max_article_words: int = c.FREE_MAX_ARTICLE_WORDS
    premium_daily_limit: int = c.PREMIUM_DAILY_LIMIT
    premium_max_article_words: int = c.PREMIUM_MAX_ARTICLE_WORDS

    # Sessions
    default_batch_size: int = Field(default=c.DEFAULT_BATCH_SIZE, ge=1)
    max_batch_size: int = Field(default=c.MAX_BATCH_SIZE, ge=1)

    log_level: str = "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing config file wins
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        # Overrides take final precedence
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("database_path", "catalog_path", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()

    @field_validator("default_timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v

    @field_validator("min_ease", "initial_ease", "graduation_interval_days", "max_interval_days")
    @classmethod
    def check_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v


def resolve_config(overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/lexora/config.toml (if exists)
    3. Environment variables (LEXORA_*)
    4. overrides (passed from Typer or tests)
    """
    # Typer passes None for options that were not given
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
    config = AppConfig(**overrides)

    if config.max_batch_size < config.default_batch_size:
        config.max_batch_size = config.default_batch_size

    if config.min_ease > config.initial_ease:
        raise ValueError(
            f"min_ease ({config.min_ease}) cannot exceed initial_ease ({config.initial_ease})"
        )

    return config

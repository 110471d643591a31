"""Centralized constants for the Lexora engine.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Scheduler ----------
INITIAL_EASE = 2.5
MIN_EASE = 1.3
AGAIN_EASE_PENALTY = 0.20
HARD_EASE_PENALTY = 0.15
EASY_EASE_BONUS = 0.15
HARD_MULTIPLIER = 1.2
EASY_MULTIPLIER = 1.3
RELEARN_STEP_MINUTES = 10
GRADUATION_INTERVAL_DAYS = 1.0
EASY_INTERVAL_DAYS = 4.0
MAX_INTERVAL_DAYS = 365.0
MINUTES_PER_DAY = 1440

# ---------- Quota ----------
UNLIMITED = -1
FREE_DAILY_LIMIT = 20
FREE_MAX_ARTICLE_WORDS = 1000
PREMIUM_DAILY_LIMIT = 200
PREMIUM_MAX_ARTICLE_WORDS = 5000

# ---------- Sessions ----------
DEFAULT_BATCH_SIZE = 20
MAX_BATCH_SIZE = 100

# ---------- Time ----------
DEFAULT_TIMEZONE = "UTC"

# ---------- Tier service / HTTP ----------
REQUEST_TIMEOUT = 5.0

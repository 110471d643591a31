# Application Stats Package
from .calculator import ReviewStatsCalculator
from .service import ReviewStatsService

__all__ = ["ReviewStatsCalculator", "ReviewStatsService"]

"""Daily granularity policy implementation."""

from datetime import date, timedelta

from src.domain.models import Granularity
from src.infrastructure.partitioning.granularity_policy import GranularityPolicy


class DailyGranularityPolicy(GranularityPolicy):
    """Granularity policy: one partition per day, keyed yyyymmdd."""

    granularity = Granularity.DAILY

    def step_back(self, anchor: date, periods: int) -> date:
        return anchor - timedelta(days=periods)

    def format_key(self, value: date) -> str:
        return str((value.year * 100 + value.month) * 100 + value.day)

"""Yearly granularity policy implementation."""

from datetime import date

from dateutil.relativedelta import relativedelta

from src.domain.models import Granularity
from src.infrastructure.partitioning.granularity_policy import GranularityPolicy


class YearlyGranularityPolicy(GranularityPolicy):
    """Granularity policy: one partition per year, keyed yyyy."""

    granularity = Granularity.YEARLY
    column_divisor = 10000

    def step_back(self, anchor: date, periods: int) -> date:
        # relativedelta maps Feb 29 onto Feb 28 in non-leap years
        return anchor - relativedelta(years=periods)

    def format_key(self, value: date) -> str:
        return str(value.year)

"""Monthly granularity policy implementation."""

from datetime import date

from dateutil.relativedelta import relativedelta

from src.domain.models import Granularity
from src.infrastructure.partitioning.granularity_policy import GranularityPolicy


class MonthlyGranularityPolicy(GranularityPolicy):
    """Granularity policy: one partition per month, keyed yyyymm."""

    granularity = Granularity.MONTHLY
    column_divisor = 100

    def step_back(self, anchor: date, periods: int) -> date:
        # Clamps to the last day of shorter months (Mar 31 -> Feb 29)
        return anchor - relativedelta(months=periods)

    def format_key(self, value: date) -> str:
        return str(value.year * 100 + value.month)

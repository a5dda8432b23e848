"""Factory for creating GranularityPolicy instances."""

from typing import Union

from src.domain.models import Granularity
from src.infrastructure.partitioning.granularity_policy import GranularityPolicy
from src.infrastructure.partitioning.strategies.daily import DailyGranularityPolicy
from src.infrastructure.partitioning.strategies.monthly import MonthlyGranularityPolicy
from src.infrastructure.partitioning.strategies.yearly import YearlyGranularityPolicy


class GranularityPolicyFactory:
    """Factory for creating GranularityPolicy instances from a granularity."""

    _POLICIES = {
        Granularity.YEARLY: YearlyGranularityPolicy,
        Granularity.MONTHLY: MonthlyGranularityPolicy,
        Granularity.DAILY: DailyGranularityPolicy,
    }

    @staticmethod
    def create(granularity: Union[Granularity, str]) -> GranularityPolicy:
        """Create GranularityPolicy instance for a granularity.

        Args:
            granularity: Granularity member or its name
                (e.g. Granularity.MONTHLY, "monthly", "Daily").

        Returns:
            GranularityPolicy instance.

        Raises:
            ValueError: If granularity is unknown.
        """
        if not isinstance(granularity, Granularity):
            granularity = Granularity.parse(granularity)
        return GranularityPolicyFactory._POLICIES[granularity]()

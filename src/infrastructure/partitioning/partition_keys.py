"""Partition key operations addressed by granularity."""

from datetime import date
from typing import List

from src.domain.models import Granularity
from src.infrastructure.partitioning.granularity_policy_factory import GranularityPolicyFactory


def generate_period_sequence(granularity: Granularity, max_date: date, count: int) -> List[str]:
    """Generate ``count`` ascending partition keys ending at ``max_date``."""
    return GranularityPolicyFactory.create(granularity).generate_period_sequence(max_date, count)


def format_for_display(key: str, granularity: Granularity) -> str:
    """Format a partition key as yyyy, yyyy-mm or yyyy-mm-dd."""
    return GranularityPolicyFactory.create(granularity).format_for_display(key)


def build_source_predicate(table: str, column: str, key: str, granularity: Granularity) -> str:
    """Build the source filter of a partition.

    ``table`` is accepted so callers can address predicates per source; the
    filter itself only references the column.
    """
    return GranularityPolicyFactory.create(granularity).build_source_predicate(column, key)

"""Partitioning components for rolling-window partition management."""

from src.infrastructure.partitioning.granularity_policy import (
    GranularityPolicy,
    KeyMatch,
    build_empty_source_query,
)
from src.infrastructure.partitioning.granularity_policy_factory import GranularityPolicyFactory
from src.infrastructure.partitioning.partition_keys import (
    build_source_predicate,
    format_for_display,
    generate_period_sequence,
)
from src.infrastructure.partitioning.partition_set_differ import classify_existing, compute_removals
from src.infrastructure.partitioning.strategies.daily import DailyGranularityPolicy
from src.infrastructure.partitioning.strategies.monthly import MonthlyGranularityPolicy
from src.infrastructure.partitioning.strategies.yearly import YearlyGranularityPolicy

__all__ = [
    "DailyGranularityPolicy",
    "GranularityPolicy",
    "GranularityPolicyFactory",
    "KeyMatch",
    "MonthlyGranularityPolicy",
    "YearlyGranularityPolicy",
    "build_empty_source_query",
    "build_source_predicate",
    "classify_existing",
    "compute_removals",
    "format_for_display",
    "generate_period_sequence",
]

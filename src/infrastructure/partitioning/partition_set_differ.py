"""Comparison of existing partitions against the target window."""

from typing import Iterable, List

from src.domain.models import Granularity
from src.infrastructure.partitioning.granularity_policy_factory import GranularityPolicyFactory


def classify_existing(store_names: Iterable[str], granularity: Granularity) -> List[str]:
    """Return the store partition names that are keys of this granularity.

    Args:
        store_names: Names of every partition in the table.
        granularity: Granularity whose naming convention applies.

    Returns:
        Matching keys in ascending order. Other names (the template partition,
        hand-made partitions) are ignored.
    """
    policy = GranularityPolicyFactory.create(granularity)
    keys = []
    for name in store_names:
        match = policy.parse_partition_key(name)
        if match.matched:
            keys.append(match.key)
    return sorted(keys)


def compute_removals(existing: List[str], target: List[str]) -> List[str]:
    """Return the existing keys older than the start of the target window.

    Keys newer than the end of the window are kept.
    """
    if not existing or not target:
        return []
    oldest = int(min(target))
    return [key for key in existing if int(key) < oldest]

"""Domain models for partition processing."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


class Granularity(Enum):
    """Calendar bucket size of a partition."""

    YEARLY = "yearly"
    MONTHLY = "monthly"
    DAILY = "daily"

    @property
    def key_width(self) -> int:
        """Number of digits in a partition key of this granularity."""
        return {Granularity.YEARLY: 4, Granularity.MONTHLY: 6, Granularity.DAILY: 8}[self]

    @classmethod
    def parse(cls, value: str) -> "Granularity":
        """Parse a granularity name (case-insensitive).

        Raises:
            ValueError: If the name is not a known granularity.
        """
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown granularity: {value}") from None


class RefreshType(Enum):
    """Refresh modes understood by the partition store."""

    FULL = "full"
    DATA_ONLY = "dataOnly"
    CALCULATE = "calculate"


class PartitionState(Enum):
    """Processing state of a partition in the store."""

    READY = "ready"
    NO_DATA = "noData"
    CALCULATION_NEEDED = "calculationNeeded"


@dataclass
class Partition:
    """A partition as held by the store."""

    name: str
    source_query: str = ""
    state: PartitionState = PartitionState.NO_DATA
    # Engine-specific attributes carried through copies untouched.
    definition: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_processed(self) -> bool:
        return self.state is PartitionState.READY


@dataclass
class Table:
    """A table and its partitions, keyed by partition name."""

    name: str
    partitions: Dict[str, Partition] = field(default_factory=dict)


@dataclass
class PartitioningConfiguration:
    """Rolling-window settings for one source of a partitioned table."""

    source_table_name: str
    source_partition_column: str
    granularity: Granularity
    max_date: date
    number_of_partitions_full: int
    number_of_partitions_for_incremental_process: int

    def __post_init__(self) -> None:
        if self.number_of_partitions_full <= 0:
            raise ValueError("number_of_partitions_full must be greater than zero")
        if self.number_of_partitions_for_incremental_process <= 0:
            raise ValueError(
                "number_of_partitions_for_incremental_process must be greater than zero"
            )
        if self.number_of_partitions_for_incremental_process > self.number_of_partitions_full:
            raise ValueError(
                "number_of_partitions_for_incremental_process "
                f"({self.number_of_partitions_for_incremental_process}) cannot exceed "
                f"number_of_partitions_full ({self.number_of_partitions_full})"
            )


@dataclass
class TableConfiguration:
    """A table to process; no partitioning configurations means whole-table refresh."""

    analysis_services_table: str
    partitioning_configurations: List[PartitioningConfiguration] = field(default_factory=list)


@dataclass
class ConnectionInfo:
    """Connection identifiers for the analytical engine."""

    server: str
    database: str
    integrated_auth: bool = True
    user_name: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @property
    def connection_string(self) -> str:
        """MSOLAP connection string for this server."""
        if self.integrated_auth:
            return f"Provider=MSOLAP;Data Source={self.server};"
        return (
            f"Provider=MSOLAP;Data Source={self.server};User ID={self.user_name};"
            f"Password={self.password};Persist Security Info=True;"
            "Impersonation Level=Impersonate;"
        )


@dataclass
class ModelConfiguration:
    """Settings for one processing run over a tabular model."""

    connection: ConnectionInfo
    initial_setup: bool = False
    incremental_online: bool = True
    incremental_parallel_tables: bool = False
    table_configurations: List[TableConfiguration] = field(default_factory=list)
    model_id: str = "default"


@dataclass
class ProcessingResult:
    """Summary of what a processing run did."""

    success: bool = False
    error: Optional[BaseException] = None
    removed: List[str] = field(default_factory=list)
    created: List[str] = field(default_factory=list)
    refreshed: List[str] = field(default_factory=list)
    commit_count: int = 0
    sequential_commit_count: int = 0

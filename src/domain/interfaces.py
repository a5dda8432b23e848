"""Domain interfaces (ports)."""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Union

from .models import ConnectionInfo, ModelConfiguration, Partition, RefreshType, Table

MessageLogger = Callable[[str, ModelConfiguration], None]
"""Receives one plain log line and the configuration of the run emitting it."""

RefreshTarget = Union[Table, Partition, None]
"""Table, partition, or None for the whole model."""


class PendingRefresh:
    """Handle for a refresh request queued until the next commit."""

    def __init__(self, target_name: str, refresh_type: RefreshType):
        self.target_name = target_name
        self.refresh_type = refresh_type
        self.settled = False
        self.error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.settled and self.error is None

    def settle(self, error: Optional[BaseException] = None) -> None:
        self.settled = True
        self.error = error

    def __repr__(self) -> str:
        return f"PendingRefresh({self.target_name!r}, {self.refresh_type.value})"


class PartitionStore(ABC):
    """Interface for the analytical engine holding tables and partitions.

    Mutations and refresh requests are queued; ``commit`` is the barrier that
    settles them.
    """

    @abstractmethod
    def connect(self, connection_info: ConnectionInfo) -> None:
        """Connect to the server and open the database.

        Raises:
            StoreConnectionError: If the server or database cannot be found.
        """

    @abstractmethod
    def find_table(self, name: str) -> Optional[Table]:
        """Return the table with the given name, or None."""

    @abstractmethod
    def find_partition(self, table: Table, name: str) -> Optional[Partition]:
        """Return the partition with the given name, or None."""

    @abstractmethod
    def list_partition_names(self, table: Table) -> List[str]:
        """Return the names of every partition in the table."""

    @abstractmethod
    def copy_partition_definition(self, template: Partition, new_name: str) -> Partition:
        """Return an unattached copy of a partition definition under a new name."""

    @abstractmethod
    def add_partition(self, table: Table, partition: Partition) -> None:
        """Add a partition to a table."""

    @abstractmethod
    def remove_partition(self, table: Table, name: str) -> None:
        """Remove a partition from a table."""

    @abstractmethod
    def set_partition_source_query(self, partition: Partition, query: str) -> None:
        """Replace the source query of a partition."""

    @abstractmethod
    def request_refresh(
        self, target: RefreshTarget, refresh_type: RefreshType
    ) -> PendingRefresh:
        """Queue a refresh without blocking.

        Args:
            target: Table, partition, or None for the whole model.
            refresh_type: Refresh mode.

        Returns:
            Handle settled by the next commit.
        """

    @abstractmethod
    def commit(self) -> int:
        """Settle every queued operation.

        Returns:
            Number of refresh requests settled.

        Raises:
            ProcessingError: If any queued operation failed.
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Release the connection."""


class ConfigLoader(ABC):
    """Interface for configuration loading."""

    @abstractmethod
    def load_model_config(self, model_id: str) -> ModelConfiguration:
        """Load configuration for a model.

        Args:
            model_id: Identifier of the model configuration to load.

        Returns:
            Model configuration.
        """

    @abstractmethod
    def load_raw_config(self, model_id: str) -> Any:
        """Load the raw configuration document for a model."""

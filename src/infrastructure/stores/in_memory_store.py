"""In-memory partition store."""

import copy
import logging
from typing import Callable, Dict, List, Optional

from src.domain.exceptions import ProcessingError, StoreConnectionError
from src.domain.interfaces import PartitionStore, PendingRefresh, RefreshTarget
from src.domain.models import (
    ConnectionInfo,
    Partition,
    PartitionState,
    RefreshType,
    Table,
)

logger = logging.getLogger(__name__)

# Called for each pending refresh at commit; an exception fails that refresh.
RefreshHook = Callable[[PendingRefresh], None]

MODEL_TARGET = "Model"


class InMemoryPartitionStore(PartitionStore):
    """Partition store holding databases in memory.

    Refresh requests are queued and applied on commit: refreshed partitions
    become READY, except DataOnly refreshes which leave dependent structures
    pending until a Calculate refresh of the model.
    """

    def __init__(
        self,
        databases: Optional[Dict[str, Dict[str, Table]]] = None,
        server: Optional[str] = None,
        refresh_hook: Optional[RefreshHook] = None,
    ):
        """Initialize InMemoryPartitionStore.

        Args:
            databases: Mapping of database name to tables keyed by table name.
            server: Name of the only server accepted by connect (None accepts any).
            refresh_hook: Optional callable run per refresh at commit (for testing).
        """
        self._databases = databases if databases is not None else {}
        self._server = server
        self._refresh_hook = refresh_hook
        self._tables: Optional[Dict[str, Table]] = None
        self._pending: List[tuple] = []

    @classmethod
    def from_partition_names(
        cls, databases: Dict[str, Dict[str, List[str]]], **kwargs
    ) -> "InMemoryPartitionStore":
        """Build a store from partition names per table per database.

        Args:
            databases: e.g. {"AdventureWorks": {"Internet Sales": ["Internet Sales", "202401"]}}.
            **kwargs: Passed to the constructor.
        """
        tables = {
            database: {
                table_name: Table(
                    name=table_name,
                    partitions={name: Partition(name=name) for name in partition_names},
                )
                for table_name, partition_names in table_partitions.items()
            }
            for database, table_partitions in databases.items()
        }
        return cls(databases=tables, **kwargs)

    @property
    def tables(self) -> Dict[str, Table]:
        """Tables of the connected database."""
        if self._tables is None:
            raise StoreConnectionError("Not connected to a database.")
        return self._tables

    def database_tables(self, database: str) -> Dict[str, Table]:
        """Tables of a database, whether or not it is connected."""
        return self._databases[database]

    @property
    def pending(self) -> List[PendingRefresh]:
        """Refresh requests queued since the last commit."""
        return [handle for handle, _ in self._pending]

    def connect(self, connection_info: ConnectionInfo) -> None:
        if self._server is not None and connection_info.server != self._server:
            raise StoreConnectionError(f"Could not connect to server {connection_info.server}.")
        tables = self._databases.get(connection_info.database)
        if tables is None:
            raise StoreConnectionError(
                f"Could not connect to database {connection_info.database}."
            )
        self._tables = tables
        logger.debug("Connected to database %s", connection_info.database)

    def find_table(self, name: str) -> Optional[Table]:
        return self.tables.get(name)

    def find_partition(self, table: Table, name: str) -> Optional[Partition]:
        return table.partitions.get(name)

    def list_partition_names(self, table: Table) -> List[str]:
        return list(table.partitions)

    def copy_partition_definition(self, template: Partition, new_name: str) -> Partition:
        partition = copy.deepcopy(template)
        partition.name = new_name
        partition.state = PartitionState.NO_DATA
        return partition

    def add_partition(self, table: Table, partition: Partition) -> None:
        if partition.name in table.partitions:
            raise ProcessingError(
                f"Table {table.name} already contains a partition named {partition.name}."
            )
        table.partitions[partition.name] = partition

    def remove_partition(self, table: Table, name: str) -> None:
        if table.partitions.pop(name, None) is None:
            raise ProcessingError(f"Table {table.name} does not contain partition {name}.")

    def set_partition_source_query(self, partition: Partition, query: str) -> None:
        partition.source_query = query

    def request_refresh(self, target: RefreshTarget, refresh_type: RefreshType) -> PendingRefresh:
        name = MODEL_TARGET if target is None else target.name
        handle = PendingRefresh(name, refresh_type)
        self._pending.append((handle, target))
        return handle

    def commit(self) -> int:
        pending, self._pending = self._pending, []

        errors = {}
        for handle, _ in pending:
            if self._refresh_hook is None:
                break
            try:
                self._refresh_hook(handle)
            except Exception as e:  # noqa: BLE001
                errors[id(handle)] = e

        if errors:
            failed = [handle for handle, _ in pending if id(handle) in errors]
            error = ProcessingError(
                f"{len(failed)} of {len(pending)} refresh operation(s) failed, "
                f"first: {failed[0].target_name} /{failed[0].refresh_type.value}"
            )
            # Nothing is applied; every handle settles as failed
            for handle, _ in pending:
                handle.settle(errors.get(id(handle), error))
            raise error from errors[id(failed[0])]

        for handle, target in pending:
            self._apply_refresh(target, handle.refresh_type)
            handle.settle()

        logger.debug("Committed %d refresh operation(s)", len(pending))
        return len(pending)

    def disconnect(self) -> None:
        self._tables = None
        self._pending = []

    def _apply_refresh(self, target: RefreshTarget, refresh_type: RefreshType) -> None:
        if target is None:
            partitions = [p for table in self.tables.values() for p in table.partitions.values()]
        elif isinstance(target, Table):
            partitions = list(target.partitions.values())
        else:
            partitions = [target]

        for partition in partitions:
            if refresh_type is RefreshType.DATA_ONLY:
                partition.state = PartitionState.CALCULATION_NEEDED
            elif refresh_type is RefreshType.FULL:
                partition.state = PartitionState.READY
            elif partition.state is PartitionState.CALCULATION_NEEDED:
                partition.state = PartitionState.READY

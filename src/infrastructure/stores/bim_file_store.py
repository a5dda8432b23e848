"""Partition store backed by a tabular model definition (.bim) file."""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from src.domain.exceptions import StoreConnectionError
from src.domain.interfaces import PendingRefresh, RefreshTarget
from src.domain.models import ConnectionInfo, Partition, RefreshType, Table
from src.infrastructure.stores.in_memory_store import InMemoryPartitionStore

logger = logging.getLogger(__name__)


class BimFileStore(InMemoryPartitionStore):
    """Offline partition store over ``<server>/<database>.bim``.

    The server is a directory holding model definition files. Changes are
    applied in memory; each commit writes the queued work as one TMSL
    ``sequence`` command and snapshots the tables. Disconnect saves the last
    committed snapshot, so work left uncommitted by an aborted run never
    reaches the model file.

    Model files carry no processing state, so every partition loads as
    NO_DATA. Initial setup against this store therefore reprocesses every
    partition in the window.
    """

    def __init__(self, script_dir: Optional[str] = None, save_model: bool = True):
        """Initialize BimFileStore.

        Args:
            script_dir: Directory for TMSL scripts (default: "<server>/tmsl").
            save_model: Whether to write the updated model back on disconnect.
        """
        super().__init__()
        self._script_dir = Path(script_dir) if script_dir else None
        self._save_model = save_model
        self._model_file: Optional[Path] = None
        self._document: Dict[str, Any] = {}
        self._database_name = ""
        self._created: List[Tuple[str, str]] = []
        self._deleted: List[Tuple[str, str]] = []
        self._refresh_objects: List[Tuple[RefreshType, Dict[str, str]]] = []
        self._committed: Optional[Dict[str, Table]] = None
        self.scripts: List[Path] = []

    def connect(self, connection_info: ConnectionInfo) -> None:
        server_dir = Path(connection_info.server)
        if not server_dir.is_dir():
            raise StoreConnectionError(f"Could not connect to server {connection_info.server}.")

        model_file = server_dir / f"{connection_info.database}.bim"
        if not model_file.exists():
            raise StoreConnectionError(
                f"Could not connect to database {connection_info.database}."
            )

        try:
            with open(model_file, encoding="utf-8-sig") as f:
                self._document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreConnectionError(
                f"Could not read model definition {model_file}."
            ) from e

        self._model_file = model_file
        self._database_name = connection_info.database
        if self._script_dir is None:
            self._script_dir = server_dir / "tmsl"

        self._databases = {connection_info.database: self._load_tables()}
        super().connect(connection_info)
        logger.info("Loaded %d table(s) from %s", len(self.tables), model_file)

    def add_partition(self, table: Table, partition: Partition) -> None:
        super().add_partition(table, partition)
        self._created.append((table.name, partition.name))

    def remove_partition(self, table: Table, name: str) -> None:
        super().remove_partition(table, name)
        self._deleted.append((table.name, name))

    def set_partition_source_query(self, partition: Partition, query: str) -> None:
        super().set_partition_source_query(partition, query)
        table_name = self._find_table_of(partition)
        # Unattached copies are written when added
        if table_name is not None:
            self._created.append((table_name, partition.name))

    def request_refresh(self, target: RefreshTarget, refresh_type: RefreshType) -> PendingRefresh:
        obj = {"database": self._database_name}
        if isinstance(target, Table):
            obj["table"] = target.name
        elif target is not None:
            obj["table"] = self._table_of(target)
            obj["partition"] = target.name
        self._refresh_objects.append((refresh_type, obj))
        return super().request_refresh(target, refresh_type)

    def commit(self) -> int:
        operations = self._build_operations()
        self._created, self._deleted, self._refresh_objects = [], [], []
        settled = super().commit()
        self._committed = copy.deepcopy(self.tables)
        if operations:
            self._write_script({"sequence": {"operations": operations}})
        return settled

    def disconnect(self) -> None:
        if self._save_model and self._model_file is not None and self._committed is not None:
            self._save_tables(self._committed)
            with open(self._model_file, "w", encoding="utf-8") as f:
                json.dump(self._document, f, indent=2)
            logger.info("Saved model definition to %s", self._model_file)
        self._committed = None
        super().disconnect()

    def _load_tables(self) -> Dict[str, Table]:
        tables = {}
        for table_json in self._document.get("model", {}).get("tables", []):
            table = Table(name=table_json["name"])
            for partition_json in table_json.get("partitions", []):
                partition = self._partition_from_json(partition_json)
                table.partitions[partition.name] = partition
            tables[table.name] = table
        return tables

    def _save_tables(self, tables: Dict[str, Table]) -> None:
        for table_json in self._document.get("model", {}).get("tables", []):
            table = tables.get(table_json["name"])
            if table is not None:
                table_json["partitions"] = [
                    self._partition_to_json(p) for p in table.partitions.values()
                ]

    @staticmethod
    def _partition_from_json(partition_json: Dict[str, Any]) -> Partition:
        definition = copy.deepcopy(partition_json)
        name = definition.pop("name")
        source = definition.get("source", {})
        return Partition(name=name, source_query=source.get("query", ""), definition=definition)

    @staticmethod
    def _partition_to_json(partition: Partition) -> Dict[str, Any]:
        partition_json: Dict[str, Any] = {"name": partition.name}
        partition_json.update(copy.deepcopy(partition.definition))
        source = partition_json.setdefault("source", {"type": "query"})
        source["query"] = partition.source_query
        return partition_json

    def _find_table_of(self, partition: Partition) -> Optional[str]:
        for table in self.tables.values():
            if table.partitions.get(partition.name) is partition:
                return table.name
        return None

    def _table_of(self, partition: Partition) -> str:
        table_name = self._find_table_of(partition)
        if table_name is not None:
            return table_name
        raise StoreConnectionError(f"Partition {partition.name} is not attached to a table.")

    def _build_operations(self) -> List[Dict[str, Any]]:
        operations: List[Dict[str, Any]] = []
        for table_name, name in self._deleted:
            operations.append({"delete": {"object": self._object(table_name, name)}})

        written: Set[Tuple[str, str]] = set()
        for table_name, name in self._created:
            partition = self.tables[table_name].partitions.get(name)
            if partition is None or (table_name, name) in written:
                continue
            written.add((table_name, name))
            operations.append(
                {
                    "createOrReplace": {
                        "object": self._object(table_name, name),
                        "partition": self._partition_to_json(partition),
                    }
                }
            )

        for refresh_type, obj in self._refresh_objects:
            operations.append({"refresh": {"type": refresh_type.value, "objects": [obj]}})
        return operations

    def _object(self, table_name: str, partition_name: str) -> Dict[str, str]:
        return {
            "database": self._database_name,
            "table": table_name,
            "partition": partition_name,
        }

    def _write_script(self, command: Dict[str, Any]) -> None:
        script_dir = self._script_dir or Path("tmsl")
        script_dir.mkdir(parents=True, exist_ok=True)
        path = script_dir / f"{self._database_name}_{len(self.scripts) + 1:04d}.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(command, f, indent=2)
        self.scripts.append(path)
        logger.debug("Wrote TMSL script %s", path)

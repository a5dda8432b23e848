"""Factory for creating PartitionStore instances."""

from typing import Any, Dict, Optional

from src.domain.interfaces import PartitionStore
from src.infrastructure.stores.bim_file_store import BimFileStore
from src.infrastructure.stores.in_memory_store import InMemoryPartitionStore


class PartitionStoreFactory:
    """Factory for creating PartitionStore instances based on configuration."""

    DEFAULT_KIND = "memory"

    @staticmethod
    def create(config: Optional[Dict[str, Any]] = None) -> PartitionStore:
        """Create PartitionStore instance from configuration.

        Args:
            config: Configuration dictionary. Reads 'store.kind' or uses default.
                Examples:
                - {"store": {"kind": "bim", "script_dir": "out/tmsl"}}
                - {"store": {"kind": "memory", "databases": {"db": {"Sales": ["Sales"]}}}}
                - {}  # defaults to memory
                - None  # defaults to memory

        Returns:
            PartitionStore instance (defaults to InMemoryPartitionStore).

        Raises:
            ValueError: If store kind is unknown.
        """
        if config is None:
            config = {}

        store_config = config.get("store") or {}
        kind = store_config.get("kind", PartitionStoreFactory.DEFAULT_KIND)

        if kind == "memory":
            return InMemoryPartitionStore.from_partition_names(store_config.get("databases") or {})

        if kind == "bim":
            return BimFileStore(
                script_dir=store_config.get("script_dir"),
                save_model=store_config.get("save_model", True),
            )

        raise ValueError(f"Unknown partition store kind: {kind}")

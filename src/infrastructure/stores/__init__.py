"""Partition store adapters."""

from src.infrastructure.stores.bim_file_store import BimFileStore
from src.infrastructure.stores.in_memory_store import InMemoryPartitionStore
from src.infrastructure.stores.partition_store_factory import PartitionStoreFactory

__all__ = [
    "BimFileStore",
    "InMemoryPartitionStore",
    "PartitionStoreFactory",
]

"""Domain exceptions."""


class PartitionProcessingError(RuntimeError):
    """Base class for errors that abort a processing run."""


class StoreConnectionError(PartitionProcessingError):
    """Server, database, table or template partition could not be reached."""


class FormatError(PartitionProcessingError):
    """Partition key does not match the width of its granularity."""


class ProcessingError(PartitionProcessingError):
    """A refresh or commit was reported as failed by the store."""

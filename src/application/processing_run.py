"""Per-run processing context."""

from dataclasses import dataclass, field

from ..domain.interfaces import MessageLogger, PartitionStore, PendingRefresh, RefreshTarget
from ..domain.models import ModelConfiguration, ProcessingResult, RefreshType

INDENT = " " * 3


@dataclass
class ProcessingRun:
    """State of one processing run, passed explicitly through every step."""

    config: ModelConfiguration
    store: PartitionStore
    message_logger: MessageLogger
    result: ProcessingResult = field(default_factory=ProcessingResult)

    def log(self, message: str, indented: bool = False) -> None:
        self.message_logger(f"{INDENT if indented else ''}{message}", self.config)

    def refresh(self, target: RefreshTarget, refresh_type: RefreshType) -> PendingRefresh:
        handle = self.store.request_refresh(target, refresh_type)
        self.result.refreshed.append(handle.target_name)
        return handle

    def commit(self, sequential: bool = False) -> int:
        settled = self.store.commit()
        self.result.commit_count += 1
        if sequential:
            self.result.sequential_commit_count += 1
        return settled

    @property
    def incremental_refresh_type(self) -> RefreshType:
        """Refresh type for incremental processing of a table or partition."""
        return RefreshType.FULL if self.config.incremental_online else RefreshType.DATA_ONLY

    @property
    def needs_recalculation(self) -> bool:
        """Whether DataOnly refreshes leave the model needing a final Calculate."""
        return self.config.initial_setup or not self.config.incremental_online

    def summary(self) -> str:
        result = self.result
        return (
            f"removed={len(result.removed)} created={len(result.created)} "
            f"refreshed={len(result.refreshed)} commits={result.commit_count}"
        )


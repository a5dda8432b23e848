"""Partition processing use case."""

import logging
from datetime import datetime
from typing import List, Optional

from ..domain.exceptions import StoreConnectionError
from ..domain.interfaces import MessageLogger, PartitionStore
from ..domain.models import (
    ModelConfiguration,
    Partition,
    PartitioningConfiguration,
    ProcessingResult,
    RefreshType,
    Table,
    TableConfiguration,
)
from ..infrastructure.message_logger import log_message
from ..infrastructure.partitioning import (
    GranularityPolicy,
    GranularityPolicyFactory,
    build_empty_source_query,
    classify_existing,
    compute_removals,
)
from .processing_run import ProcessingRun

logger = logging.getLogger(__name__)

TIME_FORMAT = "%I:%M:%S %p"

REFRESH_LABELS = {
    RefreshType.FULL: "Full",
    RefreshType.DATA_ONLY: "DataOnly",
    RefreshType.CALCULATE: "Calculate",
}


class PartitionProcessingUseCase:
    """Orchestrates rolling-window partition maintenance for a tabular model.

    Per table, partitions older than the window are removed, missing ones are
    created from the template partition and the processing window is
    refreshed. Commits happen per table, or once per run when tables are
    processed in parallel. Initial setup refreshes and commits one partition
    at a time to bound memory on the server.
    """

    def __init__(self, store: PartitionStore, message_logger: Optional[MessageLogger] = None):
        """Initialize partition processing use case.

        Args:
            store: PartitionStore connected to for the run.
            message_logger: Receives run output lines (defaults to logging).
        """
        self._store = store
        self._message_logger = message_logger or log_message

    @property
    def store(self):
        """Get store instance (for testing)."""
        return self._store

    def execute(self, config: ModelConfiguration) -> ProcessingResult:
        """Run partition processing for a model.

        Errors abort the run; they are logged and reported in the result
        rather than raised. The store is disconnected in every case.

        Args:
            config: Model configuration for the run.

        Returns:
            ProcessingResult describing the actions taken.
        """
        run = ProcessingRun(config=config, store=self._store, message_logger=self._message_logger)
        logger.info("Starting partition processing for model: %s", config.model_id)

        try:
            self._execute_processing(run)
            run.result.success = True
            logger.info("Partition processing completed: %s", run.summary())
        except Exception as e:  # noqa: BLE001
            run.result.error = e
            self._log_exception(run, e)
        finally:
            self._disconnect()

        return run.result

    def _execute_processing(self, run: ProcessingRun) -> None:
        """Execute processing steps without error handling."""
        run.store.connect(run.config.connection)

        run.log(f"Start: {datetime.now().strftime(TIME_FORMAT)}")
        run.log(f"Server: {run.config.connection.server}")
        run.log(f"Database: {run.config.connection.database}")

        for table_configuration in run.config.table_configurations:
            self._process_table(run, table_configuration)

        self._execute_final_operations(run)

        run.log("")
        run.log(f"Finish: {datetime.now().strftime(TIME_FORMAT)}")

    def _process_table(self, run: ProcessingRun, table_configuration: TableConfiguration) -> None:
        """Process one table and commit it unless tables run in parallel."""
        table_name = table_configuration.analysis_services_table
        table = run.store.find_table(table_name)
        if table is None:
            raise StoreConnectionError(f"Could not connect to table {table_name}.")

        if not table_configuration.partitioning_configurations:
            self._process_whole_table(run, table)
        else:
            self._process_partitioned_table(run, table, table_configuration)

        if not run.config.incremental_parallel_tables:
            run.log(f"Save changes for table {table_name} ...", True)
            run.commit()

    def _process_whole_table(self, run: ProcessingRun, table: Table) -> None:
        header = f"Non-partitioned processing for table {table.name}"
        run.log("")
        run.log(header)
        run.log("-" * len(header))

        refresh_type = run.incremental_refresh_type
        run.log(f"Process table {table.name} /{REFRESH_LABELS[refresh_type]}", True)
        run.refresh(table, refresh_type)

    def _process_partitioned_table(
        self, run: ProcessingRun, table: Table, table_configuration: TableConfiguration
    ) -> None:
        template = run.store.find_partition(table, table.name)
        if template is None:
            raise StoreConnectionError(
                f"Table {table.name} does not contain a partition with the same name "
                "to act as the template partition."
            )

        for partitioning_configuration in table_configuration.partitioning_configurations:
            self._process_partitioning_configuration(
                run, table, template, partitioning_configuration
            )

        if run.config.initial_setup:
            # Same source table assumed for every partitioning configuration
            source_table = table_configuration.partitioning_configurations[0].source_table_name
            run.store.set_partition_source_query(template, build_empty_source_query(source_table))
            run.refresh(template, RefreshType.DATA_ONLY)

    def _process_partitioning_configuration(
        self,
        run: ProcessingRun,
        table: Table,
        template: Partition,
        partitioning: PartitioningConfiguration,
    ) -> None:
        header = f"Rolling-window partitioning for table {table.name}"
        run.log("")
        run.log(header)
        run.log("-" * len(header))

        policy = GranularityPolicyFactory.create(partitioning.granularity)
        existing = classify_existing(
            run.store.list_partition_names(table), partitioning.granularity
        )
        target = policy.generate_period_sequence(
            partitioning.max_date, partitioning.number_of_partitions_full
        )
        if run.config.initial_setup:
            for_processing = target
        else:
            for_processing = policy.generate_period_sequence(
                partitioning.max_date,
                partitioning.number_of_partitions_for_incremental_process,
            )

        self._display_partition_range(run, policy, existing, current=True)
        self._display_partition_range(run, policy, target, current=False)
        run.log("")
        run.log("=>Actions & progress:")

        for key in compute_removals(existing, target):
            run.log(f"Remove old partition       {policy.format_for_display(key)}", True)
            run.store.remove_partition(table, key)
            run.result.removed.append(key)

        for key in for_processing:
            self._process_partition_key(run, table, template, partitioning, policy, key)

    def _process_partition_key(
        self,
        run: ProcessingRun,
        table: Table,
        template: Partition,
        partitioning: PartitioningConfiguration,
        policy: GranularityPolicy,
        key: str,
    ) -> None:
        display_key = policy.format_for_display(key)
        partition = run.store.find_partition(table, key)

        if partition is None:
            partition = run.store.copy_partition_definition(template, key)
            run.store.set_partition_source_query(
                partition,
                policy.build_source_query(
                    partitioning.source_table_name, partitioning.source_partition_column, key
                ),
            )
            run.store.add_partition(table, partition)
            run.result.created.append(key)
            run.log(f"Create new partition       {display_key}", True)

            if not run.config.initial_setup:
                self._incremental_process_partition(run, partition, display_key)
        elif not run.config.initial_setup:
            self._incremental_process_partition(run, partition, display_key)

        if run.config.initial_setup:
            if not partition.is_processed:
                # One partition at a time so the server does not run out of memory
                run.log(f"Sequentially process       {display_key} /DataOnly", True)
                run.refresh(partition, RefreshType.DATA_ONLY)
                run.commit(sequential=True)
            else:
                run.log(f"Partition {display_key} already exists and is processed", True)

    def _incremental_process_partition(
        self, run: ProcessingRun, partition: Partition, display_key: str
    ) -> None:
        refresh_type = run.incremental_refresh_type
        run.log(f"Parallel process partition {display_key} /{REFRESH_LABELS[refresh_type]}", True)
        run.refresh(partition, refresh_type)

    def _execute_final_operations(self, run: ProcessingRun) -> None:
        """Commit outstanding work and bring the model back online if needed."""
        run.log("")
        run.log("Final operations")
        run.log("-" * len("Final operations"))

        if run.config.incremental_parallel_tables:
            run.log("Save changes ...", True)
            run.commit()

        if run.needs_recalculation:
            run.log("Recalc model to bring back online ...", True)
            run.refresh(None, RefreshType.CALCULATE)
            run.commit()

    @staticmethod
    def _display_partition_range(
        run: ProcessingRun, policy: GranularityPolicy, keys: List[str], current: bool
    ) -> None:
        run.log("")
        if not keys:
            run.log("=>Table not yet partitioned")
            return

        label = "Current" if current else "New"
        run.log(f"=>{label} partition range ({policy.granularity.name.capitalize()}):")
        run.log(f"MIN partition:   {policy.format_for_display(keys[0])}", True)
        run.log(f"MAX partition:   {policy.format_for_display(keys[-1])}", True)
        run.log(f"Partition count: {len(keys)}", True)

    def _log_exception(self, run: ProcessingRun, error: BaseException) -> None:
        logger.error("Partition processing failed: %s", error, exc_info=True)
        run.log("")
        run.log(f"Exception occurred: {datetime.now().strftime(TIME_FORMAT)}")
        run.log(f"Exception message: {error}")
        cause = error.__cause__ or error.__context__
        if cause is not None:
            run.log(f"Inner exception message: {cause}")

    def _disconnect(self) -> None:
        """Release the connection; failures here are ignored."""
        try:
            self._store.disconnect()
        except Exception as e:  # noqa: BLE001
            logger.debug("Ignoring error during disconnect: %s", e)

"""Tests for partition processing use case."""

from datetime import date
from unittest.mock import Mock

import pytest

from src.application.partition_processing_use_case import PartitionProcessingUseCase
from src.domain.exceptions import ProcessingError, StoreConnectionError
from src.domain.models import ConnectionInfo, Granularity, PartitionState
from tests.builders import (
    DATABASE,
    ModelConfigurationBuilder,
    PartitioningConfigurationBuilder,
    StoreBuilder,
)

TABLE = "Internet Sales"


def _monthly(full: int = 3, incremental: int = 1):
    return PartitioningConfigurationBuilder().with_window(full, incremental).build()


class TestPartitionProcessingUseCase:
    """Tests for PartitionProcessingUseCase class."""

    @pytest.fixture
    def lines(self):
        """Collect run output lines."""
        return []

    @pytest.fixture
    def message_logger(self, lines):
        return lambda message, config: lines.append(message)

    def _run(self, store, config, message_logger=None):
        return PartitionProcessingUseCase(store=store, message_logger=message_logger).execute(config)

    def test_incremental_run_removes_old_and_creates_new_partitions(self):
        """Test the rolling-window example: remove two, create one."""
        store = StoreBuilder().with_table(TABLE, ["202311", "202312", "202401", "202402"]).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly(3, 1)).build()

        result = self._run(store, config)

        assert result.success
        assert result.removed == ["202311", "202312"]
        assert result.created == ["202403"]
        assert result.refreshed == ["202403"]
        assert sorted(store.database_tables(DATABASE)[TABLE].partitions) == sorted(
            [TABLE, "202401", "202402", "202403"]
        )

    def test_incremental_run_refreshes_whole_incremental_window(self):
        """Test that existing partitions in the incremental window are refreshed."""
        store = StoreBuilder().with_table(TABLE, ["202401", "202402"]).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly(3, 3)).build()

        result = self._run(store, config)

        assert result.created == ["202403"]
        assert result.refreshed == ["202401", "202402", "202403"]

    def test_new_partition_copies_template_with_source_query(self):
        """Test that new partitions get a source query filtering their period."""
        store = StoreBuilder().with_table(TABLE).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly(1, 1)).build()
        template = store.database_tables(DATABASE)[TABLE].partitions[TABLE]
        template.definition = {"dataSource": "AdventureWorksDW"}

        self._run(store, config)

        partition = store.database_tables(DATABASE)[TABLE].partitions["202403"]
        assert partition.source_query == (
            "SELECT * FROM [dbo].[FactInternetSales] "
            "WHERE FLOOR(OrderDateKey / 100) = 202403 ORDER BY OrderDateKey"
        )
        assert partition.definition == {"dataSource": "AdventureWorksDW"}

    def test_incremental_online_uses_full_refresh_without_recalculation(self):
        """Test that online incremental runs refresh Full and skip the final recalc."""
        store = StoreBuilder().with_table(TABLE).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly()).build()

        result = self._run(store, config)

        assert result.commit_count == 1
        partition = store.database_tables(DATABASE)[TABLE].partitions["202403"]
        assert partition.state is PartitionState.READY

    def test_incremental_offline_uses_data_only_and_recalculates(self, lines, message_logger):
        """Test that offline incremental runs refresh DataOnly then recalc the model."""
        store = StoreBuilder().with_table(TABLE).build()
        config = (
            ModelConfigurationBuilder()
            .incremental_online(False)
            .with_table(TABLE, _monthly())
            .build()
        )

        result = self._run(store, config, message_logger)

        assert result.success
        assert result.refreshed == ["202403", "Model"]
        assert result.commit_count == 2
        assert "   Parallel process partition 2024-03 /DataOnly" in lines
        assert "   Recalc model to bring back online ..." in lines
        partition = store.database_tables(DATABASE)[TABLE].partitions["202403"]
        assert partition.state is PartitionState.READY

    def test_second_incremental_run_is_idempotent(self):
        """Test that rerunning with unchanged inputs creates and removes nothing."""
        store = StoreBuilder().with_table(TABLE, ["202310", "202401"]).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly(3, 2)).build()

        first = self._run(store, config)
        second = self._run(store, config)

        assert first.created == ["202402", "202403"]
        assert first.removed == ["202310"]
        assert second.success
        assert second.created == []
        assert second.removed == []

    def test_keys_after_window_are_kept(self):
        """Test that partitions newer than max_date survive a run."""
        store = StoreBuilder().with_table(TABLE, ["202406"]).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly()).build()

        result = self._run(store, config)

        assert result.removed == []
        assert "202406" in store.database_tables(DATABASE)[TABLE].partitions

    def test_initial_setup_commits_each_partition_sequentially(self, lines, message_logger):
        """Test that initial setup refreshes and commits one partition at a time."""
        store = StoreBuilder().with_table(TABLE).build()
        config = (
            ModelConfigurationBuilder().initial_setup().with_table(TABLE, _monthly(3, 1)).build()
        )

        result = self._run(store, config, message_logger)

        assert result.success
        assert result.created == ["202401", "202402", "202403"]
        assert result.sequential_commit_count == 3
        # 3 sequential, 1 for the table, 1 for the final recalc
        assert result.commit_count == 5
        assert "   Sequentially process       2024-01 /DataOnly" in lines
        assert "   Recalc model to bring back online ..." in lines

    def test_initial_setup_empties_template_partition(self):
        """Test that the template partition ends initial setup with an empty source."""
        store = StoreBuilder().with_table(TABLE).build()
        config = ModelConfigurationBuilder().initial_setup().with_table(TABLE, _monthly()).build()

        result = self._run(store, config)

        template = store.database_tables(DATABASE)[TABLE].partitions[TABLE]
        assert template.source_query == "SELECT * FROM [dbo].[FactInternetSales] WHERE 0=1"
        assert TABLE in result.refreshed

    def test_initial_setup_skips_processed_partitions(self, lines, message_logger):
        """Test that already processed partitions are not reprocessed during setup."""
        store = (
            StoreBuilder()
            .with_table(TABLE, ["202401", "202402"])
            .with_processed("202401")
            .build()
        )
        config = (
            ModelConfigurationBuilder().initial_setup().with_table(TABLE, _monthly(3, 1)).build()
        )

        result = self._run(store, config, message_logger)

        assert result.created == ["202403"]
        assert result.sequential_commit_count == 2
        assert "   Partition 2024-01 already exists and is processed" in lines

    def test_initial_setup_rerun_commits_nothing_sequentially(self):
        """Test that a completed initial setup is a no-op when repeated."""
        store = StoreBuilder().with_table(TABLE).build()
        config = ModelConfigurationBuilder().initial_setup().with_table(TABLE, _monthly()).build()

        self._run(store, config)
        second = self._run(store, config)

        assert second.success
        assert second.created == []
        assert second.sequential_commit_count == 0

    def test_non_partitioned_table_is_refreshed_whole(self, lines, message_logger):
        """Test that tables without partitioning configuration refresh at table level."""
        store = StoreBuilder().with_table("Currency").build()
        config = ModelConfigurationBuilder().with_table("Currency").build()

        result = self._run(store, config, message_logger)

        assert result.refreshed == ["Currency"]
        assert "   Process table Currency /Full" in lines
        assert "   Save changes for table Currency ..." in lines

    def test_non_partitioned_table_offline_is_refreshed_data_only(self, lines, message_logger):
        store = StoreBuilder().with_table("Currency").build()
        config = ModelConfigurationBuilder().incremental_online(False).with_table("Currency").build()

        self._run(store, config, message_logger)

        assert "   Process table Currency /DataOnly" in lines

    def test_sequential_tables_commit_per_table(self):
        """Test that each table is committed when tables are not processed in parallel."""
        store = StoreBuilder().with_table(TABLE).with_table("Currency").build()
        config = (
            ModelConfigurationBuilder().with_table(TABLE, _monthly()).with_table("Currency").build()
        )

        result = self._run(store, config)

        assert result.commit_count == 2

    def test_parallel_tables_commit_once(self, lines, message_logger):
        """Test that parallel table processing defers to a single commit."""
        store = StoreBuilder().with_table(TABLE).with_table("Currency").build()
        config = (
            ModelConfigurationBuilder()
            .parallel_tables()
            .with_table(TABLE, _monthly())
            .with_table("Currency")
            .build()
        )

        result = self._run(store, config, message_logger)

        assert result.commit_count == 1
        assert "   Save changes ..." in lines
        assert not any(line.startswith("   Save changes for table") for line in lines)

    def test_multiple_partitioning_configurations(self):
        """Test that each configuration of a table is processed in order."""
        daily = (
            PartitioningConfigurationBuilder()
            .with_granularity(Granularity.DAILY)
            .with_max_date(date(2024, 3, 31))
            .with_window(2, 2)
            .build()
        )
        store = StoreBuilder().with_table(TABLE).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly(1, 1), daily).build()

        result = self._run(store, config)

        assert result.created == ["202403", "20240330", "20240331"]

    def test_displays_partition_ranges(self, lines, message_logger):
        """Test the current and new range summaries."""
        store = StoreBuilder().with_table(TABLE, ["202401"]).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly()).build()

        self._run(store, config, message_logger)

        assert "=>Current partition range (Monthly):" in lines
        assert "=>New partition range (Monthly):" in lines
        assert "   MIN partition:   2024-01" in lines
        assert "   MAX partition:   2024-03" in lines
        assert "   Partition count: 3" in lines

    def test_displays_unpartitioned_table(self, lines, message_logger):
        store = StoreBuilder().with_table(TABLE).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly()).build()

        self._run(store, config, message_logger)

        assert "=>Table not yet partitioned" in lines

    def test_missing_table_aborts_run(self, lines, message_logger):
        """Test that a missing table aborts before any later table is touched."""
        store = StoreBuilder().with_table("Currency").build()
        config = (
            ModelConfigurationBuilder().with_table(TABLE, _monthly()).with_table("Currency").build()
        )

        result = self._run(store, config, message_logger)

        assert not result.success
        assert isinstance(result.error, StoreConnectionError)
        assert result.refreshed == []
        assert f"Exception message: Could not connect to table {TABLE}." in lines

    def test_missing_template_partition_aborts_run(self):
        """Test that a partitioned table without template partition aborts the run."""
        store = StoreBuilder().with_table(TABLE).build()
        del store.database_tables(DATABASE)[TABLE].partitions[TABLE]
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly()).build()

        result = self._run(store, config)

        assert not result.success
        assert "template partition" in str(result.error)

    def test_unknown_database_aborts_run(self):
        store = StoreBuilder().with_table(TABLE).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly()).build()
        config.connection = ConnectionInfo(server="localhost", database="Missing")

        result = self._run(store, config)

        assert not result.success
        assert str(result.error) == "Could not connect to database Missing."

    def test_refresh_failure_logs_inner_exception(self, lines, message_logger):
        """Test that commit failures are reported with their underlying cause."""

        def fail(handle):
            raise OSError("source unavailable")

        store = StoreBuilder().with_table(TABLE).with_refresh_hook(fail).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly()).build()

        result = self._run(store, config, message_logger)

        assert not result.success
        assert isinstance(result.error, ProcessingError)
        assert "Inner exception message: source unavailable" in lines

    def test_failure_stops_sequential_processing(self):
        """Test that no partition is processed after the first failed commit."""
        calls = []

        def fail_second(handle):
            calls.append(handle.target_name)
            if len(calls) == 2:
                raise RuntimeError("out of memory")

        store = StoreBuilder().with_table(TABLE).with_refresh_hook(fail_second).build()
        config = (
            ModelConfigurationBuilder().initial_setup().with_table(TABLE, _monthly(3, 1)).build()
        )

        result = self._run(store, config)

        assert not result.success
        assert calls == ["202401", "202402"]
        assert result.created == ["202401", "202402"]

    def test_store_is_disconnected_after_failure(self):
        store = StoreBuilder().build()
        store.disconnect = Mock()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly()).build()

        result = self._run(store, config)

        assert not result.success
        store.disconnect.assert_called_once()

    def test_disconnect_failure_is_ignored(self):
        """Test that errors during disconnect do not fail a successful run."""
        store = StoreBuilder().with_table(TABLE).build()
        store.disconnect = Mock(side_effect=RuntimeError("connection reset"))
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly()).build()

        result = self._run(store, config)

        assert result.success
        store.disconnect.assert_called_once()

    def test_run_header_does_not_include_password(self, lines, message_logger):
        store = StoreBuilder().with_table(TABLE).build()
        config = ModelConfigurationBuilder().with_table(TABLE, _monthly()).build()
        config.connection.password = "s3cret"

        self._run(store, config, message_logger)

        assert "Server: localhost" in lines
        assert "Database: AdventureWorks" in lines
        assert not any("s3cret" in line for line in lines)

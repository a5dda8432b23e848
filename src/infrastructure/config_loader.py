"""Concrete implementation of config loader."""

import os
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict

import yaml
from dateutil import parser as date_parser

from ..domain.interfaces import ConfigLoader
from ..domain.models import (
    ConnectionInfo,
    Granularity,
    ModelConfiguration,
    PartitioningConfiguration,
    TableConfiguration,
)


class YamlConfigLoader(ConfigLoader):
    """Loads model configurations from YAML files."""

    def __init__(self, config_dir: str = "config/models") -> None:
        """Initialize YAML config loader.

        Args:
            config_dir: Directory path containing YAML configuration files.
        """
        self._config_dir = Path(config_dir)

    def load_raw_config(self, model_id: str) -> Dict[str, Any]:
        """Load the configuration document for a model from YAML.

        Args:
            model_id: Identifier of the model configuration to load.

        Returns:
            Dictionary containing the model configuration.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
        """
        config_file = self._config_dir / f"{model_id}.yml"
        if not config_file.exists():
            config_file = self._config_dir / f"{model_id}.yaml"

        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found for model: {model_id}")

        with open(config_file, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def load_model_config(self, model_id: str) -> ModelConfiguration:
        """Load and validate the configuration for a model.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ValueError: If the configuration is invalid.
        """
        raw = self.load_raw_config(model_id)
        raw.setdefault("model_id", model_id)
        return build_model_configuration(raw)


def build_model_configuration(raw: Dict[str, Any]) -> ModelConfiguration:
    """Build a ModelConfiguration from a configuration dictionary.

    Example:
        model_id: adventure_works
        connection: {server: localhost, database: AdventureWorks}
        initial_setup: false
        tables:
          - name: Internet Sales
            partitioning:
              - source_table: "[dbo].[FactInternetSales]"
                source_column: OrderDateKey
                granularity: monthly
                max_date: 2024-03-31
                number_of_partitions_full: 36
                number_of_partitions_for_incremental_process: 3

    Raises:
        ValueError: If a required setting is missing or invalid.
    """
    _require_mapping(raw, "Model configuration")
    connection_config = raw.get("connection") or {}
    _require_mapping(connection_config, "connection")
    if not connection_config.get("server") or not connection_config.get("database"):
        raise ValueError("connection must define 'server' and 'database'")

    integrated_auth = bool(connection_config.get("integrated_auth", True))
    password = connection_config.get("password")
    password_env = connection_config.get("password_env")
    if password_env:
        password = os.environ.get(password_env)
    if not integrated_auth and not connection_config.get("user_name"):
        raise ValueError("connection.user_name is required without integrated_auth")

    connection = ConnectionInfo(
        server=str(connection_config["server"]),
        database=str(connection_config["database"]),
        integrated_auth=integrated_auth,
        user_name=connection_config.get("user_name"),
        password=password,
    )

    return ModelConfiguration(
        connection=connection,
        initial_setup=bool(raw.get("initial_setup", False)),
        incremental_online=bool(raw.get("incremental_online", True)),
        incremental_parallel_tables=bool(raw.get("incremental_parallel_tables", False)),
        table_configurations=[_build_table(t) for t in raw.get("tables") or []],
        model_id=str(raw.get("model_id", "default")),
    )


def _build_table(raw: Dict[str, Any]) -> TableConfiguration:
    _require_mapping(raw, "Each table entry")
    if not raw.get("name"):
        raise ValueError("Each table must define 'name'")
    return TableConfiguration(
        analysis_services_table=raw["name"],
        partitioning_configurations=[_build_partitioning(p) for p in raw.get("partitioning") or []],
    )


def _build_partitioning(raw: Dict[str, Any]) -> PartitioningConfiguration:
    _require_mapping(raw, "Each partitioning entry")
    required = (
        "source_table",
        "source_column",
        "granularity",
        "max_date",
        "number_of_partitions_full",
    )
    missing = [name for name in required if raw.get(name) in (None, "")]
    if missing:
        raise ValueError(f"Partitioning configuration missing: {', '.join(missing)}")

    full = int(raw["number_of_partitions_full"])
    return PartitioningConfiguration(
        source_table_name=raw["source_table"],
        source_partition_column=raw["source_column"],
        granularity=Granularity.parse(raw["granularity"]),
        max_date=parse_max_date(raw["max_date"]),
        number_of_partitions_full=full,
        number_of_partitions_for_incremental_process=int(
            raw.get("number_of_partitions_for_incremental_process", full)
        ),
    )


def _require_mapping(value: Any, what: str) -> None:
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a mapping, got: {value!r}")


def parse_max_date(value: Any) -> date:
    """Parse a max date setting: a date, an ISO date string, or "today".

    Raises:
        ValueError: If the value cannot be parsed as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.lower() == "today":
        return date.today()
    try:
        return date_parser.isoparse(text).date()
    except (ValueError, OverflowError):
        raise ValueError(f"Invalid max_date: {value}") from None

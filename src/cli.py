"""Command-line interface for running partition processing."""

import argparse
import logging
import sys
from typing import Any, Dict, Optional

import yaml

from src.application.partition_processing_use_case import PartitionProcessingUseCase
from src.domain.models import ModelConfiguration
from src.infrastructure.config_loader import YamlConfigLoader, build_model_configuration
from src.infrastructure.stores import PartitionStoreFactory


def _get_raw_config(model_id: str, config_dir: str) -> Dict[str, Any]:
    """Load the configuration document for a model.

    Args:
        model_id: Model identifier.
        config_dir: Directory containing model configuration files.

    Returns:
        Configuration dictionary.
    """
    config = YamlConfigLoader(config_dir).load_raw_config(model_id)
    config.setdefault("model_id", model_id)
    return config


def _apply_overrides(
    config: ModelConfiguration, initial_setup: Optional[bool], parallel_tables: Optional[bool]
) -> ModelConfiguration:
    """Apply command-line overrides to a model configuration."""
    if initial_setup is not None:
        config.initial_setup = initial_setup
    if parallel_tables is not None:
        config.incremental_parallel_tables = parallel_tables
    return config


def _execute_processing(
    model_id: str,
    config_dir: str = "config/models",
    initial_setup: Optional[bool] = None,
    parallel_tables: Optional[bool] = None,
) -> int:
    """Execute partition processing for a model without error handling.

    Args:
        model_id: Model identifier.
        config_dir: Directory containing model configuration files.
        initial_setup: Overrides the configured initial_setup when set.
        parallel_tables: Overrides the configured incremental_parallel_tables when set.

    Returns:
        Exit code (0 for success, 1 if the run was aborted).

    Raises:
        FileNotFoundError: If configuration file not found.
        yaml.YAMLError: If YAML parsing fails.
        ValueError: If configuration is invalid.
    """
    raw_config = _get_raw_config(model_id, config_dir)
    config = _apply_overrides(
        build_model_configuration(raw_config), initial_setup, parallel_tables
    )
    store = PartitionStoreFactory.create(raw_config)

    result = PartitionProcessingUseCase(store=store).execute(config)

    if not result.success:
        print(f"✗ Partition processing failed: {result.error}", file=sys.stderr)
        return 1

    print(
        f"✓ Partition processing completed. Created {len(result.created)}, "
        f"removed {len(result.removed)}, refreshed {len(result.refreshed)} object(s)."
    )
    return 0


def _handle_error(error: BaseException) -> int:
    """Handle errors and return appropriate exit code.

    Args:
        error: Exception or BaseException that was raised.

    Returns:
        Exit code (1 for errors, 130 for KeyboardInterrupt).
    """
    if isinstance(error, FileNotFoundError):
        print(f"✗ Configuration file not found: {error}", file=sys.stderr)
        return 1
    if isinstance(error, yaml.YAMLError):
        print(f"✗ Invalid YAML configuration: {error}", file=sys.stderr)
        return 1
    if isinstance(error, ValueError):
        print(f"✗ Configuration error: {error}", file=sys.stderr)
        return 1
    if isinstance(error, RuntimeError):
        print(f"✗ Runtime error: {error}", file=sys.stderr)
        return 1
    if isinstance(error, OSError):
        print(f"✗ I/O error: {error}", file=sys.stderr)
        return 1
    if isinstance(error, TypeError):
        print(f"✗ Type error: {error}", file=sys.stderr)
        return 1
    if isinstance(error, KeyboardInterrupt):
        print("\n✗ Operation cancelled by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT

    # Fallback for unexpected errors
    print(f"✗ Unexpected error: {error}", file=sys.stderr)
    return 1


def run_processing(
    model_id: str,
    config_dir: str = "config/models",
    initial_setup: Optional[bool] = None,
    parallel_tables: Optional[bool] = None,
) -> int:
    """Run partition processing for a model with error handling.

    Returns:
        Exit code (0 for success, 1 for error, 130 for KeyboardInterrupt).
    """
    try:
        return _execute_processing(model_id, config_dir, initial_setup, parallel_tables)
    except KeyboardInterrupt as error:
        return _handle_error(error)
    except (
        FileNotFoundError,
        yaml.YAMLError,
        ValueError,
        RuntimeError,
        OSError,
        TypeError,
        AttributeError,
    ) as error:
        return _handle_error(error)


def main():
    """Main entry point for CLI."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    parser = argparse.ArgumentParser(
        description="Maintain rolling-window partitions of a tabular model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "model_id",
        type=str,
        help="Model identifier (e.g., 'adventure_works')",
    )
    parser.add_argument(
        "--config-dir",
        default="config/models",
        help="Directory containing model configuration files",
    )
    setup_group = parser.add_mutually_exclusive_group()
    setup_group.add_argument(
        "--initial-setup",
        dest="initial_setup",
        action="store_true",
        default=None,
        help="Create and sequentially process the full window",
    )
    setup_group.add_argument(
        "--incremental",
        dest="initial_setup",
        action="store_false",
        help="Process only the incremental window",
    )
    parser.add_argument(
        "--parallel-tables",
        dest="parallel_tables",
        action="store_true",
        default=None,
        help="Commit once for all tables instead of per table",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.info("Verbose logging enabled")

    exit_code = run_processing(
        args.model_id,
        config_dir=args.config_dir,
        initial_setup=args.initial_setup,
        parallel_tables=args.parallel_tables,
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

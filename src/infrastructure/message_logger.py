"""Message logger forwarding run output to the logging module."""

import logging

from src.domain.models import ModelConfiguration

logger = logging.getLogger(__name__)


def log_message(message: str, model_configuration: ModelConfiguration) -> None:
    """Emit one run line through ``logging``.

    Args:
        message: Line to log (blank lines are kept as separators).
        model_configuration: Configuration of the run emitting the line.
    """
    logger.info("[%s] %s", model_configuration.model_id, message)

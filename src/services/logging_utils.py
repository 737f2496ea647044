"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across purchase, production and stock
operations.

Usage:
    from src.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="commit_production",
        outcome="success",
        production_id=123,
        recipe_id=45,
    )
"""

import logging
from typing import Any

LOGGER_PREFIX = "bakery_ledger.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger named 'bakery_ledger.services.<module>'.

    Example:
        >>> get_service_logger("src.services.production_service").name
        'bakery_ledger.services.production_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via ``extra`` so handlers can pick the fields up
    individually; the message itself is ``"<operation>: <outcome>"``.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "apply_purchase")
        outcome: Outcome description (e.g., "success", "shortage")
        level: Log level (default: INFO)
        **context: Additional context fields (entity IDs, quantities, etc.)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)

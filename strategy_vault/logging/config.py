"""
Centralized logging configuration for the strategy vault.

All components log through structlog so that purchase, ownership and
execution events carry the same structured fields. Wallet addresses are
logged case-folded; encrypted payloads are never logged, only their size.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_access_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger bound for purchase and ownership decisions.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for access-control events
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="access_control",
        audit_trail=True
    )


def get_execution_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger bound for task submission and status lookups.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for execution events
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="execution",
        audit_trail=True
    )


def log_access_decision(
    logger: FilteringBoundLogger,
    strategy_id: str,
    address: str,
    granted: bool,
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log an ownership gate decision with standardized format.

    Args:
        logger: Structlog logger instance
        strategy_id: Strategy being accessed
        address: Case-folded wallet address of the caller
        granted: Whether access was granted
        reason: Detailed reason for the decision
        context: Additional context data
    """
    bound_logger = logger.bind(
        strategy_id=strategy_id,
        address=address,
        access_result="GRANTED" if granted else "DENIED",
        reason=reason,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if granted:
        bound_logger.info("Access granted")
    else:
        bound_logger.warning("Access denied")


def log_task_status(
    logger: FilteringBoundLogger,
    task_id: str,
    status: str,
    elapsed_seconds: Optional[float] = None,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log an observed task status with standardized format.

    Args:
        logger: Structlog logger instance
        task_id: Task being observed
        status: Observed status value
        elapsed_seconds: Time since submission, when known
        context: Additional context data
    """
    bound_logger = logger.bind(
        task_id=task_id,
        status=status,
        elapsed_seconds=elapsed_seconds,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if status == "failed":
        bound_logger.warning("Task status observed")
    else:
        bound_logger.info("Task status observed")

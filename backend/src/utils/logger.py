"""
Theme Park Wait Time Reconciler - Structured Logging
Provides JSON-formatted logging for log aggregation queries.
"""

import logging
import sys
from typing import Dict, Optional, TextIO
from pythonjsonlogger import jsonlogger

from .config import LOG_LEVEL, config

LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'


def setup_logger(name: str = __name__, level: Optional[str] = None,
                 stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Configure a JSON logger writing one object per line.

    Args:
        name: Logger name (typically __name__ from calling module)
        level: Level name; defaults to LOG_LEVEL, unknown names mean INFO
        stream: Output stream; defaults to stdout

    Returns:
        Configured logger instance. A logger that already has a handler
        is returned unchanged.

    Example:
        >>> logger = setup_logger(__name__)
        >>> logger.info("Park snapshots reconciled", extra={
        ...     "park_id": 6,
        ...     "dual": 41
        ... })
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    resolved = getattr(logging, (level or LOG_LEVEL).upper(), None)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT, datefmt='%Y-%m-%dT%H:%M:%S'))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    # Job output is consumed line by line; keep it off the root logger
    logger.propagate = False

    return logger


# Global logger instance
logger = setup_logger('waittime_reconciler')


def log_collection_start(park_count: int):
    """Log the start of a collection cycle."""
    logger.info("Wait time collection started", extra={
        "event_type": "collection_start",
        "park_count": park_count,
        "environment": config.environment
    })


def log_collection_complete(duration_seconds: float, parks_processed: int, readings_stored: int):
    """Log successful collection completion."""
    logger.info("Wait time collection completed", extra={
        "event_type": "collection_complete",
        "duration_seconds": duration_seconds,
        "parks_processed": parks_processed,
        "readings_stored": readings_stored
    })


def log_collection_error(error: Exception, park_id: int = None):
    """Log collection error with context."""
    logger.error("Wait time collection failed", extra={
        "event_type": "collection_error",
        "error_type": type(error).__name__,
        "error_message": str(error),
        "park_id": park_id
    }, exc_info=True)


def log_reconciliation(park_id: int, source_a_count: int, source_b_count: int, summary: Dict[str, int]):
    """Log the outcome of reconciling one park's snapshots."""
    logger.info("Park snapshots reconciled", extra={
        "event_type": "reconciliation",
        "park_id": park_id,
        "source_a_rides": source_a_count,
        "source_b_rides": source_b_count,
        **summary
    })


def log_prune_complete(table: str, deleted_rows: int, batches: int, remaining_older_rows: int):
    """Log a finished retention prune for one table."""
    logger.info("Retention prune completed", extra={
        "event_type": "prune_complete",
        "table": table,
        "deleted_rows": deleted_rows,
        "batches": batches,
        "remaining_older_rows": remaining_older_rows
    })


def log_database_error(error: Exception, query_context: Optional[str] = None):
    """Log database error with context."""
    logger.error("Database error", extra={
        "event_type": "database_error",
        "error_type": type(error).__name__,
        "error_message": str(error),
        "query_context": query_context
    }, exc_info=True)

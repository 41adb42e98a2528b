#!/usr/bin/env python3
"""
Theme Park Wait Time Reconciler - Hot Table Retention Prune
Deletes ride readings and park weather rows older than the retention window in batches.

Usage:
    python -m scripts.prune_wait_times [--retention-hours 48] [--report-file prune-report.json]

Behavior:
- Prunes ride_wait_time_history, then park_weather_history
- Deletes the oldest expired rows first, PRUNE_BATCH_SIZE at a time
- Stops each table after PRUNE_MAX_BATCHES batches so a backlog cannot run forever
- Rejects --batch-size, --max-batches and --retention-hours outside their configured bounds
- Writes a JSON report and records started/completed/failed job rows
- Exits 1 if expired rows remain after the run
"""

import argparse
import json
import sys
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import get_db_session
from database.repositories.hot_table_repository import HotTableRepository
from database.repositories.job_log_repository import JobRunLogRepository
from database.repositories.wait_time_repository import WaitTimeRepository
from database.repositories.weather_repository import WeatherRepository
from models.orm_job_log import JobStatus
from utils.config import RETENTION_HOURS, PRUNE_BATCH_SIZE, PRUNE_MAX_BATCHES, REPORT_DIR
from utils.logger import logger, log_prune_complete, log_database_error


JOB_NAME = 'prune-wait-times'

# Hot tables in prune order
PRUNED_REPOSITORIES = (WaitTimeRepository, WeatherRepository)

# CLI bounds match the config clamps in utils.config
RETENTION_HOURS_RANGE = (1, 24 * 30)
BATCH_SIZE_RANGE = (100, 10000)
MAX_BATCHES_RANGE = (1, 2000)


@dataclass
class PruneResult:
    """Outcome of pruning one table."""
    table: str
    deleted_rows: int
    batches: int
    remaining_older_rows: int
    oldest_remaining_recorded_at: Optional[str]
    hit_batch_limit: bool


def bounded_int(min_value: int, max_value: int) -> Callable[[str], int]:
    """
    argparse type accepting integers in [min_value, max_value].

    Examples:
        >>> bounded_int(1, 10)('5')
        5
    """
    def _parse(raw: str) -> int:
        try:
            value = int(raw)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid integer: {raw!r}")
        if not min_value <= value <= max_value:
            raise argparse.ArgumentTypeError(f"must be between {min_value} and {max_value}, got {value}")
        return value

    return _parse


def retention_cutoff(retention_hours: int, now: Optional[datetime] = None) -> datetime:
    """
    Naive UTC timestamp before which rows are expired.

    Args:
        retention_hours: Hours of data to keep
        now: Reference time (defaults to current UTC time)
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    return now - timedelta(hours=retention_hours)


def prune_in_batches(
    session,
    cutoff: datetime,
    batch_size: int,
    max_batches: int,
    repository: Optional[HotTableRepository] = None
) -> PruneResult:
    """
    Delete expired rows from one table until none remain or the batch limit is hit.

    Each batch is committed on its own so a long prune never holds one
    large transaction.

    Args:
        session: SQLAlchemy ORM session
        cutoff: Rows recorded before this are deleted
        batch_size: Rows per batch
        max_batches: Maximum batches for this table
        repository: Table to prune (defaults to ride_wait_time_history)

    Returns:
        PruneResult for the table
    """
    repo = repository or WaitTimeRepository(session)
    deleted_rows = 0
    batches = 0
    hit_batch_limit = False

    while True:
        if batches >= max_batches:
            hit_batch_limit = True
            break

        deleted = repo.delete_older_than(cutoff, batch_size)
        if deleted == 0:
            break

        session.commit()
        deleted_rows += deleted
        batches += 1
        logger.debug(f"Pruned {repo.table_name} batch {batches}: {deleted} rows")

    remaining = repo.count_older_than(cutoff)
    oldest = repo.oldest_recorded_at()

    log_prune_complete(repo.table_name, deleted_rows, batches, remaining)

    return PruneResult(
        table=repo.table_name,
        deleted_rows=deleted_rows,
        batches=batches,
        remaining_older_rows=remaining,
        oldest_remaining_recorded_at=oldest.isoformat() if oldest else None,
        hit_batch_limit=hit_batch_limit
    )


def prune_tables(session, cutoff: datetime, batch_size: int, max_batches: int) -> List[PruneResult]:
    """Prune every hot table; the batch limit applies to each table separately."""
    return [
        prune_in_batches(session, cutoff, batch_size, max_batches, repository=repo_class(session))
        for repo_class in PRUNED_REPOSITORIES
    ]


def _record_job(status: JobStatus, started_at: datetime, details: Dict[str, Any],
                error_message: Optional[str] = None) -> None:
    try:
        with get_db_session() as session:
            JobRunLogRepository(session).record(JOB_NAME, status, started_at, details, error_message)
    except Exception as e:
        # The job log is best effort; it must not mask the prune outcome
        log_database_error(e, f"Failed to record {JOB_NAME} {status.value} row")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit code."""
    parser = argparse.ArgumentParser(description='Prune expired wait time and weather rows')
    parser.add_argument('--retention-hours', type=bounded_int(*RETENTION_HOURS_RANGE), default=RETENTION_HOURS)
    parser.add_argument('--batch-size', type=bounded_int(*BATCH_SIZE_RANGE), default=PRUNE_BATCH_SIZE)
    parser.add_argument('--max-batches', type=bounded_int(*MAX_BATCHES_RANGE), default=PRUNE_MAX_BATCHES)
    parser.add_argument('--report-file', default=str(Path(REPORT_DIR) / 'prune-report.json'))
    args = parser.parse_args(argv)

    started_at = datetime.now(timezone.utc)
    cutoff = retention_cutoff(args.retention_hours, started_at)
    settings = {
        'started_at': started_at.isoformat(),
        'retention_hours': args.retention_hours,
        'cutoff': cutoff.isoformat(),
        'batch_size': args.batch_size,
        'max_batches': args.max_batches
    }

    _record_job(JobStatus.STARTED, started_at, settings)

    try:
        with get_db_session() as session:
            results = prune_tables(session, cutoff, args.batch_size, args.max_batches)
    except Exception as e:
        logger.error(f"Retention prune failed: {e}", exc_info=True)
        _record_job(JobStatus.FAILED, started_at, settings, str(e))
        return 1

    summary = {
        **settings,
        'finished_at': datetime.now(timezone.utc).isoformat(),
        'total_deleted': sum(result.deleted_rows for result in results),
        'table_results': [asdict(result) for result in results],
        'has_remaining_older': any(result.remaining_older_rows > 0 for result in results),
        'hit_batch_limit': any(result.hit_batch_limit for result in results)
    }

    Path(args.report_file).write_text(json.dumps(summary, indent=2), encoding='utf-8')
    print(json.dumps(summary, indent=2))

    if summary['has_remaining_older']:
        message = 'Rows older than retention window remain after prune run'
        logger.error(message, extra={"remaining_older_rows": {
            result.table: result.remaining_older_rows for result in results
        }})
        _record_job(JobStatus.FAILED, started_at, summary, message)
        return 1

    _record_job(JobStatus.COMPLETED, started_at, summary)
    return 0


if __name__ == '__main__':
    sys.exit(main())

#!/usr/bin/env python3
"""
Collection Health Check Script
==============================

Verifies that wait time collection is keeping up and that the hot tables
respect their retention window. Produces a Markdown report and exits 1 if
any check fails, so cron or CI can alert on it.

Checks:
1. Collection coverage - completed collector runs vs expected in the lookback window
2. Park error rate - parks that failed to collect vs parks targeted
3. Failed runs - collector runs that ended in failure
4. Retention window - no ride readings or weather rows older than RETENTION_HOURS remain
5. Per-park freshness - P90/P95 age of each active park's latest reading

Run via cron every 30 minutes:
    */30 * * * * cd /path/to/backend/src && python -m scripts.check_collection_health
"""

import argparse
import json
import math
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import get_db_session
from database.repositories.job_log_repository import JobRunLogRepository
from database.repositories.park_repository import ParkRepository
from database.repositories.wait_time_repository import WaitTimeRepository
from database.repositories.weather_repository import WeatherRepository
from models.orm_job_log import JobRunLog, JobStatus
from utils.config import (
    COLLECTION_INTERVAL_MINUTES, MONITOR_LOOKBACK_MINUTES,
    MAX_FRESHNESS_MINUTES, RETENTION_HOURS, REPORT_DIR
)
from utils.logger import logger

COLLECTOR_JOB_NAME = 'collect-wait-times'

PASS = 'pass'
WARN = 'warn'
FAIL = 'fail'

# Alert thresholds
COVERAGE_FAIL_RATIO = 0.8
COVERAGE_WARN_RATIO = 0.95
ERROR_RATE_FAIL = 0.2
ERROR_RATE_WARN = 0.05
FAILED_RUN_FAIL_RATIO = 0.2


@dataclass
class Check:
    """Outcome of one health check."""
    name: str
    status: str
    detail: str


def percentile(values: Sequence[float], p: float) -> float:
    """
    Nearest-rank percentile.

    Args:
        values: Sample values
        p: Percentile in [0, 100]

    Returns:
        The percentile value, or infinity for an empty sample

    Examples:
        >>> percentile([1, 2, 3, 4], 50)
        2
        >>> percentile([], 95)
        inf
    """
    if not values:
        return math.inf
    ordered = sorted(values)
    index = min(len(ordered) - 1, max(0, math.ceil(p / 100 * len(ordered)) - 1))
    return ordered[index]


def check_collector_runs(
    runs: Iterable[JobRunLog],
    lookback_minutes: int,
    interval_minutes: int
) -> Tuple[List[Check], Dict[str, Any]]:
    """
    Coverage, park error rate and failed-run checks from collector job rows.

    Args:
        runs: Collector job rows inside the lookback window
        lookback_minutes: Window length
        interval_minutes: Expected minutes between collector runs

    Returns:
        (checks, metrics)
    """
    runs = list(runs)
    expected_runs = max(1, lookback_minutes // interval_minutes)

    completed = [run for run in runs if run.status == JobStatus.COMPLETED]
    failed_runs = sum(1 for run in runs if run.status == JobStatus.FAILED)

    parks_targeted = 0
    park_errors = 0
    for run in completed:
        details = run.details or {}
        parks_targeted += int(details.get('parks_targeted') or 0)
        park_errors += int(details.get('errors') or 0)

    coverage_ratio = len(completed) / expected_runs
    error_rate = park_errors / parks_targeted if parks_targeted else 0.0
    failed_run_ratio = failed_runs / len(runs) if runs else 0.0

    metrics = {
        'expected_runs': expected_runs,
        'completed_runs': len(completed),
        'coverage_ratio': round(coverage_ratio, 3),
        'parks_targeted': parks_targeted,
        'park_errors': park_errors,
        'error_rate': round(error_rate, 3),
        'failed_runs': failed_runs,
        'failed_run_ratio': round(failed_run_ratio, 3)
    }

    checks = []

    coverage_text = f"{len(completed)}/{expected_runs} runs ({coverage_ratio * 100:.1f}%)"
    if coverage_ratio < COVERAGE_FAIL_RATIO:
        checks.append(Check('Collection coverage', FAIL, f"Observed {coverage_text}."))
    elif coverage_ratio < COVERAGE_WARN_RATIO:
        checks.append(Check('Collection coverage', WARN, f"Coverage is degraded: {coverage_text}."))
    else:
        checks.append(Check('Collection coverage', PASS, f"Coverage healthy: completed {coverage_text}."))

    if error_rate >= ERROR_RATE_FAIL:
        checks.append(Check('Park error rate', FAIL,
                            f"Park error rate {error_rate:.3f} exceeded {ERROR_RATE_FAIL:.3f} over the window."))
    elif error_rate >= ERROR_RATE_WARN:
        checks.append(Check('Park error rate', WARN,
                            f"Park error rate elevated at {error_rate:.3f} over the window."))
    else:
        checks.append(Check('Park error rate', PASS,
                            f"Park error rate healthy at {error_rate:.3f} over the window."))

    if failed_run_ratio >= FAILED_RUN_FAIL_RATIO:
        checks.append(Check('Failed runs', FAIL,
                            f"Failed run ratio {failed_run_ratio:.3f} ({failed_runs}/{len(runs)}) "
                            f"exceeded {FAILED_RUN_FAIL_RATIO:.3f}."))
    elif failed_runs > 0:
        checks.append(Check('Failed runs', WARN,
                            f"Observed failed runs in window ({failed_runs}/{len(runs)})."))
    else:
        checks.append(Check('Failed runs', PASS, 'No failed collector runs in the monitoring window.'))

    return checks, metrics


def check_retention(older_rows: int, retention_hours: int, older_weather_rows: int = 0) -> Check:
    """Fail if any ride reading or weather row older than the retention window remains."""
    if older_rows > 0 or older_weather_rows > 0:
        return Check('Retention window', FAIL,
                     f"Rows older than {retention_hours}h remain "
                     f"(readings={older_rows}, weather={older_weather_rows}).")
    return Check('Retention window', PASS,
                 f"No rows older than {retention_hours}h remain in the hot tables.")


def check_freshness(
    park_ids: Iterable[int],
    latest_by_park: Mapping[int, datetime],
    now: datetime,
    max_freshness_minutes: int
) -> Tuple[Check, Dict[str, Any]]:
    """
    Per-park freshness percentiles of the latest stored reading.

    Args:
        park_ids: Active parks expected to have data
        latest_by_park: park_id -> latest recorded_at (naive UTC)
        now: Reference time (naive UTC)
        max_freshness_minutes: Target age in minutes

    Returns:
        (check, metrics)
    """
    park_ids = list(park_ids)
    ages = []
    for park_id in park_ids:
        latest = latest_by_park.get(park_id)
        ages.append(math.inf if latest is None else (now - latest).total_seconds() / 60)

    finite_ages = [age for age in ages if math.isfinite(age)]
    missing_parks = len(ages) - len(finite_ages)
    p50 = percentile(finite_ages, 50)
    p90 = percentile(finite_ages, 90)
    p95 = percentile(finite_ages, 95)

    def _rounded(value: float) -> Optional[float]:
        return round(value, 2) if math.isfinite(value) else None

    metrics = {
        'parks_tracked': len(park_ids),
        'parks_with_data': len(finite_ages),
        'parks_missing_data': missing_parks,
        'p50_minutes': _rounded(p50),
        'p90_minutes': _rounded(p90),
        'p95_minutes': _rounded(p95)
    }

    name = 'Per-park freshness percentiles'
    if not math.isfinite(p95) or p95 > max_freshness_minutes:
        p95_text = f"{p95:.1f}m" if math.isfinite(p95) else 'inf'
        check = Check(name, FAIL,
                      f"P95 freshness {p95_text} exceeded {max_freshness_minutes}m "
                      f"(missing parks={missing_parks}).")
    elif missing_parks > 0:
        check = Check(name, WARN,
                      f"P95 freshness {p95:.1f}m within {max_freshness_minutes}m but "
                      f"{missing_parks} active park(s) have no readings.")
    else:
        check = Check(name, PASS,
                      f"Freshness healthy (P50={p50:.1f}m, P90={p90:.1f}m, P95={p95:.1f}m).")

    return check, metrics


def run_checks(
    session,
    now: datetime,
    lookback_minutes: int = MONITOR_LOOKBACK_MINUTES,
    interval_minutes: int = COLLECTION_INTERVAL_MINUTES,
    retention_hours: int = RETENTION_HOURS,
    max_freshness_minutes: int = MAX_FRESHNESS_MINUTES
) -> Tuple[List[Check], Dict[str, Any]]:
    """
    Run every health check against the database.

    Args:
        session: SQLAlchemy ORM session
        now: Reference time (naive UTC)

    Returns:
        (checks, summary metrics)
    """
    since = now - timedelta(minutes=lookback_minutes)
    retention_cutoff = now - timedelta(hours=retention_hours)

    summary: Dict[str, Any] = {
        'generated_at': now.isoformat(),
        'lookback_minutes': lookback_minutes,
        'interval_minutes': interval_minutes,
        'retention_hours': retention_hours,
        'max_freshness_minutes': max_freshness_minutes
    }

    wait_time_repo = WaitTimeRepository(session)

    runs = JobRunLogRepository(session).get_runs_since(COLLECTOR_JOB_NAME, since)
    checks, summary['collector'] = check_collector_runs(runs, lookback_minutes, interval_minutes)

    older_rows = wait_time_repo.count_older_than(retention_cutoff)
    older_weather_rows = WeatherRepository(session).count_older_than(retention_cutoff)
    summary['retention'] = {
        'cutoff': retention_cutoff.isoformat(),
        'older_rows': older_rows,
        'older_weather_rows': older_weather_rows
    }
    checks.append(check_retention(older_rows, retention_hours, older_weather_rows))

    park_ids = [park.park_id for park in ParkRepository(session).get_active()]
    freshness_check, summary['freshness'] = check_freshness(
        park_ids, wait_time_repo.latest_recorded_at_by_park(), now, max_freshness_minutes
    )
    checks.append(freshness_check)

    return checks, summary


def format_report(checks: Sequence[Check], summary: Dict[str, Any]) -> str:
    """
    Render checks and metrics as a Markdown report.

    Args:
        checks: Check outcomes in display order
        summary: Metrics dictionary (JSON-serializable)

    Returns:
        Markdown text
    """
    fail_count = sum(1 for check in checks if check.status == FAIL)
    warn_count = sum(1 for check in checks if check.status == WARN)

    lines = [
        '# Collection Health Report',
        '',
        f"Generated: {summary.get('generated_at')}",
        f"Lookback: {summary.get('lookback_minutes')} minutes",
        '',
        '## Checks',
        *[f"- [{check.status.upper()}] {check.name}: {check.detail}" for check in checks],
        '',
        '## Summary',
        f"- Fails: {fail_count}",
        f"- Warnings: {warn_count}",
        '',
        '## Metrics',
        '```json',
        json.dumps(summary, indent=2),
        '```',
        ''
    ]
    return '\n'.join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns 1 when any check fails."""
    parser = argparse.ArgumentParser(description='Check wait time collection health')
    parser.add_argument('--lookback-minutes', type=int, default=MONITOR_LOOKBACK_MINUTES)
    parser.add_argument('--report-file', default=str(Path(REPORT_DIR) / 'collection-health-report.md'))
    args = parser.parse_args(argv)

    now = datetime.now(timezone.utc).replace(tzinfo=None)

    with get_db_session() as session:
        checks, summary = run_checks(session, now, lookback_minutes=args.lookback_minutes)

    report = format_report(checks, summary)
    Path(args.report_file).write_text(report, encoding='utf-8')
    print(report)

    failed = [check.name for check in checks if check.status == FAIL]
    if failed:
        logger.error("Collection health check failed", extra={"failed_checks": failed})
        return 1

    logger.info("Collection health check passed", extra={
        "warnings": sum(1 for check in checks if check.status == WARN)
    })
    return 0


if __name__ == '__main__':
    sys.exit(main())

#!/usr/bin/env python3
"""
Daily accrual and settlement job runner

This script is designed to be run by cron (daily at 00:05 UTC).
It can also be executed manually for testing or replaying past dates.

Usage:
    # Daily run (default: today UTC)
    python -m scripts.run_daily_accrual_job

    # Dry-run (simulation)
    python -m scripts.run_daily_accrual_job --dry-run

    # Replay a specific date
    python -m scripts.run_daily_accrual_job --as-of 2025-01-27

    # Sequential run with a 10 minute deadline
    python -m scripts.run_daily_accrual_job --max-workers 1 --timeout 600

Exit codes:
    0  pass ran, no per-investment errors
    1  pass ran, some investments failed (or it was cancelled / timed out)
    2  pass did not run (bad arguments or fatal error)
"""

import argparse
import json
import signal
import sys
import threading
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

# Add project root to path
sys.path.insert(0, '.')

from app.infrastructure.logging_config import setup_logging
from app.infrastructure.settings import get_settings
from app.services.accrual_service import run_accrual_pass, AccrualRunError

JOB_NAME = "daily_accrual"

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_NOT_RUN = 2


def generate_trace_id(as_of_date: date) -> str:
    """
    Generate a unique trace_id for the job run.

    Format: job-daily-accrual-YYYYMMDD-<shortuuid>
    """
    return f"job-daily-accrual-{as_of_date.strftime('%Y%m%d')}-{str(uuid4())[:8]}"


def parse_as_of_date(as_of_str: Optional[str]) -> Optional[date]:
    """
    Parse --as-of (YYYY-MM-DD). None means "today" and is resolved by the runner.

    Raises:
        ValueError: invalid format
    """
    if not as_of_str:
        return None
    try:
        return date.fromisoformat(as_of_str)
    except ValueError:
        raise ValueError(f"Invalid date format: {as_of_str}. Expected YYYY-MM-DD")


def exit_code_for(summary: Dict[str, Any]) -> int:
    """0 when clean, 1 when the pass ran but is incomplete"""
    if summary['errors_count'] or summary['cancelled'] or summary['timed_out']:
        return EXIT_PARTIAL
    return EXIT_OK


def install_signal_handlers(cancel_event: threading.Event) -> Dict[int, Any]:
    """
    SIGTERM/SIGINT stop the enumeration; in-flight units still commit.

    Returns the previous handlers so they can be restored.
    """
    def _handler(signum, frame):
        print(json.dumps({"job": JOB_NAME, "signal": signal.Signals(signum).name, "cancelling": True}), file=sys.stderr)
        cancel_event.set()

    previous = {}
    for signum in (signal.SIGTERM, signal.SIGINT):
        previous[signum] = signal.signal(signum, _handler)
    return previous


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Run the daily accrual and settlement job',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        '--as-of',
        type=str,
        default=None,
        help='Accrual day (YYYY-MM-DD, default: today UTC)',
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Simulate without committing (default: false)',
    )
    parser.add_argument(
        '--max-workers',
        type=int,
        default=None,
        help='Parallel user groups (default: ACCRUAL_MAX_WORKERS, 1 = sequential)',
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=None,
        help='Global pass deadline in seconds (default: ACCRUAL_PASS_TIMEOUT_SECONDS, 0 disables)',
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the job runner; returns the exit code"""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on bad arguments, 0 on --help
        return e.code if isinstance(e.code, int) else EXIT_NOT_RUN

    setup_logging(get_settings().LOG_LEVEL)

    try:
        as_of_date = parse_as_of_date(args.as_of)
        if args.max_workers is not None and args.max_workers < 0:
            raise ValueError("--max-workers must be >= 0")
        if args.timeout is not None and args.timeout < 0:
            raise ValueError("--timeout must be >= 0")
    except ValueError as e:
        print(json.dumps({"job": JOB_NAME, "error": str(e), "exit_code": EXIT_NOT_RUN}), file=sys.stderr)
        return EXIT_NOT_RUN

    trace_id = generate_trace_id(as_of_date or datetime.now(timezone.utc).date())

    cancel_event = threading.Event()
    previous_handlers = {}
    if threading.current_thread() is threading.main_thread():
        previous_handlers = install_signal_handlers(cancel_event)

    base_output = {
        "job": JOB_NAME,
        "trace_id": trace_id,
        "as_of": as_of_date.isoformat() if as_of_date else None,
        "dry_run": args.dry_run,
    }

    try:
        summary = run_accrual_pass(
            as_of_date=as_of_date,
            dry_run=args.dry_run,
            trace_id=trace_id,
            max_workers=args.max_workers,
            timeout_seconds=args.timeout,
            cancel_event=cancel_event,
        )
    except AccrualRunError as e:
        print(json.dumps({**base_output, "error": str(e), "exit_code": EXIT_NOT_RUN}), file=sys.stderr)
        return EXIT_NOT_RUN
    except Exception as e:
        print(json.dumps({
            **base_output,
            "error": f"Unexpected error: {type(e).__name__}: {str(e)}",
            "exit_code": EXIT_NOT_RUN,
        }), file=sys.stderr)
        return EXIT_NOT_RUN
    finally:
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)

    exit_code = exit_code_for(summary)
    print(json.dumps({
        **base_output,
        "as_of": summary['as_of_date'],
        "summary": summary,
        "exit_code": exit_code,
    }))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())

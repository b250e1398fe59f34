"""
RQ jobs - Scheduled accrual pass
"""

import logging
from datetime import date
from typing import Any, Dict, Optional
from rq import Queue
from rq.job import Job

from app.infrastructure.logging_config import setup_logging
from app.infrastructure.redis_client import get_redis
from app.infrastructure.settings import get_settings
from app.services.accrual_service import run_accrual_pass

logger = logging.getLogger(__name__)

# A full pass may legitimately run long; the pass enforces its own deadline
JOB_TIMEOUT_SECONDS = 2 * 3600


def run_daily_accrual(as_of_date: Optional[str] = None, dry_run: bool = False) -> Dict[str, Any]:
    """
    Execute one accrual pass inside an RQ worker.

    as_of_date is an ISO date string (job arguments are pickled, keep them
    plain). AccrualRunError propagates so RQ marks the job failed.
    """
    setup_logging(get_settings().LOG_LEVEL)
    day = date.fromisoformat(as_of_date) if as_of_date else None

    summary = run_accrual_pass(as_of_date=day, dry_run=dry_run)

    if summary['errors_count']:
        logger.warning(
            "Accrual job finished with errors",
            extra={'as_of_date': summary['as_of_date'], 'errors_count': summary['errors_count']},
        )
    return summary


def enqueue_daily_accrual(
    as_of_date: Optional[date] = None,
    dry_run: bool = False,
    queue: Optional[Queue] = None,
) -> Job:
    """Put an accrual pass on ACCRUAL_QUEUE_NAME"""
    if queue is None:
        queue = Queue(get_settings().ACCRUAL_QUEUE_NAME, connection=get_redis())

    job = queue.enqueue(
        run_daily_accrual,
        as_of_date.isoformat() if as_of_date else None,
        dry_run,
        job_timeout=JOB_TIMEOUT_SECONDS,
        description=f"daily accrual as_of={as_of_date.isoformat() if as_of_date else 'today'}",
    )
    logger.info("Accrual job enqueued", extra={'job_id': job.id, 'queue': queue.name})
    return job

"""
RQ worker process for the accrual queue

Usage: python -m app.workers.worker
"""

import logging
from rq import Queue, Worker

from app.infrastructure.logging_config import setup_logging
from app.infrastructure.redis_client import get_redis
from app.infrastructure.settings import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    connection = get_redis()

    queue = Queue(settings.ACCRUAL_QUEUE_NAME, connection=connection)
    worker = Worker([queue], connection=connection)

    logger.info("Starting accrual worker", extra={'queue': settings.ACCRUAL_QUEUE_NAME})
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()

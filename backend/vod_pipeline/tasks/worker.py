"""
Transcode Worker

Single-threaded poll → claim → process loop. Run as many worker processes as
there are CPUs to spare; the queue guarantees each task goes to one of them.

Usage:
    python -m vod_pipeline.tasks.worker [--poll-interval 5] [--once]
"""
import argparse
import logging
import signal
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from sqlalchemy.orm import Session

from vod_pipeline.config import get_settings
from vod_pipeline.database import SessionLocal, init_db
from vod_pipeline.models import ProcessingTask
from vod_pipeline.services.task_queue import TaskQueue, get_task_queue
from vod_pipeline.services.transcoder import TranscodingEngine
from vod_pipeline.tasks.transcode import process_task
from vod_pipeline.utils.logger import setup_logger

logger = logging.getLogger(__name__)


class TaskScheduler(ABC):
    """Source of work for the worker loop"""

    @abstractmethod
    def claim(self, db: Session) -> Optional[ProcessingTask]:
        """Next task to run, or None when there is nothing to do"""

    @abstractmethod
    def backoff(self, stop_event: threading.Event) -> None:
        """Wait before the next claim attempt; return early once stop_event is set"""


class PollingScheduler(TaskScheduler):
    """Claims from the task table and sleeps a fixed interval when it is empty"""

    def __init__(self, queue: TaskQueue, interval: float):
        self.queue = queue
        self.interval = interval

    def claim(self, db):
        return self.queue.claim_next(db)

    def backoff(self, stop_event):
        stop_event.wait(self.interval)


class Worker:
    """
    Poll-claim-process loop

    A failing task never stops the loop. Stopping takes effect between
    tasks; an in-flight encode always runs to the end.
    """

    def __init__(
        self,
        scheduler: TaskScheduler,
        engine: TranscodingEngine,
        queue: Optional[TaskQueue] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.scheduler = scheduler
        self.engine = engine
        self.queue = queue or get_task_queue()
        self.session_factory = session_factory
        self.stop_event = threading.Event()

    def stop(self, *_):
        if not self.stop_event.is_set():
            logger.info("Worker received shutdown signal, stopping after current task...")
        self.stop_event.set()

    def run_once(self) -> bool:
        """
        Claim and process at most one task

        Returns:
            True if a task was claimed
        """
        db = self.session_factory()
        try:
            task = self.scheduler.claim(db)
            if task is None:
                return False
            logger.info(f"Picked up task {task.id}")
            process_task(db, task, self.engine, self.queue)
            return True
        finally:
            db.close()

    def run(self) -> None:
        logger.info("Video processing worker started")
        while not self.stop_event.is_set():
            try:
                claimed = self.run_once()
            except Exception as e:
                logger.error(f"Worker loop error: {e}")
                claimed = False
            if not claimed:
                self.scheduler.backoff(self.stop_event)
        logger.info("Worker stopped")


def main(argv=None):
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Encrypted HLS transcode worker")
    parser.add_argument("--poll-interval", type=float, default=settings.worker_poll_interval,
                        help="Seconds to sleep when the queue is empty")
    parser.add_argument("--once", action="store_true", help="Process at most one task and exit")
    args = parser.parse_args(argv)

    setup_logger("vod_pipeline", settings.log_level)
    init_db()

    queue = get_task_queue()
    worker = Worker(PollingScheduler(queue, args.poll_interval), TranscodingEngine(settings), queue)

    if args.once:
        worker.run_once()
        return

    signal.signal(signal.SIGTERM, worker.stop)
    signal.signal(signal.SIGINT, worker.stop)
    worker.run()


if __name__ == "__main__":
    main()

"""
Processing Task Queue

A FIFO of transcode jobs stored in video_processing_tasks. Any number of
worker processes may call claim_next() concurrently; each pending task is
handed to exactly one of them.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from vod_pipeline.exceptions import InvalidParameter, NotFound
from vod_pipeline.models import ProcessingTask, TaskStatus, Video
from vod_pipeline.models.task import ALLOWED_CODECS, ALLOWED_RESOLUTIONS

logger = logging.getLogger(__name__)

# Upper bound on lost claim races per call. Row locks make races impossible on
# PostgreSQL; on SQLite the conditional UPDATE detects them instead.
MAX_CLAIM_ATTEMPTS = 10


class TaskQueue:
    """Enqueue, claim and terminate processing tasks"""

    def enqueue(
        self,
        db: Session,
        video_id: Union[UUID, str],
        user_id: Union[UUID, str],
        codec_preference: str,
        resolutions: Optional[Iterable[str]] = None,
        crf: Optional[int] = None,
        compress: bool = False,
    ) -> ProcessingTask:
        """
        Validate and insert a pending task

        Raises:
            InvalidParameter: bad codec, resolution or crf; nothing is inserted
            NotFound: the video does not exist
        """
        if codec_preference not in ALLOWED_CODECS:
            raise InvalidParameter(f"Invalid codec preference: {codec_preference!r}")
        resolutions = list(resolutions or [])
        invalid = [r for r in resolutions if r not in ALLOWED_RESOLUTIONS]
        if invalid:
            raise InvalidParameter(f"Invalid resolutions: {', '.join(map(str, invalid))}")

        video_id = UUID(str(video_id))
        if db.get(Video, video_id) is None:
            raise NotFound(f"Video {video_id} not found")

        task = ProcessingTask(
            video_id=video_id,
            user_id=UUID(str(user_id)),
            codec_preference=codec_preference,
            resolutions=resolutions,
            crf=crf,
            compress=bool(compress),
            status=TaskStatus.PENDING.value,
        )
        db.add(task)
        db.commit()
        db.refresh(task)
        logger.info(f"Enqueued task {task.id} for video {video_id} ({codec_preference}, {resolutions})")
        return task

    def claim_next(self, db: Session) -> Optional[ProcessingTask]:
        """
        Atomically take the oldest pending task

        SELECT ... FOR UPDATE SKIP LOCKED picks a row no other claimant holds,
        so idle workers never wait behind a busy one. The follow-up UPDATE is
        conditional on status='pending'; a zero row count means another
        claimant won and we move on to the next row.
        """
        for _ in range(MAX_CLAIM_ATTEMPTS):
            candidate_id = (
                db.query(ProcessingTask.id)
                .filter(ProcessingTask.status == TaskStatus.PENDING.value)
                .order_by(ProcessingTask.created_at.asc(), ProcessingTask.id.asc())
                .limit(1)
                .with_for_update(skip_locked=True)
                .scalar()
            )
            if candidate_id is None:
                db.commit()
                return None

            claimed = (
                db.query(ProcessingTask)
                .filter(
                    ProcessingTask.id == candidate_id,
                    ProcessingTask.status == TaskStatus.PENDING.value,
                )
                .update(
                    {
                        ProcessingTask.status: TaskStatus.PROCESSING.value,
                        ProcessingTask.updated_at: datetime.utcnow(),
                    },
                    synchronize_session=False,
                )
            )
            db.commit()

            if claimed == 1:
                task = db.get(ProcessingTask, candidate_id)
                logger.info(f"Claimed task {task.id} for video {task.video_id}")
                return task

            logger.debug(f"Lost claim race for task {candidate_id}, retrying")
        return None

    def complete(self, db: Session, task_id: Union[UUID, str]) -> bool:
        """
        Mark a processing task completed

        Returns:
            False if the task was already terminal (nothing changes)
        """
        return self._finish(db, task_id, TaskStatus.COMPLETED, None)

    def fail(self, db: Session, task_id: Union[UUID, str], error_message: str) -> bool:
        """
        Mark a processing task failed with a human-readable message

        Returns:
            False if the task was already terminal (nothing changes)
        """
        return self._finish(db, task_id, TaskStatus.FAILED, error_message)

    def get(self, db: Session, task_id: Union[UUID, str]) -> ProcessingTask:
        task = db.get(ProcessingTask, UUID(str(task_id)))
        if task is None:
            raise NotFound(f"Processing task {task_id} not found")
        return task

    def _finish(self, db: Session, task_id, status: TaskStatus, error_message: Optional[str]) -> bool:
        task_id = UUID(str(task_id))
        updated = (
            db.query(ProcessingTask)
            .filter(
                ProcessingTask.id == task_id,
                ProcessingTask.status == TaskStatus.PROCESSING.value,
            )
            .update(
                {
                    ProcessingTask.status: status.value,
                    ProcessingTask.error_message: error_message,
                    ProcessingTask.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        db.commit()
        if updated == 0:
            logger.warning(f"Task {task_id} is not processing; ignoring transition to {status.value}")
            return False
        logger.info(f"Task {task_id} -> {status.value}")
        return True


task_queue = TaskQueue()


def get_task_queue() -> TaskQueue:
    return task_queue

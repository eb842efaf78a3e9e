"""
Transcode Task Runner
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from vod_pipeline.models import ProcessingTask, Video, VideoStatus
from vod_pipeline.services.task_queue import TaskQueue, get_task_queue
from vod_pipeline.services.transcoder import TranscodingEngine

logger = logging.getLogger(__name__)


def process_task(
    db: Session,
    task: ProcessingTask,
    engine: TranscodingEngine,
    queue: Optional[TaskQueue] = None,
) -> bool:
    """
    Run one claimed task to a terminal state

    Updates video and task:
    - success: video size/duration/status, task → completed
    - any error: task → failed with the error message, video left as-is

    Returns:
        True if the task completed
    """
    queue = queue or get_task_queue()
    task_id = task.id
    logger.info(f"Starting task {task_id} for video {task.video_id}")

    try:
        result = engine.process(db, task)

        video = db.get(Video, task.video_id)
        video.size_bytes = result.size_bytes
        if video.duration_seconds is None and result.duration_seconds:
            video.duration_seconds = result.duration_seconds
        video.status = VideoStatus.ACTIVE.value
        db.commit()

        queue.complete(db, task_id)
        logger.info(f"Task {task_id} completed successfully ({result.size_bytes} bytes)")
        return True

    except Exception as e:
        logger.error(f"Task {task_id} failed: {e}")
        db.rollback()
        try:
            queue.fail(db, task_id, str(e) or e.__class__.__name__)
        except Exception as db_error:
            logger.error(f"Failed to record failure for task {task_id}: {db_error}")
        return False

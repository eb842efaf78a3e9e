"""
Test processing task queue
"""
import threading
import uuid
from datetime import datetime, timedelta

import pytest

from vod_pipeline.exceptions import InvalidParameter, NotFound
from vod_pipeline.models import ProcessingTask, TaskStatus, Video
from vod_pipeline.services.task_queue import TaskQueue


@pytest.fixture
def queue():
    return TaskQueue()


@pytest.fixture
def video(db_session):
    video = Video(title="Lesson", storage_path="pending_creation", signing_secret="s" * 64, owner_id=uuid.uuid4())
    db_session.add(video)
    db_session.commit()
    return video


def enqueue_many(db, queue, video, count):
    """Enqueue tasks with strictly increasing created_at"""
    base = datetime(2024, 1, 1)
    ids = []
    for i in range(count):
        task = queue.enqueue(db, video.id, video.owner_id, "h264", ["720p"])
        task.created_at = base + timedelta(seconds=i)
        ids.append(task.id)
    db.commit()
    return ids


def test_enqueue_creates_pending_task(db_session, queue, video):
    task = queue.enqueue(db_session, video.id, video.owner_id, "h265", ["360p", "1080p"], crf=20, compress=True)

    assert task.status == TaskStatus.PENDING.value
    assert task.codec_preference == "h265"
    assert task.resolutions == ["360p", "1080p"]
    assert task.crf == 20
    assert task.compress is True
    assert task.error_message is None


@pytest.mark.parametrize("codec, resolutions, crf", [
    ("av1", [], None),
    ("h264", ["480p"], None),
    ("h264", [], 60),
])
def test_enqueue_rejects_invalid_parameters(db_session, queue, video, codec, resolutions, crf):
    with pytest.raises(InvalidParameter):
        queue.enqueue(db_session, video.id, video.owner_id, codec, resolutions, crf)

    db_session.rollback()
    assert db_session.query(ProcessingTask).count() == 0


def test_enqueue_unknown_video(db_session, queue):
    with pytest.raises(NotFound):
        queue.enqueue(db_session, uuid.uuid4(), uuid.uuid4(), "h264")


def test_claim_is_fifo(db_session, queue, video):
    ids = enqueue_many(db_session, queue, video, 3)

    claimed = [queue.claim_next(db_session).id for _ in range(3)]

    assert claimed == ids
    assert queue.claim_next(db_session) is None
    assert all(queue.get(db_session, i).status == TaskStatus.PROCESSING.value for i in ids)


def test_claim_on_empty_queue(db_session, queue):
    assert queue.claim_next(db_session) is None


def test_complete_and_fail_are_terminal(db_session, queue, video):
    first, second = enqueue_many(db_session, queue, video, 2)
    queue.claim_next(db_session)
    queue.claim_next(db_session)

    assert queue.complete(db_session, first)
    assert queue.fail(db_session, second, "ffmpeg failed")

    # A terminal task never changes again
    assert not queue.fail(db_session, first, "late failure")
    assert not queue.complete(db_session, second)

    done = queue.get(db_session, first)
    failed = queue.get(db_session, second)
    assert done.status == TaskStatus.COMPLETED.value
    assert done.error_message is None
    assert failed.status == TaskStatus.FAILED.value
    assert failed.error_message == "ffmpeg failed"
    assert done.is_terminal and failed.is_terminal


def test_pending_task_cannot_be_finished(db_session, queue, video):
    task = queue.enqueue(db_session, video.id, video.owner_id, "h264")
    assert not queue.complete(db_session, task.id)
    assert queue.get(db_session, task.id).status == TaskStatus.PENDING.value


def test_get_unknown_task(db_session, queue):
    with pytest.raises(NotFound):
        queue.get(db_session, uuid.uuid4())


def test_concurrent_claims_are_exclusive(session_factory, db_session, queue, video):
    ids = enqueue_many(db_session, queue, video, 20)
    claimed = []
    errors = []
    lock = threading.Lock()

    def claimant():
        db = session_factory()
        try:
            while True:
                task = queue.claim_next(db)
                if task is None:
                    break
                with lock:
                    claimed.append(task.id)
        except Exception as e:
            errors.append(e)
        finally:
            db.close()

    threads = [threading.Thread(target=claimant) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert errors == []
    assert len(claimed) == len(set(claimed))
    assert set(claimed) == set(ids)

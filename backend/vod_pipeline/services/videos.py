"""
Video Registration

Creates video rows together with their signing secret and encryption key,
and stages uploaded or recorded source files where the worker expects them.
"""
import logging
import secrets
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from vod_pipeline.config import Settings, get_settings
from vod_pipeline.exceptions import InvalidParameter, NotFound, StorageError
from vod_pipeline.models import ProcessingTask, StorageProvider, Video, VideoStatus
from vod_pipeline.services.key_store import KeyStore, get_key_store
from vod_pipeline.services.storage import video_key_prefix

logger = logging.getLogger(__name__)

RECORDING_EXTENSIONS = {".webm"}


class VideoService:
    def __init__(self, settings: Optional[Settings] = None, key_store: Optional[KeyStore] = None):
        self.settings = settings or get_settings()
        self.key_store = key_store or get_key_store(self.settings)

    def create_video(
        self,
        db: Session,
        title: str,
        owner_id: Union[UUID, str],
        lesson_id: Union[UUID, str, None] = None,
        order: int = 0,
        storage_provider: Union[StorageProvider, str, None] = None,
    ) -> Video:
        """
        Insert a video and generate its key

        The provider defaults to the object store when it is configured.
        The key is written before the row is committed; if that fails the
        row is rolled back so no video ever exists without a key.
        """
        if storage_provider is None:
            provider = StorageProvider.OBJECT_STORE if self.settings.r2_configured else StorageProvider.LOCAL
        else:
            provider = StorageProvider(storage_provider)
        if provider is StorageProvider.OBJECT_STORE and not self.settings.r2_configured:
            raise InvalidParameter("Object storage is not configured")

        video_id = uuid.uuid4()
        owner_id = UUID(str(owner_id))
        lesson_id = UUID(str(lesson_id)) if lesson_id else None

        if provider is StorageProvider.OBJECT_STORE:
            placeholder = VideoStatus.STAGING_PLACEHOLDER.value
            r2_key = video_key_prefix(owner_id, video_id, lesson_id)
        else:
            placeholder = VideoStatus.PENDING_CREATION.value
            r2_key = None

        video = Video(
            id=video_id,
            title=title,
            storage_path=placeholder,
            storage_provider=provider.value,
            r2_key=r2_key,
            signing_secret=secrets.token_hex(32),
            owner_id=owner_id,
            lesson_id=lesson_id,
            order=order or 0,
            status=placeholder,
        )
        db.add(video)
        db.flush()

        try:
            self.key_store.generate_key(video_id)
        except Exception:
            db.rollback()
            raise

        db.commit()
        db.refresh(video)
        logger.info(f"Created video {video_id} ({provider.value}) for owner {owner_id}")
        return video

    def source_dir_for(self, video: Video) -> Path:
        if video.is_object_store:
            return Path(self.settings.staging_dir).resolve() / str(video.id)
        return Path(self.settings.public_videos_dir).resolve() / str(video.id)

    def attach_source(self, db: Session, video_id: Union[UUID, str], filename: str, stream: BinaryIO) -> Video:
        """
        Save an uploaded file as the video's source

        Recordings (.webm) are stored as input.webm, everything else as
        input.mp4. Object-store videos are staged and removed after publish;
        local videos keep the source next to their output.
        """
        video = db.get(Video, UUID(str(video_id)))
        if video is None:
            raise NotFound(f"Video {video_id} not found")

        suffix = Path(filename or "").suffix.lower()
        input_name = "input.webm" if suffix in RECORDING_EXTENSIONS else "input.mp4"

        source_dir = self.source_dir_for(video)
        source_dir.mkdir(parents=True, exist_ok=True)
        with open(source_dir / input_name, "wb") as f:
            shutil.copyfileobj(stream, f)

        video.storage_path = str(source_dir)
        db.commit()
        db.refresh(video)
        logger.info(f"Staged source for video {video.id} at {source_dir / input_name}")
        return video

    def discard_video(self, db: Session, video_id: Union[UUID, str]) -> None:
        """
        Remove a video whose registration did not finish

        Rolls back pending changes, then removes the staged source, the key
        and the row. Nothing has been published yet, so the object store is
        not touched.
        """
        db.rollback()
        video = db.get(Video, UUID(str(video_id)))
        if video is None:
            return

        source_dir = self.source_dir_for(video)
        try:
            if source_dir.is_dir():
                shutil.rmtree(source_dir)
        except OSError as e:
            logger.warning(f"Failed to remove {source_dir} for video {video.id}: {e}")

        try:
            self.key_store.delete(video.id)
        except StorageError as e:
            logger.warning(f"Failed to remove key for video {video.id}: {e}")

        db.query(ProcessingTask).filter(ProcessingTask.video_id == video.id).delete(synchronize_session=False)
        db.delete(video)
        db.commit()
        logger.info(f"Discarded video {video_id}")


def get_video_service() -> VideoService:
    return VideoService()

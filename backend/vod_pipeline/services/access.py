"""
Access Gateway

The boundary the rest of the application calls: viewing permissions, key
release, playable manifest URLs, the object-store stream proxy and video
deletion. Callers are assumed to be authenticated already; this layer only
decides authorization.
"""
import logging
import shutil
from datetime import datetime, timedelta
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vod_pipeline.config import Settings, get_settings
from vod_pipeline.exceptions import AccessDenied, NotFound, StorageError
from vod_pipeline.models import ProcessingTask, StorageProvider, UserPermission, Video
from vod_pipeline.services.ffmpeg.playlist import MASTER_PLAYLIST_NAME
from vod_pipeline.services.key_store import KeyStore, get_key_store
from vod_pipeline.services.storage import content_type_for, get_object_store, get_storage_backend, join_key
from vod_pipeline.utils import signed_link

logger = logging.getLogger(__name__)

IdLike = Union[UUID, str]


def as_uuid(value: IdLike) -> UUID:
    try:
        return value if isinstance(value, UUID) else UUID(str(value))
    except (TypeError, ValueError) as e:
        raise NotFound(f"Invalid id: {value!r}") from e


def clean_subpath(subpath: str) -> str:
    """Relative object path under a video; rejects traversal"""
    parts = PurePosixPath(subpath or MASTER_PLAYLIST_NAME).parts
    if not parts or any(p in ("..", "") for p in parts) or parts[0] == "/":
        raise NotFound(f"Invalid path: {subpath!r}")
    return "/".join(parts)


class AccessGateway:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        key_store: Optional[KeyStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_settings()
        self.key_store = key_store or get_key_store(self.settings)
        self.clock = clock or datetime.utcnow

    # Permissions

    def grant_permission(
        self,
        db: Session,
        user_id: IdLike,
        video_id: IdLike,
        duration_seconds: Optional[int] = None,
    ) -> UserPermission:
        """Create or move the expiry of a (user, video) grant"""
        user_id, video_id = as_uuid(user_id), as_uuid(video_id)
        self.get_video(db, video_id)

        if duration_seconds is None:
            duration_seconds = self.settings.default_permission_seconds
        expires_at = self.clock() + timedelta(seconds=duration_seconds)

        permission = db.get(UserPermission, (user_id, video_id))
        if permission is None:
            permission = UserPermission(user_id=user_id, video_id=video_id, expires_at=expires_at)
            db.add(permission)
            try:
                db.commit()
            except IntegrityError:
                # Concurrent grant inserted the row first
                db.rollback()
                permission = db.get(UserPermission, (user_id, video_id))
                permission.expires_at = expires_at
                db.commit()
        else:
            permission.expires_at = expires_at
            db.commit()

        db.refresh(permission)
        logger.info(f"Granted user {user_id} access to video {video_id} until {expires_at.isoformat()}")
        return permission

    def check_permission(self, db: Session, user_id: IdLike, video_id: IdLike) -> bool:
        """True iff an unexpired grant exists; ownership is not considered"""
        permission = db.get(UserPermission, (as_uuid(user_id), as_uuid(video_id)))
        return permission is not None and permission.is_active(self.clock())

    # Videos

    def get_video(self, db: Session, video_id: IdLike) -> Video:
        video = db.get(Video, as_uuid(video_id))
        if video is None:
            raise NotFound(f"Video {video_id} not found")
        return video

    def can_view(self, db: Session, user_id: IdLike, video: Video) -> bool:
        return video.owner_id == as_uuid(user_id) or self.check_permission(db, user_id, video.id)

    def authorize_viewer(self, db: Session, user_id: IdLike, video_id: IdLike) -> Video:
        """
        Raises:
            NotFound: no such video
            AccessDenied: caller is neither owner nor grantee
        """
        video = self.get_video(db, video_id)
        if not self.can_view(db, user_id, video):
            logger.debug(f"User {user_id} denied access to video {video.id}")
            raise AccessDenied("Access denied")
        return video

    def get_key_for_viewer(self, db: Session, user_id: IdLike, video_id: IdLike) -> bytes:
        """Raw 16-byte key for an owner or grantee"""
        video = self.authorize_viewer(db, user_id, video_id)
        return self.key_store.get_key(video.id)

    def get_signed_manifest_url(self, db: Session, user_id: IdLike, video_id: IdLike) -> str:
        """
        Playable manifest URL

        Object-store videos go through the authenticated stream proxy so that
        every segment fetch is authorized; local videos get a signed link.
        """
        video = self.authorize_viewer(db, user_id, video_id)
        base_url = self.settings.base_url.rstrip("/")
        if video.is_object_store and video.r2_key and self.settings.r2_configured:
            return f"{base_url}{self.settings.stream_path}/{video.id}/stream/{MASTER_PLAYLIST_NAME}"
        path = f"{self.settings.local_videos_path}/{video.id}/{MASTER_PLAYLIST_NAME}"
        return base_url + signed_link.sign(path, video.signing_secret, self.settings.signed_link_ttl)

    def open_stream(self, db: Session, user_id: IdLike, video_id: IdLike, subpath: str) -> Tuple[BinaryIO, str]:
        """
        Manifest or segment bytes from the object store

        Returns:
            (readable stream, content type)
        """
        video = self.get_video(db, video_id)
        if not (video.is_object_store and video.r2_key and self.settings.r2_configured):
            raise NotFound("Video not in object storage")
        if not self.can_view(db, user_id, video):
            raise AccessDenied("Access denied")

        subpath = clean_subpath(subpath)
        store = get_storage_backend(StorageProvider.OBJECT_STORE, self.settings)
        stream = store.get_stream(join_key(video.r2_key, subpath))
        return stream, content_type_for(subpath)

    def resolve_local_file(
        self,
        db: Session,
        video_id: IdLike,
        subpath: str,
        sig: Optional[str] = None,
        expires: Optional[str] = None,
        requested_path: Optional[str] = None,
    ) -> Tuple[Path, str]:
        """
        File from a local video's output tree

        master.m3u8 needs a valid signed link over the path as requested
        (`requested_path`, the canonical master path when omitted). Variant
        playlists and segments are served as-is; segments are encrypted and
        the key endpoint is gated separately.
        """
        video = self.get_video(db, video_id)
        subpath = clean_subpath(subpath)
        if subpath == MASTER_PLAYLIST_NAME:
            if requested_path is None:
                requested_path = f"{self.settings.local_videos_path}/{video.id}/{subpath}"
            result = signed_link.verify(requested_path, sig, expires, video.signing_secret)
            if not result.valid:
                raise AccessDenied(f"Invalid link: {result.reason}")

        root = Path(self.settings.public_videos_dir).resolve() / str(video.id)
        path = root / subpath
        if not path.is_file() or path.name.startswith("input."):
            raise NotFound(f"{subpath} not found")
        return path, content_type_for(subpath)

    def delete_video(self, db: Session, video_id: IdLike, requesting_owner_id: IdLike) -> None:
        """
        Delete a video and everything hanging off it

        Order: remote objects, then best-effort removal of the key and local
        directories, then permission and task rows with the video row. A
        remote failure aborts before anything else is touched.
        """
        video = self.get_video(db, video_id)
        if video.owner_id != as_uuid(requesting_owner_id):
            raise AccessDenied("Video not owned by requester")

        if video.r2_key:
            store = get_object_store(self.settings)
            if store is None:
                raise StorageError("Object storage is not configured; refusing to orphan remote data")
            deleted = store.delete_prefix(video.r2_key)
            logger.info(f"Deleted {deleted} remote objects for video {video.id}")

        try:
            self.key_store.delete(video.id)
        except StorageError as e:
            logger.warning(f"Failed to remove key for video {video.id}: {e}")

        for directory in self._local_dirs(video):
            try:
                if directory.is_dir():
                    shutil.rmtree(directory)
            except OSError as e:
                logger.warning(f"Failed to remove {directory} for video {video.id}: {e}")

        db.query(UserPermission).filter(UserPermission.video_id == video.id).delete(synchronize_session=False)
        db.query(ProcessingTask).filter(ProcessingTask.video_id == video.id).delete(synchronize_session=False)
        db.delete(video)
        db.commit()
        logger.info(f"Deleted video {video.id}")

    def _local_dirs(self, video: Video):
        dirs = [
            Path(self.settings.staging_dir).resolve() / str(video.id),
            Path(self.settings.public_videos_dir).resolve() / str(video.id),
        ]
        storage_path = Path(video.storage_path)
        if storage_path.name == str(video.id) and storage_path.is_dir() and storage_path.resolve() not in dirs:
            dirs.append(storage_path.resolve())
        return dirs


def get_access_gateway() -> AccessGateway:
    return AccessGateway()

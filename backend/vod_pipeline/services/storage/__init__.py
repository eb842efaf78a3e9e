"""
Storage backends and key-prefix conventions

The per-video storage_provider is the discriminant: it picks the backend
once, at construction time.
"""
from typing import Optional, Union
from uuid import UUID

from vod_pipeline.config import Settings, get_settings
from vod_pipeline.exceptions import StorageError
from vod_pipeline.models.video import StorageProvider
from vod_pipeline.services.storage.base import StorageBackend, content_type_for, join_key
from vod_pipeline.services.storage.local import LocalStorageBackend
from vod_pipeline.services.storage.s3 import S3StorageBackend, make_s3_client

__all__ = [
    "StorageBackend", "LocalStorageBackend", "S3StorageBackend",
    "content_type_for", "join_key", "make_s3_client",
    "video_key_prefix", "get_storage_backend", "get_object_store",
]

_object_store: Optional[S3StorageBackend] = None


def video_key_prefix(owner_id: Union[UUID, str], video_id: Union[UUID, str], lesson_id: Union[UUID, str, None] = None) -> str:
    """
    Object-store prefix for a video's output tree

    Example: owners/<ownerId>/lessons/<lessonId>/videos/<videoId>
    """
    parts = ["owners", str(owner_id)]
    if lesson_id:
        parts += ["lessons", str(lesson_id)]
    parts += ["videos", str(video_id)]
    return join_key(*parts)


def get_object_store(settings: Optional[Settings] = None) -> Optional[S3StorageBackend]:
    """Shared object-store backend, or None when credentials are absent"""
    global _object_store
    settings = settings or get_settings()
    if not settings.r2_configured:
        return None
    if _object_store is None:
        _object_store = S3StorageBackend.from_settings(settings)
    return _object_store


def get_storage_backend(provider: Union[StorageProvider, str], settings: Optional[Settings] = None) -> StorageBackend:
    """
    Backend for a storage provider

    Raises:
        StorageError: if the object store is requested but not configured
    """
    settings = settings or get_settings()
    provider = StorageProvider(provider)
    if provider is StorageProvider.OBJECT_STORE:
        store = get_object_store(settings)
        if store is None:
            raise StorageError("Object storage is not configured")
        return store
    return LocalStorageBackend(settings.public_videos_dir)

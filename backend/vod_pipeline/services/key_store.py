"""
Encryption Key Store

Every video has exactly one 16-byte AES-128 key, written once at video
creation and never rotated. Keys live at keys/<videoId>/enc.key in the
object store when it is configured, otherwise under keys_root_dir on disk.
"""
import logging
import secrets
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

from vod_pipeline.config import Settings, get_settings
from vod_pipeline.exceptions import InvalidParameter, NotFound, StorageNotFound
from vod_pipeline.services.storage import (
    LocalStorageBackend,
    StorageBackend,
    get_object_store,
    join_key,
)

logger = logging.getLogger(__name__)

KEY_SIZE = 16
KEY_FILENAME = "enc.key"
OBJECT_STORE_KEYS_PREFIX = "keys"


class KeyStore:
    """Backend-agnostic storage of per-video encryption keys"""

    def __init__(self, backend: StorageBackend, prefix: str = ""):
        self.backend = backend
        self.prefix = prefix

    def key_path(self, video_id: Union[UUID, str]) -> str:
        return join_key(self.prefix, str(video_id), KEY_FILENAME)

    def generate_key(self, video_id: Union[UUID, str]) -> bytes:
        """
        Create and save the key for a new video

        Raises:
            InvalidParameter: if the video already has a key
        """
        if self.exists(video_id):
            raise InvalidParameter(f"Video {video_id} already has an encryption key")
        key = secrets.token_bytes(KEY_SIZE)
        self.save_key(video_id, key)
        logger.info(f"Generated encryption key for video {video_id}")
        return key

    def save_key(self, video_id: Union[UUID, str], key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise InvalidParameter(f"Encryption key must be {KEY_SIZE} bytes, got {len(key)}")
        self.backend.put(self.key_path(video_id), key, "application/octet-stream")

    def get_key(self, video_id: Union[UUID, str]) -> bytes:
        """
        Raises:
            NotFound: if the video has no key
        """
        try:
            return self.backend.get_bytes(self.key_path(video_id))
        except StorageNotFound as e:
            raise NotFound(f"Key file not found for video {video_id}") from e

    def get_key_as_local_file(self, video_id: Union[UUID, str], target_dir: Union[str, Path]) -> str:
        """
        Write the key to <target_dir>/enc.key for the encoder's key-info file

        The caller owns target_dir and removes it when done.

        Returns:
            Absolute path to the key file
        """
        target = Path(target_dir) / KEY_FILENAME
        try:
            self.backend.download_to_path(self.key_path(video_id), target)
        except StorageNotFound as e:
            raise NotFound(f"Encryption key not found for video {video_id}") from e
        return str(target.resolve())

    def exists(self, video_id: Union[UUID, str]) -> bool:
        return self.backend.exists(self.key_path(video_id))

    def delete(self, video_id: Union[UUID, str]) -> None:
        """Remove the key; a missing key is not an error"""
        self.backend.delete_prefix(join_key(self.prefix, str(video_id)))


def get_key_store(settings: Optional[Settings] = None) -> KeyStore:
    """Key store on the object store when configured, local disk otherwise"""
    settings = settings or get_settings()
    store = get_object_store(settings)
    if store is not None:
        return KeyStore(store, OBJECT_STORE_KEYS_PREFIX)
    return KeyStore(LocalStorageBackend(settings.keys_root_dir))

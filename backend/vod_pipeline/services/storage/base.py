"""
Storage Backend Interface

Uniform put / get-stream / exists / list / delete over a hierarchical,
slash-separated key namespace. Two implementations exist (local disk and
S3-compatible object storage); callers never branch on which one they hold.
"""
import logging
import mimetypes
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/mp2t",
    ".key": "application/octet-stream",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
}


def content_type_for(key: str) -> str:
    """Content type used when publishing or proxying an object"""
    suffix = Path(key).suffix.lower()
    if suffix in CONTENT_TYPES:
        return CONTENT_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(key)
    return guessed or "application/octet-stream"


def join_key(*parts: Optional[str]) -> str:
    """Join key segments with '/', skipping empty ones"""
    return "/".join(str(p).strip("/") for p in parts if p not in (None, ""))


class StorageBackend(ABC):
    """Abstract storage backend"""

    name = "abstract"

    @abstractmethod
    def put(self, key: str, data: Union[bytes, BinaryIO], content_type: str = "application/octet-stream") -> str:
        """Write bytes or a readable stream under key; returns the key"""

    @abstractmethod
    def put_from_local_path(self, path: Union[str, Path], key: str, content_type: Optional[str] = None) -> str:
        """Copy a local file to key"""

    @abstractmethod
    def get_stream(self, key: str) -> BinaryIO:
        """
        Open key for reading

        Raises:
            StorageNotFound: if the key does not exist
        """

    @abstractmethod
    def exists(self, key: str) -> bool:
        """True if the key exists"""

    @abstractmethod
    def list(self, prefix: str) -> List[str]:
        """All keys under prefix"""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete one key; deleting a missing key is a no-op"""

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """
        Delete every key under prefix before returning

        Returns:
            Number of objects deleted

        Raises:
            StorageError: if any object could not be deleted
        """

    def get_bytes(self, key: str) -> bytes:
        stream = self.get_stream(key)
        try:
            return stream.read()
        finally:
            stream.close()

    def download_to_path(self, key: str, path: Union[str, Path]) -> Path:
        """Materialize key as a local file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        stream = self.get_stream(key)
        try:
            with open(path, "wb") as f:
                shutil.copyfileobj(stream, f)
        finally:
            stream.close()
        return path

    def upload_directory(self, local_dir: Union[str, Path], key_prefix: str) -> List[str]:
        """
        Recursively publish a local directory tree under key_prefix

        Relative paths become key suffixes, so the tree layout is preserved.

        Returns:
            Uploaded keys, in upload order
        """
        local_dir = Path(local_dir)
        uploaded = []
        for file_path in sorted(p for p in local_dir.rglob("*") if p.is_file()):
            relative = file_path.relative_to(local_dir).as_posix()
            key = join_key(key_prefix, relative)
            self.put_from_local_path(file_path, key, content_type_for(key))
            uploaded.append(key)
        logger.info(f"Uploaded {len(uploaded)} files from {local_dir} to {self.name}:{key_prefix}")
        return uploaded

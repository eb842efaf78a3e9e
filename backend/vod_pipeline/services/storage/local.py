"""
Local Filesystem Storage Backend
"""
import logging
import shutil
from pathlib import Path
from typing import BinaryIO, List, Union

from vod_pipeline.exceptions import StorageError, StorageNotFound
from vod_pipeline.services.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class LocalStorageBackend(StorageBackend):
    """
    Keys map to files under a root directory

    Directory structure mirrors the key namespace, e.g.
    <root>/<videoId>/720p/segment_000.ts
    """

    name = "local"

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Absolute path for key; keys may not escape the root"""
        path = (self.root / key.lstrip("/")).resolve()
        if path != self.root and self.root not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def put(self, key, data, content_type="application/octet-stream"):
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                if isinstance(data, (bytes, bytearray)):
                    f.write(data)
                else:
                    shutil.copyfileobj(data, f)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e
        return key

    def put_from_local_path(self, path, key, content_type=None):
        target = self.path_for(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if Path(path).resolve() != target:
                shutil.copyfile(path, target)
        except OSError as e:
            raise StorageError(f"Failed to copy {path} to {key}: {e}") from e
        return key

    def get_stream(self, key) -> BinaryIO:
        path = self.path_for(key)
        if not path.is_file():
            raise StorageNotFound(key)
        return open(path, "rb")

    def exists(self, key) -> bool:
        return self.path_for(key).is_file()

    def list(self, prefix) -> List[str]:
        base = self.path_for(prefix) if prefix else self.root
        if base.is_file():
            return [base.relative_to(self.root).as_posix()]
        if not base.is_dir():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in base.rglob("*")
            if p.is_file()
        )

    def delete(self, key) -> None:
        path = self.path_for(key)
        try:
            if path.is_file():
                path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e

    def delete_prefix(self, prefix) -> int:
        if not prefix:
            raise StorageError("Refusing to delete the whole storage root")
        keys = self.list(prefix)
        base = self.path_for(prefix)
        try:
            if base.is_dir():
                shutil.rmtree(base)
            else:
                for key in keys:
                    self.path_for(key).unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete prefix {prefix}: {e}") from e
        logger.info(f"Deleted {len(keys)} files under {self.root / prefix}")
        return len(keys)

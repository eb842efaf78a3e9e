"""
Pytest configuration and shared fixtures
"""
import io
import uuid

import pytest
from sqlalchemy.orm import sessionmaker

import vod_pipeline.models  # noqa: F401  (register tables with Base)
from vod_pipeline.config import Settings
from vod_pipeline.database import Base, build_engine
from vod_pipeline.exceptions import StorageError, StorageNotFound
from vod_pipeline.services.key_store import KeyStore
from vod_pipeline.services.storage import LocalStorageBackend, StorageBackend


def pytest_configure(config):
    """Register pytest markers"""
    config.addinivalue_line(
        "markers", "external: tests that need a real object store"
    )
    config.addinivalue_line(
        "markers", "slow: tests that run the real ffmpeg binary"
    )


class MemoryStorageBackend(StorageBackend):
    """Dict-backed object store used in place of S3"""

    name = "memory"

    def __init__(self):
        self.objects = {}
        self.content_types = {}

    def put(self, key, data, content_type="application/octet-stream"):
        self.objects[key] = bytes(data) if isinstance(data, (bytes, bytearray)) else data.read()
        self.content_types[key] = content_type
        return key

    def put_from_local_path(self, path, key, content_type=None):
        with open(path, "rb") as f:
            return self.put(key, f.read(), content_type or "application/octet-stream")

    def get_stream(self, key):
        if key not in self.objects:
            raise StorageNotFound(key)
        return io.BytesIO(self.objects[key])

    def exists(self, key):
        return key in self.objects

    def list(self, prefix):
        return sorted(k for k in self.objects if k.startswith(prefix))

    def delete(self, key):
        self.objects.pop(key, None)

    def delete_prefix(self, prefix):
        if not prefix:
            raise StorageError("Refusing to delete everything")
        keys = self.list(prefix.rstrip("/") + "/")
        for key in keys:
            del self.objects[key]
        return len(keys)


def make_settings(tmp_path, **overrides):
    values = dict(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        base_url="http://testserver",
        keys_root_dir=str(tmp_path / "keys"),
        staging_dir=str(tmp_path / "staging"),
        public_videos_dir=str(tmp_path / "public" / "videos"),
        work_dir=str(tmp_path / "work"),
        r2_account_id=None,
        r2_endpoint_url=None,
        r2_access_key_id=None,
        r2_secret_access_key=None,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    """Local-only settings rooted in a temporary directory"""
    return make_settings(tmp_path)


@pytest.fixture
def r2_settings(tmp_path):
    """Settings with object storage configured"""
    return make_settings(
        tmp_path,
        r2_endpoint_url="https://r2.example.com",
        r2_access_key_id="test-access-key",
        r2_secret_access_key="test-secret-key",
    )


@pytest.fixture
def db_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    """Create a test database session"""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def key_store(tmp_path):
    return KeyStore(LocalStorageBackend(tmp_path / "keys"))


@pytest.fixture
def memory_store():
    return MemoryStorageBackend()


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def settings_factory(tmp_path):
    """Build settings rooted in tmp_path with overrides"""
    def factory(**overrides):
        return make_settings(tmp_path, **overrides)
    return factory

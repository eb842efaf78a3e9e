"""
API test fixtures: app with overridden dependencies and bearer tokens
"""
import uuid

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from vod_pipeline.config import get_settings
from vod_pipeline.database import get_db
from vod_pipeline.main import app
from vod_pipeline.services.access import AccessGateway, get_access_gateway
from vod_pipeline.services.task_queue import TaskQueue, get_task_queue
from vod_pipeline.services.videos import VideoService, get_video_service


def make_token(user_id, role=None, secret=None):
    settings = get_settings()
    claims = {"sub": str(user_id)}
    if role:
        claims["role"] = role
    return jwt.encode(claims, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture
def auth_header():
    def header(user_id, role=None):
        return {"Authorization": f"Bearer {make_token(user_id, role)}"}
    return header


@pytest.fixture
def teacher_id():
    return uuid.uuid4()


@pytest.fixture
def gateway(settings, key_store):
    return AccessGateway(settings, key_store)


@pytest.fixture
def video_service(settings, key_store):
    return VideoService(settings, key_store)


@pytest.fixture
def client(session_factory, gateway, video_service):
    """Create test client with dependencies"""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    queue = TaskQueue()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_access_gateway] = lambda: gateway
    app.dependency_overrides[get_task_queue] = lambda: queue
    app.dependency_overrides[get_video_service] = lambda: video_service

    yield TestClient(app)

    app.dependency_overrides.clear()

"""
Video Model
"""
import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Float, Integer, BigInteger, DateTime, Text

from vod_pipeline.database import Base
from vod_pipeline.models.types import GUID


class StorageProvider(str, enum.Enum):
    LOCAL = "local"
    OBJECT_STORE = "r2"


class VideoStatus(str, enum.Enum):
    PENDING_CREATION = "pending_creation"
    STAGING_PLACEHOLDER = "staging_placeholder"
    ACTIVE = "active"


class Video(Base):
    """
    One media asset

    storage_path points at the staged source (a directory holding input.mp4
    or input.webm); r2_key is the object-store prefix of the final output
    and stays NULL for local videos.
    """
    __tablename__ = "videos"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    storage_path = Column(Text, nullable=False)
    storage_provider = Column(String(20), nullable=False, default=StorageProvider.LOCAL.value)
    r2_key = Column(Text, nullable=True)
    signing_secret = Column(String(64), nullable=False)

    owner_id = Column(GUID, nullable=False, index=True)
    lesson_id = Column(GUID, nullable=True, index=True)
    order = Column("order", Integer, nullable=False, default=0)

    size_bytes = Column(BigInteger, nullable=True)
    duration_seconds = Column(Float, nullable=True)
    status = Column(String(32), nullable=False, default=VideoStatus.PENDING_CREATION.value)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def is_object_store(self) -> bool:
        return self.storage_provider == StorageProvider.OBJECT_STORE.value

    def __repr__(self):
        return f"<Video(id={self.id}, title={self.title}, provider={self.storage_provider}, status={self.status})>"

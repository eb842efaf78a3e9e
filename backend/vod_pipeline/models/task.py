"""
Processing Task Model
"""
import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import validates

from vod_pipeline.database import Base
from vod_pipeline.exceptions import InvalidParameter
from vod_pipeline.models.types import GUID

ALLOWED_CODECS = ("h264", "h265")
ALLOWED_RESOLUTIONS = ("360p", "720p", "1080p")
CRF_RANGE = (0, 51)


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = (TaskStatus.COMPLETED.value, TaskStatus.FAILED.value)


class ProcessingTask(Base):
    """
    One transcode job

    pending → processing → completed | failed. Nothing moves a task back;
    a failed task stays failed until an operator intervenes.
    """
    __tablename__ = "video_processing_tasks"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    video_id = Column(GUID, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, nullable=False)
    codec_preference = Column(String(10), nullable=False, default="h264")
    resolutions = Column(JSON, nullable=False, default=list)
    crf = Column(Integer, nullable=True)
    compress = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default=TaskStatus.PENDING.value, index=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @validates("codec_preference")
    def validate_codec(self, key, value):
        if value not in ALLOWED_CODECS:
            raise InvalidParameter(f"Invalid codec preference: {value!r}")
        return value

    @validates("resolutions")
    def validate_resolutions(self, key, value):
        value = list(value or [])
        invalid = [r for r in value if r not in ALLOWED_RESOLUTIONS]
        if invalid:
            raise InvalidParameter(f"Invalid resolutions: {', '.join(map(str, invalid))}")
        return value

    @validates("crf")
    def validate_crf(self, key, value):
        if value is None:
            return value
        if isinstance(value, bool) or not isinstance(value, int) or not CRF_RANGE[0] <= value <= CRF_RANGE[1]:
            raise InvalidParameter(f"Invalid crf: {value!r}")
        return value

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f"<ProcessingTask(id={self.id}, video_id={self.video_id}, status={self.status})>"

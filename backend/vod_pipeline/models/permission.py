"""
User Permission Model
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey

from vod_pipeline.database import Base
from vod_pipeline.models.types import GUID


class UserPermission(Base):
    """Time-boxed viewing grant; one row per (user, video), re-granting moves expires_at"""
    __tablename__ = "user_permissions"

    user_id = Column(GUID, primary_key=True)
    video_id = Column(GUID, ForeignKey("videos.id"), primary_key=True)
    expires_at = Column(DateTime, nullable=False)

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now

    def __repr__(self):
        return f"<UserPermission(user_id={self.user_id}, video_id={self.video_id}, expires_at={self.expires_at})>"

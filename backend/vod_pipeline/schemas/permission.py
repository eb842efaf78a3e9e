"""
Permission Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID


class PermissionGrant(BaseModel):
    """Grant a user time-boxed access to a video"""
    user_id: UUID
    video_id: UUID
    duration_seconds: Optional[int] = Field(default=None, gt=0, description="Defaults to one hour")


class PermissionResponse(BaseModel):
    user_id: UUID
    video_id: UUID
    expires_at: datetime

    class Config:
        from_attributes = True

"""
Video Schemas
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from uuid import UUID


class VideoResponse(BaseModel):
    """Video response schema"""
    id: UUID
    title: str
    owner_id: UUID
    lesson_id: Optional[UUID] = None
    order: int = 0
    storage_provider: str
    r2_key: Optional[str] = None
    size_bytes: Optional[int] = None
    duration_seconds: Optional[float] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class SignedUrlResponse(BaseModel):
    url: str

"""
Processing Task Schemas
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from vod_pipeline.models.task import ALLOWED_CODECS, ALLOWED_RESOLUTIONS, CRF_RANGE


class ProcessingTaskCreate(BaseModel):
    """Processing task request"""
    video_id: UUID
    codec_preference: str = Field(default="h264", description="h264 or h265")
    resolutions: List[str] = Field(default_factory=list, description="Subset of 360p, 720p, 1080p")
    crf: Optional[int] = Field(default=None, ge=CRF_RANGE[0], le=CRF_RANGE[1])
    compress: bool = False

    @field_validator("codec_preference")
    @classmethod
    def check_codec(cls, value):
        if value not in ALLOWED_CODECS:
            raise ValueError(f"codec_preference must be one of {', '.join(ALLOWED_CODECS)}")
        return value

    @field_validator("resolutions")
    @classmethod
    def check_resolutions(cls, value):
        invalid = [r for r in value if r not in ALLOWED_RESOLUTIONS]
        if invalid:
            raise ValueError(f"Invalid resolutions: {', '.join(invalid)}")
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "video_id": "4b3a8a53-3f6e-4c1e-9d8e-4b0b8d7a2f10",
                "codec_preference": "h264",
                "resolutions": ["720p"],
                "crf": 28,
                "compress": False
            }
        }


class ProcessingTaskResponse(BaseModel):
    """Processing task status"""
    id: UUID
    video_id: UUID
    user_id: UUID
    codec_preference: str
    resolutions: List[str]
    crf: Optional[int] = None
    compress: bool
    status: str
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

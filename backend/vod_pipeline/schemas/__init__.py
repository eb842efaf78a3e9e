"""
Pydantic Schemas
"""
from vod_pipeline.schemas.video import VideoResponse, SignedUrlResponse
from vod_pipeline.schemas.task import ProcessingTaskCreate, ProcessingTaskResponse
from vod_pipeline.schemas.permission import PermissionGrant, PermissionResponse

__all__ = [
    "VideoResponse", "SignedUrlResponse",
    "ProcessingTaskCreate", "ProcessingTaskResponse",
    "PermissionGrant", "PermissionResponse",
]

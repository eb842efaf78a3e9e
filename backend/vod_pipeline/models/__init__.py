"""
Database Models
"""
from vod_pipeline.models.video import Video, StorageProvider, VideoStatus
from vod_pipeline.models.task import ProcessingTask, TaskStatus
from vod_pipeline.models.permission import UserPermission

__all__ = [
    "Video", "StorageProvider", "VideoStatus",
    "ProcessingTask", "TaskStatus",
    "UserPermission",
]

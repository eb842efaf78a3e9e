"""
Admin API Endpoints

Uploads, permission grants, processing tasks and deletion. Restricted to
privileged roles (admin, teacher).
"""
import logging
import os
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from vod_pipeline.api.deps import CurrentUser, http_error, require_privileged
from vod_pipeline.database import get_db
from vod_pipeline.exceptions import VideoPipelineError
from vod_pipeline.schemas.permission import PermissionGrant, PermissionResponse
from vod_pipeline.schemas.task import ProcessingTaskCreate, ProcessingTaskResponse
from vod_pipeline.schemas.video import VideoResponse
from vod_pipeline.services.access import AccessGateway, get_access_gateway
from vod_pipeline.services.task_queue import TaskQueue, get_task_queue
from vod_pipeline.services.videos import VideoService, get_video_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1/admin", tags=["admin"])

ALLOWED_EXTENSIONS = {".mp4", ".mov", ".mkv", ".webm"}
UPLOAD_RESOLUTIONS = ["360p", "720p", "1080p"]


@router.post("/videos", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
def upload_video(
    file: UploadFile = File(...),
    title: Optional[str] = Form(default=None),
    lesson_id: Optional[UUID] = Form(default=None),
    order: int = Form(default=0),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_privileged),
    videos: VideoService = Depends(get_video_service),
    queue: TaskQueue = Depends(get_task_queue)
):
    """
    Upload a video and queue it for processing

    - Creates the video row and its encryption key
    - Stages the file as the video's source
    - Enqueues an h264 task; the worker publishes the HLS output
    """
    file_ext = os.path.splitext(file.filename or "")[1].lower()
    if file_ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file extension. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    try:
        video = videos.create_video(
            db,
            title=title or os.path.splitext(file.filename)[0],
            owner_id=user.id,
            lesson_id=lesson_id,
            order=order,
        )
    except VideoPipelineError as e:
        raise http_error(e)

    video_id = video.id
    try:
        video = videos.attach_source(db, video_id, file.filename, file.file)
        queue.enqueue(db, video_id, user.id, "h264", UPLOAD_RESOLUTIONS)
    except Exception as e:
        logger.warning(f"Upload of video {video_id} failed, discarding it: {e}")
        videos.discard_video(db, video_id)
        raise http_error(e)

    return video


@router.delete("/videos/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_video(
    video_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_privileged),
    gateway: AccessGateway = Depends(get_access_gateway)
):
    try:
        gateway.delete_video(db, video_id, user.id)
    except VideoPipelineError as e:
        raise http_error(e)


@router.post("/permissions", response_model=PermissionResponse)
def grant_permission(
    grant: PermissionGrant,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_privileged),
    gateway: AccessGateway = Depends(get_access_gateway)
):
    try:
        return gateway.grant_permission(db, grant.user_id, grant.video_id, grant.duration_seconds)
    except VideoPipelineError as e:
        raise http_error(e)


@router.post("/processing-tasks", response_model=ProcessingTaskResponse, status_code=status.HTTP_201_CREATED)
def create_processing_task(
    request: ProcessingTaskCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_privileged),
    queue: TaskQueue = Depends(get_task_queue)
):
    """Queue a transcode of an existing video"""
    try:
        return queue.enqueue(
            db,
            request.video_id,
            user.id,
            request.codec_preference,
            request.resolutions,
            request.crf,
            request.compress,
        )
    except VideoPipelineError as e:
        raise http_error(e)


@router.get("/processing-tasks/{task_id}", response_model=ProcessingTaskResponse)
def get_processing_task(
    task_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_privileged),
    queue: TaskQueue = Depends(get_task_queue)
):
    try:
        return queue.get(db, task_id)
    except VideoPipelineError as e:
        raise http_error(e)

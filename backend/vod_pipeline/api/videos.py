"""
Viewer API Endpoints

Key release, playable manifest URLs and the object-store stream proxy.
All routes need a bearer token; authorization is ownership or an
unexpired permission grant.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from vod_pipeline.api.deps import CurrentUser, get_current_user, http_error
from vod_pipeline.database import get_db
from vod_pipeline.exceptions import VideoPipelineError
from vod_pipeline.schemas.video import SignedUrlResponse
from vod_pipeline.services.access import AccessGateway, get_access_gateway

router = APIRouter(prefix="/v1/video", tags=["video"])

STREAM_CHUNK_SIZE = 64 * 1024


def iter_stream(stream, chunk_size: int = STREAM_CHUNK_SIZE):
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


@router.get("/get-key")
def get_key(
    id: Optional[str] = Query(default=None),
    vid: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    gateway: AccessGateway = Depends(get_access_gateway)
):
    """
    Raw AES-128 key for a video

    The key URI written into every variant playlist points here. Accepts
    the video id as `id` or `vid`.
    """
    video_id = id or vid
    if not video_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing video id")

    try:
        key = gateway.get_key_for_viewer(db, user.id, video_id)
    except VideoPipelineError as e:
        raise http_error(e)

    return Response(
        content=key,
        media_type="application/octet-stream",
        headers={"Cache-Control": "no-store"}
    )


@router.get("/{video_id}/signed-url", response_model=SignedUrlResponse)
def get_signed_url(
    video_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    gateway: AccessGateway = Depends(get_access_gateway)
):
    try:
        url = gateway.get_signed_manifest_url(db, user.id, video_id)
    except VideoPipelineError as e:
        raise http_error(e)
    return SignedUrlResponse(url=url)


@router.get("/{video_id}/stream/{subpath:path}")
def stream(
    video_id: str,
    subpath: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    gateway: AccessGateway = Depends(get_access_gateway)
):
    """Proxy a manifest or segment of an object-store video"""
    try:
        body, content_type = gateway.open_stream(db, user.id, video_id, subpath)
    except VideoPipelineError as e:
        raise http_error(e)

    return StreamingResponse(iter_stream(body), media_type=content_type)

"""
Local playback routes

Serves the HLS output of locally stored videos. The master playlist needs a
signed link (`sig`, `expires`); variant playlists and encrypted segments are
served directly.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from vod_pipeline.api.deps import http_error
from vod_pipeline.config import get_settings
from vod_pipeline.database import get_db
from vod_pipeline.exceptions import VideoPipelineError
from vod_pipeline.services.access import AccessGateway, get_access_gateway

router = APIRouter(prefix=get_settings().local_videos_path, tags=["playback"])


@router.get("/{video_id}/{subpath:path}")
def serve_local_file(
    request: Request,
    video_id: str,
    subpath: str,
    sig: Optional[str] = Query(default=None),
    expires: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    gateway: AccessGateway = Depends(get_access_gateway)
):
    try:
        path, content_type = gateway.resolve_local_file(db, video_id, subpath, sig, expires, request.url.path)
    except VideoPipelineError as e:
        raise http_error(e)
    return FileResponse(path, media_type=content_type)

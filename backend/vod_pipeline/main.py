"""
FastAPI Main Application
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vod_pipeline.config import get_settings
from vod_pipeline.database import init_db
from vod_pipeline.utils.logger import setup_logger

settings = get_settings()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Encrypted HLS video processing and delivery",
)


@app.on_event("startup")
async def startup_event():
    """Configure logging, verify ffmpeg and create tables"""
    setup_logger(level=settings.log_level)

    try:
        from vod_pipeline.utils.ffmpeg_check import validate_ffmpeg_for_hls
        validate_ffmpeg_for_hls(settings.ffmpeg_path, settings.ffprobe_path)
    except Exception as e:
        logger.warning(f"ffmpeg check failed (processing will not work): {e}")

    if settings.r2_configured:
        logger.info(f"Object storage: bucket {settings.r2_bucket_name} at {settings.r2_endpoint}")
    else:
        logger.info("Object storage not configured; videos are stored locally")

    init_db()


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {
        "message": "VOD Pipeline API",
        "version": settings.app_version,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint with dependency status"""
    from vod_pipeline.utils.ffmpeg_check import check_ffmpeg_installation, verify_ffmpeg_capabilities

    health = {"status": "healthy", "dependencies": {}}

    try:
        ffmpeg_info = check_ffmpeg_installation(settings.ffmpeg_path, settings.ffprobe_path)
        health["dependencies"]["ffmpeg"] = {
            "status": "ok",
            "version": ffmpeg_info.get("version", "unknown"),
            "capabilities": verify_ffmpeg_capabilities(settings.ffmpeg_path)
        }
    except Exception as e:
        health["dependencies"]["ffmpeg"] = {
            "status": "error",
            "message": str(e)
        }
        health["status"] = "degraded"

    if settings.r2_configured:
        health["dependencies"]["object_storage"] = {
            "status": "ok",
            "bucket": settings.r2_bucket_name,
            "public_url": settings.r2_public_url,
        }
    else:
        health["dependencies"]["object_storage"] = {"status": "disabled"}

    return health


from vod_pipeline.api.videos import router as videos_router  # noqa: E402
from vod_pipeline.api.admin import router as admin_router  # noqa: E402
from vod_pipeline.api.playback import router as playback_router  # noqa: E402

app.include_router(videos_router)
app.include_router(admin_router)
app.include_router(playback_router)

"""
FFmpeg installation checks

Run at API startup and from /health so a host without a usable ffmpeg
build shows up before the first transcode fails.
"""
import subprocess
import shutil
from typing import Optional, Dict
import logging

logger = logging.getLogger(__name__)


class FFmpegNotFoundError(Exception):
    """ffmpeg is missing or lacks a required encoder or muxer"""
    pass


def check_ffmpeg_installation(ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe") -> Dict[str, str]:
    """
    Locate ffmpeg and ffprobe

    Returns:
        Dict with 'ffmpeg_path', 'ffprobe_path', 'version'

    Raises:
        FFmpegNotFoundError: ffmpeg is not on PATH
    """
    resolved = shutil.which(ffmpeg_path)
    if not resolved:
        raise FFmpegNotFoundError(
            f"ffmpeg not found ({ffmpeg_path}). Install a build with libx264, libx265 and aac, "
            "or set FFMPEG_PATH."
        )

    result = {
        "ffmpeg_path": resolved,
        "ffprobe_path": shutil.which(ffprobe_path) or "Not found",
        "version": get_ffmpeg_version(resolved) or "Unknown"
    }

    logger.info(f"ffmpeg found: {result}")
    return result


def get_ffmpeg_version(ffmpeg_path: str = "ffmpeg") -> Optional[str]:
    """First line of `ffmpeg -version`, e.g. "ffmpeg version 6.1.1", or None"""
    try:
        result = subprocess.run(
            [ffmpeg_path, "-version"],
            capture_output=True,
            text=True,
            timeout=10
        )
        if result.returncode == 0:
            return result.stdout.split('\n')[0]
        return None
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning(f"ffmpeg version check failed: {e}")
        return None


def verify_ffmpeg_capabilities(ffmpeg_path: str = "ffmpeg") -> Dict[str, bool]:
    capabilities = {
        "h264_encoder": False,
        "h265_encoder": False,
        "aac_encoder": False,
        "hls_muxer": False
    }

    try:
        encoders_result = subprocess.run(
            [ffmpeg_path, "-hide_banner", "-encoders"],
            capture_output=True,
            text=True,
            timeout=10
        )
        if encoders_result.returncode == 0:
            output = encoders_result.stdout
            capabilities["h264_encoder"] = "libx264" in output
            capabilities["h265_encoder"] = "libx265" in output
            capabilities["aac_encoder"] = "aac" in output

        muxers_result = subprocess.run(
            [ffmpeg_path, "-hide_banner", "-muxers"],
            capture_output=True,
            text=True,
            timeout=10
        )
        if muxers_result.returncode == 0:
            capabilities["hls_muxer"] = "hls" in muxers_result.stdout

    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning(f"ffmpeg capability check failed: {e}")

    return capabilities


def validate_ffmpeg_for_hls(ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe") -> bool:
    """
    Raises:
        FFmpegNotFoundError: H.264, AAC or the HLS muxer is unavailable
    """
    check_ffmpeg_installation(ffmpeg_path, ffprobe_path)
    capabilities = verify_ffmpeg_capabilities(ffmpeg_path)

    missing = []
    if not capabilities["h264_encoder"]:
        missing.append("libx264")
    if not capabilities["aac_encoder"]:
        missing.append("aac")
    if not capabilities["hls_muxer"]:
        missing.append("hls muxer")

    if missing:
        raise FFmpegNotFoundError(f"ffmpeg is missing required features: {', '.join(missing)}")

    if not capabilities["h265_encoder"]:
        logger.warning("libx265 not available; h265 tasks will fail")

    logger.info("ffmpeg HLS capabilities verified")
    return True

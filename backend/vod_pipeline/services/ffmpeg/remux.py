"""
Recording Remux

Browser MediaRecorder output (WebM) often lacks duration and cue data, which
makes ffprobe unreliable. Stream-copying it into Matroska rewrites the
container without touching the encoded streams.
"""
import logging
from pathlib import Path
from typing import Optional, Union

import ffmpeg

from vod_pipeline.config import get_settings
from vod_pipeline.exceptions import RemuxFailed

logger = logging.getLogger(__name__)

RECORDER_EXTENSIONS = {".webm"}
REMUX_FILENAME = "remuxed.mkv"
TOO_SHORT_MESSAGE = (
    "Recording is too short or incomplete to process. "
    "Please record for at least a few seconds and try again."
)


def needs_remux(source: Union[str, Path]) -> bool:
    return Path(source).suffix.lower() in RECORDER_EXTENSIONS


def remux_recording(source: Union[str, Path], work_dir: Union[str, Path], ffmpeg_path: Optional[str] = None) -> Path:
    """
    Stream-copy a recorder file into <work_dir>/remuxed.mkv

    Raises:
        RemuxFailed: with a user-facing message when ffmpeg fails or writes nothing
    """
    ffmpeg_path = ffmpeg_path or get_settings().ffmpeg_path
    output_path = Path(work_dir) / REMUX_FILENAME
    output_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        (
            ffmpeg
            .input(str(source))
            .output(str(output_path), c='copy')
            .run(cmd=ffmpeg_path, capture_stdout=True, capture_stderr=True, overwrite_output=True)
        )
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace") if e.stderr else str(e)
        logger.warning(f"Remux of {source} failed: {stderr.strip()[-500:]}")
        raise RemuxFailed(TOO_SHORT_MESSAGE) from e

    if not output_path.exists() or output_path.stat().st_size == 0:
        raise RemuxFailed(TOO_SHORT_MESSAGE)

    logger.info(f"Remuxed {source} -> {output_path}")
    return output_path

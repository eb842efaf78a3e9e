"""
Video Metadata Extraction Service

Uses ffprobe (through ffmpeg-python) to read the facts the encoder needs:
dimensions, audio presence and duration.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import ffmpeg

from vod_pipeline.config import get_settings
from vod_pipeline.exceptions import UnsupportedMedia

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MediaProbe:
    width: int
    height: int
    has_audio: bool
    duration_seconds: Optional[float] = None
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None


class VideoMetadata:
    """Video metadata extraction using ffprobe"""

    def __init__(self, ffprobe_path: Optional[str] = None):
        self.ffprobe_path = ffprobe_path or get_settings().ffprobe_path

    def probe(self, file_path: str) -> MediaProbe:
        """
        Probe a media file

        Raises:
            UnsupportedMedia: if ffprobe fails or there is no video stream
        """
        try:
            probe = ffmpeg.probe(file_path, cmd=self.ffprobe_path)
        except ffmpeg.Error as e:
            stderr = e.stderr.decode(errors="replace") if e.stderr else str(e)
            raise UnsupportedMedia(f"Failed to probe media: {stderr.strip()[-500:]}") from e

        streams = probe.get('streams', [])
        video_stream = next((s for s in streams if s.get('codec_type') == 'video'), None)
        audio_stream = next((s for s in streams if s.get('codec_type') == 'audio'), None)

        if not video_stream:
            raise UnsupportedMedia("No video stream found in input file")

        width = int(video_stream.get('width') or 0)
        height = int(video_stream.get('height') or 0)
        if width <= 0 or height <= 0:
            raise UnsupportedMedia(f"Invalid video dimensions {width}x{height}")

        duration = probe.get('format', {}).get('duration') or video_stream.get('duration')
        result = MediaProbe(
            width=width,
            height=height,
            has_audio=audio_stream is not None,
            duration_seconds=float(duration) if duration not in (None, 'N/A') else None,
            video_codec=video_stream.get('codec_name'),
            audio_codec=audio_stream.get('codec_name') if audio_stream else None,
        )
        logger.info(f"Probed {file_path}: {width}x{height}, audio={'yes' if result.has_audio else 'no'}, duration={result.duration_seconds}")
        return result

"""
Encode Parameter Selection

Maps a task's codec preference and quality override to encoder settings and
decides which variants to produce.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from vod_pipeline.config import Settings, get_settings
from vod_pipeline.exceptions import InvalidParameter
from vod_pipeline.services.video_metadata import MediaProbe

logger = logging.getLogger(__name__)

ENCODERS = {
    "h264": "libx264",
    "h265": "libx265",
}

VIDEO_CODEC_TAGS = {
    "libx264": "avc1.4d401f",
    "libx265": "hvc1.1.4.L93.B0",
}
AUDIO_CODEC_TAG = "mp4a.40.2"

# (minimum height, bandwidth estimate in bits/s)
BANDWIDTH_LADDER = (
    (1080, 5000000),
    (720, 2800000),
    (480, 1400000),
    (0, 800000),
)


@dataclass(frozen=True)
class EncodeParams:
    codec: str
    encoder: str
    crf: int
    preset: str


@dataclass(frozen=True)
class VariantSpec:
    name: str
    width: int
    height: int
    bandwidth: int

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


def select_encode_params(codec_preference: str, crf: Optional[int] = None, settings: Optional[Settings] = None) -> EncodeParams:
    """
    H.264 defaults to CRF 28 for universal playback, H.265 to CRF 26 for
    smaller files; an explicit crf always wins. One preset for everything.
    """
    settings = settings or get_settings()
    encoder = ENCODERS.get(codec_preference)
    if encoder is None:
        raise InvalidParameter(f"Invalid codec preference: {codec_preference!r}")

    default_crf = settings.h265_default_crf if codec_preference == "h265" else settings.h264_default_crf
    return EncodeParams(
        codec=codec_preference,
        encoder=encoder,
        crf=crf if crf is not None else default_crf,
        preset=settings.ffmpeg_preset,
    )


def even(value: int) -> int:
    """Round down to an even number (yuv420p needs even dimensions)"""
    return value - (value % 2)


def bandwidth_for_height(height: int) -> int:
    for min_height, bandwidth in BANDWIDTH_LADDER:
        if height >= min_height:
            return bandwidth
    return BANDWIDTH_LADDER[-1][1]


def plan_variants(probe: MediaProbe, requested: Optional[Iterable[str]] = None) -> List[VariantSpec]:
    """
    Variants to encode for a source

    Only the native resolution is produced. The requested list is the hook
    for ladder encoding; until that exists it is logged, not applied.
    """
    requested = list(requested or [])
    width, height = even(probe.width), even(probe.height)
    native = VariantSpec(
        name=f"{height}p",
        width=width,
        height=height,
        bandwidth=bandwidth_for_height(height),
    )
    if requested:
        logger.info(f"Resolution ladder {requested} requested; encoding native {native.resolution} only")
    return [native]


def codec_string(encoder: str, has_audio: bool) -> str:
    """CODECS attribute for the master playlist"""
    tags = [VIDEO_CODEC_TAGS[encoder]]
    if has_audio:
        tags.append(AUDIO_CODEC_TAG)
    return ",".join(tags)

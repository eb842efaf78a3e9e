"""
Encrypted HLS Encoder

Converts a source file into one AES-128 encrypted HLS variant:

    <output_dir>/<variant>/playlist.m3u8
    <output_dir>/<variant>/segment_000.ts ...

Encryption is driven by an ffmpeg key-info file whose first line is the URI
players call for the key and whose second line is the local key file.
"""
import logging
from pathlib import Path
from typing import Optional, Union

import ffmpeg

from vod_pipeline.config import Settings, get_settings
from vod_pipeline.exceptions import EncodeFailed
from vod_pipeline.services.ffmpeg.params import EncodeParams, VariantSpec

logger = logging.getLogger(__name__)

PLAYLIST_NAME = "playlist.m3u8"
SEGMENT_PATTERN = "segment_%03d.ts"
KEY_INFO_FILENAME = "key_info"


def write_key_info(work_dir: Union[str, Path], key_uri: str, key_path: Union[str, Path]) -> Path:
    """Write the two-line key-info descriptor and return its path"""
    key_info_path = Path(work_dir) / KEY_INFO_FILENAME
    key_info_path.parent.mkdir(parents=True, exist_ok=True)
    key_info_path.write_text(f"{key_uri}\n{Path(key_path).resolve()}\n")
    return key_info_path


class HlsEncoder:
    """
    Encode one variant per call

    Output format:
    - Video: libx264 or libx265 at the task's CRF, fixed preset, yuv420p
    - Audio (when present): AAC, fixed bitrate / sample rate / channels
    - HLS: VOD playlist, fixed segment duration, AES-128 segments
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def encode_variant(
        self,
        source: Union[str, Path],
        output_dir: Union[str, Path],
        variant: VariantSpec,
        params: EncodeParams,
        key_info_path: Union[str, Path],
        has_audio: bool,
    ) -> Path:
        """
        Run ffmpeg for one variant

        Returns:
            Path to the variant playlist

        Raises:
            EncodeFailed: if ffmpeg exits non-zero
        """
        variant_dir = Path(output_dir) / variant.name
        variant_dir.mkdir(parents=True, exist_ok=True)
        playlist_path = variant_dir / PLAYLIST_NAME

        stream = ffmpeg.input(str(source))
        video = stream.video.filter('scale', w=variant.width, h=variant.height)

        output_kwargs = {
            'format': 'hls',
            'vcodec': params.encoder,
            'crf': params.crf,
            'preset': params.preset,
            'pix_fmt': 'yuv420p',
            'hls_time': self.settings.hls_time,
            'hls_playlist_type': 'vod',
            'hls_list_size': 0,
            'hls_key_info_file': str(key_info_path),
            'hls_segment_filename': str(variant_dir / SEGMENT_PATTERN),
        }
        if params.encoder == 'libx265':
            # Apple players only recognise HEVC tagged as hvc1
            output_kwargs['tag:v'] = 'hvc1'

        if has_audio:
            output_kwargs.update(
                acodec='aac',
                audio_bitrate=self.settings.audio_bitrate,
                ar=self.settings.audio_sample_rate,
                ac=self.settings.audio_channels,
            )
            output = ffmpeg.output(video, stream.audio, str(playlist_path), **output_kwargs)
        else:
            output = ffmpeg.output(video, str(playlist_path), **output_kwargs)

        logger.info(f"[{variant.name}] Encoding {variant.resolution} with {params.encoder}, CRF {params.crf}, preset {params.preset}")
        logger.debug(f"[{variant.name}] ffmpeg {' '.join(ffmpeg.get_args(output))}")

        try:
            ffmpeg.run(output, cmd=self.settings.ffmpeg_path, capture_stdout=True, capture_stderr=True, overwrite_output=True)
        except ffmpeg.Error as e:
            stderr = e.stderr.decode(errors="replace") if e.stderr else str(e)
            raise EncodeFailed(f"ffmpeg failed for {variant.name}: {stderr.strip()[-1000:]}") from e

        if not playlist_path.exists():
            raise EncodeFailed(f"ffmpeg produced no playlist for {variant.name}")

        logger.info(f"[{variant.name}] Completed.")
        return playlist_path

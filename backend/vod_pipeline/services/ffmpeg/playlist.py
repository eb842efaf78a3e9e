"""
Master Playlist
"""
from pathlib import Path
from typing import Iterable, Union

from vod_pipeline.services.ffmpeg.encoder import PLAYLIST_NAME
from vod_pipeline.services.ffmpeg.params import VariantSpec, codec_string

MASTER_PLAYLIST_NAME = "master.m3u8"


def build_master_playlist(variants: Iterable[VariantSpec], encoder: str, has_audio: bool) -> str:
    codecs = codec_string(encoder, has_audio)
    lines = ["#EXTM3U", "#EXT-X-VERSION:3"]
    for variant in variants:
        lines.append(
            f'#EXT-X-STREAM-INF:BANDWIDTH={variant.bandwidth},'
            f'RESOLUTION={variant.resolution},CODECS="{codecs}"'
        )
        lines.append(f"{variant.name}/{PLAYLIST_NAME}")
    return "\n".join(lines) + "\n"


def write_master_playlist(output_dir: Union[str, Path], variants: Iterable[VariantSpec], encoder: str, has_audio: bool) -> Path:
    path = Path(output_dir) / MASTER_PLAYLIST_NAME
    path.write_text(build_master_playlist(variants, encoder, has_audio))
    return path

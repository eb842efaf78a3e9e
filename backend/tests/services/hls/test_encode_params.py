"""
Test encode parameter selection and master playlist generation
"""
import pytest

from vod_pipeline.exceptions import InvalidParameter
from vod_pipeline.services.ffmpeg.params import (
    VariantSpec,
    bandwidth_for_height,
    codec_string,
    even,
    plan_variants,
    select_encode_params,
)
from vod_pipeline.services.ffmpeg.playlist import MASTER_PLAYLIST_NAME, build_master_playlist, write_master_playlist
from vod_pipeline.services.video_metadata import MediaProbe


def test_h264_defaults(settings):
    params = select_encode_params("h264", None, settings)
    assert params.encoder == "libx264"
    assert params.crf == 28
    assert params.preset == "slow"


def test_h265_defaults(settings):
    params = select_encode_params("h265", None, settings)
    assert params.encoder == "libx265"
    assert params.crf == 26


def test_explicit_crf_wins(settings):
    assert select_encode_params("h264", 18, settings).crf == 18
    assert select_encode_params("h265", 0, settings).crf == 0


def test_unknown_codec(settings):
    with pytest.raises(InvalidParameter):
        select_encode_params("vp9", None, settings)


def test_even_dimensions():
    assert even(1280) == 1280
    assert even(721) == 720
    assert even(1) == 0


@pytest.mark.parametrize("height, bandwidth", [
    (2160, 5000000),
    (1080, 5000000),
    (720, 2800000),
    (540, 1400000),
    (480, 1400000),
    (360, 800000),
])
def test_bandwidth_ladder(height, bandwidth):
    assert bandwidth_for_height(height) == bandwidth


def test_native_variant_only():
    probe = MediaProbe(width=1281, height=721, has_audio=True)

    variants = plan_variants(probe, ["360p", "1080p"])

    assert variants == [VariantSpec(name="720p", width=1280, height=720, bandwidth=2800000)]
    assert variants[0].resolution == "1280x720"


def test_codec_strings():
    assert codec_string("libx264", True) == "avc1.4d401f,mp4a.40.2"
    assert codec_string("libx264", False) == "avc1.4d401f"
    assert codec_string("libx265", True) == "hvc1.1.4.L93.B0,mp4a.40.2"


def test_master_playlist():
    variants = [VariantSpec(name="1080p", width=1920, height=1080, bandwidth=5000000)]

    assert build_master_playlist(variants, "libx264", True) == (
        "#EXTM3U\n"
        "#EXT-X-VERSION:3\n"
        '#EXT-X-STREAM-INF:BANDWIDTH=5000000,RESOLUTION=1920x1080,CODECS="avc1.4d401f,mp4a.40.2"\n'
        "1080p/playlist.m3u8\n"
    )


def test_master_playlist_without_audio(tmp_path):
    variants = [VariantSpec(name="360p", width=640, height=360, bandwidth=800000)]

    path = write_master_playlist(tmp_path, variants, "libx265", False)

    assert path == tmp_path / MASTER_PLAYLIST_NAME
    content = path.read_text()
    assert 'CODECS="hvc1.1.4.L93.B0"' in content
    assert "mp4a" not in content

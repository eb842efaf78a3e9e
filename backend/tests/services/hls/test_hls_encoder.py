"""
Test encrypted HLS encoder

ffmpeg.run is mocked; the real filter graph is built so the assertions check
the actual command line.
"""
from pathlib import Path
from unittest.mock import patch

import ffmpeg
import pytest

from vod_pipeline.exceptions import EncodeFailed
from vod_pipeline.services.ffmpeg.encoder import HlsEncoder, write_key_info
from vod_pipeline.services.ffmpeg.params import VariantSpec, select_encode_params

VARIANT = VariantSpec(name="720p", width=1280, height=720, bandwidth=2800000)


def arg_value(args, flag):
    return args[args.index(flag) + 1]


@pytest.fixture
def encoder(settings):
    return HlsEncoder(settings)


@pytest.fixture
def key_info(tmp_path):
    key_path = tmp_path / "key" / "enc.key"
    key_path.parent.mkdir()
    key_path.write_bytes(b"k" * 16)
    return write_key_info(tmp_path, "/v1/video/get-key?id=abc", key_path)


def fake_run(output, **kwargs):
    """Write the playlist ffmpeg would have produced"""
    args = ffmpeg.get_args(output)
    Path(args[-1]).write_text("#EXTM3U\n#EXT-X-KEY:METHOD=AES-128\n")


def test_write_key_info(tmp_path):
    key_path = tmp_path / "enc.key"
    key_path.write_bytes(b"k" * 16)

    path = write_key_info(tmp_path / "work", "/v1/video/get-key?id=abc", key_path)

    assert path.read_text().splitlines() == ["/v1/video/get-key?id=abc", str(key_path.resolve())]


@patch('ffmpeg.run', side_effect=fake_run)
def test_h264_variant_with_audio(mock_run, encoder, settings, key_info, tmp_path):
    params = select_encode_params("h264", None, settings)

    playlist = encoder.encode_variant(tmp_path / "input.mp4", tmp_path / "out", VARIANT, params, key_info, True)

    assert playlist == tmp_path / "out" / "720p" / "playlist.m3u8"
    args = ffmpeg.get_args(mock_run.call_args[0][0])
    assert arg_value(args, "-f") == "hls"
    assert arg_value(args, "-vcodec") == "libx264"
    assert arg_value(args, "-crf") == "28"
    assert arg_value(args, "-preset") == "slow"
    assert arg_value(args, "-pix_fmt") == "yuv420p"
    assert arg_value(args, "-hls_time") == "6"
    assert arg_value(args, "-hls_playlist_type") == "vod"
    assert arg_value(args, "-hls_key_info_file") == str(key_info)
    assert arg_value(args, "-hls_segment_filename").endswith("720p/segment_%03d.ts")
    assert arg_value(args, "-acodec") == "aac"
    assert arg_value(args, "-b:a") == "96k"
    assert arg_value(args, "-ar") == "48000"
    assert arg_value(args, "-ac") == "2"
    assert "0:a" in args
    filter_graph = arg_value(args, "-filter_complex")
    assert "scale=" in filter_graph
    assert "w=1280" in filter_graph and "h=720" in filter_graph
    assert "-tag:v" not in args
    assert mock_run.call_args.kwargs["cmd"] == settings.ffmpeg_path


@patch('ffmpeg.run', side_effect=fake_run)
def test_h265_variant_without_audio(mock_run, encoder, settings, key_info, tmp_path):
    params = select_encode_params("h265", 30, settings)

    encoder.encode_variant(tmp_path / "input.mp4", tmp_path / "out", VARIANT, params, key_info, False)

    args = ffmpeg.get_args(mock_run.call_args[0][0])
    assert arg_value(args, "-vcodec") == "libx265"
    assert arg_value(args, "-crf") == "30"
    assert arg_value(args, "-tag:v") == "hvc1"
    assert "-acodec" not in args
    assert "0:a" not in args


@patch('ffmpeg.run')
def test_ffmpeg_failure_raises_encode_failed(mock_run, encoder, settings, key_info, tmp_path):
    mock_run.side_effect = ffmpeg.Error("ffmpeg", b"", b"Unknown encoder 'libx265'")
    params = select_encode_params("h265", None, settings)

    with pytest.raises(EncodeFailed, match="Unknown encoder"):
        encoder.encode_variant(tmp_path / "input.mp4", tmp_path / "out", VARIANT, params, key_info, True)


@patch('ffmpeg.run')
def test_missing_playlist_raises_encode_failed(mock_run, encoder, settings, key_info, tmp_path):
    params = select_encode_params("h264", None, settings)

    with pytest.raises(EncodeFailed, match="no playlist"):
        encoder.encode_variant(tmp_path / "input.mp4", tmp_path / "out", VARIANT, params, key_info, True)

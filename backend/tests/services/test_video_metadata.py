"""
Test video metadata extraction
"""
from unittest.mock import patch

import ffmpeg
import pytest

from vod_pipeline.exceptions import UnsupportedMedia
from vod_pipeline.services.video_metadata import VideoMetadata


def probe_result(streams, duration="12.480000"):
    return {"streams": streams, "format": {"duration": duration}}


VIDEO_STREAM = {"codec_type": "video", "codec_name": "h264", "width": 1920, "height": 1080}
AUDIO_STREAM = {"codec_type": "audio", "codec_name": "opus"}


@pytest.fixture
def metadata():
    return VideoMetadata("ffprobe")


@patch('ffmpeg.probe')
def test_probe_with_audio(mock_probe, metadata):
    mock_probe.return_value = probe_result([VIDEO_STREAM, AUDIO_STREAM])

    result = metadata.probe("/tmp/input.mp4")

    assert (result.width, result.height) == (1920, 1080)
    assert result.has_audio
    assert result.duration_seconds == pytest.approx(12.48)
    assert result.video_codec == "h264"
    assert result.audio_codec == "opus"
    mock_probe.assert_called_once_with("/tmp/input.mp4", cmd="ffprobe")


@patch('ffmpeg.probe')
def test_probe_without_audio_or_duration(mock_probe, metadata):
    mock_probe.return_value = probe_result([VIDEO_STREAM], duration="N/A")

    result = metadata.probe("/tmp/input.mp4")

    assert not result.has_audio
    assert result.audio_codec is None
    assert result.duration_seconds is None


@patch('ffmpeg.probe')
def test_probe_audio_only_file(mock_probe, metadata):
    mock_probe.return_value = probe_result([AUDIO_STREAM])

    with pytest.raises(UnsupportedMedia, match="No video stream"):
        metadata.probe("/tmp/input.mp4")


@patch('ffmpeg.probe')
def test_probe_zero_dimensions(mock_probe, metadata):
    mock_probe.return_value = probe_result([dict(VIDEO_STREAM, width=0)])

    with pytest.raises(UnsupportedMedia):
        metadata.probe("/tmp/input.mp4")


@patch('ffmpeg.probe')
def test_probe_error(mock_probe, metadata):
    mock_probe.side_effect = ffmpeg.Error("ffprobe", b"", b"Invalid data found when processing input")

    with pytest.raises(UnsupportedMedia, match="Invalid data"):
        metadata.probe("/tmp/input.mp4")

"""
Tests for ffmpeg_check utility
"""
import subprocess

import pytest
from unittest.mock import patch, MagicMock
from vod_pipeline.utils.ffmpeg_check import (
    check_ffmpeg_installation,
    get_ffmpeg_version,
    verify_ffmpeg_capabilities,
    validate_ffmpeg_for_hls,
    FFmpegNotFoundError
)


class TestCheckFFmpegInstallation:

    def test_ffmpeg_found(self):
        with patch('shutil.which') as mock_which:
            mock_which.side_effect = lambda x: f"/usr/bin/{x}" if x in ["ffmpeg", "ffprobe"] else None
            with patch('vod_pipeline.utils.ffmpeg_check.get_ffmpeg_version', return_value="ffmpeg version 6.1"):
                result = check_ffmpeg_installation()

                assert result["ffmpeg_path"] == "/usr/bin/ffmpeg"
                assert result["ffprobe_path"] == "/usr/bin/ffprobe"
                assert result["version"] == "ffmpeg version 6.1"

    def test_ffmpeg_not_found(self):
        with patch('shutil.which', return_value=None):
            with pytest.raises(FFmpegNotFoundError) as exc_info:
                check_ffmpeg_installation()

            assert "ffmpeg not found" in str(exc_info.value)
            assert "FFMPEG_PATH" in str(exc_info.value)

    def test_ffprobe_missing(self):
        """Missing ffprobe is reported, not raised"""
        with patch('shutil.which') as mock_which:
            mock_which.side_effect = lambda x: "/usr/bin/ffmpeg" if x == "ffmpeg" else None
            with patch('vod_pipeline.utils.ffmpeg_check.get_ffmpeg_version', return_value="ffmpeg version 6.1"):
                result = check_ffmpeg_installation()

                assert result["ffprobe_path"] == "Not found"


class TestGetFFmpegVersion:

    def test_version_success(self):
        mock_result = MagicMock()
        mock_result.returncode = 0
        mock_result.stdout = "ffmpeg version 6.1.1-3ubuntu5\nbuilt with gcc 13"

        with patch('subprocess.run', return_value=mock_result) as mock_run:
            assert get_ffmpeg_version("/opt/ffmpeg") == "ffmpeg version 6.1.1-3ubuntu5"
            assert mock_run.call_args[0][0] == ["/opt/ffmpeg", "-version"]

    def test_version_failure(self):
        mock_result = MagicMock()
        mock_result.returncode = 1

        with patch('subprocess.run', return_value=mock_result):
            assert get_ffmpeg_version() is None

    def test_version_timeout(self):
        with patch('subprocess.run', side_effect=subprocess.TimeoutExpired("ffmpeg", 10)):
            assert get_ffmpeg_version() is None


def fake_run(encoders, muxers):
    def run(args, **kwargs):
        result = MagicMock()
        result.returncode = 0
        result.stdout = encoders if "-encoders" in args else muxers
        return result
    return run


class TestCapabilities:

    def test_all_capabilities(self):
        run = fake_run(" V..... libx264\n V..... libx265\n A..... aac", " E hls  Apple HTTP Live Streaming")
        with patch('subprocess.run', side_effect=run):
            capabilities = verify_ffmpeg_capabilities()

        assert capabilities == {
            "h264_encoder": True,
            "h265_encoder": True,
            "aac_encoder": True,
            "hls_muxer": True,
        }

    def test_validate_reports_missing_features(self):
        run = fake_run(" V..... libx265\n", " E mp4")
        with patch('vod_pipeline.utils.ffmpeg_check.check_ffmpeg_installation'), \
                patch('subprocess.run', side_effect=run):
            with pytest.raises(FFmpegNotFoundError) as exc_info:
                validate_ffmpeg_for_hls()

        message = str(exc_info.value)
        assert "libx264" in message
        assert "aac" in message
        assert "hls muxer" in message

    def test_validate_without_h265_passes(self):
        run = fake_run(" V..... libx264\n A..... aac", " E hls")
        with patch('vod_pipeline.utils.ffmpeg_check.check_ffmpeg_installation'), \
                patch('subprocess.run', side_effect=run):
            assert validate_ffmpeg_for_hls() is True

import json
import subprocess

import pytest

from app.core.exceptions import FrameCaptureError, VideoMetadataError
from app.services import frame_capture, video_metadata
from app.services.frame_capture import capture_frame, delete_captured_frame
from app.services.video_metadata import extract_video_metadata, parse_ffprobe_output


def _ffprobe_json(stream: dict, fmt: dict = None) -> str:
    return json.dumps({"streams": [stream], "format": fmt or {}})


class TestParseFfprobeOutput:
    def test_ntsc_frame_rate(self):
        stdout = _ffprobe_json(
            {"r_frame_rate": "30000/1001", "nb_frames": "300", "duration": "10.01", "width": 1920, "height": 1080}
        )
        metadata = parse_ffprobe_output(stdout)

        assert metadata.fps == 29.97
        assert metadata.total_frames == 300
        assert metadata.duration == 10.01
        assert (metadata.width, metadata.height) == (1920, 1080)

    def test_total_frames_from_duration(self):
        stdout = _ffprobe_json({"r_frame_rate": "25/1", "width": 1280, "height": 720}, {"duration": "4.0"})
        metadata = parse_ffprobe_output(stdout)

        assert metadata.fps == 25.0
        assert metadata.duration == 4.0
        assert metadata.total_frames == 100

    def test_falls_back_to_avg_frame_rate(self):
        stdout = _ffprobe_json({"r_frame_rate": "0/0", "avg_frame_rate": "24/1", "duration": "1.0"})
        assert parse_ffprobe_output(stdout).fps == 24.0

    def test_invalid_json(self):
        with pytest.raises(VideoMetadataError):
            parse_ffprobe_output("not json")

    def test_no_video_stream(self):
        with pytest.raises(VideoMetadataError):
            parse_ffprobe_output(json.dumps({"streams": []}))


class TestExtractVideoMetadata:
    def test_returns_none_when_ffprobe_missing(self, monkeypatch):
        def fake_run(*args, **kwargs):
            raise FileNotFoundError("ffprobe")

        monkeypatch.setattr(video_metadata.subprocess, "run", fake_run)
        assert extract_video_metadata("video.mp4") is None

    def test_returns_metadata(self, monkeypatch):
        stdout = _ffprobe_json({"r_frame_rate": "30/1", "nb_frames": "90", "duration": "3.0", "width": 640, "height": 360})

        def fake_run(cmd, **kwargs):
            assert cmd[-1] == "video.mp4"
            assert kwargs["timeout"] > 0
            return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")

        monkeypatch.setattr(video_metadata.subprocess, "run", fake_run)
        metadata = extract_video_metadata("video.mp4")

        assert metadata.fps == 30.0
        assert metadata.total_frames == 90


class TestCaptureFrame:
    def test_writes_png_at_frame_time(self, monkeypatch, tmp_path):
        output = tmp_path / "frame.png"
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            with open(cmd[-1], "wb") as f:
                f.write(b"\x89PNG")
            return subprocess.CompletedProcess(cmd, 0)

        monkeypatch.setattr(frame_capture.subprocess, "run", fake_run)
        path = capture_frame("video.mp4", 75, 30, output_path=str(output))

        assert path == str(output)
        cmd = calls[0]
        assert cmd[cmd.index("-ss") + 1] == "2.500"
        assert "scale=1920:1080:force_original_aspect_ratio=decrease" in cmd[cmd.index("-vf") + 1]
        assert cmd[cmd.index("-frames:v") + 1] == "1"

    def test_ffmpeg_failure_removes_output(self, monkeypatch, tmp_path):
        output = tmp_path / "frame.png"
        output.write_bytes(b"partial")

        def fake_run(cmd, **kwargs):
            raise subprocess.CalledProcessError(1, cmd, stderr=b"Invalid data found")

        monkeypatch.setattr(frame_capture.subprocess, "run", fake_run)

        with pytest.raises(FrameCaptureError, match="Invalid data found"):
            capture_frame("video.mp4", 10, 30, output_path=str(output))
        assert not output.exists()

    def test_timeout_raises_capture_error(self, monkeypatch, tmp_path):
        def fake_run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr(frame_capture.subprocess, "run", fake_run)

        with pytest.raises(FrameCaptureError):
            capture_frame("video.mp4", 10, 30, output_path=str(tmp_path / "frame.png"))

    def test_empty_output_raises(self, monkeypatch, tmp_path):
        output = tmp_path / "frame.png"

        def fake_run(cmd, **kwargs):
            open(cmd[-1], "wb").close()
            return subprocess.CompletedProcess(cmd, 0)

        monkeypatch.setattr(frame_capture.subprocess, "run", fake_run)

        with pytest.raises(FrameCaptureError):
            capture_frame("video.mp4", 99999, 30, output_path=str(output))
        assert not output.exists()

    def test_delete_missing_frame_is_silent(self, tmp_path):
        delete_captured_frame(str(tmp_path / "missing.png"))
        delete_captured_frame(None)

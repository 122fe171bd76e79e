from unittest.mock import MagicMock

import pytest

from app.core.exceptions import SubjectNotFoundError
from app.schemas.video_schema import Point, VideoMetadata
from app.services import video_analysis_service
from app.services.video_analysis_service import VideoAnalysisService


@pytest.fixture
def gemini(analysis_response_text) -> MagicMock:
    client = MagicMock()
    client.generate_from_video_file.return_value = analysis_response_text
    return client


def _service(client, metadata=None, detector=None, locator_mode="point") -> VideoAnalysisService:
    return VideoAnalysisService(
        detector=detector,
        locator_mode=locator_mode,
        client_factory=MagicMock(return_value=client),
        metadata_extractor=MagicMock(return_value=metadata),
    )


class TestVideoAnalysisService:
    def test_pipeline_without_detector(self, gemini):
        service = _service(gemini)

        result = service.analyze("req_1", "clip.mp4", "video/mp4", api_key="k")

        service.client_factory.assert_called_once_with(api_key="k")
        video_path, mime_type, prompt = gemini.generate_from_video_file.call_args[0]
        assert (video_path, mime_type) == ("clip.mp4", "video/mp4")
        assert "- **Face** (얼굴형)" in prompt
        assert result.meta.bbox == Point(x=640, y=360)
        assert result.meta.bbox_source == "model"
        assert result.meta.start_time == 2.5

    def test_metadata_injected_into_prompt_and_result(self, gemini):
        metadata = VideoMetadata(duration=12.0, fps=25.0, total_frames=300, width=1280, height=720)
        service = _service(gemini, metadata=metadata)

        result = service.analyze("req_2", "clip.mp4", "video/mp4")

        prompt = gemini.generate_from_video_file.call_args[0][2]
        assert "1280 × 720" in prompt
        assert result.meta.fps_used == 25.0
        assert result.meta.start_time == 3.0

    def test_fusion_result_replaces_meta(self, gemini, monkeypatch):
        detector = MagicMock()

        def fake_fuse(request_id, video_path, meta, det, locator_mode):
            assert det is detector
            return meta.model_copy(update={"bbox": Point(x=1, y=2), "bbox_source": "detector"})

        monkeypatch.setattr(video_analysis_service, "fuse_locator", fake_fuse)
        result = _service(gemini, detector=detector).analyze("req_3", "clip.mp4", "video/mp4")

        assert result.meta.bbox == Point(x=1, y=2)
        assert result.meta.bbox_source == "detector"

    def test_subject_not_found_propagates(self):
        client = MagicMock()
        client.generate_from_video_file.return_value = '{"error": true, "message": "표정을 탐지할 만한 인물이 없습니다."}'

        with pytest.raises(SubjectNotFoundError) as exc_info:
            _service(client).analyze("req_4", "clip.mp4", "video/mp4")
        assert exc_info.value.message == "표정을 탐지할 만한 인물이 없습니다."

    def test_box_mode_prompt(self, gemini):
        _service(gemini, locator_mode="box").analyze("req_5", "clip.mp4", "video/mp4")
        prompt = gemini.generate_from_video_file.call_args[0][2]
        assert "바운딩 박스" in prompt

    def test_rejects_unknown_locator_mode(self):
        with pytest.raises(ValueError):
            VideoAnalysisService(locator_mode="polygon")

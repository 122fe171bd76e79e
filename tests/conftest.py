import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.services.description_service import DescriptionRefineService
from app.services.video_analysis_service import VideoAnalysisService


@pytest.fixture
def class_type_payload() -> list:
    """A complete, registry-valid class_type array."""
    return [
        {"category": "Male/Female", "class": 2, "label": "여자"},
        {"category": "EmomainCategory", "class": 1, "label": "긍정"},
        {"category": "EmoCategory", "class": 1, "label": "즐거움"},
        {"category": "Face", "class": 1, "label": "둥근형"},
        {"category": "EyeShape", "class": 2, "label": "수평형"},
        {"category": "NoseShape", "class": 1, "label": "직선형"},
        {"category": "MouthShape", "class": 2, "label": "곡선형"},
    ]


@pytest.fixture
def description_payload() -> list:
    """Five template descriptions in canonical order."""
    return [
        {"category": "상황", "description": "본 영상은 결혼식 장면이다."},
        {"category": "위치", "description": "{{Male/Female}}는 화면의 중앙에 위치하고 있다."},
        {"category": "얼굴", "description": "웃고 있는 {{Male/Female}}는 {{Face}} 얼굴을 가지고 있다."},
        {"category": "복장", "description": "화이트 웨딩드레스를 입고 있다."},
        {"category": "감정", "description": "{{Male/Female}}는 {{EmoCategory}} 상태로 보인다."},
    ]


@pytest.fixture
def analysis_payload(class_type_payload, description_payload) -> dict:
    """A well-formed point-mode analysis response body."""
    return {
        "meta": {
            "frame_number": 75,
            "total_frames": 300,
            "fps_used": 30,
            "start_time": 9.99,
            "bbox": {"x": 640, "y": 360},
        },
        "VA": {"valence": 2, "arousal": 1},
        "class_type": class_type_payload,
        "subject_description": description_payload,
    }


@pytest.fixture
def analysis_response_text(analysis_payload) -> str:
    """Analysis payload wrapped the way Gemini tends to return it."""
    body = json.dumps(analysis_payload, ensure_ascii=False, indent=2)
    return f"분석 결과입니다.\n```json\n{body}\n```\n"


@pytest.fixture
def mock_video_analysis() -> MagicMock:
    """Create a mocked VideoAnalysisService for router tests."""
    return MagicMock(spec=VideoAnalysisService)


@pytest.fixture
def mock_description_refine() -> MagicMock:
    """Create a mocked DescriptionRefineService for router tests."""
    return MagicMock(spec=DescriptionRefineService)


@pytest.fixture
def test_app(mock_video_analysis: MagicMock, mock_description_refine: MagicMock):
    """Create a test FastAPI app with mocked dependencies."""
    from fastapi import FastAPI
    from app.routers.video_router import router as video_router

    app = FastAPI()
    app.state.video_analysis = mock_video_analysis
    app.state.description_refine = mock_description_refine
    app.include_router(video_router)
    return app


@pytest.fixture
def client(test_app) -> TestClient:
    return TestClient(test_app)

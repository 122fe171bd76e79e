import threading
from types import SimpleNamespace
from unittest.mock import MagicMock

import cv2
import numpy as np
import pytest

from app.core.exceptions import LocalDetectionUnavailable
from app.schemas.face_schema import DetectedFace
from app.services.adapters import face_http_adapter
from app.services.adapters.face_http_adapter import FaceHttpAdapter
from app.services.adapters.face_local_adapter import FaceLocalAdapter
from app.services.face_service import build_face_adapter


class _Tensor:
    """Minimal stand-in for the torch tensors ultralytics returns."""

    def __init__(self, values):
        self._values = np.asarray(values, dtype=float)

    def cpu(self):
        return self

    def numpy(self):
        return self._values

    def __getitem__(self, index):
        return _Tensor(self._values[index])

    def __float__(self):
        return float(self._values)


@pytest.fixture
def image_path(tmp_path) -> str:
    path = tmp_path / "frame.png"
    cv2.imwrite(str(path), np.zeros((108, 192, 3), dtype=np.uint8))
    return str(path)


@pytest.fixture
def local_adapter():
    adapter = FaceLocalAdapter(model_id="unused", model_filename="unused.pt", timeout_seconds=5)
    yield adapter
    adapter.close()


class TestFaceLocalAdapter:
    def test_parses_boxes_and_keypoints(self, local_adapter, image_path):
        keypoints = [[(10, 10), (20, 10), (15, 15), (11, 20), (19, 20)]]
        result = SimpleNamespace(
            boxes=[SimpleNamespace(xyxy=_Tensor([[5, 5, 25, 30]]), conf=_Tensor([0.87654]))],
            keypoints=SimpleNamespace(xy=_Tensor(keypoints)),
        )
        local_adapter._model = MagicMock(return_value=[result])

        faces = local_adapter.detect("req_1", image_path)

        assert len(faces) == 1
        assert faces[0].top_left == (5.0, 5.0)
        assert faces[0].bottom_right == (25.0, 30.0)
        assert faces[0].confidence == 0.8765
        assert faces[0].landmarks[2] == (15.0, 15.0)
        assert local_adapter._model.call_args[1]["conf"] == local_adapter.conf_threshold

    def test_box_only_model(self, local_adapter, image_path):
        result = SimpleNamespace(
            boxes=[SimpleNamespace(xyxy=_Tensor([[1, 2, 3, 4]]), conf=_Tensor([0.5]))],
            keypoints=None,
        )
        local_adapter._model = MagicMock(return_value=[result])

        faces = local_adapter.detect("req_2", image_path)

        assert faces[0].landmarks == []

    def test_unreadable_image(self, local_adapter, tmp_path):
        local_adapter._model = MagicMock()

        with pytest.raises(LocalDetectionUnavailable):
            local_adapter.detect("req_3", str(tmp_path / "missing.png"))

    def test_model_not_loaded_until_first_detect(self, local_adapter):
        assert local_adapter.is_loaded is False

    def test_hung_inference_does_not_block_later_requests(self, image_path):
        adapter = FaceLocalAdapter(model_id="unused", model_filename="unused.pt", timeout_seconds=0.2)
        release = threading.Event()
        adapter._model = MagicMock()
        adapter._detect_sync = lambda request_id, path: release.wait(5)
        stale_executor = adapter._executor

        try:
            with pytest.raises(LocalDetectionUnavailable):
                adapter.detect("req_hang", image_path)

            assert adapter._executor is not stale_executor
            assert adapter.is_loaded is False

            adapter._detect_sync = lambda request_id, path: []
            assert adapter.detect("req_next", image_path) == []
        finally:
            release.set()
            adapter.close()


class TestFaceHttpAdapter:
    def _response(self, payload):
        response = MagicMock()
        response.json.return_value = payload
        return response

    def test_schema_response(self, monkeypatch, image_path):
        payload = {
            "request_id": "req_1",
            "faces": [{"top_left": [1, 2], "bottom_right": [30, 40], "confidence": 0.9, "landmarks": [[10, 12]]}],
        }
        post = MagicMock(return_value=self._response(payload))
        monkeypatch.setattr(face_http_adapter.requests, "post", post)

        faces = FaceHttpAdapter(base_url="http://face:8100", timeout_seconds=3).detect("req_1", image_path)

        assert faces == [DetectedFace(top_left=(1, 2), bottom_right=(30, 40), confidence=0.9, landmarks=[(10, 12)])]
        assert post.call_args[0][0] == "http://face:8100/detect"
        assert post.call_args[1]["timeout"] == 3
        assert post.call_args[1]["data"] == {"request_id": "req_1"}

    def test_box_field_fallback(self, monkeypatch, image_path):
        payload = {"faces": [{"box": [1, 2, 30, 40], "confidence": 0.8}, {"box": [1, 2]}]}
        monkeypatch.setattr(face_http_adapter.requests, "post", MagicMock(return_value=self._response(payload)))

        faces = FaceHttpAdapter(base_url="http://face:8100").detect("req_2", image_path)

        assert len(faces) == 1
        assert faces[0].bottom_right == (30.0, 40.0)


class TestBuildFaceAdapter:
    def test_modes(self):
        assert build_face_adapter("off") is None
        assert build_face_adapter("unknown") is None
        assert isinstance(build_face_adapter("http"), FaceHttpAdapter)

        local = build_face_adapter("local")
        try:
            assert isinstance(local, FaceLocalAdapter)
            assert local.is_loaded is False
        finally:
            local.close()

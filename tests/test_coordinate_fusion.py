from unittest.mock import MagicMock

import pytest

from app.core.exceptions import FrameCaptureError, LocalDetectionUnavailable
from app.schemas.face_schema import DetectedFace
from app.schemas.video_schema import AnalysisMeta, BoundingBox, Point
from app.services.adapters.face_adapter import FaceAdapter
from app.services.coordinate_fusion import fuse_locator
from app.services.frame_capture import to_source_coordinates

FRAME_PATH = "/tmp/frame_75_test.png"

NOSE_FACE = DetectedFace(
    top_left=(800.0, 300.0),
    bottom_right=(1100.0, 700.0),
    confidence=0.91,
    landmarks=[(900.0, 450.0), (1000.0, 450.0), (950.0, 520.0), (910.0, 600.0), (990.0, 600.0)],
)
SMALL_FACE = DetectedFace(top_left=(10.0, 10.0), bottom_right=(60.0, 60.0), confidence=0.95)


@pytest.fixture
def model_meta() -> AnalysisMeta:
    return AnalysisMeta(frame_number=75, total_frames=300, fps_used=30, start_time=2.5, bbox=Point(x=640, y=360))


@pytest.fixture
def detector() -> MagicMock:
    return MagicMock(spec=FaceAdapter)


@pytest.fixture
def capture() -> MagicMock:
    return MagicMock(return_value=FRAME_PATH)


@pytest.fixture
def cleanup() -> MagicMock:
    return MagicMock()


class TestFuseLocator:
    def test_detected_nose_overwrites_model_point(self, model_meta, detector, capture, cleanup):
        detector.detect.return_value = [SMALL_FACE, NOSE_FACE]

        meta = fuse_locator("req_1", "video.mp4", model_meta, detector, "point", capture, cleanup)

        assert meta.bbox == Point(x=950, y=520)
        assert meta.bbox_source == "detector"
        capture.assert_called_once_with("video.mp4", 75, 30.0)
        detector.detect.assert_called_once_with("req_1", FRAME_PATH)
        cleanup.assert_called_once_with(FRAME_PATH)

    def test_detected_box_overwrites_model_box(self, detector, capture, cleanup):
        model_meta = AnalysisMeta(
            frame_number=10,
            fps_used=30,
            bbox=BoundingBox.from_points(Point(x=1, y=2), Point(x=3, y=4)),
        )
        detector.detect.return_value = [NOSE_FACE]

        meta = fuse_locator("req_2", "video.mp4", model_meta, detector, "box", capture, cleanup)

        assert isinstance(meta.bbox, BoundingBox)
        assert meta.bbox.top_left == Point(x=800, y=300)
        assert meta.bbox.bottom_right == Point(x=1100, y=700)
        assert meta.bbox_source == "detector"

    def test_detector_error_keeps_model_locator(self, model_meta, detector, capture, cleanup):
        detector.detect.side_effect = RuntimeError("model load failed")

        meta = fuse_locator("req_3", "video.mp4", model_meta, detector, "point", capture, cleanup)

        assert meta.bbox == Point(x=640, y=360)
        assert meta.bbox_source == "model"
        cleanup.assert_called_once_with(FRAME_PATH)

    def test_detection_timeout_keeps_model_locator(self, model_meta, detector, capture, cleanup):
        detector.detect.side_effect = LocalDetectionUnavailable("timeout")

        meta = fuse_locator("req_4", "video.mp4", model_meta, detector, "point", capture, cleanup)

        assert meta == model_meta
        cleanup.assert_called_once_with(FRAME_PATH)

    def test_no_faces_keeps_model_locator(self, model_meta, detector, capture, cleanup):
        detector.detect.return_value = []

        meta = fuse_locator("req_5", "video.mp4", model_meta, detector, "point", capture, cleanup)

        assert meta.bbox == Point(x=640, y=360)
        assert meta.bbox_source == "model"
        cleanup.assert_called_once_with(FRAME_PATH)

    def test_capture_failure_keeps_model_locator(self, model_meta, detector, cleanup):
        capture = MagicMock(side_effect=FrameCaptureError("ffmpeg failed"))

        meta = fuse_locator("req_6", "video.mp4", model_meta, detector, "point", capture, cleanup)

        assert meta.bbox == Point(x=640, y=360)
        detector.detect.assert_not_called()
        cleanup.assert_called_once_with(None)

    def test_disabled_detector_skips_capture(self, model_meta, capture, cleanup):
        meta = fuse_locator("req_7", "video.mp4", model_meta, None, "point", capture, cleanup)

        assert meta is model_meta
        capture.assert_not_called()
        cleanup.assert_not_called()

    def test_maps_back_to_source_resolution(self, detector, capture, cleanup):
        model_meta = AnalysisMeta(frame_number=30, fps_used=30, width=960, height=540, bbox=Point(x=1, y=1))
        detector.detect.return_value = [NOSE_FACE]

        meta = fuse_locator("req_8", "video.mp4", model_meta, detector, "point", capture, cleanup)

        assert meta.bbox == Point(x=475, y=260)


class TestToSourceCoordinates:
    def test_same_aspect_ratio(self):
        assert to_source_coordinates(Point(x=1000, y=600), 960, 540) == Point(x=500, y=300)

    def test_pillarboxed_source(self):
        # 1440x1080 (4:3) -> 1920x1080 캔버스, 좌우 240px 패딩
        assert to_source_coordinates(Point(x=1200, y=500), 1440, 1080) == Point(x=960, y=500)

    def test_portrait_source(self):
        # 1080x1920 -> 607.5x1080 으로 축소, 좌우 656.25px 패딩
        point = to_source_coordinates(Point(x=960, y=540), 1080, 1920)
        assert point == Point(x=540, y=960)

    def test_point_in_padding_is_clamped(self):
        assert to_source_coordinates(Point(x=100, y=500), 1440, 1080) == Point(x=0, y=500)

    def test_unknown_source_returns_input(self):
        assert to_source_coordinates(Point(x=10, y=20), 0, 0) == Point(x=10, y=20)

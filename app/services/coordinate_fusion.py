# app/services/coordinate_fusion.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from app.core.config import CAPTURE_HEIGHT, CAPTURE_WIDTH, LOCATOR_MODE
from app.core.exceptions import LocalDetectionUnavailable
from app.schemas.video_schema import AnalysisMeta, BoundingBox, Locator, Point
from app.services.adapters.face_adapter import FaceAdapter
from app.services.face_landmarks import face_bounding_box, nose_point, select_largest_face
from app.services.frame_capture import capture_frame, delete_captured_frame, to_source_coordinates

logger = logging.getLogger(__name__)

def detect_locator(
    request_id: str,
    image_path: str,
    detector: FaceAdapter,
    locator_mode: str = LOCATOR_MODE,
) -> Locator:
    """Locate the largest face in a captured frame.

    Returns the nose point (or box centre) in point mode and the face box in
    box mode, in capture-canvas pixels. Raises LocalDetectionUnavailable when
    no face is found.
    """
    faces = detector.detect(request_id, image_path)
    face = select_largest_face(faces)
    if face is None:
        raise LocalDetectionUnavailable("프레임에서 얼굴을 찾을 수 없습니다.")

    if locator_mode == "box":
        return face_bounding_box(face)
    return nose_point(face)

def _to_source(locator: Locator, meta: AnalysisMeta) -> Locator:
    # 원본 해상도를 모르면 캡처 캔버스 좌표 그대로 사용
    if not meta.width or not meta.height:
        return locator

    def convert(p: Point) -> Point:
        return to_source_coordinates(p, meta.width, meta.height, CAPTURE_WIDTH, CAPTURE_HEIGHT)

    if isinstance(locator, BoundingBox):
        return BoundingBox.from_points(convert(locator.top_left), convert(locator.bottom_right))
    return convert(locator)

def fuse_locator(
    request_id: str,
    video_path: str,
    meta: AnalysisMeta,
    detector: Optional[FaceAdapter],
    locator_mode: str = LOCATOR_MODE,
    capture: Callable[..., str] = capture_frame,
    cleanup: Callable[[Optional[str]], None] = delete_captured_frame,
) -> AnalysisMeta:
    """Overwrite the model's locator with the local detector's result.

    Any failure keeps the model locator; nothing raised here leaves this
    function. The captured frame is always deleted.
    """
    if detector is None:
        logger.info(f"[{request_id}] 얼굴 탐지기가 비활성화되어 Gemini bbox 사용")
        return meta

    frame_path: Optional[str] = None
    try:
        frame_path = capture(video_path, meta.frame_number, meta.fps_used)
        detected = detect_locator(request_id, frame_path, detector, locator_mode)
        fused = _to_source(detected, meta)

        logger.info(f"[{request_id}] Gemini bbox: {meta.bbox.model_dump()} -> 탐지 bbox: {fused.model_dump()}")
        return meta.model_copy(update={"bbox": fused, "bbox_source": "detector"})
    except Exception as e:
        # 로컬 탐지 실패는 분석 전체를 실패시키지 않음
        logger.warning(f"[{request_id}] 얼굴 랜드마크 탐지 실패, Gemini bbox 사용: {e}")
        return meta
    finally:
        cleanup(frame_path)

# app/services/face_landmarks.py
from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from app.core.config import FACE_NOSE_LANDMARK_INDEX
from app.schemas.face_schema import DetectedFace
from app.schemas.video_schema import BoundingBox, Point

logger = logging.getLogger(__name__)

# 얼굴 크기 계산 (바운딩 박스 가로 × 세로, 픽셀 면적)
def face_area(face: DetectedFace) -> float:
    width = face.bottom_right[0] - face.top_left[0]
    height = face.bottom_right[1] - face.top_left[1]
    return float(width * height)

# 가장 큰 얼굴 (주인공) 선택
def select_largest_face(faces: List[DetectedFace]) -> Optional[DetectedFace]:
    if not faces:
        return None
    areas = np.array([face_area(f) for f in faces])
    # 동일 면적이면 먼저 탐지된 얼굴 유지
    return faces[int(np.argmax(areas))]

def face_box_center(face: DetectedFace) -> Point:
    return Point(
        x=(face.top_left[0] + face.bottom_right[0]) / 2,
        y=(face.top_left[1] + face.bottom_right[1]) / 2,
    )

# 코 랜드마크 좌표 추출, 없으면 얼굴 박스 중심 사용
def nose_point(face: DetectedFace, landmark_index: int = FACE_NOSE_LANDMARK_INDEX) -> Point:
    if len(face.landmarks) > landmark_index:
        x, y = face.landmarks[landmark_index]
        # ultralytics는 보이지 않는 keypoint를 (0, 0)으로 반환
        if x > 0 or y > 0:
            return Point(x=x, y=y)
    logger.warning("코 랜드마크를 찾을 수 없습니다. 얼굴 중심을 사용합니다.")
    return face_box_center(face)

def face_bounding_box(face: DetectedFace) -> BoundingBox:
    return BoundingBox.from_points(
        Point(x=face.top_left[0], y=face.top_left[1]),
        Point(x=face.bottom_right[0], y=face.bottom_right[1]),
    )

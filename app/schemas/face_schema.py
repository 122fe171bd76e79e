# app/schemas/face_schema.py
from __future__ import annotations

from typing import List, Optional, Tuple
from pydantic import BaseModel, Field

# 탐지된 얼굴 1개 (픽셀 좌표)
class DetectedFace(BaseModel):
    top_left: Tuple[float, float]
    bottom_right: Tuple[float, float]
    confidence: float = 0.0
    # 고정 개수의 랜드마크 [x, y] 목록 (모델에 keypoint가 없으면 빈 목록)
    landmarks: List[Tuple[float, float]] = Field(default_factory=list)

class FaceDetectResponse(BaseModel):
    request_id: str
    faces: List[DetectedFace] = Field(default_factory=list)
    debug: Optional[dict] = None

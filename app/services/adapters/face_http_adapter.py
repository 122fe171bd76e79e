# app/services/adapters/face_http_adapter.py
from __future__ import annotations

import os
import logging
from typing import List

import requests
from pydantic import ValidationError as PydanticValidationError

from app.core.config import FACE_SERVICE_URL, FACE_HTTP_TIMEOUT_SECONDS
from app.schemas.face_schema import DetectedFace, FaceDetectResponse
from app.services.adapters.face_adapter import FaceAdapter

logger = logging.getLogger(__name__)

# 외부 얼굴 탐지 서버(face_server)를 HTTP로 호출하는 어댑터
class FaceHttpAdapter(FaceAdapter):
    def __init__(self, base_url: str = FACE_SERVICE_URL, timeout_seconds: float = FACE_HTTP_TIMEOUT_SECONDS) -> None:
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds

    def detect(self, request_id: str, image_path: str) -> List[DetectedFace]:
        url = f"{self.base_url}/detect"

        with open(image_path, "rb") as f:
            r = requests.post(
                url,
                files={"image": (os.path.basename(image_path), f, "image/png")},
                data={"request_id": request_id},
                timeout=self.timeout_seconds,
            )
        r.raise_for_status()
        data = r.json()

        # 스키마가 일치하면 바로 변환
        try:
            return FaceDetectResponse(**data).faces
        except (PydanticValidationError, TypeError):
            logger.warning(f"[{request_id}] face server 응답 스키마 불일치, 필드 매핑 시도")

        # Fallback mapping: {"faces": [{"box": [x1, y1, x2, y2], "landmarks": [...]}]}
        faces: List[DetectedFace] = []
        for item in data.get("faces") or []:
            box = item.get("box") or item.get("bbox")
            if not isinstance(box, (list, tuple)) or len(box) != 4:
                continue
            faces.append(
                DetectedFace(
                    top_left=(float(box[0]), float(box[1])),
                    bottom_right=(float(box[2]), float(box[3])),
                    confidence=float(item.get("confidence") or 0.0),
                    landmarks=[tuple(p) for p in item.get("landmarks") or [] if len(p) == 2],
                )
            )
        return faces

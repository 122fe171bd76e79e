# app/services/face_service.py
from __future__ import annotations

import logging
from typing import Optional

from app.core.config import FACE_MODE
from app.services.adapters.face_adapter import FaceAdapter
from app.services.adapters.face_http_adapter import FaceHttpAdapter
from app.services.adapters.face_local_adapter import FaceLocalAdapter

logger = logging.getLogger(__name__)

# FACE_MODE에 따라 얼굴 랜드마크 어댑터 선택 (off면 좌표 보정 생략)
def build_face_adapter(mode: str = FACE_MODE) -> Optional[FaceAdapter]:
    if mode == "http":
        return FaceHttpAdapter()
    if mode == "local":
        return FaceLocalAdapter()
    if mode != "off":
        logger.warning(f"알 수 없는 FACE_MODE '{mode}', 얼굴 랜드마크 탐지를 사용하지 않습니다.")
    return None

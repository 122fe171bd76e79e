# app/services/adapters/face_adapter.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from app.schemas.face_schema import DetectedFace

class FaceAdapter(ABC):
    @abstractmethod
    def detect(self, request_id: str, image_path: str) -> List[DetectedFace]:
        """정지 이미지에서 얼굴과 랜드마크 탐지 (얼굴이 없으면 빈 목록)"""
        raise NotImplementedError

    def close(self) -> None:
        """보유한 리소스 정리 (필요한 어댑터만 구현)"""

# app/services/adapters/face_local_adapter.py
from __future__ import annotations

import os
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import List

import cv2
from huggingface_hub import hf_hub_download, login

from app.core.config import (
    DEBUG,
    FACE_CONF_THRESHOLD,
    FACE_DETECTION_TIMEOUT_SECONDS,
    FACE_LANDMARK_MODEL_FILENAME,
    FACE_LANDMARK_MODEL_ID,
    HF_TOKEN,
)
from app.core.exceptions import LocalDetectionUnavailable
from app.schemas.face_schema import DetectedFace
from app.services.adapters.face_adapter import FaceAdapter

logger = logging.getLogger(__name__)

# 로컬 YOLO 모델로 얼굴 박스와 랜드마크를 탐지하는 어댑터
# - 모델은 첫 탐지 요청 시 한 번만 로드 (lazy init)
# - 추론은 전용 단일 워커에서만 실행되어 요청 스레드 간 모델 공유가 직렬화됨
class FaceLocalAdapter(FaceAdapter):
    def __init__(
        self,
        model_id: str = FACE_LANDMARK_MODEL_ID,
        model_filename: str = FACE_LANDMARK_MODEL_FILENAME,
        conf_threshold: float = FACE_CONF_THRESHOLD,
        timeout_seconds: float = FACE_DETECTION_TIMEOUT_SECONDS,
    ) -> None:
        self.model_id = model_id
        self.model_filename = model_filename
        self.conf_threshold = conf_threshold
        self.timeout_seconds = timeout_seconds
        self._model = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="face-landmark")

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def _authenticate_hf(self) -> None:
        if HF_TOKEN:
            login(token=HF_TOKEN)

    def _resolve_model_path(self) -> str:
        # 로컬 경로가 있으면 그대로, 아니면 HF 저장소에서 가중치 다운로드
        if os.path.exists(self.model_id):
            return self.model_id
        self._authenticate_hf()
        logger.info(f"HF에서 YOLO 얼굴 모델 다운로드 시도: {self.model_id}/{self.model_filename}")
        model_path = hf_hub_download(repo_id=self.model_id, filename=self.model_filename)
        logger.info(f"Downloaded YOLO face model to: {model_path}")
        return model_path

    def _ensure_model(self) -> None:
        if self._model is not None:
            return
        from ultralytics import YOLO

        model_path = self._resolve_model_path()
        self._model = YOLO(model_path)
        logger.info(f"YOLO face model loaded from {model_path} (names: {self._model.names})")

    def detect(self, request_id: str, image_path: str) -> List[DetectedFace]:
        future = self._executor.submit(self._detect_sync, request_id, image_path)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            if not future.cancel():
                # 이미 실행 중인 추론은 취소되지 않으므로 워커와 모델을 교체
                logger.warning(f"[{request_id}] 얼굴 탐지 시간 초과, 추론 워커를 교체합니다.")
                self._reset_worker()
            raise LocalDetectionUnavailable(
                f"얼굴 탐지 시간 초과 ({self.timeout_seconds}s)"
            )

    def _detect_sync(self, request_id: str, image_path: str) -> List[DetectedFace]:
        self._ensure_model()

        # Read image using cv2 (BGR)
        frame = cv2.imread(str(image_path))
        if frame is None:
            raise LocalDetectionUnavailable(f"이미지를 읽을 수 없습니다: {image_path}")

        yolo_results = self._model(frame, conf=self.conf_threshold, verbose=False)
        if not yolo_results:
            return []
        result = yolo_results[0]

        keypoints = None
        if getattr(result, "keypoints", None) is not None:
            keypoints = result.keypoints.xy.cpu().numpy()

        faces: List[DetectedFace] = []
        for i, box in enumerate(result.boxes):
            coords = box.xyxy[0].cpu().numpy()
            conf = float(box.conf[0])
            landmarks = []
            if keypoints is not None and i < len(keypoints):
                landmarks = [(float(x), float(y)) for x, y in keypoints[i]]

            if DEBUG:
                logger.debug(f"[{request_id}] Face {i}: conf={conf:.4f}, box={coords.tolist()}, landmarks={len(landmarks)}")

            faces.append(
                DetectedFace(
                    top_left=(float(coords[0]), float(coords[1])),
                    bottom_right=(float(coords[2]), float(coords[3])),
                    confidence=round(conf, 4),
                    landmarks=landmarks,
                )
            )

        logger.info(f"[{request_id}] {len(faces)}개의 얼굴 탐지됨")
        return faces

    def _reset_worker(self) -> None:
        # 멈춘 스레드가 쥐고 있는 모델과 공유되지 않도록 다음 요청에서 새로 로드
        stale = self._executor
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="face-landmark")
        self._model = None
        stale.shutdown(wait=False)

    def close(self) -> None:
        self._executor.shutdown(wait=False)

# app/services/video_analysis_service.py
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from app.core.config import LOCATOR_MODE
from app.schemas.video_schema import VideoAnalysisResult
from app.services.adapters.face_adapter import FaceAdapter
from app.services.coordinate_fusion import fuse_locator
from app.services.gemini_client import GeminiClient
from app.services.prompts.video_analysis import build_analysis_prompt
from app.services.response_parser import parse_analysis_response
from app.services.video_metadata import extract_video_metadata

logger = logging.getLogger(__name__)

class VideoAnalysisService:
    """Runs the full analysis pipeline for one video file.

    metadata (ffprobe) -> prompt -> Gemini -> parse/reconcile -> coordinate fusion
    """

    def __init__(
        self,
        detector: Optional[FaceAdapter] = None,
        locator_mode: str = LOCATOR_MODE,
        client_factory: Callable[..., Any] = GeminiClient,
        metadata_extractor: Callable[[str], Any] = extract_video_metadata,
    ) -> None:
        if locator_mode not in ("point", "box"):
            raise ValueError(f"LOCATOR_MODE must be 'point' or 'box', got '{locator_mode}'")
        self.detector = detector
        self.locator_mode = locator_mode
        self.client_factory = client_factory
        self.metadata_extractor = metadata_extractor

    def analyze(
        self,
        request_id: str,
        video_path: str,
        mime_type: str,
        api_key: Optional[str] = None,
    ) -> VideoAnalysisResult:
        logger.info(f"[{request_id}] 비디오 분석 시작: {video_path}")

        metadata = self.metadata_extractor(video_path)
        prompt = build_analysis_prompt(metadata, self.locator_mode)

        client = self.client_factory(api_key=api_key)
        response_text = client.generate_from_video_file(video_path, mime_type, prompt)

        result = parse_analysis_response(response_text, metadata, self.locator_mode)
        if result.warnings:
            logger.warning(f"[{request_id}] 분류 경고 {len(result.warnings)}건")

        fused_meta = fuse_locator(
            request_id,
            video_path,
            result.meta,
            self.detector,
            self.locator_mode,
        )
        result = result.model_copy(update={"meta": fused_meta})

        logger.info(
            f"[{request_id}] 비디오 분석 완료: frame={result.meta.frame_number}, "
            f"start_time={result.meta.start_time}s, bbox_source={result.meta.bbox_source}"
        )
        return result

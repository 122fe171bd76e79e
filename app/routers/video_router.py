# app/routers/video_router.py
from __future__ import annotations

import base64
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile

from app.core.config import CAPTURE_HEIGHT, CAPTURE_WIDTH, GEMINI_API_KEY
from app.core.exceptions import (
    FrameCaptureError,
    MalformedResponse,
    ResponseParseError,
    SubjectNotFoundError,
    UnsupportedVideoError,
    ValidationError,
)
from app.dependencies import get_description_service, get_video_analysis_service
from app.schemas.video_schema import (
    BoundingBox,
    CaptureFrameResponse,
    CaptureFrameResult,
    CategoriesResponse,
    DescriptionRefineRequest,
    DescriptionRefineResponse,
    Locator,
    Point,
    VideoAnalysisResponse,
    VideoErrorResponse,
    VideoUrlAnalyzeRequest,
)
from app.services.categories import CATEGORY_GROUPS, CATEGORY_LABELS, CATEGORY_REFERENCE_DATA
from app.services.description_service import DescriptionRefineService
from app.services.frame_capture import capture_frame, delete_captured_frame, draw_locator_overlay
from app.services.video_analysis_service import VideoAnalysisService
from app.utils.video_files import download_video, remove_file, resolve_mime_type, save_stream_to_temp

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/video", tags=["video"])

ERROR_RESPONSES = {
    400: {"model": VideoErrorResponse, "description": "Invalid Request"},
    422: {"model": VideoErrorResponse, "description": "Subject Not Found"},
    500: {"model": VideoErrorResponse, "description": "Server Error"},
    502: {"model": VideoErrorResponse, "description": "Invalid LLM Response"},
}

def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"

def _error(status_code: int, message: str, error_code: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=VideoErrorResponse(error=message, error_code=error_code).model_dump(),
    )

# 도메인 예외 -> HTTP 에러 스펙 변환
def _to_http_exception(request_id: str, e: Exception) -> HTTPException:
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, UnsupportedVideoError):
        return _error(400, str(e), "INVALID_REQUEST")
    if isinstance(e, ValidationError):
        return _error(400, e.message, "INVALID_DESCRIPTION_REQUEST")
    if isinstance(e, SubjectNotFoundError):
        return _error(422, e.message, "SUBJECT_NOT_FOUND")
    if isinstance(e, (MalformedResponse, ResponseParseError)):
        logger.warning(f"[{request_id}] Gemini 응답 파싱 실패: {e}")
        return _error(502, f"API 응답을 파싱할 수 없습니다. ({e})", "LLM_RESPONSE_INVALID")
    if isinstance(e, FrameCaptureError):
        return _error(500, str(e), "FRAME_CAPTURE_FAILED")

    logger.error(f"[{request_id}] 요청 처리 실패: {e}", exc_info=True)
    return _error(
        500,
        "비디오 분석을 수행할 수 없습니다." + (f" ({str(e)})" if str(e) else ""),
        "ANALYSIS_REQUEST_FAILED",
    )

def _resolve_api_key(*candidates: Optional[str]) -> str:
    # 요청 본문 -> x-api-key 헤더 -> 서버 환경변수 순
    for candidate in (*candidates, GEMINI_API_KEY):
        if candidate:
            return candidate
    raise _error(400, "API 키가 필요합니다.", "INVALID_REQUEST")

# 비디오 업로드 분석 엔드포인트
# 업로드 파일은 임시 파일로 저장 후 성공/실패와 관계없이 삭제
@router.post("/analyze", response_model=VideoAnalysisResponse, responses=ERROR_RESPONSES)
def analyze_video(
    video: Optional[UploadFile] = File(None),
    api_key: Optional[str] = Form(None, alias="apiKey"),
    x_api_key: Optional[str] = Header(None),
    service: VideoAnalysisService = Depends(get_video_analysis_service),
):
    request_id = _new_request_id()
    if video is None or not video.filename:
        raise _error(400, "비디오 파일이 필요합니다.", "INVALID_REQUEST")
    key = _resolve_api_key(api_key, x_api_key)

    video_path: Optional[str] = None
    try:
        ext, mime_type = resolve_mime_type(video.filename)
        video_path = save_stream_to_temp(video.file, f".{ext}")
        logger.info(f"[{request_id}] 업로드된 파일: {video.filename} ({mime_type})")

        result = service.analyze(request_id, video_path, mime_type, api_key=key)
        return VideoAnalysisResponse(data=result)
    except Exception as e:
        raise _to_http_exception(request_id, e)
    finally:
        remove_file(video_path)

# 비디오 URL 분석 엔드포인트 (다운로드 후 동일 파이프라인)
@router.post("/analyze-url", response_model=VideoAnalysisResponse, responses=ERROR_RESPONSES)
def analyze_video_url(
    req: VideoUrlAnalyzeRequest,
    x_api_key: Optional[str] = Header(None),
    service: VideoAnalysisService = Depends(get_video_analysis_service),
):
    request_id = _new_request_id()
    key = _resolve_api_key(req.api_key, x_api_key)

    video_path: Optional[str] = None
    try:
        video_path, mime_type = download_video(req.video_url, request_id)
        result = service.analyze(request_id, video_path, mime_type, api_key=key)
        return VideoAnalysisResponse(data=result)
    except Exception as e:
        raise _to_http_exception(request_id, e)
    finally:
        remove_file(video_path)

# 설명문 개선 엔드포인트
# class_type은 그대로 두고 subject_description만 자연스러운 문장으로 다듬음
@router.post("/analyzer-desc", response_model=DescriptionRefineResponse, responses=ERROR_RESPONSES)
def refine_description(
    req: DescriptionRefineRequest,
    x_api_key: Optional[str] = Header(None),
    service: DescriptionRefineService = Depends(get_description_service),
):
    request_id = _new_request_id()
    key = _resolve_api_key(req.api_key, x_api_key)

    try:
        result = service.refine(request_id, req.class_type, req.subject_description, api_key=key)
        return DescriptionRefineResponse(data=result)
    except Exception as e:
        raise _to_http_exception(request_id, e)

def _build_overlay_locator(
    bbox1_x: Optional[int],
    bbox1_y: Optional[int],
    bbox2_x: Optional[int],
    bbox2_y: Optional[int],
    x: Optional[int],
    y: Optional[int],
) -> Optional[Locator]:
    if None not in (bbox1_x, bbox1_y, bbox2_x, bbox2_y):
        return BoundingBox.from_points(Point(x=bbox1_x, y=bbox1_y), Point(x=bbox2_x, y=bbox2_y))
    if x is not None and y is not None:
        return Point(x=x, y=y)
    return None

# 프레임 캡처 엔드포인트 (분석 결과 확인용, base64 PNG 반환)
@router.post("/capture-frame", response_model=CaptureFrameResponse, responses=ERROR_RESPONSES)
def capture_video_frame(
    video: Optional[UploadFile] = File(None),
    frame_number: int = Form(..., alias="frameNumber"),
    fps: float = Form(30.0),
    bbox1_x: Optional[int] = Form(None, alias="bbox1X"),
    bbox1_y: Optional[int] = Form(None, alias="bbox1Y"),
    bbox2_x: Optional[int] = Form(None, alias="bbox2X"),
    bbox2_y: Optional[int] = Form(None, alias="bbox2Y"),
    x: Optional[int] = Form(None),
    y: Optional[int] = Form(None),
    draw_overlay: bool = Form(False, alias="drawOverlay"),
):
    request_id = _new_request_id()
    if video is None or not video.filename:
        raise _error(400, "비디오 파일이 필요합니다.", "INVALID_REQUEST")
    if frame_number < 0:
        raise _error(400, "frameNumber는 0 이상의 정수여야 합니다.", "INVALID_REQUEST")
    if fps <= 0:
        fps = 30.0

    locator = _build_overlay_locator(bbox1_x, bbox1_y, bbox2_x, bbox2_y, x, y)
    video_path: Optional[str] = None
    image_path: Optional[str] = None
    try:
        ext, _ = resolve_mime_type(video.filename)
        video_path = save_stream_to_temp(video.file, f".{ext}")

        image_path = capture_frame(video_path, frame_number, fps)
        if draw_overlay and locator is not None:
            draw_locator_overlay(image_path, locator, frame_number, fps)

        with open(image_path, "rb") as f:
            image_base64 = base64.b64encode(f.read()).decode("ascii")
        logger.info(f"[{request_id}] 이미지 인코딩 완료 ({len(image_base64) / 1024:.2f}KB)")

        return CaptureFrameResponse(
            data=CaptureFrameResult(
                frame_number=frame_number,
                fps=fps,
                bbox=locator,
                image=f"data:image/png;base64,{image_base64}",
                resolution=f"{CAPTURE_WIDTH}x{CAPTURE_HEIGHT}",
            )
        )
    except Exception as e:
        raise _to_http_exception(request_id, e)
    finally:
        delete_captured_frame(image_path)
        remove_file(video_path)

@router.get("/categories", response_model=CategoriesResponse)
def list_categories() -> CategoriesResponse:
    return CategoriesResponse(
        categories=CATEGORY_REFERENCE_DATA,
        labels=CATEGORY_LABELS,
        groups=CATEGORY_GROUPS,
    )

# app/services/response_parser.py
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from app.core.config import LOCATOR_MODE
from app.core.exceptions import ResponseParseError, SubjectNotFoundError
from app.schemas.video_schema import (
    AnalysisMeta,
    BoundingBox,
    ClassificationWarning,
    ClassTypeItem,
    Locator,
    Point,
    SubjectDescriptionItem,
    ValenceArousal,
    VideoAnalysisResult,
    VideoMetadata,
)
from app.services.categories import get_class_by_label
from app.utils.llm_parse import load_json_object, parse_time_to_seconds

logger = logging.getLogger(__name__)

DEFAULT_FPS = 30.0
DEFAULT_FRAME_NUMBER = 0
DEFAULT_TOTAL_FRAMES = 0
DEFAULT_SUBJECT_NOT_FOUND_MESSAGE = "주인공으로 삼을 만한 인물이 영상에 없습니다."

def round_half_up(value: float, digits: int = 4) -> float:
    # 10000을 곱해 정수로 반올림 후 다시 나눔 (부동소수 누적 오차 방지)
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale

def compute_start_time(frame_number: int, fps: float) -> float:
    if fps <= 0:
        fps = DEFAULT_FPS
    return round_half_up(frame_number / fps, 4)

def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result

def _to_int(value: Any, default: int = 0) -> int:
    number = _to_number(value)
    if number is None:
        return default
    return int(round(number))

def _resolve(authoritative: Any, from_response: Any, default: Any) -> Any:
    # 우선순위: 1) 측정된 메타데이터 2) 응답 값 3) 기본값
    # 0 이하/누락 값은 다음 단계로 넘어감
    for candidate in (authoritative, from_response):
        number = _to_number(candidate)
        if number is not None and number > 0:
            return number
    return default

def resolve_locator(raw: Any, locator_mode: str = LOCATOR_MODE) -> Locator:
    """Build the locator of the deployment's fixed shape from the raw ``bbox``.

    A value that does not fit the configured shape becomes the zero locator
    of that shape.
    """
    if locator_mode == "box":
        if isinstance(raw, list) and len(raw) == 2 and all(isinstance(p, dict) for p in raw):
            return BoundingBox.from_points(Point(**_xy(raw[0])), Point(**_xy(raw[1])))
        logger.warning(f"bbox 형식이 두 점 박스가 아닙니다. 기본값 사용: {raw!r}")
        return BoundingBox.from_points(Point(), Point())

    if isinstance(raw, dict):
        return Point(**_xy(raw))
    logger.warning(f"bbox 형식이 좌표 점이 아닙니다. 기본값 사용: {raw!r}")
    return Point()

def _xy(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {"x": raw.get("x"), "y": raw.get("y")}

def reconcile_class_types(items: Any) -> Tuple[List[ClassTypeItem], List[ClassificationWarning]]:
    """Re-attach canonical class numbers from the category registry.

    Unknown category keys or labels keep the model's class (or 0) and add a
    warning; this never raises.
    """
    results: List[ClassTypeItem] = []
    warnings: List[ClassificationWarning] = []

    if not isinstance(items, list):
        if items is not None:
            warnings.append(ClassificationWarning(reason="class_type이 배열이 아닙니다."))
        return results, warnings

    for item in items:
        if not isinstance(item, dict):
            warnings.append(ClassificationWarning(reason=f"잘못된 class_type 항목: {item!r}"))
            continue

        category = str(item.get("category") or "")
        label = str(item.get("label") or "")
        matched = get_class_by_label(category, label)

        if matched is not None:
            results.append(ClassTypeItem(category=category, class_=matched, label=label))
            continue

        results.append(ClassTypeItem(category=category, class_=0, label=label))
        warnings.append(
            ClassificationWarning(
                category=category,
                label=label,
                reason="카테고리 또는 라벨이 분류 기준에 없습니다.",
            )
        )

    if warnings:
        logger.warning(f"class_type 매칭 실패 {len(warnings)}건: {[w.model_dump() for w in warnings]}")
    return results, warnings

def _parse_descriptions(items: Any) -> List[SubjectDescriptionItem]:
    if not isinstance(items, list):
        return []
    descriptions = []
    for item in items:
        if isinstance(item, dict) and item.get("category"):
            descriptions.append(
                SubjectDescriptionItem(
                    category=str(item["category"]),
                    description=str(item.get("description") or ""),
                )
            )
    return descriptions

def parse_analysis_response(
    response_text: str,
    video_metadata: Optional[VideoMetadata] = None,
    locator_mode: str = LOCATOR_MODE,
) -> VideoAnalysisResult:
    """Turn raw Gemini analysis text into a :class:`VideoAnalysisResult`.

    Raises:
        MalformedResponse: no JSON object in the text.
        ResponseParseError: JSON is invalid after normalization.
        SubjectNotFoundError: the model reported ``{"error": true}``.
    """
    analysis = load_json_object(response_text)

    # 에러 응답 체크 (분석할 인물 없음)
    if analysis.get("error") is True:
        message = analysis.get("message") or DEFAULT_SUBJECT_NOT_FOUND_MESSAGE
        logger.info(f"Gemini 분석 에러 응답: {message}")
        raise SubjectNotFoundError(str(message))

    raw_meta = analysis.get("meta") or {}
    if not isinstance(raw_meta, dict):
        raise ResponseParseError("meta 필드가 객체가 아닙니다.")

    md = video_metadata
    frame_number = max(_to_int(raw_meta.get("frame_number"), DEFAULT_FRAME_NUMBER), 0)
    fps = float(_resolve(md.fps if md else None, raw_meta.get("fps_used"), DEFAULT_FPS))
    total_frames = int(_resolve(md.total_frames if md else None, raw_meta.get("total_frames"), DEFAULT_TOTAL_FRAMES))

    raw_duration = raw_meta.get("video_duration")
    duration = _resolve(
        md.duration if md else None,
        parse_time_to_seconds(raw_duration) if raw_duration is not None else None,
        None,
    )
    width = _resolve(md.width if md else None, raw_meta.get("width"), None)
    height = _resolve(md.height if md else None, raw_meta.get("height"), None)

    meta = AnalysisMeta(
        frame_number=frame_number,
        total_frames=total_frames,
        fps_used=fps,
        # start_time은 응답 값을 신뢰하지 않고 항상 재계산
        start_time=compute_start_time(frame_number, fps),
        video_duration=duration,
        width=int(width) if width is not None else None,
        height=int(height) if height is not None else None,
        bbox=resolve_locator(raw_meta.get("bbox"), locator_mode),
    )

    raw_va = analysis.get("VA") or {}
    if not isinstance(raw_va, dict):
        raw_va = {}
    va = ValenceArousal(
        valence=_to_int(raw_va.get("valence"), 0),
        arousal=_to_int(raw_va.get("arousal"), 0),
    )

    class_type, warnings = reconcile_class_types(analysis.get("class_type"))

    logger.info(
        f"meta 파싱 완료: frame_number={meta.frame_number}, total_frames={meta.total_frames}, "
        f"fps_used={meta.fps_used}{' (메타데이터 사용)' if md else ''}, start_time={meta.start_time}s, "
        f"VA=({va.valence}, {va.arousal})"
    )

    return VideoAnalysisResult(
        meta=meta,
        va=va,
        class_type=class_type,
        subject_description=_parse_descriptions(analysis.get("subject_description")),
        warnings=warnings,
    )

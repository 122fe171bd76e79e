# app/services/description_service.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from app.core.exceptions import ResponseParseError, ValidationError
from app.schemas.video_schema import (
    DESCRIPTION_CATEGORY_ORDER,
    ClassTypeItem,
    DescriptionRefineResult,
    SubjectDescriptionItem,
)
from app.services.categories import get_all_category_keys, get_label_set
from app.services.gemini_client import GeminiClient
from app.services.prompts.description_refine import build_refine_prompt
from app.utils.llm_parse import load_json_object

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", bound=BaseModel)

def _coerce_items(raw: Any, field: str, model: Type[ItemT]) -> List[ItemT]:
    # 요청 본문의 배열을 항목 모델로 변환 (형식 오류는 400으로 보고)
    if not isinstance(raw, list) or not raw:
        raise ValidationError(f"{field} 배열이 필요합니다.", field=field)

    items: List[ItemT] = []
    for i, item in enumerate(raw):
        if isinstance(item, model):
            items.append(item)
            continue
        if not isinstance(item, dict) or not item.get("category"):
            raise ValidationError(f"{field}[{i}]에 category가 필요합니다.", field=field)
        try:
            items.append(model.model_validate(item))
        except PydanticValidationError as e:
            raise ValidationError(
                f"{field}[{i}] 형식이 올바르지 않습니다: {e.errors()[0]['msg']}",
                field=str(item["category"]),
            ) from e
    return items

def validate_class_type(class_type: List[ClassTypeItem]) -> List[ClassTypeItem]:
    """Check the seven registry keys and return the items with unknown keys dropped."""
    required = get_all_category_keys()
    by_key: Dict[str, ClassTypeItem] = {}

    for item in class_type:
        if item.category not in required:
            logger.warning(f"알 수 없는 class_type 카테고리 무시: {item.category}")
            continue
        if item.category in by_key:
            raise ValidationError(f"class_type 카테고리가 중복되었습니다: {item.category}", field=item.category)
        by_key[item.category] = item

    missing = [key for key in required if key not in by_key]
    if missing:
        raise ValidationError(f"class_type에 누락된 카테고리가 있습니다: {', '.join(missing)}", field=missing[0])

    for key in required:
        label = by_key[key].label
        if label not in get_label_set(key):
            raise ValidationError(f"{key}의 label '{label}'은(는) 허용되지 않은 값입니다.", field=key)

    return [item for item in class_type if item.category in by_key]

def validate_subject_description(subject_description: List[SubjectDescriptionItem]) -> None:
    categories = [item.category for item in subject_description]

    # 누락된 카테고리를 먼저 보고
    missing = [c for c in DESCRIPTION_CATEGORY_ORDER if c not in categories]
    if missing:
        raise ValidationError(f"subject_description에 누락된 카테고리가 있습니다: {', '.join(missing)}", field=missing[0])

    for category in categories:
        if category not in DESCRIPTION_CATEGORY_ORDER:
            raise ValidationError(f"알 수 없는 subject_description 카테고리입니다: {category}", field=category)
        if categories.count(category) > 1:
            raise ValidationError(f"subject_description 카테고리가 중복되었습니다: {category}", field=category)

    if len(subject_description) != len(DESCRIPTION_CATEGORY_ORDER):
        raise ValidationError("subject_description는 5개의 항목이어야 합니다.", field="subject_description")

    for item in subject_description:
        if not item.description.strip():
            raise ValidationError(f"'{item.category}' 설명문이 비어 있습니다.", field=item.category)

def validate_refine_request(
    class_type: Any,
    subject_description: Any,
) -> Tuple[List[ClassTypeItem], List[SubjectDescriptionItem]]:
    """Coerce and validate a refinement request.

    Accepts model instances or raw dicts. Raises ValidationError naming the
    first missing or invalid field, otherwise returns the cleaned items.
    """
    class_items = _coerce_items(class_type, "class_type", ClassTypeItem)
    description_items = _coerce_items(subject_description, "subject_description", SubjectDescriptionItem)
    class_items = validate_class_type(class_items)
    validate_subject_description(description_items)
    return class_items, description_items

def build_combined_description(items: List[SubjectDescriptionItem]) -> str:
    # 입력 배열 순서와 무관하게 상황 → 위치 → 얼굴 → 복장 → 감정 순서로 연결
    by_category = {item.category: item.description for item in items}
    ordered = [by_category.get(category, "").strip() for category in DESCRIPTION_CATEGORY_ORDER]
    return " ".join(text for text in ordered if text)

def parse_refined_response(response_text: str) -> DescriptionRefineResult:
    result = load_json_object(response_text)

    raw_items = result.get("subject_description")
    if not isinstance(raw_items, list):
        raise ResponseParseError("subject_description 배열을 찾을 수 없습니다.")
    if len(raw_items) != len(DESCRIPTION_CATEGORY_ORDER):
        raise ResponseParseError("subject_description는 5개의 항목이어야 합니다.")

    items: List[SubjectDescriptionItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict) or not raw.get("category"):
            raise ResponseParseError(f"잘못된 subject_description 항목: {raw!r}")
        items.append(
            SubjectDescriptionItem(
                category=str(raw["category"]),
                description=str(raw.get("description") or ""),
            )
        )

    combined = result.get("combined_description")
    if not isinstance(combined, str) or not combined.strip():
        combined = build_combined_description(items)

    return DescriptionRefineResult(subject_description=items, combined_description=combined)

class DescriptionRefineService:
    """Validates finalized descriptions and has Gemini polish them."""

    def __init__(self, client_factory: Callable[..., Any] = GeminiClient) -> None:
        self.client_factory = client_factory

    def refine(
        self,
        request_id: str,
        class_type: Any,
        subject_description: Any,
        api_key: Optional[str] = None,
    ) -> DescriptionRefineResult:
        class_items, description_items = validate_refine_request(class_type, subject_description)
        logger.info(
            f"[{request_id}] 설명문 개선 요청: class_type {len(class_items)}개, "
            f"subject_description {len(description_items)}개"
        )

        client = self.client_factory(api_key=api_key)
        prompt = build_refine_prompt(class_items, description_items)
        response_text = client.generate_text(prompt)

        result = parse_refined_response(response_text)
        logger.info(f"[{request_id}] 설명문 개선 완료 ({len(result.combined_description)}자)")
        return result

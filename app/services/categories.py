# app/services/categories.py
from __future__ import annotations

from typing import Dict, FrozenSet, List, Optional

from app.schemas.video_schema import CategoryEntry

# 카테고리 분류 기준 데이터 (프로세스 시작 시 로드, 읽기 전용)
CATEGORY_REFERENCE_DATA = {
    "Male/Female": [
        {"class": 1, "label": "남자"},
        {"class": 2, "label": "여자"},
    ],
    "EmomainCategory": [
        {"class": 1, "label": "긍정"},
        {"class": 2, "label": "부정"},
        {"class": 3, "label": "중립"},
    ],
    "EmoCategory": [
        {"class": 1, "label": "즐거움"},
        {"class": 2, "label": "열의"},
        {"class": 3, "label": "평온"},
        {"class": 4, "label": "분노"},
        {"class": 5, "label": "불안"},
        {"class": 6, "label": "슬픔"},
        {"class": 7, "label": "중립"},
    ],
    "Face": [
        {"class": 1, "label": "둥근형"},
        {"class": 2, "label": "각진형"},
        {"class": 3, "label": "길쭉한형"},
    ],
    "EyeShape": [
        {"class": 1, "label": "상향형"},
        {"class": 2, "label": "수평형"},
        {"class": 3, "label": "하향형"},
    ],
    "NoseShape": [
        {"class": 1, "label": "직선형"},
        {"class": 2, "label": "곡선형"},
        {"class": 3, "label": "들창코형"},
        {"class": 4, "label": "매부리코형"},
    ],
    "MouthShape": [
        {"class": 1, "label": "직선형"},
        {"class": 2, "label": "곡선형"},
        {"class": 3, "label": "하트형"},
    ],
}

# 메뉴 구조를 위한 그룹핑
CATEGORY_GROUPS = {
    "인물 정보": ["Male/Female"],
    "감정 분석": ["EmomainCategory", "EmoCategory"],
    "얼굴 특징": ["Face", "EyeShape", "NoseShape", "MouthShape"],
}

# 카테고리 한글명 매핑
CATEGORY_LABELS = {
    "Male/Female": "성별",
    "EmomainCategory": "감정 구분",
    "EmoCategory": "감정 분류",
    "Face": "얼굴형",
    "EyeShape": "눈 모양",
    "NoseShape": "코 모양",
    "MouthShape": "입 모양",
}

_REGISTRY: Dict[str, List[CategoryEntry]] = {
    key: [CategoryEntry(**item) for item in items]
    for key, items in CATEGORY_REFERENCE_DATA.items()
}

def get_category_entries(category_key: str) -> List[CategoryEntry]:
    return list(_REGISTRY.get(category_key, []))

def get_class_by_label(category_key: str, label: str) -> Optional[int]:
    # 대소문자 구분, 정규화 없는 정확 일치
    for entry in _REGISTRY.get(category_key, []):
        if entry.label == label:
            return entry.class_
    return None

def get_label_by_class(category_key: str, class_number: int) -> Optional[str]:
    for entry in _REGISTRY.get(category_key, []):
        if entry.class_ == class_number:
            return entry.label
    return None

def get_all_category_keys() -> List[str]:
    return list(_REGISTRY.keys())

def get_label_set(category_key: str) -> FrozenSet[str]:
    return frozenset(entry.label for entry in _REGISTRY.get(category_key, []))

def build_categories_prompt_text() -> str:
    # 프롬프트용 카테고리 목록: "- **Face** (얼굴형): 둥근형, 각진형, 길쭉한형"
    lines = []
    for key, entries in _REGISTRY.items():
        korean_name = CATEGORY_LABELS.get(key, key)
        labels = ", ".join(entry.label for entry in entries)
        lines.append(f"- **{key}** ({korean_name}): {labels}")
    return "\n".join(lines)

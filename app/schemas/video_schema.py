# app/schemas/video_schema.py
from __future__ import annotations

from typing import Any, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

# 설명문 카테고리 (고정 순서: 상황 → 위치 → 얼굴 → 복장 → 감정)
DESCRIPTION_CATEGORY_ORDER: Tuple[str, ...] = ("상황", "위치", "얼굴", "복장", "감정")

# ffprobe로 측정한 영상 메타데이터 (LLM 추정값보다 우선)
class VideoMetadata(BaseModel):
    duration: float = 0.0
    fps: float = 30.0
    total_frames: int = 0
    width: int = 0
    height: int = 0

# 좌표 (픽셀 단위, 정수로 반올림)
class Point(BaseModel):
    x: int = 0
    y: int = 0

    @field_validator("x", "y", mode="before")
    @classmethod
    def _round_coordinate(cls, v: Any) -> int:
        if v is None or isinstance(v, bool):
            return 0
        try:
            return int(round(float(v)))
        except (TypeError, ValueError):
            return 0

# 두 점 바운딩 박스 [{x, y}, {x, y}]
class BoundingBox(RootModel[Tuple[Point, Point]]):
    @property
    def top_left(self) -> Point:
        return self.root[0]

    @property
    def bottom_right(self) -> Point:
        return self.root[1]

    @classmethod
    def from_points(cls, p1: Point, p2: Point) -> "BoundingBox":
        return cls((p1, p2))

Locator = Union[Point, BoundingBox]

# 분석 메타 정보
class AnalysisMeta(BaseModel):
    frame_number: int = 0
    total_frames: int = 0
    fps_used: float = 30.0
    start_time: float = 0.0
    video_duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    bbox: Locator = Field(default_factory=Point)
    bbox_source: Literal["model", "detector"] = "model"

# Valence-Arousal (-3 ~ +3, 범위 검증은 이 계층에서 하지 않음)
class ValenceArousal(BaseModel):
    valence: int = 0
    arousal: int = 0

# 카테고리 분류 결과
class ClassTypeItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category: str
    class_: int = Field(0, alias="class")
    label: str = ""

# 레지스트리와 매칭되지 않은 분류 (class=0으로 유지)
class ClassificationWarning(BaseModel):
    category: Optional[str] = None
    label: Optional[str] = None
    reason: str

class SubjectDescriptionItem(BaseModel):
    category: str
    description: str = ""

# 비디오 분석 최종 결과
class VideoAnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    meta: AnalysisMeta
    va: ValenceArousal = Field(default_factory=ValenceArousal, alias="VA")
    class_type: List[ClassTypeItem] = Field(default_factory=list)
    subject_description: List[SubjectDescriptionItem] = Field(default_factory=list)
    warnings: List[ClassificationWarning] = Field(default_factory=list)

class VideoAnalysisResponse(BaseModel):
    success: bool = True
    data: VideoAnalysisResult

class VideoUrlAnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_url: str
    api_key: Optional[str] = Field(default=None, alias="apiKey")

# 설명문 개선 요청 (class_type은 변경 금지, subject_description만 개선)
# 배열 형식 검증은 서비스에서 수행하여 400으로 응답
class DescriptionRefineRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_type: Any = None
    subject_description: Any = None
    api_key: Optional[str] = Field(default=None, alias="apiKey")

class DescriptionRefineResult(BaseModel):
    subject_description: List[SubjectDescriptionItem]
    combined_description: str

class DescriptionRefineResponse(BaseModel):
    success: bool = True
    data: DescriptionRefineResult

class CaptureFrameResult(BaseModel):
    frame_number: int
    fps: float
    bbox: Optional[Locator] = None
    image: str
    resolution: str

class CaptureFrameResponse(BaseModel):
    success: bool = True
    data: CaptureFrameResult

class CategoryEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_: int = Field(..., alias="class")
    label: str

class CategoriesResponse(BaseModel):
    categories: dict
    labels: dict
    groups: dict

# 에러 응답 스키마 (4xx/5xx)
class VideoErrorResponse(BaseModel):
    success: bool = Field(False, description="항상 False")
    error: str = Field(..., description="에러 상세 메시지")
    error_code: str = Field(..., description="에러 코드 (예: SUBJECT_NOT_FOUND)")

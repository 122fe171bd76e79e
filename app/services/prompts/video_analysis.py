from typing import Optional

from app.schemas.video_schema import VideoMetadata
from app.services.categories import build_categories_prompt_text

METADATA_SECTION_TEMPLATE = """
## 영상 메타데이터 (정확한 정보 - 반드시 사용)
아래 값은 실제 영상에서 측정한 정확한 값입니다. 추측하지 말고 그대로 사용하세요.
- 영상 해상도: {width} × {height} 픽셀
- FPS (초당 프레임 수): {fps}
- 영상 전체 길이: {duration}초
- 전체 프레임 수: {total_frames}
"""

NO_METADATA_SECTION = """
## 영상 메타데이터
- 영상 전체 길이(초)를 측정하세요.
- 영상 FPS를 확인하세요. (일반적으로 30fps)
- 전체 프레임 수 = 영상 길이 × FPS
"""

POINT_LOCATOR_INSTRUCTIONS = """
### 주인공 코 중심점 좌표 (bbox)
- 좌표계: 화면 좌상단 = (0, 0), x는 오른쪽으로, y는 아래로 증가
- 선정한 프레임에서 1단계 주인공의 코 중심점만 측정하세요. 다른 사람은 절대 측정하지 않습니다.
- 코는 얼굴의 가로 정중앙, 세로 중간보다 약간 위에 있습니다.
  예) 얼굴 범위가 x: 550~750, y: 200~500 이면 코 중심 ≈ (650, 335)
- 좌표는 반드시 화면 범위 내여야 합니다. (0 ≤ x ≤ 가로, 0 ≤ y ≤ 세로)
- 결과 형식: "bbox": {"x": 450, "y": 300}
"""

BOX_LOCATOR_INSTRUCTIONS = """
### 주인공 얼굴 바운딩 박스 좌표 (bbox)
- 좌표계: 화면 좌상단 = (0, 0), x는 오른쪽으로, y는 아래로 증가
- 선정한 프레임에서 1단계 주인공의 얼굴만 측정하세요. 다른 사람은 절대 측정하지 않습니다.
- 포함: 이마, 눈썹, 눈, 코, 입, 볼, 턱선, 귀, 머리카락 / 제외: 목, 어깨, 몸통, 의상
- 첫 번째 점은 얼굴의 좌상단, 두 번째 점은 얼굴의 우하단입니다.
- 좌표는 반드시 화면 범위 내여야 합니다.
- 결과 형식: "bbox": [{"x": 400, "y": 180}, {"x": 560, "y": 400}]
"""

POINT_BBOX_EXAMPLE = '{{"x": [코 중심 x 픽셀 좌표], "y": [코 중심 y 픽셀 좌표]}}'
BOX_BBOX_EXAMPLE = '[{{"x": [좌상단 x], "y": [좌상단 y]}}, {{"x": [우하단 x], "y": [우하단 y]}}]'

# Gemini에게 보낼 비디오 분석 프롬프트 템플릿
PROMPT_TEMPLATE = """
영상을 분석하여 주인공 1명을 식별하고 다음 정보를 JSON으로 제공하세요.
{metadata_section}
## 사전 검증 (매우 중요!)
1. 영상에 사람이 전혀 없으면 에러를 반환하세요.
2. 사람이 너무 멀리 있거나 작아서 얼굴/표정/복장을 식별할 수 없으면 에러를 반환하세요.

에러 조건에 해당하는 경우 다음 JSON만 반환:
{{
  "error": true,
  "message": "표정을 탐지할 만한 인물이 영상에 없습니다."
}}

## 1단계: 주인공 선정 및 최적 프레임 탐색
- 얼굴이 크고 선명하며 영상에 가장 자주 등장하는 사람을 주인공으로 선정하세요.
- 주인공의 감정 표현이 최대치에 도달한 프레임 1개를 선택하세요.
  (즐거움, 열의, 평온, 분노, 불안, 슬픔, 중립 중 가장 강렬하게 표현된 순간)
- 얼굴이 가려지거나 흐릿한 프레임, 감정이 애매한 프레임은 제외하세요.
- 비슷한 프레임이 여러 개면 더 늦은 프레임을 선택하세요.
- 주인공 확정 후 다른 사람으로 절대 변경하지 마세요.

## 2단계: 프레임 정보와 좌표
- start_time = 프레임 번호 ÷ FPS (예: 프레임 75번, 30fps → 2.5초)
- 모든 시간 값은 float 형식으로 출력하세요. (예: 0이 아닌 0.0)
{locator_instructions}
### VA(Valence-Arousal)
- valence: 감정의 긍정/부정 척도, -3 ~ +3 정수 (음수: 부정, 양수: 긍정, 0: 중립)
- arousal: 감정의 강도 척도, -3 ~ +3 정수 (음수: 약함, 양수: 격정적, 0: 중간)
- 예) 분노(강렬): V=-3, A=3 / 즐거움(강렬): V=3, A=3 / 평온: V=2, A=-1 / 슬픔: V=-2, A=-2

## 3단계: 카테고리 분류 (class_type)
아래 모든 카테고리에서 주인공에 가장 적합한 label을 정확히 선택하세요:
{categories_text}

필수 규칙:
- EmomainCategory가 "긍정"이면 EmoCategory는 즐거움, 열의, 평온 중 선택
- EmomainCategory가 "부정"이면 EmoCategory는 분노, 불안, 슬픔 중 선택
- EmomainCategory가 "중립"이면 EmoCategory는 반드시 "중립"
- 눈물이 보여도 상황(시상식, 결혼식, 이별, 사고 등)을 먼저 파악한 뒤 긍정/부정을 판단하세요.

## 4단계: 구조화된 설명문 (subject_description)
주인공 1명에 대해 5개의 설명문을 작성하세요. 이중 중괄호 변수는 실제 값으로 바꾸지 말고 그대로 유지합니다.
1. 상황: "본 영상은 [행동/상황]하는 장면이다."
2. 위치: "{{{{Male/Female}}}}는 화면의 [구체적 위치]에 위치하고 있다." (bbox 좌표와 일치해야 함)
3. 얼굴: "[행동]하는 {{{{Male/Female}}}}는 {{{{Face}}}} 얼굴, {{{{EyeShape}}}} 눈, {{{{NoseShape}}}} 코, {{{{MouthShape}}}} 입을 가지고 있다."
4. 복장: 템플릿 변수 없이 의상 유형과 주요 색상만 간결하게 서술 (악세사리, 디자인 디테일 제외)
   예) "흰색 캐주얼 상의를 입고 있다.", "환자복을 입고 있다."
5. 감정: "{{{{Male/Female}}}}는 {{{{EmoCategory}}}} 상태의 {{{{EmomainCategory}}}}적 감정인 것으로 보인다."

## 출력 형식
아래 JSON 형식만 출력하세요. 예시의 숫자 값은 반드시 실제 분석 결과로 교체해야 합니다.

{{
  "meta": {{
    "frame_number": [감정이 최고조인 프레임 번호],
    "total_frames": {total_frames_hint},
    "fps_used": {fps_hint},
    "bbox": {bbox_example}
  }},
  "VA": {{
    "valence": [정수 -3 ~ 3],
    "arousal": [정수 -3 ~ 3]
  }},
  "class_type": [
    {{ "category": "Male/Female", "class": 2, "label": "여자" }},
    {{ "category": "EmomainCategory", "class": 2, "label": "부정" }},
    {{ "category": "EmoCategory", "class": 5, "label": "불안" }},
    {{ "category": "Face", "class": 1, "label": "둥근형" }},
    {{ "category": "EyeShape", "class": 2, "label": "수평형" }},
    {{ "category": "NoseShape", "class": 1, "label": "직선형" }},
    {{ "category": "MouthShape", "class": 2, "label": "곡선형" }}
  ],
  "subject_description": [
    {{ "category": "상황", "description": "본 영상은 결혼을 하는 장면이다." }},
    {{ "category": "위치", "description": "{{{{Male/Female}}}}는 화면의 중앙에 위치하고 있다." }},
    {{ "category": "얼굴", "description": "행복한 표정을 짓는 {{{{Male/Female}}}}는 {{{{Face}}}} 얼굴, {{{{EyeShape}}}} 눈, {{{{NoseShape}}}} 코, {{{{MouthShape}}}} 입을 가지고 있다." }},
    {{ "category": "복장", "description": "화이트 웨딩드레스를 입고 있다." }},
    {{ "category": "감정", "description": "{{{{Male/Female}}}}는 {{{{EmoCategory}}}} 상태의 {{{{EmomainCategory}}}}적 감정인 것으로 보인다." }}
  ]
}}
"""

def build_analysis_prompt(metadata: Optional[VideoMetadata] = None, locator_mode: str = "point") -> str:
    if metadata is not None:
        metadata_section = METADATA_SECTION_TEMPLATE.format(
            width=metadata.width,
            height=metadata.height,
            fps=metadata.fps,
            duration=metadata.duration,
            total_frames=metadata.total_frames,
        )
        total_frames_hint = str(metadata.total_frames)
        fps_hint = str(metadata.fps)
    else:
        metadata_section = NO_METADATA_SECTION
        total_frames_hint = "[video_duration × fps_used, 반올림]"
        fps_hint = "[영상 실제 프레임레이트, 기본 30]"

    if locator_mode == "box":
        locator_instructions = BOX_LOCATOR_INSTRUCTIONS
        bbox_example = BOX_BBOX_EXAMPLE.format()
    else:
        locator_instructions = POINT_LOCATOR_INSTRUCTIONS
        bbox_example = POINT_BBOX_EXAMPLE.format()

    return PROMPT_TEMPLATE.format(
        metadata_section=metadata_section,
        locator_instructions=locator_instructions,
        categories_text=build_categories_prompt_text(),
        total_frames_hint=total_frames_hint,
        fps_hint=fps_hint,
        bbox_example=bbox_example,
    )

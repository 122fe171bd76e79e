import json
from typing import List

from app.schemas.video_schema import ClassTypeItem, SubjectDescriptionItem

# 설명문 개선 프롬프트 템플릿 (class_type은 변경 금지)
PROMPT_TEMPLATE = """
다음은 비디오 분석으로 생성된 카테고리 분류와 5가지 설명문입니다. 설명문을 검토하고 개선해주세요.

[카테고리 분류 (class_type) - 변경 금지]
{class_type_json}

[현재 설명문 (subject_description)]
{subject_description_json}

[개선 작업]
1. 템플릿 변수를 class_type의 label 값으로 치환하십시오.
   - {{{{Male/Female}}}} → "여자" 또는 "남자"
   - {{{{Face}}}}, {{{{EyeShape}}}}, {{{{NoseShape}}}}, {{{{MouthShape}}}} → 해당 카테고리의 label
   - {{{{EmomainCategory}}}} → "긍정", "부정", "중립"
   - {{{{EmoCategory}}}} → "즐거움", "열의", "평온" 등
   - 복장은 이미 완성된 문장이므로 자연스럽게 다듬기만 하십시오.
2. 5개 문장을 각각 독립적으로 자연스럽게 개선하십시오.
   - 각 문장은 단독으로 읽혀도 자연스러워야 하고, 순서대로 이어 붙여도 흐름이 자연스러워야 합니다.
   - 주어를 생략하지 마십시오.
   예) 상황: "여자가 야외 테라스에서 맥주를 발견하고 즐겁게 웃고 있는 장면이다."
       감정: "여자는 즐거움 상태이며 전반적으로 긍정적인 감정으로 보인다."

[한국어 조사 규칙]
- 앞 음절이 자음으로 끝나면 은/이/을, 모음으로 끝나면 는/가/를을 사용하십시오.
- 반드시 앞 음절의 받침 유무를 확인하여 조사를 선택하십시오.

[중요 규칙]
- category 이름(상황, 위치, 얼굴, 복장, 감정)은 변경하지 마십시오.
- 모든 {{{{}}}} 템플릿은 반드시 class_type의 label 값으로 치환하십시오.
- class_type의 핵심 키워드(성별, 얼굴형, 감정 등)는 유지하고 조사와 표현만 다듬으십시오.

[출력 형식]
아래 JSON 형식만 출력하십시오.

{{
  "subject_description": [
    {{ "category": "상황", "description": "템플릿이 치환되고 개선된 완전한 문장" }},
    {{ "category": "위치", "description": "템플릿이 치환되고 개선된 완전한 문장" }},
    {{ "category": "얼굴", "description": "템플릿이 치환되고 개선된 완전한 문장" }},
    {{ "category": "복장", "description": "템플릿이 치환되고 개선된 완전한 문장" }},
    {{ "category": "감정", "description": "템플릿이 치환되고 개선된 완전한 문장" }}
  ]
}}
"""

def build_refine_prompt(class_type: List[ClassTypeItem], subject_description: List[SubjectDescriptionItem]) -> str:
    class_type_json = json.dumps(
        [item.model_dump(by_alias=True) for item in class_type], ensure_ascii=False, indent=2
    )
    subject_description_json = json.dumps(
        [item.model_dump() for item in subject_description], ensure_ascii=False, indent=2
    )
    return PROMPT_TEMPLATE.format(
        class_type_json=class_type_json,
        subject_description_json=subject_description_json,
    )

import os
import time
import logging
from typing import Optional

from google import genai
from google.genai import types

from app.core.config import GEMINI_API_KEY, GEMINI_MODEL_NAME, GEMINI_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

# Gemini 2.5 Flash 가격 (per 1M tokens, USD)
INPUT_PRICE_PER_1M = 0.30
OUTPUT_PRICE_PER_1M = 2.50

class GeminiClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = GEMINI_MODEL_NAME,
        timeout_seconds: float = GEMINI_TIMEOUT_SECONDS,
    ):
        api_key = api_key or GEMINI_API_KEY
        if not api_key:
            raise ValueError("GEMINI_API_KEY (or GOOGLE_API_KEY) is not set in environment variables.")

        self.model_name = model_name
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

    def generate_from_video_file(
        self,
        video_path: str,
        mime_type: str,
        prompt_text: str,
        *,
        response_mime_type: str = "application/json",
        temperature: float = 0.0,
    ) -> str:
        """
        Sends the video bytes inline together with the prompt.
        Gemini inline data는 요청당 약 20MB 제한이 있으므로 업로드 제한과 함께 관리.
        """
        with open(video_path, "rb") as f:
            video_bytes = f.read()

        logger.info(
            f"Gemini 비디오 분석 요청: {os.path.basename(video_path)} "
            f"({len(video_bytes) / 1024 / 1024:.2f}MB, {mime_type})"
        )

        parts = [
            types.Part.from_bytes(data=video_bytes, mime_type=mime_type),
            types.Part.from_text(text=prompt_text),
        ]
        return self._generate(
            parts,
            types.GenerateContentConfig(
                temperature=temperature,
                top_p=1,
                top_k=1,
                max_output_tokens=8192,
                response_mime_type=response_mime_type,
            ),
        )

    def generate_text(self, prompt_text: str, *, temperature: float = 0.1) -> str:
        parts = [types.Part.from_text(text=prompt_text)]
        return self._generate(
            parts,
            types.GenerateContentConfig(
                temperature=temperature,
                top_p=0.8,
                top_k=40,
                max_output_tokens=8192,
            ),
        )

    def _generate(self, parts, config: types.GenerateContentConfig) -> str:
        started = time.monotonic()
        resp = self.client.models.generate_content(
            model=self.model_name,
            contents=[types.Content(parts=parts)],
            config=config,
        )
        elapsed = time.monotonic() - started
        text = resp.text or ""

        logger.info(f"Gemini 응답 완료: {elapsed:.2f}초, {len(text)}자")
        self._log_usage(getattr(resp, "usage_metadata", None))
        return text

    def _log_usage(self, usage) -> None:
        if usage is None:
            logger.info("토큰 사용량 정보를 가져올 수 없습니다.")
            return

        input_tokens = usage.prompt_token_count or 0
        output_tokens = usage.candidates_token_count or 0
        total_tokens = usage.total_token_count or 0

        input_cost = input_tokens / 1_000_000 * INPUT_PRICE_PER_1M
        output_cost = output_tokens / 1_000_000 * OUTPUT_PRICE_PER_1M
        logger.info(
            f"토큰 사용량: input={input_tokens:,}, output={output_tokens:,}, total={total_tokens:,} "
            f"| 예상 비용: ${input_cost + output_cost:.6f} (input ${input_cost:.6f}, output ${output_cost:.6f})"
        )

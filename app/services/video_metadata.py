# app/services/video_metadata.py
from __future__ import annotations

import json
import logging
import subprocess
from typing import Optional

from app.core.config import FFPROBE_PATH, FFMPEG_TIMEOUT_SECONDS
from app.core.exceptions import VideoMetadataError
from app.schemas.video_schema import VideoMetadata

logger = logging.getLogger(__name__)

def _parse_frame_rate(rate: Optional[str]) -> float:
    # r_frame_rate는 "30000/1001" 같은 형식
    if not rate:
        return 0.0
    if "/" in rate:
        num, den = rate.split("/", 1)
        try:
            num_f, den_f = float(num), float(den)
        except ValueError:
            return 0.0
        return num_f / den_f if den_f else 0.0
    try:
        return float(rate)
    except ValueError:
        return 0.0

def parse_ffprobe_output(stdout: str) -> VideoMetadata:
    try:
        info = json.loads(stdout)
        stream = info["streams"][0]
    except (json.JSONDecodeError, KeyError, IndexError, TypeError) as e:
        raise VideoMetadataError(f"ffprobe 출력을 읽을 수 없습니다: {e}") from e

    fps = _parse_frame_rate(stream.get("r_frame_rate")) or _parse_frame_rate(stream.get("avg_frame_rate"))
    if fps <= 0:
        raise VideoMetadataError("FPS를 확인할 수 없습니다.")
    fps = round(fps, 2)

    duration_raw = stream.get("duration") or (info.get("format") or {}).get("duration")
    try:
        duration = float(duration_raw) if duration_raw is not None else 0.0
    except ValueError:
        duration = 0.0

    try:
        total_frames = int(stream.get("nb_frames") or 0)
    except ValueError:
        total_frames = 0
    if total_frames <= 0:
        total_frames = int(round(duration * fps))

    return VideoMetadata(
        duration=round(duration, 2),
        fps=fps,
        total_frames=total_frames,
        width=int(stream.get("width") or 0),
        height=int(stream.get("height") or 0),
    )

def probe_video_metadata(video_path: str) -> VideoMetadata:
    cmd = [
        FFPROBE_PATH,
        "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "stream=nb_frames,r_frame_rate,avg_frame_rate,duration,width,height:format=duration",
        "-of", "json",
        str(video_path),
    ]
    try:
        proc = subprocess.run(cmd, check=True, capture_output=True, text=True, timeout=FFMPEG_TIMEOUT_SECONDS)
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError) as e:
        raise VideoMetadataError(f"ffprobe 실행 실패: {e}") from e
    return parse_ffprobe_output(proc.stdout)

# 측정 실패 시 None 반환 (LLM 응답 값 또는 기본값으로 대체됨)
def extract_video_metadata(video_path: str) -> Optional[VideoMetadata]:
    try:
        metadata = probe_video_metadata(video_path)
    except VideoMetadataError as e:
        logger.warning(f"비디오 메타데이터 추출 실패: {e}")
        return None

    logger.info(
        f"비디오 메타데이터: {metadata.width}x{metadata.height}, fps={metadata.fps}, "
        f"duration={metadata.duration:.2f}s, total_frames={metadata.total_frames}"
    )
    return metadata

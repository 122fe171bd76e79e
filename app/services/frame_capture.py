# app/services/frame_capture.py
from __future__ import annotations

import os
import logging
import subprocess
import tempfile
from typing import Optional

import cv2

from app.core.config import (
    CAPTURE_HEIGHT,
    CAPTURE_WIDTH,
    FFMPEG_PATH,
    FFMPEG_TIMEOUT_SECONDS,
)
from app.core.exceptions import FrameCaptureError
from app.schemas.video_schema import BoundingBox, Locator, Point

logger = logging.getLogger(__name__)

# 비디오에서 특정 프레임을 고정 해상도(기본 1920x1080, 비율 유지 + 패딩)로 캡처
# 반환된 이미지 파일은 호출자가 delete_captured_frame으로 삭제해야 함
def capture_frame(
    video_path: str,
    frame_number: int,
    fps: float = 30.0,
    output_path: Optional[str] = None,
    width: int = CAPTURE_WIDTH,
    height: int = CAPTURE_HEIGHT,
) -> str:
    if fps <= 0:
        fps = 30.0
    time_sec = frame_number / fps

    if output_path is None:
        fd, output_path = tempfile.mkstemp(prefix=f"frame_{frame_number}_", suffix=".png")
        os.close(fd)

    scale_filter = (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2"
    )
    cmd = [
        FFMPEG_PATH,
        "-hide_banner",
        "-loglevel", "error",
        "-ss", f"{time_sec:.3f}",
        "-i", str(video_path),
        "-vf", scale_filter,
        "-frames:v", "1",
        "-y",
        output_path,
    ]

    logger.info(f"프레임 캡처 시작: frame={frame_number}, time={time_sec:.3f}s, resolution={width}x{height}")
    try:
        subprocess.run(
            cmd,
            check=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            timeout=FFMPEG_TIMEOUT_SECONDS,
        )
    except subprocess.CalledProcessError as e:
        delete_captured_frame(output_path)
        stderr = (e.stderr or b"").decode("utf-8", errors="replace").strip()
        raise FrameCaptureError(f"프레임 캡처 실패: {stderr or e}") from e
    except subprocess.TimeoutExpired as e:
        delete_captured_frame(output_path)
        raise FrameCaptureError(f"프레임 캡처 시간 초과 ({FFMPEG_TIMEOUT_SECONDS}s)") from e
    except FileNotFoundError as e:
        delete_captured_frame(output_path)
        raise FrameCaptureError(f"ffmpeg 실행 파일을 찾을 수 없습니다: {FFMPEG_PATH}") from e

    if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
        delete_captured_frame(output_path)
        raise FrameCaptureError(f"프레임 {frame_number}을(를) 캡처하지 못했습니다. (영상 길이 초과?)")

    logger.info(f"프레임 캡처 완료: {output_path}")
    return output_path

def delete_captured_frame(image_path: Optional[str]) -> None:
    if not image_path:
        return
    try:
        os.remove(image_path)
        logger.debug(f"캡처 이미지 삭제: {image_path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"캡처 이미지 삭제 실패: {e}")

# 캡처 캔버스(패딩 포함) 좌표를 원본 영상 픽셀 좌표로 변환
def to_source_coordinates(
    point: Point,
    source_width: int,
    source_height: int,
    target_width: int = CAPTURE_WIDTH,
    target_height: int = CAPTURE_HEIGHT,
) -> Point:
    if source_width <= 0 or source_height <= 0:
        return point
    scale = min(target_width / source_width, target_height / source_height)
    pad_x = (target_width - source_width * scale) / 2
    pad_y = (target_height - source_height * scale) / 2
    x = (point.x - pad_x) / scale
    y = (point.y - pad_y) / scale
    return Point(x=min(max(x, 0), source_width), y=min(max(y, 0), source_height))

# 캡처된 이미지에 좌표(코 중심점 또는 박스) 오버레이 그리기
# 오버레이 실패는 치명적이지 않으므로 경고만 남김
def draw_locator_overlay(image_path: str, locator: Locator, frame_number: int, fps: float) -> None:
    frame = cv2.imread(str(image_path))
    if frame is None:
        logger.warning(f"오버레이 대상 이미지를 읽을 수 없습니다: {image_path}")
        return

    red = (0, 0, 255)
    white = (255, 255, 255)
    try:
        if isinstance(locator, BoundingBox):
            p1, p2 = locator.top_left, locator.bottom_right
            cv2.rectangle(frame, (p1.x, p1.y), (p2.x, p2.y), red, 4)
            for p in (p1, p2):
                cv2.circle(frame, (p.x, p.y), 8, red, -1)
                cv2.circle(frame, (p.x, p.y), 8, white, 2)
            label = f"BBox: ({p1.x}, {p1.y}) -> ({p2.x}, {p2.y})  Size: {p2.x - p1.x}x{p2.y - p1.y}px"
        else:
            cv2.circle(frame, (locator.x, locator.y), 8, red, -1)
            cv2.circle(frame, (locator.x, locator.y), 8, white, 2)
            label = f"Nose: ({locator.x}, {locator.y})"

        cv2.rectangle(frame, (10, 10), (620, 80), (0, 0, 0), -1)
        cv2.putText(frame, label, (20, 40), cv2.FONT_HERSHEY_SIMPLEX, 0.7, white, 2)
        cv2.putText(
            frame,
            f"t={frame_number / (fps or 30.0):.1f}s, f={frame_number} @{fps}fps",
            (20, 68),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.55,
            white,
            1,
        )
        cv2.imwrite(str(image_path), frame)
    except cv2.error as e:
        logger.warning(f"오버레이 그리기 실패: {e}")

# app/utils/video_files.py
from __future__ import annotations

import os
import logging
import tempfile
from typing import BinaryIO, Optional, Tuple
from urllib.parse import urlparse

import requests

from app.core.config import MAX_UPLOAD_SIZE_MB, VIDEO_DOWNLOAD_TIMEOUT_SECONDS
from app.core.exceptions import UnsupportedVideoError

logger = logging.getLogger(__name__)

# 확장자 기반 MIME 타입
VIDEO_MIME_TYPES = {
    "mp4": "video/mp4",
    "mpeg": "video/mpeg",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
}

CHUNK_SIZE = 8192

def max_upload_bytes() -> int:
    return MAX_UPLOAD_SIZE_MB * 1024 * 1024

def video_extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()

def resolve_mime_type(filename: Optional[str]) -> Tuple[str, str]:
    ext = video_extension(filename)
    if ext not in VIDEO_MIME_TYPES:
        raise UnsupportedVideoError(
            f"비디오 파일만 업로드 가능합니다. 허용된 확장자: {', '.join(VIDEO_MIME_TYPES)}"
        )
    return ext, VIDEO_MIME_TYPES[ext]

def save_stream_to_temp(stream: BinaryIO, suffix: str) -> str:
    """Copy a file-like stream to a temp file, enforcing the upload size limit."""
    fd, path = tempfile.mkstemp(prefix="upload_", suffix=suffix)
    written = 0
    try:
        with os.fdopen(fd, "wb") as f:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_upload_bytes():
                    raise UnsupportedVideoError(f"파일 크기는 {MAX_UPLOAD_SIZE_MB}MB를 초과할 수 없습니다.")
                f.write(chunk)
    except BaseException:
        remove_file(path)
        raise

    if written == 0:
        remove_file(path)
        raise UnsupportedVideoError("비어 있는 비디오 파일입니다.")

    logger.info(f"업로드 파일 저장: {path} ({written / 1024 / 1024:.2f}MB)")
    return path

def download_video(url: str, request_id: str) -> Tuple[str, str]:
    """Download a video URL to a temp file and return (path, mime_type)."""
    _, mime_type = resolve_mime_type(urlparse(url).path)
    fd, path = tempfile.mkstemp(prefix="download_", suffix=f".{video_extension(urlparse(url).path)}")
    os.close(fd)
    logger.debug(f"[{request_id}] Downloading video to {path}")

    written = 0
    try:
        with requests.get(url, stream=True, timeout=VIDEO_DOWNLOAD_TIMEOUT_SECONDS) as r:
            r.raise_for_status()
            with open(path, "wb") as f:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    written += len(chunk)
                    if written > max_upload_bytes():
                        raise UnsupportedVideoError(f"파일 크기는 {MAX_UPLOAD_SIZE_MB}MB를 초과할 수 없습니다.")
                    f.write(chunk)
    except requests.RequestException as e:
        remove_file(path)
        raise UnsupportedVideoError(f"영상을 다운로드할 수 없습니다: {e}") from e
    except BaseException:
        remove_file(path)
        raise

    return path, mime_type

def remove_file(path: Optional[str]) -> None:
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"임시 파일 삭제 실패: {path} ({e})")

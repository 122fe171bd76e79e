# app/core/exceptions.py
from __future__ import annotations

from typing import Optional


class VideoAnalysisError(Exception):
    """Base exception for the video analysis service."""


class MalformedResponse(VideoAnalysisError):
    """Raised when no JSON object can be located in the model response."""


class ResponseParseError(VideoAnalysisError):
    """Raised when the extracted JSON is syntactically or structurally invalid."""


class SubjectNotFoundError(VideoAnalysisError):
    """Raised when the model reports that the video has no analyzable subject."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(VideoAnalysisError):
    """Raised when a description refinement request is incomplete or invalid."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class LocalDetectionUnavailable(VideoAnalysisError):
    """Raised inside coordinate fusion when local face detection yields nothing."""


class FrameCaptureError(VideoAnalysisError):
    """Raised when ffmpeg fails to capture a frame."""


class VideoMetadataError(VideoAnalysisError):
    """Raised when ffprobe output cannot be read."""


class UnsupportedVideoError(VideoAnalysisError):
    """Raised when an uploaded file is not an accepted video."""

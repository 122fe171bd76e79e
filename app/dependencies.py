from fastapi import Request

from app.services.description_service import DescriptionRefineService
from app.services.video_analysis_service import VideoAnalysisService


def get_video_analysis_service(request: Request) -> VideoAnalysisService:
    """Retrieve the VideoAnalysisService singleton from app state."""
    return request.app.state.video_analysis


def get_description_service(request: Request) -> DescriptionRefineService:
    """Retrieve the DescriptionRefineService singleton from app state."""
    return request.app.state.description_refine

# app/main.py
from dotenv import load_dotenv

load_dotenv()

import logging
from contextlib import asynccontextmanager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import ALLOWED_ORIGIN_REGEX, ALLOWED_ORIGINS, FACE_MODE, LOCATOR_MODE
from app.routers.video_router import router as video_router
from app.services.description_service import DescriptionRefineService
from app.services.face_service import build_face_adapter
from app.services.video_analysis_service import VideoAnalysisService

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Video Analysis API (LOCATOR_MODE={LOCATOR_MODE}, FACE_MODE={FACE_MODE}) ...")
    # 얼굴 탐지기는 프로세스당 하나만 생성하여 분석 서비스에 주입 (모델은 첫 요청 시 로드)
    detector = build_face_adapter(FACE_MODE)
    try:
        app.state.detector = detector
        app.state.video_analysis = VideoAnalysisService(detector=detector, locator_mode=LOCATOR_MODE)
        app.state.description_refine = DescriptionRefineService()
        logger.info("Video Analysis API ready.")
        yield
    finally:
        logger.info("Shutting down Video Analysis API ...")
        if detector is not None:
            detector.close()

app = FastAPI(title="Video Subject Analysis API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_origin_regex=ALLOWED_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/health")
@app.get("/api/health")
def health():
    detector = getattr(app.state, "detector", None)
    return {
        "status": "ok",
        "locator_mode": LOCATOR_MODE,
        "face_mode": FACE_MODE,
        "detector_enabled": detector is not None,
    }

app.include_router(video_router)

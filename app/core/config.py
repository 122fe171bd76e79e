# app/core/config.py
import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# 디버그 모드 (True일 경우 상세 로그 출력)
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Gemini Config
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL_NAME = os.getenv("GEMINI_MODEL_NAME", "gemini-2.5-flash")
GEMINI_TIMEOUT_SECONDS = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "180"))

# 좌표 형식: point(코 중심점) | box(두 점 바운딩 박스). 배포 버전별로 하나만 사용
LOCATOR_MODE = os.getenv("LOCATOR_MODE", "point").lower()

# 얼굴 랜드마크 탐지 모드: local | http | off
FACE_MODE = os.getenv("FACE_MODE", "local").lower()
FACE_SERVICE_URL = os.getenv("FACE_SERVICE_URL", "http://localhost:8100").rstrip("/")
FACE_HTTP_TIMEOUT_SECONDS = float(os.getenv("FACE_HTTP_TIMEOUT_SECONDS", "20"))

# Local Face Landmark (YOLO) Config
FACE_LANDMARK_MODEL_ID = os.getenv("FACE_LANDMARK_MODEL_ID", "Bingsu/adetailer")
FACE_LANDMARK_MODEL_FILENAME = os.getenv("FACE_LANDMARK_MODEL_FILENAME", "face_yolov8n.pt")
FACE_CONF_THRESHOLD = float(os.getenv("FACE_CONF_THRESHOLD", "0.5"))
# YOLO face 5-point keypoints: 0,1 = 눈, 2 = 코, 3,4 = 입꼬리
FACE_NOSE_LANDMARK_INDEX = int(os.getenv("FACE_NOSE_LANDMARK_INDEX", "2"))
FACE_DETECTION_TIMEOUT_SECONDS = float(os.getenv("FACE_DETECTION_TIMEOUT_SECONDS", "30"))
HF_TOKEN = os.getenv("HF_TOKEN")

# FFmpeg Config
FFMPEG_PATH = os.getenv("FFMPEG_PATH", "ffmpeg")
FFPROBE_PATH = os.getenv("FFPROBE_PATH", "ffprobe")
FFMPEG_TIMEOUT_SECONDS = float(os.getenv("FFMPEG_TIMEOUT_SECONDS", "60"))
CAPTURE_WIDTH = int(os.getenv("CAPTURE_WIDTH", "1920"))
CAPTURE_HEIGHT = int(os.getenv("CAPTURE_HEIGHT", "1080"))

# Upload Config
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "100"))
VIDEO_DOWNLOAD_TIMEOUT_SECONDS = float(os.getenv("VIDEO_DOWNLOAD_TIMEOUT_SECONDS", "30"))

# CORS
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_ORIGIN_REGEX = os.getenv("ALLOWED_ORIGIN_REGEX") or None

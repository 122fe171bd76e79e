from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from contextlib import asynccontextmanager
import logging
import os
import tempfile
import uuid

from app.core.exceptions import LocalDetectionUnavailable
from app.schemas.face_schema import FaceDetectResponse
from app.services.adapters.face_local_adapter import FaceLocalAdapter

# Setup Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("face_server")

# Global Adapter Instance
adapter: FaceLocalAdapter | None = None

@asynccontextmanager
async def lifespan(app: FastAPI):
    global adapter
    logger.info("Initializing FaceLocalAdapter...")
    try:
        adapter = FaceLocalAdapter()
        logger.info("FaceLocalAdapter initialized successfully.")
    except Exception as e:
        logger.error(f"Failed to initialize FaceLocalAdapter: {e}")
        raise e
    yield
    logger.info("Face Server shutting down.")
    adapter.close()

app = FastAPI(title="Face Landmark Service", lifespan=lifespan)

@app.post("/detect", response_model=FaceDetectResponse)
def detect_faces(
    image: UploadFile = File(...),
    request_id: str | None = Form(None),
) -> FaceDetectResponse:
    if not adapter:
        raise HTTPException(status_code=503, detail="Face Adapter not initialized")

    req_id = request_id or f"req_{uuid.uuid4().hex[:8]}"
    suffix = os.path.splitext(image.filename or "")[1] or ".png"
    fd, path = tempfile.mkstemp(suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(image.file.read())
        faces = adapter.detect(req_id, path)
    except LocalDetectionUnavailable as e:
        raise HTTPException(status_code=422, detail=str(e))
    finally:
        if os.path.exists(path):
            os.remove(path)

    return FaceDetectResponse(request_id=req_id, faces=faces)

@app.get("/health")
def health():
    return {
        "status": "ok",
        "adapter_loaded": adapter is not None,
        "model_loaded": adapter.is_loaded if adapter else False,
    }

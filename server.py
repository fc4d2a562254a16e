import logging
import threading
from typing import Optional

from fastapi import Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from miniapp_guide import app_config
from miniapp_guide.backend import GuideBackend
from miniapp_guide.errors import GuideServiceError, InvalidRequest

app_config.configure_logging()
logger = logging.getLogger("miniapp_guide")

app = FastAPI(title="Mini-app UI Guide Service")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for dev
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_backend: Optional[GuideBackend] = None
_backend_lock = threading.Lock()


def get_backend() -> GuideBackend:
    global _backend
    with _backend_lock:
        if _backend is None:
            _backend = GuideBackend()
        return _backend


class GuideQuery(BaseModel):
    appId: Optional[str] = None
    userQuestion: Optional[str] = None


def success(data=None, message: str = "") -> dict:
    return {"status": "success", "message": message, "data": data}


@app.exception_handler(GuideServiceError)
async def guide_service_error_handler(request: Request, exc: GuideServiceError):
    logger.info(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    err = InvalidRequest(f"Invalid request: {exc.errors()[0].get('msg') if exc.errors() else 'malformed body'}")
    return JSONResponse(status_code=err.http_status, content=err.to_payload())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} failed")
    return JSONResponse(status_code=500, content=GuideServiceError().to_payload())


# -----------------------
# Analyze
# -----------------------

@app.post("/api/v1/analyze/kotlin/files")
def extract_files(file: UploadFile = File(...), backend: GuideBackend = Depends(get_backend)):
    data = backend.handle_extract_files(file.file.read(), file.content_type)
    return success(data)


@app.post("/api/v1/analyze/miniapp/register")
def register_mini_app(
    app_id: str = Query(..., alias="appId"),
    zip_file: UploadFile = File(..., alias="zipFile"),
    backend: GuideBackend = Depends(get_backend),
):
    count = backend.handle_register_app(app_id, zip_file.file.read(), zip_file.content_type)
    return success(count, message=f"{count} UI element(s) indexed.")


@app.get("/api/v1/analyze/miniapp/{app_id}/screens")
def list_screens(app_id: str, backend: GuideBackend = Depends(get_backend)):
    return success(backend.handle_list_screens(app_id))


@app.get("/api/v1/analyze/miniapp/{app_id}/elements")
def search_elements(app_id: str, keyword: str = "", backend: GuideBackend = Depends(get_backend)):
    return success(backend.handle_search_elements(app_id, keyword))


# -----------------------
# Guides
# -----------------------

@app.post("/api/v1/guide/query")
def query_guide(query: GuideQuery, backend: GuideBackend = Depends(get_backend)):
    return success(backend.handle_guide_query(query.model_dump()))


@app.get("/api/v1/guide/{guide_id}")
def get_guide(guide_id: str, backend: GuideBackend = Depends(get_backend)):
    return success(backend.handle_get_guide(guide_id))


@app.get("/api/v1/guide")
def list_guides(
    app_id: str = Query("", alias="appId"),
    intent: Optional[str] = None,
    backend: GuideBackend = Depends(get_backend),
):
    return success(backend.handle_list_guides(app_id, intent))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

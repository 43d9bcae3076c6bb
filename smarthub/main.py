from __future__ import annotations

import logging

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from .config import LOG_LEVEL, MAX_UPLOAD_BYTES, PORT, STATIC_DIR, TEMPLATES_DIR, UPLOADS_DIR
from .errors import SmartHubError
from .image_ops import save_image_upload
from .network import best_device_ip
from .storage import delete_all_images, delete_image, list_images

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Smart Hub")
app.mount("/static", StaticFiles(directory=STATIC_DIR, check_dir=False), name="static")
app.mount("/uploads", StaticFiles(directory=UPLOADS_DIR, check_dir=False), name="uploads")
templates = Jinja2Templates(directory=TEMPLATES_DIR)


@app.on_event("startup")
async def startup_event() -> None:
    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
    logger.info("Smart Hub server running on port %d, upload page at /upload.html", PORT)


@app.exception_handler(SmartHubError)
async def smarthub_error_handler(request: Request, exc: SmartHubError):
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.errors())
    # Only the upload form carries a body; a non-file "image" field means no file.
    message = "No file uploaded" if request.url.path == "/api/upload" else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(OSError)
async def os_error_handler(request: Request, exc: OSError):
    logger.exception("filesystem error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Storage failure"})


@app.get("/api/device-ip")
async def device_ip(request: Request):
    peer = request.client.host if request.client else None
    return {"ip": best_device_ip(request.headers.get("x-forwarded-for"), peer)}


@app.post("/api/upload", status_code=201)
async def upload_image(image: UploadFile | None = File(default=None)):
    if image is None or not image.filename:
        return JSONResponse(status_code=400, content={"error": "No file uploaded"})

    filename = await save_image_upload(image)
    return {
        "success": True,
        "message": "Image uploaded successfully",
        "filename": filename,
        "originalName": image.filename,
    }


@app.get("/api/images")
async def get_images():
    try:
        return list_images()
    except OSError:
        logger.exception("Error reading images")
        return JSONResponse(status_code=500, content={"error": "Failed to read images"})


@app.delete("/api/images/{image_id:path}")
async def delete_image_route(image_id: str):
    delete_image(image_id)
    return {"success": True, "message": "Image deleted"}


@app.delete("/api/images")
async def clear_images():
    deleted = delete_all_images()
    return {"success": True, "message": f"Deleted {deleted} images"}


@app.get("/upload.html")
async def upload_page(request: Request):
    return templates.TemplateResponse(
        request,
        "upload.html",
        {"max_upload_mb": MAX_UPLOAD_BYTES // (1024 * 1024)},
    )


@app.get("/{full_path:path}")
async def index(request: Request, full_path: str):
    return templates.TemplateResponse(request, "index.html", {"path": full_path})

"""
HTML pages: upload form, upload handler and gallery.

These are the browser-facing routes. Errors come back as plain text with
the matching status code so a form post shows something readable.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

from fastapi import APIRouter, File, Request, UploadFile, status
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from fastapi.templating import Jinja2Templates

from ...core.errors import BlobDropError, FeatureDisabled
from ..dependencies import UploadServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()

templates_dir = Path(__file__).parent.parent.parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(request: Request) -> Response:
    """Landing page with the upload form."""
    return templates.TemplateResponse(request, "index.html", {})


@router.post("/upload", response_class=HTMLResponse)
async def upload(
    request: Request,
    service: UploadServiceDep,
    file: Annotated[Optional[UploadFile], File(description="File to upload")] = None,
) -> Response:
    """
    Upload a single file from a multipart form.

    Returns an HTML fragment linking to the stored object.
    """
    if file is None or not file.filename:
        return PlainTextResponse("No file uploaded.", status_code=status.HTTP_400_BAD_REQUEST)

    data = await file.read()

    try:
        stored = await service.store(data, file.filename, file.content_type)
    except BlobDropError as e:
        logger.error("Upload error", extra={"original_name": file.filename, "error": str(e)})
        return PlainTextResponse(
            f"Upload failed: {e}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return templates.TemplateResponse(
        request,
        "uploaded.html",
        {"name": stored.name, "url": stored.url},
    )


@router.get("/gallery", response_class=HTMLResponse)
async def gallery(request: Request, service: UploadServiceDep) -> Response:
    """List every stored object."""
    try:
        files = await service.list()
    except FeatureDisabled:
        return PlainTextResponse("Gallery is disabled.", status_code=status.HTTP_404_NOT_FOUND)
    except BlobDropError as e:
        logger.error("Gallery error", extra={"error": str(e)})
        return PlainTextResponse(
            f"Failed to list images: {e}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return templates.TemplateResponse(request, "gallery.html", {"files": files})

"""
JSON API for uploads, listings and feature flags.

Same operations as the HTML pages, for programmatic clients.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, File, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from ...core.errors import BlobDropError, FeatureDisabled
from ..dependencies import FlagCacheDep, UploadServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class FileItem(BaseModel):
    """A stored object."""
    name: str = Field(description="Blob name (timestamp prefix + sanitized file name)")
    url: str = Field(description="Public address of the object")


class FileListResponse(BaseModel):
    """All objects in the upload container."""
    container: str
    count: int
    files: list[FileItem]


class FlagsResponse(BaseModel):
    """Current feature flag snapshot."""
    flags: dict[str, bool]
    populated: bool = Field(description="False until the first successful refresh")
    last_refreshed: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/files",
    response_model=FileItem,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a file",
)
async def upload_file(
    service: UploadServiceDep,
    file: Annotated[Optional[UploadFile], File(description="File to upload")] = None,
) -> FileItem:
    if file is None or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded.",
        )

    data = await file.read()

    try:
        stored = await service.store(data, file.filename, file.content_type)
    except BlobDropError as e:
        logger.error("Upload error", extra={"original_name": file.filename, "error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Upload failed: {e}",
        )

    return FileItem(name=stored.name, url=stored.url)


@router.get(
    "/files",
    response_model=FileListResponse,
    summary="List uploaded files",
    responses={404: {"description": "Listing disabled by feature flag"}},
)
async def list_files(service: UploadServiceDep) -> FileListResponse:
    try:
        files = await service.list()
    except FeatureDisabled as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except BlobDropError as e:
        logger.error("Listing error", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list images: {e}",
        )

    return FileListResponse(
        container=service.container,
        count=len(files),
        files=[FileItem(name=f.name, url=f.url) for f in files],
    )


@router.get("/flags", response_model=FlagsResponse, summary="Current feature flags")
async def get_flags(flags: FlagCacheDep) -> FlagsResponse:
    return FlagsResponse(
        flags=dict(flags.snapshot),
        populated=flags.is_populated,
        last_refreshed=flags.last_refreshed,
    )

"""Upload page — static HTML shell, file list is fetched client-side."""

import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from filedrop.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", include_in_schema=False)
async def upload_page():
    index = Path(settings.static_dir) / "index.html"
    if not index.is_file():
        logger.error("Upload page missing: %s", index)
        raise HTTPException(500, "Internal server error")
    return FileResponse(index, media_type="text/html")

"""Health check — liveness plus upload directory status."""

import os

from fastapi import APIRouter, Depends

from filedrop import __version__
from filedrop.schemas.system import HealthResponse
from filedrop.services import get_file_store
from filedrop.services.file_store import FileStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health_check(store: FileStore = Depends(get_file_store)):
    """Report whether uploads can currently be stored."""
    writable = store.staging_dir.is_dir() and os.access(store.staging_dir, os.W_OK)
    return HealthResponse(
        status="ok" if writable else "degraded",
        version=__version__,
        storage_writable=writable,
    )


@router.get("/ping")
async def ping():
    """Ultra-lightweight ping."""
    return {"status": "ok"}

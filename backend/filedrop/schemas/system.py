"""Health check schemas."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response; ``degraded`` when the upload dir is unusable."""
    status: str = "ok"
    version: str
    service: str = "filedrop"
    storage_writable: bool = True

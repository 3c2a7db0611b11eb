"""File schemas — listing records and upload results."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

DOWNLOAD_PREFIX = "/download/"


class FileRecord(BaseModel):
    """One uploaded file, derived from a stat call on every listing."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    size: int
    mod_time: datetime = Field(alias="modTime")
    download_url: str = Field(alias="downloadUrl")

    @classmethod
    def for_file(cls, name: str, size: int, mod_time: datetime) -> "FileRecord":
        return cls(
            name=name,
            size=size,
            mod_time=mod_time,
            download_url=DOWNLOAD_PREFIX + name,
        )


class UploadResponse(BaseModel):
    """Successful upload."""
    success: bool = True
    filename: str
    size: int
    message: str = "File uploaded successfully"

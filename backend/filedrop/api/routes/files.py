"""File API routes — upload, listing and download against the local store."""

from __future__ import annotations

import logging
import re
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response, StreamingResponse
from starlette.requests import ClientDisconnect

from filedrop.schemas.files import FileRecord, UploadResponse
from filedrop.services import get_file_store
from filedrop.services.file_store import FileStore
from filedrop.services.upload_reader import MalformedUpload, receive_upload
from filedrop.utils.filenames import InvalidFilename, sanitize_filename
from filedrop.utils.ranges import RangeNotSatisfiable, http_date, not_modified_since, parse_range

logger = logging.getLogger(__name__)
router = APIRouter()

_UNSAFE_HEADER_CHARS = re.compile(r'[\x00-\x1f\x7f"\\]')


def _attachment_disposition(filename: str) -> str:
    """Content-Disposition forcing a download, RFC 5987 form for odd names."""
    fallback = _UNSAFE_HEADER_CHARS.sub("_", filename.encode("ascii", "replace").decode("ascii"))
    header = f'attachment; filename="{fallback}"'
    if fallback != filename:
        header += f"; filename*=utf-8''{quote(filename, safe='')}"
    return header


@router.post("/upload", response_model=UploadResponse)
async def upload_file(request: Request, store: FileStore = Depends(get_file_store)):
    """Stream the ``file`` part of a multipart body into the store."""
    try:
        result = await receive_upload(request.headers, request.stream(), store)
    except InvalidFilename as exc:
        logger.warning("Rejected upload: %s", exc)
        raise HTTPException(400, "Invalid filename")
    except MalformedUpload as exc:
        logger.warning("Rejected upload: %s", exc)
        raise HTTPException(400, str(exc))
    except ClientDisconnect:
        logger.warning("Client disconnected during upload")
        raise HTTPException(400, "Client disconnected during upload")
    except OSError:
        logger.exception("Failed to save upload")
        raise HTTPException(500, "Failed to save file")

    logger.info("File uploaded successfully: %s (%d bytes)", result.filename, result.size)
    return UploadResponse(filename=result.filename, size=result.size)


@router.get("/files", response_model=list[FileRecord])
def list_files(store: FileStore = Depends(get_file_store)):
    """List uploaded files in directory order; the browser sorts them."""
    try:
        files = store.list_files()
    except OSError:
        logger.exception("Read directory error")
        raise HTTPException(500, "Failed to read upload directory")

    return [FileRecord.for_file(f.name, f.size, f.modified_at) for f in files]


@router.get("/download/{filename:path}")
async def download_file(
    filename: str,
    request: Request,
    store: FileStore = Depends(get_file_store),
):
    """Stream a stored file back as an attachment, honouring a single Range."""
    try:
        name = sanitize_filename(filename)
        reader = await store.open_reader(name)
    except InvalidFilename as exc:
        logger.warning("Rejected download: %s", exc)
        raise HTTPException(400, "Invalid filename")
    except FileNotFoundError:
        raise HTTPException(404, "File not found")
    except OSError:
        logger.exception("Failed to open %s", filename)
        raise HTTPException(500, "Failed to read file")

    last_modified = http_date(reader.modified_at)
    headers = {
        "Content-Disposition": _attachment_disposition(name),
        "Accept-Ranges": "bytes",
        "Last-Modified": last_modified,
    }

    if not_modified_since(request.headers.get("if-modified-since"), reader.modified_at):
        await reader.close()
        return Response(status_code=304, headers=headers)

    # A stale If-Range means the client's partial copy is outdated
    range_header = request.headers.get("range")
    if_range = request.headers.get("if-range")
    if if_range is not None and if_range != last_modified:
        range_header = None

    try:
        byte_range = parse_range(range_header, reader.size)
    except RangeNotSatisfiable:
        await reader.close()
        raise HTTPException(
            416,
            "Requested range not satisfiable",
            headers={"Content-Range": f"bytes */{reader.size}"},
        )

    if byte_range is None:
        headers["Content-Length"] = str(reader.size)
        return StreamingResponse(
            reader.iter_bytes(),
            media_type="application/octet-stream",
            headers=headers,
        )

    start, end = byte_range
    headers["Content-Range"] = f"bytes {start}-{end}/{reader.size}"
    headers["Content-Length"] = str(end - start + 1)
    return StreamingResponse(
        reader.iter_bytes(start, end),
        status_code=206,
        media_type="application/octet-stream",
        headers=headers,
    )

"""Streaming multipart reader — feeds one file part straight into the store.

The request body is parsed chunk by chunk with python-multipart's callback
parser, so memory use stays bounded by the network chunk size no matter how
large the upload is.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Mapping
from dataclasses import dataclass
from enum import Enum

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from filedrop.services.file_store import FileStore, StagedFile
from filedrop.utils.filenames import sanitize_filename

logger = logging.getLogger(__name__)

FILE_FIELD = "file"


class MalformedUpload(ValueError):
    """Request body is not a usable multipart upload."""


@dataclass(frozen=True)
class UploadResult:
    filename: str
    size: int


class _Event(str, Enum):
    HEADERS = "headers"
    DATA = "data"
    PART_END = "part_end"


class MultipartUploadReader:
    """Incremental parser for a single ``multipart/form-data`` upload.

    Parser callbacks only queue events; :meth:`feed` drains the queue and does
    the async file I/O. The staged file is committed in :meth:`finish`, after
    the closing boundary has been seen.
    """

    def __init__(self, store: FileStore, boundary: bytes, field_name: str = FILE_FIELD):
        self._store = store
        self._field_name = field_name
        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_end": self._on_end,
            },
        )
        self._header_field = b""
        self._header_value = b""
        self._part_headers: dict[bytes, bytes] = {}
        self._events: list[tuple[_Event, object]] = []
        self._ended = False

        self._staged: StagedFile | None = None
        self._writing = False
        self._complete = False

    # -- parser callbacks -------------------------------------------------

    def _on_part_begin(self) -> None:
        self._part_headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._part_headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        self._events.append((_Event.HEADERS, self._part_headers))

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._events.append((_Event.DATA, data[start:end]))

    def _on_part_end(self) -> None:
        self._events.append((_Event.PART_END, None))

    def _on_end(self) -> None:
        self._ended = True

    # -- driving ----------------------------------------------------------

    async def feed(self, chunk: bytes) -> None:
        try:
            self._parser.write(chunk)
        except MultipartParseError as exc:
            raise MalformedUpload("Failed to parse multipart form") from exc
        await self._drain()

    async def finish(self) -> UploadResult:
        try:
            self._parser.finalize()
        except MultipartParseError as exc:
            raise MalformedUpload("Failed to parse multipart form") from exc
        await self._drain()

        if not self._ended:
            raise MalformedUpload("Multipart body ended before the closing boundary")
        if self._staged is None or not self._complete:
            raise MalformedUpload("Failed to get file from form")

        await self._staged.commit()
        return UploadResult(filename=self._staged.name, size=self._staged.size)

    async def abort(self) -> None:
        if self._staged is not None:
            await self._staged.discard()

    async def _drain(self) -> None:
        events, self._events = self._events, []
        for kind, payload in events:
            if kind is _Event.HEADERS:
                await self._begin_part(payload)
            elif kind is _Event.DATA:
                if self._writing:
                    await self._staged.write(payload)
            elif kind is _Event.PART_END:
                if self._writing:
                    await self._staged.close()
                    self._writing = False
                    self._complete = True

    async def _begin_part(self, headers: dict[bytes, bytes]) -> None:
        if self._staged is not None:
            return  # first file part wins, later ones are drained

        _, options = parse_options_header(headers.get(b"content-disposition", b""))
        field = options.get(b"name", b"").decode("utf-8", errors="replace")
        raw_filename = options.get(b"filename")
        # An empty filename is what browsers send when no file was chosen
        if field != self._field_name or not raw_filename:
            return

        filename = sanitize_filename(raw_filename.decode("utf-8", errors="replace"))
        self._staged = self._store.stage(filename)
        await self._staged.open()
        self._writing = True


async def receive_upload(
    headers: Mapping[str, str],
    body: AsyncIterable[bytes],
    store: FileStore,
    field_name: str = FILE_FIELD,
) -> UploadResult:
    """Stream a multipart request body into ``store``.

    Raises ``MalformedUpload`` or ``InvalidFilename`` for client errors and
    ``OSError`` for storage failures. On any failure the staged temp file is
    removed and the store is left untouched.
    """
    content_type, params = parse_options_header(headers.get("content-type", ""))
    boundary = {key.lower(): value for key, value in params.items()}.get(b"boundary")
    # Media types are case-insensitive
    if content_type.lower() != b"multipart/form-data" or not boundary:
        raise MalformedUpload("Failed to parse multipart form")

    reader = MultipartUploadReader(store, boundary, field_name)
    try:
        async for chunk in body:
            if chunk:
                await reader.feed(chunk)
        return await reader.finish()
    except BaseException:
        await reader.abort()
        raise

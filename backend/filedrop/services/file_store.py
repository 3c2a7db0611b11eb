"""Filesystem store — flat upload directory with staged, atomic writes."""

from __future__ import annotations

import logging
import os
import stat
import uuid
from collections.abc import AsyncIterator
from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import aiofiles
import aiofiles.os

from filedrop.utils.filenames import InvalidFilename, sanitize_filename

logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".partial"
DEFAULT_CHUNK_SIZE = 64 * 1024  # 64 KB


@dataclass(frozen=True)
class StoredFile:
    """A regular file found in the store."""
    name: str
    size: int
    modified_at: datetime


class StagedFile:
    """In-flight upload written under the staging dir.

    Nothing is visible under the final name until :meth:`commit` renames the
    finished file into place, so readers see the old file or the new one,
    never a partial write.
    """

    def __init__(self, final_path: Path, temp_path: Path):
        self.final_path = final_path
        self.temp_path = temp_path
        self.size = 0
        self._fh = None

    @property
    def name(self) -> str:
        return self.final_path.name

    async def open(self) -> None:
        self._fh = await aiofiles.open(self.temp_path, "wb")

    async def write(self, data: bytes) -> None:
        if self._fh is None:
            raise RuntimeError("Staged file is not open")
        await self._fh.write(data)
        self.size += len(data)

    async def close(self) -> None:
        if self._fh is not None:
            fh, self._fh = self._fh, None
            await fh.close()

    async def commit(self) -> None:
        await self.close()
        await aiofiles.os.replace(self.temp_path, self.final_path)
        logger.debug("Committed %s (%d bytes)", self.final_path, self.size)

    async def discard(self) -> None:
        """Drop the temp file. Failures are ignored."""
        with suppress(OSError):
            await self.close()
        with suppress(OSError):
            await aiofiles.os.remove(self.temp_path)


class FileStore:
    """Upload directory holding one file per sanitized name."""

    def __init__(self, root: str | Path, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._root = Path(root)
        self._staging_dir = self._root / STAGING_DIR_NAME
        self._chunk_size = chunk_size

    @property
    def root(self) -> Path:
        return self._root

    @property
    def staging_dir(self) -> Path:
        return self._staging_dir

    def ensure_dirs(self) -> None:
        """Create the store root and its staging directory."""
        self._staging_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        return self._root / sanitize_filename(name)

    def list_files(self) -> list[StoredFile]:
        """Stat every regular file directly under the root.

        Directories are skipped. Raises ``OSError`` if the root itself cannot
        be read; entries removed while listing are skipped.
        """
        files: list[StoredFile] = []
        with os.scandir(self._root) as entries:
            for entry in entries:
                try:
                    if entry.is_dir():
                        continue
                    st = entry.stat()
                except OSError as exc:
                    logger.warning("Get file info error for %s: %s", entry.name, exc)
                    continue
                files.append(
                    StoredFile(
                        name=entry.name,
                        size=st.st_size,
                        modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                    )
                )
        return files

    def stage(self, name: str) -> StagedFile:
        """Prepare a staged write that will land under ``name`` on commit."""
        final_path = self.path_for(name)
        if final_path.name == STAGING_DIR_NAME:
            raise InvalidFilename(f"Reserved filename: {name!r}")
        temp_path = self._staging_dir / f"{uuid.uuid4().hex}.part"
        return StagedFile(final_path, temp_path)

    async def open_reader(self, name: str) -> FileReader:
        """Open ``name`` for reading.

        Size and mtime come from the open handle, so a concurrent replace
        cannot make them disagree with the streamed bytes. Raises
        ``FileNotFoundError`` when the name is absent or not a regular file.
        """
        path = self.path_for(name)
        try:
            fh = await aiofiles.open(path, "rb")
        except IsADirectoryError as exc:
            raise FileNotFoundError(f"File {name} not found") from exc

        try:
            st = os.fstat(fh.fileno())
        except BaseException:
            await fh.close()
            raise
        if not stat.S_ISREG(st.st_mode):
            await fh.close()
            raise FileNotFoundError(f"File {name} not found")

        return FileReader(
            fh,
            size=st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            chunk_size=self._chunk_size,
        )


class FileReader:
    """Open handle on a stored file."""

    def __init__(self, fh, size: int, modified_at: datetime, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._fh = fh
        self.size = size
        self.modified_at = modified_at
        self._chunk_size = chunk_size

    async def iter_bytes(self, start: int = 0, end: int | None = None) -> AsyncIterator[bytes]:
        """Yield bytes ``start`` through ``end`` inclusive, then close."""
        if end is None:
            end = self.size - 1
        remaining = end - start + 1
        try:
            if start:
                await self._fh.seek(start)
            while remaining > 0:
                chunk = await self._fh.read(min(self._chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk
        finally:
            await self.close()

    async def close(self) -> None:
        await self._fh.close()

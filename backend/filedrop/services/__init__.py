"""Business logic services — singleton registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from filedrop.config import settings

if TYPE_CHECKING:
    from filedrop.services.file_store import FileStore

logger = logging.getLogger(__name__)

_file_store: FileStore | None = None


def init_services() -> None:
    """Create and wire up all service singletons."""
    global _file_store

    from filedrop.services.file_store import FileStore

    _file_store = FileStore(settings.upload_dir, chunk_size=settings.chunk_size)
    _file_store.ensure_dirs()
    logger.info("File store ready at %s", _file_store.root)


def shutdown_services() -> None:
    global _file_store
    _file_store = None


def get_file_store() -> FileStore:
    if _file_store is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _file_store

"""Test fixtures — temporary file store and FastAPI test client."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from filedrop.main import create_app
from filedrop.services import get_file_store
from filedrop.services.file_store import FileStore


@pytest.fixture
def store(tmp_path) -> FileStore:
    """File store rooted in a temp dir, small chunks to exercise streaming."""
    s = FileStore(tmp_path / "uploaded", chunk_size=1024)
    s.ensure_dirs()
    return s


@pytest_asyncio.fixture
async def client(store: FileStore):
    """Provide an async test client with the store dependency overridden."""
    app = create_app()
    app.dependency_overrides[get_file_store] = lambda: store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def multipart_body(parts: list[tuple[str, str | None, bytes]], boundary: str = "testboundary") -> bytes:
    """Hand-built multipart body from ``(field, filename, data)`` tuples."""
    out = b""
    for field, filename, data in parts:
        disposition = f'form-data; name="{field}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        out += f"--{boundary}\r\nContent-Disposition: {disposition}\r\n".encode()
        if filename is not None:
            out += b"Content-Type: application/octet-stream\r\n"
        out += b"\r\n" + data + b"\r\n"
    out += f"--{boundary}--\r\n".encode()
    return out

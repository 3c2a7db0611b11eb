"""Tests for the filesystem store — listing, staged writes, streaming reads."""

import pytest

from filedrop.services.file_store import STAGING_DIR_NAME, FileStore
from filedrop.utils.filenames import InvalidFilename


async def _read_all(chunks) -> bytes:
    return b"".join([chunk async for chunk in chunks])


class TestEnsureDirs:
    def test_creates_root_and_staging(self, tmp_path):
        s = FileStore(tmp_path / "a" / "b")
        s.ensure_dirs()
        assert s.root.is_dir()
        assert s.staging_dir == s.root / STAGING_DIR_NAME
        assert s.staging_dir.is_dir()

    def test_idempotent(self, store):
        store.ensure_dirs()
        assert store.staging_dir.is_dir()


class TestListFiles:
    def test_empty(self, store):
        assert store.list_files() == []

    def test_skips_directories(self, store):
        (store.root / "a.txt").write_bytes(b"abc")
        (store.root / "nested").mkdir()
        (store.root / "nested" / "inner.txt").write_bytes(b"x")

        files = store.list_files()
        assert [f.name for f in files] == ["a.txt"]
        assert files[0].size == 3
        assert files[0].modified_at.tzinfo is not None

    def test_missing_root_raises(self, tmp_path):
        s = FileStore(tmp_path / "does-not-exist")
        with pytest.raises(OSError):
            s.list_files()


class TestStagedWrites:
    @pytest.mark.asyncio
    async def test_invisible_until_commit(self, store):
        staged = store.stage("report.txt")
        await staged.open()
        await staged.write(b"hello ")
        await staged.write(b"world")

        assert store.list_files() == []
        assert staged.temp_path.parent == store.staging_dir

        await staged.commit()
        assert (store.root / "report.txt").read_bytes() == b"hello world"
        assert staged.size == 11
        assert not staged.temp_path.exists()

    @pytest.mark.asyncio
    async def test_commit_replaces_existing(self, store):
        (store.root / "report.txt").write_bytes(b"old content")

        staged = store.stage("report.txt")
        await staged.open()
        await staged.write(b"new")
        await staged.commit()

        assert (store.root / "report.txt").read_bytes() == b"new"

    @pytest.mark.asyncio
    async def test_discard_removes_temp(self, store):
        staged = store.stage("report.txt")
        await staged.open()
        await staged.write(b"partial")
        await staged.discard()

        assert not staged.temp_path.exists()
        assert not (store.root / "report.txt").exists()

    @pytest.mark.asyncio
    async def test_discard_before_open_is_silent(self, store):
        await store.stage("never-opened.txt").discard()

    @pytest.mark.asyncio
    async def test_write_requires_open(self, store):
        with pytest.raises(RuntimeError):
            await store.stage("x.txt").write(b"data")

    def test_unique_temp_names(self, store):
        assert store.stage("x.txt").temp_path != store.stage("x.txt").temp_path

    def test_rejects_unsafe_name(self, store):
        with pytest.raises(InvalidFilename):
            store.stage("../escape.txt")

    def test_rejects_staging_dir_name(self, store):
        with pytest.raises(InvalidFilename):
            store.stage(STAGING_DIR_NAME)


class TestOpenReader:
    @pytest.mark.asyncio
    async def test_streams_in_chunks(self, store):
        payload = bytes(range(256)) * 20  # 5120 bytes, chunk_size is 1024
        (store.root / "blob.bin").write_bytes(payload)

        reader = await store.open_reader("blob.bin")
        collected = [c async for c in reader.iter_bytes()]

        assert reader.size == len(payload)
        assert b"".join(collected) == payload
        assert len(collected) == 5

    @pytest.mark.asyncio
    async def test_reads_inclusive_range(self, store):
        payload = bytes(range(256)) * 20
        (store.root / "blob.bin").write_bytes(payload)

        reader = await store.open_reader("blob.bin")

        assert await _read_all(reader.iter_bytes(1000, 3047)) == payload[1000:3048]

    @pytest.mark.asyncio
    async def test_reports_mtime(self, store):
        (store.root / "doc.txt").write_bytes(b"x")

        reader = await store.open_reader("doc.txt")
        await reader.close()

        assert reader.modified_at.tzinfo is not None
        assert reader.modified_at == store.list_files()[0].modified_at

    @pytest.mark.asyncio
    async def test_empty_file(self, store):
        (store.root / "empty").write_bytes(b"")
        reader = await store.open_reader("empty")
        assert reader.size == 0
        assert await _read_all(reader.iter_bytes()) == b""

    @pytest.mark.asyncio
    async def test_missing_file(self, store):
        with pytest.raises(FileNotFoundError):
            await store.open_reader("nope.txt")

    @pytest.mark.asyncio
    async def test_directory_is_not_found(self, store):
        (store.root / "nested").mkdir()
        with pytest.raises(FileNotFoundError):
            await store.open_reader("nested")

    @pytest.mark.asyncio
    async def test_staging_dir_is_not_found(self, store):
        with pytest.raises(FileNotFoundError):
            await store.open_reader(STAGING_DIR_NAME)

    @pytest.mark.asyncio
    async def test_open_handle_survives_replace(self, store):
        (store.root / "doc.txt").write_bytes(b"old version")
        reader = await store.open_reader("doc.txt")

        staged = store.stage("doc.txt")
        await staged.open()
        await staged.write(b"a much newer version")
        await staged.commit()

        assert reader.size == len(b"old version")
        assert await _read_all(reader.iter_bytes()) == b"old version"

"""Unit tests for LocalStorage backend."""
import asyncio
import tempfile
from pathlib import Path

import pytest

from clubvault.infrastructure.storage import (
    LocalStorage,
    ObjectNotFoundError,
    StorageConfig,
)


@pytest.fixture
def temp_storage():
    """Create a temporary LocalStorage instance."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config = StorageConfig(backend="local", base_path=Path(tmpdir), public_url="/storage/")
        yield LocalStorage(config)


@pytest.fixture
def run_async():
    """Helper to run async functions in sync context."""
    def _run(coro):
        return asyncio.run(coro)
    return _run


class TestLocalStoragePut:
    """Test writes."""

    def test_put_returns_public_url(self, temp_storage, run_async):
        url = run_async(temp_storage.put("7/1700000000000.jpg", b"img"))

        assert url == "/storage/7/1700000000000.jpg"
        assert (temp_storage.base_path / "7" / "1700000000000.jpg").read_bytes() == b"img"

    def test_put_overwrites(self, temp_storage, run_async):
        run_async(temp_storage.put("a.txt", b"first"))
        url = run_async(temp_storage.put("a.txt", b"second"))

        assert run_async(temp_storage.get(url)) == b"second"

    def test_traversal_segments_dropped(self, temp_storage, run_async):
        run_async(temp_storage.put("../../escape.txt", b"x"))

        assert (temp_storage.base_path / "escape.txt").is_file()


class TestLocalStorageGet:
    """Test reads."""

    def test_get_round_trip(self, temp_storage, run_async):
        url = run_async(temp_storage.put("docs/plan.pdf", b"pdf"))

        assert run_async(temp_storage.get(url)) == b"pdf"

    def test_get_missing_object(self, temp_storage, run_async):
        with pytest.raises(ObjectNotFoundError):
            run_async(temp_storage.get("/storage/missing.pdf"))

    def test_get_foreign_url(self, temp_storage, run_async):
        with pytest.raises(ObjectNotFoundError):
            run_async(temp_storage.get("https://elsewhere.example/a.pdf"))


class TestLocalStorageDelete:
    """Test deletes."""

    def test_delete_existing(self, temp_storage, run_async):
        url = run_async(temp_storage.put("a.txt", b"x"))

        assert run_async(temp_storage.delete(url)) is True
        with pytest.raises(ObjectNotFoundError):
            run_async(temp_storage.get(url))

    def test_delete_missing_returns_false(self, temp_storage, run_async):
        assert run_async(temp_storage.delete("/storage/nothing.txt")) is False


class TestUrls:

    def test_key_for_url_inverts_public_url(self, temp_storage):
        assert temp_storage.key_for_url(temp_storage.public_url("7/a.jpg")) == "7/a.jpg"

    def test_requires_local_backend(self):
        with pytest.raises(ValueError):
            LocalStorage(StorageConfig(backend="s3"))

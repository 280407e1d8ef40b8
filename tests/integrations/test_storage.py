"""Tests for storage integration module.

Tests cover:
- Filesystem detection for local paths and URLs
- Upload type and size checks
- Logo paths, writes and removal
- Reading and deleting files
"""

import os
import tempfile

import pytest

from src.integrations.storage import (
    LOGO_PREFIX,
    UploadRejectedError,
    build_full_path,
    delete_file,
    get_filesystem,
    logo_path,
    public_url,
    read_file,
    remove_logo,
    save_logo,
    validate_upload,
    write_file,
)


def _has_s3fs() -> bool:
    """Check if s3fs package is available."""
    try:
        import s3fs  # noqa: F401

        return True
    except ImportError:
        return False


def _has_gcsfs() -> bool:
    """Check if gcsfs package is available."""
    try:
        import gcsfs  # noqa: F401

        return True
    except ImportError:
        return False


class TestGetFilesystem:
    """Tests for get_filesystem function."""

    def test_local_path_returns_local_filesystem(self) -> None:
        """Local path returns LocalFileSystem."""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = get_filesystem(tmpdir)
            assert "LocalFileSystem" in type(fs).__name__

    def test_file_url_returns_local_filesystem(self) -> None:
        """file:// URL returns LocalFileSystem."""
        with tempfile.TemporaryDirectory() as tmpdir:
            fs = get_filesystem(f"file://{tmpdir}")
            assert "LocalFileSystem" in type(fs).__name__

    @pytest.mark.skipif(
        not _has_s3fs(),
        reason="s3fs not installed",
    )
    def test_s3_url_returns_s3_filesystem(self) -> None:
        """s3:// URL returns S3FileSystem (lazy initialization)."""
        fs = get_filesystem("s3://bucket/path")
        assert "S3FileSystem" in type(fs).__name__

    @pytest.mark.skipif(
        not _has_gcsfs(),
        reason="gcsfs not installed",
    )
    def test_gs_url_returns_gcs_filesystem(self) -> None:
        """gs:// URL returns GCSFileSystem (lazy initialization)."""
        fs = get_filesystem("gs://bucket/path")
        assert "GCSFileSystem" in type(fs).__name__


class TestPaths:
    """Tests for path and URL helpers."""

    def test_cloud_path_joins_bucket_and_key(self) -> None:
        assert build_full_path("s3://bucket/base/", "/logos/a.png") == "bucket/base/logos/a.png"

    def test_local_public_url_is_path(self) -> None:
        assert public_url("/srv/files", "/srv/files/logos/a.png") == "/srv/files/logos/a.png"

    def test_cloud_public_url_keeps_scheme(self) -> None:
        assert public_url("s3://bucket", "bucket/logos/a.png") == "s3://bucket/logos/a.png"

    def test_logo_path_sanitizes_filename(self) -> None:
        path = logo_path(12, "../My Logo!.PNG", "image/png")
        prefix, resource_dir, name = path.split("/")
        assert prefix == LOGO_PREFIX
        assert resource_dir == "12"
        assert name.startswith("My-Logo-")
        assert name.endswith(".png")

    def test_logo_path_without_filename(self) -> None:
        assert logo_path(3, None, "image/webp").split("/")[-1].startswith("logo-")


class TestValidateUpload:
    """Tests for upload type and size checks."""

    def test_accepts_allowed_type(self) -> None:
        assert validate_upload("image/PNG; charset=binary", 10) == "image/png"

    def test_rejects_unsupported_type(self) -> None:
        with pytest.raises(UploadRejectedError) as exc_info:
            validate_upload("application/pdf", 10)
        assert exc_info.value.status_code == 415

    def test_rejects_missing_type(self) -> None:
        with pytest.raises(UploadRejectedError) as exc_info:
            validate_upload(None, 10)
        assert exc_info.value.status_code == 415

    def test_rejects_empty_file(self) -> None:
        with pytest.raises(UploadRejectedError) as exc_info:
            validate_upload("image/png", 0)
        assert exc_info.value.status_code == 400

    def test_rejects_oversized_file(self) -> None:
        with pytest.raises(UploadRejectedError) as exc_info:
            validate_upload("image/png", 11, max_bytes=10)
        assert exc_info.value.status_code == 413

    def test_custom_allowed_types(self) -> None:
        assert validate_upload("image/svg+xml", 5, allowed_types=["image/svg+xml"]) == "image/svg+xml"


class TestReadWriteFiles:
    """Tests for async file access."""

    @pytest.mark.asyncio
    async def test_write_then_read(self) -> None:
        """write_file creates parent directories."""
        with tempfile.TemporaryDirectory() as tmpdir:
            full_path = await write_file(tmpdir, "nested/dir/file.bin", b"\x00\x01")
            assert os.path.exists(full_path)
            assert await read_file(tmpdir, "nested/dir/file.bin") == b"\x00\x01"

    @pytest.mark.asyncio
    async def test_read_file_nonexistent_raises(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(FileNotFoundError):
                await read_file(tmpdir, "missing.txt")

    @pytest.mark.asyncio
    async def test_delete_missing_file_returns_false(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            assert await delete_file(tmpdir, "missing.txt") is False


class TestLogos:
    """Tests for logo storage."""

    @pytest.mark.asyncio
    async def test_save_and_remove_logo(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            url = await save_logo(5, "center.png", "image/png", b"png-bytes", url=tmpdir)

            assert url.startswith(os.path.join(tmpdir, LOGO_PREFIX, "5"))
            with open(url, "rb") as f:
                assert f.read() == b"png-bytes"

            assert await remove_logo(url) is True
            assert not os.path.exists(url)
            assert await remove_logo(url) is False

    @pytest.mark.asyncio
    async def test_save_logo_rejects_bad_type(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(UploadRejectedError):
                await save_logo(5, "notes.txt", "text/plain", b"hello", url=tmpdir)
            assert not os.path.exists(os.path.join(tmpdir, LOGO_PREFIX))

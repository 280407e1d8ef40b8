"""Storage integration using fsspec for filesystem abstraction.

Resource logos are written under ``<storage url>/logos/``. Local paths,
file://, s3:// and gs:// URLs are handled through fsspec's protocol
detection (s3fs / gcsfs must be installed for the cloud protocols).
"""

import asyncio
import os
import posixpath
import re
import uuid
from urllib.parse import urlparse

import fsspec

from src.core.config import settings

LOGO_PREFIX = "logos"

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class UploadRejectedError(ValueError):
    """Raised when an upload fails type or size checks.

    Attributes:
        status_code: HTTP status the API layer should answer with.
    """

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


def get_filesystem(url: str) -> fsspec.AbstractFileSystem:
    """Get filesystem for URL, auto-detecting protocol.

    Examples:
        get_filesystem("s3://bucket/path") -> S3FileSystem
        get_filesystem("/local/path") -> LocalFileSystem
        get_filesystem("file:///local/path") -> LocalFileSystem
    """
    parsed = urlparse(url)

    if not parsed.scheme or parsed.scheme == "file":
        return fsspec.filesystem("file")

    return fsspec.filesystem(parsed.scheme)


def _is_local(url: str) -> bool:
    parsed = urlparse(url)
    return not parsed.scheme or parsed.scheme == "file"


def build_full_path(url: str, path: str) -> str:
    """Build full path from base URL and relative path.

    Args:
        url: Base storage URL
        path: Relative path within storage

    Returns:
        Full path for filesystem operations
    """
    parsed = urlparse(url)

    if _is_local(url):
        base = parsed.path if parsed.path else url
        if path:
            return os.path.join(base, path)
        return base

    # Cloud storage - combine netloc and path
    base = f"{parsed.netloc}{parsed.path}" if parsed.netloc else parsed.path
    if path:
        return f"{base.rstrip('/')}/{path.lstrip('/')}"
    return base


def public_url(url: str, full_path: str) -> str:
    """URL stored on the record for a written file."""
    if _is_local(url):
        return full_path
    return f"{urlparse(url).scheme}://{full_path}"


async def read_file(url: str, path: str = "") -> bytes:
    """Read file bytes from storage."""
    fs = get_filesystem(url)
    full_path = build_full_path(url, path)
    return await asyncio.to_thread(_read_file_sync, fs, full_path)


def _read_file_sync(fs: fsspec.AbstractFileSystem, path: str) -> bytes:
    with fs.open(path, "rb") as f:
        return f.read()


async def write_file(url: str, path: str, content: bytes) -> str:
    """Write file bytes to storage.

    Returns:
        Full storage path written to.
    """
    fs = get_filesystem(url)
    full_path = build_full_path(url, path)
    if _is_local(url):
        directory = os.path.dirname(full_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
    await asyncio.to_thread(_write_file_sync, fs, full_path, content)
    return full_path


def _write_file_sync(
    fs: fsspec.AbstractFileSystem, path: str, content: bytes
) -> None:
    with fs.open(path, "wb") as f:
        f.write(content)


async def delete_file(url: str, path: str = "") -> bool:
    """Delete a stored file.

    Returns:
        False if the file did not exist.
    """
    fs = get_filesystem(url)
    full_path = build_full_path(url, path)
    return await asyncio.to_thread(_delete_file_sync, fs, full_path)


def _delete_file_sync(fs: fsspec.AbstractFileSystem, path: str) -> bool:
    if not fs.exists(path):
        return False
    fs.rm(path)
    return True


def validate_upload(
    content_type: str | None,
    size: int,
    allowed_types: list[str] | None = None,
    max_bytes: int | None = None,
) -> str:
    """Check an upload against the configured type and size limits.

    Returns:
        Normalized content type.

    Raises:
        UploadRejectedError: 415 for a disallowed type, 413 when too large,
            400 when empty.
    """
    allowed = allowed_types if allowed_types is not None else settings.allowed_upload_types
    limit = max_bytes if max_bytes is not None else settings.max_upload_bytes
    normalized = (content_type or "").split(";")[0].strip().lower()

    if normalized not in allowed:
        raise UploadRejectedError(f"Unsupported file type: {normalized or 'unknown'}", 415)
    if size == 0:
        raise UploadRejectedError("Uploaded file is empty", 400)
    if size > limit:
        raise UploadRejectedError(f"File exceeds maximum size of {limit} bytes", 413)
    return normalized


def logo_path(resource_id: int, filename: str | None, content_type: str) -> str:
    """Relative storage path for a resource logo.

    A random suffix keeps replaced logos from being served from cache.
    """
    stem = os.path.splitext(os.path.basename(filename or ""))[0]
    stem = re.sub(r"[^A-Za-z0-9_-]+", "-", stem).strip("-")[:50] or "logo"
    extension = _EXTENSIONS.get(content_type, "")
    return posixpath.join(
        LOGO_PREFIX, str(resource_id), f"{stem}-{uuid.uuid4().hex[:8]}{extension}"
    )


async def save_logo(
    resource_id: int,
    filename: str | None,
    content_type: str,
    content: bytes,
    url: str | None = None,
) -> str:
    """Validate and store a logo, returning the URL to put on the resource."""
    base = url or settings.default_storage_url
    normalized = validate_upload(content_type, len(content))
    full_path = await write_file(base, logo_path(resource_id, filename, normalized), content)
    return public_url(base, full_path)


async def remove_logo(logo_url: str) -> bool:
    """Delete a previously stored logo given the URL saved on the resource."""
    return await delete_file(logo_url)

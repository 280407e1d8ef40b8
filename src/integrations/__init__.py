"""Integrations module for external services and storage.

Provides unified access to storage systems through fsspec abstraction.
"""

from src.integrations.storage import (
    UploadRejectedError,
    delete_file,
    get_filesystem,
    read_file,
    remove_logo,
    save_logo,
    write_file,
)

__all__ = [
    "UploadRejectedError",
    "delete_file",
    "get_filesystem",
    "read_file",
    "remove_logo",
    "save_logo",
    "write_file",
]

# SPDX-License-Identifier: MIT
"""Uniform storage layer for local disk and cloud object stores."""

from .storage import (
    FileInfo,
    RandomReadFile,
    StorageBackend,
    StoreResult,
    WriteFile,
    get_storage,
    make_from_config,
    read_entire_file,
    store_result_to_string,
)

__all__ = [
    "FileInfo",
    "RandomReadFile",
    "StorageBackend",
    "StoreResult",
    "WriteFile",
    "get_storage",
    "make_from_config",
    "read_entire_file",
    "store_result_to_string",
]

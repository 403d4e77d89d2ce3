# SPDX-License-Identifier: MIT
"""Pluggable storage backends.

The storage layer gives application code one interface for reading and
writing named files on local disk (default) or remote object stores such
as Google Cloud Storage.

Usage::

    from storehouse.storage import exit_on_error, get_storage, make_random_read_file, read_entire_file

    storage = get_storage()
    result, handle = make_random_read_file(storage, "inputs/frames.bin")
    exit_on_error(result)
    with handle:
        data = read_entire_file(handle)
"""

from .backoff import (
    Backoff,
    exponential_backoff,
    fatal_exit,
    make_random_read_file,
    make_write_file,
    read_with_backoff,
)
from .factory import get_storage, make_from_config
from .protocol import FileInfo, RandomReadFile, StorageBackend, WriteFile
from .result import StoreResult, store_result_to_string
from .util import exit_on_error, read_entire_file

__all__ = [
    "Backoff",
    "FileInfo",
    "RandomReadFile",
    "StorageBackend",
    "StoreResult",
    "WriteFile",
    "exit_on_error",
    "exponential_backoff",
    "fatal_exit",
    "get_storage",
    "make_from_config",
    "make_random_read_file",
    "make_write_file",
    "read_entire_file",
    "read_with_backoff",
    "store_result_to_string",
]

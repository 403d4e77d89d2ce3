# SPDX-License-Identifier: MIT
"""Helpers built on top of the file handle protocol."""

from __future__ import annotations

from collections.abc import Callable

from ..exceptions import StorageInvariantError
from .backoff import Backoff, read_with_backoff, terminate
from .protocol import RandomReadFile
from .result import StoreResult, store_result_to_string

READ_SIZE = 1024 * 1024


def read_entire_file(file: RandomReadFile, position: int = 0, backoff: Backoff | None = None) -> bytes:
    """Read from *position* to the end of *file*.

    Issues 1 MiB reads through :func:`read_with_backoff` until one reports
    end of file.

    Raises:
        StorageInvariantError: If a read returns anything other than
            ``SUCCESS`` or ``END_OF_FILE``.
    """
    data = bytearray()
    while True:
        result, chunk = read_with_backoff(file, position, READ_SIZE, backoff)
        if result not in (StoreResult.SUCCESS, StoreResult.END_OF_FILE):
            raise StorageInvariantError(
                f"Unexpected result while reading {file.path()} at {position}: {store_result_to_string(result)}"
            )
        data.extend(chunk)
        position += len(chunk)
        if result is StoreResult.END_OF_FILE:
            break
    return bytes(data)


def exit_on_error(result: StoreResult, on_fatal: Callable[[str], None] | None = None) -> None:
    """Terminate the process unless *result* is ``SUCCESS``.

    Logs the result's label at ``CRITICAL`` and runs *on_fatal*, which
    defaults to :func:`~storehouse.storage.backoff.fatal_exit`.

    Raises:
        FatalStorageError: If *on_fatal* returns instead of exiting.
    """
    if result is StoreResult.SUCCESS:
        return
    terminate(f"Exiting due to failed operation result: {store_result_to_string(result)}.", on_fatal)

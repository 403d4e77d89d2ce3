# SPDX-License-Identifier: MIT
"""Storage backend protocol and shared types.

Defines the interface that all storage backends and the file handles they
produce must implement.  Concrete handles subclass the protocols explicitly
to inherit the buffer-based convenience methods.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .result import StoreResult


@dataclass(frozen=True)
class FileInfo:
    """Metadata about a stored file."""

    size_bytes: int
    file_exists: bool


@runtime_checkable
class RandomReadFile(Protocol):
    """Read handle bound to one named file.

    There is no implicit cursor: every read names its own offset.
    """

    def read(self, offset: int, size: int) -> tuple[StoreResult, bytes]:
        """Read up to *size* bytes starting at *offset*.

        Returns:
            ``(SUCCESS, data)`` with exactly *size* bytes,
            ``(END_OF_FILE, data)`` with fewer bytes when the range crosses
            the end of the file, or ``(TRANSIENT_FAILURE, b"")`` when the
            whole call should be retried.

        Raises:
            ValueError: If *offset* or *size* is negative.
        """
        ...

    def get_size(self) -> tuple[StoreResult, int]:
        """Current size of the file in bytes."""
        ...

    def path(self) -> str:
        """Name of the file within its backend."""
        ...

    def close(self) -> None:
        """Release the underlying medium resource."""
        ...

    def read_into(self, offset: int, size: int, buffer: bytearray) -> StoreResult:
        """Read into the tail of *buffer*.

        The buffer grows by *size*, the read fills the new region, and the
        buffer is then shrunk so that its length is the original length plus
        the bytes actually read.  Existing contents are never touched, and if
        the read raises the buffer is restored to its original length.
        """
        orig_size = len(buffer)
        buffer.extend(bytes(size))
        size_read = 0
        try:
            result, data = self.read(offset, size)
            size_read = len(data)
            buffer[orig_size : orig_size + size_read] = data
        finally:
            del buffer[orig_size + size_read :]
        return result

    def __enter__(self) -> RandomReadFile:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


@runtime_checkable
class WriteFile(Protocol):
    """Append-only write handle bound to one named file."""

    def append(self, data: bytes | bytearray | memoryview, size: int | None = None) -> StoreResult:
        """Append the first *size* bytes of *data* (all of it when *size* is omitted).

        An append either fully succeeds, fails transiently with no bytes
        guaranteed persisted, or fails terminally.
        """
        ...

    def save(self) -> StoreResult:
        """Flush appended bytes so they are visible to readers."""
        ...

    def path(self) -> str:
        """Name of the file within its backend."""
        ...

    def close(self) -> None:
        """Save pending data and release the underlying medium resource."""
        ...

    def __enter__(self) -> WriteFile:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for a storage medium.

    All names are relative to the backend's configured root, bucket or
    namespace.  Any error that could resolve on retry must surface as
    :attr:`StoreResult.TRANSIENT_FAILURE`, never as a backend-specific
    exception.
    """

    # ------------------------------------------------------------------
    # File handles
    # ------------------------------------------------------------------

    def make_random_read_file(self, name: str) -> tuple[StoreResult, RandomReadFile | None]:
        """Open *name* for positioned reads.

        Returns ``FILE_DOES_NOT_EXIST`` with no handle when *name* is absent.
        """
        ...

    def make_write_file(self, name: str, *, overwrite: bool = False) -> tuple[StoreResult, WriteFile | None]:
        """Create *name* for appending.

        Returns ``FILE_EXISTS`` with no handle when *name* already exists and
        *overwrite* is false.  With *overwrite*, existing contents are replaced.
        """
        ...

    # ------------------------------------------------------------------
    # Namespace
    # ------------------------------------------------------------------

    def get_file_info(self, name: str) -> tuple[StoreResult, FileInfo]:
        """Size and existence of *name*."""
        ...

    def exists(self, name: str) -> bool:
        """Check whether a file exists."""
        ...

    def list_files(self, prefix: str = "") -> tuple[StoreResult, list[str]]:
        """Sorted names of all files starting with *prefix*."""
        ...

    def delete_file(self, name: str) -> StoreResult:
        """Delete *name*; ``FILE_DOES_NOT_EXIST`` when it is absent."""
        ...

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release sessions and connection pools held by the backend."""
        ...

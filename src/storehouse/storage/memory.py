# SPDX-License-Identifier: MIT
"""In-memory storage backend.

Provides a dict-based file store that implements the StorageBackend
protocol without touching disk or network.

Example::

    storage = MemoryStorage(MemoryConfig(), files={"logs/a.txt": b"hello"})
    result, handle = storage.make_random_read_file("logs/a.txt")
"""

from __future__ import annotations

import threading

from ..config import MemoryConfig
from .protocol import FileInfo, RandomReadFile, WriteFile
from .result import StoreResult


class MemoryRandomReadFile(RandomReadFile):
    """Reads from the committed contents held by a :class:`MemoryStorage`."""

    def __init__(self, storage: MemoryStorage, name: str) -> None:
        self._storage = storage
        self._name = name

    def read(self, offset: int, size: int) -> tuple[StoreResult, bytes]:
        if offset < 0 or size < 0:
            raise ValueError(f"offset and size must be non-negative, got offset={offset} size={size}")
        contents = self._storage._snapshot(self._name)
        if contents is None:
            return StoreResult.FILE_DOES_NOT_EXIST, b""
        data = contents[offset : offset + size]
        if len(data) < size:
            return StoreResult.END_OF_FILE, data
        return StoreResult.SUCCESS, data

    def get_size(self) -> tuple[StoreResult, int]:
        contents = self._storage._snapshot(self._name)
        if contents is None:
            return StoreResult.FILE_DOES_NOT_EXIST, 0
        return StoreResult.SUCCESS, len(contents)

    def path(self) -> str:
        return self._name

    def close(self) -> None:
        pass


class MemoryWriteFile(WriteFile):
    """Buffers appends and publishes them to the store on :meth:`save`."""

    def __init__(self, storage: MemoryStorage, name: str) -> None:
        self._storage = storage
        self._name = name
        self._buffer = bytearray()

    def append(self, data: bytes | bytearray | memoryview, size: int | None = None) -> StoreResult:
        view = memoryview(data)
        if size is not None:
            if size < 0 or size > len(view):
                raise ValueError(f"size {size} out of range for buffer of {len(view)} bytes")
            view = view[:size]
        self._buffer.extend(view)
        return StoreResult.SUCCESS

    def save(self) -> StoreResult:
        self._storage._commit(self._name, bytes(self._buffer))
        return StoreResult.SUCCESS

    def path(self) -> str:
        return self._name

    def close(self) -> None:
        self.save()


class MemoryStorage:
    """Dict-backed storage; all access is serialised by an internal lock.

    Args:
        config: Memory configuration (carries no settings).
        files: Optional initial contents, mapping name to bytes.
    """

    def __init__(self, config: MemoryConfig | None = None, files: dict[str, bytes] | None = None) -> None:
        self._files: dict[str, bytes] = dict(files or {})
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _snapshot(self, name: str) -> bytes | None:
        with self._lock:
            return self._files.get(name)

    def _commit(self, name: str, data: bytes) -> None:
        with self._lock:
            self._files[name] = data

    @staticmethod
    def _check_name(name: str) -> None:
        if not name:
            raise ValueError("File name must not be empty")

    # ------------------------------------------------------------------
    # File handles
    # ------------------------------------------------------------------

    def make_random_read_file(self, name: str) -> tuple[StoreResult, RandomReadFile | None]:
        self._check_name(name)
        if self._snapshot(name) is None:
            return StoreResult.FILE_DOES_NOT_EXIST, None
        return StoreResult.SUCCESS, MemoryRandomReadFile(self, name)

    def make_write_file(self, name: str, *, overwrite: bool = False) -> tuple[StoreResult, WriteFile | None]:
        self._check_name(name)
        with self._lock:
            if name in self._files and not overwrite:
                return StoreResult.FILE_EXISTS, None
            self._files[name] = b""
        return StoreResult.SUCCESS, MemoryWriteFile(self, name)

    # ------------------------------------------------------------------
    # Namespace
    # ------------------------------------------------------------------

    def get_file_info(self, name: str) -> tuple[StoreResult, FileInfo]:
        contents = self._snapshot(name)
        if contents is None:
            return StoreResult.FILE_DOES_NOT_EXIST, FileInfo(size_bytes=0, file_exists=False)
        return StoreResult.SUCCESS, FileInfo(size_bytes=len(contents), file_exists=True)

    def exists(self, name: str) -> bool:
        return self._snapshot(name) is not None

    def list_files(self, prefix: str = "") -> tuple[StoreResult, list[str]]:
        with self._lock:
            names = [name for name in self._files if name.startswith(prefix)]
        return StoreResult.SUCCESS, sorted(names)

    def delete_file(self, name: str) -> StoreResult:
        with self._lock:
            if self._files.pop(name, None) is None:
                return StoreResult.FILE_DOES_NOT_EXIST
        return StoreResult.SUCCESS

    def close(self) -> None:
        with self._lock:
            self._files.clear()

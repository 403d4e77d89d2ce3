# SPDX-License-Identifier: MIT
"""Local filesystem storage backend.

Every name is a relative path under the configured root.  Parent
directories are created on write; listing walks the tree and reports
slash-separated names so that prefixes behave like object-store prefixes.
"""

from __future__ import annotations

import errno
import logging
import os
import pathlib
import stat

from ..config import PosixConfig
from .protocol import FileInfo, RandomReadFile, WriteFile
from .result import StoreResult

logger = logging.getLogger("storehouse")

# errnos that may clear up if the same call is retried later
_TRANSIENT_ERRNOS = frozenset({errno.EAGAIN, errno.EBUSY, errno.EINTR, errno.ETIMEDOUT, errno.ENFILE, errno.EMFILE})


def _transient(exc: OSError) -> bool:
    return exc.errno in _TRANSIENT_ERRNOS


class PosixRandomReadFile(RandomReadFile):
    """Positioned reads against an open file descriptor."""

    def __init__(self, name: str, file_path: pathlib.Path, fd: int) -> None:
        self._name = name
        self._file_path = file_path
        self._fd = fd

    def read(self, offset: int, size: int) -> tuple[StoreResult, bytes]:
        if offset < 0 or size < 0:
            raise ValueError(f"offset and size must be non-negative, got offset={offset} size={size}")
        chunks: list[bytes] = []
        remaining = size
        pos = offset
        try:
            while remaining > 0:
                chunk = os.pread(self._fd, remaining, pos)
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)
                pos += len(chunk)
        except OSError as e:
            if _transient(e):
                logger.debug("Transient read error on %s: %s", self._file_path, e)
                return StoreResult.TRANSIENT_FAILURE, b""
            raise
        data = b"".join(chunks)
        if len(data) < size:
            return StoreResult.END_OF_FILE, data
        return StoreResult.SUCCESS, data

    def get_size(self) -> tuple[StoreResult, int]:
        try:
            return StoreResult.SUCCESS, os.fstat(self._fd).st_size
        except OSError as e:
            if _transient(e):
                return StoreResult.TRANSIENT_FAILURE, 0
            raise

    def path(self) -> str:
        return self._name

    def close(self) -> None:
        if self._fd >= 0:
            os.close(self._fd)
            self._fd = -1


class PosixWriteFile(WriteFile):
    """Appends to a file opened exclusively (or truncated, when overwriting)."""

    def __init__(self, name: str, file_path: pathlib.Path, handle) -> None:
        self._name = name
        self._file_path = file_path
        self._handle = handle

    def append(self, data: bytes | bytearray | memoryview, size: int | None = None) -> StoreResult:
        view = memoryview(data)
        if size is not None:
            if size < 0 or size > len(view):
                raise ValueError(f"size {size} out of range for buffer of {len(view)} bytes")
            view = view[:size]
        try:
            self._handle.write(view)
        except OSError as e:
            if _transient(e):
                return StoreResult.TRANSIENT_FAILURE
            raise
        return StoreResult.SUCCESS

    def save(self) -> StoreResult:
        try:
            self._handle.flush()
        except OSError as e:
            if _transient(e):
                return StoreResult.TRANSIENT_FAILURE
            raise
        return StoreResult.SUCCESS

    def path(self) -> str:
        return self._name

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()


class PosixStorage:
    """Local-disk storage rooted at :attr:`PosixConfig.root`.

    Concurrent calls are safe: each handle owns its own OS file.  A single
    write handle must only be appended to from one thread at a time.
    """

    def __init__(self, config: PosixConfig) -> None:
        self._root = config.root.expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> pathlib.Path:
        return self._root

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _safe(self, name: str) -> pathlib.Path:
        """Resolve *name* under the root, rejecting traversal attempts."""
        if not name or name.startswith("/"):
            raise ValueError(f"Invalid file name: {name!r}")
        file_path = (self._root / name).resolve()
        try:
            file_path.relative_to(self._root)
        except ValueError:
            raise ValueError(f"Invalid file name (path traversal detected): {name!r}") from None
        if file_path == self._root:
            raise ValueError(f"Invalid file name: {name!r}")
        return file_path

    # ------------------------------------------------------------------
    # File handles
    # ------------------------------------------------------------------

    def make_random_read_file(self, name: str) -> tuple[StoreResult, RandomReadFile | None]:
        file_path = self._safe(name)
        try:
            fd = os.open(file_path, os.O_RDONLY)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return StoreResult.FILE_DOES_NOT_EXIST, None
        except OSError as e:
            if _transient(e):
                return StoreResult.TRANSIENT_FAILURE, None
            raise
        if not stat.S_ISREG(os.fstat(fd).st_mode):
            os.close(fd)
            return StoreResult.FILE_DOES_NOT_EXIST, None
        return StoreResult.SUCCESS, PosixRandomReadFile(name, file_path, fd)

    def make_write_file(self, name: str, *, overwrite: bool = False) -> tuple[StoreResult, WriteFile | None]:
        file_path = self._safe(name)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(file_path, "wb" if overwrite else "xb")  # noqa: SIM115
        except (FileExistsError, IsADirectoryError):
            # A directory at the name counts as taken
            return StoreResult.FILE_EXISTS, None
        except OSError as e:
            if _transient(e):
                return StoreResult.TRANSIENT_FAILURE, None
            raise
        return StoreResult.SUCCESS, PosixWriteFile(name, file_path, handle)

    # ------------------------------------------------------------------
    # Namespace
    # ------------------------------------------------------------------

    def get_file_info(self, name: str) -> tuple[StoreResult, FileInfo]:
        file_path = self._safe(name)
        try:
            st = file_path.stat()
        except (FileNotFoundError, NotADirectoryError):
            return StoreResult.FILE_DOES_NOT_EXIST, FileInfo(size_bytes=0, file_exists=False)
        except OSError as e:
            if _transient(e):
                return StoreResult.TRANSIENT_FAILURE, FileInfo(size_bytes=0, file_exists=False)
            raise
        if not file_path.is_file():
            return StoreResult.FILE_DOES_NOT_EXIST, FileInfo(size_bytes=0, file_exists=False)
        return StoreResult.SUCCESS, FileInfo(size_bytes=st.st_size, file_exists=True)

    def exists(self, name: str) -> bool:
        try:
            return self._safe(name).is_file()
        except (ValueError, OSError):
            return False

    def list_files(self, prefix: str = "") -> tuple[StoreResult, list[str]]:
        names: list[str] = []
        for file_path in self._root.rglob("*"):
            if not file_path.is_file():
                continue
            name = file_path.relative_to(self._root).as_posix()
            if name.startswith(prefix):
                names.append(name)
        return StoreResult.SUCCESS, sorted(names)

    def delete_file(self, name: str) -> StoreResult:
        file_path = self._safe(name)
        try:
            file_path.unlink()
        except (FileNotFoundError, NotADirectoryError):
            return StoreResult.FILE_DOES_NOT_EXIST
        except OSError as e:
            if _transient(e):
                return StoreResult.TRANSIENT_FAILURE
            raise
        logger.debug("Deleted %s", file_path)
        return StoreResult.SUCCESS

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Nothing to release; handles own their file descriptors."""

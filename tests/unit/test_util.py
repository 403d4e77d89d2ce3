# SPDX-License-Identifier: MIT
"""Unit tests for read_entire_file and exit_on_error."""

import logging
import os
import subprocess
import sys
import textwrap

import pytest

from storehouse.exceptions import FatalStorageError, StorageInvariantError
from storehouse.storage.memory import MemoryStorage
from storehouse.storage.protocol import RandomReadFile
from storehouse.storage.result import StoreResult
from storehouse.storage.util import READ_SIZE, exit_on_error, read_entire_file


class BrokenReadFile(RandomReadFile):
    """Read handle that reports a result reads can never legitimately produce."""

    def read(self, offset, size):
        return StoreResult.FILE_EXISTS, b""

    def get_size(self):
        return StoreResult.SUCCESS, 0

    def path(self):
        return "broken.bin"

    def close(self):
        pass


# ------------------------------------------------------------------
# read_entire_file
# ------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize("length", [0, 1, READ_SIZE - 1, READ_SIZE, READ_SIZE + 1, 2 * READ_SIZE + 17])
def test_read_entire_file_from_start(length, fast_backoff):
    content = os.urandom(length)
    storage = MemoryStorage(files={"blob.bin": content})
    _, handle = storage.make_random_read_file("blob.bin")

    data = read_entire_file(handle, 0, fast_backoff)

    assert len(data) == length
    assert data == content


@pytest.mark.unit
def test_read_entire_file_from_position(fast_backoff):
    storage = MemoryStorage(files={"blob.bin": b"header|body"})
    _, handle = storage.make_random_read_file("blob.bin")

    assert read_entire_file(handle, 7, fast_backoff) == b"body"


@pytest.mark.unit
def test_read_entire_file_on_disk(posix_storage, storage_root, fast_backoff):
    content = os.urandom(READ_SIZE + 5)
    (storage_root / "big.bin").write_bytes(content)

    _, handle = posix_storage.make_random_read_file("big.bin")
    with handle:
        assert read_entire_file(handle, backoff=fast_backoff) == content


@pytest.mark.unit
def test_read_entire_file_retries_transient_reads(fast_backoff, sleeps, mocker):
    storage = MemoryStorage(files={"blob.bin": b"abc"})
    _, handle = storage.make_random_read_file("blob.bin")
    mocker.patch.object(
        handle,
        "read",
        side_effect=[(StoreResult.TRANSIENT_FAILURE, b""), (StoreResult.END_OF_FILE, b"abc")],
    )

    assert read_entire_file(handle, 0, fast_backoff) == b"abc"
    assert len(sleeps) == 1


@pytest.mark.unit
def test_read_entire_file_rejects_unexpected_result(fast_backoff):
    with pytest.raises(StorageInvariantError, match="FileExists"):
        read_entire_file(BrokenReadFile(), 0, fast_backoff)


# ------------------------------------------------------------------
# exit_on_error
# ------------------------------------------------------------------


@pytest.mark.unit
def test_exit_on_error_success_is_noop():
    exit_on_error(StoreResult.SUCCESS)


@pytest.mark.unit
@pytest.mark.parametrize(
    "result",
    [StoreResult.FILE_EXISTS, StoreResult.FILE_DOES_NOT_EXIST, StoreResult.END_OF_FILE, StoreResult.TRANSIENT_FAILURE],
)
def test_exit_on_error_terminates(result, on_fatal, caplog):
    with caplog.at_level(logging.CRITICAL, logger="storehouse"):
        with pytest.raises(FatalStorageError) as exc_info:
            exit_on_error(result, on_fatal)

    assert result.value in str(exc_info.value)
    assert result.value in caplog.text


@pytest.mark.unit
def test_exit_on_error_in_executor_exits_process():
    script = textwrap.dedent(
        """
        from concurrent.futures import ThreadPoolExecutor

        from storehouse.storage.result import StoreResult
        from storehouse.storage.util import exit_on_error

        with ThreadPoolExecutor(max_workers=1) as pool:
            pool.submit(exit_on_error, StoreResult.FILE_DOES_NOT_EXIST).result()
        print("still running")
        """
    )

    proc = subprocess.run([sys.executable, "-c", script], capture_output=True, text=True, timeout=60)

    assert proc.returncode == 1
    assert "still running" not in proc.stdout
    assert "FileDoesNotExist" in proc.stderr

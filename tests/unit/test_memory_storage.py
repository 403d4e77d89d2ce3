# SPDX-License-Identifier: MIT
"""Unit tests for MemoryStorage and the shared read-handle contract."""

import threading

import pytest

from storehouse.storage.memory import MemoryStorage
from storehouse.storage.protocol import FileInfo, StorageBackend
from storehouse.storage.result import StoreResult

CONTENT = bytes(range(256)) * 4


@pytest.fixture
def seeded() -> MemoryStorage:
    return MemoryStorage(files={"blob.bin": CONTENT})


@pytest.mark.unit
def test_memory_storage_is_storage_backend(memory_storage):
    assert isinstance(memory_storage, StorageBackend)


# ------------------------------------------------------------------
# Read contract
# ------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(("offset", "size"), [(0, 1), (0, len(CONTENT)), (100, 37), (len(CONTENT) - 1, 1)])
def test_read_within_bounds_returns_exact_range(seeded, offset, size):
    _, handle = seeded.make_random_read_file("blob.bin")
    buffer = bytearray()

    result = handle.read_into(offset, size, buffer)

    assert result is StoreResult.SUCCESS
    assert bytes(buffer) == CONTENT[offset : offset + size]


@pytest.mark.unit
@pytest.mark.parametrize(("size", "overshoot"), [(10, 1), (10, 5), (10, 10), (1, 1)])
def test_read_crossing_end_gains_size_minus_overshoot(seeded, size, overshoot):
    offset = len(CONTENT) - size + overshoot
    _, handle = seeded.make_random_read_file("blob.bin")
    buffer = bytearray(b"keep")

    result = handle.read_into(offset, size, buffer)

    assert result is StoreResult.END_OF_FILE
    assert len(buffer) == 4 + size - overshoot
    assert buffer[:4] == b"keep"
    assert bytes(buffer[4:]) == CONTENT[offset:]


@pytest.mark.unit
def test_read_handle_sees_deleted_file(seeded):
    _, handle = seeded.make_random_read_file("blob.bin")
    seeded.delete_file("blob.bin")

    assert handle.read(0, 1) == (StoreResult.FILE_DOES_NOT_EXIST, b"")


@pytest.mark.unit
def test_open_missing(memory_storage):
    assert memory_storage.make_random_read_file("nope") == (StoreResult.FILE_DOES_NOT_EXIST, None)


@pytest.mark.unit
def test_empty_name_rejected(memory_storage):
    with pytest.raises(ValueError, match="empty"):
        memory_storage.make_random_read_file("")


# ------------------------------------------------------------------
# Write contract
# ------------------------------------------------------------------


@pytest.mark.unit
def test_append_then_read_back(memory_storage):
    _, writer = memory_storage.make_write_file("out.bin")
    with writer:
        writer.append(b"hello ")
        writer.append(b"world!!!", 5)

    _, reader = memory_storage.make_random_read_file("out.bin")
    assert reader.read(0, 11) == (StoreResult.SUCCESS, b"hello world")
    assert reader.get_size() == (StoreResult.SUCCESS, 11)


@pytest.mark.unit
def test_appends_visible_after_save(memory_storage):
    _, writer = memory_storage.make_write_file("out.bin")
    writer.append(b"abc")

    assert memory_storage.get_file_info("out.bin") == (StoreResult.SUCCESS, FileInfo(size_bytes=0, file_exists=True))
    writer.save()
    assert memory_storage.get_file_info("out.bin") == (StoreResult.SUCCESS, FileInfo(size_bytes=3, file_exists=True))


@pytest.mark.unit
def test_strict_create_and_overwrite(seeded):
    assert seeded.make_write_file("blob.bin") == (StoreResult.FILE_EXISTS, None)

    result, writer = seeded.make_write_file("blob.bin", overwrite=True)
    assert result is StoreResult.SUCCESS
    with writer:
        writer.append(b"new")

    _, reader = seeded.make_random_read_file("blob.bin")
    assert reader.read(0, 10) == (StoreResult.END_OF_FILE, b"new")


@pytest.mark.unit
def test_concurrent_writers_on_distinct_files(memory_storage):
    def write(index: int) -> None:
        _, writer = memory_storage.make_write_file(f"part-{index:02d}")
        with writer:
            for _ in range(50):
                writer.append(bytes([index]))

    threads = [threading.Thread(target=write, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    _, names = memory_storage.list_files("part-")
    assert names == [f"part-{i:02d}" for i in range(8)]
    for i in range(8):
        assert memory_storage.get_file_info(f"part-{i:02d}")[1].size_bytes == 50


# ------------------------------------------------------------------
# Namespace
# ------------------------------------------------------------------


@pytest.mark.unit
def test_list_exists_delete():
    memory_storage = MemoryStorage(files={"a/1": b"1", "a/2": b"2", "b/1": b"3"})

    assert memory_storage.list_files() == (StoreResult.SUCCESS, ["a/1", "a/2", "b/1"])
    assert memory_storage.list_files("a/") == (StoreResult.SUCCESS, ["a/1", "a/2"])
    assert memory_storage.exists("b/1") is True
    assert memory_storage.delete_file("b/1") is StoreResult.SUCCESS
    assert memory_storage.exists("b/1") is False
    assert memory_storage.delete_file("b/1") is StoreResult.FILE_DOES_NOT_EXIST

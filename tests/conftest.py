# SPDX-License-Identifier: MIT
"""Shared pytest fixtures for storehouse tests."""

import pathlib
import random

import pytest

from storehouse.config import PosixConfig
from storehouse.exceptions import FatalStorageError
from storehouse.storage.backoff import Backoff
from storehouse.storage.local import PosixStorage
from storehouse.storage.memory import MemoryStorage


@pytest.fixture
def storage_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """Create a temporary root directory for local storage."""
    root = tmp_path / "store"
    root.mkdir()
    return root


@pytest.fixture
def posix_storage(storage_root: pathlib.Path) -> PosixStorage:
    return PosixStorage(PosixConfig(root=storage_root))


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def sleeps() -> list[float]:
    """Durations passed to the backoff sleep function, in call order."""
    return []


def raise_fatal(message: str) -> None:
    raise FatalStorageError(message)


@pytest.fixture
def on_fatal():
    """Terminal action that raises instead of ending the test process."""
    return raise_fatal


@pytest.fixture
def fast_backoff(sleeps: list[float], on_fatal) -> Backoff:
    """Seeded backoff policy that records sleeps instead of blocking."""
    return Backoff(rng=random.Random(1234), sleep=sleeps.append, on_fatal=on_fatal)

# SPDX-License-Identifier: MIT
"""Storage backend factory.

Maps a configuration variant onto the backend for its medium, and builds
the process-wide backend from ``STORAGE_BACKEND`` and related env vars.
"""

from __future__ import annotations

import atexit
import logging
from functools import lru_cache

from ..config import GCSConfig, MemoryConfig, PosixConfig, config_from_env
from .gcs import GCSStorage
from .local import PosixStorage
from .memory import MemoryStorage
from .protocol import StorageBackend

logger = logging.getLogger("storehouse")


def make_from_config(config: object) -> StorageBackend | None:
    """Instantiate the backend matching the concrete type of *config*.

    The caller owns the returned backend and should :meth:`close` it.

    Returns:
        The backend, or ``None`` if *config* is not a registered variant.
        ``None`` is a programming error and should be treated as fatal at
        startup, not retried.
    """
    if isinstance(config, PosixConfig):
        return PosixStorage(config)

    if isinstance(config, GCSConfig):
        return GCSStorage(config)

    if isinstance(config, MemoryConfig):
        return MemoryStorage(config)

    logger.debug("No storage backend registered for %s", type(config).__name__)
    return None


@lru_cache(maxsize=1)
def get_storage() -> StorageBackend:
    """Return the configured :class:`StorageBackend` (cached singleton).

    The backend is closed automatically at process exit via :func:`atexit`.

    Raises:
        RuntimeError: If the environment does not describe a usable backend.
    """
    config = config_from_env()
    backend = make_from_config(config)
    if backend is None:
        raise RuntimeError(f"No storage backend registered for {type(config).__name__}")
    logger.info("Using %s storage backend", type(backend).__name__)
    _register_cleanup(backend)
    return backend


def _register_cleanup(backend: StorageBackend) -> None:
    """Register an atexit handler that closes *backend*."""

    def _cleanup() -> None:
        backend.close()
        logger.debug("Storage backend %s closed", type(backend).__name__)

    atexit.register(_cleanup)

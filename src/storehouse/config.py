# SPDX-License-Identifier: MIT
"""Configuration management for storehouse.

This module handles:
- Logging setup
- Backend configuration records (one per storage medium)
- Building a configuration from environment variables
"""

from __future__ import annotations

import logging
import os
import pathlib
import sys
from dataclasses import dataclass

# ---------- Logging configuration ----------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("storehouse")


# ---------- Backend configurations ----------


@dataclass(frozen=True)
class PosixConfig:
    """Local filesystem storage rooted at *root*."""

    root: pathlib.Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", pathlib.Path(self.root))


@dataclass(frozen=True)
class GCSConfig:
    """Google Cloud Storage bucket.

    Attributes:
        bucket: Bucket name (without ``gs://``).
        access_token: Static OAuth bearer token.  When unset, tokens are
            fetched from the GCE metadata server.
        endpoint: API root, overridable for emulators such as fake-gcs-server.
        timeout: Per-request timeout in seconds.
    """

    bucket: str
    access_token: str | None = None
    endpoint: str = "https://storage.googleapis.com"
    timeout: float = 300.0


@dataclass(frozen=True)
class MemoryConfig:
    """In-process storage; contents live as long as the backend instance."""

    pass


StorageConfig = PosixConfig | GCSConfig | MemoryConfig
"""Closed set of configuration variants understood by ``make_from_config``."""


# ---------- Environment (runtime) ----------

_REQUIRED_ENV: dict[str, dict[str, str]] = {
    "posix": {"STOREHOUSE_ROOT": "Root directory for stored files"},
    "gcs": {"GCS_BUCKET": "Bucket name (e.g. my-bucket)"},
    "memory": {},
}


def config_from_env() -> StorageConfig:
    """Build a storage configuration from environment variables.

    ``STORAGE_BACKEND`` selects the variant:

    ``"posix"`` (default)
        Requires ``STOREHOUSE_ROOT``.
    ``"gcs"``
        Requires ``GCS_BUCKET``; optional ``GCS_ACCESS_TOKEN`` and ``GCS_ENDPOINT``.
    ``"memory"``
        No further settings.

    Raises:
        RuntimeError: If the backend is unknown or required variables are missing.
    """
    backend_type = os.getenv("STORAGE_BACKEND", "posix").strip().lower()
    if backend_type not in _REQUIRED_ENV:
        raise RuntimeError(f"Unknown STORAGE_BACKEND: {backend_type!r}. Use 'posix', 'gcs' or 'memory'.")

    required = _REQUIRED_ENV[backend_type]
    missing = [name for name in required if not os.getenv(name, "").strip()]
    if missing:
        details = "\n".join(f"  - {name}: {required[name]}" for name in missing)
        raise RuntimeError(f"Missing required {backend_type} environment variable(s):\n{details}")

    if backend_type == "posix":
        root = pathlib.Path(os.environ["STOREHOUSE_ROOT"].strip()).expanduser()
        return PosixConfig(root=root)

    if backend_type == "gcs":
        return GCSConfig(
            bucket=os.environ["GCS_BUCKET"].strip(),
            access_token=os.getenv("GCS_ACCESS_TOKEN", "").strip() or None,
            endpoint=os.getenv("GCS_ENDPOINT", "").strip().rstrip("/") or "https://storage.googleapis.com",
        )

    return MemoryConfig()

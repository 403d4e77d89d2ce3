# SPDX-License-Identifier: MIT
"""Google Cloud Storage backend.

Uses the Cloud Storage JSON API (REST) for all object operations, with
either a static bearer token or OAuth tokens from the GCE metadata server.
"""

from __future__ import annotations

import logging
import threading
import time
from urllib.parse import quote

import httpx

from ..config import GCSConfig
from ..exceptions import StorehouseError
from .backoff import exponential_backoff
from .protocol import FileInfo, RandomReadFile, WriteFile
from .result import StoreResult, store_result_to_string

logger = logging.getLogger("storehouse")

METADATA_TOKEN_URL = "http://metadata.google.internal/computeMetadata/v1/instance/service-accounts/default/token"


def _is_transient_status(status_code: int) -> bool:
    """Rate limiting, request timeouts and server errors clear up on retry."""
    return status_code in (408, 429) or status_code >= 500


class GCSRandomReadFile(RandomReadFile):
    """Ranged GETs against a single object."""

    def __init__(self, storage: GCSStorage, name: str) -> None:
        self._storage = storage
        self._name = name

    def read(self, offset: int, size: int) -> tuple[StoreResult, bytes]:
        if offset < 0 or size < 0:
            raise ValueError(f"offset and size must be non-negative, got offset={offset} size={size}")
        if size == 0:
            return StoreResult.SUCCESS, b""

        resp = self._storage._send(
            "get",
            self._storage._object_url(self._name),
            params={"alt": "media"},
            headers={"Range": f"bytes={offset}-{offset + size - 1}"},
        )
        if resp is None:
            return StoreResult.TRANSIENT_FAILURE, b""
        if resp.status_code == 404:
            return StoreResult.FILE_DOES_NOT_EXIST, b""
        if resp.status_code == 416:
            # Range starts at or beyond the end of the object
            return StoreResult.END_OF_FILE, b""
        resp.raise_for_status()

        data = resp.content
        if resp.status_code == 200:
            # Range ignored, whole object returned
            data = data[offset : offset + size]
        if len(data) < size:
            return StoreResult.END_OF_FILE, data
        return StoreResult.SUCCESS, data[:size]

    def get_size(self) -> tuple[StoreResult, int]:
        result, info = self._storage.get_file_info(self._name)
        return result, info.size_bytes

    def path(self) -> str:
        return self._name

    def close(self) -> None:
        pass


class GCSWriteFile(WriteFile):
    """Buffers appends locally and uploads the whole object on :meth:`save`.

    The first upload of a strictly created file carries
    ``ifGenerationMatch=0`` so a concurrent creator loses with
    ``FILE_EXISTS``; later uploads are conditioned on the generation this
    handle last wrote.
    """

    def __init__(self, storage: GCSStorage, name: str, *, overwrite: bool) -> None:
        self._storage = storage
        self._name = name
        self._buffer = bytearray()
        self._generation: str | None = None if overwrite else "0"
        self._dirty = True
        self._closed = False

    def append(self, data: bytes | bytearray | memoryview, size: int | None = None) -> StoreResult:
        view = memoryview(data)
        if size is not None:
            if size < 0 or size > len(view):
                raise ValueError(f"size {size} out of range for buffer of {len(view)} bytes")
            view = view[:size]
        self._buffer.extend(view)
        self._dirty = True
        return StoreResult.SUCCESS

    def save(self) -> StoreResult:
        params = {"uploadType": "media", "name": self._name}
        if self._generation is not None:
            params["ifGenerationMatch"] = self._generation
        resp = self._storage._send(
            "post",
            self._storage._upload_url(),
            params=params,
            headers={"Content-Type": "application/octet-stream"},
            content=bytes(self._buffer),
        )
        if resp is None:
            return StoreResult.TRANSIENT_FAILURE
        if resp.status_code == 412:
            return StoreResult.FILE_EXISTS
        resp.raise_for_status()
        self._generation = str(resp.json().get("generation", "")) or None
        self._dirty = False
        return StoreResult.SUCCESS

    def path(self) -> str:
        return self._name

    def close(self) -> None:
        """Upload any unsaved appends.

        Raises:
            StorehouseError: If the final upload ends in a terminal failure.
        """
        if self._closed:
            return
        self._closed = True
        if not self._dirty:
            return
        result = exponential_backoff(self.save, self._name)
        if result is not StoreResult.SUCCESS:
            raise StorehouseError(f"Failed to save {self._name}: {store_result_to_string(result)}")


class GCSStorage:
    """Google Cloud Storage backend for one bucket.

    The underlying :class:`httpx.Client` is shared by every handle and is
    safe for concurrent use; token refresh is serialised by a lock.
    Written objects become visible once their handle saves or closes.
    """

    def __init__(self, config: GCSConfig) -> None:
        if not config.bucket.strip():
            raise RuntimeError("GCS bucket name must not be empty")
        self._bucket = config.bucket.strip()
        self._endpoint = config.endpoint.rstrip("/")
        self._static_token = config.access_token

        self._client = httpx.Client(timeout=config.timeout)
        self._token: str | None = None
        self._token_expires_at: float = 0.0
        self._token_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying httpx client and release resources."""
        self._client.close()

    def __enter__(self) -> GCSStorage:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _get_token(self) -> str:
        """Get an OAuth token, refreshing if expired or near-expiry."""
        if self._static_token:
            return self._static_token

        with self._token_lock:
            now = time.monotonic()
            if self._token and now < self._token_expires_at - 60:
                return self._token

            resp = self._client.get(METADATA_TOKEN_URL, headers={"Metadata-Flavor": "Google"})
            resp.raise_for_status()
            payload = resp.json()
            if "access_token" not in payload:
                raise RuntimeError("GCS metadata server response has no access_token")
            self._token = payload["access_token"]
            # Default to 1-hour expiry if not provided
            self._token_expires_at = now + payload.get("expires_in", 3600)
            logger.debug("Acquired GCS OAuth token (expires in %ds)", payload.get("expires_in", 3600))
            return self._token

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._get_token()}"}

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    def _object_url(self, name: str) -> str:
        self._validate_name(name)
        return f"{self._endpoint}/storage/v1/b/{quote(self._bucket, safe='')}/o/{quote(name, safe='')}"

    def _bucket_url(self) -> str:
        return f"{self._endpoint}/storage/v1/b/{quote(self._bucket, safe='')}/o"

    def _upload_url(self) -> str:
        return f"{self._endpoint}/upload/storage/v1/b/{quote(self._bucket, safe='')}/o"

    @staticmethod
    def _validate_name(name: str) -> None:
        if not name:
            raise ValueError("Object name must not be empty")

    def _send(self, method: str, url: str, *, headers: dict[str, str] | None = None, **kwargs) -> httpx.Response | None:
        """Issue an authenticated request.

        Returns ``None`` when the failure is transient (transport error,
        rate limiting, server error) so callers can report
        ``TRANSIENT_FAILURE``.
        """
        try:
            request_headers = {**self._headers(), **(headers or {})}
            resp = getattr(self._client, method)(url, headers=request_headers, **kwargs)
        except httpx.TransportError as e:
            logger.debug("Transport error on %s %s: %s", method.upper(), url, e)
            return None
        except httpx.HTTPStatusError as e:
            if _is_transient_status(e.response.status_code):
                logger.debug("Token request failed with HTTP %d", e.response.status_code)
                return None
            raise
        if _is_transient_status(resp.status_code):
            logger.debug("HTTP %d on %s %s", resp.status_code, method.upper(), url)
            return None
        return resp

    # ------------------------------------------------------------------
    # File handles
    # ------------------------------------------------------------------

    def make_random_read_file(self, name: str) -> tuple[StoreResult, RandomReadFile | None]:
        result, _ = self.get_file_info(name)
        if result is not StoreResult.SUCCESS:
            return result, None
        return StoreResult.SUCCESS, GCSRandomReadFile(self, name)

    def make_write_file(self, name: str, *, overwrite: bool = False) -> tuple[StoreResult, WriteFile | None]:
        if not overwrite:
            result, _ = self.get_file_info(name)
            if result is StoreResult.SUCCESS:
                return StoreResult.FILE_EXISTS, None
            if result is not StoreResult.FILE_DOES_NOT_EXIST:
                return result, None
        else:
            self._validate_name(name)
        return StoreResult.SUCCESS, GCSWriteFile(self, name, overwrite=overwrite)

    # ------------------------------------------------------------------
    # Namespace
    # ------------------------------------------------------------------

    def get_file_info(self, name: str) -> tuple[StoreResult, FileInfo]:
        missing = FileInfo(size_bytes=0, file_exists=False)
        resp = self._send("get", self._object_url(name))
        if resp is None:
            return StoreResult.TRANSIENT_FAILURE, missing
        if resp.status_code == 404:
            return StoreResult.FILE_DOES_NOT_EXIST, missing
        resp.raise_for_status()
        return StoreResult.SUCCESS, FileInfo(size_bytes=int(resp.json().get("size", 0)), file_exists=True)

    def exists(self, name: str) -> bool:
        try:
            result, _ = self.get_file_info(name)
        except (ValueError, httpx.HTTPError):
            return False
        if result is StoreResult.TRANSIENT_FAILURE:
            logger.warning("Existence check for %s failed transiently; reporting absent", name)
        return result is StoreResult.SUCCESS

    def list_files(self, prefix: str = "") -> tuple[StoreResult, list[str]]:
        names: list[str] = []
        params: dict[str, str] = {"fields": "items(name),nextPageToken"}
        if prefix:
            params["prefix"] = prefix
        while True:
            resp = self._send("get", self._bucket_url(), params=params)
            if resp is None:
                return StoreResult.TRANSIENT_FAILURE, []
            resp.raise_for_status()
            payload = resp.json()
            names.extend(item["name"] for item in payload.get("items", []))
            page_token = payload.get("nextPageToken")
            if not page_token:
                break
            params["pageToken"] = page_token
        return StoreResult.SUCCESS, sorted(names)

    def delete_file(self, name: str) -> StoreResult:
        resp = self._send("delete", self._object_url(name))
        if resp is None:
            return StoreResult.TRANSIENT_FAILURE
        if resp.status_code == 404:
            return StoreResult.FILE_DOES_NOT_EXIST
        resp.raise_for_status()
        return StoreResult.SUCCESS

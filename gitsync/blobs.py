"""Artifact blob store interface and OCI registry implementation."""

from __future__ import annotations

import hashlib
import typing as typ

import httpx

from gitsync.git.errors import BlobFetchError
from gitsync.logging import get_logger, log_debug

logger = get_logger(__name__)

_HTTP_ERROR_STATUS_THRESHOLD = 400
_SHA256_PREFIX = "sha256:"


class BlobStore(typ.Protocol):
    """Source of raw artifact bytes addressed by repository name and digest."""

    async def fetch(self, repository_name: str, digest: str) -> bytes:
        """Return the blob bytes.

        Raises
        ------
        BlobFetchError
            If the blob cannot be retrieved or fails verification.

        """
        ...


def verify_digest(data: bytes, digest: str) -> None:
    """Check ``data`` against a ``sha256:`` digest; other algorithms pass.

    Examples
    --------
    >>> verify_digest(b"", "sha256:" + hashlib.sha256(b"").hexdigest())
    >>> verify_digest(b"anything", "abc123")

    """
    if not digest.startswith(_SHA256_PREFIX):
        return
    actual = _SHA256_PREFIX + hashlib.sha256(data).hexdigest()
    if actual != digest:
        raise BlobFetchError.digest_mismatch(digest, actual)


class RegistryBlobStore:
    """Fetch blobs through the OCI distribution API.

    Issues ``GET {base_url}/v2/{name}/blobs/{digest}``, following the
    registry's redirects to blob storage.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout_s: float = 20.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise against a registry base URL such as ``https://ghcr.io``."""
        self._base_url = base_url.rstrip("/")
        headers = {"User-Agent": "gitsync/0.1"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_s, headers=headers, follow_redirects=True
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, repository_name: str, digest: str) -> bytes:
        """Download and verify one blob."""
        url = f"{self._base_url}/v2/{repository_name}/blobs/{digest}"
        try:
            response = await self._client.get(url, follow_redirects=True)
        except httpx.HTTPError as exc:
            msg = f"fetching blob {repository_name}@{digest} failed: {exc}"
            raise BlobFetchError(msg) from exc

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise BlobFetchError.http_error(
                repository_name, digest, response.status_code
            )

        data = response.content
        verify_digest(data, digest)
        log_debug(
            logger, "Fetched blob %s@%s (%d bytes)", repository_name, digest, len(data)
        )
        return data

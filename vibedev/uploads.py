"""Client for the external image upload endpoint.

Project screenshots and inline blog images are posted as multipart form
data; the endpoint answers with JSON carrying the final asset URL. Failed
uploads are reported to the caller and never retried automatically.

Example:
    >>> async with UploadClient() as client:
    ...     url = await client.upload(data, "shot.png", "image/png")
"""

from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any, Optional

import httpx

from vibedev.config import settings
from vibedev.errors import UploadError
from vibedev.interfaces import ProgressCallback
from vibedev.logging import logger

CHUNK_SIZE = 64 * 1024
URL_KEYS = ("url", "ufsUrl", "fileUrl")


class UploadClient:
    """Async multipart upload client.

    Args:
        endpoint: Upload URL (defaults to settings.upload_endpoint)
        token: Bearer token (defaults to settings.upload_token)
        timeout: Timeout configuration (defaults to settings.upload_timeout_seconds)
        transport: Custom httpx transport (used by tests)
    """

    def __init__(
        self,
        endpoint: str | None = None,
        token: str | None = None,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint or settings.upload_endpoint
        self._token = token or settings.upload_token
        self._timeout = timeout or httpx.Timeout(
            timeout=settings.upload_timeout_seconds,
            connect=10.0,
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def __aenter__(self) -> "UploadClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def upload(
        self,
        content: bytes,
        filename: str,
        content_type: str = "application/octet-stream",
        on_begin: Optional[Callable[[str], None]] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> str:
        """Upload one file and return its public URL.

        Args:
            content: File bytes
            filename: Original file name
            content_type: MIME type of the file
            on_begin: Called with the file name before sending
            on_progress: Called with (bytes_sent, total_bytes) while sending
            on_complete: Called with the asset URL on success
            on_error: Called with the error before it is raised

        Raises:
            UploadError: If no endpoint is configured, the request fails, or
                the response carries no URL
        """
        try:
            if not self._endpoint:
                raise UploadError("Upload endpoint is not configured")
            if on_begin:
                on_begin(filename)
            url = await self._send(content, filename, content_type, on_progress)
        except UploadError as exc:
            logger.error(f"❌ Upload of {filename} failed: {exc}")
            if on_error:
                on_error(exc)
            raise

        logger.info(f"📤 Uploaded {filename} ({len(content)} bytes)")
        if on_complete:
            on_complete(url)
        return url

    async def _send(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        on_progress: Optional[ProgressCallback],
    ) -> str:
        client = await self._ensure_client()
        request = client.build_request(
            "POST", self._endpoint, files={"file": (filename, content, content_type)}
        )
        total = int(request.headers.get("Content-Length", len(content)))
        if on_progress is not None:
            request = client.build_request(
                "POST",
                self._endpoint,
                content=_with_progress(request.stream, total, on_progress),
                headers={
                    "Content-Type": request.headers["Content-Type"],
                    "Content-Length": str(total),
                },
            )

        try:
            resp = await client.send(request)
        except httpx.HTTPError as exc:
            raise UploadError(f"Network/timeout error: {exc}") from exc

        if resp.status_code >= 400:
            raise UploadError(f"HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise UploadError(f"Invalid JSON: {exc}") from exc

        url = _asset_url(body)
        if not url:
            raise UploadError("Upload response did not include a URL")
        return url


async def _with_progress(
    stream: Iterable[bytes], total: int, on_progress: ProgressCallback
) -> AsyncIterator[bytes]:
    sent = 0
    on_progress(0, total)
    for part in stream:
        for start in range(0, len(part), CHUNK_SIZE):
            chunk = part[start : start + CHUNK_SIZE]
            sent += len(chunk)
            yield chunk
            on_progress(sent, total)


def _asset_url(body: Any) -> Optional[str]:
    """First URL found in a response body (object or single-item list)."""
    if isinstance(body, list):
        body = body[0] if body else {}
    if not isinstance(body, dict):
        return None
    if isinstance(body.get("data"), (dict, list)):
        return _asset_url(body["data"])
    for key in URL_KEYS:
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None


__all__ = ["UploadClient"]

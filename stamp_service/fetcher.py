"""Download source PDFs over HTTP."""

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from .config import Config
from .errors import DocumentFetchError, DocumentTooLargeError, RequestValidationError

logger = logging.getLogger(__name__)


class DocumentFetcher:
    """Fetches PDF bytes from http(s) URLs with a size limit."""

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = config.fetch.timeout_seconds
        self.max_bytes = config.stamp.max_file_size_bytes
        self.max_file_size_mb = config.stamp.max_file_size_mb
        self._transport = transport

    async def fetch(self, url: str) -> bytes:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise RequestValidationError(f"Unsupported PDF URL: {url}")

        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise DocumentFetchError(
                            f"Could not fetch PDF (status {response.status_code})",
                            details={"status": response.status_code},
                        )

                    declared = response.headers.get("content-length")
                    if declared and declared.isdigit() and int(declared) > self.max_bytes:
                        raise DocumentTooLargeError(
                            f"File exceeds {self.max_file_size_mb}MB limit"
                        )

                    chunks = []
                    received = 0
                    async for chunk in response.aiter_bytes():
                        received += len(chunk)
                        if received > self.max_bytes:
                            raise DocumentTooLargeError(
                                f"File exceeds {self.max_file_size_mb}MB limit"
                            )
                        chunks.append(chunk)
        except httpx.HTTPError as e:
            logger.warning(f"Fetch failed for {url}: {e}")
            raise DocumentFetchError(f"Could not fetch PDF: {e}") from e

        return b"".join(chunks)

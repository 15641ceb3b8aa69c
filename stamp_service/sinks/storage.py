"""Sink that uploads the stamped PDF to a cloud storage API."""

import logging
import re
import uuid
from typing import Any, Dict, Optional

import httpx

from .base import Sink
from ..config import StorageConfig
from ..errors import UploadError

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StorageSink(Sink):
    """
    Uploads documents with ``PUT {upload_url}/{key}``.

    The API is expected to accept a raw ``application/pdf`` body with a bearer
    token and may answer with JSON containing a public ``url``.
    """

    name = "storage"

    def __init__(
        self,
        config: StorageConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not config.enabled:
            raise ValueError("Storage sink requires STORAGE_UPLOAD_URL")
        self.config = config
        self._transport = transport

    def object_key(self, filename: Optional[str] = None) -> str:
        if filename:
            stem = _UNSAFE_KEY_CHARS.sub("_", filename).strip("._") or "document"
            if not stem.lower().endswith(".pdf"):
                stem = f"{stem}.pdf"
            return f"{self.config.key_prefix}{uuid.uuid4().hex[:8]}-{stem}"
        return f"{self.config.key_prefix}{uuid.uuid4().hex}.pdf"

    async def deliver(
        self,
        pdf_bytes: bytes,
        filename: Optional[str] = None,
    ) -> Dict[str, Any]:
        key = self.object_key(filename)
        target = f"{self.config.upload_url.rstrip('/')}/{key}"

        headers = {"Content-Type": "application/pdf"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.put(target, content=pdf_bytes, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"Upload of {key} rejected with status {status}")
            raise UploadError(
                f"Upload failed (status {status})",
                details={"status": status, "key": key},
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Upload of {key} failed: {e}")
            raise UploadError(f"Upload failed: {e}", details={"key": key}) from e

        url = target
        if response.headers.get("content-type", "").startswith("application/json"):
            try:
                body = response.json()
            except ValueError:
                body = {}
            if isinstance(body, dict) and body.get("url"):
                url = body["url"]

        logger.info(f"Uploaded {len(pdf_bytes)} bytes to {key}")

        return {
            "storage": {
                "key": key,
                "url": url,
                "size": len(pdf_bytes),
            }
        }

"""Sink that returns the stamped PDF in the response body."""

import base64
from typing import Any, Dict, Optional

from .base import Sink


class InlineSink(Sink):
    name = "inline"

    async def deliver(
        self,
        pdf_bytes: bytes,
        filename: Optional[str] = None,
    ) -> Dict[str, Any]:
        return {"pdfBase64": base64.b64encode(pdf_bytes).decode("utf-8")}

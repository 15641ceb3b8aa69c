"""Page inspection backend using PyMuPDF."""

import json
import logging
from typing import Dict, Any, Tuple

from .base import Backend
from .stamp import open_pdf

logger = logging.getLogger(__name__)


class PageInfoBackend(Backend):
    """Backend for reporting page count and page sizes."""

    SUPPORTED_OPERATIONS = ("page_info",)

    def process(
        self,
        data: bytes,
        operation: str,
        options: Dict[str, str]
    ) -> Tuple[bytes, str, Dict[str, Any]]:
        if not self.supports(operation):
            raise ValueError(f"Operation '{operation}' not supported")

        doc = open_pdf(data)
        try:
            pages = []
            for page_num in range(doc.page_count):
                rect = doc[page_num].rect
                pages.append({
                    "page": page_num + 1,
                    "width": round(rect.width, 2),
                    "height": round(rect.height, 2),
                })
        finally:
            doc.close()

        result = {
            "total_pages": len(pages),
            "pages": pages,
        }

        output_data = json.dumps(result, indent=2).encode("utf-8")
        metadata = {
            "total_pages": str(len(pages)),
        }

        return output_data, "json", metadata

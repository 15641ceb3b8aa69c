"""Base sink interface for delivering stamped documents."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class Sink(ABC):
    """Abstract base class for output sinks."""

    name: str = ""

    @abstractmethod
    async def deliver(
        self,
        pdf_bytes: bytes,
        filename: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Deliver a stamped PDF.

        Args:
            pdf_bytes: The serialized PDF
            filename: Optional name to store the document under

        Returns:
            Response fields to merge into the success body

        Raises:
            UploadError: If the document cannot be delivered
        """
        pass

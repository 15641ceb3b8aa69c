"""Error types raised by the stamp service."""

from typing import Any, Dict, Iterable, List, Optional


class StampError(Exception):
    """Base error with a JSON friendly payload."""

    code = "STAMP_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
        }


class PageSelectionError(StampError, ValueError):
    """Raised when a page expression cannot be parsed or validated."""

    code = "PAGE_SELECTION_ERROR"
    status_code = 400


class InvalidInputError(PageSelectionError):
    code = "INVALID_INPUT"


class InvalidRangeError(PageSelectionError):
    code = "INVALID_RANGE"

    def __init__(self, segment: str):
        self.segment = segment
        super().__init__(
            f'Invalid page range: "{segment}"',
            details={"segment": segment},
        )


class InvalidPageNumberError(PageSelectionError):
    code = "INVALID_PAGE_NUMBER"

    def __init__(self, segment: str):
        self.segment = segment
        super().__init__(
            f'Invalid page number: "{segment}"',
            details={"segment": segment},
        )


class OutOfRangeError(PageSelectionError):
    code = "OUT_OF_RANGE"

    def __init__(self, pages: Iterable[int], total_pages: int):
        self.pages: List[int] = list(pages)
        self.total_pages = total_pages
        listed = ", ".join(str(p) for p in self.pages)
        super().__init__(
            f"Pages out of range (document has {total_pages} pages): {listed}",
            details={"pages": self.pages, "total_pages": total_pages},
        )


class RequestValidationError(StampError, ValueError):
    """Raised when a stamp request is missing fields or carries bad values."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidDocumentError(StampError, ValueError):
    code = "INVALID_PDF"
    status_code = 400


class DocumentTooLargeError(StampError, ValueError):
    code = "FILE_TOO_LARGE"
    status_code = 400


class DocumentFetchError(StampError):
    code = "FETCH_FAILED"
    status_code = 502


class UnsupportedSinkError(StampError, ValueError):
    code = "INVALID_SINK"
    status_code = 400


class UploadError(StampError):
    code = "UPLOAD_FAILED"
    status_code = 502

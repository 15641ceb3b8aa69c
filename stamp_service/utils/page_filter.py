"""Utility functions for page selection and validation."""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..errors import (
    InvalidInputError,
    InvalidPageNumberError,
    InvalidRangeError,
    OutOfRangeError,
)

_RANGE_RE = re.compile(r"\s*([0-9]+)\s*-\s*([0-9]+)\s*")
_NUMBER_RE = re.compile(r"[0-9]+")


def parse_page_expression(expr: str, max_page: Optional[int] = None) -> List[int]:
    """
    Parse a page expression into a sorted list of unique page numbers.

    Args:
        expr: Page expression (e.g., "2-5, 8, 10-12").
              Pages are 1-indexed.
        max_page: Optional ceiling on any page number, checked before a
                  range is expanded.

    Returns:
        Ascending list of page numbers without duplicates

    Raises:
        InvalidInputError: If expr is not a string or is blank
        InvalidRangeError: If a range has start < 1, end < start or end > max_page
        InvalidPageNumberError: If a segment is not a page number >= 1,
                                or exceeds max_page
    """
    if not isinstance(expr, str) or not expr.strip():
        raise InvalidInputError("Page expression must be a non-empty string")

    pages = set()

    for part in expr.split(','):
        part = part.strip()
        match = _RANGE_RE.fullmatch(part)
        if match:
            start = int(match.group(1))
            end = int(match.group(2))
            if start < 1 or end < start or (max_page is not None and end > max_page):
                raise InvalidRangeError(part)
            pages.update(range(start, end + 1))
        else:
            if not _NUMBER_RE.fullmatch(part) or int(part) < 1:
                raise InvalidPageNumberError(part)
            if max_page is not None and int(part) > max_page:
                raise InvalidPageNumberError(part)
            pages.add(int(part))

    return sorted(pages)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking a page set against a document's page count."""

    total_pages: int
    out_of_range: Tuple[int, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.out_of_range

    def raise_for_error(self) -> None:
        if not self.ok:
            raise OutOfRangeError(self.out_of_range, self.total_pages)


def validate_page_set(pages: Iterable[int], total_pages: int) -> ValidationResult:
    """Report every page that falls outside 1..total_pages, in ascending order."""
    if isinstance(total_pages, bool) or not isinstance(total_pages, int) or total_pages < 1:
        raise InvalidInputError("Total page count must be a positive integer")

    invalid = tuple(sorted({p for p in pages if p < 1 or p > total_pages}))
    return ValidationResult(total_pages=total_pages, out_of_range=invalid)

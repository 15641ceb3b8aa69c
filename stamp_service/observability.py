"""Observer hooks for stamp request instrumentation."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional


class StampObserver(ABC):
    """Abstract receiver of named events with structured fields."""

    @abstractmethod
    def event(self, name: str, **fields: Any) -> None:
        """
        Record an event.

        Args:
            name: Event name (e.g., "fetch_done", "request_failed")
            fields: Structured values describing the event
        """
        pass


class NullObserver(StampObserver):
    """Discards all events."""

    def event(self, name: str, **fields: Any) -> None:
        pass


def _format_value(value: Any) -> str:
    # Strings are quoted so values with spaces or '=' stay one field
    if isinstance(value, str):
        return repr(value)
    return str(value)


class LoggingObserver(StampObserver):
    """Writes events as ``name key=value ...`` log lines."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.logger = logger or logging.getLogger("stamp_service.events")
        self.level = level

    def event(self, name: str, **fields: Any) -> None:
        level = logging.WARNING if name.endswith("_failed") else self.level
        if not self.logger.isEnabledFor(level):
            return
        parts = " ".join(
            f"{key}={_format_value(value)}" for key, value in sorted(fields.items())
        )
        self.logger.log(level, f"{name} {parts}".rstrip())

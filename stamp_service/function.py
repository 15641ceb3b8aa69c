"""
Serverless function entry point.

Event: {"body": "{\"pdfUrl\": \"...\", \"text\": \"...\", \"pages\": \"2-5, 8\"}"}
Returns: {"statusCode": 200, "headers": {...}, "body": "{\"pdfBase64\": \"...\"}"}
"""

import asyncio
import base64
import json
import logging
from typing import Any, Callable, Dict, Optional

from .config import get_config
from .errors import StampError
from .observability import LoggingObserver
from .service import StampService, build_service

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any], Any], Dict[str, Any]]

_JSON_HEADERS = {"Content-Type": "application/json"}


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(_JSON_HEADERS),
        "body": json.dumps(body),
    }


def _parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    raw = event.get("body") or "{}"
    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")
    payload = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    return payload


def make_handler(service: StampService) -> Handler:
    """Build a function handler bound to a configured service."""

    def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
        try:
            payload = _parse_body(event or {})
        except ValueError as e:
            return _response(400, {"error": f"Invalid JSON body: {e}", "code": "INVALID_JSON"})

        options = payload.get("options") or {}
        if not isinstance(options, dict):
            return _response(400, {"error": "`options` must be an object", "code": "VALIDATION_ERROR"})

        try:
            result = asyncio.run(
                service.stamp_url(
                    payload.get("pdfUrl"),
                    payload.get("text"),
                    payload.get("pages"),
                    sink=payload.get("sink"),
                    options={str(k): str(v) for k, v in options.items()},
                )
            )
        except StampError as e:
            return _response(e.status_code, {"error": e.message, "code": e.code})
        except Exception as e:
            logger.exception(f"Stamp function failed: {e}")
            return _response(500, {"error": str(e), "code": "PROCESSING_FAILED"})

        return _response(200, result)

    return handler


_handler: Optional[Handler] = None


def handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """Default handler wired from environment configuration on first use."""
    global _handler
    if _handler is None:
        _handler = make_handler(build_service(get_config(), observer=LoggingObserver()))
    return _handler(event, context)

"""Stamp service: fetch, stamp and deliver PDFs."""

import asyncio
import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import httpx

from .backends.base import Backend
from .backends.page_info import PageInfoBackend
from .backends.stamp import StampBackend
from .config import Config
from .errors import (
    DocumentTooLargeError,
    RequestValidationError,
    StampError,
    UnsupportedSinkError,
)
from .fetcher import DocumentFetcher
from .observability import NullObserver, StampObserver
from .sinks.base import Sink
from .sinks.inline import InlineSink
from .sinks.storage import StorageSink
from .utils.page_filter import parse_page_expression

logger = logging.getLogger(__name__)


class StampService:
    """Runs stamp requests against the registered backends and sinks."""

    VERSION = "0.1.0"

    def __init__(
        self,
        config: Config,
        fetcher: DocumentFetcher,
        backends: Sequence[Backend],
        sinks: Sequence[Sink],
        observer: Optional[StampObserver] = None,
    ):
        self.config = config
        self.fetcher = fetcher
        self.backends: List[Backend] = list(backends)
        self.sinks: Dict[str, Sink] = {sink.name: sink for sink in sinks}
        self.observer = observer or NullObserver()

        logger.info(f"Stamp service v{self.VERSION} initialized")
        logger.info(f"Registered {len(self.backends)} backends, sinks: {', '.join(self.sink_names)}")

    @property
    def supported_operations(self) -> List[str]:
        operations = set()
        for backend in self.backends:
            operations.update(backend.SUPPORTED_OPERATIONS)
        return sorted(operations)

    @property
    def sink_names(self) -> List[str]:
        return sorted(self.sinks)

    def find_backend(self, operation: str) -> Optional[Backend]:
        for backend in self.backends:
            if backend.supports(operation):
                return backend
        return None

    def get_sink(self, name: Optional[str] = None) -> Sink:
        name = name or self.config.server.default_sink
        sink = self.sinks.get(name)
        if sink is None:
            raise UnsupportedSinkError(
                f"Sink '{name}' is not available",
                details={"available_sinks": self.sink_names},
            )
        return sink

    async def run(
        self,
        data: bytes,
        operation: str,
        options: Dict[str, str],
    ) -> Tuple[bytes, str, Dict[str, Any]]:
        """Run a backend operation in a worker thread."""
        backend = self.find_backend(operation)
        if backend is None:
            raise RequestValidationError(
                f"Operation '{operation}' is not supported",
                details={"supported_operations": self.supported_operations},
            )
        return await asyncio.to_thread(backend.process, data, operation, options)

    async def stamp_url(
        self,
        pdf_url: str,
        text: str,
        pages: str,
        sink: Optional[str] = None,
        options: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Download the PDF at pdf_url, stamp it and deliver it to a sink."""
        with self._report_failures("validate"):
            if not isinstance(pdf_url, str) or not pdf_url:
                raise RequestValidationError("`pdfUrl` is missing from the payload")
            await self._check_request(text, pages)
            target = self.get_sink(sink)

        with self._report_failures("fetch"):
            self.observer.event("fetch_start", url=pdf_url)
            start_time = time.time()
            data = await self.fetcher.fetch(pdf_url)
            self.observer.event(
                "fetch_done",
                url=pdf_url,
                size=len(data),
                ms=int((time.time() - start_time) * 1000),
            )

        filename = httpx.URL(pdf_url).path.rsplit("/", 1)[-1] or None
        return await self._stamp_and_deliver(data, text, pages, target, options, filename)

    async def stamp_bytes(
        self,
        data: bytes,
        text: str,
        pages: str,
        sink: Optional[str] = None,
        options: Optional[Dict[str, str]] = None,
        filename: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Stamp an already loaded PDF and deliver it to a sink."""
        with self._report_failures("validate"):
            await self._check_request(text, pages)
            if len(data) > self.config.stamp.max_file_size_bytes:
                raise DocumentTooLargeError(
                    f"File exceeds {self.config.stamp.max_file_size_mb}MB limit"
                )
            target = self.get_sink(sink)
        return await self._stamp_and_deliver(data, text, pages, target, options, filename)

    async def _check_request(self, text: str, pages: str) -> None:
        if not isinstance(text, str) or not text.strip():
            raise RequestValidationError("`text` is missing from the payload")
        # Fail before any download when the expression cannot be parsed
        await asyncio.to_thread(
            parse_page_expression, pages, self.config.stamp.max_page_number
        )

    @contextmanager
    def _report_failures(self, stage: str) -> Iterator[None]:
        try:
            yield
        except StampError as e:
            self.observer.event("request_failed", stage=stage, code=e.code, error=e.message)
            raise
        except Exception as e:
            self.observer.event(
                "request_failed", stage=stage, code="PROCESSING_FAILED", error=str(e)
            )
            raise

    async def _stamp_and_deliver(
        self,
        data: bytes,
        text: str,
        pages: str,
        target: Sink,
        options: Optional[Dict[str, str]],
        filename: Optional[str],
    ) -> Dict[str, Any]:
        stamp_options = dict(options or {})
        stamp_options["text"] = text
        stamp_options["pages"] = pages

        with self._report_failures("stamp"):
            start_time = time.time()
            output_data, _, metadata = await self.run(data, "stamp", stamp_options)
            self.observer.event(
                "stamp_done",
                pages=metadata["pages"],
                total_pages=metadata["total_pages"],
                ms=int((time.time() - start_time) * 1000),
            )

        with self._report_failures("sink"):
            result = await target.deliver(output_data, filename)
            self.observer.event("sink_done", sink=target.name, size=len(output_data))

        result["pages"] = [int(p) for p in metadata["pages"].split(",")]
        result["metadata"] = metadata
        return result


def build_service(
    config: Config,
    observer: Optional[StampObserver] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> StampService:
    """Wire a StampService from configuration. The storage sink is added only when configured."""
    sinks: List[Sink] = [InlineSink()]
    if config.storage.enabled:
        sinks.append(StorageSink(config.storage, transport=transport))

    return StampService(
        config=config,
        fetcher=DocumentFetcher(config, transport=transport),
        backends=[
            StampBackend(config.stamp),
            PageInfoBackend(),
        ],
        sinks=sinks,
        observer=observer,
    )

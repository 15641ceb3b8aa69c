"""Tests for document fetching and the stamp service."""

import asyncio
import base64

import httpx
import pytest

from stamp_service.config import Config, StampConfig
from stamp_service.errors import (
    DocumentFetchError,
    DocumentTooLargeError,
    InvalidInputError,
    InvalidRangeError,
    OutOfRangeError,
    RequestValidationError,
    UnsupportedSinkError,
)
from stamp_service.fetcher import DocumentFetcher
from stamp_service.observability import LoggingObserver, StampObserver
from stamp_service.sinks.base import Sink
from stamp_service.service import build_service

from conftest import PDF_URL, FakeRemote, create_test_pdf, page_texts


class TestDocumentFetcher:

    def test_fetch(self, config, remote):
        fetcher = DocumentFetcher(config, transport=remote.transport)
        assert asyncio.run(fetcher.fetch(PDF_URL)) == remote.pdf_bytes

    def test_http_error_status(self, config):
        fetcher = DocumentFetcher(config, transport=FakeRemote(fetch_status=404).transport)
        with pytest.raises(DocumentFetchError) as exc_info:
            asyncio.run(fetcher.fetch(PDF_URL))
        assert "404" in exc_info.value.message
        assert exc_info.value.status_code == 502

    @pytest.mark.parametrize("status", [204, 300, 304])
    def test_non_success_status(self, config, status):
        transport = httpx.MockTransport(lambda request: httpx.Response(status, content=b""))
        fetcher = DocumentFetcher(config, transport=transport)
        with pytest.raises(DocumentFetchError) as exc_info:
            asyncio.run(fetcher.fetch(PDF_URL))
        assert exc_info.value.details == {"status": status}

    def test_connection_error(self, config):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = DocumentFetcher(config, transport=httpx.MockTransport(fail))
        with pytest.raises(DocumentFetchError):
            asyncio.run(fetcher.fetch(PDF_URL))

    @pytest.mark.parametrize("url", ["ftp://example.com/a.pdf", "file:///etc/passwd", "not a url"])
    def test_rejects_non_http_urls(self, config, remote, url):
        fetcher = DocumentFetcher(config, transport=remote.transport)
        with pytest.raises(RequestValidationError):
            asyncio.run(fetcher.fetch(url))

    def test_too_large(self):
        config = Config(stamp=StampConfig(max_file_size_mb=1))
        remote = FakeRemote(pdf_bytes=b"0" * (2 * 1024 * 1024))
        fetcher = DocumentFetcher(config, transport=remote.transport)
        with pytest.raises(DocumentTooLargeError):
            asyncio.run(fetcher.fetch(PDF_URL))


class TestStampService:

    def test_stamp_url_inline(self, service, observer):
        result = asyncio.run(service.stamp_url(PDF_URL, "APPROVED", "1, 3"))

        texts = page_texts(base64.b64decode(result["pdfBase64"]))
        assert "APPROVED" in texts[0]
        assert "APPROVED" not in texts[1]
        assert "APPROVED" in texts[2]
        assert result["pages"] == [1, 3]
        assert result["metadata"]["total_pages"] == "3"
        assert observer.names == ["fetch_start", "fetch_done", "stamp_done", "sink_done"]

    def test_stamp_url_storage(self, storage_service, remote):
        result = asyncio.run(storage_service.stamp_url(PDF_URL, "COPY", "2", sink="storage"))

        assert "pdfBase64" not in result
        assert result["storage"]["key"].endswith("-contract.pdf")
        assert len(remote.uploads) == 1
        assert "COPY" in page_texts(remote.uploads[0].content)[1]

    def test_default_sink_from_config(self, storage_config, remote):
        storage_config.server.default_sink = "storage"
        service = build_service(storage_config, transport=remote.transport)

        result = asyncio.run(service.stamp_url(PDF_URL, "COPY", "1"))
        assert "storage" in result

    def test_storage_sink_not_configured(self, service, remote):
        with pytest.raises(UnsupportedSinkError) as exc_info:
            asyncio.run(service.stamp_url(PDF_URL, "X", "1", sink="storage"))
        assert exc_info.value.details["available_sinks"] == ["inline"]

    def test_invalid_pages_fail_before_fetch(self, service, observer):
        with pytest.raises(InvalidRangeError):
            asyncio.run(service.stamp_url(PDF_URL, "X", "4-2"))
        assert observer.names == ["request_failed"]
        assert observer.events[0][1]["stage"] == "validate"
        assert observer.events[0][1]["code"] == "INVALID_RANGE"

    def test_huge_range_rejected_before_fetch(self, config, observer):
        remote = FakeRemote()
        requests = []

        def handler(request):
            requests.append(request)
            return remote(request)

        service = build_service(config, observer=observer, transport=httpx.MockTransport(handler))
        with pytest.raises(InvalidRangeError) as exc_info:
            asyncio.run(service.stamp_url(PDF_URL, "X", "1-200000000"))
        assert "1-200000000" in exc_info.value.message
        assert requests == []
        assert observer.names == ["request_failed"]

    def test_unknown_sink_reported(self, service, observer):
        with pytest.raises(UnsupportedSinkError):
            asyncio.run(service.stamp_url(PDF_URL, "X", "1", sink="ftp"))
        name, fields = observer.events[-1]
        assert name == "request_failed"
        assert fields["stage"] == "validate"
        assert fields["code"] == "INVALID_SINK"

    def test_unexpected_sink_error_reported(self, service, observer):
        class BrokenSink(Sink):
            name = "inline"

            async def deliver(self, pdf_bytes, filename=None):
                raise RuntimeError("disk full")

        service.sinks["inline"] = BrokenSink()
        with pytest.raises(RuntimeError):
            asyncio.run(service.stamp_url(PDF_URL, "X", "1"))
        name, fields = observer.events[-1]
        assert name == "request_failed"
        assert fields == {"stage": "sink", "code": "PROCESSING_FAILED", "error": "disk full"}

    @pytest.mark.parametrize("pages", ["", None])
    def test_missing_pages(self, service, pages):
        with pytest.raises(InvalidInputError):
            asyncio.run(service.stamp_url(PDF_URL, "X", pages))

    @pytest.mark.parametrize("url", ["", None])
    def test_missing_url(self, service, url):
        with pytest.raises(RequestValidationError):
            asyncio.run(service.stamp_url(url, "X", "1"))

    def test_missing_text(self, service):
        with pytest.raises(RequestValidationError):
            asyncio.run(service.stamp_url(PDF_URL, "", "1"))

    def test_out_of_range_reported(self, service, observer):
        with pytest.raises(OutOfRangeError) as exc_info:
            asyncio.run(service.stamp_url(PDF_URL, "X", "2-5"))
        assert exc_info.value.pages == [4, 5]
        name, fields = observer.events[-1]
        assert name == "request_failed"
        assert fields["stage"] == "stamp"
        assert fields["code"] == "OUT_OF_RANGE"

    def test_fetch_failure_reported(self, config, observer):
        service = build_service(
            config,
            observer=observer,
            transport=FakeRemote(fetch_status=500).transport,
        )
        with pytest.raises(DocumentFetchError):
            asyncio.run(service.stamp_url(PDF_URL, "X", "1"))
        assert observer.events[-1][1]["stage"] == "fetch"

    def test_stamp_bytes(self, service):
        result = asyncio.run(service.stamp_bytes(create_test_pdf(page_count=2), "LOCAL", "2"))
        texts = page_texts(base64.b64decode(result["pdfBase64"]))
        assert "LOCAL" not in texts[0]
        assert "LOCAL" in texts[1]

    def test_run_unknown_operation(self, service):
        with pytest.raises(RequestValidationError):
            asyncio.run(service.run(create_test_pdf(), "extract", {}))

    def test_supported_operations(self, service):
        assert service.supported_operations == ["page_info", "stamp"]
        assert service.sink_names == ["inline"]


class TestLoggingObserver:

    def test_logs_events(self, caplog):
        observer = LoggingObserver()
        with caplog.at_level("INFO", logger="stamp_service.events"):
            observer.event("fetch_done", url=PDF_URL, size=10)
        assert f"fetch_done size=10 url='{PDF_URL}'" in caplog.text

    def test_values_with_spaces_stay_one_field(self, caplog):
        observer = LoggingObserver()
        with caplog.at_level("INFO", logger="stamp_service.events"):
            observer.event("request_failed", error='Invalid page range: "5-3"', stage="validate")
        assert caplog.records[-1].getMessage() == (
            "request_failed error='Invalid page range: \"5-3\"' stage='validate'"
        )

    def test_failures_logged_as_warning(self, caplog):
        observer = LoggingObserver()
        with caplog.at_level("INFO", logger="stamp_service.events"):
            observer.event("request_failed", code="OUT_OF_RANGE")
        assert caplog.records[-1].levelname == "WARNING"

    def test_observer_is_abstract(self):
        with pytest.raises(TypeError):
            StampObserver()

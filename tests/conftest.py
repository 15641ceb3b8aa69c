"""Shared fixtures for stamp service tests."""

import httpx
import pymupdf
import pytest

from stamp_service.config import Config, StorageConfig
from stamp_service.observability import StampObserver
from stamp_service.service import build_service

PDF_URL = "https://docs.example.com/files/contract.pdf"
STORAGE_URL = "https://storage.example.com/v1/buckets/stamps"


def create_test_pdf(page_count=3, width=612, height=792):
    """Create a PDF with a short label on every page."""
    doc = pymupdf.open()
    for i in range(page_count):
        page = doc.new_page(width=width, height=height)
        page.insert_text(pymupdf.Point(72, 72), f"Page {i + 1}", fontsize=12)
    pdf_bytes = doc.tobytes()
    doc.close()
    return pdf_bytes


def page_texts(pdf_bytes):
    """Return the extracted text of every page."""
    doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")
    try:
        return [page.get_text("text") for page in doc]
    finally:
        doc.close()


class RecordingObserver(StampObserver):
    """Collects observer events for assertions."""

    def __init__(self):
        self.events = []

    def event(self, name, **fields):
        self.events.append((name, fields))

    @property
    def names(self):
        return [name for name, _ in self.events]


class FakeRemote:
    """Serves a PDF for GET requests and records storage uploads."""

    def __init__(self, pdf_bytes=None, fetch_status=200, upload_status=200, upload_body=None):
        self.pdf_bytes = pdf_bytes if pdf_bytes is not None else create_test_pdf()
        self.fetch_status = fetch_status
        self.upload_status = upload_status
        self.upload_body = upload_body
        self.uploads = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            if self.fetch_status != 200:
                return httpx.Response(self.fetch_status, content=b"not found")
            return httpx.Response(
                200,
                content=self.pdf_bytes,
                headers={"Content-Type": "application/pdf"},
            )
        if request.method == "PUT":
            self.uploads.append(request)
            if self.upload_body is not None:
                return httpx.Response(self.upload_status, json=self.upload_body)
            return httpx.Response(self.upload_status)
        return httpx.Response(405)

    @property
    def transport(self):
        return httpx.MockTransport(self)


@pytest.fixture
def pdf_bytes():
    return create_test_pdf()


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def storage_config():
    return Config(
        storage=StorageConfig(
            upload_url=STORAGE_URL,
            api_key="test-key",
            key_prefix="stamped/",
            timeout_seconds=5,
        )
    )


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def service(config, remote, observer):
    return build_service(config, observer=observer, transport=remote.transport)


@pytest.fixture
def storage_service(storage_config, remote, observer):
    return build_service(storage_config, observer=observer, transport=remote.transport)

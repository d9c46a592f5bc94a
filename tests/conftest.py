"""Pytest configuration and fixtures."""

import io
import json
import os
from pathlib import Path
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from pypdf import PdfWriter

os.environ.setdefault("AUTH_TOKEN", "test-token")

from app.isdoc_gateway.config import Settings  # noqa: E402
from app.isdoc_gateway.main import create_app  # noqa: E402

TEST_TOKEN = "test-token"

SAMPLE_ISDOC_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<Invoice xmlns="http://isdoc.cz/namespace/2013" version="6.0.1">
  <DocumentType>1</DocumentType>
  <ID>FV-2024-001</ID>
  <UUID>8C1C9D4B-6A7E-4E0B-9E6C-1F1F0A4D2B11</UUID>
  <IssueDate>2024-05-01</IssueDate>
  <LocalCurrencyCode>CZK</LocalCurrencyCode>
  <InvoiceLines>
    <InvoiceLine>
      <ID>1</ID>
      <InvoicedQuantity unitCode="ks">2</InvoicedQuantity>
      <LineExtensionAmount>200.00</LineExtensionAmount>
    </InvoiceLine>
    <InvoiceLine>
      <ID>2</ID>
      <InvoicedQuantity unitCode="h">1</InvoicedQuantity>
      <LineExtensionAmount>500.00</LineExtensionAmount>
    </InvoiceLine>
  </InvoiceLines>
  <Note/>
</Invoice>
"""


class FakeDocument:
    """Document double exposing to_json()."""

    def __init__(self, payload: Any = None, raw: str | None = None):
        self.payload = payload if payload is not None else {"mockData": "test"}
        self.raw = raw

    def to_json(self) -> str:
        if self.raw is not None:
            return self.raw
        return json.dumps(self.payload)


class RaisingDocument:
    """Document double whose to_json() raises."""

    def __init__(self, error: Exception):
        self.error = error

    def to_json(self) -> str:
        raise self.error


class FakeIsdocService:
    """Extraction provider double recording every call."""

    def __init__(self):
        self.has_isdoc_result: bool = True
        self.has_isdoc_error: Exception | None = None
        self.extract_result: Any = FakeDocument()
        self.extract_error: Exception | None = None
        self.has_isdoc_calls: list[bytes] = []
        self.extract_calls: list[bytes] = []

    def has_isdoc(self, pdf_bytes: bytes) -> bool:
        self.has_isdoc_calls.append(pdf_bytes)
        if self.has_isdoc_error is not None:
            raise self.has_isdoc_error
        return self.has_isdoc_result

    def extract_isdoc(self, pdf_bytes: bytes) -> Any:
        self.extract_calls.append(pdf_bytes)
        if self.extract_error is not None:
            raise self.extract_error
        return self.extract_result


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Directory receiving temporary artifacts during a test."""
    directory = tmp_path / "artifacts"
    directory.mkdir()
    return directory


@pytest.fixture
def settings(temp_dir: Path) -> Settings:
    """Settings with a known token and an isolated temp directory."""
    return Settings(
        _env_file=None,
        auth_token=TEST_TOKEN,
        temp_dir=temp_dir,
        extraction_timeout_seconds=5.0,
    )


@pytest.fixture
def fake_isdoc_service() -> FakeIsdocService:
    return FakeIsdocService()


@pytest.fixture
def client(
    settings: Settings, fake_isdoc_service: FakeIsdocService
) -> Generator[TestClient, None, None]:
    """Create a test client for an application using the fake provider."""
    app = create_app(settings=settings, isdoc_service=fake_isdoc_service)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_TOKEN}"}


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """A minimal single-page PDF without attachments."""
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def isdoc_pdf_bytes() -> bytes:
    """A PDF carrying SAMPLE_ISDOC_XML as an embedded .isdoc attachment."""
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    writer.add_attachment("invoice.isdoc", SAMPLE_ISDOC_XML)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-PDF) file bytes for testing."""
    return b"This is not a PDF file"

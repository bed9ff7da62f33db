"""Tests for upload normalization and per-file text acquisition."""

import base64
import io
from unittest.mock import MagicMock, Mock, patch

import pytest
from docx import Document

from core.config import ExtractionConfig, OcrConfig, OcrCredentialsMissing
from extractors.text_acquirer import (
    MIME_DOCX,
    MIME_PDF,
    TextAcquirer,
    build_document,
    decode_payload,
    normalize_mime,
    sanitize_filename,
)
from models.document import RawDocument
from services.errors import OcrServiceError
from services.ocr_space import OcrSpaceClient

NATIVE_PAGE = "2019 Honda Civic LX\n" + "Release notes " * 20


def _mock_pdf(*page_texts):
    pages = []
    for text in page_texts:
        page = Mock()
        page.extract_text.return_value = text
        pages.append(page)
    pdf = MagicMock()
    pdf.__enter__.return_value = pdf
    pdf.pages = pages
    return pdf


def _acquirer(ocr_text="", **kwargs):
    client = Mock()
    client.extract_text.return_value = ocr_text
    return TextAcquirer(ocr_client=client, config=ExtractionConfig(**kwargs)), client


class TestUploadNormalization:
    """Tests for file name, MIME type and payload handling."""

    def test_sanitize_filename(self):
        assert sanitize_filename("Release Form (1).pdf") == "Release_Form_1_.pdf"
        assert sanitize_filename("scan-01.jpg") == "scan-01.jpg"

    def test_sanitize_empty_filename(self):
        assert sanitize_filename(None) == "document"
        assert sanitize_filename("   ") == "document"

    def test_sanitize_long_filename(self):
        assert len(sanitize_filename("a" * 500 + ".pdf")) == 160

    def test_declared_type_wins(self):
        assert normalize_mime("scan.pdf", "Image/PNG") == "image/png"

    def test_type_from_extension(self):
        assert normalize_mime("Release.PDF", None) == MIME_PDF
        assert normalize_mime("scan.jpeg", "application/octet-stream") == "image/jpeg"
        assert normalize_mime("notes.txt", "") == "text/plain"
        assert normalize_mime("bill.docx", None) == MIME_DOCX

    def test_unknown_type(self):
        assert normalize_mime("archive.zip", None) == "application/octet-stream"

    def test_decode_bytes(self):
        assert decode_payload(b"abc") == b"abc"
        assert decode_payload(bytearray(b"abc")) == b"abc"

    def test_decode_base64(self):
        assert decode_payload("aGVsbG8=") == b"hello"

    def test_decode_data_url(self):
        assert decode_payload("data:text/plain;base64,aGVsbG8=") == b"hello"

    def test_decode_bad_base64(self):
        assert decode_payload("abc") == b""

    def test_decode_empty(self):
        assert decode_payload(None) == b""
        assert decode_payload("") == b""

    def test_build_document(self):
        payload = base64.b64encode(b"2019 Honda Civic LX").decode()
        doc = build_document("Release Form.txt", None, payload)
        assert doc.name == "Release_Form.txt"
        assert doc.mime == "text/plain"
        assert doc.payload == b"2019 Honda Civic LX"
        assert doc.doc_type == "unknown"

    def test_build_document_keeps_doc_type(self):
        doc = build_document("a.pdf", "application/pdf", b"%PDF", doc_type="bill_of_sale")
        assert doc.doc_type == "bill_of_sale"


class TestTextAcquirer:
    """Tests for the per-MIME acquisition strategies."""

    def test_plain_text(self):
        acquirer, client = _acquirer()
        result = acquirer.acquire(RawDocument("a.txt", "text/plain", "Arrival Date: 2024/3/7".encode()))
        assert result.text == "Arrival Date: 2024/3/7"
        assert result.mode == "native"
        client.extract_text.assert_not_called()

    def test_docx(self):
        doc = Document()
        doc.add_paragraph("Vehicle Release")
        doc.add_paragraph("2019 Honda Civic LX")
        buf = io.BytesIO()
        doc.save(buf)

        acquirer, _ = _acquirer()
        result = acquirer.acquire(RawDocument("bill.docx", MIME_DOCX, buf.getvalue()))
        assert "Vehicle Release\n2019 Honda Civic LX" in result.text
        assert result.mode == "native"

    def test_corrupt_docx(self):
        acquirer, _ = _acquirer()
        result = acquirer.acquire(RawDocument("bill.docx", MIME_DOCX, b"not a zip"))
        assert result.text == ""
        assert result.mode == "none"

    def test_pdf_native_text_sufficient(self):
        acquirer, client = _acquirer()
        with patch("extractors.text_acquirer.pdfplumber.open", return_value=_mock_pdf(NATIVE_PAGE)):
            result = acquirer.acquire(RawDocument("r.pdf", MIME_PDF, b"%PDF-1.4"))
        assert result.mode == "native"
        assert result.text.startswith("2019 Honda Civic LX Release notes")
        assert "\n" not in result.text
        client.extract_text.assert_not_called()

    def test_pdf_pages_joined(self):
        acquirer, _ = _acquirer()
        pdf = _mock_pdf(NATIVE_PAGE, "Page  two\ntext", None)
        with patch("extractors.text_acquirer.pdfplumber.open", return_value=pdf):
            result = acquirer.acquire(RawDocument("r.pdf", MIME_PDF, b"%PDF-1.4"))
        assert result.text.endswith("\n\nPage two text")

    def test_pdf_page_limit(self):
        acquirer, _ = _acquirer(max_pdf_pages=1)
        with patch("extractors.text_acquirer.pdfplumber.open", return_value=_mock_pdf(NATIVE_PAGE, "second page")):
            result = acquirer.acquire(RawDocument("r.pdf", MIME_PDF, b"%PDF-1.4"))
        assert "second page" not in result.text

    def test_scanned_pdf_uses_ocr(self):
        acquirer, client = _acquirer(ocr_text="2019 Honda Civic LX")
        with patch("extractors.text_acquirer.pdfplumber.open", return_value=_mock_pdf("")):
            result = acquirer.acquire(RawDocument("scan.pdf", MIME_PDF, b"%PDF-1.4"))
        assert result.text == "2019 Honda Civic LX"
        assert result.mode == "ocr"
        client.extract_text.assert_called_once_with(b"%PDF-1.4", MIME_PDF, "scan.pdf")

    def test_short_native_text_is_hybrid(self):
        acquirer, _ = _acquirer(ocr_text="2019 Honda Civic LX")
        with patch("extractors.text_acquirer.pdfplumber.open", return_value=_mock_pdf("VEHICLE RELEASE")):
            result = acquirer.acquire(RawDocument("r.pdf", MIME_PDF, b"%PDF-1.4"))
        assert result.text == "VEHICLE RELEASE\n\n2019 Honda Civic LX"
        assert result.mode == "hybrid"

    def test_unreadable_pdf_falls_back_to_ocr(self):
        acquirer, client = _acquirer(ocr_text="")
        result = acquirer.acquire(RawDocument("r.pdf", MIME_PDF, b"not a pdf"))
        assert result.text == ""
        assert result.mode == "none"
        client.extract_text.assert_called_once()

    def test_image_uses_ocr(self):
        acquirer, _ = _acquirer(ocr_text="VIN 1HGCM82633A004352")
        result = acquirer.acquire(RawDocument("scan.jpg", "image/jpeg", b"\xff\xd8\xff"))
        assert result.text == "VIN 1HGCM82633A004352"
        assert result.mode == "ocr"

    def test_ocr_service_error_degrades(self):
        acquirer, client = _acquirer()
        client.extract_text.side_effect = OcrServiceError("E301: Image parse failed")
        result = acquirer.acquire(RawDocument("scan.png", "image/png", b"\x89PNG"))
        assert result.text == ""
        assert result.mode == "none"

    def test_missing_ocr_key_raises(self):
        client = OcrSpaceClient(config=OcrConfig(api_key=""), session=Mock())
        acquirer = TextAcquirer(ocr_client=client, config=ExtractionConfig())
        with pytest.raises(OcrCredentialsMissing):
            acquirer.acquire(RawDocument("scan.png", "image/png", b"\x89PNG"))

    def test_native_text_never_needs_key(self):
        """Documents that do not need OCR work without a key."""
        client = OcrSpaceClient(config=OcrConfig(api_key=""), session=Mock())
        acquirer = TextAcquirer(ocr_client=client, config=ExtractionConfig())
        result = acquirer.acquire(RawDocument("a.txt", "text/plain", b"hello"))
        assert result.text == "hello"

    def test_unsupported_type(self):
        acquirer, client = _acquirer(ocr_text="should not be used")
        result = acquirer.acquire(RawDocument("a.zip", "application/zip", b"PK"))
        assert result.text == ""
        assert result.mode == "none"
        client.extract_text.assert_not_called()

    def test_empty_payload(self):
        acquirer, _ = _acquirer()
        result = acquirer.acquire(RawDocument("a.txt", "text/plain", b""))
        assert result.text == ""
        assert result.mode == "none"

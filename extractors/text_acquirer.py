"""
Per-file text acquisition.

Chooses a strategy from the file's MIME type:
- text/plain: UTF-8 decode
- DOCX: paragraph text via python-docx
- PDF: native text layer via pdfplumber, OCR added when the layer is unusable
- image/*: OCR only
- anything else: no text

Every failure degrades to empty text except a missing OCR API key, which
is raised so the caller can report the misconfiguration.
"""
import base64
import binascii
import io
import logging
import re
from typing import Optional, Union

import pdfplumber
from docx import Document

from core.config import ExtractionConfig, OcrCredentialsMissing, get_config
from extractors.ocr_strategy import OCRStrategy, TextMode
from models.document import RawDocument, ExtractedText
from services.errors import APIError
from services.ocr_space import OcrSpaceClient

logger = logging.getLogger(__name__)

MIME_PDF = "application/pdf"
MIME_TEXT = "text/plain"
MIME_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MIME_OCTET = "application/octet-stream"

EXTENSION_MIME = (
    (".pdf", MIME_PDF),
    (".png", "image/png"),
    (".jpg", "image/jpeg"),
    (".jpeg", "image/jpeg"),
    (".txt", MIME_TEXT),
    (".docx", MIME_DOCX),
)

MAX_FILENAME_LENGTH = 160


def sanitize_filename(name: Optional[str]) -> str:
    """'Release Form (1).pdf' -> 'Release_Form_1_.pdf'; empty -> 'document'."""
    base = str(name or "").strip() or "document"
    return re.sub(r"[^a-zA-Z0-9._-]+", "_", base)[:MAX_FILENAME_LENGTH]


def normalize_mime(name: Optional[str], declared: Optional[str]) -> str:
    """Use the declared type unless it is missing or octet-stream; else infer from the extension."""
    t = str(declared or "").strip().lower()
    n = str(name or "").strip().lower()
    if t and t != MIME_OCTET:
        return t
    for ext, mime in EXTENSION_MIME:
        if n.endswith(ext):
            return mime
    return MIME_OCTET


def decode_payload(payload: Union[bytes, bytearray, str, None]) -> bytes:
    """Raw bytes as-is; strings are treated as base64 (data-URL prefixes allowed)."""
    if payload is None:
        return b""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)

    raw = str(payload).strip()
    if raw.startswith("data:") and "," in raw:
        raw = raw.split(",", 1)[1]
    if not raw:
        return b""
    try:
        return base64.b64decode(raw, validate=False)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Undecodable base64 payload: {e}")
        return b""


def build_document(
    name: Optional[str],
    declared_type: Optional[str],
    payload: Union[bytes, bytearray, str, None],
    doc_type: Optional[str] = None,
) -> RawDocument:
    """Normalize one upload into a RawDocument."""
    clean_name = sanitize_filename(name)
    return RawDocument(
        name=clean_name,
        mime=normalize_mime(clean_name, declared_type),
        payload=decode_payload(payload),
        doc_type=str(doc_type or "").strip() or "unknown",
    )


class TextAcquirer:
    """Extracts text from one RawDocument."""

    def __init__(
        self,
        ocr_client: Optional[OcrSpaceClient] = None,
        config: Optional[ExtractionConfig] = None,
    ):
        self.config = config or get_config().extraction
        self._ocr_client = ocr_client
        self.strategy = OCRStrategy(min_native_chars=self.config.min_native_text_chars)

    @property
    def ocr_client(self) -> OcrSpaceClient:
        if self._ocr_client is None:
            self._ocr_client = OcrSpaceClient()
        return self._ocr_client

    def extract_text_from_txt(self, payload: bytes) -> str:
        return payload.decode("utf-8", errors="replace")

    def extract_text_from_docx(self, payload: bytes) -> str:
        try:
            doc = Document(io.BytesIO(payload))
            return "\n".join(p.text for p in doc.paragraphs).strip()
        except Exception as e:
            logger.warning(f"DOCX text extraction failed: {e}")
            return ""

    def extract_text_from_pdf(self, payload: bytes) -> str:
        """Native text layer, whitespace-collapsed per page, pages joined by blank lines."""
        parts = []
        try:
            with pdfplumber.open(io.BytesIO(payload)) as pdf:
                for page in pdf.pages[:self.config.max_pdf_pages]:
                    page_text = re.sub(r"\s+", " ", page.extract_text() or "").strip()
                    if page_text:
                        parts.append(page_text)
        except Exception as e:
            logger.warning(f"PDF text extraction failed: {e}")
            return ""
        return "\n\n".join(parts).strip()

    def ocr(self, document: RawDocument) -> str:
        """OCR a document; service failures degrade to empty text."""
        try:
            return self.ocr_client.extract_text(document.payload, document.mime, document.name)
        except OcrCredentialsMissing:
            raise
        except APIError as e:
            logger.warning(f"OCR failed for {document.name}: {e}")
            return ""

    def acquire(self, document: RawDocument) -> ExtractedText:
        """Run the strategy for the document's MIME type."""
        result = ExtractedText(name=document.name, mime=document.mime)
        if not document.payload:
            return result

        lower_name = document.name.lower()
        try:
            if document.mime == MIME_TEXT or lower_name.endswith(".txt"):
                result.text = self.extract_text_from_txt(document.payload)
                result.mode = TextMode.NATIVE.value

            elif document.mime == MIME_DOCX or lower_name.endswith(".docx"):
                result.text = self.extract_text_from_docx(document.payload)
                result.mode = TextMode.NATIVE.value

            elif document.mime == MIME_PDF:
                native = self.extract_text_from_pdf(document.payload)
                use_ocr, reason = self.strategy.should_use_ocr(native)
                if not use_ocr:
                    result.text = native
                    result.mode = TextMode.NATIVE.value
                else:
                    logger.info(f"OCR needed for {document.name}: {reason}")
                    ocr_text = self.ocr(document)
                    result.text = "\n\n".join(t.strip() for t in (native, ocr_text) if t and t.strip())
                    result.mode = TextMode.HYBRID.value if native.strip() else TextMode.OCR.value

            elif document.mime.startswith("image/"):
                result.text = self.ocr(document)
                result.mode = TextMode.OCR.value

            else:
                logger.info(f"No text strategy for {document.name} ({document.mime})")

        except OcrCredentialsMissing:
            raise
        except Exception as e:
            logger.warning(f"Text acquisition failed for {document.name}: {e}")
            result.text = ""

        if not result.has_text:
            result.text = ""
            result.mode = TextMode.NONE.value
        return result

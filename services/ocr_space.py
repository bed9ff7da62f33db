"""OCR.space API client service."""

import base64
import logging
from typing import Optional, Union

import requests

from core.config import OcrConfig, OcrCredentialsMissing, get_config
from services.errors import OcrServiceError

logger = logging.getLogger(__name__)


class OcrSpaceClient:
    """
    Sends one file per request to OCR.space and returns the recognized text.

    PDFs are sent with filetype=PDF so the service rasterizes every page;
    images go as-is. Page texts are joined with blank lines.
    """

    def __init__(self, config: Optional[OcrConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or get_config().ocr
        self._session = session or requests.Session()

    def _require_key(self) -> str:
        key = (self.config.api_key or "").strip()
        if not key:
            raise OcrCredentialsMissing("Missing OCR_SPACE_API_KEY environment variable")
        return key

    def _build_form(self, payload: Union[bytes, str], mime: str, name: str) -> dict:
        if isinstance(payload, bytes):
            encoded = base64.b64encode(payload).decode("ascii")
        else:
            encoded = payload.strip()

        form = {
            "apikey": self._require_key(),
            "language": self.config.language,
            "detectOrientation": "true" if self.config.detect_orientation else "false",
            "isOverlayRequired": "false",
            "base64Image": f"data:{mime};base64,{encoded}",
        }
        if mime == "application/pdf" or (name or "").lower().endswith(".pdf"):
            form["filetype"] = "PDF"
        return form

    def extract_text(self, payload: Union[bytes, str], mime: str, name: str = "") -> str:
        """
        OCR a file.

        Args:
            payload: Raw file bytes or an already base64-encoded string
            mime: Normalized MIME type of the file
            name: File name, used to detect PDFs without a MIME type

        Returns:
            Recognized text, or "" when the service found nothing

        Raises:
            OcrCredentialsMissing: No API key configured
            OcrServiceError: Transport failure, non-2xx status or service error message
        """
        form = self._build_form(payload, mime, name)

        try:
            response = self._session.post(
                self.config.endpoint,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded; charset=UTF-8"},
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise OcrServiceError(f"OCR request failed: {e}") from e

        if not response.ok:
            raise OcrServiceError(response.text or f"OCR request failed ({response.status_code})")

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            return ""

        error = data.get("ErrorMessage")
        if isinstance(error, list):
            error = "; ".join(str(e) for e in error if e)
        if error and str(error).strip():
            raise OcrServiceError(str(error))

        texts = []
        for result in data.get("ParsedResults") or []:
            if isinstance(result, dict):
                text = str(result.get("ParsedText") or "").strip()
                if text:
                    texts.append(text)

        combined = "\n\n".join(texts).strip()
        logger.info(f"OCR returned {len(combined)} chars for {name or mime}")
        return combined

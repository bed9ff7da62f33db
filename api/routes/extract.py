"""Document extraction and upstream payload merge endpoints."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.config import ConfigurationError, get_config
from core.logging_config import generate_run_id
from extractors.field_resolver import extract_payload_output
from services.orchestrator import ExtractionOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


# ----- Pydantic Models -----


class UploadedFile(BaseModel):
    """One uploaded file, base64-encoded."""

    name: Optional[str] = None
    type: Optional[str] = None
    base64: Optional[str] = None
    docType: Optional[str] = None


class ExtractDocumentsRequest(BaseModel):
    files: List[UploadedFile] = []


class VehicleOut(BaseModel):
    vin: str = ""
    year: str = ""
    make: str = ""
    model: str = ""


class AddressOut(BaseModel):
    """Pickup address breakdown."""

    number: str = ""
    street: str = ""
    unit: str = ""
    area: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""
    country: str = ""


class FileOut(BaseModel):
    name: str
    type: str
    docType: str
    text: str


class ExtractDocumentsResponse(BaseModel):
    """Structured extraction result."""

    combined_text: str
    vehicle: VehicleOut
    pickup_location: Optional[AddressOut] = None
    files: List[FileOut]
    labels: Dict[str, str] = {}
    parties: Dict[str, Any] = {}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


@router.post("/extract-documents", response_model=ExtractDocumentsResponse)
def extract_documents(body: ExtractDocumentsRequest, request: Request):
    """
    Extract vehicle and pickup data from uploaded release forms.

    Files are processed in order; a file that yields no text still
    appears in `files` with empty text.
    """
    if not body.files:
        return _error(400, "Missing files")

    run_id = getattr(request.state, "request_id", None) or generate_run_id()
    uploads = [f.model_dump() for f in body.files]

    try:
        orchestrator = ExtractionOrchestrator(config=get_config())
        result = orchestrator.extract(uploads, run_id=run_id)
    except ConfigurationError as e:
        logger.error(f"Extraction aborted by configuration error: {e}")
        return _error(500, str(e))
    except Exception as e:
        logger.exception(f"Extraction failed: {e}")
        return _error(500, str(e) or "Unknown error")

    return result.to_dict()


@router.post("/merge-extractions")
def merge_extractions(payload: Any = Body(...)):
    """
    Merge an upstream extraction response into one record.

    Accepts a list of wrapper objects (`{"output": {...}}`), bare records
    or text items, or a single object. The first non-blank value per key
    wins and nested objects are merged the same way.
    """
    merged = extract_payload_output(payload)
    if merged is None:
        return _error(400, "Unsupported payload")
    return {"output": merged}

"""Services for release-form document extraction."""

from services.errors import APIError, OcrServiceError, VinDecodeError
from services.ocr_space import OcrSpaceClient
from services.vin_decoder import VinDecoderClient

__all__ = [
    # Errors
    "APIError",
    "OcrServiceError",
    "VinDecodeError",
    # OCR.space
    "OcrSpaceClient",
    # NHTSA vPIC
    "VinDecoderClient",
]

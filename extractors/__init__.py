"""Text acquisition and field extraction for vehicle release forms."""

from extractors.address_parser import (
    compose_address,
    parse_address,
    parse_address_match,
    validate_breakdown,
)
from extractors.field_extractor import (
    FieldExtractor,
    extract_vehicle_ymm,
    extract_vehicle_ymm_near_vin,
    has_vehicle_ymm,
)
from extractors.field_resolver import classify_payload, merge_payloads
from extractors.location_classifier import PickupLocationResolver, resolve_pickup_location
from extractors.ocr_strategy import OCRStrategy, TextMode, needs_ocr
from extractors.postal import (
    infer_province_from_postal,
    is_valid_postal_code,
    normalize_postal_code,
    normalize_province,
)
from extractors.text_acquirer import TextAcquirer, build_document, normalize_mime, sanitize_filename
from extractors.vin import compute_check_digit, extract_vin, is_valid_vin

__all__ = [
    # Addresses
    "parse_address",
    "parse_address_match",
    "compose_address",
    "validate_breakdown",
    "normalize_postal_code",
    "is_valid_postal_code",
    "normalize_province",
    "infer_province_from_postal",
    # Vehicle fields
    "FieldExtractor",
    "extract_vehicle_ymm",
    "extract_vehicle_ymm_near_vin",
    "has_vehicle_ymm",
    "extract_vin",
    "is_valid_vin",
    "compute_check_digit",
    # Pickup location
    "PickupLocationResolver",
    "resolve_pickup_location",
    # Text acquisition
    "OCRStrategy",
    "TextMode",
    "needs_ocr",
    "TextAcquirer",
    "build_document",
    "normalize_mime",
    "sanitize_filename",
    # Payload merge
    "classify_payload",
    "merge_payloads",
]

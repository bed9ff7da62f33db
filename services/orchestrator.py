"""
Extraction orchestrator for uploaded release-form documents.

Flow:
1. Normalize each upload (name, MIME type, payload bytes)
2. Acquire text per file, in upload order
3. Join non-empty texts with blank lines into the combined text
4. Extract VIN, year/make/model, labeled fields and dealership parties
5. Decode the VIN to fill missing year/make/model (never overwriting)
6. Resolve the pickup location
"""

from typing import Any, Iterable, Mapping, Optional, Union

from core.config import AppConfig, get_config
from core.logging_config import LogContext, generate_run_id, get_logger
from extractors.field_extractor import (
    FieldExtractor,
    extract_vehicle_ymm,
    extract_vehicle_ymm_near_vin,
)
from extractors.location_classifier import PickupLocationResolver
from extractors.text_acquirer import TextAcquirer, build_document
from extractors.vin import extract_vin
from models.document import ExtractionResult, FileResult, LabeledFields, RawDocument
from models.vehicle import VehicleRecord
from services.errors import APIError
from services.ocr_space import OcrSpaceClient
from services.vin_decoder import VinDecoderClient

logger = get_logger(__name__)

Upload = Union[RawDocument, Mapping[str, Any]]


def _first_non_blank(*values: str) -> str:
    for value in values:
        if value and value.strip():
            return value.strip()
    return ""


def assemble_vehicle(text: str, vin: str, labels: Optional[LabeledFields] = None) -> VehicleRecord:
    """
    Pick year/make/model per field from the first year/make/model line,
    then the line nearest the VIN. Labeled Year:/Make:/Model: values only
    fill fields both left blank.
    """
    labels = labels or LabeledFields()
    whole = extract_vehicle_ymm(text)
    near = extract_vehicle_ymm_near_vin(text, vin) if vin else VehicleRecord()

    return VehicleRecord(
        vin=vin,
        year=_first_non_blank(whole.year, near.year, labels.year),
        make=_first_non_blank(whole.make, near.make, labels.make),
        model=_first_non_blank(whole.model, near.model, labels.model),
    )


class ExtractionOrchestrator:
    """Runs a full extraction request over a list of uploads."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        acquirer: Optional[TextAcquirer] = None,
        vin_decoder: Optional[VinDecoderClient] = None,
        resolver: Optional[PickupLocationResolver] = None,
        decode_vin: Optional[bool] = None,
    ):
        self.config = config or get_config()
        self._acquirer = acquirer
        self._vin_decoder = vin_decoder
        self.resolver = resolver or PickupLocationResolver(self.config.extraction)
        self.decode_vin = self.config.vin_decode.enabled if decode_vin is None else decode_vin

    @property
    def acquirer(self) -> TextAcquirer:
        """Lazy-load the text acquirer."""
        if self._acquirer is None:
            self._acquirer = TextAcquirer(
                ocr_client=OcrSpaceClient(self.config.ocr),
                config=self.config.extraction,
            )
        return self._acquirer

    @property
    def vin_decoder(self) -> VinDecoderClient:
        """Lazy-load the VIN decoder."""
        if self._vin_decoder is None:
            self._vin_decoder = VinDecoderClient(self.config.vin_decode)
        return self._vin_decoder

    @staticmethod
    def to_document(upload: Upload) -> RawDocument:
        if isinstance(upload, RawDocument):
            return upload
        payload = upload.get("base64")
        if payload is None:
            payload = upload.get("bytes")
        return build_document(
            name=upload.get("name"),
            declared_type=upload.get("type") or upload.get("mime"),
            payload=payload,
            doc_type=upload.get("docType") or upload.get("doc_type"),
        )

    def decode_missing(self, vehicle: VehicleRecord) -> VehicleRecord:
        """Fill blank year/make/model from the VIN registry; failures leave the vehicle as is."""
        if not self.decode_vin or not vehicle.vin or vehicle.is_complete:
            return vehicle
        try:
            decoded = self.vin_decoder.decode(vehicle.vin)
        except APIError as e:
            logger.warning(f"VIN decode failed for {vehicle.vin}: {e}")
            return vehicle
        if decoded is None:
            return vehicle
        return vehicle.fill_missing(decoded)

    def extract(self, uploads: Iterable[Upload], run_id: Optional[str] = None) -> ExtractionResult:
        """
        Extract structured data from uploaded documents.

        Args:
            uploads: RawDocuments or dicts with name/type/base64/docType
            run_id: Correlation id for logs; generated when omitted

        Returns:
            ExtractionResult; per-file failures show up as empty text

        Raises:
            OcrCredentialsMissing: OCR was needed but no API key is configured
        """
        with LogContext(run_id=run_id or generate_run_id()):
            files = []
            texts = []

            for upload in uploads:
                if upload is None:
                    continue
                document = self.to_document(upload)
                with LogContext(document_name=document.name, document_type=document.doc_type):
                    extracted = self.acquirer.acquire(document)
                    logger.info(f"Acquired {len(extracted.text)} chars ({extracted.mode}) from {document.size} bytes")

                files.append(FileResult(
                    name=document.name,
                    type=document.mime,
                    docType=document.doc_type,
                    text=extracted.text,
                ))
                if extracted.has_text:
                    texts.append(extracted.text.strip())

            combined_text = "\n\n".join(texts)

            vin = extract_vin(combined_text)
            labels = FieldExtractor.labeled_fields(combined_text)
            vehicle = assemble_vehicle(combined_text, vin, labels)
            vehicle = self.decode_missing(vehicle)

            selling, buying = FieldExtractor.parties(combined_text)
            pickup = self.resolver.resolve(combined_text)

            logger.info(
                f"Extracted vin={vehicle.vin or '-'} ymm={vehicle.year} {vehicle.make} {vehicle.model} "
                f"pickup={'yes' if pickup else 'no'} from {len(files)} file(s)"
            )

            return ExtractionResult(
                combined_text=combined_text,
                vehicle=vehicle,
                pickup_location=pickup,
                files=files,
                labels=labels,
                selling_dealership=selling,
                buying_dealership=buying,
            )


def extract_documents(uploads: Iterable[Upload], config: Optional[AppConfig] = None) -> ExtractionResult:
    """Convenience function for a one-off extraction."""
    return ExtractionOrchestrator(config=config).extract(uploads)

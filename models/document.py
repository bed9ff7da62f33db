"""Data models for uploaded documents and extraction results."""
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any

from models.vehicle import VehicleRecord, AddressBreakdown, DealershipParty


@dataclass(frozen=True)
class RawDocument:
    """A single uploaded file. Immutable; discarded after extraction."""
    name: str
    mime: str
    payload: bytes
    doc_type: str = "unknown"

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass
class ExtractedText:
    """Text recovered from one document. Empty text is a valid result."""
    name: str
    mime: str
    text: str = ""
    mode: str = "none"  # native, ocr, hybrid, none

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


@dataclass
class FileResult:
    """Per-file entry of the extraction response."""
    name: str
    type: str
    docType: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class LabeledFields:
    """Values read from explicit labels on the form."""
    transaction_id: str = ""
    release_form_number: str = ""
    arrival_date: str = ""
    odometer_km: str = ""
    year: str = ""
    make: str = ""
    model: str = ""
    color: str = ""
    transmission: str = ""
    phone: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class ExtractionResult:
    """Structured result for one extraction request."""
    combined_text: str
    vehicle: VehicleRecord
    pickup_location: Optional[AddressBreakdown] = None
    files: List[FileResult] = field(default_factory=list)
    labels: LabeledFields = field(default_factory=LabeledFields)
    selling_dealership: Optional[DealershipParty] = None
    buying_dealership: Optional[DealershipParty] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON response shape."""
        parties = {}
        if self.selling_dealership and not self.selling_dealership.is_empty:
            parties["selling_dealership"] = self.selling_dealership.to_dict()
        if self.buying_dealership and not self.buying_dealership.is_empty:
            parties["buying_dealership"] = self.buying_dealership.to_dict()

        return {
            "combined_text": self.combined_text,
            "vehicle": self.vehicle.to_dict(),
            "pickup_location": self.pickup_location.to_dict() if self.pickup_location else None,
            "files": [f.to_dict() for f in self.files],
            "labels": self.labels.to_dict(),
            "parties": parties,
        }

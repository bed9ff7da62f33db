"""Data models for vehicle release-form extraction."""
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


@dataclass
class VehicleRecord:
    """Vehicle identity recovered from a release form."""
    vin: str = ""
    year: str = ""
    make: str = ""
    model: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.year.strip() and self.make.strip() and self.model.strip())

    def fill_missing(self, other: "VehicleRecord") -> "VehicleRecord":
        """Return a copy where blank fields are taken from ``other``."""
        return VehicleRecord(
            vin=self.vin or other.vin,
            year=self.year or other.year,
            make=self.make or other.make,
            model=self.model or other.model,
        )

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class AddressBreakdown:
    """Canonical decomposition of a Canadian (or fallback) street address."""
    number: str = ""
    street: str = ""
    unit: str = ""
    area: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""
    country: str = "Canada"

    @property
    def line1(self) -> str:
        return " ".join(p for p in (self.number, self.street) if p).strip()

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class AddressCandidate:
    """A parsed address match found while disambiguating pickup locations."""
    breakdown: AddressBreakdown
    offset: int
    score: int = 0
    raw_match: str = ""


@dataclass
class DealershipParty:
    """Selling or buying dealership block from a release form."""
    name: str = ""
    phone: str = ""
    address: str = ""
    breakdown: Optional[AddressBreakdown] = None

    @property
    def is_empty(self) -> bool:
        return not (self.name or self.phone or self.address)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "breakdown": self.breakdown.to_dict() if self.breakdown else None,
        }

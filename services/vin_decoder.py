"""NHTSA vPIC VIN decoder service."""

import logging
import re
from typing import Optional
from urllib.parse import quote

import requests

from core.config import VinDecodeConfig, get_config
from models.vehicle import VehicleRecord
from services.errors import VinDecodeError

logger = logging.getLogger(__name__)

VIN_RE = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")


class VinDecoderClient:
    """Looks up year/make/model for a VIN in the public NHTSA registry."""

    def __init__(self, config: Optional[VinDecodeConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or get_config().vin_decode
        self._session = session or requests.Session()

    def decode(self, vin: str) -> Optional[VehicleRecord]:
        """
        Decode a VIN.

        Returns:
            VehicleRecord with whatever the registry knows, or None when the
            VIN is malformed or the registry has nothing for it

        Raises:
            VinDecodeError: Transport failure or non-2xx status
        """
        v = (vin or "").strip().upper()
        if not VIN_RE.match(v):
            return None

        url = f"{self.config.base_url.rstrip('/')}/decodevinvaluesextended/{quote(v)}"
        try:
            response = self._session.get(url, params={"format": "json"}, timeout=self.config.timeout)
        except requests.RequestException as e:
            raise VinDecodeError(f"VIN decode request failed: {e}") from e

        if not response.ok:
            raise VinDecodeError(f"VIN decode failed ({response.status_code})")

        try:
            data = response.json()
        except ValueError:
            return None

        results = data.get("Results") if isinstance(data, dict) else None
        first = results[0] if isinstance(results, list) and results else None
        if not isinstance(first, dict):
            return None

        year = str(first.get("ModelYear") or "").strip()
        make = str(first.get("Make") or "").strip()
        model = str(first.get("Model") or "").strip()
        if not year and not make and not model:
            return None

        logger.info(f"VIN {v} decoded: {year} {make} {model}")
        return VehicleRecord(vin=v, year=year, make=make, model=model)

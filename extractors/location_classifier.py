"""
Pickup Location Resolver

Finds the vehicle pickup address in release-form text. Release forms
usually print several complete addresses (seller, buyer, dealership,
pickup yard), so every plausible match is collected and scored by the
words that precede it.

Key rules:
- A "PICKUP LOCATION" heading narrows the first, strict search to the
  text right after it
- Otherwise every address in the document is a candidate
- Candidates near pickup/location wording win; seller and dealership
  context counts against a candidate
- Ties keep the earliest candidate
"""

import re
import logging
from typing import Optional, List

from core.config import ExtractionConfig
from extractors.address_parser import PICKUP_HEADING_RE, parse_address_match, validate_breakdown
from models.vehicle import AddressBreakdown, AddressCandidate

logger = logging.getLogger(__name__)


_CITY = r"[A-Za-zÀ-ÿ .'-]{2,50}"
_PROVINCE = r"[A-Za-z]{2}|[A-Za-zÀ-ÿ .'-]{3,30}"
_POSTAL = r"[A-Z]\d[A-Z]\s?\d[A-Z]\d"


class PickupLocationResolver:
    """
    Resolves the pickup address from combined document text.

    Strategies, in order:
    1. Strict "number street, city, province postal" match inside the
       pickup heading window (or the whole text when there is no heading)
    2. Scan of the whole text with strict and loose grammars, scored by
       the preceding context
    """

    STRICT_PATTERN = re.compile(
        rf"(\b\d{{1,6}}[A-Za-z]?\s+[^\n,]{{3,90}}),\s*({_CITY}),\s*({_PROVINCE})\s*,?\s*({_POSTAL})\b",
        re.IGNORECASE,
    )

    # Comma-delimited throughout
    SCAN_STRICT = re.compile(
        rf"\b(\d{{1,6}}[A-Za-z]?)\s+([^\n,]{{3,90}}?)\s*,\s*({_CITY})\s*,\s*({_PROVINCE})\s*,?\s*({_POSTAL})\b",
        re.IGNORECASE,
    )
    # "City Prov Postal" without commas after the city
    SCAN_LOOSE = re.compile(
        rf"\b(\d{{1,6}}[A-Za-z]?)\s+([^\n,]{{3,90}}?)\s*,\s*({_CITY})\s*[,\s]+({_PROVINCE})\s+({_POSTAL})\b",
        re.IGNORECASE,
    )

    # (pattern, weight) applied to the lower-cased text before a candidate
    CONTEXT_WEIGHTS = [
        (re.compile(r"\bpick\s*-?up\b|\bpickup\b|\bvehicle\s+location\b|\blocation\b"), 4),
        (re.compile(r"\bdrop\s*-?off\b|\bdropoff\b"), 1),
        (re.compile(r"\bseller\b|\bdealership\b|\bdealer\b|\bselling\b"), -3),
        (re.compile(r"\bbuyer\b"), -1),
    ]

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or ExtractionConfig()

    def heading_window(self, text: str) -> str:
        """Text following a PICKUP LOCATION heading, or the whole text."""
        match = PICKUP_HEADING_RE.search(text)
        if not match:
            return text
        return text[match.end():match.end() + self.config.pickup_window_chars]

    def strict_match(self, text: str) -> Optional[AddressBreakdown]:
        match = self.STRICT_PATTERN.search(text)
        if not match:
            return None
        return parse_address_match(*match.groups())

    def score_context(self, context: str) -> int:
        """Sum the weights of every keyword group mentioned in context."""
        lowered = (context or "").lower()
        return sum(weight for pattern, weight in self.CONTEXT_WEIGHTS if pattern.search(lowered))

    def candidates(self, text: str) -> List[AddressCandidate]:
        """Every parseable address match in the text, scored, in document order."""
        found = []
        seen = set()
        for pattern in (self.SCAN_STRICT, self.SCAN_LOOSE):
            for match in pattern.finditer(text):
                number, street, city, province, postal = match.groups()
                breakdown = parse_address_match(f"{number} {street}", city, province, postal)
                if breakdown is None:
                    continue

                key = (match.start(), breakdown.line1, breakdown.postal_code)
                if key in seen:
                    continue
                seen.add(key)

                start = match.start()
                context = text[max(0, start - self.config.context_window_chars):start]
                found.append(AddressCandidate(
                    breakdown=breakdown,
                    offset=start,
                    score=self.score_context(context),
                    raw_match=match.group(0),
                ))

        found.sort(key=lambda c: c.offset)
        return found

    def resolve(self, text: str) -> Optional[AddressBreakdown]:
        """
        Return the pickup address breakdown, or None.

        Args:
            text: Combined text of all uploaded documents

        Returns:
            AddressBreakdown of the best candidate
        """
        if not text or not text.strip():
            return None

        direct = self.strict_match(self.heading_window(text))
        if direct:
            logger.debug(f"Pickup location from strict match: {direct.line1}, {direct.city}")
            self._warn_problems(direct)
            return direct

        best = None
        for candidate in self.candidates(text):
            logger.debug(
                f"Pickup candidate at {candidate.offset}: {candidate.raw_match!r} score={candidate.score}"
            )
            if best is None or candidate.score > best.score:
                best = candidate

        if best is None:
            logger.info("No pickup location found")
            return None
        self._warn_problems(best.breakdown)
        return best.breakdown

    def _warn_problems(self, breakdown: AddressBreakdown) -> None:
        for problem in validate_breakdown(breakdown):
            logger.warning(f"Pickup location {breakdown.city or '?'}: {problem}")


def resolve_pickup_location(text: str) -> Optional[AddressBreakdown]:
    """Convenience function to resolve a pickup location."""
    return get_pickup_resolver().resolve(text)


# Singleton instance
_pickup_resolver = None


def get_pickup_resolver() -> PickupLocationResolver:
    """Get or create the pickup resolver singleton."""
    global _pickup_resolver
    if _pickup_resolver is None:
        _pickup_resolver = PickupLocationResolver()
    return _pickup_resolver

"""
VIN discovery and validation.

Candidates are repaired for common OCR substitutions (I->1, O/Q->0) and
then accepted only if the ISO 3779 check digit at position 9 matches.
A candidate that fails the check digit is discarded, never returned as a
best effort.
"""
import logging
import re
from types import MappingProxyType
from typing import Optional, Iterator

logger = logging.getLogger(__name__)


VIN_LENGTH = 17
VIN_ALPHABET_RE = re.compile(r'^[A-HJ-NPR-Z0-9]{17}$')

TRANSLITERATION = MappingProxyType({
    'A': 1, 'B': 2, 'C': 3, 'D': 4, 'E': 5, 'F': 6, 'G': 7, 'H': 8,
    'J': 1, 'K': 2, 'L': 3, 'M': 4, 'N': 5, 'P': 7, 'R': 9,
    'S': 2, 'T': 3, 'U': 4, 'V': 5, 'W': 6, 'X': 7, 'Y': 8, 'Z': 9,
})

WEIGHTS = (8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2)

# "VIN" label followed by up to 10 separator characters
LABELED_VIN_RE = re.compile(r'\bVIN\b[^A-Z0-9]{0,10}([A-Z0-9][A-Z0-9\s\-]{16,40})', re.IGNORECASE)
BARE_TOKEN_RE = re.compile(r'\b[A-Z0-9]{17}\b', re.IGNORECASE)
# Overlapping runs of 17 characters that start and end on token boundaries
LOOSE_RE = re.compile(
    r'(?<![A-Z0-9])(?=((?:[A-Z0-9][\s\-]*){16}[A-Z0-9])(?![A-Z0-9]))', re.IGNORECASE
)


def repair_vin(candidate: str) -> str:
    """Uppercase, drop separators and map I->1, O/Q->0."""
    if not candidate:
        return ""
    compact = re.sub(r'[^A-Z0-9]', '', str(candidate).upper())
    return compact.replace('I', '1').replace('O', '0').replace('Q', '0')


def _transliterate(char: str) -> Optional[int]:
    if char.isdigit():
        return int(char)
    return TRANSLITERATION.get(char)


def compute_check_digit(vin: str) -> Optional[str]:
    """
    Compute the ISO 3779 check digit for a 17-character VIN.

    Position 9 is weighted 0, so its own value never affects the result.
    Returns '0'-'9' or 'X', or None if the VIN is not in the VIN alphabet.
    """
    v = (vin or '').upper()
    if not VIN_ALPHABET_RE.match(v):
        return None

    total = 0
    for char, weight in zip(v, WEIGHTS):
        value = _transliterate(char)
        if value is None:
            return None
        total += value * weight

    remainder = total % 11
    return 'X' if remainder == 10 else str(remainder)


def is_valid_vin(candidate: str) -> bool:
    """True if the repaired candidate is a structurally valid VIN with a matching check digit."""
    vin = repair_vin(candidate)
    if len(vin) != VIN_LENGTH or not VIN_ALPHABET_RE.match(vin):
        return False
    if not re.search(r'\d', vin):
        return False
    expected = compute_check_digit(vin)
    return expected is not None and vin[8] == expected


def _candidates(text: str) -> Iterator[tuple]:
    """Yield (strategy, candidate) in priority order."""
    labeled = LABELED_VIN_RE.search(text)
    if labeled:
        # The capture may run past the VIN into following tokens
        yield 'labeled', repair_vin(labeled.group(1))[:VIN_LENGTH]

    for match in BARE_TOKEN_RE.finditer(text):
        yield 'bare', match.group(0)

    for match in LOOSE_RE.finditer(text):
        yield 'loose', match.group(1)


def extract_vin(text: str) -> str:
    """
    Find the first valid VIN in text.

    Order: labeled ("VIN: ..."), bare 17-character tokens, then loosely
    spaced 17-character runs. Returns "" if nothing validates.
    """
    if not text:
        return ""

    for strategy, candidate in _candidates(text.upper()):
        vin = repair_vin(candidate)
        if is_valid_vin(vin):
            logger.debug(f"VIN found via {strategy} match: {vin}")
            return vin

    return ""


def find_vin_offset(text: str, vin: str) -> int:
    """
    Locate a VIN inside text, tolerating OCR separators.

    Falls back to the last 8 characters (the serial section) when the full
    VIN does not appear verbatim. Returns -1 if not found.
    """
    if not text or not vin:
        return -1
    upper = text.upper()
    v = vin.upper()

    idx = upper.find(v)
    if idx >= 0:
        return idx

    loose = r'[\s\-]*'.join(re.escape(c) for c in v)
    match = re.search(loose, upper)
    if match:
        return match.start()

    return upper.find(v[-8:])

"""
Canadian postal code, province and country normalization.

Repairs the letter/digit confusions that OCR routinely introduces into
postal codes (``K1A OB1`` -> ``K1A 0B1``) and maps province names to their
two-letter codes. Malformed input is never guessed past these rules:
an unrecognized province comes back empty, a postal code that does not
compact to six characters comes back as typed.
"""
import re
from types import MappingProxyType

from extractors.text_utils import normalize_whitespace, strip_diacritics


CANADIAN_PROVINCES = frozenset([
    'AB', 'BC', 'MB', 'NB', 'NL', 'NS', 'NT', 'NU', 'ON', 'PE', 'QC', 'SK', 'YT',
])

# Keys are upper-cased with every non-letter removed
PROVINCE_NAME_TO_CODE = MappingProxyType({
    'ALBERTA': 'AB',
    'BRITISHCOLUMBIA': 'BC',
    'MANITOBA': 'MB',
    'NEWBRUNSWICK': 'NB',
    'NEWFOUNDLANDANDLABRADOR': 'NL',
    'NOVASCOTIA': 'NS',
    'NORTHWESTTERRITORIES': 'NT',
    'NUNAVUT': 'NU',
    'ONTARIO': 'ON',
    'PRINCEEDWARDISLAND': 'PE',
    'QUEBEC': 'QC',
    'SASKATCHEWAN': 'SK',
    'YUKON': 'YT',
    # French forms seen on Quebec dealer paperwork
    'COLOMBIEBRITANNIQUE': 'BC',
    'NOUVEAUBRUNSWICK': 'NB',
    'TERRENEUVEETLABRADOR': 'NL',
    'NOUVELLEECOSSE': 'NS',
    'TERRITOIRESDUNORDOUEST': 'NT',
    'ILEDUPRINCEEDOUARD': 'PE',
})

# First letter of a postal code -> province. X is shared by NT and NU;
# inference resolves it to NT.
POSTAL_PREFIX_TO_PROVINCE = MappingProxyType({
    'T': 'AB',
    'V': 'BC',
    'R': 'MB',
    'E': 'NB',
    'A': 'NL',
    'B': 'NS',
    'X': 'NT',
    'K': 'ON', 'L': 'ON', 'M': 'ON', 'N': 'ON', 'P': 'ON',
    'C': 'PE',
    'G': 'QC', 'H': 'QC', 'J': 'QC',
    'S': 'SK',
    'Y': 'YT',
})

PROVINCE_POSTAL_PREFIXES = MappingProxyType({
    'AB': frozenset('T'),
    'BC': frozenset('V'),
    'MB': frozenset('R'),
    'NB': frozenset('E'),
    'NL': frozenset('A'),
    'NS': frozenset('B'),
    'NT': frozenset('X'),
    'NU': frozenset('X'),
    'ON': frozenset('KLMNP'),
    'PE': frozenset('C'),
    'QC': frozenset('GHJ'),
    'SK': frozenset('S'),
    'YT': frozenset('Y'),
})

COUNTRY_ALIASES = MappingProxyType({
    'CA': 'Canada',
    'CAN': 'Canada',
    'CANADA': 'Canada',
    'US': 'USA',
    'USA': 'USA',
    'UNITEDSTATES': 'USA',
    'UNITEDSTATESOFAMERICA': 'USA',
})

# OCR confusions per slot of the A#A #A# pattern
_TO_LETTER = MappingProxyType({'1': 'I', '0': 'O'})
_TO_DIGIT = MappingProxyType({'I': '1', 'O': '0', 'Q': '0'})

POSTAL_CODE_RE = re.compile(r'[A-Z]\d[A-Z]\s?\d[A-Z]\d', re.IGNORECASE)

_STREET_OCR_FIXES = (
    (re.compile(r'\b(?:loe|l0e|i0e)\b(?=\s+(?:avenue|ave\.?|av\.?|rue)(?:\b|\s|$))', re.IGNORECASE), '10e'),
    (re.compile(r'\b10E\b(?=\s+(?:avenue|ave\.?|av\.?|rue)(?:\b|\s|$))', re.IGNORECASE), '10e'),
)


def _compact(value: str) -> str:
    return re.sub(r'[^A-Z0-9]', '', str(value or '').upper())


def normalize_postal_code(value: str) -> str:
    """
    Normalize a Canadian postal code to ``A#A #A#``.

    Examples:
        "k1a0b1"  -> "K1A 0B1"
        "k1aob1"  -> "K1A 0B1"   (O read in a digit slot)
        "12345"   -> "12345"     (not six characters, returned as typed)
    """
    raw = normalize_whitespace(str(value or '').upper())
    if not raw:
        return ""

    compact = _compact(raw)
    if len(compact) != 6:
        return raw

    chars = list(compact)
    for i in (0, 2, 4):
        chars[i] = _TO_LETTER.get(chars[i], chars[i])
    for i in (1, 3, 5):
        chars[i] = _TO_DIGIT.get(chars[i], chars[i])
    repaired = ''.join(chars)
    return f"{repaired[:3]} {repaired[3:]}"


def is_valid_postal_code(value: str) -> bool:
    """True if value is a well-formed Canadian postal code."""
    if not value:
        return False
    return bool(POSTAL_CODE_RE.fullmatch(str(value).strip()))


def normalize_province(value: str) -> str:
    """
    Convert a province name or code to its two-letter code.

    Examples:
        "ON"      -> "ON"
        "Ontario" -> "ON"
        "Québec"  -> "QC"
        "Ont"     -> ""   (abbreviations outside the table are not guessed)
    """
    raw = normalize_whitespace(value)
    if not raw:
        return ""

    upper = raw.upper()
    if upper in CANADIAN_PROVINCES:
        return upper

    key = re.sub(r'[^A-Z]', '', strip_diacritics(upper))
    return PROVINCE_NAME_TO_CODE.get(key, "")


def infer_province_from_postal(postal: str) -> str:
    """Map the first letter of a postal code to its province."""
    compact = _compact(normalize_postal_code(postal))
    if not compact:
        return ""
    return POSTAL_PREFIX_TO_PROVINCE.get(compact[0], "")


def postal_prefix_allows_province(postal: str, province: str) -> bool:
    """
    Check the postal code's first letter against the province's prefixes.

    Returns True when either side is missing or the province is unknown;
    this only rejects a definite mismatch.
    """
    compact = _compact(normalize_postal_code(postal))
    prov = normalize_whitespace(province).upper()
    if not compact or not prov:
        return True
    allowed = PROVINCE_POSTAL_PREFIXES.get(prov)
    if allowed is None:
        return True
    return compact[0] in allowed


def normalize_country(value: str) -> str:
    """Map CA/CAN/US/USA/United States... to 'Canada' or 'USA'; else return input."""
    raw = normalize_whitespace(value)
    if not raw:
        return ""
    letters = re.sub(r'[^A-Z]', '', raw.upper())
    return COUNTRY_ALIASES.get(letters, raw)


def repair_street_ocr(street: str) -> str:
    """
    Fix known OCR misreads in street names.

    "l0e Avenue" / "I0e Avenue" / "loe rue" -> "10e ..."
    """
    raw = normalize_whitespace(street)
    if not raw:
        return ""
    for pattern, replacement in _STREET_OCR_FIXES:
        raw = pattern.sub(replacement, raw)
    return raw

"""
Shared address parsing utilities for release-form extraction.

Handles the address shapes commonly found in dealership paperwork and
OCR output:
- "8670 10e Avenue, Montreal, QC, H1Z 3B8, Canada"
- "123 King St W, Suite 400, Toronto, ON M5H 1J9"
- "Dealer Name, 55 Rue Principale, Granby QC J2G 2T7 CA"
- Multi-line blocks under a section heading, with phone/e-mail noise

Every parse yields an AddressBreakdown; compose_address() turns one back
into the single display string used everywhere an address is shown.
"""
import re
from typing import Optional, Tuple, List

from models.vehicle import AddressBreakdown
from extractors.postal import (
    CANADIAN_PROVINCES,
    normalize_postal_code,
    is_valid_postal_code,
    normalize_province,
    normalize_country,
    infer_province_from_postal,
    postal_prefix_allows_province,
    repair_street_ocr,
)
from extractors.text_utils import normalize_whitespace, normalize_newlines


UNIT_RE = re.compile(r'\b(?:apt|apartment|suite|unit)\b\.?\s*#?\s*[A-Za-z0-9-]+\b', re.IGNORECASE)
BARE_UNIT_RE = re.compile(r'(?:^|(?<=\s))#\s*[A-Za-z0-9-]+\b')

# Compact "A1A1A1" / "A1A 1A1" tokens
POSTAL_TOKEN_RE = re.compile(r'\b[A-Z0-9]{3}\s?[A-Z0-9]{3}\b', re.IGNORECASE)
# OCR spacing such as "H 1 Z 3 B 8", anchored on token boundaries
SPACED_POSTAL_RE = re.compile(
    r'(?<![A-Z0-9])(?=([A-Z0-9](?:\s*[A-Z0-9]){5})(?![A-Z0-9]))', re.IGNORECASE
)
COUNTRY_TOKEN_RE = re.compile(r'\b(?:CA|USA?)\b\.?', re.IGNORECASE)
CA_TOKEN_RE = re.compile(r'\bCA\b\.?', re.IGNORECASE)
US_TOKEN_RE = re.compile(r'\bUSA?\b\.?', re.IGNORECASE)

LINE1_RE = re.compile(r'^(\d{1,6}[A-Za-z]?)(?:\s+(.+))?$')

PHONE_RE = re.compile(r'(?:\+?1\s*)?\(?\d{3}\)?[\s.-]*\d{3}[\s.-]*\d{4}')
EMAIL_RE = re.compile(r'[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}', re.IGNORECASE)
PICKUP_HEADING_RE = re.compile(r'\bP[IL]CKUP\s+LOCAT[IL]ON\b\s*:?\s*', re.IGNORECASE)
# "Tel:" and similar, left behind once the number or e-mail is removed
CONTACT_LABEL_RE = re.compile(r'^(?:tel|telephone|phone|ph|fax|cell|mobile|e-?mail)\.?$', re.IGNORECASE)


def normalize_phone(phone: str) -> str:
    """
    Normalize phone number to standard format: (XXX) XXX-XXXX

    Examples:
        "5147200981" -> "(514) 720-0981"
        "+1 514-720-0981" -> "(514) 720-0981"
    """
    if not phone:
        return ""

    digits = re.sub(r'\D', '', phone)

    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    elif len(digits) == 11 and digits[0] == '1':
        return f"({digits[1:4]}) {digits[4:7]}-{digits[7:]}"

    return phone.strip()


def extract_phone_from_text(text: str) -> str:
    """Return the first North American phone number in text, as written."""
    if not text:
        return ""
    match = PHONE_RE.search(text)
    return match.group(0).strip() if match else ""


def looks_like_street_address(value: str) -> bool:
    return bool(re.search(r'\d', value or ''))


def looks_like_clean_street_address(value: str) -> bool:
    """
    True for a display address free of contact noise.

    Rejects strings with no digit, an e-mail, a phone number, a leftover
    pickup heading, an empty comma segment or a dangling trailing "CA".
    """
    raw = (value or '').strip()
    if not raw or not looks_like_street_address(raw):
        return False
    if EMAIL_RE.search(raw) or PHONE_RE.search(raw):
        return False
    if PICKUP_HEADING_RE.search(raw):
        return False
    if re.search(r',\s*,', raw):
        return False
    if re.search(r'\bCA\.?\s*$', raw, re.IGNORECASE):
        return False
    return True


def extract_unit(text: str) -> Tuple[str, str]:
    """
    Pull an apartment/suite/unit token out of text.

    Returns: (unit, text_without_unit)
    """
    s = normalize_whitespace(text)
    match = UNIT_RE.search(s) or BARE_UNIT_RE.search(s)
    if not match:
        return "", s
    unit = normalize_whitespace(match.group(0))
    rest = normalize_whitespace(s[:match.start()] + ' ' + s[match.end():])
    return unit, rest.strip(' ,')


def split_line1(line1: str) -> Tuple[str, str]:
    """
    Split a street line into civic number and street name.

    Examples:
        "8670 10e Avenue" -> ("8670", "10e Avenue")
        "1250B Rue Sherbrooke" -> ("1250B", "Rue Sherbrooke")
        "Chemin du Lac" -> ("", "Chemin du Lac")
    """
    s = normalize_whitespace(line1)
    if not s:
        return "", ""
    match = LINE1_RE.match(s)
    if match:
        return match.group(1), (match.group(2) or "").strip()
    return "", s


def _find_postal(s: str) -> Tuple[str, Optional[Tuple[int, int]]]:
    for match in POSTAL_TOKEN_RE.finditer(s):
        candidate = normalize_postal_code(match.group(0))
        if is_valid_postal_code(candidate):
            return candidate, match.span()

    for match in SPACED_POSTAL_RE.finditer(s):
        raw = match.group(1)
        candidate = normalize_postal_code(raw)
        if is_valid_postal_code(candidate):
            start = match.start(1)
            return candidate, (start, start + len(raw))

    return "", None


def _find_province_name_suffix(tokens: List[str]) -> Tuple[str, int]:
    """Match a full province name at the end of tokens; returns (code, token_count)."""
    for size in range(min(4, len(tokens)), 0, -1):
        code = normalize_province(' '.join(tokens[-size:]))
        if code and len(' '.join(tokens[-size:])) > 2:
            return code, size
    return "", 0


def extract_province_postal_from_line(line: str) -> Tuple[str, str, str]:
    """
    Find a province code and postal code inside one address segment.

    Handles:
        "QC H1Z 3B8"            -> ("QC", "H1Z 3B8", "")
        "Montreal QC H1Z3B8"    -> ("QC", "H1Z 3B8", "Montreal")
        "Ottawa Ontario K1A 0B1" -> ("ON", "K1A 0B1", "Ottawa")
        "Laval"                 -> ("", "", "Laval")

    Returns: (province, postal_code, remainder)
    """
    s = normalize_whitespace(line)
    if not s:
        return "", "", ""

    postal, span = _find_postal(s)
    rest = s
    if span:
        rest = normalize_whitespace(s[:span[0]] + ' ' + s[span[1]:])

    rest = normalize_whitespace(COUNTRY_TOKEN_RE.sub(' ', rest))
    tokens = [t for t in rest.split(' ') if t.strip(' ,.')]

    province = ""
    for i, token in enumerate(tokens):
        if token.strip(' ,.').upper() in CANADIAN_PROVINCES:
            province = token.strip(' ,.').upper()
            del tokens[i]
            break

    if not province and tokens:
        code, size = _find_province_name_suffix(tokens)
        if code:
            province = code
            tokens = tokens[:-size]

    remainder = normalize_whitespace(' '.join(tokens)).strip(' ,')
    return province, postal, remainder


def _is_province_postal_only(part: str) -> bool:
    province, postal, remainder = extract_province_postal_from_line(part)
    return bool(province or postal) and not looks_like_street_address(remainder)


def _pop_country(parts: List[str]) -> str:
    """Remove a trailing country segment or embedded CA/US token from parts."""
    if not parts:
        return ""

    last = parts[-1]
    normalized = normalize_country(last)
    if normalized in ('Canada', 'USA'):
        parts.pop()
        return normalized

    country = ""
    if CA_TOKEN_RE.search(last):
        country = 'Canada'
    elif US_TOKEN_RE.search(last):
        country = 'USA'
    if country:
        trimmed = normalize_whitespace(COUNTRY_TOKEN_RE.sub(' ', last)).strip(' ,')
        if trimmed:
            parts[-1] = trimmed
        else:
            parts.pop()
    return country


def parse_address(address_text: str) -> AddressBreakdown:
    """
    Parse a free-text or comma-delimited address into an AddressBreakdown.

    Examples:
        "8670 10e Avenue, Montreal, QC, H1Z 3B8, Canada"
            -> number=8670, street=10e Avenue, city=Montreal,
               province=QC, postal_code=H1Z 3B8, country=Canada
        "Apt 5, 20 Elm St, Halifax NS B3H 1A1"
            -> unit=Apt 5, number=20, street=Elm St, city=Halifax, ...
    """
    result = AddressBreakdown(country="")
    raw = normalize_whitespace(address_text)
    if not raw:
        result.country = "Canada"
        return result

    parts = [normalize_whitespace(p) for p in raw.split(',')]
    parts = [p for p in parts if p]

    # Unit token, first occurrence only
    for i, part in enumerate(parts):
        unit, rest = extract_unit(part)
        if unit:
            result.unit = unit
            if rest:
                parts[i] = rest
            else:
                del parts[i]
            break

    country = _pop_country(parts)

    if not parts:
        result.country = country or "Canada"
        return result

    # Street line: first part with a digit that is not just a province/postal segment
    line1_idx = next(
        (i for i, p in enumerate(parts) if looks_like_street_address(p) and not _is_province_postal_only(p)),
        None,
    )
    if line1_idx is None:
        line1_idx = len(parts) - 3 if len(parts) >= 3 else 0

    province = ""
    postal = ""
    city = ""
    area_parts: List[str] = []
    line1 = parts[line1_idx]

    if line1_idx == len(parts) - 1:
        # Single segment: look for province/postal inside it
        province, postal, remainder = extract_province_postal_from_line(line1)
        if province or postal:
            line1 = remainder
    else:
        after = parts[line1_idx + 1:]
        pp_rel = next(
            (i for i in range(len(after) - 1, -1, -1) if any(extract_province_postal_from_line(after[i])[:2])),
            None,
        )
        if pp_rel is None:
            # Nothing recognizable; the last segment is at best a city
            between = after[:-1]
            if between:
                city = between[-1]
                area_parts = between[:-1]
            else:
                city = after[-1]
        else:
            province, postal, remainder = extract_province_postal_from_line(after[pp_rel])
            between = list(after[:pp_rel])

            # "..., Montreal, Quebec, H1Z 3B8": province in its own segment
            if not province and not remainder and between:
                maybe = normalize_province(between[-1])
                if maybe:
                    province = maybe
                    between.pop()
                else:
                    # "..., Toronto ON, M5H 1J9": province trails the city
                    inner_province, _, inner_rest = extract_province_postal_from_line(between[-1])
                    if inner_province:
                        province = inner_province
                        if inner_rest:
                            between[-1] = inner_rest
                        else:
                            between.pop()

            if remainder:
                city = remainder
                area_parts = between
            elif between:
                city = between[-1]
                area_parts = between[:-1]

    if not province and postal and country == 'Canada':
        province = infer_province_from_postal(postal)

    if not result.unit:
        unit, line1 = extract_unit(line1)
        result.unit = unit

    number, street = split_line1(line1)

    result.number = number
    result.street = repair_street_ocr(street)
    result.area = normalize_whitespace(', '.join(area_parts))
    result.city = normalize_whitespace(city)
    result.province = province if province in CANADIAN_PROVINCES else ""
    result.postal_code = postal
    result.country = country or "Canada"
    return result


def compose_address(breakdown: AddressBreakdown) -> str:
    """
    Build the canonical display string for a breakdown.

    "{number} {street}, {unit}, {area}, {city}, {province} {postal}, {country}"
    with empty segments dropped.
    """
    if breakdown is None:
        return ""

    line1 = normalize_whitespace(f"{breakdown.number} {breakdown.street}")
    prov_postal = normalize_whitespace(
        f"{normalize_whitespace(breakdown.province)} {normalize_postal_code(breakdown.postal_code)}"
    )
    segments = [
        line1,
        normalize_whitespace(breakdown.unit),
        normalize_whitespace(breakdown.area),
        normalize_whitespace(breakdown.city),
        prov_postal,
        normalize_whitespace(breakdown.country),
    ]
    return ', '.join(s for s in segments if s)


def parse_address_match(
    line1_raw: str,
    city_raw: str,
    province_raw: str,
    postal_raw: str,
) -> Optional[AddressBreakdown]:
    """
    Build a breakdown from the groups of an address-grammar regex match.

    Returns None unless line1, city and province are present and the
    postal code validates.
    """
    line1 = normalize_whitespace(line1_raw)
    city = normalize_whitespace(city_raw)
    province = normalize_province(province_raw)
    postal = normalize_postal_code(postal_raw)

    if not line1 or not city or not province or not is_valid_postal_code(postal):
        return None

    unit, line1_no_unit = extract_unit(line1)
    number, street = split_line1(line1_no_unit)

    return AddressBreakdown(
        number=number,
        street=repair_street_ocr(street),
        unit=unit,
        area="",
        city=city,
        province=province,
        postal_code=postal,
        country="Canada",
    )


def validate_breakdown(breakdown: AddressBreakdown) -> List[str]:
    """Return a list of problems with a breakdown; empty when it looks deliverable."""
    problems = []
    if not breakdown.line1:
        problems.append("missing street line")
    if not breakdown.city:
        problems.append("missing city")
    if breakdown.province and breakdown.province not in CANADIAN_PROVINCES:
        problems.append(f"unknown province {breakdown.province}")
    if not breakdown.province:
        problems.append("missing province")
    if breakdown.postal_code and not is_valid_postal_code(breakdown.postal_code):
        problems.append(f"invalid postal code {breakdown.postal_code}")
    if not breakdown.postal_code:
        problems.append("missing postal code")
    if not postal_prefix_allows_province(breakdown.postal_code, breakdown.province):
        problems.append(
            f"postal code {breakdown.postal_code} does not belong to {breakdown.province}"
        )
    return problems


def strip_contact_from_block(
    block: str,
    known_name: str = None,
    heading_patterns: List[str] = None,
) -> str:
    """
    Turn a multi-line party block into a one-line address candidate.

    Removes headings, phone numbers, e-mail addresses and the party name,
    then joins the remaining lines with ", ".
    """
    if not block or not block.strip():
        return ""

    name = (known_name or '').strip().lower()
    patterns = [re.compile(p, re.IGNORECASE) for p in heading_patterns] if heading_patterns else [PICKUP_HEADING_RE]

    lines = []
    for line in normalize_newlines(block).split('\n'):
        cleaned = line.strip()
        for pattern in patterns:
            cleaned = pattern.sub('', cleaned)
        cleaned = PHONE_RE.sub('', cleaned)
        cleaned = EMAIL_RE.sub('', cleaned)
        cleaned = normalize_whitespace(cleaned).strip(' :')
        if not cleaned or CONTACT_LABEL_RE.match(cleaned):
            continue
        if name and cleaned.lower() == name:
            continue
        lines.append(cleaned)

    joined = ', '.join(lines)
    joined = re.sub(r'\s*,\s*', ', ', joined)
    joined = re.sub(r'(?:,\s*){2,}', ', ', joined)
    return normalize_whitespace(joined).rstrip(',').strip()

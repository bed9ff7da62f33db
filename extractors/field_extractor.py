"""
Field extraction from release-form text.

Vehicle year/make/model lines, labeled values (transaction id, release
form number, dates, odometer) and the selling/buying dealership blocks.
All functions take raw document text and return empty values when
nothing is found.
"""
import logging
import re
from typing import Optional, List, Tuple

from models.document import LabeledFields
from models.vehicle import VehicleRecord, DealershipParty
from extractors.address_parser import (
    compose_address,
    extract_phone_from_text,
    looks_like_clean_street_address,
    normalize_phone,
    parse_address,
    strip_contact_from_block,
)
from extractors.text_utils import normalize_newlines, non_blank_lines
from extractors.vin import find_vin_offset

logger = logging.getLogger(__name__)


YMM_RE = re.compile(r"\b((?:19|20)[0-9IlOo]{2})\b\s+([A-Za-z][A-Za-z0-9&.'/-]{1,})\s+(.{2,80})")
YMM_NEAR_VIN_RE = re.compile(r"\b((?:19|20)[0-9IlOo]{2})\b\s+([A-Za-z][A-Za-z0-9&.'/-]{1,})\s+(.{2,60})")
YEAR_TOKEN_RE = re.compile(r'\b(?:19|20)[0-9IlOo]{2}\b')

# Words that follow a year on release forms but are not vehicle makes
MAKE_STOPLIST = frozenset([
    'vehicle', 'buyer', 'seller', 'date', 'due', 'pickup',
    'location', 'proof', 'purchase', 'paid', 'keeper',
])

VIN_WINDOW_BEFORE = 500
VIN_WINDOW_AFTER = 200


def repair_year(token: str) -> str:
    """'2O19' -> '2019', 'l998' -> '1998'; returns '' unless a 1900-2099 year results."""
    if not token:
        return ""
    repaired = re.sub(r'[Il]', '1', token)
    repaired = re.sub(r'[Oo]', '0', repaired)
    match = re.search(r'\b(19\d{2}|20\d{2})\b', repaired)
    return match.group(1) if match else ""


def parse_ymm_line(line: str) -> Optional[VehicleRecord]:
    """Parse one line as "<year> <make> <model>", applying the make stoplist."""
    match = YMM_RE.search(line or '')
    if not match:
        return None

    year = repair_year(match.group(1))
    if not year:
        return None

    make = match.group(2).strip()
    model = match.group(3).strip()
    if not make or not model:
        return None
    if make.lower() in MAKE_STOPLIST:
        return None
    if not re.search(r'[A-Za-z]', model):
        return None

    return VehicleRecord(year=year, make=make, model=model)


def extract_vehicle_ymm(text: str) -> VehicleRecord:
    """
    Return the first accepted year/make/model line in document order.

    "2020 Vehicle released to buyer" is rejected (make is stoplisted);
    "2019 Honda Civic LX" -> year=2019, make=Honda, model=Civic LX.
    """
    for line in non_blank_lines(text):
        record = parse_ymm_line(line)
        if record:
            return record
    return VehicleRecord()


def has_vehicle_ymm(text: str) -> bool:
    """Strict test used by the OCR decision: does any line parse as YMM?"""
    return any(parse_ymm_line(line) for line in non_blank_lines(text))


def extract_vehicle_ymm_near_vin(text: str, vin: str) -> VehicleRecord:
    """
    Year/make/model from the neighbourhood of a known VIN.

    Looks from 500 characters before to 200 after the VIN and parses the
    first line there that carries a year token, letters and no "Date"
    label. This can disagree with extract_vehicle_ymm() on documents with
    several vehicle-like lines; callers choose which to trust.
    """
    raw = normalize_newlines(text)
    if not raw.strip() or not vin:
        return VehicleRecord()

    idx = find_vin_offset(raw, vin)
    if idx < 0:
        return VehicleRecord()

    window = raw[max(0, idx - VIN_WINDOW_BEFORE):min(len(raw), idx + VIN_WINDOW_AFTER)]
    year_line = next(
        (
            line for line in non_blank_lines(window)
            if YEAR_TOKEN_RE.search(line)
            and re.search(r'[A-Za-z]', line)
            and not re.search(r'\bDate\b', line, re.IGNORECASE)
        ),
        "",
    )

    match = YMM_NEAR_VIN_RE.search(year_line)
    if not match:
        return VehicleRecord()
    year = repair_year(match.group(1))
    if not year:
        return VehicleRecord()
    return VehicleRecord(year=year, make=match.group(2).strip(), model=match.group(3).strip())


def normalize_date_like(value: str) -> str:
    """
    Convert Y/M/D or M/D/Y (slash or dash) to ISO YYYY-MM-DD.

    Examples:
        "2024/3/7"   -> "2024-03-07"
        "03-07-2024" -> "2024-03-07"
        "March 7"    -> ""
    """
    raw = (value or '').strip()
    if not raw:
        return ""

    ymd = re.search(r'\b(19\d{2}|20\d{2})[/-](\d{1,2})[/-](\d{1,2})\b', raw)
    if ymd:
        return f"{ymd.group(1)}-{int(ymd.group(2)):02d}-{int(ymd.group(3)):02d}"

    mdy = re.search(r'\b(\d{1,2})[/-](\d{1,2})[/-](19\d{2}|20\d{2})\b', raw)
    if mdy:
        return f"{mdy.group(3)}-{int(mdy.group(1)):02d}-{int(mdy.group(2)):02d}"

    return ""


class FieldExtractor:
    """Extracts labeled values and dealership blocks from release-form text."""

    TRANSACTION_ID_RE = re.compile(
        r'\bTransaction\s*(?:ID|#|No\.?|Number)?\s*[:#-]?\s*([0-9][0-9-]{2,})\b', re.IGNORECASE
    )
    RELEASE_FORM_RE = re.compile(
        r'\bRelease\s*Form\s*(?:(?:#|No\.?|Number)\s*[:#-]?|[:#-])\s*((?=[A-Z-]*\d)[A-Z0-9][A-Z0-9-]{1,})\b',
        re.IGNORECASE,
    )
    ARRIVAL_DATE_RE = re.compile(
        r'\bArrival\s*Date\b\s*[:#-]?\s*([0-9]{1,4}[/-][0-9]{1,2}[/-][0-9]{1,4})\b', re.IGNORECASE
    )
    ODOMETER_RE = re.compile(r'\bOdometer\b\s*[:-]?\s*([0-9][0-9,\s.]*)\s*km\b', re.IGNORECASE)
    YEAR_LABEL_RE = re.compile(r'\bYear\b\s*[:#]\s*(19\d{2}|20\d{2})\b', re.IGNORECASE)

    # Headings that end a party section
    SECTION_END_HEADINGS = [
        r'\n\s*(?:Selling\s+Dealership|Sell\w*\s+Dealersh\w*)',
        r'\n\s*(?:Pickup\s+Date|Pick\w*\s+Date)',
        r'\n\s*(?:Released\s+By|Release\s+Date)',
        r'\n\s*Transportation\s+Company',
        r'\n\s*(?:Buyer|Seller)\b',
        r'\n\s*(?:Pick\w*\s+Locat\w*|Vehicle\s+Location)',
        r'\n\s*(?:Buy\w*|8UY\w*)\s+Dealersh\w*',
    ]

    SELLING_HEADINGS = [
        r'\bS[EL]LL[IL]NG\s+DEALERSH[IL]P\b\s*:?\s*',
        r'\bSell\w*\s+Dealersh\w*\b\s*:?\s*',
    ]
    BUYING_HEADINGS = [
        r'\b(?:BUY[IL]NG|8UY[IL]NG)\s+DEALERSH[IL]P\b\s*:?\s*',
        r'\bBuy\w*\s+Dealersh\w*\b\s*:?\s*',
    ]

    @classmethod
    def transaction_id(cls, text: str) -> str:
        match = cls.TRANSACTION_ID_RE.search(text or '')
        return match.group(1) if match else ""

    @classmethod
    def release_form_number(cls, text: str) -> str:
        match = cls.RELEASE_FORM_RE.search(text or '')
        return match.group(1) if match else ""

    @classmethod
    def arrival_date(cls, text: str) -> str:
        match = cls.ARRIVAL_DATE_RE.search(text or '')
        return normalize_date_like(match.group(1)) if match else ""

    @classmethod
    def odometer_km(cls, text: str) -> str:
        """'Odometer: 45,678 km' -> '45678'."""
        match = cls.ODOMETER_RE.search(text or '')
        if not match:
            return ""
        return re.sub(r'[^0-9.]', '', match.group(1))

    @classmethod
    def labeled_year(cls, text: str) -> str:
        match = cls.YEAR_LABEL_RE.search(text or '')
        return match.group(1) if match else ""

    @staticmethod
    def labeled_value(text: str, label: str, line_start: bool = False) -> str:
        """
        Value printed after a label on the same line.

        "Color: Black   Odometer: 12 km" with label "Color" -> "Black".
        The label must be followed by ':' or '#', so prose such as "make
        sure" never counts. With line_start the label must also open its
        line. Values that are themselves another label are skipped.
        """
        if not text or not label:
            return ""
        prefix = r'^[ \t]*' if line_start else r'\b'
        pattern = re.compile(
            rf'{prefix}{re.escape(label)}\b\s*[:#]\s*([^\r\n]{{1,60}})',
            re.IGNORECASE | re.MULTILINE,
        )
        for match in pattern.finditer(text):
            value = match.group(1)
            if re.match(r'^[A-Za-z]+\s*:', value):
                continue
            value = re.split(r'\s{2,}|\s+[A-Z][A-Za-z ]{1,20}:', value)[0]
            value = value.strip(' :#-')
            if value:
                return value
        return ""

    @classmethod
    def section_block(cls, text: str, heading: str, max_chars: int = 500) -> str:
        """Text from a heading up to the next known section heading."""
        return cls.between_headings(text, heading, cls.SECTION_END_HEADINGS, max_chars)

    @staticmethod
    def between_headings(text: str, start: str, ends: List[str], max_chars: int = 500) -> str:
        """Text from the start heading to the nearest of the end headings."""
        raw = normalize_newlines(text)
        if not raw.strip():
            return ""
        match = re.search(start, raw, re.IGNORECASE)
        if not match:
            return ""
        chunk = raw[match.start():]

        end_pos = -1
        for pattern in ends:
            nxt = re.search(pattern, chunk[1:], re.IGNORECASE)
            if nxt is None:
                continue
            pos = nxt.start() + 1
            if end_pos < 0 or pos < end_pos:
                end_pos = pos
        if end_pos > 0:
            chunk = chunk[:end_pos]
        return chunk[:max_chars].strip()

    @classmethod
    def _party_name(cls, block: str, headings: List[str]) -> str:
        lines = non_blank_lines(block)
        for i, line in enumerate(lines):
            for heading in headings:
                match = re.search(heading, line, re.IGNORECASE)
                if not match:
                    continue
                same_line = line[match.end():].strip(' :')
                if same_line and not re.search(r'\d', same_line):
                    return same_line
                return lines[i + 1] if i + 1 < len(lines) else ""
        return ""

    @classmethod
    def dealership(cls, text: str, headings: List[str]) -> DealershipParty:
        """Name, phone and address from a dealership section."""
        block = ""
        for heading in headings:
            block = cls.section_block(text, heading)
            if block:
                break
        if not block:
            return DealershipParty()

        name = cls._party_name(block, headings)
        phone = extract_phone_from_text(block)
        address_text = strip_contact_from_block(block, name, headings)

        breakdown = parse_address(address_text) if address_text else None
        composed = compose_address(breakdown) if breakdown else ""
        if not looks_like_clean_street_address(composed):
            breakdown = None
            composed = ""

        return DealershipParty(
            name=name,
            phone=normalize_phone(phone),
            address=composed,
            breakdown=breakdown,
        )

    @classmethod
    def parties(cls, text: str) -> Tuple[DealershipParty, DealershipParty]:
        """Return (selling, buying) dealership parties."""
        return cls.dealership(text, cls.SELLING_HEADINGS), cls.dealership(text, cls.BUYING_HEADINGS)

    @classmethod
    def labeled_fields(cls, text: str) -> LabeledFields:
        transmission = (
            cls.labeled_value(text, 'Transmission')
            or cls.labeled_value(text, 'Transmlsslon')
            or cls.labeled_value(text, 'Transm')
        )
        fields = LabeledFields(
            transaction_id=cls.transaction_id(text),
            release_form_number=cls.release_form_number(text),
            arrival_date=cls.arrival_date(text),
            odometer_km=cls.odometer_km(text),
            year=cls.labeled_year(text),
            make=cls.labeled_value(text, 'Make', line_start=True),
            model=cls.labeled_value(text, 'Model', line_start=True),
            color=cls.labeled_value(text, 'Color'),
            transmission=transmission,
            phone=extract_phone_from_text(text),
        )
        logger.debug(f"Labeled fields: {fields.to_dict()}")
        return fields

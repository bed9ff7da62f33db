"""Small text helpers shared by the extraction modules."""
import re
import unicodedata

_WS_RE = re.compile(r'\s+')


def normalize_whitespace(value) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    if value is None:
        return ""
    return _WS_RE.sub(' ', str(value)).strip()


def normalize_newlines(value) -> str:
    """Convert CRLF / CR line endings to LF."""
    if value is None:
        return ""
    return str(value).replace('\r\n', '\n').replace('\r', '\n')


def strip_diacritics(value: str) -> str:
    """'Montréal' -> 'Montreal'."""
    if not value:
        return ""
    decomposed = unicodedata.normalize('NFD', value)
    return ''.join(c for c in decomposed if not unicodedata.combining(c))


def non_blank_lines(text: str) -> list:
    return [line.strip() for line in normalize_newlines(text).split('\n') if line.strip()]

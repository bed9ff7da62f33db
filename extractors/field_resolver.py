"""
Extraction Payload Merging

Upstream extraction services answer in several shapes: a list of
wrapper objects carrying the record under ``output``, bare records, or
plain text. Each item is classified into a tagged payload and the
records are merged in order:

1. First non-blank value per key wins (None and whitespace-only strings
   are blank)
2. Nested mappings are merged recursively with the same rule
3. With no record at all, the first non-empty scalar is the result
"""

import logging
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from models.payload import (
    ExtractionPayload,
    PayloadKind,
    RecordPayload,
    ScalarPayload,
    WrappedOutput,
)

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """None and whitespace-only strings are blank; 0, False and [] are not."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def classify_payload(item: Any) -> ExtractionPayload:
    """
    Tag one raw payload item.

    {"output": {...}, ...} -> WrappedOutput
    {"output": "text"}     -> ScalarPayload("text")
    {...}                  -> RecordPayload
    anything else          -> ScalarPayload
    """
    if isinstance(item, Mapping):
        if "output" in item:
            output = item["output"]
            if isinstance(output, Mapping):
                return WrappedOutput(output=dict(output), wrapper=dict(item))
            return ScalarPayload(value=output)
        return RecordPayload(record=dict(item))
    return ScalarPayload(value=item)


def merge_non_blank(base: Mapping, incoming: Mapping) -> dict:
    """Fill blank or missing keys of base from incoming, recursing into nested mappings."""
    merged = dict(base)
    for key, next_value in incoming.items():
        prev_value = merged.get(key)
        if isinstance(prev_value, Mapping) and isinstance(next_value, Mapping):
            merged[key] = merge_non_blank(prev_value, next_value)
            continue
        if is_blank(prev_value) and not is_blank(next_value):
            merged[key] = next_value
    return merged


def merge_payloads(items: Iterable[Any]) -> Optional[Any]:
    """
    Merge a sequence of raw or classified payloads.

    Args:
        items: Raw items (dicts, strings, ...) or ExtractionPayload instances

    Returns:
        The merged record dict, else the first non-empty scalar, else None
    """
    merged: Optional[dict] = None
    fallback: Any = None

    for item in items:
        payload = item if isinstance(item, (WrappedOutput, RecordPayload, ScalarPayload)) else classify_payload(item)

        if payload.kind == PayloadKind.SCALAR:
            if fallback is None and payload.value and not is_blank(payload.value):
                fallback = payload.value
            continue

        record = payload.as_record()
        merged = record if merged is None else merge_non_blank(merged, record)

    if merged is not None:
        return merged
    return fallback


def extract_payload_output(data: Any) -> Optional[Any]:
    """Normalize a whole upstream response: a list is merged, a single item is unwrapped."""
    if isinstance(data, (list, tuple)):
        return merge_payloads(data)
    if isinstance(data, Mapping):
        return merge_payloads([data])
    logger.debug(f"Unsupported payload type: {type(data).__name__}")
    return None

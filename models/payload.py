"""Tagged input types for heterogeneous upstream extraction payloads."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Union


class PayloadKind(str, Enum):
    """Shape of an upstream extraction payload item."""

    WRAPPED = "wrapped"  # {"output": {...}, ...}
    RECORD = "record"  # plain mapping
    SCALAR = "scalar"  # text or anything else


@dataclass
class WrappedOutput:
    """Wrapper object carrying its record under an ``output`` key."""
    output: Dict[str, Any]
    wrapper: Dict[str, Any] = field(default_factory=dict)
    kind: PayloadKind = PayloadKind.WRAPPED

    def as_record(self) -> Dict[str, Any]:
        """Lift ``output`` keys over the wrapper's own keys."""
        merged = {k: v for k, v in self.wrapper.items() if k != "output"}
        merged.update(self.output)
        return merged


@dataclass
class RecordPayload:
    record: Dict[str, Any]
    kind: PayloadKind = PayloadKind.RECORD

    def as_record(self) -> Dict[str, Any]:
        return dict(self.record)


@dataclass
class ScalarPayload:
    value: Any
    kind: PayloadKind = PayloadKind.SCALAR


ExtractionPayload = Union[WrappedOutput, RecordPayload, ScalarPayload]

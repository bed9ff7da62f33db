"""Structured logging configuration with correlation fields."""
import logging
import json
import sys
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextvars import ContextVar

# Context variables for log correlation
current_run_id: ContextVar[str] = ContextVar("run_id", default="")
current_document_name: ContextVar[str] = ContextVar("document_name", default="")
current_document_type: ContextVar[str] = ContextVar("document_type", default="")


def generate_run_id() -> str:
    """Generate a unique run ID for log correlation."""
    return f"run_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


def set_context(
    run_id: Optional[str] = None,
    document_name: Optional[str] = None,
    document_type: Optional[str] = None,
) -> None:
    """Set logging context variables."""
    if run_id is not None:
        current_run_id.set(run_id)
    if document_name is not None:
        current_document_name.set(document_name)
    if document_type is not None:
        current_document_type.set(document_type)


def clear_context() -> None:
    """Clear all logging context variables."""
    current_run_id.set("")
    current_document_name.set("")
    current_document_type.set("")


class JSONFormatter(logging.Formatter):
    """JSON log formatter with correlation fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add correlation fields if present
        if run_id := current_run_id.get():
            log_data["run_id"] = run_id
        if document_name := current_document_name.get():
            log_data["document_name"] = document_name
        if document_type := current_document_type.get():
            log_data["document_type"] = document_type

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields from record
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter with correlation fields."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        ctx_parts = []
        if run_id := current_run_id.get():
            ctx_parts.append(f"run={run_id[:16]}")
        if document_name := current_document_name.get():
            ctx_parts.append(f"file={document_name}")
        if document_type := current_document_type.get():
            ctx_parts.append(f"type={document_type}")

        ctx_str = f" [{', '.join(ctx_parts)}]" if ctx_parts else ""

        msg = f"{timestamp} {record.levelname:8s} {record.name}{ctx_str}: {record.getMessage()}"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


def setup_logging(
    level: str = "INFO",
    format_type: str = "text",
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" for structured logs, "text" for human-readable
        logger_name: Specific logger name, or None for root logger

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logger.handlers.clear()

    # stderr keeps stdout free for `main.py extract --json`
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))

    if format_type.lower() == "json":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)


class LogContext:
    """Context manager for setting and clearing log context."""

    _VARS = {
        "run_id": current_run_id,
        "document_name": current_document_name,
        "document_type": current_document_type,
    }

    def __init__(
        self,
        run_id: Optional[str] = None,
        document_name: Optional[str] = None,
        document_type: Optional[str] = None,
    ):
        self.run_id = run_id
        self.document_name = document_name
        self.document_type = document_type
        self._tokens = {}

    def __enter__(self):
        for name, var in self._VARS.items():
            value = getattr(self, name)
            if value:
                self._tokens[name] = var.set(value)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for name, token in self._tokens.items():
            self._VARS[name].reset(token)
        return False

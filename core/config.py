"""Centralized configuration management with validation."""
import os
from dataclasses import dataclass, field
from typing import Optional, List

from dotenv import load_dotenv


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


class OcrCredentialsMissing(ConfigurationError):
    """Raised when a document needs OCR and no OCR.space key is configured."""
    pass


def _mask_secret(value: str, visible_chars: int = 4) -> str:
    """Mask a secret value for logging, showing only first few chars."""
    if not value:
        return "<empty>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class OcrConfig:
    """OCR.space API configuration."""
    api_key: str = ""
    endpoint: str = "https://api.ocr.space/parse/image"
    language: str = "eng"
    detect_orientation: bool = True
    timeout: int = 60

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key.strip())

    def validate(self) -> List[str]:
        """Validate OCR configuration, return list of errors."""
        errors = []
        if not self.is_configured:
            errors.append("OCR_SPACE_API_KEY is required for OCR")
        if not self.endpoint.startswith(("http://", "https://")):
            errors.append(f"OCR_SPACE_ENDPOINT must be an http(s) URL: {self.endpoint}")
        if self.timeout <= 0:
            errors.append("OCR_TIMEOUT must be positive")
        return errors

    def __repr__(self) -> str:
        return (f"OcrConfig(api_key={_mask_secret(self.api_key)}, endpoint={self.endpoint}, "
                f"language={self.language}, timeout={self.timeout})")


@dataclass
class VinDecodeConfig:
    """NHTSA vPIC decoder configuration."""
    enabled: bool = True
    base_url: str = "https://vpic.nhtsa.dot.gov/api/vehicles"
    timeout: int = 15

    def validate(self) -> List[str]:
        errors = []
        if self.enabled and not self.base_url.startswith(("http://", "https://")):
            errors.append(f"VIN_DECODE_BASE_URL must be an http(s) URL: {self.base_url}")
        return errors


@dataclass
class ExtractionConfig:
    """Limits and thresholds for text acquisition and field extraction."""
    max_pdf_pages: int = 30
    min_native_text_chars: int = 180
    pickup_window_chars: int = 700
    context_window_chars: int = 220

    def validate(self) -> List[str]:
        errors = []
        if self.max_pdf_pages <= 0:
            errors.append("MAX_PDF_PAGES must be positive")
        if self.min_native_text_chars < 0:
            errors.append("MIN_NATIVE_TEXT_CHARS cannot be negative")
        return errors


@dataclass
class AppConfig:
    """Main application configuration."""
    ocr: OcrConfig = field(default_factory=OcrConfig)
    vin_decode: VinDecodeConfig = field(default_factory=VinDecodeConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)

    # Runtime settings
    log_level: str = "INFO"
    log_format: str = "text"  # "json" or "text"

    def validate(self, require_ocr: bool = False) -> None:
        """Validate all configuration, raise ConfigurationError if invalid."""
        errors = []

        if require_ocr:
            errors.extend(self.ocr.validate())
        errors.extend(self.vin_decode.validate())
        errors.extend(self.extraction.validate())

        if self.log_format not in ("json", "text"):
            errors.append(f"LOG_FORMAT must be 'json' or 'text': {self.log_format}")

        if errors:
            raise ConfigurationError("Configuration errors:\n  - " + "\n  - ".join(errors))

    def __repr__(self) -> str:
        return (f"AppConfig(\n  ocr={self.ocr},\n  vin_decode={self.vin_decode},\n  "
                f"extraction={self.extraction},\n  log_level={self.log_level}\n)")


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables."""

    # Load .env file if present
    load_dotenv()

    config = AppConfig(
        ocr=OcrConfig(
            api_key=os.getenv("OCR_SPACE_API_KEY", ""),
            endpoint=os.getenv("OCR_SPACE_ENDPOINT", "https://api.ocr.space/parse/image"),
            language=os.getenv("OCR_LANGUAGE", "eng"),
            detect_orientation=_env_bool("OCR_DETECT_ORIENTATION", "true"),
            timeout=int(os.getenv("OCR_TIMEOUT", "60")),
        ),
        vin_decode=VinDecodeConfig(
            enabled=_env_bool("VIN_DECODE_ENABLED", "true"),
            base_url=os.getenv("VIN_DECODE_BASE_URL", "https://vpic.nhtsa.dot.gov/api/vehicles"),
            timeout=int(os.getenv("VIN_DECODE_TIMEOUT", "15")),
        ),
        extraction=ExtractionConfig(
            max_pdf_pages=int(os.getenv("MAX_PDF_PAGES", "30")),
            min_native_text_chars=int(os.getenv("MIN_NATIVE_TEXT_CHARS", "180")),
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "text"),
    )

    return config


# Singleton config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config_from_env()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None

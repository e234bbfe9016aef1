"""Cross-cutting pieces: errors, logging and configuration."""

from .exceptions import (
    CapitolAlphaError,
    ConfigurationError,
    UnsupportedAssetClassError,
    DataQualityError,
    ExternalServiceError,
    EquityUnavailableError,
    InvariantViolation,
)

__all__ = [
    "CapitolAlphaError",
    "ConfigurationError",
    "UnsupportedAssetClassError",
    "DataQualityError",
    "ExternalServiceError",
    "EquityUnavailableError",
    "InvariantViolation",
]

"""
Exception hierarchy for the allocation pipeline.

Four families, matching how a pass reacts to them:

- ConfigurationError: deployment mistake, abort the pass before any orders.
- DataQualityError: one instrument is missing data, skip or fall back.
- ExternalServiceError: a collaborator (price feed, broker, reference API)
  failed. Recoverable at the call site unless it is the equity baseline.
- InvariantViolation: programming error, never caught inside the core.
"""

from typing import Any, Optional


class CapitolAlphaError(Exception):
    """Base class for all pipeline errors."""

    is_recoverable: bool = True

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({ctx})"


class ConfigurationError(CapitolAlphaError):
    """Missing or invalid configuration."""

    is_recoverable = False


class UnsupportedAssetClassError(ConfigurationError):
    """Raised for any asset class other than equity."""


class DataQualityError(CapitolAlphaError):
    """Missing or unusable data for a single instrument."""

    def __init__(
        self,
        message: str,
        instrument_id: Optional[str] = None,
        stage: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ):
        context = dict(context or {})
        if instrument_id:
            context.setdefault("instrument", instrument_id)
        if stage:
            context.setdefault("stage", stage)
        super().__init__(message, context)
        self.instrument_id = instrument_id
        self.stage = stage


class ExternalServiceError(CapitolAlphaError):
    """A price, broker or reference-data call failed."""

    def __init__(
        self,
        message: str,
        *,
        service: str = "",
        retryable: bool = False,
        context: Optional[dict[str, Any]] = None,
    ):
        context = dict(context or {})
        if service:
            context.setdefault("service", service)
        super().__init__(message, context)
        self.service = service
        self.retryable = retryable


class EquityUnavailableError(ExternalServiceError):
    """Account equity could not be fetched. Nothing can be sized without it."""

    is_recoverable = False


class InvariantViolation(CapitolAlphaError, ValueError):
    """A value broke a documented invariant."""

    is_recoverable = False

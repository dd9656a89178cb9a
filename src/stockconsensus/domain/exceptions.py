"""Error taxonomy.

Collector and per-field-group failures are absorbed locally and turned into
warnings or partial data. Reducer, governor and configuration failures are
surfaced verbatim to the caller with a machine-readable code.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stockconsensus.domain.models.rate_limit import AdmissionResult
    from stockconsensus.domain.models.record import CanonicalRecord


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
    AGGREGATION_FAILURE = "AGGREGATION_FAILURE"
    AGENT_FAILURE = "AGENT_FAILURE"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    CONFIG_ERROR = "CONFIG_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class StockConsensusError(Exception):
    """Base class for all errors surfaced by the engine."""

    code: str = ErrorCode.INTERNAL_ERROR
    http_status: int = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_error_payload(self) -> dict[str, Any]:
        """Structured failure body returned to callers."""
        return {
            "success": False,
            "error": self.message,
            "code": self.code,
            "details": self.details or None,
            "timestamp": datetime.now(UTC).isoformat(),
        }


class InvalidIdentifierError(StockConsensusError):
    code = ErrorCode.VALIDATION_ERROR
    http_status = 400


class SourceUnavailableError(StockConsensusError):
    """One collector failed. Never escapes a collector."""

    code = ErrorCode.SOURCE_UNAVAILABLE
    http_status = 502


class AggregationFailureError(StockConsensusError):
    """No collector produced usable data."""

    code = ErrorCode.AGGREGATION_FAILURE
    http_status = 502

    def __init__(
        self,
        message: str,
        canonical_record: CanonicalRecord | None = None,
        **details: Any,
    ) -> None:
        super().__init__(message, **details)
        self.canonical_record = canonical_record


class AgentFailureError(StockConsensusError):
    """Too few opinion agents succeeded for the configured quorum.

    The canonical record produced before the failure is still valid and is
    attached for reuse.
    """

    code = ErrorCode.AGENT_FAILURE
    http_status = 502

    def __init__(
        self,
        message: str,
        canonical_record: CanonicalRecord | None = None,
        **details: Any,
    ) -> None:
        super().__init__(message, **details)
        self.canonical_record = canonical_record


class OpinionParseError(StockConsensusError):
    """A raw opinion could not be normalized into an agent opinion."""

    code = ErrorCode.AGENT_FAILURE
    http_status = 502


class RateLimitExceededError(StockConsensusError):
    code = ErrorCode.RATE_LIMIT_EXCEEDED
    http_status = 429

    def __init__(self, message: str, admission: AdmissionResult, **details: Any) -> None:
        super().__init__(message, reset_in_seconds=admission.reset_in_seconds, **details)
        self.admission = admission


class ConfigurationError(StockConsensusError):
    """Required credentials or endpoints are missing."""

    code = ErrorCode.CONFIG_ERROR
    http_status = 500


class CallTimeoutError(StockConsensusError):
    code = ErrorCode.TIMEOUT_ERROR
    http_status = 504

"""Unit tests for the error taxonomy."""

import pytest

from stockconsensus.domain.exceptions import (
    AgentFailureError,
    AggregationFailureError,
    CallTimeoutError,
    ConfigurationError,
    ErrorCode,
    InvalidIdentifierError,
    RateLimitExceededError,
    SourceUnavailableError,
    StockConsensusError,
)
from stockconsensus.domain.models.rate_limit import AdmissionResult


@pytest.mark.unit
class TestErrorPayload:
    def test_payload_shape(self) -> None:
        """Test the structured failure body."""
        payload = ConfigurationError("Missing configuration", missing=["X"]).to_error_payload()
        assert payload["success"] is False
        assert payload["error"] == "Missing configuration"
        assert payload["code"] == ErrorCode.CONFIG_ERROR
        assert payload["details"] == {"missing": ["X"]}
        assert "T" in payload["timestamp"]

    def test_no_details_is_none(self) -> None:
        assert StockConsensusError("boom").to_error_payload()["details"] is None

    @pytest.mark.parametrize(
        ("error", "code", "status"),
        [
            (InvalidIdentifierError("x"), "VALIDATION_ERROR", 400),
            (SourceUnavailableError("x"), "SOURCE_UNAVAILABLE", 502),
            (AggregationFailureError("x"), "AGGREGATION_FAILURE", 502),
            (AgentFailureError("x"), "AGENT_FAILURE", 502),
            (ConfigurationError("x"), "CONFIG_ERROR", 500),
            (CallTimeoutError("x"), "TIMEOUT_ERROR", 504),
            (StockConsensusError("x"), "INTERNAL_ERROR", 500),
        ],
    )
    def test_codes_and_statuses(self, error: StockConsensusError, code: str, status: int) -> None:
        assert error.code == code
        assert error.http_status == status

    def test_rate_limit_carries_admission(self) -> None:
        admission = AdmissionResult(allowed=False, remaining=0, reset_in_seconds=42, reset_at=100)
        error = RateLimitExceededError("slow down", admission)
        assert error.http_status == 429
        assert error.code == "RATE_LIMIT_EXCEEDED"
        assert error.admission is admission
        assert error.details == {"reset_in_seconds": 42}

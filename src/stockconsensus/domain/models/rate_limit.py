"""Admission control models."""

from pydantic import Field

from stockconsensus.domain.models.base import Entity, ValueObject


class RateWindowState(Entity):
    """Per-caller fixed window. Mutated in place by the rate governor."""

    count: int = Field(..., ge=0)
    window_reset_at: float = Field(..., description="Unix time (seconds) the window ends")


class AdmissionResult(ValueObject):
    allowed: bool
    remaining: int = Field(..., ge=0)
    reset_in_seconds: int = Field(..., ge=0)
    reset_at: int = Field(..., description="Unix time (seconds) the window ends")

    def headers(self) -> dict[str, str]:
        """HTTP admission-control headers."""
        return {
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }

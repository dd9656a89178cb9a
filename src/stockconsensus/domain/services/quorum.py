"""Quorum policy shared by the aggregator and the consensus reducer."""

from __future__ import annotations

from pydantic import Field, model_validator

from stockconsensus.domain.models.base import ValueObject


class Quorum(ValueObject):
    """Minimum number of successful parallel calls (``required`` of ``total``)."""

    required: int = Field(..., ge=1)
    total: int = Field(..., ge=1)

    @model_validator(mode="after")
    def _check_bounds(self) -> Quorum:
        if self.required > self.total:
            raise ValueError(f"Quorum requires {self.required} of only {self.total} calls")
        return self

    @classmethod
    def all_of(cls, total: int) -> Quorum:
        return cls(required=total, total=total)

    @classmethod
    def any_of(cls, total: int) -> Quorum:
        return cls(required=1, total=total)

    def is_met(self, successes: int) -> bool:
        return successes >= self.required

    def __str__(self) -> str:
        return f"{self.required}-of-{self.total}"

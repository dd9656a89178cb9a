"""Instrument identifier value object."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import Field

from stockconsensus.domain.exceptions import InvalidIdentifierError
from stockconsensus.domain.models.base import ValueObject

DOMESTIC_PATTERN = re.compile(r"^[0-9]{4}$")
FOREIGN_PATTERN = re.compile(r"^[A-Za-z]{1,5}$")


class Market(str, Enum):
    """Market an identifier belongs to, derived from its shape."""

    JP = "JP"
    US = "US"


class Identifier(ValueObject):
    """A validated instrument code.

    Two shapes are accepted: 4-digit numeric codes (domestic market) and
    1-5 letter alphabetic tickers (foreign market). Construct through
    :meth:`parse` so that the shape check always runs.
    """

    code: str = Field(..., description="Normalized instrument code (upper-case)")
    market: Market = Field(..., description="Market derived from the code shape")

    @classmethod
    def parse(cls, raw: str) -> Identifier:
        """Validate and normalize a raw identifier string.

        Raises:
            InvalidIdentifierError: If the value matches neither accepted shape.
        """
        if not isinstance(raw, str) or not raw.strip():
            raise InvalidIdentifierError("Instrument identifier is required", value=raw)

        candidate = raw.strip()
        if DOMESTIC_PATTERN.match(candidate):
            return cls(code=candidate, market=Market.JP)
        if FOREIGN_PATTERN.match(candidate):
            return cls(code=candidate.upper(), market=Market.US)

        raise InvalidIdentifierError(
            "Invalid identifier format (domestic: 4 digits, foreign: 1-5 letters)",
            value=raw,
        )

    @staticmethod
    def is_valid(raw: str) -> bool:
        return isinstance(raw, str) and bool(
            DOMESTIC_PATTERN.match(raw.strip()) or FOREIGN_PATTERN.match(raw.strip())
        )

    def __str__(self) -> str:
        return self.code

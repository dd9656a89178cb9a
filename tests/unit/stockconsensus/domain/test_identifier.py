"""Unit tests for instrument identifier validation."""

import pytest

from stockconsensus.domain.exceptions import InvalidIdentifierError
from stockconsensus.domain.models.identifier import Identifier, Market


@pytest.mark.unit
class TestIdentifier:
    """Test Identifier.parse."""

    def test_four_digit_code_is_domestic(self) -> None:
        """Test that a 4-digit code maps to the JP market."""
        identifier = Identifier.parse("7203")
        assert identifier.code == "7203"
        assert identifier.market == Market.JP

    def test_letters_are_upper_cased_foreign_ticker(self) -> None:
        """Test that a lower-case ticker is normalized to upper case."""
        identifier = Identifier.parse("aapl")
        assert identifier.code == "AAPL"
        assert identifier.market == Market.US

    def test_surrounding_whitespace_is_trimmed(self) -> None:
        """Test that input is trimmed before matching."""
        assert Identifier.parse("  MSFT ").code == "MSFT"

    @pytest.mark.parametrize(
        "raw", ["", "   ", "123", "12345", "ABCDEF", "72O3", "BRK.B", "7203.T"]
    )
    def test_rejects_other_shapes(self, raw: str) -> None:
        """Test that anything but 4 digits or 1-5 letters is rejected."""
        with pytest.raises(InvalidIdentifierError) as exc_info:
            Identifier.parse(raw)
        assert exc_info.value.code == "VALIDATION_ERROR"
        assert exc_info.value.http_status == 400

    @pytest.mark.parametrize("raw", ["٧٢٠٣", "７２０３", "१२३४"])
    def test_rejects_non_ascii_digits(self, raw: str) -> None:
        """Test that only ASCII digits form a domestic code."""
        with pytest.raises(InvalidIdentifierError):
            Identifier.parse(raw)
        assert not Identifier.is_valid(raw)

    def test_is_valid(self) -> None:
        """Test the boolean shape check."""
        assert Identifier.is_valid("6758")
        assert Identifier.is_valid("T")
        assert not Identifier.is_valid("6758T")

    def test_identifier_is_immutable(self) -> None:
        """Test that an accepted identifier cannot be changed."""
        identifier = Identifier.parse("7203")
        with pytest.raises(ValueError):
            identifier.code = "9984"  # type: ignore[misc]

    def test_str_is_code(self) -> None:
        assert str(Identifier.parse("nvda")) == "NVDA"

"""Unit tests for opinion normalization."""

import pytest

from stockconsensus.domain.exceptions import OpinionParseError
from stockconsensus.domain.models.opinion import (
    AgentRole,
    ExtractionKind,
    PriceRange,
    RawOpinion,
    Recommendation,
)
from stockconsensus.domain.services.opinion_normalizer import (
    OpinionNormalizer,
    extract_json_object,
    scale_confidence,
)


def _raw(content: str = "", structured: dict | None = None) -> RawOpinion:
    return RawOpinion(
        agent_name="technical-analyst",
        role=AgentRole.TECHNICAL,
        content=content,
        structured=structured,
    )


@pytest.mark.unit
class TestOpinionNormalizer:
    """Test OpinionNormalizer.normalize."""

    def setup_method(self) -> None:
        self.normalizer = OpinionNormalizer()

    def test_structured_payload_is_parsed(self) -> None:
        """Test that schema fields are taken as parsed values."""
        opinion = self.normalizer.normalize(
            _raw(
                structured={
                    "recommendation": "buy",
                    "confidence": 80,
                    "target_price": {"low": 2400, "high": 2800},
                    "risks": ["Currency exposure", " "],
                    "rationale": "Uptrend intact",
                    "summary": "Constructive",
                }
            )
        )
        assert opinion.agent_name == "technical-analyst"
        assert opinion.domain_label == "technical"
        assert opinion.recommendation == Recommendation.BUY
        assert opinion.confidence == 0.8
        assert opinion.confidence_origin == ExtractionKind.PARSED
        assert opinion.target_price == PriceRange(low=2400, high=2800)
        assert opinion.risks == ["Currency exposure"]
        assert opinion.rationale == "Uptrend intact"
        assert opinion.summary == "Constructive"

    def test_fenced_json_in_content(self) -> None:
        content = 'My view:\n```json\n{"recommendation": "Hold", "confidence": 55}\n```\nThanks'
        opinion = self.normalizer.normalize(_raw(content))
        assert opinion.recommendation == Recommendation.HOLD
        assert opinion.confidence == 0.55

    def test_synonym_in_payload_falls_back(self) -> None:
        opinion = self.normalizer.normalize(
            _raw(structured={"recommendation": "Strong Buy", "confidence": "70%"})
        )
        assert opinion.recommendation == Recommendation.BUY
        assert opinion.confidence == 0.7

    def test_free_text_extraction(self) -> None:
        """Test the regular expression rules on free text."""
        content = (
            "Recommendation: SELL\n"
            "Confidence: 65%\n"
            "Target price range: ¥2,400 - ¥2,800 over the next quarter."
        )
        opinion = self.normalizer.normalize(_raw(content))
        assert opinion.recommendation == Recommendation.SELL
        assert opinion.confidence == 0.65
        assert opinion.confidence_origin == ExtractionKind.FALLBACK_PARSED
        assert opinion.target_price == PriceRange(low=2400, high=2800)

    def test_payload_confidence_is_always_percent(self) -> None:
        """Test that a payload confidence of 1 means one percent."""
        raw = _raw(structured={"recommendation": "buy", "confidence": 1})
        opinion = self.normalizer.normalize(raw)
        assert opinion.confidence == 0.01
        assert opinion.confidence_origin == ExtractionKind.PARSED

    def test_text_confidence_without_percent_sign(self) -> None:
        opinion = self.normalizer.normalize(_raw("Recommendation: buy. Confidence: 65"))
        assert opinion.confidence == 0.65
        assert opinion.confidence_origin == ExtractionKind.FALLBACK_PARSED

    def test_japanese_keyword(self) -> None:
        opinion = self.normalizer.normalize(_raw("総合判断: 買い"))
        assert opinion.recommendation == Recommendation.BUY

    def test_missing_values_are_not_invented(self) -> None:
        """Test that absent confidence and absent fields stay null."""
        opinion = self.normalizer.normalize(_raw("I would recommend hold for now."))
        assert opinion.recommendation == Recommendation.HOLD
        assert opinion.confidence is None
        assert opinion.confidence_origin == ExtractionKind.MISSING
        assert opinion.target_price is None
        assert opinion.risks == []
        assert opinion.rationale is None

    def test_target_range_string_in_payload(self) -> None:
        opinion = self.normalizer.normalize(
            _raw(structured={"recommendation": "sell", "targetRange": "150 to 130"})
        )
        assert opinion.target_price == PriceRange(low=130, high=150)

    def test_partial_target_kept(self) -> None:
        opinion = self.normalizer.normalize(
            _raw(structured={"recommendation": "buy", "target_price": {"low": None, "high": 300}})
        )
        assert opinion.target_price == PriceRange(low=None, high=300)
        assert not opinion.target_price.is_complete

    def test_risks_string_is_split(self) -> None:
        opinion = self.normalizer.normalize(
            _raw(structured={"recommendation": "hold", "risks": "FX; competition\nregulation"})
        )
        assert opinion.risks == ["FX", "competition", "regulation"]

    def test_no_recommendation_raises(self) -> None:
        with pytest.raises(OpinionParseError) as exc_info:
            self.normalizer.normalize(_raw("The outlook is unclear."))
        assert exc_info.value.code == "AGENT_FAILURE"


@pytest.mark.unit
class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(85, 0.85), (1, 0.01), (0.85, 0.0085), (100, 1.0), (150, 1.0), (-5, 0.0)],
    )
    def test_scale_confidence(self, value: float, expected: float) -> None:
        assert scale_confidence(value) == pytest.approx(expected)

    def test_extract_json_object_outermost_braces(self) -> None:
        assert extract_json_object('prefix {"a": {"b": 1}} suffix') == {"a": {"b": 1}}

    def test_extract_json_object_invalid(self) -> None:
        assert extract_json_object("no json here") is None
        assert extract_json_object("{not json}") is None
        assert extract_json_object('```json\n["a"]\n```') is None

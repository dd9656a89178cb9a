"""Unit tests for the multi-source aggregator."""

from __future__ import annotations

import asyncio

import pytest

from stockconsensus.domain.models.identifier import Identifier, Market
from stockconsensus.domain.models.record import (
    CanonicalRecord,
    FinancialMetrics,
    InstrumentRecord,
    NewsItem,
    PriceInfo,
    RecordMetadata,
    ReliabilityTier,
    SentimentSummary,
    SourceRecord,
    TechnicalIndicators,
)
from stockconsensus.domain.models.validation import ValidationResult
from stockconsensus.domain.ports.collectors import Collector, SourceDescriptor
from stockconsensus.domain.services.aggregator import DataAggregator, merge_confidence
from stockconsensus.domain.services.quorum import Quorum
from stockconsensus.domain.services.validator import RecordValidator


def _source(
    name: str,
    confidence: int = 80,
    tier: ReliabilityTier = ReliabilityTier.MEDIUM,
    success: bool = True,
    **groups: object,
) -> SourceRecord:
    return SourceRecord(
        identifier="7203",
        source_name=name,
        reliability_tier=tier,
        confidence=confidence,
        success=success,
        errors=[] if success else [f"{name}: upstream error"],
        metadata=RecordMetadata(identifier="7203", reliability_tier=tier) if success else None,
        **groups,  # type: ignore[arg-type]
    )


class FixedScoreValidator(RecordValidator):
    """Validator returning preset scores per source; canonical records score 100."""

    def __init__(self, scores: dict[str, int]) -> None:
        self._scores = scores

    def validate(self, record: InstrumentRecord) -> ValidationResult:
        score = self._scores.get(getattr(record, "source_name", ""), 100)
        return ValidationResult(is_valid=True, score=score)


class StubCollector(Collector):
    def __init__(
        self,
        name: str,
        record: SourceRecord | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self._descriptor = SourceDescriptor(
            source_name=name,
            url="https://example.com",
            priority=1,
            reliability_tier=ReliabilityTier.HIGH,
            supported_markets=frozenset({Market.JP, Market.US}),
            base_confidence=90,
        )
        self._record = record
        self._delay = delay
        self._error = error
        self.calls = 0

    @property
    def descriptor(self) -> SourceDescriptor:
        return self._descriptor

    async def _collect(self, identifier: Identifier) -> SourceRecord:
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        assert self._record is not None
        return self._record


@pytest.mark.unit
class TestMergeConfidence:
    """Test merge_confidence arithmetic."""

    def test_single_source(self) -> None:
        """Test (80 + 60) / 2 + 5."""
        assert merge_confidence([80], 60) == 75

    def test_two_sources(self) -> None:
        """Test ((70 + 75) / 2 + 80) / 2 + 10 rounded down from 86.25."""
        assert merge_confidence([70, 75], 80) == 86

    def test_rounds_half_up(self) -> None:
        """Test that 37.5 + 5 = 42.5 rounds to 43."""
        assert merge_confidence([75], 0) == 43

    def test_bonus_capped_and_result_clamped(self) -> None:
        assert merge_confidence([90] * 6, 100) == 100
        assert merge_confidence([0] * 6, 0) == 20

    def test_no_sources(self) -> None:
        assert merge_confidence([], 100) == 0


@pytest.mark.unit
class TestAggregate:
    """Test DataAggregator.aggregate."""

    def test_all_failed_yields_fully_null_record(self) -> None:
        """Test that zero successes give success=False, confidence 0 and null groups."""
        records = [_source("a", success=False), _source("b", success=False)]
        result = DataAggregator().aggregate(records, "7203")

        assert result.success is False
        assert result.confidence == 0
        assert result.sources_used == []
        assert result.errors
        assert "a: upstream error" in result.warnings
        canonical = result.canonical_record
        assert canonical.price_info == PriceInfo()
        assert canonical.financial_metrics == FinancialMetrics()
        assert canonical.technical_indicators == TechnicalIndicators()
        assert canonical.sentiment_summary == SentimentSummary()
        assert canonical.news_items == []
        dumped = canonical.model_dump()
        assert set(dumped["price_info"]) == set(PriceInfo.model_fields)
        assert all(value is None for value in dumped["price_info"].values())

    def test_no_records(self) -> None:
        result = DataAggregator().aggregate([], "7203")
        assert result.success is False
        assert result.confidence == 0

    def test_groups_selected_independently(self) -> None:
        """Test that each group comes from the best record that has it."""
        yahoo = _source(
            "Yahoo Finance",
            confidence=90,
            tier=ReliabilityTier.HIGH,
            price_info=PriceInfo(current_price=2500.0),
            financial_metrics=FinancialMetrics(per=10.5),
        )
        investing = _source(
            "Investing.com",
            confidence=75,
            price_info=PriceInfo(current_price=2490.0),
            technical_indicators=TechnicalIndicators(rsi=55.0),
        )
        failed = _source("Nikkei", success=False)

        result = DataAggregator().aggregate([failed, investing, yahoo], "7203")

        canonical = result.canonical_record
        assert result.success is True
        assert canonical.price_info.current_price == 2500.0
        assert canonical.financial_metrics.per == 10.5
        assert canonical.technical_indicators.rsi == 55.0
        assert canonical.sentiment_summary == SentimentSummary()
        assert set(result.sources_used) == {"Yahoo Finance", "Investing.com"}
        assert canonical.sources_used == result.sources_used
        assert canonical.metadata.identifier == "7203"
        assert canonical.metadata.sources == ["Investing.com", "Yahoo Finance"]
        assert "Nikkei: upstream error" in result.warnings
        assert 0 <= result.confidence <= 100
        assert canonical.merge_confidence == result.confidence
        assert result.confidence == merge_confidence(
            [75, 90], result.metadata["validation_score"]
        )

    def test_equal_combined_score_prefers_higher_tier(self) -> None:
        """Test that 90+70 vs 70+90 is decided by reliability tier."""
        first = _source(
            "first",
            confidence=90,
            tier=ReliabilityTier.MEDIUM,
            price_info=PriceInfo(current_price=100.0),
        )
        second = _source(
            "second",
            confidence=70,
            tier=ReliabilityTier.HIGH,
            price_info=PriceInfo(current_price=101.0),
        )
        aggregator = DataAggregator(validator=FixedScoreValidator({"first": 70, "second": 90}))

        result = aggregator.aggregate([first, second], "7203")

        assert result.canonical_record.price_info.current_price == 101.0
        assert result.sources_used == ["second"]

    def test_price_selected_independently_of_financial_metrics(self) -> None:
        """Test selection over (60, 80), (90, 70), (70, 90) confidence and score pairs."""
        records = [
            _source(
                "r1",
                confidence=60,
                price_info=PriceInfo(current_price=1.0),
                financial_metrics=FinancialMetrics(per=10.0),
            ),
            _source("r2", confidence=90, price_info=PriceInfo(current_price=2.0)),
            _source(
                "r3",
                confidence=70,
                price_info=PriceInfo(current_price=3.0),
                financial_metrics=FinancialMetrics(per=30.0),
            ),
        ]
        aggregator = DataAggregator(
            validator=FixedScoreValidator({"r1": 80, "r2": 70, "r3": 90})
        )

        result = aggregator.aggregate(records, "7203")

        assert result.canonical_record.price_info.current_price == 2.0
        assert result.canonical_record.financial_metrics.per == 30.0
        assert result.sources_used == ["r2", "r3"]

    def test_equal_score_and_tier_prefers_first_seen(self) -> None:
        first = _source("first", confidence=90, price_info=PriceInfo(current_price=100.0))
        second = _source("second", confidence=70, price_info=PriceInfo(current_price=101.0))
        aggregator = DataAggregator(validator=FixedScoreValidator({"first": 70, "second": 90}))

        result = aggregator.aggregate([first, second], "7203")

        assert result.canonical_record.price_info.current_price == 100.0

    def test_news_merged_across_sources(self) -> None:
        a = _source(
            "a",
            price_info=PriceInfo(current_price=1.0),
            news_items=[
                NewsItem(title="Shared headline", published_at="2025-01-01T00:00:00Z"),
                NewsItem(title="Only in a", published_at="2025-01-02T00:00:00Z"),
            ],
        )
        b = _source(
            "b",
            news_items=[
                NewsItem(title="shared HEADLINE", published_at="2025-01-05T00:00:00Z"),
                NewsItem(title="Only in b", published_at="2025-01-03T00:00:00Z"),
            ],
        )

        result = DataAggregator().aggregate([a, b], "7203")

        titles = [item.title for item in result.canonical_record.news_items]
        assert titles == ["Only in b", "Only in a", "Shared headline"]
        assert result.sources_used == ["a", "b"]

    def test_validation_errors_make_result_unsuccessful(self) -> None:
        """Test that a merged record without price fails validation but keeps data."""
        record = _source("a", financial_metrics=FinancialMetrics(per=12.0))
        result = DataAggregator().aggregate([record], "7203")

        assert result.success is False
        assert any("current_price" in error for error in result.errors)
        assert result.canonical_record.financial_metrics.per == 12.0
        assert result.confidence > 0

    def test_quorum_not_met(self) -> None:
        records = [
            _source("a", price_info=PriceInfo(current_price=1.0)),
            _source("b", success=False),
        ]
        aggregator = DataAggregator(quorum=Quorum(required=2, total=2))

        result = aggregator.aggregate(records, "7203")

        assert result.success is False
        assert result.confidence == 0
        assert "quorum 2-of-2 not met" in result.errors[0]
        assert isinstance(result.canonical_record, CanonicalRecord)


@pytest.mark.unit
class TestCollectAndAggregate:
    """Test the concurrent fan-out."""

    async def test_every_collector_is_called(self) -> None:
        record = _source("a", price_info=PriceInfo(current_price=10.0))
        collectors = [
            StubCollector("a", record=record),
            StubCollector("b", error=RuntimeError("boom")),
        ]
        aggregator = DataAggregator(collectors=collectors)

        result = await aggregator.collect_and_aggregate(Identifier.parse("7203"))

        assert all(c.calls == 1 for c in collectors)
        assert result.success is True
        assert result.sources_used == ["a"]
        assert "b: boom" in result.warnings

    async def test_slow_collector_times_out_without_aborting_merge(self) -> None:
        fast_record = _source("fast", price_info=PriceInfo(current_price=5.0))
        fast = StubCollector("fast", record=fast_record)
        slow = StubCollector("slow", record=_source("slow"), delay=5.0)
        aggregator = DataAggregator(collectors=[fast, slow], timeout_seconds=0.05)

        result = await aggregator.collect_and_aggregate(Identifier.parse("AAPL"))

        assert result.success is True
        assert result.canonical_record.price_info.current_price == 5.0
        assert any("slow: timed out" in warning for warning in result.warnings)

    async def test_collect_returns_records_in_collector_order(self) -> None:
        collectors = [
            StubCollector("a", record=_source("a"), delay=0.02),
            StubCollector("b", record=_source("b")),
        ]
        records = await DataAggregator(collectors=collectors).collect(Identifier.parse("7203"))
        assert [r.source_name for r in records] == ["a", "b"]

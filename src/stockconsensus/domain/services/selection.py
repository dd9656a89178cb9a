"""Per-field-group source selection policy.

``FIELD_GROUP_POLICY`` is the single place that decides how each field group
of the canonical record is produced.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from stockconsensus.domain.models.record import FieldGroup, NewsItem, SourceRecord

MAX_NEWS_ITEMS = 5


class SelectionStrategy(str, Enum):
    BEST_SCORED = "best_scored"
    """Take the group from the single best-scored record that has it."""

    MERGE_ALL = "merge_all"
    """Merge items from every record, deduplicate, keep the most recent."""


FIELD_GROUP_POLICY: dict[FieldGroup, SelectionStrategy] = {
    FieldGroup.PRICE_INFO: SelectionStrategy.BEST_SCORED,
    FieldGroup.FINANCIAL_METRICS: SelectionStrategy.BEST_SCORED,
    FieldGroup.TECHNICAL_INDICATORS: SelectionStrategy.BEST_SCORED,
    FieldGroup.NEWS_ITEMS: SelectionStrategy.MERGE_ALL,
    FieldGroup.SENTIMENT_SUMMARY: SelectionStrategy.BEST_SCORED,
}


@dataclass(frozen=True)
class Candidate:
    """A successful record together with its validation score and arrival order."""

    record: SourceRecord
    validation_score: int
    order: int

    @property
    def combined_score(self) -> int:
        return self.record.confidence + self.validation_score

    def sort_key(self) -> tuple[int, int, int]:
        return (-self.combined_score, -self.record.reliability_tier.rank, self.order)


def select_best(candidates: Iterable[Candidate]) -> Candidate | None:
    """Pick the candidate maximizing confidence + validation score.

    Ties go to the higher reliability tier, then to the first-seen record.
    """
    ranked = sorted(candidates, key=Candidate.sort_key)
    return ranked[0] if ranked else None


def _news_timestamp(item: NewsItem) -> datetime:
    if not item.published_at:
        return datetime.min.replace(tzinfo=UTC)
    try:
        parsed = datetime.fromisoformat(item.published_at.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=UTC)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def merge_news(records: Sequence[SourceRecord], limit: int = MAX_NEWS_ITEMS) -> list[NewsItem]:
    """Merge news from all records.

    Items are deduplicated by case-insensitive trimmed title (first occurrence
    wins), sorted newest first and truncated to ``limit``. Untitled items are
    dropped; items without a readable timestamp sort last.
    """
    seen: set[str] = set()
    unique: list[NewsItem] = []
    for record in records:
        for item in record.news_items or []:
            if not item.title or not item.title.strip():
                continue
            key = item.title.strip().lower()
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)

    unique.sort(key=_news_timestamp, reverse=True)
    return unique[:limit]

"""Normalization of raw agent output into structured opinions.

Each field is produced by an ordered list of extraction rules; the first rule
that matches wins. A schema-constrained payload yields ``Parsed`` values, free
text matched by regular expressions yields ``FallbackParsed`` values, and
anything unmatched stays ``Missing``. No numeric value is ever invented from
absent text.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Sequence
from typing import Any

import structlog

from stockconsensus.domain.exceptions import OpinionParseError
from stockconsensus.domain.models.opinion import (
    AgentOpinion,
    Extracted,
    ExtractionKind,
    PriceRange,
    RawOpinion,
    Recommendation,
)

logger = structlog.get_logger(__name__)

CANONICAL_TOKENS: dict[str, Recommendation] = {
    "buy": Recommendation.BUY,
    "sell": Recommendation.SELL,
    "hold": Recommendation.HOLD,
}

# Checked in this order: buy, sell, hold.
SYNONYMS: tuple[tuple[Recommendation, tuple[str, ...]], ...] = (
    (Recommendation.BUY, ("buy", "purchase", "accumulate", "outperform", "買い", "購入")),
    (Recommendation.SELL, ("sell", "divest", "underperform", "売り", "売却")),
    (Recommendation.HOLD, ("hold", "neutral", "wait and see", "保留", "中立", "様子見")),
)

EXPLICIT_RECOMMENDATION = re.compile(
    r"recommend(?:ation|s|ed)?\s*[:=\-]?\s*\**\s*(buy|sell|hold)\b", re.IGNORECASE
)
CONFIDENCE_IN_TEXT = re.compile(
    r"confidence\s*(?:level|score)?\s*[:=\-]?\s*(\d+(?:\.\d+)?)\s*%?", re.IGNORECASE
)
NUMBER = r"(\d[\d,]*(?:\.\d+)?)"
RANGE_SEPARATOR = r"\s*[^\d\s,.]{0,2}\s*(?:-|–|~|〜|～|to)\s*[^\d\s,.]{0,2}\s*"
PRICE_RANGE = re.compile(NUMBER + RANGE_SEPARATOR + NUMBER, re.IGNORECASE)
TARGET_RANGE_IN_TEXT = re.compile(
    r"target(?:\s*price)?(?:\s*range)?[^\d]{0,20}" + NUMBER + RANGE_SEPARATOR + NUMBER,
    re.IGNORECASE,
)


def extract_json_object(content: str) -> dict[str, Any] | None:
    """Return the outermost JSON object embedded in ``content``, if any."""
    fenced = re.search(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", content)
    if fenced:
        candidate = fenced.group(1)
    else:
        start, end = content.find("{"), content.rfind("}")
        if start == -1 or end <= start:
            return None
        candidate = content[start : end + 1]
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def scale_confidence(value: float) -> float:
    """Map a vendor confidence on the 0-100 scale onto [0, 1]."""
    return max(0.0, min(1.0, value / 100))


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().rstrip("%").replace(",", ""))
        except ValueError:
            return None
    return None


def _clean_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _parse_range_text(text: str) -> PriceRange | None:
    match = PRICE_RANGE.search(text)
    if not match:
        return None
    low, high = (float(g.replace(",", "")) for g in match.groups())
    return PriceRange(low=min(low, high), high=max(low, high))


Rule = Callable[[dict[str, Any] | None, str], Extracted[Any]]


def _first_match(
    rules: Sequence[Rule], payload: dict[str, Any] | None, text: str
) -> Extracted[Any]:
    for rule in rules:
        result = rule(payload, text)
        if not result.is_missing:
            return result
    return Extracted.missing()


# Recommendation rules


def _recommendation_from_payload(payload: dict[str, Any] | None, text: str) -> Extracted[Any]:
    value = _clean_text((payload or {}).get("recommendation"))
    if value and value.lower() in CANONICAL_TOKENS:
        return Extracted.parsed(CANONICAL_TOKENS[value.lower()])
    return Extracted.missing()


def _recommendation_synonym_in_payload(payload: dict[str, Any] | None, text: str) -> Extracted[Any]:
    value = _clean_text((payload or {}).get("recommendation"))
    return _keyword_search(value) if value else Extracted.missing()


def _recommendation_explicit_in_text(payload: dict[str, Any] | None, text: str) -> Extracted[Any]:
    match = EXPLICIT_RECOMMENDATION.search(text)
    if match:
        return Extracted.fallback(CANONICAL_TOKENS[match.group(1).lower()])
    return Extracted.missing()


def _recommendation_keyword_in_text(payload: dict[str, Any] | None, text: str) -> Extracted[Any]:
    return _keyword_search(text)


def _keyword_search(text: str) -> Extracted[Any]:
    lowered = text.lower()
    for recommendation, words in SYNONYMS:
        for word in words:
            if word.isascii():
                if re.search(rf"\b{re.escape(word)}\b", lowered):
                    return Extracted.fallback(recommendation)
            elif word in text:
                return Extracted.fallback(recommendation)
    return Extracted.missing()


RECOMMENDATION_RULES: tuple[Rule, ...] = (
    _recommendation_from_payload,
    _recommendation_synonym_in_payload,
    _recommendation_explicit_in_text,
    _recommendation_keyword_in_text,
)


# Confidence rules


def _confidence_from_payload(payload: dict[str, Any] | None, text: str) -> Extracted[Any]:
    value = _to_float((payload or {}).get("confidence"))
    if value is None:
        return Extracted.missing()
    return Extracted.parsed(scale_confidence(value))


def _confidence_in_text(payload: dict[str, Any] | None, text: str) -> Extracted[Any]:
    match = CONFIDENCE_IN_TEXT.search(text)
    if not match:
        return Extracted.missing()
    # A trailing percent sign is optional; the number is on the 0-100 scale either way.
    return Extracted.fallback(scale_confidence(float(match.group(1))))


CONFIDENCE_RULES: tuple[Rule, ...] = (_confidence_from_payload, _confidence_in_text)


# Target price rules


def _target_from_payload(payload: dict[str, Any] | None, text: str) -> Extracted[Any]:
    target = (payload or {}).get("target_price")
    if isinstance(target, dict):
        low, high = _to_float(target.get("low")), _to_float(target.get("high"))
        if low is not None or high is not None:
            return Extracted.parsed(PriceRange(low=low, high=high))
    return Extracted.missing()


def _target_range_string_in_payload(payload: dict[str, Any] | None, text: str) -> Extracted[Any]:
    payload = payload or {}
    price = payload.get("price")
    candidates = [
        payload.get("target_range"),
        payload.get("targetRange"),
        price.get("range") if isinstance(price, dict) else None,
        payload.get("target_price") if isinstance(payload.get("target_price"), str) else None,
    ]
    for candidate in candidates:
        if isinstance(candidate, str):
            parsed = _parse_range_text(candidate)
            if parsed:
                return Extracted.fallback(parsed)
    return Extracted.missing()


def _target_in_text(payload: dict[str, Any] | None, text: str) -> Extracted[Any]:
    match = TARGET_RANGE_IN_TEXT.search(text)
    if not match:
        return Extracted.missing()
    low, high = (float(g.replace(",", "")) for g in match.groups())
    return Extracted.fallback(PriceRange(low=min(low, high), high=max(low, high)))


TARGET_RULES: tuple[Rule, ...] = (
    _target_from_payload,
    _target_range_string_in_payload,
    _target_in_text,
)


def _risks(payload: dict[str, Any] | None) -> list[str]:
    risks = (payload or {}).get("risks")
    if isinstance(risks, list):
        return [r.strip() for r in risks if isinstance(r, str) and r.strip()]
    if isinstance(risks, str):
        return [part.strip() for part in re.split(r"[;\n]", risks) if part.strip()]
    return []


class OpinionNormalizer:
    """Turns a raw agent opinion into an :class:`AgentOpinion`."""

    def normalize(self, raw: RawOpinion) -> AgentOpinion:
        """Normalize one raw opinion.

        Raises:
            OpinionParseError: If no recommendation can be extracted.
        """
        payload = raw.structured if raw.structured is not None else extract_json_object(raw.content)
        text = raw.content or ""

        recommendation = _first_match(RECOMMENDATION_RULES, payload, text)
        if recommendation.is_missing:
            raise OpinionParseError(
                f"{raw.agent_name}: no recommendation found in agent output",
                agent=raw.agent_name,
            )

        confidence = _first_match(CONFIDENCE_RULES, payload, text)
        target = _first_match(TARGET_RULES, payload, text)

        opinion = AgentOpinion(
            agent_name=raw.agent_name,
            domain_label=raw.role.value,
            recommendation=recommendation.value,
            confidence=None if confidence.is_missing else float(confidence.value),
            confidence_origin=confidence.kind,
            target_price=None if target.is_missing else target.value,
            risks=_risks(payload),
            rationale=_clean_text((payload or {}).get("rationale"))
            or _clean_text((payload or {}).get("reason")),
            summary=_clean_text((payload or {}).get("summary")),
        )

        if recommendation.kind is not ExtractionKind.PARSED:
            logger.debug(
                "Recommendation extracted by fallback rule",
                agent=raw.agent_name,
                recommendation=opinion.recommendation.value,
            )
        return opinion

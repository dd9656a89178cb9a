"""Domain services: validation, aggregation, consensus and admission control."""

from stockconsensus.domain.services.aggregator import DataAggregator, merge_confidence
from stockconsensus.domain.services.consensus import ConsensusReducer, vote
from stockconsensus.domain.services.opinion_normalizer import OpinionNormalizer
from stockconsensus.domain.services.quorum import Quorum
from stockconsensus.domain.services.rate_governor import RateGovernor
from stockconsensus.domain.services.selection import FIELD_GROUP_POLICY, SelectionStrategy
from stockconsensus.domain.services.validator import RecordValidator

__all__ = [
    "DataAggregator",
    "merge_confidence",
    "ConsensusReducer",
    "vote",
    "OpinionNormalizer",
    "Quorum",
    "RateGovernor",
    "FIELD_GROUP_POLICY",
    "SelectionStrategy",
    "RecordValidator",
]

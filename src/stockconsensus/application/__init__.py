"""Application layer: use-case orchestration."""

from stockconsensus.application.pipeline import AnalysisPipeline

__all__ = ["AnalysisPipeline"]

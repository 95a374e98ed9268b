"""Pipeline engine exports."""

from .pipeline import AnalysisResults, TopologyPipeline

__all__ = ["AnalysisResults", "TopologyPipeline"]

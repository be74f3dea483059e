"""Orchestration layer for the reliability workflow."""

from .pipeline import ReliabilityPipeline

__all__ = ["ReliabilityPipeline"]

"""Reliability engines."""

from .base_engine import BaseEngine
from .criticality import CriticalityScorer
from .rcm_decision import RcmDecisionEngine
from .reliability import ReliabilityModel
from .maintenance import MaintenanceOptimizer

__all__ = [
    "BaseEngine",
    "CriticalityScorer",
    "RcmDecisionEngine",
    "ReliabilityModel",
    "MaintenanceOptimizer",
]

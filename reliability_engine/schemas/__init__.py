"""Pydantic schemas for the reliability engine."""

from .failure_mode import (
    FailureMode,
    Criticality,
    CriticalityIndex,
    CriticalityScore,
    ConsequenceType,
)
from .rcm import (
    ConsequenceCategory,
    ConsequenceFlags,
    MaintenanceStrategy,
    MaintenanceTask,
    ProfileRecommendation,
    RcmDecision,
    TaskType,
)
from .ram import (
    FailurePattern,
    RamMetric,
    RedundancyTopology,
    ReliabilityCurve,
    SystemRamResult,
    WeibullDataPoint,
    WeibullFit,
    WeibullParameters,
)
from .maintenance import MaintenanceOptimization, SimulationResult
from .policy import EnginePolicy

__all__ = [
    "FailureMode",
    "Criticality",
    "CriticalityIndex",
    "CriticalityScore",
    "ConsequenceType",
    "ConsequenceCategory",
    "ConsequenceFlags",
    "MaintenanceStrategy",
    "MaintenanceTask",
    "ProfileRecommendation",
    "RcmDecision",
    "TaskType",
    "FailurePattern",
    "RamMetric",
    "RedundancyTopology",
    "ReliabilityCurve",
    "SystemRamResult",
    "WeibullDataPoint",
    "WeibullFit",
    "WeibullParameters",
    "MaintenanceOptimization",
    "SimulationResult",
    "EnginePolicy",
]

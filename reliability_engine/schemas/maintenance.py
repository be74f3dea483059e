"""Maintenance interval optimisation and simulation schemas."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from .rcm import MaintenanceStrategy


class CostPoint(BaseModel):
    """Total cost at one candidate interval."""

    model_config = ConfigDict(frozen=True)

    interval: float
    cost: float


class IntervalAlternative(BaseModel):
    """A second way of picking the interval, reported for comparison."""

    model_config = ConfigDict(frozen=True)

    name: str
    interval: float
    formula: str
    description: str
    target: Optional[float] = None


class MaintenanceOptimization(BaseModel):
    """Recommended PM interval (or run-to-failure) with supporting numbers."""

    model_config = ConfigDict(frozen=True)

    optimal_interval: float = Field(..., description="inf for run-to-failure")
    optimal_cost: float
    strategy: MaintenanceStrategy
    reason: str
    decision_rule: str
    mtbf: float
    reliability_at_interval: Optional[float] = None
    cost_curve: list[CostPoint] = Field(default_factory=list)
    alternatives: list[IntervalAlternative] = Field(default_factory=list)


class HistogramBin(BaseModel):
    model_config = ConfigDict(frozen=True)

    bin_start: float
    bin_end: float
    count: int


class SimulationResult(BaseModel):
    """Averages over Monte Carlo runs of one maintenance policy."""

    model_config = ConfigDict(frozen=True)

    runs: int
    pm_interval: Optional[float]
    average_cost: float
    average_failures: float
    average_pm_actions: float
    histogram: list[HistogramBin]
    seed: Optional[int] = None

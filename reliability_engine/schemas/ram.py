"""Reliability, availability and maintainability (RAM) schemas."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class FailurePattern(str, Enum):
    """Hazard shape implied by the Weibull shape parameter."""

    EARLY_LIFE = "early-life"
    RANDOM = "random"
    WEAR_OUT = "wear-out"


class RedundancyTopology(str, Enum):
    """How unit-level results compose into a system result."""

    SERIES = "None/Series"
    ACTIVE = "Active N+M"
    STANDBY = "Standby"
    LOAD_SHARING = "Load-Sharing"
    VOTING_2OO3 = "2-of-3 Voting"


class WeibullParameters(BaseModel):
    """Weibull shape/scale with the time frame they apply to."""

    model_config = ConfigDict(frozen=True)

    beta: float = Field(..., description="Shape parameter")
    eta: float = Field(..., description="Scale parameter (characteristic life)")
    time_unit: str = Field(default="hours")
    horizon: Optional[float] = Field(None, description="Time horizon of interest")


class ReliabilityCurve(BaseModel):
    """Sampled reliability functions over [0, horizon]."""

    model_config = ConfigDict(frozen=True)

    beta: float
    eta: float
    time_unit: str
    horizon: float
    resolution: int

    times: list[float]
    reliability: list[float]
    failure_rate: list[float]
    failure_probability: list[float]
    mtbf: float

    def points(self) -> list[dict]:
        """Row-oriented view, one dict per sample."""
        return [
            {
                "time": t,
                "reliability": r,
                "failure_rate": h,
                "failure_probability": f,
            }
            for t, r, h, f in zip(
                self.times, self.reliability, self.failure_rate, self.failure_probability
            )
        ]


class WeibullDataPoint(BaseModel):
    """One sorted observation with its plotting position."""

    model_config = ConfigDict(frozen=True)

    time: float
    rank: Optional[float] = Field(None, description="Median rank; None for suspensions")
    censored: bool = False


class WeibullFit(BaseModel):
    """Parameters recovered from failure history by rank regression."""

    model_config = ConfigDict(frozen=True)

    beta: float
    eta: float
    r2: float
    b10: float
    b50: float
    pattern: FailurePattern
    n_failures: int
    n_censored: int = 0
    data_points: list[WeibullDataPoint] = Field(default_factory=list)

    def parameters(self, time_unit: str = "hours", horizon: Optional[float] = None) -> WeibullParameters:
        return WeibullParameters(beta=self.beta, eta=self.eta, time_unit=time_unit, horizon=horizon)


class RamMetric(BaseModel):
    """Per-component RAM snapshot. Missing values are derived where possible."""

    model_config = ConfigDict(frozen=True)

    component_id: Optional[str] = Field(None)
    failure_rate: Optional[float] = Field(None, gt=0)
    mtbf: Optional[float] = Field(None, gt=0)
    mttr: Optional[float] = Field(None, ge=0)
    availability: Optional[float] = Field(None, ge=0.0, le=1.0)
    reliability: Optional[float] = Field(None, ge=0.0, le=1.0, description="R at the horizon")
    horizon: Optional[float] = Field(None, gt=0)
    beta: Optional[float] = Field(None, gt=0)
    eta: Optional[float] = Field(None, gt=0)
    time_unit: str = Field(default="hours")


class SystemRamResult(BaseModel):
    """System-level RAM result for one redundancy group."""

    model_config = ConfigDict(frozen=True)

    topology: RedundancyTopology
    unit_count: int
    required_units: int
    system_reliability: Optional[float] = None
    system_availability: float
    mtbf: Optional[float] = None
    mttr: Optional[float] = None
    failure_rate: Optional[float] = None
    horizon: Optional[float] = None

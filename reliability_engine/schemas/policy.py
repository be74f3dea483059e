"""Engine policy schema - the auditable thresholds behind every decision."""

from typing import Optional
from pydantic import BaseModel, Field, model_validator


class RpnBands(BaseModel):
    """Lower RPN bounds of each criticality tier (inclusive)."""

    critical_min: int = Field(default=200, ge=1, le=1000)
    high_min: int = Field(default=100, ge=1, le=1000)
    medium_min: int = Field(default=50, ge=1, le=1000)

    @model_validator(mode="after")
    def _check_descending(self) -> "RpnBands":
        if not self.critical_min > self.high_min > self.medium_min:
            raise ValueError(
                "RPN bands must be strictly descending: "
                f"critical_min={self.critical_min}, high_min={self.high_min}, "
                f"medium_min={self.medium_min}"
            )
        return self


class BetaBand(BaseModel):
    """Shape parameter band classified as a random (constant hazard) pattern."""

    lower: float = Field(default=0.95, gt=0)
    upper: float = Field(default=1.05, gt=0)

    @model_validator(mode="after")
    def _check_order(self) -> "BetaBand":
        if self.lower > 1.0 or self.upper < 1.0:
            raise ValueError(f"Random band [{self.lower}, {self.upper}] must contain 1.0")
        return self


class TaskDefaults(BaseModel):
    """Placeholder interval and effectiveness for one task type."""

    interval: Optional[float] = Field(None, gt=0, description="None for unscheduled tasks")
    interval_unit: str = Field(default="months")
    effectiveness: int = Field(default=80, ge=0, le=100)


class ProfileCostThresholds(BaseModel):
    """Cost of failure above which a profile recommendation turns preventive."""

    predictable: float = Field(default=5000.0, ge=0, description="For failures that give warning")
    unpredictable: float = Field(default=3000.0, ge=0, description="For failures that give no warning")


def _default_task_defaults() -> dict[str, TaskDefaults]:
    return {
        "Preventive": TaskDefaults(interval=12, interval_unit="months", effectiveness=85),
        "Predictive": TaskDefaults(interval=3, interval_unit="months", effectiveness=90),
        "Failure-Finding": TaskDefaults(interval=6, interval_unit="months", effectiveness=95),
        "Run-to-Failure": TaskDefaults(interval=None, interval_unit="none", effectiveness=0),
        "Redesign": TaskDefaults(interval=None, interval_unit="none", effectiveness=100),
    }


class EnginePolicy(BaseModel):
    """All configurable thresholds used by the engines."""

    name: str = Field(default="default")
    version: str = Field(default="1.0.0")

    rpn_bands: RpnBands = Field(default_factory=RpnBands)
    random_beta_band: BetaBand = Field(default_factory=BetaBand)

    # Ascending assumed cost; the first feasible option wins.
    strategy_cost_rank: list[str] = Field(
        default=["pm", "cm", "ff", "rtf"],
        description="Option codes ordered by ascending assumed cost",
    )

    task_defaults: dict[str, TaskDefaults] = Field(default_factory=_default_task_defaults)
    profile_cost_thresholds: ProfileCostThresholds = Field(default_factory=ProfileCostThresholds)

    target_reliability: float = Field(
        default=0.90,
        gt=0.0,
        lt=1.0,
        description="Reliability at which a derived preventive interval is set",
    )
    target_availability: float = Field(
        default=0.99,
        gt=0.0,
        lt=1.0,
        description="Tolerated availability of a hidden function between tests",
    )

    @model_validator(mode="after")
    def _check_cost_rank(self) -> "EnginePolicy":
        if sorted(self.strategy_cost_rank) != ["cm", "ff", "pm", "rtf"]:
            raise ValueError(
                "strategy_cost_rank must be a permutation of pm, cm, ff, rtf; "
                f"got {self.strategy_cost_rank}"
            )
        missing = set(_default_task_defaults()) - set(self.task_defaults)
        if missing:
            raise ValueError(f"task_defaults missing entries for: {sorted(missing)}")
        return self

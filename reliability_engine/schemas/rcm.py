"""RCM decision schemas."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ConsequenceCategory(str, Enum):
    """Tagged variant computed once from the raw consequence flags."""

    HIDDEN = "hidden"
    SAFETY_OR_ENVIRONMENTAL = "safety_or_environmental"
    OPERATIONAL = "operational"
    ECONOMIC = "economic"
    NONE = "none"


class MaintenanceStrategy(str, Enum):
    """Strategy selected for a failure mode."""

    PREVENTIVE = "Preventive Maintenance"
    PREDICTIVE = "Predictive Maintenance"
    FAILURE_FINDING = "Failure-Finding"
    RUN_TO_FAILURE = "Run-to-Failure"
    REDESIGN = "Redesign"


class TaskType(str, Enum):
    """Type of a recommended or recorded maintenance task."""

    PREDICTIVE = "Predictive"
    PREVENTIVE = "Preventive"
    FAILURE_FINDING = "Failure-Finding"
    RUN_TO_FAILURE = "Run-to-Failure"
    REDESIGN = "Redesign"


class ConsequenceFlags(BaseModel):
    """Consequence classification and technical feasibility of one failure mode."""

    model_config = ConfigDict(frozen=True)

    hidden_function: bool = Field(default=False, description="Function is not visible in normal operation")
    safety_consequence: bool = Field(default=False)
    environmental_consequence: bool = Field(default=False)
    operational_consequence: bool = Field(default=False)
    economic_consequence: bool = Field(default=False)
    failure_evident: bool = Field(
        default=True,
        description="Operators would notice the failure on its own",
    )

    # Technical feasibility
    pm_feasible: bool = Field(default=False, description="Scheduled restoration/replacement works")
    cm_feasible: bool = Field(default=False, description="Condition monitoring can catch it")
    ff_feasible: bool = Field(default=False, description="A functional test can reveal it")
    rtf_acceptable: bool = Field(default=False, description="Running to failure is tolerable")


class MaintenanceTask(BaseModel):
    """A recommended (or manually recorded) maintenance action."""

    model_config = ConfigDict(frozen=True)

    task_type: TaskType
    interval: Optional[float] = Field(None, gt=0, description="None for unscheduled tasks")
    interval_unit: str = Field(default="months")
    effectiveness: int = Field(default=80, ge=0, le=100)
    rationale: str = Field(..., description="Which decision branch produced the task")
    derived_from_weibull: bool = Field(default=False)


class RcmDecision(BaseModel):
    """Outcome of the RCM decision procedure."""

    model_config = ConfigDict(frozen=True)

    strategy: MaintenanceStrategy
    decision_path: str
    category: ConsequenceCategory
    recommended_tasks: list[MaintenanceTask] = Field(..., min_length=1)
    guidance: list[str] = Field(default_factory=list)
    flags: ConsequenceFlags


class ProfileRecommendation(BaseModel):
    """Strategy recommended from an asset's criticality and failure profile."""

    model_config = ConfigDict(frozen=True)

    failure_mode_id: str
    strategy: MaintenanceStrategy
    condition_based: bool = Field(
        default=False,
        description="Basic condition monitoring rather than a full predictive programme",
    )
    decision_rule: str
    task_recommendations: list[str] = Field(..., min_length=1)
    high_criticality: bool
    is_predictable: bool
    cost_of_failure: float = Field(..., ge=0)

"""Failure mode and FMECA criticality schemas."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class CriticalityIndex(str, Enum):
    """Four-tier criticality classification, ordered by rank."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _INDEX_RANK[self]


_INDEX_RANK = {
    CriticalityIndex.LOW: 0,
    CriticalityIndex.MEDIUM: 1,
    CriticalityIndex.HIGH: 2,
    CriticalityIndex.CRITICAL: 3,
}


class ConsequenceType(str, Enum):
    """Optional consequence tag stored with a criticality record."""

    SAFETY = "safety"
    ENVIRONMENTAL = "environmental"
    OPERATIONAL = "operational"
    ECONOMIC = "economic"
    HIDDEN = "hidden"


class FailureMode(BaseModel):
    """A specific way a component function fails."""

    failure_mode_id: str = Field(..., description="Unique identifier")
    description: str = Field(..., description="What fails")
    cause: str = Field(default="", description="Why it fails")

    local_effect: Optional[str] = Field(None, description="Effect at the item itself")
    system_effect: Optional[str] = Field(None, description="Effect on the parent system")
    end_effect: Optional[str] = Field(None, description="Effect on the plant or mission")

    detection_method: Optional[str] = Field(None)
    is_predictable: Optional[bool] = Field(None)
    cost_of_failure: Optional[float] = Field(None, ge=0)

    # Legacy records hang directly off an asset
    component_id: Optional[int] = Field(None)
    asset_id: Optional[int] = Field(None)


class CriticalityScore(BaseModel):
    """Result of scoring one set of ratings."""

    model_config = ConfigDict(frozen=True)

    severity: int
    occurrence: int
    detection: int
    rpn: int
    criticality_index: CriticalityIndex


class Criticality(BaseModel):
    """Persistable FMECA rating for one failure mode."""

    model_config = ConfigDict(frozen=True)

    failure_mode_id: str
    severity: int = Field(..., ge=1, le=10)
    occurrence: int = Field(..., ge=1, le=10)
    detection: int = Field(..., ge=1, le=10)
    rpn: int = Field(..., ge=1, le=1000)
    criticality_index: CriticalityIndex
    consequence_type: Optional[ConsequenceType] = None

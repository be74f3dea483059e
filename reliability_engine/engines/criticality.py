"""FMECA criticality scoring.

Computes the Risk Priority Number (severity x occurrence x detection) and
maps it onto the four-tier criticality index configured in the policy.
Also guards the one-record-per-failure-mode invariant for callers that
persist the scores.
"""

from typing import Any, Iterable, Optional, Union
import numbers

from reliability_engine.errors import InvariantViolation, ValidationError
from reliability_engine.schemas.failure_mode import (
    ConsequenceType,
    Criticality,
    CriticalityIndex,
    CriticalityScore,
    FailureMode,
)
from .base_engine import BaseEngine


RATING_MIN = 1
RATING_MAX = 10


def validate_rating(name: str, value: Any) -> int:
    """Return the rating as an int, or raise ValidationError."""
    # bool is an int subclass; a checkbox value is never a rating
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(
            f"{name} must be an integer between {RATING_MIN} and {RATING_MAX}",
            field=name,
            value=value,
        )
    if isinstance(value, numbers.Integral):
        rating = int(value)
    elif float(value).is_integer():
        rating = int(value)
    else:
        raise ValidationError(
            f"{name} must be a whole number, got {value}",
            field=name,
            value=value,
        )
    if not RATING_MIN <= rating <= RATING_MAX:
        raise ValidationError(
            f"{name} must be between {RATING_MIN} and {RATING_MAX}, got {rating}",
            field=name,
            value=value,
        )
    return rating


class CriticalityScorer(BaseEngine):
    """Scores failure modes and classifies them by RPN."""

    name = "CriticalityScorer"
    description = "FMECA Risk Priority Number and criticality index"

    def classify(self, rpn: int) -> CriticalityIndex:
        """Map an RPN onto the policy's criticality tiers."""
        bands = self.policy.rpn_bands
        if rpn >= bands.critical_min:
            return CriticalityIndex.CRITICAL
        if rpn >= bands.high_min:
            return CriticalityIndex.HIGH
        if rpn >= bands.medium_min:
            return CriticalityIndex.MEDIUM
        return CriticalityIndex.LOW

    def score(self, severity: int, occurrence: int, detection: int) -> CriticalityScore:
        """Compute the RPN and criticality index for one set of ratings."""
        s = validate_rating("severity", severity)
        o = validate_rating("occurrence", occurrence)
        d = validate_rating("detection", detection)

        rpn = s * o * d
        index = self.classify(rpn)
        self.log(f"S={s} O={o} D={d} -> RPN={rpn} ({index.value})")

        return CriticalityScore(
            severity=s,
            occurrence=o,
            detection=d,
            rpn=rpn,
            criticality_index=index,
        )

    def create_record(
        self,
        failure_mode: Union[str, FailureMode],
        severity: int,
        occurrence: int,
        detection: int,
        existing: Iterable[Criticality] = (),
        consequence_type: Optional[ConsequenceType] = None,
    ) -> Criticality:
        """Create the criticality record for a failure mode.

        Raises:
            InvariantViolation: if ``existing`` already holds a record for
                this failure mode. Use ``update_record`` instead.
        """
        if isinstance(failure_mode, FailureMode):
            failure_mode_id = failure_mode.failure_mode_id
        else:
            failure_mode_id = failure_mode

        for record in existing:
            if record.failure_mode_id == failure_mode_id:
                self.log(
                    f"Refused second criticality record for failure mode {failure_mode_id}",
                    "error",
                )
                raise InvariantViolation(
                    f"Failure mode {failure_mode_id} already has a criticality record; "
                    "update it instead of creating another",
                    field="failure_mode_id",
                    value=failure_mode_id,
                )

        result = self.score(severity, occurrence, detection)
        return Criticality(
            failure_mode_id=failure_mode_id,
            severity=result.severity,
            occurrence=result.occurrence,
            detection=result.detection,
            rpn=result.rpn,
            criticality_index=result.criticality_index,
            consequence_type=consequence_type,
        )

    def update_record(
        self,
        record: Criticality,
        severity: Optional[int] = None,
        occurrence: Optional[int] = None,
        detection: Optional[int] = None,
        consequence_type: Optional[ConsequenceType] = None,
    ) -> Criticality:
        """Return a rescored copy of ``record``; omitted ratings are kept."""
        result = self.score(
            record.severity if severity is None else severity,
            record.occurrence if occurrence is None else occurrence,
            record.detection if detection is None else detection,
        )
        return record.model_copy(
            update={
                "severity": result.severity,
                "occurrence": result.occurrence,
                "detection": result.detection,
                "rpn": result.rpn,
                "criticality_index": result.criticality_index,
                "consequence_type": consequence_type or record.consequence_type,
            }
        )

    def rank(self, records: Iterable[Criticality]) -> list[Criticality]:
        """Order records for an FMECA worksheet, highest risk first."""
        return sorted(
            records,
            key=lambda r: (-r.rpn, -r.severity, r.failure_mode_id),
        )

    def summarize(self, records: Iterable[Criticality]) -> dict[str, int]:
        """Count records per criticality tier."""
        counts = {index.value: 0 for index in CriticalityIndex}
        for record in records:
            counts[record.criticality_index.value] += 1
        return counts

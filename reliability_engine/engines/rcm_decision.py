"""RCM maintenance strategy decision procedure.

Consequence flags are reduced once to a ConsequenceCategory and the category
is dispatched to one branch handler. Branch precedence encodes RCM doctrine:
hidden functions first, then safety and environmental consequences, which
dominate operational and economic cost considerations.
"""

from typing import Optional, Union

import pydantic

from reliability_engine.errors import ValidationError
from reliability_engine.schemas.failure_mode import (
    ConsequenceType,
    Criticality,
    CriticalityIndex,
    CriticalityScore,
    FailureMode,
)
from reliability_engine.schemas.rcm import (
    ConsequenceCategory,
    ConsequenceFlags,
    MaintenanceStrategy,
    MaintenanceTask,
    ProfileRecommendation,
    RcmDecision,
    TaskType,
)
from reliability_engine.schemas.ram import WeibullFit, WeibullParameters
from reliability_engine.tools import weibull as weibull_math
from .base_engine import BaseEngine


# option code -> (strategy, task type)
OPTIONS = {
    "pm": (MaintenanceStrategy.PREVENTIVE, TaskType.PREVENTIVE),
    "cm": (MaintenanceStrategy.PREDICTIVE, TaskType.PREDICTIVE),
    "ff": (MaintenanceStrategy.FAILURE_FINDING, TaskType.FAILURE_FINDING),
    "rtf": (MaintenanceStrategy.RUN_TO_FAILURE, TaskType.RUN_TO_FAILURE),
    "redesign": (MaintenanceStrategy.REDESIGN, TaskType.REDESIGN),
}

PATH_PREFIXES = {
    ConsequenceCategory.HIDDEN: "hidden",
    ConsequenceCategory.SAFETY_OR_ENVIRONMENTAL: "evident-safety",
    ConsequenceCategory.OPERATIONAL: "evident-operational",
    ConsequenceCategory.ECONOMIC: "evident-economic",
    ConsequenceCategory.NONE: "no-consequence",
}

BRANCH_RATIONALE = {
    "hidden-ff": "Hidden failure; a scheduled functional test can reveal it",
    "hidden-pm": "Hidden failure with no feasible functional test; scheduled restoration prevents it",
    "hidden-cm": "Hidden failure with no feasible functional test; condition monitoring catches it",
    "hidden-redesign": "Hidden failure that cannot be tested or prevented; redesign is mandatory",
    "evident-safety-pm": "Safety or environmental consequence; scheduled restoration prevents the failure",
    "evident-safety-cm": "Safety or environmental consequence; condition monitoring gives warning before failure",
    "evident-safety-redesign": "Safety or environmental consequence with no effective proactive task; redesign is mandatory",
    "evident-operational-pm": "Operational consequence; scheduled restoration is the cheapest feasible task",
    "evident-operational-cm": "Operational consequence; condition monitoring is the cheapest feasible task",
    "evident-operational-ff": "Operational consequence; a functional check is the cheapest feasible task",
    "evident-operational-rtf": "Operational consequence with no feasible task; running to failure is accepted",
    "evident-operational-redesign": "Operational consequence with no feasible task and run-to-failure not accepted",
    "evident-economic-rtf": "Economic consequence only; running to failure is accepted",
    "evident-economic-pm": "Economic consequence; run-to-failure not accepted, scheduled restoration is cheapest",
    "evident-economic-cm": "Economic consequence; run-to-failure not accepted, condition monitoring is cheapest",
    "evident-economic-ff": "Economic consequence; run-to-failure not accepted, a functional check is cheapest",
    "evident-economic-redesign": "Economic consequence with no feasible task and run-to-failure not accepted",
    "no-consequence-rtf": "No consequence of failure; run to failure",
}

STRATEGY_GUIDANCE = {
    MaintenanceStrategy.PREDICTIVE: [
        "Implement condition monitoring to detect early signs of failure",
        "Develop threshold limits for key parameters indicating degradation",
        "Create response procedures for different severity levels of degradation",
    ],
    MaintenanceStrategy.PREVENTIVE: [
        "Establish time-based maintenance intervals",
        "Develop detailed maintenance procedures for each task",
        "Track effectiveness and adjust intervals based on results",
    ],
    MaintenanceStrategy.FAILURE_FINDING: [
        "Define a functional test that proves the protective function still works",
        "Record every test result to refine the test interval",
    ],
    MaintenanceStrategy.RUN_TO_FAILURE: [
        "Ensure spare parts are available for quick replacement",
        "Document repair procedures to minimize downtime",
    ],
    MaintenanceStrategy.REDESIGN: [
        "Analyze failure modes to identify opportunities for design improvements",
        "Consider redundant systems to improve reliability",
        "Evaluate alternative technologies or materials",
    ],
}

SAFETY_GUIDANCE = [
    "Develop emergency response procedures for safety-critical failures",
    "Implement additional safety controls and monitoring",
]

ENVIRONMENTAL_GUIDANCE = [
    "Confirm containment and reporting procedures for environmental releases",
]

# (strategy, condition based, decision rule, tasks) per asset profile
PROFILE_OUTCOMES = {
    "predictable-high": (
        MaintenanceStrategy.PREDICTIVE,
        False,
        "Predictable failure on a high-criticality asset",
        [
            "Implement condition monitoring to detect early signs of failure",
            "Develop threshold limits for key parameters indicating degradation",
            "Create response procedures for different severity levels of degradation",
            "Train staff on proper use of predictive technologies",
        ],
    ),
    "predictable-costly": (
        MaintenanceStrategy.PREVENTIVE,
        False,
        "Predictable failure whose cost exceeds the preventive threshold",
        [
            "Establish time-based maintenance intervals",
            "Develop detailed maintenance procedures for each task",
            "Create checklist for preventive maintenance activities",
        ],
    ),
    "predictable-cheap": (
        MaintenanceStrategy.PREDICTIVE,
        True,
        "Predictable failure with a low cost of failure",
        [
            "Implement basic condition monitoring",
            "Establish threshold alerts for maintenance actions",
            "Develop response procedures for alerts",
        ],
    ),
    "unpredictable-high": (
        MaintenanceStrategy.REDESIGN,
        False,
        "Unpredictable failure on a high-criticality asset",
        [
            "Analyze failure modes to identify opportunities for design improvements",
            "Consider redundant systems to improve reliability",
            "Evaluate alternative technologies or materials",
            "Conduct engineering analysis to address root causes of failures",
        ],
    ),
    "unpredictable-costly": (
        MaintenanceStrategy.PREVENTIVE,
        False,
        "Unpredictable failure whose cost exceeds the preventive threshold",
        [
            "Establish conservative time-based maintenance intervals",
            "Document detailed maintenance procedures",
            "Track effectiveness and adjust intervals based on results",
        ],
    ),
    "unpredictable-cheap": (
        MaintenanceStrategy.RUN_TO_FAILURE,
        False,
        "Unpredictable failure with a low cost of failure",
        [
            "Ensure spare parts are available for quick replacement",
            "Document repair procedures to minimize downtime",
            "Train staff on quick response and repair techniques",
        ],
    ),
}

REACTIVE_PRACTICE_TASKS = [
    "Transition from reactive to planned maintenance approach",
    "Document all failures to build historical data for analysis",
]

WEAR_TASKS = [
    "Implement lubrication program to reduce wear-related failures",
    "Consider surface treatments or hardening to improve wear resistance",
]


def categorize(flags: ConsequenceFlags) -> ConsequenceCategory:
    """Reduce the raw flags to one consequence category."""
    if flags.hidden_function and not flags.failure_evident:
        return ConsequenceCategory.HIDDEN
    if flags.safety_consequence or flags.environmental_consequence:
        return ConsequenceCategory.SAFETY_OR_ENVIRONMENTAL
    if flags.operational_consequence:
        return ConsequenceCategory.OPERATIONAL
    if flags.economic_consequence:
        return ConsequenceCategory.ECONOMIC
    return ConsequenceCategory.NONE


class RcmDecisionEngine(BaseEngine):
    """Selects a maintenance strategy and task list for one failure mode."""

    name = "RcmDecisionEngine"
    description = "RCM decision tree over consequence and feasibility flags"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._handlers = {
            ConsequenceCategory.HIDDEN: self._decide_hidden,
            ConsequenceCategory.SAFETY_OR_ENVIRONMENTAL: self._decide_safety,
            ConsequenceCategory.OPERATIONAL: self._decide_operational,
            ConsequenceCategory.ECONOMIC: self._decide_economic,
            ConsequenceCategory.NONE: self._decide_no_consequence,
        }

    def decide(
        self,
        flags: Union[ConsequenceFlags, dict],
        criticality: Optional[Union[CriticalityScore, Criticality]] = None,
        weibull: Optional[Union[WeibullParameters, WeibullFit]] = None,
        time_unit: Optional[str] = None,
    ) -> RcmDecision:
        """Run the decision tree.

        Args:
            flags: Consequence and feasibility flags
            criticality: Optional FMECA result, quoted in the task rationale
            weibull: Optional Weibull parameters used to derive task intervals
                instead of the policy placeholders
            time_unit: Unit of the Weibull time scale (defaults to the
                parameters' own unit, or hours for a fit)

        Returns:
            RcmDecision with strategy, decision path and at least one task
        """
        if isinstance(flags, dict):
            try:
                flags = ConsequenceFlags(**flags)
            except pydantic.ValidationError as e:
                error = e.errors()[0]
                raise ValidationError(
                    f"Invalid consequence flags: {error['msg']}",
                    field="flags",
                    value=".".join(str(part) for part in error["loc"]),
                ) from e

        category = categorize(flags)
        choice = self._handlers[category](flags)
        decision_path = f"{PATH_PREFIXES[category]}-{choice}"
        strategy, task_type = OPTIONS[choice]
        self.log(f"{category.value} -> {decision_path} ({strategy.value})")

        task = self._build_task(task_type, decision_path, criticality, weibull, time_unit)
        guidance = self._build_guidance(strategy, flags, weibull)

        return RcmDecision(
            strategy=strategy,
            decision_path=decision_path,
            category=category,
            recommended_tasks=[task],
            guidance=guidance,
            flags=flags,
        )

    def recommend_from_profile(
        self,
        failure_mode: Union[FailureMode, dict],
        criticality: Union[CriticalityIndex, CriticalityScore, Criticality, str],
        current_practice: str = "",
    ) -> ProfileRecommendation:
        """Recommend a strategy from the asset profile alone.

        A quick screen for assets that have not been through the full
        decision tree: it looks at asset criticality, whether the failure
        gives warning (``is_predictable``) and its cost. Unknown
        predictability counts as unpredictable and an unknown cost as zero.

        Args:
            failure_mode: The failure mode being screened
            criticality: Asset criticality; High and Critical count as high
            current_practice: Free-text description of today's maintenance,
                e.g. "reactive" or "run to failure"

        Returns:
            ProfileRecommendation with strategy and task recommendations
        """
        if isinstance(failure_mode, dict):
            try:
                failure_mode = FailureMode(**failure_mode)
            except pydantic.ValidationError as e:
                error = e.errors()[0]
                raise ValidationError(
                    f"Invalid failure mode: {error['msg']}",
                    field="failure_mode",
                    value=".".join(str(part) for part in error["loc"]),
                ) from e

        index = self._criticality_index(criticality)
        high = index.rank >= CriticalityIndex.HIGH.rank
        predictable = bool(failure_mode.is_predictable)
        cost = failure_mode.cost_of_failure or 0.0

        thresholds = self.policy.profile_cost_thresholds
        threshold = thresholds.predictable if predictable else thresholds.unpredictable
        if high:
            level = "high"
        elif cost > threshold:
            level = "costly"
        else:
            level = "cheap"
        key = f"{'predictable' if predictable else 'unpredictable'}-{level}"
        strategy, condition_based, rule, tasks = PROFILE_OUTCOMES[key]
        tasks = list(tasks)

        practice = (current_practice or "").lower()
        if "reactive" in practice or "run to fail" in practice:
            tasks.extend(REACTIVE_PRACTICE_TASKS)
        if "wear" in f"{failure_mode.description} {failure_mode.cause}".lower():
            tasks.extend(WEAR_TASKS)
        if self._has_safety_consequence(failure_mode, criticality):
            tasks.extend(SAFETY_GUIDANCE)

        self.log(
            f"Profile {failure_mode.failure_mode_id}: {index.value}, predictable={predictable}, "
            f"cost={cost:g} -> {strategy.value}"
        )
        return ProfileRecommendation(
            failure_mode_id=failure_mode.failure_mode_id,
            strategy=strategy,
            condition_based=condition_based,
            decision_rule=rule,
            task_recommendations=tasks,
            high_criticality=high,
            is_predictable=predictable,
            cost_of_failure=cost,
        )

    def _criticality_index(self, criticality) -> CriticalityIndex:
        if isinstance(criticality, (CriticalityScore, Criticality)):
            return criticality.criticality_index
        if isinstance(criticality, CriticalityIndex):
            return criticality
        if isinstance(criticality, str):
            for index in CriticalityIndex:
                if index.value.lower() == criticality.strip().lower():
                    return index
        raise ValidationError(
            "Criticality must be one of Low, Medium, High or Critical",
            field="criticality",
            value=criticality,
        )

    def _has_safety_consequence(self, failure_mode: FailureMode, criticality) -> bool:
        if isinstance(criticality, Criticality) and criticality.consequence_type == ConsequenceType.SAFETY:
            return True
        effects = (failure_mode.local_effect, failure_mode.system_effect, failure_mode.end_effect)
        return any("safety" in effect.lower() for effect in effects if effect)

    # -- branch handlers -------------------------------------------------

    def _feasible(self, flags: ConsequenceFlags, option: str) -> bool:
        return {
            "pm": flags.pm_feasible,
            "cm": flags.cm_feasible,
            "ff": flags.ff_feasible,
            "rtf": flags.rtf_acceptable,
        }[option]

    def _cheapest(self, flags: ConsequenceFlags, candidates: set[str]) -> Optional[str]:
        for option in self.policy.strategy_cost_rank:
            if option in candidates and self._feasible(flags, option):
                return option
        return None

    def _decide_hidden(self, flags: ConsequenceFlags) -> str:
        if flags.ff_feasible:
            return "ff"
        if not flags.pm_feasible and not flags.cm_feasible:
            return "redesign"
        return self._cheapest(flags, {"pm", "cm"})

    def _decide_safety(self, flags: ConsequenceFlags) -> str:
        # rtf_acceptable never applies to this branch
        if flags.pm_feasible:
            return "pm"
        if flags.cm_feasible:
            return "cm"
        return "redesign"

    def _decide_operational(self, flags: ConsequenceFlags) -> str:
        choice = self._cheapest(flags, {"pm", "cm", "ff"})
        if choice is not None:
            return choice
        return "rtf" if flags.rtf_acceptable else "redesign"

    def _decide_economic(self, flags: ConsequenceFlags) -> str:
        if flags.rtf_acceptable:
            return "rtf"
        return self._cheapest(flags, {"pm", "cm", "ff"}) or "redesign"

    def _decide_no_consequence(self, flags: ConsequenceFlags) -> str:
        return "rtf"

    # -- outputs -----------------------------------------------------------

    def _derived_interval(
        self,
        task_type: TaskType,
        weibull: Union[WeibullParameters, WeibullFit],
    ) -> Optional[float]:
        beta, eta = weibull.beta, weibull.eta
        weibull_math.validate_parameters(beta, eta)
        if task_type == TaskType.PREVENTIVE:
            return weibull_math.time_at_reliability(beta, eta, self.policy.target_reliability)
        if task_type == TaskType.PREDICTIVE:
            # inspect at half the warning window
            return weibull_math.time_at_reliability(beta, eta, self.policy.target_reliability) / 2.0
        if task_type == TaskType.FAILURE_FINDING:
            unavailability = 1.0 - self.policy.target_availability
            return 2.0 * unavailability * weibull_math.mtbf(beta, eta)
        return None

    def _build_task(
        self,
        task_type: TaskType,
        decision_path: str,
        criticality: Optional[Union[CriticalityScore, Criticality]],
        weibull: Optional[Union[WeibullParameters, WeibullFit]],
        time_unit: Optional[str],
    ) -> MaintenanceTask:
        defaults = self.policy.task_defaults[task_type.value]
        interval = defaults.interval
        interval_unit = defaults.interval_unit
        derived = False

        if weibull is not None:
            derived_interval = self._derived_interval(task_type, weibull)
            if derived_interval is not None:
                interval = derived_interval
                interval_unit = time_unit or getattr(weibull, "time_unit", None) or "hours"
                derived = True

        rationale = f"{BRANCH_RATIONALE[decision_path]} (decision path: {decision_path})"
        if criticality is not None:
            rationale += (
                f"; criticality {criticality.criticality_index.value} "
                f"(RPN {criticality.rpn})"
            )
        if derived:
            rationale += f"; interval derived from Weibull beta={weibull.beta:.3g}, eta={weibull.eta:.4g}"

        return MaintenanceTask(
            task_type=task_type,
            interval=interval,
            interval_unit=interval_unit,
            effectiveness=defaults.effectiveness,
            rationale=rationale,
            derived_from_weibull=derived,
        )

    def _build_guidance(
        self,
        strategy: MaintenanceStrategy,
        flags: ConsequenceFlags,
        weibull: Optional[Union[WeibullParameters, WeibullFit]],
    ) -> list[str]:
        guidance = list(STRATEGY_GUIDANCE[strategy])
        if flags.safety_consequence:
            guidance.extend(SAFETY_GUIDANCE)
        if flags.environmental_consequence:
            guidance.extend(ENVIRONMENTAL_GUIDANCE)
        if (
            weibull is not None
            and strategy == MaintenanceStrategy.PREVENTIVE
            and weibull.beta <= 1.0
        ):
            guidance.append(
                "Shape parameter beta <= 1 means time-based replacement will not "
                "reduce the failure rate; confirm the preventive task is justified"
            )
        return guidance

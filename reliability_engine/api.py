"""Call contracts consumed by the application layer.

Each function builds a fresh engine, runs one synchronous computation on its
explicit inputs and returns plain dicts. Errors from
``reliability_engine.errors`` propagate unchanged.
"""

from typing import Any, Optional, Sequence, Union

from config.settings import get_settings
from reliability_engine.engines import (
    CriticalityScorer,
    MaintenanceOptimizer,
    RcmDecisionEngine,
    ReliabilityModel,
)
from reliability_engine.schemas.failure_mode import CriticalityIndex, CriticalityScore, FailureMode
from reliability_engine.schemas.policy import EnginePolicy
from reliability_engine.schemas.ram import RamMetric, RedundancyTopology, WeibullParameters
from reliability_engine.schemas.rcm import ConsequenceFlags
from reliability_engine.tools import weibull


def score_criticality(
    severity: int,
    occurrence: int,
    detection: int,
    policy: Optional[EnginePolicy] = None,
) -> dict[str, Any]:
    """RPN and criticality index for one failure mode."""
    return CriticalityScorer(policy=policy).score(severity, occurrence, detection).model_dump()


def decide_strategy(
    flags: Union[ConsequenceFlags, dict],
    criticality: Optional[Union[CriticalityScore, dict]] = None,
    weibull_parameters: Optional[Union[WeibullParameters, dict]] = None,
    policy: Optional[EnginePolicy] = None,
) -> dict[str, Any]:
    """Maintenance strategy, decision path and recommended tasks."""
    if isinstance(criticality, dict):
        criticality = CriticalityScore(**criticality)
    if isinstance(weibull_parameters, dict):
        weibull_parameters = WeibullParameters(**weibull_parameters)
    decision = RcmDecisionEngine(policy=policy).decide(
        flags,
        criticality=criticality,
        weibull=weibull_parameters,
    )
    return decision.model_dump()


def recommend_from_profile(
    failure_mode: Union[FailureMode, dict],
    criticality: Union[CriticalityIndex, str],
    current_practice: str = "",
    policy: Optional[EnginePolicy] = None,
) -> dict[str, Any]:
    """Strategy screen from asset criticality, predictability and cost of failure."""
    recommendation = RcmDecisionEngine(policy=policy).recommend_from_profile(
        failure_mode,
        criticality,
        current_practice=current_practice,
    )
    return recommendation.model_dump()


def evaluate_reliability(
    beta: float,
    eta: float,
    time_unit: str = "hours",
    horizon: Optional[float] = None,
    resolution: Optional[int] = None,
    policy: Optional[EnginePolicy] = None,
) -> dict[str, Any]:
    """Sampled reliability curve and MTBF.

    ``resolution`` falls back to the configured default curve resolution.
    """
    if resolution is None:
        resolution = get_settings().default_curve_resolution
    curve = ReliabilityModel(policy=policy).evaluate(beta, eta, time_unit, horizon, resolution)
    return {
        "curve": curve.points(),
        "mtbf": curve.mtbf,
        "reliability_at_horizon": curve.reliability[-1],
        "time_unit": curve.time_unit,
        "horizon": curve.horizon,
        "resolution": curve.resolution,
    }


def fit_weibull(
    observations: Sequence[float],
    censored_flags: Optional[Sequence[bool]] = None,
    policy: Optional[EnginePolicy] = None,
) -> dict[str, Any]:
    """Beta, eta, R-squared, B10/B50 life and failure pattern."""
    return ReliabilityModel(policy=policy).fit(observations, censored_flags).model_dump()


def compose_system(
    components: Sequence[Union[RamMetric, dict]],
    topology: Union[str, RedundancyTopology] = RedundancyTopology.SERIES,
    required: Optional[int] = None,
    horizon: Optional[float] = None,
    policy: Optional[EnginePolicy] = None,
) -> dict[str, Any]:
    """System reliability, availability, MTBF and MTTR for one redundancy group."""
    result = ReliabilityModel(policy=policy).compose(components, topology, required=required, horizon=horizon)
    return result.model_dump()


def b_life(beta: float, eta: float, percentage: float) -> float:
    """Time by which ``percentage`` percent of units have failed."""
    weibull.validate_parameters(beta, eta)
    return weibull.b_life(beta, eta, percentage)


def optimize_maintenance_interval(
    beta: float,
    eta: float,
    pm_cost: float,
    failure_cost: float,
    horizon: float,
    max_downtime: Optional[float] = None,
    target_reliability: Optional[float] = None,
    policy: Optional[EnginePolicy] = None,
) -> dict[str, Any]:
    """Cost-optimal PM interval or a run-to-failure recommendation."""
    return MaintenanceOptimizer(policy=policy).optimize_interval(
        beta,
        eta,
        pm_cost,
        failure_cost,
        horizon,
        max_downtime=max_downtime,
        target_reliability=target_reliability,
    ).model_dump()


def simulate_maintenance(
    beta: float,
    eta: float,
    runs: int,
    horizon: float,
    pm_cost: float,
    failure_cost: float,
    pm_interval: Optional[float] = None,
    seed: Optional[int] = None,
    policy: Optional[EnginePolicy] = None,
) -> dict[str, Any]:
    """Monte Carlo cost and failure estimate for one maintenance policy."""
    settings = get_settings()
    return MaintenanceOptimizer(policy=policy).simulate(
        beta,
        eta,
        runs,
        horizon,
        pm_cost,
        failure_cost,
        pm_interval=pm_interval,
        seed=settings.simulation_seed if seed is None else seed,
        bins=settings.simulation_histogram_bins,
    ).model_dump()

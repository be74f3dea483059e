"""Maintenance interval optimisation and Monte Carlo simulation.

Works from Weibull parameters, usually fitted from TBF/TTF history: time to
failure for the first failure after installation, time between failures for
the ones after it.
"""

from typing import Optional
import math

import numpy as np
from scipy import special

from reliability_engine.errors import ValidationError
from reliability_engine.schemas.maintenance import (
    CostPoint,
    HistogramBin,
    IntervalAlternative,
    MaintenanceOptimization,
    SimulationResult,
)
from reliability_engine.schemas.rcm import MaintenanceStrategy
from reliability_engine.tools import weibull
from .base_engine import BaseEngine


COST_CURVE_POINTS = 50
# Upper bound on renewals (failures plus PM actions) one simulate() call may draw.
MAX_SIMULATED_EVENTS = 2_000_000
# Beyond this much tolerated downtime (hours) random failures may run to failure.
LIMITED_DOWNTIME_HOURS = 24.0

RELIABILITY_THRESHOLD_FORMULA = "t = eta * (-ln(R))^(1/beta)"


def validate_costs(pm_cost: float, failure_cost: float) -> None:
    if pm_cost is None or math.isnan(pm_cost) or pm_cost < 0:
        raise ValidationError(
            "Preventive maintenance cost must be a non-negative number",
            field="pm_cost",
            value=pm_cost,
        )
    if failure_cost is None or math.isnan(failure_cost) or failure_cost <= 0:
        raise ValidationError(
            "Corrective maintenance cost must be a positive number",
            field="failure_cost",
            value=failure_cost,
        )


def validate_horizon(horizon: float) -> None:
    if horizon is None or math.isnan(horizon) or horizon <= 0:
        raise ValidationError("Time horizon must be a positive number", field="horizon", value=horizon)


def optimal_pm_interval(beta: float, eta: float) -> float:
    """Analytical PM interval eta * (1 - (1/beta)^(1/beta))^(1/beta).

    Infinite for beta <= 1, where replacing early never lowers the hazard.
    """
    weibull.validate_parameters(beta, eta)
    if beta <= 1:
        return math.inf
    return eta * math.pow(1 - math.pow(1 / beta, 1 / beta), 1 / beta)


def total_cost(
    interval: float,
    beta: float,
    eta: float,
    pm_cost: float,
    failure_cost: float,
    horizon: float,
) -> float:
    """Expected maintenance cost over the horizon for a PM interval.

    An infinite interval means run-to-failure: horizon / MTBF failures.
    """
    if interval <= 0:
        return math.inf
    if math.isinf(interval):
        return failure_cost * horizon / weibull.mtbf(beta, eta)

    pm_actions = math.floor(horizon / interval)
    expected_failures = pm_actions * weibull.failure_probability(interval, beta, eta)
    return pm_actions * pm_cost + expected_failures * failure_cost


def mean_cycle_length(beta: float, eta: float, pm_interval: Optional[float] = None) -> float:
    """Mean time between renewals under age replacement at ``pm_interval``.

    integral_0^T R(t) dt = MTBF * P(1/beta, (T/eta)^beta); MTBF without PM.
    """
    mean_life = weibull.mtbf(beta, eta)
    if pm_interval is None or math.isinf(pm_interval):
        return mean_life
    return mean_life * float(special.gammainc(1 / beta, np.power(pm_interval / eta, beta)))


class MaintenanceOptimizer(BaseEngine):
    """PM interval optimisation and policy simulation."""

    name = "MaintenanceOptimizer"
    description = "Cost-based PM interval selection and Monte Carlo simulation"

    def _cost_curve(self, beta, eta, pm_cost, failure_cost, horizon) -> list[CostPoint]:
        # intervals past the horizon schedule no PM and would cost nothing
        step = min(2 * eta, horizon) / COST_CURVE_POINTS
        return [
            CostPoint(
                interval=i * step,
                cost=total_cost(i * step, beta, eta, pm_cost, failure_cost, horizon),
            )
            for i in range(1, COST_CURVE_POINTS + 1)
        ]

    def _threshold_alternative(self, beta, eta, target: float, description: str) -> IntervalAlternative:
        return IntervalAlternative(
            name="Reliability Threshold Approach",
            interval=weibull.time_at_reliability(beta, eta, target),
            formula=RELIABILITY_THRESHOLD_FORMULA,
            description=description,
            target=target,
        )

    def optimize_interval(
        self,
        beta: float,
        eta: float,
        pm_cost: float,
        failure_cost: float,
        horizon: float,
        max_downtime: Optional[float] = None,
        target_reliability: Optional[float] = None,
    ) -> MaintenanceOptimization:
        """Pick a PM interval, or run-to-failure.

        Args:
            beta, eta: Weibull parameters
            pm_cost: Cost of one preventive action
            failure_cost: Cost of one corrective action
            horizon: Planning horizon
            max_downtime: Maximum acceptable downtime in hours (None = no limit)
            target_reliability: Reliability for the threshold alternative
                (policy target when omitted)
        """
        weibull.validate_parameters(beta, eta)
        validate_costs(pm_cost, failure_cost)
        validate_horizon(horizon)
        if max_downtime is not None and max_downtime < 0:
            raise ValidationError("Maximum downtime must be non-negative", field="max_downtime", value=max_downtime)
        target = target_reliability or self.policy.target_reliability

        mean_life = weibull.mtbf(beta, eta)

        # Zero tolerance: PM regardless of beta
        if max_downtime == 0:
            interval = mean_life * 0.5
            self.log(f"Zero downtime tolerance -> PM at 0.5 x MTBF = {interval:.4g}")
            return MaintenanceOptimization(
                optimal_interval=interval,
                optimal_cost=total_cost(interval, beta, eta, pm_cost, failure_cost, horizon),
                strategy=MaintenanceStrategy.PREVENTIVE,
                reason="Zero tolerance for downtime requires preventive maintenance before failure occurs",
                decision_rule="Zero downtime tolerance overrides the beta-based decision",
                mtbf=mean_life,
                reliability_at_interval=weibull.reliability(interval, beta, eta),
                cost_curve=self._cost_curve(beta, eta, pm_cost, failure_cost, horizon),
                alternatives=[
                    IntervalAlternative(
                        name="Cost-Based Approach with Zero Downtime Constraint",
                        interval=interval,
                        formula="Interval = MTBF x 0.5",
                        description="Conservative PM interval at half the MTBF",
                    ),
                    self._threshold_alternative(
                        beta, eta, 0.95, "PM interval where reliability stays at 95% or higher"
                    ),
                ],
            )

        # Limited downtime with random/early failures: PM anyway, scaled to the tolerance
        if max_downtime is not None and max_downtime <= LIMITED_DOWNTIME_HOURS and beta <= 1:
            factor = max(0.6, 1 - max_downtime / LIMITED_DOWNTIME_HOURS)
            interval = mean_life * factor
            threshold_target = max(0.8, 1 - max_downtime / (2 * LIMITED_DOWNTIME_HOURS))
            availability_target = 1 - max_downtime / (LIMITED_DOWNTIME_HOURS * 30)
            self.log(f"Limited downtime ({max_downtime} h), beta={beta:.3g} -> PM at {factor:.2f} x MTBF")
            return MaintenanceOptimization(
                optimal_interval=interval,
                optimal_cost=total_cost(interval, beta, eta, pm_cost, failure_cost, horizon),
                strategy=MaintenanceStrategy.PREVENTIVE,
                reason="Despite random failures (beta <= 1), limited acceptable downtime requires preventive maintenance",
                decision_rule="Limited downtime tolerance (<= 24 hours) overrides the beta-based decision",
                mtbf=mean_life,
                reliability_at_interval=weibull.reliability(interval, beta, eta),
                cost_curve=self._cost_curve(beta, eta, pm_cost, failure_cost, horizon),
                alternatives=[
                    IntervalAlternative(
                        name="Modified Cost-Based Approach",
                        interval=interval,
                        formula=f"Interval = MTBF x {factor:.2f}",
                        description=f"Adjusted for limited downtime ({max_downtime} hours)",
                    ),
                    self._threshold_alternative(
                        beta, eta, threshold_target, "PM interval that keeps the required reliability"
                    ),
                    IntervalAlternative(
                        name="Availability Maximization",
                        interval=mean_life * availability_target,
                        formula="Interval = MTBF x target availability",
                        description="Interval meeting the monthly availability target",
                        target=availability_target,
                    ),
                ],
            )

        if beta <= 1:
            cost = total_cost(math.inf, beta, eta, pm_cost, failure_cost, horizon)
            self.log(f"beta={beta:.3g} <= 1 -> run-to-failure")
            return MaintenanceOptimization(
                optimal_interval=math.inf,
                optimal_cost=cost,
                strategy=MaintenanceStrategy.RUN_TO_FAILURE,
                reason="For beta <= 1 failures occur early or randomly, making preventive maintenance suboptimal",
                decision_rule="When beta <= 1 and downtime is tolerable, run-to-failure is usually cheaper",
                mtbf=mean_life,
                cost_curve=[CostPoint(interval=eta, cost=cost)],
            )

        curve = self._cost_curve(beta, eta, pm_cost, failure_cost, horizon)
        best = min(curve, key=lambda point: point.cost)
        interval, cost = best.interval, best.cost

        analytical = optimal_pm_interval(beta, eta)
        analytical_cost = total_cost(analytical, beta, eta, pm_cost, failure_cost, horizon)
        if analytical <= horizon and analytical_cost < cost:
            interval, cost = analytical, analytical_cost

        self.log(f"Wear-out (beta={beta:.3g}) -> PM every {interval:.4g} at cost {cost:.4g}")
        return MaintenanceOptimization(
            optimal_interval=interval,
            optimal_cost=cost,
            strategy=MaintenanceStrategy.PREVENTIVE,
            reason="For beta > 1 wear-out failures are predictable, making preventive maintenance optimal",
            decision_rule="When beta > 1 the component wears out, favouring preventive maintenance",
            mtbf=mean_life,
            reliability_at_interval=weibull.reliability(interval, beta, eta),
            cost_curve=curve,
            alternatives=[
                IntervalAlternative(
                    name="Cost-Based Approach",
                    interval=interval,
                    formula="min over t of PM actions x (PM cost + F(t) x failure cost)",
                    description="Minimises total cost over the horizon",
                ),
                self._threshold_alternative(
                    beta, eta, target, "PM interval where reliability drops to the target"
                ),
            ],
        )

    def simulate(
        self,
        beta: float,
        eta: float,
        runs: int,
        horizon: float,
        pm_cost: float,
        failure_cost: float,
        pm_interval: Optional[float] = None,
        seed: Optional[int] = None,
        bins: int = 20,
    ) -> SimulationResult:
        """Monte Carlo estimate of cost and failures for one policy.

        With ``pm_interval`` the item is renewed at every PM (age replacement)
        or at failure, whichever comes first; without it the item runs to
        failure and is renewed on each failure.
        """
        weibull.validate_parameters(beta, eta)
        validate_costs(pm_cost, failure_cost)
        validate_horizon(horizon)
        if isinstance(runs, bool) or not isinstance(runs, int) or runs <= 0:
            raise ValidationError("Number of simulation runs must be a positive integer", field="runs", value=runs)
        if pm_interval is not None and (math.isnan(pm_interval) or pm_interval <= 0):
            raise ValidationError(
                "Preventive maintenance interval must be a positive number",
                field="pm_interval",
                value=pm_interval,
            )

        cycle = mean_cycle_length(beta, eta, pm_interval)
        expected_events = math.inf if cycle <= 0 else runs * horizon / cycle
        if expected_events > MAX_SIMULATED_EVENTS:
            field, value = ("pm_interval", pm_interval) if pm_interval is not None else ("horizon", horizon)
            raise ValidationError(
                f"Simulation would draw about {expected_events:.3g} renewals "
                f"(limit {MAX_SIMULATED_EVENTS}); shorten the horizon or lengthen the intervals",
                field=field,
                value=value,
            )

        rng = np.random.default_rng(seed)
        failure_times: list[float] = []
        total_failures = 0
        total_pm = 0
        total_spent = 0.0

        for _ in range(runs):
            time = 0.0
            while True:
                ttf = float(weibull.inverse_cdf(rng.random(), beta, eta))
                if pm_interval is not None and ttf >= pm_interval:
                    if time + pm_interval >= horizon:
                        break
                    time += pm_interval
                    total_pm += 1
                    total_spent += pm_cost
                    continue
                if time + ttf >= horizon:
                    break
                time += ttf
                total_failures += 1
                total_spent += failure_cost
                failure_times.append(time)

        counts, edges = np.histogram(failure_times, bins=bins, range=(0.0, horizon))
        histogram = [
            HistogramBin(bin_start=float(edges[i]), bin_end=float(edges[i + 1]), count=int(counts[i]))
            for i in range(len(counts))
        ]
        self.log(
            f"Simulated {runs} runs (pm_interval={pm_interval}): "
            f"{total_failures / runs:.3f} failures/run"
        )

        return SimulationResult(
            runs=runs,
            pm_interval=pm_interval,
            average_cost=total_spent / runs,
            average_failures=total_failures / runs,
            average_pm_actions=total_pm / runs,
            histogram=histogram,
            seed=seed,
        )

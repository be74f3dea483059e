"""Weibull reliability model.

Three entry points:
- evaluate: closed-form R(t), h(t), F(t) and MTBF sampled over a horizon
- fit: beta/eta from failure history by median-rank regression
- compose: per-component RAM metrics folded into a system result under a
  redundancy topology
"""

from typing import Any, Optional, Sequence, Union
import math

import numpy as np
import pydantic

from reliability_engine.errors import ValidationError
from reliability_engine.schemas.ram import (
    RamMetric,
    RedundancyTopology,
    ReliabilityCurve,
    SystemRamResult,
    WeibullDataPoint,
    WeibullFit,
)
from reliability_engine.tools import redundancy, weibull
from .base_engine import BaseEngine


_TOPOLOGY_ALIASES = {
    "none": RedundancyTopology.SERIES,
    "series": RedundancyTopology.SERIES,
    "active": RedundancyTopology.ACTIVE,
    "parallel": RedundancyTopology.ACTIVE,
    "active n+m": RedundancyTopology.ACTIVE,
    "standby": RedundancyTopology.STANDBY,
    "load-sharing": RedundancyTopology.LOAD_SHARING,
    "load_sharing": RedundancyTopology.LOAD_SHARING,
    "2oo3": RedundancyTopology.VOTING_2OO3,
    "2-of-3": RedundancyTopology.VOTING_2OO3,
    "voting": RedundancyTopology.VOTING_2OO3,
}


def normalize_topology(value: Union[str, RedundancyTopology, None]) -> RedundancyTopology:
    """Accept enum members, their labels, or common shorthand."""
    if value is None:
        return RedundancyTopology.SERIES
    if isinstance(value, RedundancyTopology):
        return value
    text = str(value).strip()
    try:
        return RedundancyTopology(text)
    except ValueError:
        pass
    topology = _TOPOLOGY_ALIASES.get(text.lower())
    if topology is None:
        raise ValidationError(
            f"Unknown redundancy topology '{value}'",
            field="topology",
            value=value,
        )
    return topology


class ReliabilityModel(BaseEngine):
    """Weibull reliability, fitting and system composition."""

    name = "ReliabilityModel"
    description = "Weibull reliability/availability model with system composition"

    # -- closed form ---------------------------------------------------

    def evaluate(
        self,
        beta: float,
        eta: float,
        time_unit: str,
        horizon: float,
        resolution: int,
    ) -> ReliabilityCurve:
        """Sample R(t), h(t) and F(t) at ``resolution + 1`` points over [0, horizon]."""
        weibull.validate_parameters(beta, eta)
        if horizon is None or not math.isfinite(horizon) or horizon <= 0:
            raise ValidationError("Time horizon must be a positive number", field="horizon", value=horizon)
        if isinstance(resolution, bool) or not isinstance(resolution, int) or resolution <= 0:
            raise ValidationError(
                "Resolution must be a positive integer",
                field="resolution",
                value=resolution,
            )

        times = np.linspace(0.0, float(horizon), resolution + 1)
        mean_life = weibull.mtbf(beta, eta)
        self.log(
            f"Evaluated beta={beta}, eta={eta} over {horizon} {time_unit} "
            f"({resolution} steps), MTBF={mean_life:.4g}"
        )

        return ReliabilityCurve(
            beta=beta,
            eta=eta,
            time_unit=time_unit,
            horizon=float(horizon),
            resolution=resolution,
            times=times.tolist(),
            reliability=weibull.reliability(times, beta, eta).tolist(),
            failure_rate=weibull.failure_rate(times, beta, eta).tolist(),
            failure_probability=weibull.failure_probability(times, beta, eta).tolist(),
            mtbf=mean_life,
        )

    def reliability_at(self, t: float, beta: float, eta: float) -> float:
        weibull.validate_parameters(beta, eta)
        if t < 0:
            raise ValidationError("Time must be non-negative", field="t", value=t)
        return weibull.reliability(t, beta, eta)

    # -- fitting -------------------------------------------------------

    def fit(
        self,
        observations: Sequence[float],
        censored: Optional[Sequence[bool]] = None,
    ) -> WeibullFit:
        """Fit beta/eta to failure times by median-rank regression."""
        result = weibull.rank_regression(observations, censored)
        beta, eta = result["beta"], result["eta"]
        pattern = weibull.classify_pattern(beta, self.policy.random_beta_band)

        self.log(
            f"Fitted {result['n_failures']} failures ({result['n_censored']} suspensions): "
            f"beta={beta:.4f}, eta={eta:.4g}, R2={result['r2']:.4f}, pattern={pattern.value}"
        )
        if result["r2"] < 0.9:
            self.log(f"Poor Weibull fit (R2={result['r2']:.3f})", "warning")

        return WeibullFit(
            beta=beta,
            eta=eta,
            r2=result["r2"],
            b10=weibull.b_life(beta, eta, 10),
            b50=weibull.b_life(beta, eta, 50),
            pattern=pattern,
            n_failures=result["n_failures"],
            n_censored=result["n_censored"],
            data_points=[
                WeibullDataPoint(time=t, rank=r, censored=c)
                for t, r, c in result["ranked"]
            ],
        )

    # -- composition ---------------------------------------------------

    def ram_metric(
        self,
        beta: float,
        eta: float,
        mttr: float,
        horizon: float,
        component_id: Optional[str] = None,
        time_unit: str = "hours",
    ) -> RamMetric:
        """Build a component RAM snapshot from Weibull parameters."""
        weibull.validate_parameters(beta, eta)
        if mttr is None or mttr < 0:
            raise ValidationError("MTTR must be non-negative", field="mttr", value=mttr)
        if horizon is None or horizon <= 0:
            raise ValidationError("Time horizon must be a positive number", field="horizon", value=horizon)

        mean_life = weibull.mtbf(beta, eta)
        return RamMetric(
            component_id=component_id,
            failure_rate=1.0 / mean_life,
            mtbf=mean_life,
            mttr=mttr,
            availability=mean_life / (mean_life + mttr),
            reliability=weibull.reliability(horizon, beta, eta),
            horizon=horizon,
            beta=beta,
            eta=eta,
            time_unit=time_unit,
        )

    def _resolve_unit(self, index: int, metric: RamMetric, horizon: Optional[float]) -> dict[str, Any]:
        mtbf = metric.mtbf
        if mtbf is None and metric.failure_rate is not None:
            mtbf = 1.0 / metric.failure_rate
        if mtbf is None and metric.beta is not None and metric.eta is not None:
            mtbf = weibull.mtbf(metric.beta, metric.eta)
        rate = metric.failure_rate
        if rate is None and mtbf is not None:
            rate = 1.0 / mtbf

        availability = metric.availability
        if availability is None and mtbf is not None and metric.mttr is not None:
            availability = mtbf / (mtbf + metric.mttr)
        if availability is None:
            raise ValidationError(
                f"Component {metric.component_id or index} needs an availability or both MTBF and MTTR",
                field="components",
                value=index,
            )

        unit_horizon = metric.horizon or horizon
        reliability = metric.reliability
        if reliability is None and unit_horizon is not None:
            if metric.beta is not None and metric.eta is not None:
                reliability = weibull.reliability(unit_horizon, metric.beta, metric.eta)
            elif rate is not None:
                reliability = math.exp(-rate * unit_horizon)

        return {
            "mtbf": mtbf,
            "rate": rate,
            "mttr": metric.mttr,
            "availability": availability,
            "reliability": reliability,
            "horizon": unit_horizon,
            "beta": metric.beta,
            "eta": metric.eta,
        }

    def compose(
        self,
        components: Sequence[Union[RamMetric, dict]],
        topology: Union[str, RedundancyTopology, None] = RedundancyTopology.SERIES,
        required: Optional[int] = None,
        horizon: Optional[float] = None,
    ) -> SystemRamResult:
        """Fold unit metrics into a system result.

        Args:
            components: Units of one redundancy group (or the blocks of a
                series chain)
            topology: Redundancy topology of the group
            required: Units that must work (N of N+M); defaults to 1 for
                active and load-sharing groups
            horizon: Mission time for reliability when units don't carry one

        Returns:
            SystemRamResult with reliability (None when it can't be derived),
            availability, MTBF and MTTR
        """
        if not components:
            raise ValidationError("At least one component is required", field="components", value=[])
        if horizon is not None and horizon <= 0:
            raise ValidationError("Time horizon must be a positive number", field="horizon", value=horizon)

        try:
            metrics = [c if isinstance(c, RamMetric) else RamMetric(**c) for c in components]
        except pydantic.ValidationError as e:
            error = e.errors()[0]
            raise ValidationError(
                f"Invalid component metric: {error['msg']}",
                field="components",
                value=".".join(str(part) for part in error["loc"]),
            ) from e
        topology = normalize_topology(topology)
        units = [self._resolve_unit(i, m, horizon) for i, m in enumerate(metrics)]
        n = len(units)

        if topology == RedundancyTopology.SERIES:
            result = self._compose_series(units)
        elif topology == RedundancyTopology.STANDBY:
            if required not in (None, 1):
                raise ValidationError("Standby groups run one unit at a time", field="required", value=required)
            result = self._compose_standby(units)
        else:
            if topology == RedundancyTopology.VOTING_2OO3:
                if n != 3:
                    raise ValidationError("2-of-3 voting needs exactly three units", field="components", value=n)
                if required not in (None, 2):
                    raise ValidationError("2-of-3 voting requires two units", field="required", value=required)
                required = 2
            k = 1 if required is None else required
            if isinstance(k, bool) or not isinstance(k, int) or not 1 <= k <= n:
                raise ValidationError(
                    f"Required units must be between 1 and {n}",
                    field="required",
                    value=required,
                )
            result = self._compose_k_of_n(units, k)

        system_horizon = horizon if horizon is not None else units[0]["horizon"]
        self.log(
            f"Composed {n} units as {topology.value} (k={result['required']}): "
            f"A={result['availability']:.6f}, R={result['reliability']}"
        )

        return SystemRamResult(
            topology=topology,
            unit_count=n,
            required_units=result["required"],
            system_reliability=result["reliability"],
            system_availability=result["availability"],
            mtbf=result["mtbf"],
            mttr=result["mttr"],
            failure_rate=result["rate"],
            horizon=system_horizon,
        )

    def _compose_series(self, units: list[dict]) -> dict[str, Any]:
        reliabilities = [u["reliability"] for u in units]
        reliability = None
        if all(r is not None for r in reliabilities):
            reliability = float(np.prod(reliabilities))
        availability = float(np.prod([u["availability"] for u in units]))

        rate = mtbf = mttr = None
        rates = [u["rate"] for u in units]
        if all(r is not None for r in rates):
            rate = float(sum(rates))
            mtbf = 1.0 / rate
            if all(u["mttr"] is not None for u in units):
                # failure-rate weighted repair time
                mttr = sum(u["rate"] * u["mttr"] for u in units) / rate

        return {
            "required": len(units),
            "reliability": reliability,
            "availability": availability,
            "rate": rate,
            "mtbf": mtbf,
            "mttr": mttr,
        }

    def _compose_k_of_n(self, units: list[dict], k: int) -> dict[str, Any]:
        reliabilities = [u["reliability"] for u in units]
        reliability = None
        if all(r is not None for r in reliabilities):
            reliability = redundancy.k_out_of_n(reliabilities, k)
        availability = redundancy.k_out_of_n([u["availability"] for u in units], k)
        return {
            "required": k,
            "reliability": reliability,
            "availability": availability,
            **self._redundant_rates(units, k, availability),
        }

    def _compose_standby(self, units: list[dict]) -> dict[str, Any]:
        """Cold standby of identical units with perfect switching.

        Reliability comes from the shared life model: Weibull convolution,
        the exponential closed form, or -ln R when units only carry their
        mission reliability. Availability and repair allow unit differences.
        """
        self._check_identical_life(units)
        spares = len(units) - 1
        active = units[0]
        reliability = None
        t = active["horizon"]
        if t is not None:
            if active["beta"] is not None and active["eta"] is not None and active["beta"] != 1.0:
                reliability = redundancy.standby_weibull(active["beta"], active["eta"], t, spares)
            elif active["rate"] is not None:
                reliability = redundancy.standby_exponential(active["rate"], t, spares)
        if reliability is None and active["reliability"] is not None:
            reliability = redundancy.standby_from_reliability(active["reliability"], spares)
        availability = redundancy.at_least_one([u["availability"] for u in units])
        return {
            "required": 1,
            "reliability": reliability,
            "availability": availability,
            **self._redundant_rates(units, 1, availability),
        }

    def _check_identical_life(self, units: list[dict]):
        for key in ("beta", "eta", "rate", "reliability", "horizon"):
            values = [u[key] for u in units]
            first = values[0]
            for index, value in enumerate(values[1:], start=1):
                same = (value is None and first is None) or (
                    value is not None and first is not None and math.isclose(value, first, rel_tol=1e-9)
                )
                if not same:
                    raise ValidationError(
                        f"Standby units must share one life model; unit {index} differs in {key}",
                        field="components",
                        value=index,
                    )

    def _redundant_rates(self, units: list[dict], k: int, availability: float) -> dict[str, Any]:
        """System MTTR/MTBF consistent with A = MTBF / (MTBF + MTTR).

        The group is down once n-k+1 units are down; restoring any of them
        brings it back, so the restoration rate is the sum of their repair
        rates.
        """
        mttrs = [u["mttr"] for u in units]
        if any(m is None for m in mttrs):
            return {"rate": None, "mtbf": None, "mttr": None}

        failed_to_restore = len(units) - k + 1
        if any(m == 0 for m in mttrs):
            mttr = 0.0
        else:
            mean_repair_rate = sum(1.0 / m for m in mttrs) / len(mttrs)
            mttr = 1.0 / (failed_to_restore * mean_repair_rate)

        if availability >= 1.0:
            return {"rate": 0.0, "mtbf": math.inf, "mttr": mttr}
        mtbf = mttr * availability / (1.0 - availability)
        if mtbf == 0:
            return {"rate": None, "mtbf": 0.0, "mttr": mttr}
        return {"rate": 1.0 / mtbf, "mtbf": mtbf, "mttr": mttr}

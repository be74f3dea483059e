"""Weibull distribution math.

Closed-form reliability functions, median-rank plotting positions and
rank-regression fitting. Functions accept scalars or numpy arrays; scalar
in, float out.
"""

from typing import Optional, Sequence
import math

import numpy as np
from scipy import special, stats

from reliability_engine.errors import DomainError, InsufficientDataError, ValidationError
from reliability_engine.schemas.policy import BetaBand
from reliability_engine.schemas.ram import FailurePattern


def _as_output(values: np.ndarray):
    if np.ndim(values) == 0:
        return float(values)
    return values


def validate_parameters(beta: float, eta: float) -> None:
    """Raise DomainError unless both parameters are positive and finite."""
    if beta is None or not math.isfinite(beta) or beta <= 0:
        raise DomainError("Shape parameter beta must be a positive number", field="beta", value=beta)
    if eta is None or not math.isfinite(eta) or eta <= 0:
        raise DomainError("Scale parameter eta must be a positive number", field="eta", value=eta)


def reliability(t, beta: float, eta: float):
    """R(t) = exp(-(t/eta)^beta)."""
    t = np.asarray(t, dtype=float)
    return _as_output(np.exp(-np.power(t / eta, beta)))


def failure_rate(t, beta: float, eta: float):
    """h(t) = (beta/eta) * (t/eta)^(beta-1).

    At t=0 this is +inf for beta < 1, 1/eta for beta == 1 and 0 for beta > 1.
    """
    t = np.asarray(t, dtype=float)
    with np.errstate(divide="ignore"):
        rate = (beta / eta) * np.power(t / eta, beta - 1.0)
    return _as_output(rate)


def failure_probability(t, beta: float, eta: float):
    """F(t) = 1 - R(t)."""
    t = np.asarray(t, dtype=float)
    return _as_output(-np.expm1(-np.power(t / eta, beta)))


def mtbf(beta: float, eta: float) -> float:
    """Mean life eta * Gamma(1 + 1/beta)."""
    return float(eta * special.gamma(1.0 + 1.0 / beta))


def b_life(beta: float, eta: float, percentage: float) -> float:
    """Time by which ``percentage`` percent of the population has failed."""
    if not 0 < percentage < 100:
        raise ValidationError(
            "B-life percentage must be between 0 and 100 (exclusive)",
            field="percentage",
            value=percentage,
        )
    probability = percentage / 100.0
    return float(eta * math.pow(-math.log1p(-probability), 1.0 / beta))


def time_at_reliability(beta: float, eta: float, target: float) -> float:
    """Inverse of R(t): t = eta * (-ln R)^(1/beta)."""
    if not 0 < target < 1:
        raise ValidationError(
            "Target reliability must be between 0 and 1 (exclusive)",
            field="target_reliability",
            value=target,
        )
    return float(eta * math.pow(-math.log(target), 1.0 / beta))


def inverse_cdf(p, beta: float, eta: float):
    """t = eta * (-ln(1-p))^(1/beta)."""
    p = np.asarray(p, dtype=float)
    return _as_output(eta * np.power(-np.log1p(-p), 1.0 / beta))


def classify_pattern(beta: float, band: Optional[BetaBand] = None) -> FailurePattern:
    """Early-life below the random band, wear-out above it."""
    band = band or BetaBand()
    if beta < band.lower:
        return FailurePattern.EARLY_LIFE
    if beta <= band.upper:
        return FailurePattern.RANDOM
    return FailurePattern.WEAR_OUT


def bernard_rank(position: float, total: int) -> float:
    """Bernard's approximation of the median rank."""
    return (position - 0.3) / (total + 0.4)


def median_ranks(
    times: Sequence[float],
    censored: Optional[Sequence[bool]] = None,
) -> list[tuple[float, Optional[float], bool]]:
    """Sort observations and assign plotting positions.

    Right-censored items (suspensions) get no rank of their own but push the
    ranks of later failures up via Johnson's adjusted order number. At equal
    times failures sort before suspensions.

    Returns:
        List of (time, median rank or None, censored) in ascending time order.
    """
    if censored is None:
        censored = [False] * len(times)
    items = sorted(zip((float(t) for t in times), (bool(c) for c in censored)),
                   key=lambda item: (item[0], item[1]))

    n = len(items)
    previous_order = 0.0
    ranked = []
    for position, (time, is_censored) in enumerate(items, start=1):
        if is_censored:
            ranked.append((time, None, True))
            continue
        reverse_rank = n - position + 1
        increment = (n + 1 - previous_order) / (1 + reverse_rank)
        previous_order += increment
        ranked.append((time, bernard_rank(previous_order, n), False))
    return ranked


def validate_observations(
    observations: Sequence[float],
    censored: Optional[Sequence[bool]] = None,
) -> tuple[list[float], list[bool]]:
    """Check the raw inputs of a fit; return them as plain lists."""
    values = list(observations)
    if censored is None:
        flags = [False] * len(values)
    else:
        flags = list(censored)
        if len(flags) != len(values):
            raise ValidationError(
                f"Got {len(flags)} censoring flags for {len(values)} observations",
                field="censored",
                value=len(flags),
            )

    cleaned = []
    for value in values:
        if isinstance(value, bool):
            raise ValidationError("Observations must be numbers", field="observations", value=value)
        try:
            time = float(value)
        except (TypeError, ValueError):
            raise ValidationError("Observations must be numbers", field="observations", value=value)
        if not math.isfinite(time) or time <= 0:
            raise ValidationError(
                "Observations must be positive, finite times",
                field="observations",
                value=value,
            )
        cleaned.append(time)
    return cleaned, [bool(c) for c in flags]


def rank_regression(
    observations: Sequence[float],
    censored: Optional[Sequence[bool]] = None,
) -> dict:
    """Fit beta/eta by least squares on the linearised Weibull plot.

    Returns:
        Dict with beta, eta, r2, intercept and the ranked data points.
    """
    values, flags = validate_observations(observations, censored)
    failures = [t for t, c in zip(values, flags) if not c]

    if len(failures) < 2:
        raise InsufficientDataError(
            f"Need at least 2 uncensored observations, got {len(failures)}",
            field="observations",
            value=len(failures),
        )
    if len(set(failures)) < 2:
        raise InsufficientDataError(
            "Need at least 2 distinct failure times",
            field="observations",
            value=sorted(set(failures)),
        )

    ranked = median_ranks(values, flags)
    plotted = [(t, r) for t, r, c in ranked if not c]
    x = np.log([t for t, _ in plotted])
    y = np.log(-np.log1p(-np.array([r for _, r in plotted])))

    regression = stats.linregress(x, y)
    beta = float(regression.slope)
    if beta <= 0:
        raise DomainError(
            "Rank regression produced a non-positive shape parameter",
            field="beta",
            value=beta,
        )
    intercept = float(regression.intercept)
    eta = math.exp(-intercept / beta)

    return {
        "beta": beta,
        "eta": eta,
        "r2": float(regression.rvalue ** 2),
        "intercept": intercept,
        "ranked": ranked,
        "n_failures": len(failures),
        "n_censored": len(values) - len(failures),
    }

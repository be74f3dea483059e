"""Redundancy block math for system composition."""

from typing import Sequence

import numpy as np
from scipy import stats

from . import weibull


def k_out_of_n(probabilities: Sequence[float], k: int) -> float:
    """Probability that at least ``k`` of the independent units are up.

    Units with exactly equal probabilities reduce to the binomial sum
    sum_{j=k}^{n} C(n, j) p^j (1-p)^(n-j); any other set goes through the
    exact Poisson-binomial recursion, however close the values are.
    """
    p = np.asarray(probabilities, dtype=float)
    n = len(p)
    if k <= 0:
        return 1.0
    if k > n:
        return 0.0

    if np.all(p == p[0]):
        return float(stats.binom.sf(k - 1, n, p[0]))

    # distribution[j] = P(exactly j units up) over the units seen so far
    distribution = np.zeros(n + 1)
    distribution[0] = 1.0
    for p_i in p:
        distribution[1:] = distribution[1:] * (1 - p_i) + distribution[:-1] * p_i
        distribution[0] *= 1 - p_i
    return float(np.clip(distribution[k:].sum(), 0.0, 1.0))


def standby_exponential(rate: float, t: float, spares: int) -> float:
    """Cold standby of exponential units with perfect switching.

    R(t) = sum_{j=0}^{k} e^{-lambda t} (lambda t)^j / j!
    """
    return float(stats.poisson.cdf(spares, rate * t))


def standby_from_reliability(unit_reliability: float, spares: int) -> float:
    """Exponential cold standby when only the unit's mission reliability is known.

    lambda t = -ln R, so R_sb = R * sum_{j=0}^{k} (-ln R)^j / j!
    """
    if unit_reliability <= 0.0:
        return 0.0
    return float(stats.poisson.cdf(spares, -np.log(unit_reliability)))


def standby_weibull(beta: float, eta: float, t: float, spares: int, steps: int = 2000) -> float:
    """Cold standby of Weibull units with perfect switching.

    Each added spare convolves one more life stage:
    R_{j+1}(t) = R(t) + integral_0^t f(u) R_j(t-u) du. The integral is taken
    over ``steps`` cells using the exact probability mass of each cell, which
    stays finite when the density is unbounded at zero (beta < 1).
    """
    if spares <= 0:
        return float(weibull.reliability(t, beta, eta))

    grid = np.linspace(0.0, t, steps + 1)
    unit_r = np.asarray(weibull.reliability(grid, beta, eta))
    cell_mass = np.diff(np.asarray(weibull.failure_probability(grid, beta, eta)))

    system_r = unit_r
    for _ in range(spares):
        midpoint_r = (system_r[:-1] + system_r[1:]) / 2.0
        carried = np.convolve(cell_mass, midpoint_r)[:steps]
        next_r = unit_r.copy()
        next_r[1:] += carried
        system_r = np.clip(next_r, 0.0, 1.0)
    return float(system_r[-1])


def at_least_one(probabilities: Sequence[float]) -> float:
    """1 - prod(1 - p_i)."""
    p = np.asarray(probabilities, dtype=float)
    return float(1.0 - np.prod(1.0 - p))

"""Chart rendering for reliability results.

Outside the pure engine: callers that want images pass a result here and
get a PNG path back.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for server use
import matplotlib.pyplot as plt

from reliability_engine.schemas.ram import ReliabilityCurve, WeibullFit
from .memo import content_hash


class ChartRenderer:
    """Writes reliability charts into an artifacts directory."""

    def __init__(self, artifacts_dir: Optional[str] = None):
        if artifacts_dir is None:
            from config.settings import get_settings
            artifacts_dir = get_settings().artifacts_dir
        self.artifacts_dir = Path(artifacts_dir)
        self.artifacts_dir.mkdir(parents=True, exist_ok=True)

    def _artifact_path(self, kind: str, payload: dict) -> Path:
        digest = content_hash(kind, payload)[:8]
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.artifacts_dir / f"{kind}_{timestamp}_{digest}.png"

    def reliability_curve(self, curve: ReliabilityCurve, title: Optional[str] = None) -> str:
        """Plot R(t)/F(t) above h(t)."""
        chart_path = self._artifact_path(
            "reliability_curve",
            {"beta": curve.beta, "eta": curve.eta, "horizon": curve.horizon, "resolution": curve.resolution},
        )
        times = np.asarray(curve.times)
        rates = np.asarray(curve.failure_rate)
        finite = np.isfinite(rates)

        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8))

        ax1.plot(times, curve.reliability, 'b-', linewidth=2, label='R(t)')
        ax1.plot(times, curve.failure_probability, 'r--', linewidth=2, label='F(t)')
        ax1.axvline(x=curve.mtbf, color='g', linestyle=':', linewidth=2, label=f'MTBF={curve.mtbf:.4g}')
        ax1.set_ylabel('Probability')
        ax1.set_ylim(0, 1.05)
        ax1.set_title(title or f'Weibull Reliability: beta={curve.beta:.3g}, eta={curve.eta:.4g}')
        ax1.legend()
        ax1.grid(True, alpha=0.3)

        ax2.plot(times[finite], rates[finite], 'k-', linewidth=2, label='h(t)')
        ax2.set_xlabel(f'Time ({curve.time_unit})')
        ax2.set_ylabel('Failure rate')
        ax2.legend()
        ax2.grid(True, alpha=0.3)

        plt.tight_layout()
        plt.savefig(chart_path, dpi=150, bbox_inches='tight')
        plt.close()
        return str(chart_path)

    def probability_plot(self, fit: WeibullFit, time_unit: str = "hours", title: Optional[str] = None) -> str:
        """Weibull probability plot: ln(-ln(1-F)) against ln(t) with the fitted line."""
        chart_path = self._artifact_path(
            "weibull_probability",
            {"beta": fit.beta, "eta": fit.eta, "points": [p.time for p in fit.data_points]},
        )
        failures = [p for p in fit.data_points if not p.censored]
        x = np.log([p.time for p in failures])
        y = np.log(-np.log1p(-np.array([p.rank for p in failures])))

        x_line = np.linspace(x.min(), x.max(), 50)
        y_line = fit.beta * x_line - fit.beta * np.log(fit.eta)

        fig, ax = plt.subplots(figsize=(8, 6))
        ax.scatter(x, y, alpha=0.7, edgecolors="k", linewidths=0.5, label="Failures")
        ax.plot(x_line, y_line, "r--", linewidth=2,
                label=f"Fit: beta={fit.beta:.3f}, eta={fit.eta:.4g}, R2={fit.r2:.3f}")
        ax.set_xlabel(f"ln(time [{time_unit}])")
        ax.set_ylabel("ln(-ln(1 - F))")
        ax.set_title(title or f"Weibull Probability Plot ({fit.pattern.value})")
        ax.legend()
        ax.grid(True, alpha=0.3)
        plt.tight_layout()
        plt.savefig(chart_path, dpi=150, bbox_inches="tight")
        plt.close()
        return str(chart_path)

"""Orchestration of the engines for a single failure mode.

The pipeline chains the engines in a fixed order:
Score → Fit → Decide → Evaluate → Compose

Every stage is optional and runs only when the request carries its inputs.
Fits and curve evaluations go through a content-addressed cache shared by
all runs of one pipeline.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from config.settings import get_settings
from reliability_engine.engines import (
    CriticalityScorer,
    RcmDecisionEngine,
    ReliabilityModel,
)
from reliability_engine.errors import EngineError, ValidationError
from reliability_engine.schemas.policy import EnginePolicy
from reliability_engine.schemas.ram import WeibullParameters
from reliability_engine.tools.memo import FitCache


class ReliabilityPipeline:
    """Runs scoring, fitting, decision, evaluation and composition.

    A request is a dict with any of these keys:

    - ``failure_mode_id``: identifier echoed in the criticality record
    - ``ratings``: ``{"severity", "occurrence", "detection"}``
    - ``observations`` / ``censored``: failure history to fit
    - ``weibull``: ``{"beta", "eta", "time_unit"}`` used when no history is given
    - ``flags``: consequence and feasibility flags for the decision tree
    - ``horizon`` / ``resolution``: curve evaluation window
    - ``system``: ``{"components", "topology", "required"}`` to compose
    """

    def __init__(
        self,
        policy: Optional[EnginePolicy] = None,
        cache: Optional[FitCache] = None,
        verbose: Optional[bool] = None,
    ):
        settings = get_settings()
        self.verbose = settings.verbose if verbose is None else verbose

        common_kwargs = {"policy": policy, "verbose": self.verbose}
        self.scorer = CriticalityScorer(**common_kwargs)
        self.decision_engine = RcmDecisionEngine(**common_kwargs)
        self.model = ReliabilityModel(**common_kwargs)
        self.policy = self.scorer.policy

        self.cache = cache if cache is not None else FitCache(settings.cache_size)
        self._workflow_log: list[dict] = []
        self._stage_order = ["score", "fit", "decide", "evaluate", "compose"]

    def _engines(self):
        return [self.scorer, self.decision_engine, self.model]

    def _log(self, message: str, level: str = "info"):
        """Log workflow progress."""
        entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": level,
            "message": message,
        }
        self._workflow_log.append(entry)
        if self.verbose:
            print(f"[ReliabilityPipeline] {message}")

    def _reset_engine_logs(self):
        for engine in self._engines():
            engine.reset_execution_log()

    def _collect_engine_logs(self) -> dict[str, list[dict]]:
        return {engine.name: engine.get_execution_log() for engine in self._engines()}

    def get_stage_order(self) -> list[str]:
        return self._stage_order.copy()

    def run(self, request: dict) -> dict:
        """Run every stage the request has inputs for.

        Args:
            request: Inputs as described on the class

        Returns:
            Dict with ``success``, per-stage ``outputs`` (pydantic models),
            the workflow log and the engine logs. A failed run carries the
            structured error under ``error`` and the outputs produced so far.
        """
        start_time = datetime.utcnow()
        self._workflow_log = []
        self._reset_engine_logs()
        self._log("Starting reliability workflow")

        outputs: dict[str, Any] = {}
        failure_mode_id = request.get("failure_mode_id", "unassigned")

        try:
            # Step 1: Criticality scoring
            ratings = request.get("ratings")
            if ratings is not None:
                self._log("Step 1: Criticality scoring")
                outputs["criticality"] = self.scorer.create_record(
                    failure_mode_id,
                    ratings.get("severity"),
                    ratings.get("occurrence"),
                    ratings.get("detection"),
                    consequence_type=request.get("consequence_type"),
                )

            # Step 2: Weibull fit from history, else supplied parameters
            parameters = None
            observations = request.get("observations")
            if observations is not None:
                self._log("Step 2: Weibull fit")
                fit = self._cached_fit(observations, request.get("censored"))
                outputs["fit"] = fit
                parameters = fit.parameters(
                    time_unit=request.get("time_unit", get_settings().default_time_unit)
                )
            elif request.get("weibull") is not None:
                supplied = request["weibull"]
                parameters = supplied if isinstance(supplied, WeibullParameters) else WeibullParameters(**supplied)
                self._log(f"Step 2: Using supplied Weibull parameters (beta={parameters.beta}, eta={parameters.eta})")

            # Step 3: RCM decision
            flags = request.get("flags")
            if flags is not None:
                self._log("Step 3: RCM decision")
                outputs["decision"] = self.decision_engine.decide(
                    flags,
                    criticality=outputs.get("criticality"),
                    weibull=parameters,
                )

            # Step 4: Reliability curve
            horizon = request.get("horizon")
            if parameters is not None and horizon is not None:
                self._log("Step 4: Reliability evaluation")
                resolution = request.get("resolution")
                if resolution is None:
                    resolution = get_settings().default_curve_resolution
                outputs["curve"] = self._cached_curve(parameters, horizon, resolution)

            # Step 5: System composition
            system = request.get("system")
            if system is not None:
                self._log("Step 5: System composition")
                outputs["system"] = self.model.compose(
                    system.get("components", []),
                    system.get("topology"),
                    required=system.get("required"),
                    horizon=system.get("horizon", horizon),
                )

            total_time = (datetime.utcnow() - start_time).total_seconds()
            self._log(f"Workflow complete in {total_time:.3f}s ({len(outputs)} outputs)")

            return {
                "success": True,
                "outputs": outputs,
                "workflow_log": self._workflow_log,
                "engine_logs": self._collect_engine_logs(),
                "total_time_seconds": total_time,
            }

        except (EngineError, PydanticValidationError) as e:
            if isinstance(e, PydanticValidationError):
                e = ValidationError(str(e), field="request")
            self._log(f"Workflow failed: {e.message}", "error")
            return {
                "success": False,
                "error": e.to_dict(),
                "outputs": outputs,
                "workflow_log": self._workflow_log,
                "engine_logs": self._collect_engine_logs(),
            }

    def _cached_fit(self, observations, censored):
        payload = {
            "observations": list(observations),
            "censored": list(censored) if censored is not None else None,
            "band": self.policy.random_beta_band.model_dump(),
        }
        hits = self.cache.hits
        fit = self.cache.get_or_compute("fit", payload, lambda: self.model.fit(observations, censored))
        if self.cache.hits > hits:
            self._log("Weibull fit served from cache")
        return fit

    def _cached_curve(self, parameters: WeibullParameters, horizon: float, resolution: int):
        payload = {
            "beta": parameters.beta,
            "eta": parameters.eta,
            "time_unit": parameters.time_unit,
            "horizon": horizon,
            "resolution": resolution,
        }
        hits = self.cache.hits
        curve = self.cache.get_or_compute(
            "curve",
            payload,
            lambda: self.model.evaluate(parameters.beta, parameters.eta, parameters.time_unit, horizon, resolution),
        )
        if self.cache.hits > hits:
            self._log("Reliability curve served from cache")
        return curve

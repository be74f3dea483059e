"""Tests for the RCM decision procedure."""

from __future__ import annotations

import itertools
import math
import unittest

from reliability_engine.api import decide_strategy, recommend_from_profile
from reliability_engine.engines.rcm_decision import RcmDecisionEngine, categorize
from reliability_engine.errors import ValidationError
from reliability_engine.schemas.failure_mode import (
    ConsequenceType,
    Criticality,
    CriticalityIndex,
    CriticalityScore,
    FailureMode,
)
from reliability_engine.schemas.policy import EnginePolicy, ProfileCostThresholds
from reliability_engine.schemas.ram import WeibullParameters
from reliability_engine.schemas.rcm import (
    ConsequenceCategory,
    ConsequenceFlags,
    MaintenanceStrategy,
    TaskType,
)


FLAG_NAMES = [
    "hidden_function",
    "safety_consequence",
    "environmental_consequence",
    "operational_consequence",
    "economic_consequence",
    "failure_evident",
    "pm_feasible",
    "cm_feasible",
    "ff_feasible",
    "rtf_acceptable",
]


def _all_flag_combinations():
    for values in itertools.product([False, True], repeat=len(FLAG_NAMES)):
        yield ConsequenceFlags(**dict(zip(FLAG_NAMES, values)))


class RcmDecisionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = RcmDecisionEngine(policy=EnginePolicy())

    def test_safety_with_pm_ignores_run_to_failure(self):
        decision = self.engine.decide(
            {
                "hidden_function": False,
                "safety_consequence": True,
                "pm_feasible": True,
                "rtf_acceptable": True,
            }
        )

        self.assertEqual(decision.strategy, MaintenanceStrategy.PREVENTIVE)
        self.assertEqual(decision.decision_path, "evident-safety-pm")
        self.assertEqual(decision.recommended_tasks[0].task_type, TaskType.PREVENTIVE)

    def test_api_returns_plain_dict(self):
        result = decide_strategy(
            {"safety_consequence": True, "pm_feasible": True, "rtf_acceptable": True},
            policy=EnginePolicy(),
        )

        self.assertEqual(result["strategy"], MaintenanceStrategy.PREVENTIVE)
        self.assertEqual(result["decision_path"], "evident-safety-pm")
        self.assertEqual(len(result["recommended_tasks"]), 1)

    def test_every_flag_combination_yields_a_decision(self):
        prefixes = ("hidden-", "evident-safety-", "evident-operational-", "evident-economic-", "no-consequence-")
        for flags in _all_flag_combinations():
            decision = self.engine.decide(flags)
            self.assertTrue(decision.decision_path.startswith(prefixes), decision.decision_path)
            self.assertGreaterEqual(len(decision.recommended_tasks), 1)

    def test_decisions_are_deterministic(self):
        other = RcmDecisionEngine(policy=EnginePolicy())
        for flags in _all_flag_combinations():
            first = self.engine.decide(flags)
            second = other.decide(flags)
            self.assertEqual(
                (first.strategy, first.decision_path),
                (second.strategy, second.decision_path),
            )

    def test_evident_safety_never_runs_to_failure(self):
        for flags in _all_flag_combinations():
            if categorize(flags) != ConsequenceCategory.SAFETY_OR_ENVIRONMENTAL:
                continue
            decision = self.engine.decide(flags)
            self.assertNotEqual(decision.strategy, MaintenanceStrategy.RUN_TO_FAILURE)

    def test_environmental_consequence_takes_safety_branch(self):
        decision = self.engine.decide({"environmental_consequence": True, "cm_feasible": True})

        self.assertEqual(decision.decision_path, "evident-safety-cm")
        self.assertEqual(decision.strategy, MaintenanceStrategy.PREDICTIVE)

    def test_safety_without_proactive_task_requires_redesign(self):
        decision = self.engine.decide(
            {"safety_consequence": True, "ff_feasible": True, "rtf_acceptable": True}
        )

        self.assertEqual(decision.decision_path, "evident-safety-redesign")
        self.assertEqual(decision.strategy, MaintenanceStrategy.REDESIGN)

    def test_hidden_branch_paths(self):
        cases = [
            ({"ff_feasible": True, "pm_feasible": True}, "hidden-ff", MaintenanceStrategy.FAILURE_FINDING),
            ({"pm_feasible": True, "cm_feasible": True}, "hidden-pm", MaintenanceStrategy.PREVENTIVE),
            ({"cm_feasible": True}, "hidden-cm", MaintenanceStrategy.PREDICTIVE),
            ({"rtf_acceptable": True}, "hidden-redesign", MaintenanceStrategy.REDESIGN),
        ]
        for extra, path, strategy in cases:
            with self.subTest(path=path):
                flags = {"hidden_function": True, "failure_evident": False, **extra}
                decision = self.engine.decide(flags)
                self.assertEqual(decision.category, ConsequenceCategory.HIDDEN)
                self.assertEqual(decision.decision_path, path)
                self.assertEqual(decision.strategy, strategy)

    def test_hidden_function_that_is_evident_is_not_hidden(self):
        decision = self.engine.decide(
            {"hidden_function": True, "failure_evident": True, "operational_consequence": True, "ff_feasible": True}
        )

        self.assertEqual(decision.decision_path, "evident-operational-ff")

    def test_operational_branch_picks_cheapest_feasible_task(self):
        cases = [
            ({"pm_feasible": True, "cm_feasible": True}, "evident-operational-pm"),
            ({"cm_feasible": True, "ff_feasible": True}, "evident-operational-cm"),
            ({"ff_feasible": True}, "evident-operational-ff"),
            ({"rtf_acceptable": True}, "evident-operational-rtf"),
            ({}, "evident-operational-redesign"),
        ]
        for extra, path in cases:
            with self.subTest(path=path):
                decision = self.engine.decide({"operational_consequence": True, **extra})
                self.assertEqual(decision.decision_path, path)

    def test_cost_rank_is_policy(self):
        engine = RcmDecisionEngine(policy=EnginePolicy(strategy_cost_rank=["cm", "pm", "ff", "rtf"]))

        decision = engine.decide({"operational_consequence": True, "pm_feasible": True, "cm_feasible": True})

        self.assertEqual(decision.decision_path, "evident-operational-cm")

    def test_economic_branch_prefers_run_to_failure_when_accepted(self):
        accepted = self.engine.decide({"economic_consequence": True, "rtf_acceptable": True, "pm_feasible": True})
        refused = self.engine.decide({"economic_consequence": True, "pm_feasible": True})
        nothing = self.engine.decide({"economic_consequence": True})

        self.assertEqual(accepted.decision_path, "evident-economic-rtf")
        self.assertEqual(refused.decision_path, "evident-economic-pm")
        self.assertEqual(nothing.decision_path, "evident-economic-redesign")

    def test_malformed_flags_raise_validation_error(self):
        with self.assertRaises(ValidationError) as ctx:
            self.engine.decide({"safety_consequence": "perhaps"})

        self.assertEqual(ctx.exception.field, "flags")

    def test_no_consequence_runs_to_failure(self):
        decision = self.engine.decide({})

        self.assertEqual(decision.category, ConsequenceCategory.NONE)
        self.assertEqual(decision.decision_path, "no-consequence-rtf")
        self.assertEqual(decision.strategy, MaintenanceStrategy.RUN_TO_FAILURE)
        self.assertIsNone(decision.recommended_tasks[0].interval)


class RcmTaskTests(unittest.TestCase):
    def setUp(self) -> None:
        self.policy = EnginePolicy()
        self.engine = RcmDecisionEngine(policy=self.policy)

    def test_placeholder_interval_without_weibull(self):
        decision = self.engine.decide({"safety_consequence": True, "pm_feasible": True})
        task = decision.recommended_tasks[0]

        self.assertEqual(task.interval, 12)
        self.assertEqual(task.interval_unit, "months")
        self.assertEqual(task.effectiveness, 85)
        self.assertFalse(task.derived_from_weibull)
        self.assertIn("evident-safety-pm", task.rationale)

    def test_preventive_interval_derived_from_weibull(self):
        weibull = WeibullParameters(beta=2.0, eta=1000.0, time_unit="hours")

        decision = self.engine.decide(
            {"operational_consequence": True, "pm_feasible": True},
            weibull=weibull,
        )
        task = decision.recommended_tasks[0]

        expected = 1000.0 * math.sqrt(-math.log(0.90))
        self.assertTrue(task.derived_from_weibull)
        self.assertAlmostEqual(task.interval, expected, places=6)
        self.assertEqual(task.interval_unit, "hours")

    def test_failure_finding_interval_derived_from_mtbf(self):
        weibull = WeibullParameters(beta=1.0, eta=2000.0, time_unit="hours")

        decision = self.engine.decide(
            {"hidden_function": True, "failure_evident": False, "ff_feasible": True},
            weibull=weibull,
        )

        # 2 x (1 - 0.99) x MTBF, MTBF = eta for beta = 1
        self.assertAlmostEqual(decision.recommended_tasks[0].interval, 40.0, places=6)

    def test_criticality_is_quoted_in_rationale(self):
        score = CriticalityScore(
            severity=8, occurrence=6, detection=5, rpn=240, criticality_index=CriticalityIndex.CRITICAL
        )

        decision = self.engine.decide({"safety_consequence": True, "cm_feasible": True}, criticality=score)

        self.assertIn("Critical", decision.recommended_tasks[0].rationale)
        self.assertIn("RPN 240", decision.recommended_tasks[0].rationale)

    def test_guidance_reflects_consequences(self):
        decision = self.engine.decide(
            {"safety_consequence": True, "environmental_consequence": True, "pm_feasible": True},
            weibull=WeibullParameters(beta=0.8, eta=500.0),
        )

        joined = " ".join(decision.guidance)
        self.assertIn("safety", joined.lower())
        self.assertIn("environmental", joined.lower())
        self.assertIn("beta <= 1", joined)


def _failure_mode(**overrides) -> FailureMode:
    fields = {
        "failure_mode_id": "FM-20",
        "description": "Impeller cracks",
        "cause": "Cavitation",
        "is_predictable": True,
        "cost_of_failure": 1000.0,
    }
    fields.update(overrides)
    return FailureMode(**fields)


class ProfileRecommendationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = RcmDecisionEngine(policy=EnginePolicy())

    def test_profile_matrix(self):
        cases = [
            (True, "High", 0.0, MaintenanceStrategy.PREDICTIVE, False),
            (True, "Medium", 6000.0, MaintenanceStrategy.PREVENTIVE, False),
            (True, "Low", 5000.0, MaintenanceStrategy.PREDICTIVE, True),
            (False, "Critical", 0.0, MaintenanceStrategy.REDESIGN, False),
            (False, "Medium", 3500.0, MaintenanceStrategy.PREVENTIVE, False),
            (False, "Low", 3000.0, MaintenanceStrategy.RUN_TO_FAILURE, False),
        ]
        for predictable, criticality, cost, strategy, condition_based in cases:
            with self.subTest(predictable=predictable, criticality=criticality, cost=cost):
                result = self.engine.recommend_from_profile(
                    _failure_mode(is_predictable=predictable, cost_of_failure=cost),
                    criticality,
                )

                self.assertEqual(result.strategy, strategy)
                self.assertEqual(result.condition_based, condition_based)
                self.assertEqual(result.is_predictable, predictable)
                self.assertEqual(result.cost_of_failure, cost)
                self.assertTrue(result.task_recommendations)

    def test_unknown_predictability_and_cost_are_conservative(self):
        result = self.engine.recommend_from_profile(
            _failure_mode(is_predictable=None, cost_of_failure=None),
            CriticalityIndex.MEDIUM,
        )

        self.assertEqual(result.strategy, MaintenanceStrategy.RUN_TO_FAILURE)
        self.assertFalse(result.is_predictable)
        self.assertEqual(result.cost_of_failure, 0.0)

    def test_reactive_practice_and_wear_add_tasks(self):
        base = self.engine.recommend_from_profile(_failure_mode(), "Low")
        result = self.engine.recommend_from_profile(
            _failure_mode(cause="Abrasive wear of the wear ring"),
            "Low",
            current_practice="Mostly Reactive, run to failure",
        )

        added = result.task_recommendations[len(base.task_recommendations):]
        self.assertEqual(result.task_recommendations[: len(base.task_recommendations)], base.task_recommendations)
        self.assertIn("Transition from reactive to planned maintenance approach", added)
        self.assertIn("Implement lubrication program to reduce wear-related failures", added)
        self.assertEqual(len(added), 4)

    def test_safety_consequence_adds_emergency_tasks(self):
        record = Criticality(
            failure_mode_id="FM-20",
            severity=9,
            occurrence=3,
            detection=3,
            rpn=81,
            criticality_index=CriticalityIndex.MEDIUM,
            consequence_type=ConsequenceType.SAFETY,
        )
        from_record = self.engine.recommend_from_profile(_failure_mode(), record)
        from_effect = self.engine.recommend_from_profile(
            _failure_mode(end_effect="Personnel safety hazard from released fluid"),
            "Medium",
        )

        for result in (from_record, from_effect):
            self.assertIn(
                "Develop emergency response procedures for safety-critical failures",
                result.task_recommendations,
            )
        self.assertFalse(from_record.high_criticality)

    def test_cost_thresholds_come_from_policy(self):
        engine = RcmDecisionEngine(
            policy=EnginePolicy(profile_cost_thresholds=ProfileCostThresholds(predictable=500.0))
        )

        result = engine.recommend_from_profile(_failure_mode(cost_of_failure=1000.0), "Low")

        self.assertEqual(result.strategy, MaintenanceStrategy.PREVENTIVE)

    def test_invalid_profile_inputs(self):
        with self.assertRaises(ValidationError) as ctx:
            self.engine.recommend_from_profile(_failure_mode(), "Severe")
        self.assertEqual(ctx.exception.field, "criticality")

        with self.assertRaises(ValidationError) as ctx:
            self.engine.recommend_from_profile({"failure_mode_id": "FM-1"}, "High")
        self.assertEqual(ctx.exception.field, "failure_mode")

    def test_api_returns_plain_dict(self):
        result = recommend_from_profile(
            {"failure_mode_id": "FM-3", "description": "Bearing seizes", "is_predictable": True},
            "high",
            policy=EnginePolicy(),
        )

        self.assertEqual(result["strategy"], MaintenanceStrategy.PREDICTIVE)
        self.assertTrue(result["high_criticality"])
        self.assertEqual(result["failure_mode_id"], "FM-3")


if __name__ == "__main__":
    unittest.main()

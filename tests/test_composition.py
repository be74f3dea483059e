"""Tests for system RAM composition under redundancy topologies."""

from __future__ import annotations

import math
import unittest

from reliability_engine.api import compose_system
from reliability_engine.engines.reliability import ReliabilityModel, normalize_topology
from reliability_engine.errors import ValidationError
from reliability_engine.schemas.policy import EnginePolicy
from reliability_engine.schemas.ram import RamMetric, RedundancyTopology
from reliability_engine.tools import redundancy


class SeriesCompositionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.model = ReliabilityModel(policy=EnginePolicy())

    def test_series_availability_is_product(self):
        result = compose_system(
            [{"availability": 0.99}, {"availability": 0.98}],
            topology="None/Series",
            policy=EnginePolicy(),
        )

        self.assertAlmostEqual(result["system_availability"], 0.9702, places=10)
        self.assertIsNone(result["system_reliability"])
        self.assertIsNone(result["mtbf"])

    def test_series_never_exceeds_weakest_component(self):
        components = [
            {"availability": 0.995, "reliability": 0.97},
            {"availability": 0.97, "reliability": 0.99},
            {"availability": 0.999, "reliability": 0.95},
        ]
        previous_a = previous_r = 1.0
        for count in range(1, len(components) + 1):
            result = self.model.compose(components[:count], RedundancyTopology.SERIES)
            self.assertLessEqual(result.system_availability, min(c["availability"] for c in components[:count]))
            self.assertLessEqual(result.system_reliability, min(c["reliability"] for c in components[:count]))
            self.assertLessEqual(result.system_availability, previous_a)
            self.assertLessEqual(result.system_reliability, previous_r)
            previous_a, previous_r = result.system_availability, result.system_reliability

    def test_series_rates_and_weighted_repair_time(self):
        result = self.model.compose(
            [
                {"failure_rate": 0.001, "mttr": 10.0},
                {"failure_rate": 0.002, "mttr": 20.0},
            ],
            "series",
        )

        self.assertAlmostEqual(result.failure_rate, 0.003)
        self.assertAlmostEqual(result.mtbf, 1 / 0.003)
        self.assertAlmostEqual(result.mttr, (0.001 * 10 + 0.002 * 20) / 0.003)
        self.assertAlmostEqual(
            result.system_availability,
            (1000 / 1010) * (500 / 520),
        )

    def test_reliability_derived_from_horizon(self):
        result = self.model.compose(
            [{"mtbf": 1000.0, "mttr": 5.0}, {"beta": 2.0, "eta": 2000.0, "mttr": 5.0}],
            horizon=500.0,
        )

        expected = math.exp(-0.5) * math.exp(-(0.25 ** 2))
        self.assertAlmostEqual(result.system_reliability, expected, places=10)
        self.assertEqual(result.horizon, 500.0)


class RedundantCompositionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.model = ReliabilityModel(policy=EnginePolicy())

    def test_active_parallel_of_identical_units(self):
        result = self.model.compose(
            [{"availability": 0.9, "reliability": 0.8}] * 2,
            RedundancyTopology.ACTIVE,
        )

        self.assertEqual(result.required_units, 1)
        self.assertAlmostEqual(result.system_availability, 0.99)
        self.assertAlmostEqual(result.system_reliability, 0.96)

    def test_two_out_of_three_voting(self):
        result = self.model.compose(
            [{"availability": 0.9, "reliability": 0.9}] * 3,
            "2oo3",
        )

        self.assertEqual(result.topology, RedundancyTopology.VOTING_2OO3)
        self.assertEqual(result.required_units, 2)
        self.assertAlmostEqual(result.system_reliability, 3 * 0.81 * 0.1 + 0.729)

    def test_k_out_of_n_with_unequal_units(self):
        probability = redundancy.k_out_of_n([0.9, 0.8, 0.7], 2)

        expected = 0.9 * 0.8 * 0.3 + 0.9 * 0.2 * 0.7 + 0.1 * 0.8 * 0.7 + 0.9 * 0.8 * 0.7
        self.assertAlmostEqual(probability, expected, places=12)
        self.assertEqual(redundancy.k_out_of_n([0.5, 0.5], 3), 0.0)
        self.assertEqual(redundancy.k_out_of_n([0.5, 0.5], 0), 1.0)

    def test_load_sharing_behaves_as_active_k_of_n(self):
        units = [{"availability": 0.95}, {"availability": 0.9}, {"availability": 0.85}]

        shared = self.model.compose(units, RedundancyTopology.LOAD_SHARING, required=2)
        active = self.model.compose(units, RedundancyTopology.ACTIVE, required=2)

        self.assertAlmostEqual(shared.system_availability, active.system_availability)

    def test_redundant_mtbf_is_consistent_with_availability(self):
        result = self.model.compose(
            [{"mtbf": 1000.0, "mttr": 10.0}] * 2,
            RedundancyTopology.ACTIVE,
        )

        a = 1000 / 1010
        self.assertAlmostEqual(result.system_availability, 1 - (1 - a) ** 2)
        self.assertAlmostEqual(result.mttr, 5.0)
        self.assertAlmostEqual(
            result.mtbf / (result.mtbf + result.mttr),
            result.system_availability,
            places=12,
        )

    def test_standby_of_exponential_units_is_poisson(self):
        result = self.model.compose(
            [{"beta": 1.0, "eta": 1000.0, "mttr": 8.0}] * 2,
            RedundancyTopology.STANDBY,
            horizon=500.0,
        )

        self.assertAlmostEqual(result.system_reliability, math.exp(-0.5) * 1.5, places=10)

    def test_standby_weibull_convolution_matches_closed_form(self):
        numeric = redundancy.standby_weibull(1.0, 1000.0, 500.0, 1)
        closed = redundancy.standby_exponential(1.0 / 1000.0, 500.0, 1)

        self.assertAlmostEqual(numeric, closed, delta=1e-3)

    def test_standby_wear_out_units_improve_on_single_unit(self):
        single = self.model.compose([{"beta": 2.5, "eta": 1000.0, "mttr": 8.0}], horizon=900.0)
        standby = self.model.compose(
            [{"beta": 2.5, "eta": 1000.0, "mttr": 8.0}] * 2,
            "standby",
            horizon=900.0,
        )

        self.assertGreater(standby.system_reliability, single.system_reliability)
        self.assertLessEqual(standby.system_reliability, 1.0)

    def test_near_equal_high_availability_units_are_not_rounded_together(self):
        unavailability = 1.0 - redundancy.k_out_of_n([0.99999, 0.999999], 1)

        self.assertAlmostEqual(unavailability / 1e-11, 1.0, places=3)

        result = self.model.compose(
            [{"availability": 0.99999, "mttr": 10.0}, {"availability": 0.999999, "mttr": 10.0}],
            RedundancyTopology.ACTIVE,
        )
        self.assertAlmostEqual(result.mttr, 5.0)
        self.assertAlmostEqual(result.mtbf / 5e11, 1.0, places=3)

    def test_standby_reliability_from_unit_reliability_alone(self):
        result = self.model.compose(
            [{"availability": 0.9, "reliability": 0.8}] * 2,
            "standby",
        )

        expected = 0.8 * (1.0 + math.log(1.25))
        self.assertAlmostEqual(result.system_reliability, expected, places=10)
        self.assertAlmostEqual(result.system_availability, 0.99)
        self.assertEqual(redundancy.standby_from_reliability(0.0, 3), 0.0)

    def test_standby_units_with_different_life_models_are_rejected(self):
        cases = [
            [{"beta": 2.0, "eta": 1000.0, "mttr": 8.0}, {"beta": 2.0, "eta": 1500.0, "mttr": 8.0}],
            [{"availability": 0.9, "reliability": 0.8}, {"availability": 0.9, "reliability": 0.7}],
            [{"mtbf": 1000.0, "mttr": 8.0}, {"availability": 0.9}],
        ]
        for components in cases:
            with self.subTest(components=components):
                with self.assertRaises(ValidationError) as ctx:
                    self.model.compose(components, RedundancyTopology.STANDBY, horizon=500.0)
                self.assertEqual(ctx.exception.field, "components")
                self.assertEqual(ctx.exception.value, 1)

    def test_standby_units_may_differ_in_repair(self):
        result = self.model.compose(
            [{"mtbf": 1000.0, "mttr": 8.0}, {"mtbf": 1000.0, "mttr": 24.0}],
            RedundancyTopology.STANDBY,
            horizon=500.0,
        )

        self.assertAlmostEqual(result.system_reliability, math.exp(-0.5) * 1.5, places=10)

    def test_ram_metric_snapshot(self):
        metric = self.model.ram_metric(1.0, 1000.0, mttr=10.0, horizon=100.0, component_id="P-101")

        self.assertIsInstance(metric, RamMetric)
        self.assertAlmostEqual(metric.availability, 1000 / 1010)
        self.assertAlmostEqual(metric.reliability, math.exp(-0.1))
        self.assertEqual(metric.component_id, "P-101")


class CompositionValidationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.model = ReliabilityModel(policy=EnginePolicy())

    def test_topology_aliases(self):
        self.assertEqual(normalize_topology("Active N+M"), RedundancyTopology.ACTIVE)
        self.assertEqual(normalize_topology("parallel"), RedundancyTopology.ACTIVE)
        self.assertEqual(normalize_topology(None), RedundancyTopology.SERIES)
        with self.assertRaises(ValidationError):
            normalize_topology("mesh")

    def test_invalid_groups_are_rejected(self):
        unit = {"availability": 0.9}
        cases = [
            ([], RedundancyTopology.SERIES, None),
            ([unit, unit], RedundancyTopology.VOTING_2OO3, None),
            ([unit, unit, unit], RedundancyTopology.VOTING_2OO3, 1),
            ([unit, unit], RedundancyTopology.ACTIVE, 3),
            ([unit, unit], RedundancyTopology.STANDBY, 2),
            ([{"mtbf": 100.0}], RedundancyTopology.SERIES, None),
            ([{"availability": 1.5}], RedundancyTopology.SERIES, None),
        ]
        for components, topology, required in cases:
            with self.subTest(topology=topology, count=len(components), required=required):
                with self.assertRaises(ValidationError):
                    self.model.compose(components, topology, required=required)


if __name__ == "__main__":
    unittest.main()

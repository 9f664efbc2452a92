# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import unittest

from cloudplan.scheduling.power_model import (
    POWER_MODELS, AbsPowerModel, LinearPowerModel, get_power_model, get_power_model_names, register_power_model
)
from cloudplan.utils.exception.config_exception import PowerModelNotFoundError
from cloudplan.utils.exception.scheduling_exception import InvalidUtilizationError


class TestPowerModel(unittest.TestCase):
    def test_builtin_aliases(self):
        for alias in ["linear", "square", "square_root", "cubic"]:
            self.assertIn(alias, get_power_model_names())

    def test_static_and_dynamic_power(self):
        model = get_power_model("linear", 200, 0.7)

        self.assertIsInstance(model, LinearPowerModel)
        self.assertAlmostEqual(140, model.static_power)
        self.assertAlmostEqual(60, model.dynamic_power)

    def test_idle_host_draws_nothing(self):
        for alias in ["linear", "square", "square_root", "cubic"]:
            self.assertEqual(0, get_power_model(alias, 200, 0.5).get_power(0))

    def test_full_utilization_draws_max_power(self):
        for alias in ["linear", "square", "square_root", "cubic"]:
            self.assertAlmostEqual(200, get_power_model(alias, 200, 0.5).get_power(1))

    def test_curve_shapes(self):
        self.assertAlmostEqual(150, get_power_model("linear", 200, 0.5).get_power(0.5))
        self.assertAlmostEqual(125, get_power_model("square", 200, 0.5).get_power(0.5))
        self.assertAlmostEqual(150, get_power_model("square_root", 200, 0.5).get_power(0.25))
        self.assertAlmostEqual(112.5, get_power_model("cubic", 200, 0.5).get_power(0.5))

    def test_utilization_out_of_range(self):
        model = get_power_model("linear", 200, 0.5)

        with self.assertRaises(InvalidUtilizationError):
            model.get_power(1.01)

        with self.assertRaises(InvalidUtilizationError):
            model.get_power(-0.1)

    def test_unknown_alias(self):
        with self.assertRaises(PowerModelNotFoundError):
            get_power_model("quartic", 200, 0.5)

    def test_register_power_model(self):
        @register_power_model("unit_test_step")
        class StepPowerModel(AbsPowerModel):
            def _shape(self, utilization: float) -> float:
                return 1.0 if utilization > 0.5 else 0.0

        try:
            model = get_power_model("unit_test_step", 100, 0.5)

            self.assertIsInstance(model, StepPowerModel)
            self.assertAlmostEqual(50, model.get_power(0.4))
            self.assertAlmostEqual(100, model.get_power(0.6))
        finally:
            POWER_MODELS.pop("unit_test_step")


if __name__ == "__main__":
    unittest.main()

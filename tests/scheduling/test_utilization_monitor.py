# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import unittest

from cloudplan.scheduling import ResourceType, UtilizationMonitor
from tests.utils import make_host, make_vm, place


class TestUtilizationMonitor(unittest.TestCase):
    def test_rolling_window(self):
        monitor = UtilizationMonitor(samples=2)

        monitor.record(0, ResourceType.CPU, 0.2)
        monitor.record(0, ResourceType.CPU, 0.4)
        monitor.record(0, ResourceType.CPU, 0.9)

        # the oldest sample is evicted once the window is full
        self.assertListEqual([0.4, 0.9], monitor.get_history(0, ResourceType.CPU))
        self.assertAlmostEqual(0.65, monitor.get_average(0, ResourceType.CPU))

    def test_resources_are_separated(self):
        monitor = UtilizationMonitor()

        monitor.record(0, ResourceType.CPU, 0.2)

        self.assertListEqual([], monitor.get_history(0, ResourceType.RAM))
        self.assertListEqual([], monitor.get_history(1, ResourceType.CPU))
        self.assertIsNone(monitor.get_average(0, ResourceType.RAM))

    def test_collect(self):
        monitor = UtilizationMonitor(samples=3)
        host = make_host(0, mips=1000, ram=1000)
        place(host, make_vm(0, mips=500, ram=250, cpu_utilization=0.5))

        monitor.collect([host])

        self.assertListEqual([0.25], monitor.get_history(0, ResourceType.CPU))
        self.assertListEqual([0.25], monitor.get_history(0, ResourceType.RAM))
        self.assertEqual(3, monitor.samples)

    def test_reset(self):
        monitor = UtilizationMonitor()
        monitor.record(0, ResourceType.CPU, 0.2)

        monitor.reset()

        self.assertIsNone(monitor.get_average(0, ResourceType.CPU))


if __name__ == "__main__":
    unittest.main()

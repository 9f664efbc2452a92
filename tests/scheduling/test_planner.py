# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import unittest

from cloudplan.scheduling import AllocationLedger, LoadDetector, MigrationPlanner, MigrationReason, UtilizationMonitor
from tests.utils import make_host, make_vm, place


class PlannerTestCase(unittest.TestCase):
    def setUp(self):
        detector = LoadDetector(upper_threshold=0.8, lower_threshold=0.2, monitor=UtilizationMonitor())
        self.planner = MigrationPlanner(detector, datacenter_name="dc")

    def make_loaded_host(self, host_id: int, load_mips: float, vm_id: int):
        """A host whose CPU usage comes from one VM of the given size."""
        host = make_host(host_id, mips=1000, ram=10000)
        place(host, make_vm(vm_id, mips=load_mips))

        return host


class TestDistribute(PlannerTestCase):
    def setUp(self):
        super().setUp()

        # 85% used: three VMs of 10% each, then 55% of background load.
        self.source = make_host(0, mips=1000, ram=10000)
        self.small_vms = [make_vm(i, mips=100) for i in range(3)]
        place(self.source, *self.small_vms, make_vm(3, mips=550))

        self.target_50 = self.make_loaded_host(1, 500, vm_id=10)
        self.target_60 = self.make_loaded_host(2, 600, vm_id=11)

    def test_moves_just_enough(self):
        migrations = self.planner.distribute(self.source, [self.target_50, self.target_60], 0.8, simulation_id=7)

        self.assertEqual(1, len(migrations))
        migration = migrations[0]
        self.assertEqual(0, migration.vm_id)
        self.assertEqual(0, migration.source_host_id)
        self.assertEqual(1, migration.target_host_id)
        self.assertEqual(7, migration.simulation_id)
        self.assertEqual(MigrationReason.DISTRIBUTE, migration.reason)
        self.assertEqual("dc", migration.datacenter_name)

        # planning-time snapshot of both hosts
        self.assertAlmostEqual(0.85, migration.source_host_cpu_utilization)
        self.assertAlmostEqual(0.5, migration.target_host_cpu_utilization)
        self.assertAlmostEqual(
            self.source.get_power() / self.source.max_power, migration.source_host_power_consumption
        )
        self.assertIsNone(migration.start_tick)

        # nothing is executed by the planner
        self.assertEqual(4, len(self.source.vm_list))
        self.assertListEqual([], self.target_50.vms_migrating_in)

    def test_is_first_fit_in_target_order(self):
        migrations = self.planner.distribute(self.source, [self.target_60, self.target_50], 0.8, simulation_id=7)

        self.assertEqual(1, len(migrations))
        self.assertEqual(2, migrations[0].target_host_id)

    def test_never_targets_the_source(self):
        migrations = self.planner.distribute(self.source, [self.source, self.target_50], 0.8, simulation_id=7)

        self.assertListEqual([1], [migration.target_host_id for migration in migrations])

    def test_vm_in_migration_is_not_moved(self):
        self.small_vms[0].in_migration = True

        migrations = self.planner.distribute(self.source, [self.target_50], 0.8, simulation_id=7)

        # the leaving VM no longer counts: 75% - 10% is below the threshold after one move
        self.assertListEqual([1], [migration.vm_id for migration in migrations])

    def test_best_effort(self):
        source = make_host(5, mips=1000, ram=10000)
        place(source, *[make_vm(20 + i, mips=100) for i in range(3)], make_vm(23, mips=650))
        target = self.make_loaded_host(6, 650, vm_id=24)

        migrations = self.planner.distribute(source, [target], 0.8, simulation_id=7)

        # the target has room for one VM only, the source stays overloaded
        self.assertListEqual([20], [migration.vm_id for migration in migrations])
        self.assertAlmostEqual(0.85, self.planner.get_projected_cpu_utilization(source))

    def test_no_target_has_room(self):
        target = self.make_loaded_host(6, 750, vm_id=24)

        self.assertListEqual([], self.planner.distribute(self.source, [target], 0.8, simulation_id=7))

    def test_raw_capacity_of_target(self):
        # mostly idle, but its whole capacity is already allocated
        target = make_host(6, mips=1000, ram=10000)
        place(target, make_vm(24, mips=800, cpu_utilization=0.1))
        source = make_host(5, mips=1000, ram=10000)
        place(source, make_vm(20, mips=300), make_vm(21, mips=600))

        self.assertListEqual([], self.planner.distribute(source, [target], 0.8, simulation_id=7))

    def test_calls_share_a_planning_pass(self):
        other_source = make_host(5, mips=1000, ram=10000)
        place(other_source, *[make_vm(20 + i, mips=100) for i in range(3)], make_vm(23, mips=550))
        target = self.make_loaded_host(6, 650, vm_id=24)

        with self.planner.planning_pass():
            first = self.planner.distribute(self.source, [target], 0.8, simulation_id=7)
            second = self.planner.distribute(other_source, [target], 0.8, simulation_id=7)

        # the headroom of the target is spent by the first call
        self.assertEqual(1, len(first))
        self.assertListEqual([], second)

        # outside of a pass, every call starts from the measured load
        self.assertEqual(1, len(self.planner.distribute(other_source, [target], 0.8, simulation_id=7)))


class TestConsolidate(PlannerTestCase):
    def setUp(self):
        super().setUp()

        self.ledger = AllocationLedger()
        self.source = make_host(0, mips=1000, ram=10000)
        self.vms = [make_vm(0, mips=100), make_vm(1, mips=100)]
        for vm in self.vms:
            self.assertTrue(self.ledger.allocate(vm, self.source))

        # 75% used, no room for a single VM
        self.full_target = make_host(1, mips=1000, ram=10000)
        self.ledger.allocate(make_vm(10, mips=750), self.full_target)

        # 40% used, room for both VMs
        self.free_target = make_host(2, mips=1000, ram=10000)
        self.ledger.allocate(make_vm(11, mips=400), self.free_target)

    def test_every_vm_to_a_single_host(self):
        targets = [self.source, self.full_target, self.free_target]

        migrations = self.planner.consolidate(self.source, targets, [], 0.8, simulation_id=3)

        self.assertEqual(2, len(migrations))
        self.assertListEqual([0, 1], sorted(migration.vm_id for migration in migrations))
        self.assertTrue(all(migration.target_host_id == 2 for migration in migrations))
        self.assertTrue(all(migration.reason == MigrationReason.CONSOLIDATE for migration in migrations))

        # executing the plan leaves the source without any VM
        for migration in migrations:
            vm = self.vms[migration.vm_id]
            self.free_target.add_migrating_in_vm(vm)
            vm.in_migration = True
            self.ledger.relocate(vm, self.free_target)
            vm.in_migration = False

        self.assertListEqual([], self.source.vm_list)
        self.assertTrue(self.source.is_idle())
        self.assertEqual(3, len(self.free_target.vm_list))
        self.assertEqual(600, self.free_target.mips_allocated)

    def test_excluded_host_is_not_a_target(self):
        migrations = self.planner.consolidate(
            self.source, [self.full_target, self.free_target], [self.free_target.id], 0.8, simulation_id=3
        )

        self.assertListEqual([], migrations)

    def test_all_or_nothing(self):
        # room for one of the two VMs only
        target = make_host(3, mips=1000, ram=10000)
        self.ledger.allocate(make_vm(12, mips=650), target)

        with self.planner.planning_pass():
            migrations = self.planner.consolidate(self.source, [self.full_target, target], [], 0.8, simulation_id=3)

            self.assertListEqual([], migrations)
            # the discarded plan does not hold any capacity
            self.assertAlmostEqual(0.65, self.planner.get_projected_cpu_utilization(target))
            self.assertAlmostEqual(0.2, self.planner.get_projected_cpu_utilization(self.source))

    def test_vm_in_migration_is_left_out(self):
        self.vms[0].in_migration = True

        migrations = self.planner.consolidate(self.source, [self.free_target], [], 0.8, simulation_id=3)

        self.assertListEqual([1], [migration.vm_id for migration in migrations])

    def test_host_receiving_vms_is_not_emptied(self):
        other_source = make_host(3, mips=1000, ram=10000)
        self.ledger.allocate(make_vm(12, mips=100), other_source)

        with self.planner.planning_pass():
            first = self.planner.consolidate(self.source, [other_source], [], 0.8, simulation_id=3)
            second = self.planner.consolidate(other_source, [self.free_target], [self.source.id], 0.8, 3)

        self.assertEqual(2, len(first))
        # the VMs planned to arrive on it keep it busy
        self.assertListEqual([], second)


if __name__ == "__main__":
    unittest.main()

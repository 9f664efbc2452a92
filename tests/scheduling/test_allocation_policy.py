# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import unittest

from cloudplan.scheduling import (
    ALLOCATION_POLICIES, AbsAllocationPolicy, MigrationReason, SingleThresholdPolicy, UtilizationMonitor,
    get_allocation_policy, register_allocation_policy
)
from cloudplan.utils.exception.config_exception import AllocationPolicyNotFoundError
from tests.utils import make_host, make_vm


class TestSingleThresholdPolicy(unittest.TestCase):
    def create_policy(self, hosts):
        return SingleThresholdPolicy(
            hosts=hosts, upper_threshold=0.8, lower_threshold=0.2, monitor=UtilizationMonitor(), datacenter_name="dc"
        )

    def fill(self, policy, host, *vms):
        for vm in vms:
            self.assertTrue(policy.ledger.allocate(vm, host))

    def test_allocate_host_for_vm(self):
        hosts = [make_host(0, max_power=400), make_host(1, max_power=200)]
        policy = self.create_policy(hosts)
        vm = make_vm(0, mips=100)

        self.assertTrue(policy.allocate_host_for_vm(vm))

        # the smaller power increase
        self.assertIs(hosts[1], policy.get_host(vm))
        self.assertEqual(1, vm.host_id)

        policy.deallocate_host_for_vm(vm)
        self.assertIsNone(policy.get_host(vm))

    def test_allocate_without_any_host(self):
        policy = self.create_policy([make_host(0, mips=1000)])
        vm = make_vm(0, mips=2000)

        self.assertFalse(policy.allocate_host_for_vm(vm))
        self.assertEqual(-1, vm.host_id)

    def test_nothing_to_optimize(self):
        policy = self.create_policy([make_host(0)])

        self.assertListEqual([], policy.optimize_allocation([], simulation_id=1))

    def test_distribute_then_consolidate(self):
        hosts = [make_host(i) for i in range(4)]
        policy = self.create_policy(hosts)

        # 85%, 50%, 10% and idle
        vms = [make_vm(i, mips=100) for i in range(3)] + [make_vm(3, mips=550), make_vm(10, mips=500), make_vm(20)]
        self.fill(policy, hosts[0], *vms[:4])
        self.fill(policy, hosts[1], vms[4])
        self.fill(policy, hosts[2], vms[5])

        migrations = policy.optimize_allocation(vms, simulation_id=5)

        self.assertListEqual(
            [(0, 0, 1, MigrationReason.DISTRIBUTE), (20, 2, 1, MigrationReason.CONSOLIDATE)],
            [(m.vm_id, m.source_host_id, m.target_host_id, m.reason) for m in migrations]
        )
        self.assertTrue(all(m.simulation_id == 5 and m.datacenter_name == "dc" for m in migrations))

        # planning only
        self.assertEqual(4, len(hosts[0].vm_list))
        self.assertListEqual([], hosts[1].vms_migrating_in)

    def test_hottest_host_is_relieved_first(self):
        hosts = [make_host(i) for i in range(3)]
        policy = self.create_policy(hosts)

        # 85% and 95%, the target has room for one VM only
        self.fill(policy, hosts[0], *[make_vm(i, mips=100) for i in range(3)], make_vm(3, mips=550))
        self.fill(policy, hosts[1], *[make_vm(30 + i, mips=100) for i in range(3)], make_vm(33, mips=650))
        self.fill(policy, hosts[2], make_vm(40, mips=650))

        migrations = policy.optimize_allocation(hosts[0].vm_list + hosts[1].vm_list, simulation_id=1)

        self.assertListEqual([(30, 1, 2)], [(m.vm_id, m.source_host_id, m.target_host_id) for m in migrations])

    def test_emptied_host_is_not_a_target(self):
        hosts = [make_host(i) for i in range(3)]
        policy = self.create_policy(hosts)

        # 10%, 10% and 50%
        self.fill(policy, hosts[0], make_vm(0))
        self.fill(policy, hosts[1], make_vm(1))
        self.fill(policy, hosts[2], make_vm(2, mips=500))

        migrations = policy.optimize_allocation(hosts[0].vm_list + hosts[1].vm_list, simulation_id=1)

        # host 1 would have to keep the VM it receives, so it is not emptied
        self.assertListEqual([(0, 0, 1)], [(m.vm_id, m.source_host_id, m.target_host_id) for m in migrations])

    def test_idle_host_is_not_consolidated(self):
        hosts = [make_host(0), make_host(1)]
        policy = self.create_policy(hosts)
        self.fill(policy, hosts[0], make_vm(0, mips=500))

        self.assertListEqual([], policy.optimize_allocation(hosts[0].vm_list, simulation_id=1))

    def test_save_and_restore(self):
        hosts = [make_host(0), make_host(1)]
        policy = self.create_policy(hosts)
        vm = make_vm(0)
        self.fill(policy, hosts[0], vm)
        snapshot = policy.save_allocation([vm])

        policy.deallocate_host_for_vm(vm)
        policy.restore_allocation([vm], hosts)

        self.assertEqual(0, snapshot.get_host_id(vm.id))
        self.assertIs(hosts[0], policy.get_host(vm))


class TestAllocationPolicyRegistry(unittest.TestCase):
    def tearDown(self):
        ALLOCATION_POLICIES.pop("first_host", None)

    def test_builtin_policy(self):
        policy = get_allocation_policy(
            "single_threshold", hosts=[], upper_threshold=0.8, lower_threshold=0.2, monitor=UtilizationMonitor()
        )

        self.assertIsInstance(policy, SingleThresholdPolicy)

    def test_custom_policy(self):
        @register_allocation_policy("first_host")
        class FirstHostPolicy(AbsAllocationPolicy):
            def find_host_for_vm(self, vm):
                return self.hosts[0] if self.hosts else None

            def optimize_allocation(self, vms, simulation_id):
                return []

        hosts = [make_host(0), make_host(1)]
        policy = get_allocation_policy(
            "first_host", hosts=hosts, upper_threshold=0.8, lower_threshold=0.2, monitor=UtilizationMonitor()
        )
        vm = make_vm(0)

        self.assertIsInstance(policy, FirstHostPolicy)
        self.assertTrue(policy.allocate_host_for_vm(vm))
        self.assertIs(hosts[0], policy.get_host(vm))

    def test_unknown_policy(self):
        with self.assertRaises(AllocationPolicyNotFoundError):
            get_allocation_policy("unknown", hosts=[], upper_threshold=0.8, lower_threshold=0.2, monitor=None)


if __name__ == "__main__":
    unittest.main()

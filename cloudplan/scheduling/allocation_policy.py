# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Type

from cloudplan.utils import InternalLogger
from cloudplan.utils.exception.config_exception import AllocationPolicyNotFoundError

from .common import AllocationSnapshot, Migration
from .detector import LoadDetector
from .enums import HostLoadState
from .host import Host
from .ledger import AllocationLedger
from .planner import MigrationPlanner
from .selector import PowerAwareSelector
from .utilization_monitor import UtilizationMonitor
from .virtual_machine import VirtualMachine

logger = InternalLogger("allocation_policy")


class AbsAllocationPolicy(ABC):
    """Decide where VMs run: placement of new VMs and periodic re-optimization.

    Args:
        hosts (List[Host]): Hosts managed by the policy.
        upper_threshold (float): Upper utilization threshold.
        lower_threshold (float): Lower utilization threshold.
        monitor (UtilizationMonitor): Recent utilization samples of the hosts.
        datacenter_name (str): Name of the datacenter, stamped on the migrations.
    """

    def __init__(
        self, hosts: List[Host], upper_threshold: float, lower_threshold: float, monitor: UtilizationMonitor,
        datacenter_name: str = ""
    ):
        self.hosts = hosts
        self.upper_threshold = upper_threshold
        self.lower_threshold = lower_threshold
        self.monitor = monitor
        self.datacenter_name = datacenter_name

        self.ledger = AllocationLedger()

    def allocate_host_for_vm(self, vm: VirtualMachine) -> bool:
        """Find a host for the VM and create it there.

        Returns:
            bool: False if no host can take the VM, the caller decides whether to retry.
        """
        host = self.find_host_for_vm(vm)
        if host is not None and self.ledger.allocate(vm, host):
            logger.info(f"VM {vm.id} has been allocated to host {host.id}")
            return True

        logger.warn(f"No host can take VM {vm.id}")
        return False

    def deallocate_host_for_vm(self, vm: VirtualMachine):
        self.ledger.deallocate(vm)

    def get_host(self, vm: VirtualMachine) -> Optional[Host]:
        return self.ledger.get_host(vm)

    def save_allocation(self, vms: List[VirtualMachine]) -> AllocationSnapshot:
        return self.ledger.save(vms)

    def restore_allocation(self, vms_to_restore: List[VirtualMachine], hosts: List[Host]):
        self.ledger.restore(vms_to_restore, hosts)

    @abstractmethod
    def find_host_for_vm(self, vm: VirtualMachine) -> Optional[Host]:
        """Choose a host for the VM without creating it."""
        pass

    @abstractmethod
    def optimize_allocation(self, vms: List[VirtualMachine], simulation_id: int) -> List[Migration]:
        """Plan the migrations to execute at a monitoring tick.

        Args:
            vms (List[VirtualMachine]): VMs of the datacenter.
            simulation_id (int): Stamped on every migration.

        Returns:
            List[Migration]: Migrations to execute, in order.
        """
        pass

    def reset(self):
        self.ledger.reset()


ALLOCATION_POLICIES: Dict[str, Type[AbsAllocationPolicy]] = {}


def register_allocation_policy(alias: str) -> Callable:
    """Class decorator to make an allocation policy available by alias in topology configs."""
    def _register(cls: Type[AbsAllocationPolicy]) -> Type[AbsAllocationPolicy]:
        ALLOCATION_POLICIES[alias] = cls
        return cls

    return _register


def get_allocation_policy_class(alias: str) -> Type[AbsAllocationPolicy]:
    if alias not in ALLOCATION_POLICIES:
        raise AllocationPolicyNotFoundError(alias)

    return ALLOCATION_POLICIES[alias]


def get_allocation_policy(alias: str, **kwargs) -> AbsAllocationPolicy:
    return get_allocation_policy_class(alias)(**kwargs)


@register_allocation_policy("single_threshold")
class SingleThresholdPolicy(AbsAllocationPolicy):
    """Keep every host below one upper threshold and power off the underloaded ones.

    New VMs go to the host whose power grows the least. At each optimization the overloaded
    hosts, highest power first, are relieved onto the hosts that are not overloaded, then
    every active underloaded host is emptied onto the other active hosts when all of its
    VMs find a target. A host emptied this way is not used as a target afterwards.
    """

    def __init__(
        self, hosts: List[Host], upper_threshold: float, lower_threshold: float, monitor: UtilizationMonitor,
        datacenter_name: str = ""
    ):
        super().__init__(hosts, upper_threshold, lower_threshold, monitor, datacenter_name)

        self.detector = LoadDetector(upper_threshold, lower_threshold, monitor)
        self.selector = PowerAwareSelector(upper_threshold)
        self.planner = MigrationPlanner(self.detector, datacenter_name)

    def find_host_for_vm(self, vm: VirtualMachine) -> Optional[Host]:
        return self.selector.select_host(vm, self.hosts)

    def optimize_allocation(self, vms: List[VirtualMachine], simulation_id: int) -> List[Migration]:
        if not vms:
            return []

        states = {report.host_id: report.state for report in self.detector.classify_all(self.hosts)}
        overloaded_hosts = [host for host in self.hosts if states[host.id] == HostLoadState.OVERLOADED]

        migrations = []
        with self.planner.planning_pass():
            if overloaded_hosts:
                migrations.extend(self._distribute(overloaded_hosts, states, simulation_id))
            migrations.extend(self._consolidate(states, simulation_id))

        logger.info(
            f"Optimization planned {len(migrations)} migrations, overloaded hosts: "
            f"{[host.id for host in overloaded_hosts]}"
        )

        return migrations

    def _distribute(
        self, overloaded_hosts: List[Host], states: Dict[int, HostLoadState], simulation_id: int
    ) -> List[Migration]:
        target_hosts = [host for host in self.hosts if states[host.id] != HostLoadState.OVERLOADED]
        if not target_hosts:
            return []

        migrations = []
        for source_host in sorted(overloaded_hosts, key=lambda host: host.get_power(), reverse=True):
            migrations.extend(self.planner.distribute(source_host, target_hosts, self.upper_threshold, simulation_id))

        return migrations

    def _consolidate(self, states: Dict[int, HostLoadState], simulation_id: int) -> List[Migration]:
        active_hosts = [
            host for host in self.hosts if host.get_cpu_utilization() > 0 and host.get_ram_utilization() > 0
        ]
        turned_off_host_ids = []

        migrations = []
        for source_host in active_hosts:
            if states[source_host.id] != HostLoadState.UNDERLOADED:
                continue

            consolidation = self.planner.consolidate(
                source_host, active_hosts, turned_off_host_ids, self.upper_threshold, simulation_id
            )
            if consolidation:
                migrations.extend(consolidation)
                turned_off_host_ids.append(source_host.id)

        return migrations

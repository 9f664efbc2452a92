# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import Iterable, Optional

from cloudplan.utils import InternalLogger

from .host import Host
from .virtual_machine import VirtualMachine

logger = InternalLogger("selector")

# A VM placed for the first time may fill a host completely.
INSTANTIATION_UTILIZATION_CEILING = 1.0


class PowerAwareSelector:
    """Pick the host whose power draw grows the least when the VM is added.

    Args:
        upper_threshold (float): Highest utilization a host may reach by receiving a migrated VM.
    """

    def __init__(self, upper_threshold: float):
        self.upper_threshold = upper_threshold

    def select_host(self, vm: VirtualMachine, hosts: Iterable[Host]) -> Optional[Host]:
        """Choose a host for the VM, nothing is committed.

        Every host with raw spare capacity is evaluated by a trial allocation. The host is
        rejected if its highest resource utilization would exceed the upper threshold, or
        100% for a VM being instantiated. Ties on the power increase go to the first host.

        Args:
            vm (VirtualMachine): VM to place.
            hosts (Iterable[Host]): Candidate hosts, in evaluation order.

        Returns:
            Optional[Host]: The chosen host, None if no host qualifies.
        """
        ceiling = INSTANTIATION_UTILIZATION_CEILING if vm.being_instantiated else self.upper_threshold
        min_power_diff = float("inf")
        chosen_host = None

        for host in hosts:
            if host.has_vm(vm) or not host.is_suitable_for_vm(vm):
                continue

            power_before = host.get_power()
            with host.trial_allocation(vm):
                max_utilization = host.get_max_utilization()
                power_after = host.get_power()

            if max_utilization > ceiling:
                logger.debug(f"Host {host.id} rejected for VM {vm.id}, utilization {max_utilization:.3f} > {ceiling}")
                continue

            power_diff = power_after - power_before
            logger.debug(f"Host {host.id} evaluated for VM {vm.id}, power increase {power_diff:.3f}")
            if power_diff < min_power_diff:
                min_power_diff = power_diff
                chosen_host = host

        return chosen_host

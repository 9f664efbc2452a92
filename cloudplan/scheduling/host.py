# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from contextlib import contextmanager
from typing import Dict, List

from cloudplan.utils.exception.scheduling_exception import HostCapacityExceededError

from .power_model import AbsPowerModel
from .virtual_machine import VirtualMachine


class Host:
    """Physical host with fixed capacity and a power curve.

    Two kinds of VM are charged against the host capacity: the resident VMs and the VMs
    migrating in, whose destination is this host and whose resources are reserved in
    advance. Capacity is always charged with the full requested demand of a VM, while the
    CPU utilization (and so the power) follows what the resident VMs actually use.

    Args:
        id (int): Host id, from 0 to N.
        pes_number (int): Number of cores.
        mips_per_pe (float): Rate of each core.
        ram (int): Memory capacity.
        bw (int): Bandwidth capacity.
        storage (int): Local storage capacity.
        power_model (AbsPowerModel): Converts a CPU utilization fraction into watts.
    """
    def __init__(
        self,
        id: int,
        pes_number: int,
        mips_per_pe: float,
        ram: int,
        bw: int,
        storage: int,
        power_model: AbsPowerModel,
    ):
        self.id: int = id
        self.pes_number: int = pes_number
        self.mips_per_pe: float = mips_per_pe
        self.ram: int = ram
        self.bw: int = bw
        self.storage: int = storage
        self.power_model: AbsPowerModel = power_model

        self._vms: Dict[int, VirtualMachine] = {}
        self._vms_migrating_in: Dict[int, VirtualMachine] = {}

        # Statistical features.
        self.mips_allocated: float = 0.0
        self.ram_allocated: int = 0
        self.bw_allocated: int = 0
        self.storage_allocated: int = 0

    @property
    def total_mips(self) -> float:
        return self.pes_number * self.mips_per_pe

    @property
    def vm_list(self) -> List[VirtualMachine]:
        """List[VirtualMachine]: Resident VMs, in the order they were created on the host."""
        return list(self._vms.values())

    @property
    def vms_migrating_in(self) -> List[VirtualMachine]:
        return list(self._vms_migrating_in.values())

    @property
    def max_power(self) -> float:
        return self.power_model.max_power

    def has_vm(self, vm: VirtualMachine) -> bool:
        return vm.id in self._vms

    def is_idle(self) -> bool:
        return not self._vms and not self._vms_migrating_in

    def is_suitable_for_vm(self, vm: VirtualMachine) -> bool:
        """Check the raw spare capacity on every resource dimension."""
        return (
            self.mips_allocated + vm.total_mips <= self.total_mips
            and self.ram_allocated + vm.ram <= self.ram
            and self.bw_allocated + vm.bw <= self.bw
            and self.storage_allocated + vm.size <= self.storage
        )

    def vm_create(self, vm: VirtualMachine) -> bool:
        """Create the VM on this host.

        Returns:
            bool: False if there is not enough capacity, nothing is changed in that case.
        """
        if vm.id in self._vms or not self.is_suitable_for_vm(vm):
            return False

        self._allocate(vm)
        self._vms[vm.id] = vm
        vm.host_id = self.id

        return True

    def vm_destroy(self, vm: VirtualMachine):
        if vm.id not in self._vms:
            return

        self._vms.pop(vm.id)
        self._deallocate(vm)
        if vm.host_id == self.id:
            vm.host_id = -1

    def vm_destroy_all(self):
        """Evict every resident VM and zero the allocated counters.

        The VMs migrating in stay registered, ``reallocate_migrating_in_vms`` charges their
        reservations again.
        """
        for vm in self._vms.values():
            if vm.host_id == self.id:
                vm.host_id = -1

        self._vms.clear()
        self.mips_allocated = 0.0
        self.ram_allocated = 0
        self.bw_allocated = 0
        self.storage_allocated = 0

    def add_migrating_in_vm(self, vm: VirtualMachine):
        """Reserve the resources of a VM whose migration to this host has started."""
        if vm.id in self._vms_migrating_in:
            return

        if not self.is_suitable_for_vm(vm):
            raise HostCapacityExceededError(vm.id, self.id)

        self._allocate(vm)
        self._vms_migrating_in[vm.id] = vm

    def remove_migrating_in_vm(self, vm: VirtualMachine):
        if vm.id not in self._vms_migrating_in:
            return

        self._vms_migrating_in.pop(vm.id)
        self._deallocate(vm)

    def reallocate_migrating_in_vms(self):
        """Charge again the reservations of the VMs migrating in, used after ``vm_destroy_all``."""
        for vm in self._vms_migrating_in.values():
            if not self.is_suitable_for_vm(vm):
                raise HostCapacityExceededError(vm.id, self.id)

            self._allocate(vm)

    @contextmanager
    def trial_allocation(self, vm: VirtualMachine):
        """Temporarily place the VM to evaluate utilization and power, always undone on exit.

        Example:

            .. code-block:: python

                with host.trial_allocation(vm):
                    power_after = host.get_power()
        """
        if vm.id in self._vms or not self.is_suitable_for_vm(vm):
            raise HostCapacityExceededError(vm.id, self.id)

        self._allocate(vm)
        self._vms[vm.id] = vm
        try:
            yield self
        finally:
            self._vms.pop(vm.id)
            self._deallocate(vm)

    def get_total_allocated_mips_for_vm(self, vm: VirtualMachine) -> float:
        """MIPS currently used by a resident VM, 0 for a VM not resident on this host."""
        if vm.id not in self._vms:
            return 0.0

        return vm.current_requested_total_mips

    def get_utilization_of_cpu_mips(self) -> float:
        return sum(vm.current_requested_total_mips for vm in self._vms.values())

    def get_utilization_of_ram(self) -> int:
        return sum(vm.ram for vm in self._vms.values())

    def get_utilization_of_bw(self) -> int:
        return sum(vm.bw for vm in self._vms.values())

    def get_cpu_utilization(self) -> float:
        return self.get_utilization_of_cpu_mips() / self.total_mips

    def get_ram_utilization(self) -> float:
        return self.get_utilization_of_ram() / self.ram

    def get_max_utilization(self) -> float:
        """The highest utilization fraction among the CPU, memory and bandwidth dimensions."""
        return max(
            self.get_cpu_utilization(),
            self.get_ram_utilization(),
            self.get_utilization_of_bw() / self.bw if self.bw else 0.0,
        )

    def get_power(self) -> float:
        return self.power_model.get_power(min(1.0, self.get_cpu_utilization()))

    def _allocate(self, vm: VirtualMachine):
        self.mips_allocated += vm.total_mips
        self.ram_allocated += vm.ram
        self.bw_allocated += vm.bw
        self.storage_allocated += vm.size

    def _deallocate(self, vm: VirtualMachine):
        self.mips_allocated = max(0.0, self.mips_allocated - vm.total_mips)
        self.ram_allocated = max(0, self.ram_allocated - vm.ram)
        self.bw_allocated = max(0, self.bw_allocated - vm.bw)
        self.storage_allocated = max(0, self.storage_allocated - vm.size)

    def __repr__(self):
        return "%s {id: %r, vms: %r, migrating_in: %r, cpu_utilization: %.3f, ram_utilization: %.3f}" % (
            self.__class__.__name__, self.id, list(self._vms), list(self._vms_migrating_in),
            self.get_cpu_utilization(), self.get_ram_utilization()
        )

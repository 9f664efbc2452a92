# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import Dict, Iterable, List, Optional

from cloudplan.utils import InternalLogger
from cloudplan.utils.exception.scheduling_exception import (
    AllocationRestoreError, HostCapacityExceededError, VmNotFoundError
)

from .common import AllocationSnapshot
from .host import Host
from .virtual_machine import VirtualMachine

logger = InternalLogger("ledger")


class AllocationLedger:
    """The VM to host mapping of a datacenter.

    Every placement goes through the ledger so that a VM is resident on one host at most.
    The mapping can be saved and restored, to roll back an allocation that must be abandoned.
    """

    def __init__(self):
        self._vm_table: Dict[int, Host] = {}
        self._saved_allocation: Optional[AllocationSnapshot] = None

    @property
    def saved_allocation(self) -> Optional[AllocationSnapshot]:
        """Optional[AllocationSnapshot]: The last snapshot taken by ``save``."""
        return self._saved_allocation

    def allocate(self, vm: VirtualMachine, host: Host) -> bool:
        """Create the VM on the host and record the placement.

        Returns:
            bool: False if the VM is already placed or the host lacks capacity.
        """
        if vm.id in self._vm_table or not host.vm_create(vm):
            return False

        self._vm_table[vm.id] = host
        vm.being_instantiated = False

        return True

    def deallocate(self, vm: VirtualMachine):
        host = self._vm_table.pop(vm.id, None)
        if host is not None:
            host.vm_destroy(vm)

    def relocate(self, vm: VirtualMachine, target_host: Host):
        """Complete a migration: the VM leaves its host and its reservation on the target
        becomes a placement.

        Raises:
            VmNotFoundError: If the VM is not placed.
            HostCapacityExceededError: If the target cannot host the VM.
        """
        source_host = self._vm_table.get(vm.id)
        if source_host is None:
            raise VmNotFoundError(vm.id)

        source_host.vm_destroy(vm)
        target_host.remove_migrating_in_vm(vm)
        self._vm_table.pop(vm.id)

        if not self.allocate(vm, target_host):
            raise HostCapacityExceededError(vm.id, target_host.id)

    def get_host(self, vm: VirtualMachine) -> Optional[Host]:
        return self._vm_table.get(vm.id)

    def get_host_id(self, vm: VirtualMachine) -> int:
        host = self.get_host(vm)
        return -1 if host is None else host.id

    def save(self, vms: Iterable[VirtualMachine]) -> AllocationSnapshot:
        """Capture the current host of every given VM, replacing the previous snapshot."""
        self._saved_allocation = AllocationSnapshot({vm.id: (vm, self._vm_table.get(vm.id)) for vm in vms})

        return self._saved_allocation

    def restore(
        self, vms_to_restore: Iterable[VirtualMachine], hosts: List[Host], snapshot: AllocationSnapshot = None
    ):
        """Re-apply a snapshot on the given hosts.

        Every host is emptied first, reservations of the VMs migrating in are charged again,
        then the VMs to restore are created back on the host they had in the snapshot.

        Args:
            vms_to_restore (Iterable[VirtualMachine]): VMs whose placement is re-created.
            hosts (List[Host]): Hosts to empty before restoring.
            snapshot (AllocationSnapshot): Defaults to the last snapshot taken by ``save``.

        Raises:
            AllocationRestoreError: If a placement of the snapshot cannot be re-created, which
                means the capacity bookkeeping is inconsistent.
        """
        snapshot = snapshot if snapshot is not None else self._saved_allocation
        if snapshot is None:
            snapshot = AllocationSnapshot()

        evicted_host_ids = set()
        for host in hosts:
            host.vm_destroy_all()
            host.reallocate_migrating_in_vms()
            evicted_host_ids.add(host.id)

        self._vm_table = {
            vm_id: host for vm_id, host in self._vm_table.items() if host.id not in evicted_host_ids
        }

        for vm in vms_to_restore:
            if vm.id not in snapshot:
                continue

            # A VM that moved to a host outside ``hosts`` leaves it before being re-created.
            current_host = self._vm_table.pop(vm.id, None)
            if current_host is not None:
                current_host.vm_destroy(vm)

            host = snapshot.get_host(vm.id)
            if host is None:
                continue

            if not host.vm_create(vm):
                logger.critical(f"VM {vm.id} cannot be restored on host {host.id}")
                raise AllocationRestoreError(vm.id, host.id)

            self._vm_table[vm.id] = host
            logger.info(f"Restored VM {vm.id} on host {host.id}")

    def reset(self):
        self._vm_table.clear()
        self._saved_allocation = None

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from .enums import HostLoadState, MigrationReason
from .host import Host
from .virtual_machine import VirtualMachine


@dataclass
class Migration:
    """A planned relocation of one VM, not executed yet.

    The utilization and power fields are a copy of both hosts' state at planning time,
    they are kept for reporting only.
    """
    source_host_id: int
    target_host_id: int
    vm_id: int
    simulation_id: int
    reason: MigrationReason
    datacenter_name: str = ""

    source_host_cpu_utilization: float = 0.0
    source_host_ram_utilization: float = 0.0
    # Power draw relative to the max power of the host.
    source_host_power_consumption: float = 0.0
    target_host_cpu_utilization: float = 0.0
    target_host_ram_utilization: float = 0.0
    target_host_power_consumption: float = 0.0

    # Stamped by the datacenter when the migration is executed.
    start_tick: Optional[int] = None
    finish_tick: Optional[int] = None

    @classmethod
    def create(
        cls, source_host: Host, target_host: Host, vm: VirtualMachine, simulation_id: int, reason: MigrationReason,
        datacenter_name: str = ""
    ) -> "Migration":
        return cls(
            source_host_id=source_host.id,
            target_host_id=target_host.id,
            vm_id=vm.id,
            simulation_id=simulation_id,
            reason=reason,
            datacenter_name=datacenter_name,
            source_host_cpu_utilization=source_host.get_cpu_utilization(),
            source_host_ram_utilization=source_host.get_ram_utilization(),
            source_host_power_consumption=source_host.get_power() / source_host.max_power,
            target_host_cpu_utilization=target_host.get_cpu_utilization(),
            target_host_ram_utilization=target_host.get_ram_utilization(),
            target_host_power_consumption=target_host.get_power() / target_host.max_power,
        )

    @property
    def source_host_label(self) -> str:
        return f"Host{self.source_host_id}"

    @property
    def target_host_label(self) -> str:
        return f"Host{self.target_host_id}"

    @property
    def vm_label(self) -> str:
        return f"VM{self.vm_id}"


@dataclass
class HostLoadReport:
    """Classification of one host at a monitoring tick.

    ``cpu_utilization`` and ``ram_utilization`` are the instantaneous fractions,
    ``cpu_rate`` and ``ram_rate`` blend them with the average of the recent samples.
    """
    host_id: int
    state: HostLoadState
    cpu_utilization: float
    ram_utilization: float
    cpu_rate: float
    ram_rate: float
    cpu_overloaded: bool = False
    ram_overloaded: bool = False


class AllocationSnapshot:
    """A copy of the VM to host mapping at a point in time.

    Args:
        entries (Dict[int, Tuple[VirtualMachine, Host]]): VM id to (VM, host), host is None
            for a VM that was not placed.
    """

    def __init__(self, entries: Dict[int, Tuple[VirtualMachine, Optional[Host]]] = None):
        self._entries: Dict[int, Tuple[VirtualMachine, Optional[Host]]] = dict(entries) if entries else {}

    def get_host(self, vm_id: int) -> Optional[Host]:
        return self._entries[vm_id][1]

    def get_host_id(self, vm_id: int) -> int:
        host = self.get_host(vm_id)
        return -1 if host is None else host.id

    def items(self) -> Iterator[Tuple[VirtualMachine, Optional[Host]]]:
        return iter(self._entries.values())

    def __contains__(self, vm_id: int) -> bool:
        return vm_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self):
        return "%s {%s}" % (
            self.__class__.__name__,
            ", ".join(f"{vm_id}: {self.get_host_id(vm_id)}" for vm_id in self._entries)
        )

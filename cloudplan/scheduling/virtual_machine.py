# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import List

from .enums import VmState


class VirtualMachine:
    """VM object.

    The VM demand is fixed at creation: ``pes_number`` cores running at ``mips`` each, plus
    memory, bandwidth and image size. The CPU actually used by the VM fluctuates, and is
    expressed as a fraction of the requested MIPS through a per-tick utilization series.
    For example:
        A VM's cpu utilization series is [0.1, 0.4, 0.2] and its creation tick is 5.
        At tick 6 the VM uses 0.4 * total_mips. Once the series is exhausted,
        the last value is held.

    Args:
        id (int): The VM id.
        tenant_id (int): The id of the tenant that owns the VM.
        pes_number (int): The amount of virtual cores requested by VM.
        mips (float): The rate requested for each virtual core.
        ram (int): The memory requested by VM.
        bw (int): The bandwidth requested by VM.
        size (int): The image size of the VM.
        creation_tick (int): The tick the VM is requested at.
    """
    def __init__(
        self,
        id: int,
        tenant_id: int,
        pes_number: int,
        mips: float,
        ram: int,
        bw: int,
        size: int,
        creation_tick: int = 0
    ):
        # VM Requirement parameters.
        self.id: int = id
        self.tenant_id: int = tenant_id
        self.pes_number: int = pes_number
        self.mips: float = mips
        self.ram: int = ram
        self.bw: int = bw
        self.size: int = size
        self.creation_tick: int = creation_tick

        # VM utilization list with cpu utilization (fraction of the requested MIPS) per tick.
        self._utilization_series: List[float] = []
        self._cpu_utilization: float = 1.0

        # The host Id that the VM is assigned, -1 means unplaced.
        self.host_id: int = -1
        # A VM in migration must not be picked as a migration source again.
        self.in_migration: bool = False
        # True until the VM has been placed for the first time.
        self.being_instantiated: bool = True

    @property
    def total_mips(self) -> float:
        """float: Requested compute capacity, rate per core times core count."""
        return self.pes_number * self.mips

    @property
    def current_requested_total_mips(self) -> float:
        """float: Compute capacity in use at the current tick."""
        return self.total_mips * self._cpu_utilization

    @property
    def cpu_utilization(self) -> float:
        return self._cpu_utilization

    @cpu_utilization.setter
    def cpu_utilization(self, cpu_utilization: float):
        self._cpu_utilization = min(max(0.0, cpu_utilization), 1.0)

    @property
    def state(self) -> VmState:
        if self.in_migration:
            return VmState.MIGRATING

        return VmState.UNPLACED if self.host_id == -1 else VmState.PLACED

    def set_utilization_series(self, series: List[float]):
        self._utilization_series = list(series)
        if self._utilization_series:
            self.cpu_utilization = self._utilization_series[0]

    def get_utilization(self, cur_tick: int) -> float:
        """Get the CPU utilization at the given tick, holding the last known value."""
        if not self._utilization_series:
            return self._cpu_utilization

        offset = min(max(0, cur_tick - self.creation_tick), len(self._utilization_series) - 1)

        return self._utilization_series[offset]

    def update_utilization(self, cur_tick: int):
        self.cpu_utilization = self.get_utilization(cur_tick)

    def __repr__(self):
        return "%s {id: %r, host_id: %r, total_mips: %r, ram: %r, in_migration: %r}" % (
            self.__class__.__name__, self.id, self.host_id, self.total_mips, self.ram, self.in_migration
        )

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional, Set

from cloudplan.utils import InternalLogger

from .common import Migration
from .detector import LoadDetector
from .enums import MigrationReason
from .host import Host
from .virtual_machine import VirtualMachine

logger = InternalLogger("planner")

# Tolerance when checking that a consolidated host has been fully emptied.
EMPTY_HOST_EPSILON = 1e-9


class _HostTally:
    """Projected usage of one host within a planning pass.

    ``used_mips`` and ``used_ram`` start from the load measured by the detector and follow the
    planned moves. ``reserved_*`` accumulate the full demand of the VMs planned to arrive,
    checked against the raw spare capacity of the host.
    """
    __slots__ = ["used_mips", "used_ram", "reserved_mips", "reserved_ram", "reserved_bw", "reserved_storage"]

    def __init__(self, used_mips: float, used_ram: int):
        self.used_mips = used_mips
        self.used_ram = used_ram
        self.reserved_mips = 0.0
        self.reserved_ram = 0
        self.reserved_bw = 0
        self.reserved_storage = 0

    def copy(self) -> "_HostTally":
        tally = _HostTally(self.used_mips, self.used_ram)
        tally.reserved_mips = self.reserved_mips
        tally.reserved_ram = self.reserved_ram
        tally.reserved_bw = self.reserved_bw
        tally.reserved_storage = self.reserved_storage

        return tally


class MigrationPlanner:
    """Build the migration lists that relieve overloaded hosts and empty underloaded ones.

    Each call plans on top of a running tally of the usage of every host it touches, so a
    target never receives more than its headroom and a source is credited for the VMs that
    leave it. By default every call starts from a fresh tally; calls made inside
    ``planning_pass`` share one tally, and a VM planned by one of them is not planned again.

    Example:

        .. code-block:: python

            with planner.planning_pass():
                migrations = planner.distribute(overloaded_host, targets, 0.8, simulation_id)
                migrations += planner.consolidate(underloaded_host, targets, [], 0.8, simulation_id)

    Args:
        detector (LoadDetector): Measures the usage the tally starts from.
        datacenter_name (str): Stamped on every migration.
    """

    def __init__(self, detector: LoadDetector, datacenter_name: str = ""):
        self._detector = detector
        self._datacenter_name = datacenter_name

        self._in_pass = False
        self._tallies: Dict[int, _HostTally] = {}
        self._planned_vm_ids: Set[int] = set()

    @contextmanager
    def planning_pass(self):
        self._reset()
        self._in_pass = True
        try:
            yield self
        finally:
            self._in_pass = False
            self._reset()

    def get_projected_cpu_utilization(self, host: Host) -> float:
        return self._get_tally(host).used_mips / host.total_mips

    def get_projected_ram_utilization(self, host: Host) -> float:
        return self._get_tally(host).used_ram / host.ram

    def distribute(
        self, source_host: Host, target_hosts: List[Host], upper_threshold: float, simulation_id: int
    ) -> List[Migration]:
        """Move just enough VMs off an overloaded host to bring it below the threshold.

        VMs are taken in creation order and each goes to the first target that stays below
        the threshold on CPU and RAM. A VM with no such target is left in place, so the
        returned list may leave the source overloaded.

        Args:
            source_host (Host): The overloaded host.
            target_hosts (List[Host]): Candidate targets, in scan order.
            upper_threshold (float): Utilization no target may reach.
            simulation_id (int): Stamped on every migration.

        Returns:
            List[Migration]: Migrations in planning order, possibly empty.
        """
        if not self._in_pass:
            self._reset()

        migrations = []
        source_tally = self._get_tally(source_host)

        for vm in self._movable_vms(source_host):
            target_host = self._first_fit(vm, source_host, target_hosts, (), upper_threshold)
            if target_host is None:
                logger.debug(f"No target for VM {vm.id} on overloaded host {source_host.id}, left in place")
                continue

            migrations.append(self._commit(vm, source_host, target_host, simulation_id, MigrationReason.DISTRIBUTE))

            if (
                source_tally.used_mips / source_host.total_mips < upper_threshold
                and source_tally.used_ram / source_host.ram < upper_threshold
            ):
                break

        logger.info(f"Distribution of host {source_host.id} planned {len(migrations)} migrations")

        return migrations

    def consolidate(
        self, source_host: Host, target_hosts: List[Host], excluded_host_ids: Iterable[int], upper_threshold: float,
        simulation_id: int
    ) -> List[Migration]:
        """Move every VM off an underloaded host, or nothing at all.

        Args:
            source_host (Host): The host to empty.
            target_hosts (List[Host]): Candidate targets, in scan order.
            excluded_host_ids (Iterable[int]): Hosts already planned for shutdown, never used as targets.
            upper_threshold (float): Utilization no target may reach.
            simulation_id (int): Stamped on every migration.

        Returns:
            List[Migration]: One migration per movable VM of the source, or an empty list if any
                of them has no target.
        """
        if not self._in_pass:
            self._reset()

        excluded_host_ids = set(excluded_host_ids)
        saved_tallies = {host_id: tally.copy() for host_id, tally in self._tallies.items()}
        saved_planned_vm_ids = set(self._planned_vm_ids)

        migrations = []
        source_tally = self._get_tally(source_host)

        for vm in self._movable_vms(source_host):
            target_host = self._first_fit(vm, source_host, target_hosts, excluded_host_ids, upper_threshold)
            if target_host is not None:
                migrations.append(
                    self._commit(vm, source_host, target_host, simulation_id, MigrationReason.CONSOLIDATE)
                )

        if source_tally.used_mips > EMPTY_HOST_EPSILON or source_tally.used_ram > EMPTY_HOST_EPSILON:
            logger.debug(f"Consolidation of host {source_host.id} discarded, not every VM has a target")
            self._tallies = saved_tallies
            self._planned_vm_ids = saved_planned_vm_ids

            return []

        logger.info(f"Consolidation of host {source_host.id} planned {len(migrations)} migrations")

        return migrations

    def _reset(self):
        self._tallies = {}
        self._planned_vm_ids = set()

    def _get_tally(self, host: Host) -> _HostTally:
        if host.id not in self._tallies:
            self._tallies[host.id] = _HostTally(
                self._detector.get_host_used_mips(host), self._detector.get_host_used_ram(host)
            )

        return self._tallies[host.id]

    def _movable_vms(self, host: Host) -> List[VirtualMachine]:
        return [vm for vm in host.vm_list if not vm.in_migration and vm.id not in self._planned_vm_ids]

    def _first_fit(
        self, vm: VirtualMachine, source_host: Host, target_hosts: List[Host], excluded_host_ids: Iterable[int],
        upper_threshold: float
    ) -> Optional[Host]:
        for target_host in target_hosts:
            if target_host.id == source_host.id or target_host.id in excluded_host_ids:
                continue

            tally = self._get_tally(target_host)
            if (
                (tally.used_mips + vm.total_mips) / target_host.total_mips < upper_threshold
                and (tally.used_ram + vm.ram) / target_host.ram < upper_threshold
                and self._has_room(tally, target_host, vm)
            ):
                return target_host

        return None

    def _has_room(self, tally: _HostTally, host: Host, vm: VirtualMachine) -> bool:
        return (
            host.mips_allocated + tally.reserved_mips + vm.total_mips <= host.total_mips
            and host.ram_allocated + tally.reserved_ram + vm.ram <= host.ram
            and host.bw_allocated + tally.reserved_bw + vm.bw <= host.bw
            and host.storage_allocated + tally.reserved_storage + vm.size <= host.storage
        )

    def _commit(
        self, vm: VirtualMachine, source_host: Host, target_host: Host, simulation_id: int, reason: MigrationReason
    ) -> Migration:
        target_tally = self._get_tally(target_host)
        target_tally.used_mips += vm.total_mips
        target_tally.used_ram += vm.ram
        target_tally.reserved_mips += vm.total_mips
        target_tally.reserved_ram += vm.ram
        target_tally.reserved_bw += vm.bw
        target_tally.reserved_storage += vm.size

        source_tally = self._get_tally(source_host)
        source_tally.used_mips -= source_host.get_total_allocated_mips_for_vm(vm)
        source_tally.used_ram -= vm.ram

        self._planned_vm_ids.add(vm.id)
        logger.debug(f"VM {vm.id} planned from host {source_host.id} to host {target_host.id} ({reason.value})")

        return Migration.create(source_host, target_host, vm, simulation_id, reason, self._datacenter_name)

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import math
import os
from collections import Counter
from pathlib import Path
from typing import Dict, List

from yaml import safe_load

from cloudplan.event_buffer import AtomEvent, EventBuffer
from cloudplan.utils import InternalLogger, convert_dottable
from cloudplan.utils.exception.config_exception import InvalidTopologyError, TopologyNotFoundError

from .allocation_policy import AbsAllocationPolicy, get_allocation_policy, get_allocation_policy_class
from .common import Migration
from .detector import validate_thresholds
from .enums import Events, MigrationReason
from .helpers import DocableDict
from .host import Host
from .power_model import get_power_model
from .utilization_monitor import UtilizationMonitor
from .virtual_machine import VirtualMachine

metrics_desc = """
Power datacenter metrics used provide statistics information until now.
It contains following keys:

total_energy_consumption (float): Accumulative energy drawn by the hosts (unit: watt second).
total_energy_consumption_kwh (float): Same as above (unit: KWh).
successful_allocation (int): VMs placed on a host until now.
failed_allocation (int): VMs whose first placement attempt failed until now.
pending_vms (int): VMs still waiting for a host.
started_migrations (dict): Migrations started until now, by reason.
finished_migrations (dict): Migrations finished until now, by reason.
idle_hosts (int): Hosts without any VM at current tick.
"""

logger = InternalLogger("datacenter")

HOST_TEMPLATE_KEYS = [
    "amount", "pes_number", "mips_per_pe", "ram", "bw", "storage", "max_power", "static_power_percent", "power_model"
]
VM_TEMPLATE_KEYS = ["amount", "pes_number", "mips", "ram", "bw", "size"]

# Bandwidth is given in Mbit/s and memory in MB.
MIGRATION_BANDWIDTH_DIVISOR = 8000


def get_topology_path(topology: str) -> str:
    """Resolve a built-in topology name or a folder path to the folder holding ``config.yml``."""
    path = Path(topology)
    if path.exists() and path.is_dir():
        config_path = topology
    else:
        config_path = os.path.join(os.path.split(os.path.realpath(__file__))[0], "topologies", topology)

    if not os.path.exists(os.path.join(config_path, "config.yml")):
        raise TopologyNotFoundError(topology)

    return config_path


def get_builtin_topologies() -> List[str]:
    topologies_root = os.path.join(os.path.split(os.path.realpath(__file__))[0], "topologies")

    return sorted(
        name for name in os.listdir(topologies_root)
        if os.path.exists(os.path.join(topologies_root, name, "config.yml"))
    )


class PowerDatacenter:
    """A datacenter of power-aware hosts driven tick by tick.

    The datacenter places the VMs when they are requested, accounts the energy drawn by
    the hosts at every scheduling interval, and at every monitoring interval asks the
    allocation policy for migrations, starts them and takes a utilization sample of every
    host. A migration finishes ``ram / (bw / 8000) + MIGRATION_FIXED_DELAY`` seconds after
    it started, through a ``MIGRATION_FINISHED`` event.

    Args:
        event_buffer (EventBuffer): Used to process events.
        topology (str): Built-in topology name or folder holding a ``config.yml``.
        simulation_id (int): Stamped on every migration.
        start_tick (int): Start tick of the run.
        max_tick (int): The run stops before this tick.
    """

    def __init__(
        self, event_buffer: EventBuffer, topology: str, simulation_id: int = 0, start_tick: int = 0,
        max_tick: int = 100
    ):
        assert start_tick >= 0
        assert max_tick > start_tick

        self._event_buffer = event_buffer
        self._topology = topology
        self._simulation_id = simulation_id
        self._start_tick = start_tick
        self._max_tick = max_tick
        self._tick = start_tick

        self._load_configs()
        self._register_events()
        self._init_metrics()
        self._init_structure()

    @property
    def configs(self) -> dict:
        """dict: Current configuration."""
        return self._config

    @property
    def name(self) -> str:
        return self._name

    @property
    def hosts(self) -> List[Host]:
        return self._hosts

    @property
    def vms(self) -> List[VirtualMachine]:
        return list(self._vms.values())

    @property
    def policy(self) -> AbsAllocationPolicy:
        return self._policy

    @property
    def monitor(self) -> UtilizationMonitor:
        return self._monitor

    @property
    def pending_vms(self) -> List[VirtualMachine]:
        return list(self._pending_vms.values())

    @property
    def started_migrations(self) -> List[Migration]:
        return self._started_migrations

    @property
    def finished_migrations(self) -> List[Migration]:
        """List[Migration]: Completed migrations, in completion order."""
        return self._finished_migrations

    def step(self, tick: int):
        """Push the datacenter to the given tick.

        Args:
            tick (int): Current tick to process.
        """
        self._tick = tick

        if tick - self._last_process_tick >= self._scheduling_interval:
            self._update_energy(tick)

        for vm in self._live_vms.values():
            vm.update_utilization(tick)

        if tick - self._last_monitoring_tick >= self._monitoring_interval:
            self._last_monitoring_tick = tick
            if self._vm_migration:
                migrations = self._policy.optimize_allocation(list(self._live_vms.values()), self._simulation_id)
                for migration in migrations:
                    self._start_migration(migration, tick)
            self._monitor.collect(self._hosts)

        # Pending VMs are requested again until a host takes them.
        for vm in list(self._pending_vms.values()) + self._requests.pop(tick, []):
            self._event_buffer.insert_event(self._event_buffer.gen_atom_event(tick, Events.REQUEST, vm))

    def post_step(self, tick: int) -> bool:
        """Returns:
            bool: If the run should stop at current tick.
        """
        return tick + 1 >= self._max_tick

    def run_to_end(self) -> DocableDict:
        """Run every remaining tick and return the final metrics."""
        for tick in range(self._tick, self._max_tick):
            self.step(tick)
            self._event_buffer.execute(tick)

            if self.post_step(tick):
                break

        return self.get_metrics()

    def get_metrics(self) -> DocableDict:
        """Get current datacenter metrics information.

        Returns:
            DocableDict: Metrics information.
        """
        return DocableDict(
            metrics_desc,
            total_energy_consumption=self._total_energy_consumption,
            total_energy_consumption_kwh=self._total_energy_consumption / 3600 / 1000,
            successful_allocation=self._successful_allocation,
            failed_allocation=self._failed_allocation,
            pending_vms=len(self._pending_vms),
            started_migrations=self._count_by_reason(self._started_migrations),
            finished_migrations=self._count_by_reason(self._finished_migrations),
            idle_hosts=sum(1 for host in self._hosts if host.is_idle())
        )

    def reset(self):
        """Reset internal states, hosts and VMs are built again from the configuration."""
        self._event_buffer.reset()
        self._tick = self._start_tick
        self._init_metrics()
        self._init_structure()

    def _load_configs(self):
        config_path = get_topology_path(self._topology)
        with open(os.path.join(config_path, "config.yml")) as fp:
            self._config = convert_dottable(safe_load(fp) or {})

        self._name: str = self._config.get("name", os.path.basename(os.path.normpath(config_path)))
        self._upper_threshold: float = self._config.get("UPPER_UTILIZATION_THRESHOLD", 0.8)
        self._lower_threshold: float = self._config.get("LOWER_UTILIZATION_THRESHOLD", 0.2)
        self._monitoring_interval: int = self._config.get("MONITORING_INTERVAL", 1)
        self._scheduling_interval: int = self._config.get("SCHEDULING_INTERVAL", 1)
        self._monitoring_samples: int = self._config.get("MONITORING_SAMPLES", 2)
        self._vm_migration: bool = self._config.get("VM_MIGRATION", True)
        self._migration_fixed_delay: float = self._config.get("MIGRATION_FIXED_DELAY", 10)
        self._ticks_per_second: float = self._config.get("TICKS_PER_SECOND", 1)
        self._allocation_policy: str = self._config.get("ALLOCATION_POLICY", "single_threshold")

        self._validate_configs()

    def _validate_configs(self):
        validate_thresholds(self._upper_threshold, self._lower_threshold)
        get_allocation_policy_class(self._allocation_policy)

        if self._monitoring_interval <= 0 or self._scheduling_interval <= 0:
            raise InvalidTopologyError("monitoring and scheduling intervals must be positive")
        if self._monitoring_samples <= 0:
            raise InvalidTopologyError("MONITORING_SAMPLES must be positive")
        if self._ticks_per_second <= 0:
            raise InvalidTopologyError("TICKS_PER_SECOND must be positive")

        if not self._config.get("hosts"):
            raise InvalidTopologyError("at least one host template is required")

        for index, template in enumerate(self._config.hosts):
            for key in HOST_TEMPLATE_KEYS:
                if key not in template:
                    raise InvalidTopologyError(f"host template {index} misses '{key}'")
            if template.max_power <= 0:
                raise InvalidTopologyError(f"host template {index} needs a positive max_power")
            if not 0 <= template.static_power_percent <= 1:
                raise InvalidTopologyError(f"host template {index} needs a static_power_percent in [0, 1]")
            get_power_model(template.power_model, template.max_power, template.static_power_percent)

        for index, template in enumerate(self._config.get("vms", [])):
            for key in VM_TEMPLATE_KEYS:
                if key not in template:
                    raise InvalidTopologyError(f"vm template {index} misses '{key}'")

    def _register_events(self):
        self._event_buffer.register_event_handler(event_type=Events.REQUEST, handler=self._on_vm_required)
        self._event_buffer.register_event_handler(
            event_type=Events.MIGRATION_FINISHED, handler=self._on_migration_finished
        )

    def _init_metrics(self):
        self._total_energy_consumption: float = 0.0
        self._successful_allocation: int = 0
        self._failed_allocation: int = 0
        self._started_migrations: List[Migration] = []
        self._finished_migrations: List[Migration] = []

    def _init_structure(self):
        self._hosts: List[Host] = []
        for template in self._config.hosts:
            for _ in range(template.amount):
                self._hosts.append(
                    Host(
                        id=len(self._hosts),
                        pes_number=template.pes_number,
                        mips_per_pe=template.mips_per_pe,
                        ram=template.ram,
                        bw=template.bw,
                        storage=template.storage,
                        power_model=get_power_model(
                            template.power_model, template.max_power, template.static_power_percent
                        )
                    )
                )

        self._vms: Dict[int, VirtualMachine] = {}
        self._requests: Dict[int, List[VirtualMachine]] = {}
        for template in self._config.get("vms", []):
            for _ in range(template.amount):
                vm = VirtualMachine(
                    id=len(self._vms),
                    tenant_id=template.get("tenant_id", 0),
                    pes_number=template.pes_number,
                    mips=template.mips,
                    ram=template.ram,
                    bw=template.bw,
                    size=template.size,
                    creation_tick=max(self._start_tick, template.get("creation_tick", 0))
                )
                vm.set_utilization_series(template.get("utilization", []))
                self._vms[vm.id] = vm
                self._requests.setdefault(vm.creation_tick, []).append(vm)

        self._live_vms: Dict[int, VirtualMachine] = {}
        self._pending_vms: Dict[int, VirtualMachine] = {}

        self._monitor = UtilizationMonitor(self._monitoring_samples)
        self._policy = get_allocation_policy(
            self._allocation_policy,
            hosts=self._hosts,
            upper_threshold=self._upper_threshold,
            lower_threshold=self._lower_threshold,
            monitor=self._monitor,
            datacenter_name=self._name
        )

        self._last_process_tick = self._start_tick
        self._last_monitoring_tick = self._start_tick

    def _update_energy(self, tick: int):
        """Charge the power drawn since the last processing tick."""
        elapsed_seconds = (tick - self._last_process_tick) / self._ticks_per_second
        self._total_energy_consumption += sum(host.get_power() for host in self._hosts) * elapsed_seconds
        self._last_process_tick = tick

    def _start_migration(self, migration: Migration, tick: int):
        vm = self._vms[migration.vm_id]
        target_host = self._hosts[migration.target_host_id]

        target_host.add_migrating_in_vm(vm)
        vm.in_migration = True
        migration.start_tick = tick
        self._started_migrations.append(migration)

        delay = math.ceil(self._get_migration_delay(vm) * self._ticks_per_second)
        finish_event = self._event_buffer.gen_atom_event(tick + max(1, delay), Events.MIGRATION_FINISHED, migration)
        self._event_buffer.insert_event(finish_event)

        logger.info(
            f"Migration of VM {vm.id} from host {migration.source_host_id} to host {target_host.id} "
            f"has started at tick {tick} ({migration.reason.value})"
        )

    def _get_migration_delay(self, vm: VirtualMachine) -> float:
        """Migration delay in seconds: memory transfer time plus a fixed delay."""
        return vm.ram / (vm.bw / MIGRATION_BANDWIDTH_DIVISOR) + self._migration_fixed_delay

    def _on_vm_required(self, event: AtomEvent):
        vm: VirtualMachine = event.payload
        if vm.id in self._live_vms:
            return

        if self._policy.allocate_host_for_vm(vm):
            self._live_vms[vm.id] = vm
            self._pending_vms.pop(vm.id, None)
            self._successful_allocation += 1
        elif vm.id not in self._pending_vms:
            self._pending_vms[vm.id] = vm
            self._failed_allocation += 1

    def _on_migration_finished(self, event: AtomEvent):
        migration: Migration = event.payload
        vm = self._vms[migration.vm_id]
        target_host = self._hosts[migration.target_host_id]

        self._policy.ledger.relocate(vm, target_host)
        vm.in_migration = False
        migration.finish_tick = event.tick
        self._finished_migrations.append(migration)

        logger.info(
            f"Migration of VM {vm.id} from host {migration.source_host_id} to host {target_host.id} "
            f"has finished at tick {event.tick}"
        )

    @staticmethod
    def _count_by_reason(migrations: List[Migration]) -> Dict[str, int]:
        counter = Counter(migration.reason for migration in migrations)

        return {reason.value: counter.get(reason, 0) for reason in MigrationReason}

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import Iterable, List

from cloudplan.utils import InternalLogger
from cloudplan.utils.exception.config_exception import InvalidThresholdError

from .common import HostLoadReport
from .enums import HostLoadState, ResourceType
from .host import Host
from .utilization_monitor import UtilizationMonitor

logger = InternalLogger("detector")


def validate_thresholds(upper_threshold: float, lower_threshold: float):
    if not 0 < upper_threshold <= 1 or not 0 <= lower_threshold < upper_threshold:
        raise InvalidThresholdError(upper_threshold, lower_threshold)


class LoadDetector:
    """Classify hosts as overloaded, underloaded or normal.

    The load seen by the detector is the one the host will have once the ongoing migrations
    land: VMs migrating out are no longer counted, VMs migrating in already are.
    A host is overloaded on a resource if the mean of its instantaneous utilization and of
    the average of the recent monitoring samples exceeds the upper threshold, and
    underloaded if both its instantaneous CPU and RAM utilization are below the lower one.

    Args:
        upper_threshold (float): Upper utilization threshold, in (0, 1].
        lower_threshold (float): Lower utilization threshold, less than the upper one.
        monitor (UtilizationMonitor): Source of the recent samples.
    """

    def __init__(self, upper_threshold: float, lower_threshold: float, monitor: UtilizationMonitor):
        validate_thresholds(upper_threshold, lower_threshold)

        self.upper_threshold = upper_threshold
        self.lower_threshold = lower_threshold
        self._monitor = monitor

    def get_host_used_mips(self, host: Host) -> float:
        """MIPS in use on the host, VMs migrating out excluded and VMs migrating in included."""
        used_mips = host.get_utilization_of_cpu_mips()
        for vm in host.vm_list:
            if vm.in_migration:
                used_mips -= host.get_total_allocated_mips_for_vm(vm)
        for vm in host.vms_migrating_in:
            used_mips += vm.current_requested_total_mips

        return max(0.0, used_mips)

    def get_host_used_ram(self, host: Host) -> int:
        used_ram = host.get_utilization_of_ram()
        for vm in host.vm_list:
            if vm.in_migration:
                used_ram -= vm.ram
        for vm in host.vms_migrating_in:
            used_ram += vm.ram

        return max(0, used_ram)

    def get_host_cpu_utilization(self, host: Host) -> float:
        return self.get_host_used_mips(host) / host.total_mips

    def get_host_ram_utilization(self, host: Host) -> float:
        return self.get_host_used_ram(host) / host.ram

    def classify(self, host: Host) -> HostLoadReport:
        cpu_utilization = self.get_host_cpu_utilization(host)
        ram_utilization = self.get_host_ram_utilization(host)
        cpu_rate = self._blend(host.id, ResourceType.CPU, cpu_utilization)
        ram_rate = self._blend(host.id, ResourceType.RAM, ram_utilization)

        cpu_overloaded = cpu_rate > self.upper_threshold
        ram_overloaded = ram_rate > self.upper_threshold

        if cpu_overloaded or ram_overloaded:
            state = HostLoadState.OVERLOADED
        elif cpu_utilization < self.lower_threshold and ram_utilization < self.lower_threshold:
            state = HostLoadState.UNDERLOADED
        else:
            state = HostLoadState.NORMAL

        report = HostLoadReport(
            host_id=host.id,
            state=state,
            cpu_utilization=cpu_utilization,
            ram_utilization=ram_utilization,
            cpu_rate=cpu_rate,
            ram_rate=ram_rate,
            cpu_overloaded=cpu_overloaded,
            ram_overloaded=ram_overloaded,
        )
        logger.debug(f"Host {host.id} classified as {state.name}: {report}")

        return report

    def classify_all(self, hosts: Iterable[Host]) -> List[HostLoadReport]:
        return [self.classify(host) for host in hosts]

    def _blend(self, host_id: int, resource: ResourceType, utilization: float) -> float:
        average = self._monitor.get_average(host_id, resource)
        if average is None:
            return utilization

        return (utilization + average) / 2

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from .allocation_policy import (
    ALLOCATION_POLICIES, AbsAllocationPolicy, SingleThresholdPolicy, get_allocation_policy, register_allocation_policy
)
from .common import AllocationSnapshot, HostLoadReport, Migration
from .datacenter import PowerDatacenter, get_builtin_topologies
from .detector import LoadDetector
from .enums import Events, HostLoadState, MigrationReason, ResourceType, VmState
from .host import Host
from .ledger import AllocationLedger
from .planner import MigrationPlanner
from .power_model import AbsPowerModel, get_power_model, register_power_model
from .selector import PowerAwareSelector
from .utilization_monitor import UtilizationMonitor
from .virtual_machine import VirtualMachine

__all__ = [
    "ALLOCATION_POLICIES", "AbsAllocationPolicy", "SingleThresholdPolicy", "get_allocation_policy",
    "register_allocation_policy",
    "AllocationSnapshot", "HostLoadReport", "Migration",
    "PowerDatacenter", "get_builtin_topologies",
    "LoadDetector",
    "Events", "HostLoadState", "MigrationReason", "ResourceType", "VmState",
    "Host",
    "AllocationLedger",
    "MigrationPlanner",
    "AbsPowerModel", "get_power_model", "register_power_model",
    "PowerAwareSelector",
    "UtilizationMonitor",
    "VirtualMachine"
]

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from enum import Enum, IntEnum


class Events(Enum):
    """Datacenter related events."""
    # VM creation request events.
    REQUEST = "vm_required"
    # Migration completion events.
    MIGRATION_FINISHED = "migration_finished"


class HostLoadState(IntEnum):
    """Host load classification at a monitoring tick."""
    UNDERLOADED = -1
    NORMAL = 0
    OVERLOADED = 1


class VmState(Enum):
    """Scheduling-relevant states of a VM."""
    UNPLACED = "unplaced"
    PLACED = "placed"
    MIGRATING = "migrating"


class MigrationReason(Enum):
    """Tag stamped on a migration, telling which planner produced it."""
    DISTRIBUTE = "distribute"
    CONSOLIDATE = "consolidate"


class ResourceType(Enum):
    """Monitored resource dimensions."""
    CPU = "cpu"
    RAM = "ram"

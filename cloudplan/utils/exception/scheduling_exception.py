# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


from .base_exception import CloudPlanException
from .error_code import ERROR_CODE


class AllocationRestoreError(CloudPlanException):
    """Exception when a saved allocation cannot be re-applied.

    This is a scheduler bug rather than a runtime condition, callers should let it propagate.
    """

    def __init__(self, vm_id: int, host_id: int):
        super().__init__(2100, f"{ERROR_CODE[2100]} (vm: {vm_id}, host: {host_id})")


class VmNotFoundError(CloudPlanException):
    def __init__(self, vm_id: int):
        super().__init__(2101, f"{ERROR_CODE[2101]} (vm: {vm_id})")


class HostCapacityExceededError(CloudPlanException):
    """Exception when a virtual machine is forced onto a host without enough room."""

    def __init__(self, vm_id: int, host_id: int):
        super().__init__(2102, f"{ERROR_CODE[2102]} (vm: {vm_id}, host: {host_id})")


class InvalidUtilizationError(CloudPlanException):
    def __init__(self, utilization: float):
        super().__init__(2103, f"{ERROR_CODE[2103]}, got {utilization}")

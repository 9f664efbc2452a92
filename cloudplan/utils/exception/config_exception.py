# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


from .base_exception import CloudPlanException
from .error_code import ERROR_CODE


class TopologyNotFoundError(CloudPlanException):
    """Exception when the topology is neither a built-in name nor an existing folder."""

    def __init__(self, topology: str):
        super().__init__(2000, f"{ERROR_CODE[2000]}: '{topology}'")


class InvalidTopologyError(CloudPlanException):
    """Exception when a topology config misses required fields or holds invalid values."""

    def __init__(self, msg: str = None):
        super().__init__(2001, f"{ERROR_CODE[2001]}: {msg}" if msg else ERROR_CODE[2001])


class PowerModelNotFoundError(CloudPlanException):
    """Exception when the power model alias is not registered."""

    def __init__(self, alias: str):
        super().__init__(2002, f"{ERROR_CODE[2002]}: '{alias}'")


class AllocationPolicyNotFoundError(CloudPlanException):
    """Exception when the allocation policy alias is not registered."""

    def __init__(self, alias: str):
        super().__init__(2003, f"{ERROR_CODE[2003]}: '{alias}'")


class InvalidThresholdError(CloudPlanException):
    def __init__(self, upper: float, lower: float = None):
        super().__init__(2004, f"{ERROR_CODE[2004]} (upper: {upper}, lower: {lower})")

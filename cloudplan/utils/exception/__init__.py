# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from .base_exception import CloudPlanException
from .error_code import ERROR_CODE

__all__ = ["ERROR_CODE", "CloudPlanException"]

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from .logger import InternalLogger, LogFormat, Logger, set_internal_stdout_level
from .utils import DottableDict, convert_dottable

__all__ = [
    "Logger",
    "InternalLogger",
    "LogFormat",
    "set_internal_stdout_level",
    "convert_dottable",
    "DottableDict",
]

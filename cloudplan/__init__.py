# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from .__misc__ import __version__

__all__ = ["__version__"]

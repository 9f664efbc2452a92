# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


ERROR_CODE = {
    # Error code table for cloudplan.
    1000: "Cloudplan Internal Error",

    # 2000-2099: configuration
    2000: "Cannot find specified topology",
    2001: "Invalid topology configuration",
    2002: "Cannot find specified power model",
    2003: "Cannot find specified allocation policy",
    2004: "Invalid utilization threshold, it must be in (0, 1] and lower threshold must be less than upper",

    # 2100-2199: scheduling
    2100: "Saved allocation cannot be restored, the capacity bookkeeping is inconsistent",
    2101: "Virtual machine is not allocated to any host",
    2102: "Host does not have enough capacity for the virtual machine",
    2103: "Utilization must be in [0, 1]",

    # 3000-3099: CLI
    3000: "CLI Internal Error",
    3001: "Command Error",
}

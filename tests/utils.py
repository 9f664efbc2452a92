# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import os

from cloudplan.event_buffer import EventBuffer
from cloudplan.scheduling import Host, PowerDatacenter, VirtualMachine, get_power_model

TESTS_DATA_ROOT = os.path.join(os.path.split(os.path.realpath(__file__))[0], "data")


def get_topology_path(name: str) -> str:
    return os.path.join(TESTS_DATA_ROOT, "scheduling", name)


def make_host(
    id: int, mips: float = 1000, ram: int = 10000, bw: int = 100000, storage: int = 1000000, pes_number: int = 1,
    max_power: float = 200, static_power_percent: float = 0.5, power_model: str = "linear"
) -> Host:
    return Host(
        id=id,
        pes_number=pes_number,
        mips_per_pe=mips,
        ram=ram,
        bw=bw,
        storage=storage,
        power_model=get_power_model(power_model, max_power, static_power_percent)
    )


def make_vm(
    id: int, mips: float = 100, ram: int = 100, bw: int = 10, size: int = 10, cpu_utilization: float = 1.0
) -> VirtualMachine:
    vm = VirtualMachine(id=id, tenant_id=0, pes_number=1, mips=mips, ram=ram, bw=bw, size=size)
    vm.cpu_utilization = cpu_utilization

    return vm


def place(host: Host, *vms: VirtualMachine):
    for vm in vms:
        assert host.vm_create(vm)
        vm.being_instantiated = False


def next_step(eb: EventBuffer, dc: PowerDatacenter, tick: int) -> bool:
    if tick > 0:
        # lets post process last tick first before start a new tick
        is_done = dc.post_step(tick - 1)

        if is_done:
            return True

    dc.step(tick)
    eb.execute(tick)

    return False


def dc_run_to_end(eb: EventBuffer, dc: PowerDatacenter):
    is_done = False

    tick = 0

    while not is_done:
        is_done = next_step(eb, dc, tick)
        tick += 1

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from collections import defaultdict, deque
from typing import Deque, Dict, Iterable, List, Optional, Tuple

import numpy as np

from .enums import ResourceType
from .host import Host


class UtilizationMonitor:
    """Rolling window of the utilization samples taken at each monitoring tick.

    Only the last ``samples`` values are kept for each host and resource pair, the oldest
    sample is evicted once the window is full.

    Args:
        samples (int): Window size. Defaults to 2.
    """

    def __init__(self, samples: int = 2):
        assert samples > 0

        self._samples = samples
        self._history: Dict[Tuple[int, ResourceType], Deque[float]] = defaultdict(
            lambda: deque(maxlen=self._samples)
        )

    @property
    def samples(self) -> int:
        return self._samples

    def record(self, host_id: int, resource: ResourceType, utilization: float):
        """Append a sample, utilization is a fraction of the host capacity."""
        self._history[(host_id, resource)].append(utilization)

    def collect(self, hosts: Iterable[Host]):
        """Take one CPU and one RAM sample of every host."""
        for host in hosts:
            self.record(host.id, ResourceType.CPU, host.get_cpu_utilization())
            self.record(host.id, ResourceType.RAM, host.get_ram_utilization())

    def get_history(self, host_id: int, resource: ResourceType) -> List[float]:
        """Samples from the oldest to the newest one."""
        key = (host_id, resource)
        if key not in self._history:
            return []

        return list(self._history[key])

    def get_average(self, host_id: int, resource: ResourceType) -> Optional[float]:
        """Arithmetic mean of the window, None if nothing has been recorded yet."""
        history = self.get_history(host_id, resource)
        if not history:
            return None

        return float(np.mean(history))

    def reset(self):
        self._history.clear()

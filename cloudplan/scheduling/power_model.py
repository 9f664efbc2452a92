# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import math
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Type

from cloudplan.utils.exception.config_exception import PowerModelNotFoundError
from cloudplan.utils.exception.scheduling_exception import InvalidUtilizationError


class AbsPowerModel(ABC):
    """Power curve of a host.

    The static part of the power, ``max_power * static_power_percent``, is drawn as soon as
    the host runs anything; the dynamic part grows with the CPU utilization following the
    shape of the curve. An idle host (utilization 0) is considered switched off.

    Args:
        max_power (float): Power at full utilization, in watts.
        static_power_percent (float): Fraction of ``max_power`` drawn by a busy host at any load.
    """

    def __init__(self, max_power: float, static_power_percent: float):
        self.max_power: float = max_power
        self.static_power_percent: float = static_power_percent

    @property
    def static_power(self) -> float:
        return self.max_power * self.static_power_percent

    @property
    def dynamic_power(self) -> float:
        return self.max_power - self.static_power

    def get_power(self, utilization: float) -> float:
        """Convert the CPU utilization fraction to watts.

        Args:
            utilization (float): CPU utilization, in [0, 1].

        Returns:
            float: Power draw in watts.
        """
        if utilization < 0 or utilization > 1:
            raise InvalidUtilizationError(utilization)

        if utilization == 0:
            return 0.0

        return self.static_power + self.dynamic_power * self._shape(utilization)

    @abstractmethod
    def _shape(self, utilization: float) -> float:
        """Fraction of the dynamic power drawn at the given utilization."""
        pass

    def __repr__(self):
        return "%s {max_power: %r, static_power_percent: %r}" % (
            self.__class__.__name__, self.max_power, self.static_power_percent
        )


POWER_MODELS: Dict[str, Type[AbsPowerModel]] = {}


def register_power_model(alias: str) -> Callable:
    """Class decorator to make a power model available by alias in topology configs.

    Example:

        .. code-block:: python

            @register_power_model("step")
            class StepPowerModel(AbsPowerModel):
                def _shape(self, utilization: float) -> float:
                    return 1.0 if utilization > 0.5 else 0.5
    """
    def _register(cls: Type[AbsPowerModel]) -> Type[AbsPowerModel]:
        POWER_MODELS[alias] = cls
        return cls

    return _register


def get_power_model(alias: str, max_power: float, static_power_percent: float) -> AbsPowerModel:
    if alias not in POWER_MODELS:
        raise PowerModelNotFoundError(alias)

    return POWER_MODELS[alias](max_power, static_power_percent)


def get_power_model_names() -> List[str]:
    return sorted(POWER_MODELS.keys())


@register_power_model("linear")
class LinearPowerModel(AbsPowerModel):
    def _shape(self, utilization: float) -> float:
        return utilization


@register_power_model("square")
class SquarePowerModel(AbsPowerModel):
    def _shape(self, utilization: float) -> float:
        return utilization ** 2


@register_power_model("square_root")
class SqrtPowerModel(AbsPowerModel):
    def _shape(self, utilization: float) -> float:
        return math.sqrt(utilization)


@register_power_model("cubic")
class CubicPowerModel(AbsPowerModel):
    def _shape(self, utilization: float) -> float:
        return utilization ** 3

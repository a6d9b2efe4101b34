"""
Scaling Engine.

Applies a member's ``scaling_factor`` (and, for some strategies, its
``unit``) to a decoded value. Strategies are selected by name from the node
configuration:

    general         value * factor
    schleifenbauer  general, plus register accumulation for units
                    "register1".."register4"

Schleifenbauer PDUs expose some 64-bit readings as several 16-bit registers.
Members with units register1..register3 report the (already weighted)
register values; a following "register4" member reports their sum. The
register members of one reading share a description up to the last word,
e.g. "Energy total r1" / "Energy total r2" / ... / "Energy total sum".
Members must be scaled in declared order for this to work.

An unset register slot is None, not -1: a register that really reads -1
counts toward the sum. The sum itself is still reported as -1 when a slot
is unset.
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from numbers import Real
from typing import Any, Optional

from gapit.core.enums import ScalingStrategyName
from gapit.snmp.counter64 import MAX_SAFE_INTEGER, UInt64

logger = logging.getLogger(__name__)

REGISTER_UNIT_PREFIX = "register"
REGISTER_SLOTS = ("register1", "register2", "register3")
UNSET_SUM = -1

_DECIMALS = 8
_DIVISOR_TOLERANCE = 1e-9


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _integer_divisor(factor: float) -> Optional[int]:
    """round(1/factor) when 1/factor is (within float noise) an integer."""
    inverse = 1 / factor
    divisor = round(inverse)
    if divisor == 0 or abs(inverse - divisor) > _DIVISOR_TOLERANCE * max(1.0, abs(inverse)):
        return None
    return divisor


class ScalingStrategy(ABC):
    """Capability shared by all strategies."""

    name: str

    @abstractmethod
    def scale(
        self,
        value: Any,
        factor: float,
        unit: str = "",
        field_name: str = "",
    ) -> Any:
        """Return the scaled value; unscalable values are returned unchanged."""


class GeneralScaling(ScalingStrategy):
    """Multiply by the scaling factor."""

    name = ScalingStrategyName.GENERAL.value

    def __init__(self, convert_counter64: bool = False) -> None:
        self.convert_counter64 = convert_counter64

    def scale(
        self,
        value: Any,
        factor: float,
        unit: str = "",
        field_name: str = "",
    ) -> Any:
        if factor == 1:
            return value
        if isinstance(value, UInt64):
            return self._scale_uint64(value, factor, field_name)
        if not _is_number(value):
            logger.warning(
                "Not scaling '%s': value %r is not numeric", field_name, value,
            )
            return value
        # rounding drops float artifacts like 49.900000000000006
        return round(value * factor, _DECIMALS)

    def _scale_uint64(self, value: UInt64, factor: float, field_name: str) -> Any:
        if 0 < factor < 1:
            divisor = _integer_divisor(factor)
            if divisor is None:
                logger.warning(
                    "Not scaling '%s': 1/%s is not an integer divisor",
                    field_name, factor,
                )
                return value
            return self._wrap(int(value) // divisor)
        if factor > 1 and math.isclose(factor, round(factor)):
            return self._wrap(int(value) * round(factor))
        logger.warning(
            "Not scaling '%s': factor %s cannot be applied to a 64-bit integer",
            field_name, factor,
        )
        return value

    def _wrap(self, value: int) -> int:
        if self.convert_counter64 and value <= MAX_SAFE_INTEGER:
            return value
        return UInt64(value)


class SchleifenbauerScaling(GeneralScaling):
    """General scaling plus multi-register accumulation."""

    name = ScalingStrategyName.SCHLEIFENBAUER.value

    def __init__(self, convert_counter64: bool = False) -> None:
        super().__init__(convert_counter64)
        # common field name -> register slot -> last value (None = unset)
        self.registers: dict[str, dict[str, Any]] = {}

    @staticmethod
    def common_field_name(field_name: str) -> str:
        """Description without its trailing word."""
        return " ".join(field_name.split(" ")[:-1])

    def _slots(self, common_name: str) -> dict[str, Any]:
        return self.registers.setdefault(
            common_name, {slot: None for slot in REGISTER_SLOTS},
        )

    def scale(
        self,
        value: Any,
        factor: float,
        unit: str = "",
        field_name: str = "",
    ) -> Any:
        scaled = super().scale(value, factor, unit, field_name)
        if not unit.startswith(REGISTER_UNIT_PREFIX):
            return scaled

        common_name = self.common_field_name(field_name)
        slots = self._slots(common_name)

        if unit in REGISTER_SLOTS:
            if _is_number(scaled):
                slots[unit] = scaled
            else:
                logger.warning(
                    "Register '%s' of '%s' is not numeric: %r",
                    unit, common_name, scaled,
                )
            return scaled

        # register4 (or any other register unit): emit the sum
        values = [slots[slot] for slot in REGISTER_SLOTS]
        for slot in REGISTER_SLOTS:
            slots[slot] = None
        if any(v is None for v in values):
            logger.warning(
                "Incomplete registers for '%s', reporting %d",
                common_name, UNSET_SUM,
            )
            return UNSET_SUM
        total = sum(values)
        if all(isinstance(v, int) for v in values):
            return total
        return round(total, _DECIMALS)


_STRATEGIES: dict[str, type[GeneralScaling]] = {
    ScalingStrategyName.GENERAL.value: GeneralScaling,
    ScalingStrategyName.SCHLEIFENBAUER.value: SchleifenbauerScaling,
}


class ScalingEngine:
    """
    Strategy resolved by name; unknown names fall back to "general".

    One engine per polling node: strategies may keep state across cycles.
    """

    def __init__(
        self,
        strategy: str = ScalingStrategyName.GENERAL.value,
        convert_counter64: bool = False,
    ) -> None:
        key = (strategy or "").strip().lower()
        cls = _STRATEGIES.get(key)
        if cls is None:
            logger.warning(
                "Unknown scaling strategy '%s', using '%s'",
                strategy, ScalingStrategyName.GENERAL.value,
            )
            cls = GeneralScaling
        self.strategy: ScalingStrategy = cls(convert_counter64)

    @property
    def name(self) -> str:
        return self.strategy.name

    def scale(
        self,
        value: Any,
        factor: float,
        unit: str = "",
        field_name: str = "",
    ) -> Any:
        return self.strategy.scale(value, factor, unit or "", field_name or "")

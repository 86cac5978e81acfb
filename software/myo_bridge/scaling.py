"""Range mapping for channel values before they hit the wire.

Every numeric channel can carry an input range, an output range and a
scaling mode.  ``scale`` is the plain linear remap, ``clamp`` remaps and then
pins the result inside the output range.  Output ranges may run backwards
(``[1, -1]``) to flip an axis; clamping always uses the ordered pair so an
inverted range still clamps the way you'd expect.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Iterable, Tuple

INT8_MIN = -128
INT8_MAX = 127


class DivisionByZero(ZeroDivisionError):
    """Raised when a channel's input range has zero width."""


@dataclass(frozen=True)
class Range:
    min: float = 0.0
    max: float = 1.0

    def ordered(self) -> Tuple[float, float]:
        return (self.min, self.max) if self.min <= self.max else (self.max, self.min)

    def __str__(self) -> str:
        return f"[{self.min:g}, {self.max:g}]"


class Scaling(enum.Enum):
    # Values double as the historical integer codes accepted in config files.
    NONE = 0
    SCALE = 1
    CLAMP = 2

    @property
    def keyword(self) -> str:
        return self.name.lower()


def clamp(value, lower, upper):
    """Clamp ``value`` into ``[lower, upper]``."""

    return max(lower, min(upper, value))


def map_range(value: float, in_range: Range, out_range: Range) -> float:
    """Linearly remap ``value`` from ``in_range`` onto ``out_range``."""

    span = in_range.max - in_range.min
    if span == 0:
        raise DivisionByZero(f"input range {in_range} has zero width")
    return (value - in_range.min) / span * (out_range.max - out_range.min) + out_range.min


def scale_value(value: float, policy) -> float:
    """Apply ``policy.scaling`` to a float.

    ``policy`` is anything with ``scaling``, ``in_range`` and ``out_range``
    attributes (normally a :class:`ChannelPolicy`).
    """

    if policy.scaling is Scaling.NONE:
        return value
    mapped = map_range(float(value), policy.in_range, policy.out_range)
    if policy.scaling is Scaling.CLAMP:
        lower, upper = policy.out_range.ordered()
        mapped = clamp(mapped, lower, upper)
    return mapped


def scale_byte(value: int, policy) -> int:
    """Scale an int8 sample, truncating toward zero and saturating to int8."""

    if policy.scaling is Scaling.NONE:
        return value
    scaled = scale_value(value, policy)
    if math.isnan(scaled):
        return 0
    if math.isinf(scaled):
        return INT8_MAX if scaled > 0 else INT8_MIN
    return int(clamp(math.trunc(scaled), INT8_MIN, INT8_MAX))


def scale_values(values: Iterable[float], policy) -> Tuple[float, ...]:
    return tuple(scale_value(v, policy) for v in values)


def scale_bytes(values: Iterable[int], policy) -> Tuple[int, ...]:
    return tuple(scale_byte(v, policy) for v in values)

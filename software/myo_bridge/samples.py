"""Typed raw samples as they arrive from the armband."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from software.myo_bridge.scaling import INT8_MAX, INT8_MIN

EMG_SENSOR_COUNT = 8


def _check_int8(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"int8 sample must be an int, got {value!r}")
    if not INT8_MIN <= value <= INT8_MAX:
        raise ValueError(f"int8 sample out of range: {value}")
    return value


@dataclass(frozen=True)
class Byte:
    value: int

    def __post_init__(self):
        _check_int8(self.value)


@dataclass(frozen=True)
class ByteArray:
    values: Tuple[int, ...]

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(_check_int8(v) for v in self.values))


@dataclass(frozen=True)
class Scalar:
    value: float


@dataclass(frozen=True)
class Vector3:
    x: float
    y: float
    z: float

    def __iter__(self):
        return iter((self.x, self.y, self.z))


@dataclass(frozen=True)
class Quaternion:
    x: float
    y: float
    z: float
    w: float

    def __iter__(self):
        return iter((self.x, self.y, self.z, self.w))


@dataclass(frozen=True)
class Label:
    text: str


Sample = Byte | ByteArray | Scalar | Vector3 | Quaternion | Label


@dataclass(frozen=True)
class EulerAngles:
    roll: float
    pitch: float
    yaw: float

    def __iter__(self):
        return iter((self.roll, self.pitch, self.yaw))


def quaternion_to_euler(quat: Quaternion) -> EulerAngles:
    """Roll, pitch and yaw (radians) from a unit quaternion."""

    x, y, z, w = quat
    roll = math.atan2(2.0 * (w * x + y * z), 1.0 - 2.0 * (x * x + y * y))
    # Float error can nudge the asin argument a hair past ±1 at the poles.
    pitch = math.asin(max(-1.0, min(1.0, 2.0 * (w * y - z * x))))
    yaw = math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
    return EulerAngles(roll=roll, pitch=pitch, yaw=yaw)

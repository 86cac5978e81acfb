"""Single-line status readout: orientation bars, synced arm and pose.

The view owns its own state (fed as just another device listener), so the
OSC side never has to know the console exists.
"""

from __future__ import annotations

import math
import sys
import time
from dataclasses import dataclass

from software.myo_bridge.device import Arm, DeviceListener
from software.myo_bridge.samples import Quaternion, quaternion_to_euler

BAR_WIDTH = 18
POSE_WIDTH = 14


@dataclass
class ConsoleState:
    roll_w: int = 0
    pitch_w: int = 0
    yaw_w: int = 0
    arm: Arm | None = None
    pose: str = "unknown"

    @property
    def on_arm(self) -> bool:
        return self.arm is not None


def _bar_width(value: float, lower: float, upper: float) -> int:
    width = int((value - lower) / (upper - lower) * BAR_WIDTH)
    return max(0, min(BAR_WIDTH, width))


def render(state: ConsoleState) -> str:
    line = "".join(
        "[" + "*" * w + " " * (BAR_WIDTH - w) + "]"
        for w in (state.roll_w, state.pitch_w, state.yaw_w)
    )
    if state.on_arm:
        side = "L" if state.arm is Arm.LEFT else "R"
        line += f"[{side}][{state.pose[:POSE_WIDTH]:<{POSE_WIDTH}}]"
    else:
        line += "[?][" + " " * POSE_WIDTH + "]"
    return line


class ConsoleView(DeviceListener):
    # Redraw at most this often; events arrive far faster than anyone reads.
    REFRESH_HZ = 20.0

    def __init__(self, stream=None):
        self.state = ConsoleState()
        self.stream = stream or sys.stdout
        self._last_draw = 0.0

    def on_orientation_data(self, device, timestamp: int, quat: Quaternion) -> None:
        angles = quaternion_to_euler(quat)
        self.state.roll_w = _bar_width(angles.roll, -math.pi, math.pi)
        self.state.pitch_w = _bar_width(angles.pitch, -math.pi / 2, math.pi / 2)
        self.state.yaw_w = _bar_width(angles.yaw, -math.pi, math.pi)
        self._maybe_print()

    def on_pose(self, device, timestamp: int, pose: str) -> None:
        self.state.pose = pose
        self._maybe_print()

    def on_arm_sync(self, device, timestamp: int, arm: Arm, x_direction=None) -> None:
        self.state.arm = arm
        self._maybe_print()

    def on_arm_unsync(self, device, timestamp: int) -> None:
        self.state.arm = None
        self._maybe_print()

    def _maybe_print(self) -> None:
        now = time.monotonic()
        if now - self._last_draw >= 1.0 / self.REFRESH_HZ:
            self.print()
            self._last_draw = now

    def print(self) -> None:
        self.stream.write("\r" + render(self.state))
        self.stream.flush()

    def finish(self) -> None:
        self.print()
        self.stream.write("\n")
        self.stream.flush()

"""Device-side plumbing: listener interface, event hub and session replay.

Talking to a real armband is the SDK's job.  Anything that can call the
``DeviceListener`` methods can drive the bridge; the bundled source replays
a recorded session document so rehearsals and CI don't need hardware.
"""

from __future__ import annotations

import enum
import time
from pathlib import Path
from typing import Any, List, Mapping

import yaml

from software.myo_bridge.config_validation import InvalidConfig
from software.myo_bridge.samples import EMG_SENSOR_COUNT, Quaternion, Vector3


class Arm(enum.Enum):
    LEFT = "left"
    RIGHT = "right"


class DeviceListener:
    """One hook per device event.  Override the ones you care about."""

    def on_accelerometer_data(self, device, timestamp: int, accel: Vector3) -> None:
        pass

    def on_gyroscope_data(self, device, timestamp: int, gyro: Vector3) -> None:
        pass

    def on_orientation_data(self, device, timestamp: int, quat: Quaternion) -> None:
        pass

    def on_pose(self, device, timestamp: int, pose: str) -> None:
        pass

    def on_emg_data(self, device, timestamp: int, emg) -> None:
        pass

    def on_rssi(self, device, timestamp: int, rssi: int) -> None:
        pass

    def on_arm_sync(self, device, timestamp: int, arm: Arm, x_direction=None) -> None:
        pass

    def on_arm_unsync(self, device, timestamp: int) -> None:
        pass


class Hub:
    """Fan events out to every registered listener, in registration order."""

    def __init__(self) -> None:
        self.listeners: List[DeviceListener] = []

    def add_listener(self, listener: DeviceListener) -> None:
        self.listeners.append(listener)

    def publish(self, method: str, *args) -> None:
        for listener in self.listeners:
            getattr(listener, method)(*args)


class ReplayDevice:
    """Stand-in armband for replayed sessions; it just counts buzzes."""

    def __init__(self, announce: bool = False) -> None:
        self.haptic_pulses = 0
        self.announce = announce

    def trigger_short_haptic_pulse(self) -> None:
        self.haptic_pulses += 1
        if self.announce:
            print("[replay] haptic pulse (short)")


def _floats(value: Any, count: int, label: str) -> List[float]:
    if (
        not isinstance(value, (list, tuple))
        or len(value) != count
        or not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value)
    ):
        raise InvalidConfig([f"{label} needs {count} numbers, got {value!r}"])
    return [float(v) for v in value]


def _event_args(kind: str, value: Any, label: str) -> tuple:
    if kind == "accelerometer":
        return ("on_accelerometer_data", Vector3(*_floats(value, 3, label)))
    if kind == "gyroscope":
        return ("on_gyroscope_data", Vector3(*_floats(value, 3, label)))
    if kind == "orientation":
        return ("on_orientation_data", Quaternion(*_floats(value, 4, label)))
    if kind == "pose":
        if not isinstance(value, str):
            raise InvalidConfig([f"{label} needs a pose name, got {value!r}"])
        return ("on_pose", value)
    if kind == "emg":
        if (
            not isinstance(value, list)
            or len(value) != EMG_SENSOR_COUNT
            or not all(isinstance(v, int) and not isinstance(v, bool) and -128 <= v <= 127 for v in value)
        ):
            raise InvalidConfig([f"{label} needs {EMG_SENSOR_COUNT} int8 values, got {value!r}"])
        return ("on_emg_data", tuple(value))
    if kind == "signal-strength":
        if isinstance(value, bool) or not isinstance(value, int) or not -128 <= value <= 127:
            raise InvalidConfig([f"{label} needs an int8 RSSI, got {value!r}"])
        return ("on_rssi", value)
    if kind == "arm-sync":
        try:
            return ("on_arm_sync", Arm(value))
        except ValueError:
            raise InvalidConfig([f"{label} arm must be 'left' or 'right', got {value!r}"]) from None
    if kind == "arm-unsync":
        return ("on_arm_unsync",)
    raise InvalidConfig([f"{label} has unknown event kind {kind!r}"])


def load_session(path: Path) -> List[Mapping[str, Any]]:
    try:
        with open(path, encoding="utf-8") as fh:
            doc = yaml.safe_load(fh)
    except OSError as exc:
        raise InvalidConfig([f"{path}: cannot read session ({exc.strerror or exc})"]) from exc
    except yaml.YAMLError as exc:
        raise InvalidConfig([f"{path}: cannot parse session: {exc}"]) from exc
    if not isinstance(doc, Mapping) or not isinstance(doc.get("events"), list):
        raise InvalidConfig([f"{Path(path).name}: session must be a mapping with an 'events' list"])
    return doc["events"]


def replay_events(events, hub: Hub, device, *, realtime: bool = False, source: str = "session") -> int:
    """Push recorded events through ``hub``; returns how many were replayed.

    Every event is checked before the first one is published, so a bad
    session never half-plays.
    """

    calls = []
    for index, event in enumerate(events):
        label = f"{source}.events[{index}]"
        if not isinstance(event, Mapping) or "event" not in event:
            raise InvalidConfig([f"{label} must be a mapping with an 'event' kind"])
        timestamp = event.get("timestamp", index)
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise InvalidConfig([f"{label}.timestamp must be an integer (µs)"])
        method, *payload = _event_args(event["event"], event.get("value"), label)
        calls.append((timestamp, method, payload))

    last = None
    for timestamp, method, payload in calls:
        if realtime and last is not None and timestamp > last:
            time.sleep((timestamp - last) / 1_000_000)
        last = timestamp
        hub.publish(method, device, timestamp, *payload)
    return len(calls)


def replay_session(path: Path, hub: Hub, device, *, realtime: bool = False) -> int:
    path = Path(path)
    return replay_events(load_session(path), hub, device, realtime=realtime, source=path.name)

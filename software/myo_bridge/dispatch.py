"""Turn armband samples into addressed OSC messages.

``dispatch`` is the whole decision: look up the channel policy, bail if the
channel is off, scale whatever is numeric, and hand back an
:class:`OutboundMessage`.  It never touches a socket.  ``OscGenerator`` is the
device listener that glues events → ``dispatch`` → transport (+ trace line).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

from software.myo_bridge.config_validation import ChannelPolicy
from software.myo_bridge.device import Arm, DeviceListener
from software.myo_bridge.samples import (
    Byte,
    ByteArray,
    EMG_SENSOR_COUNT,
    Label,
    Quaternion,
    Sample,
    Scalar,
    Vector3,
    quaternion_to_euler,
)
from software.myo_bridge.scaling import DivisionByZero, scale_byte, scale_bytes, scale_value, scale_values
from software.myo_bridge.settings import Settings

# Pose that earns the wearer a short buzz, same as the stock Myo demos.
FEEDBACK_POSE = "fist"
TRACE_ADDRESS_WIDTH = 20
TRACE_FIELD_WIDTH = 10

Field = int | float | str


@dataclass(frozen=True)
class OutboundMessage:
    """OSC address plus ordered fields (int → int8, float → float32, str)."""

    address: str
    fields: Tuple[Field, ...]


def encode_fields(channel: str, sample: Sample, policy: ChannelPolicy) -> Tuple[Field, ...]:
    if isinstance(sample, Label):
        return (sample.text,)
    if isinstance(sample, Byte):
        return (scale_byte(sample.value, policy),)
    if isinstance(sample, ByteArray):
        return scale_bytes(sample.values, policy)
    if isinstance(sample, Scalar):
        return (scale_value(float(sample.value), policy),)
    if isinstance(sample, Vector3):
        return scale_values(sample, policy)
    if isinstance(sample, Quaternion):
        fields = scale_values(sample, policy)
        if channel == "orientation":
            # Euler angles come from the raw quaternion, then take the same
            # policy as every other numeric field on the channel.
            fields += scale_values(quaternion_to_euler(sample), policy)
        return fields
    raise TypeError(f"cannot encode {type(sample).__name__} sample for '{channel}'")


def encode(channel: str, sample: Sample, policy: ChannelPolicy) -> OutboundMessage:
    return OutboundMessage(address=policy.path, fields=encode_fields(channel, sample, policy))


def dispatch(channel: str, sample: Sample, settings: Settings, *, haptics=None) -> OutboundMessage | None:
    """Encode ``sample`` for ``channel`` or return ``None`` if the channel is off.

    ``haptics`` is the device feedback hook; it gets a
    ``trigger_short_haptic_pulse()`` call when an enabled pose channel sees a
    fist.  :class:`DivisionByZero` from a zero-width input range propagates.
    """

    policy = settings.policy(channel)
    if not policy.enabled:
        return None
    message = encode(channel, sample, policy)
    if channel == "pose" and haptics is not None and isinstance(sample, Label) and sample.text == FEEDBACK_POSE:
        haptics.trigger_short_haptic_pulse()
    return message


def format_trace_line(message: OutboundMessage) -> str:
    parts = [f"{message.address + ':':<{TRACE_ADDRESS_WIDTH}}"]
    for value in message.fields:
        if isinstance(value, str):
            parts.append(f"  {value}")
        elif isinstance(value, int):
            parts.append(f"  {value:>{TRACE_FIELD_WIDTH}d}")
        else:
            parts.append(f"  {value:>{TRACE_FIELD_WIDTH}.2f}")
    return "".join(parts)


class OscGenerator(DeviceListener):
    """Device listener that forwards every enabled channel over OSC.

    A zero-width input range can't be scaled; that message gets dropped and
    the channel is reported once on the trace sink and in the audit log.
    """

    def __init__(self, settings: Settings, transport, *, trace: Callable[[str], None] = print, audit=None):
        self.settings = settings
        self.transport = transport
        self.trace = trace
        self.audit = audit
        self.sent = 0
        self.dropped = 0
        self._degenerate: set[str] = set()

    def emit(self, channel: str, sample: Sample, haptics=None) -> OutboundMessage | None:
        try:
            message = dispatch(channel, sample, self.settings, haptics=haptics)
        except DivisionByZero as exc:
            self._report_degenerate(channel, exc)
            return None
        if message is None:
            return None
        self.transport.send(message)
        self.sent += 1
        if self.settings.log_osc:
            self.trace(format_trace_line(message))
        return message

    def _report_degenerate(self, channel: str, exc: DivisionByZero) -> None:
        self.dropped += 1
        if channel in self._degenerate:
            return
        self._degenerate.add(channel)
        self.trace(f"[bridge] {channel}: {exc}; dropping its messages")
        if self.audit is not None:
            self.audit.write(
                "scaling_error",
                status="error",
                message=f"Dropping {channel} messages: {exc}",
                details={"channel": channel, "path": self.settings.policy(channel).path},
            )

    # units of g
    def on_accelerometer_data(self, device, timestamp: int, accel: Vector3) -> None:
        self.emit("accel", accel)

    # units of deg/s
    def on_gyroscope_data(self, device, timestamp: int, gyro: Vector3) -> None:
        self.emit("gyro", gyro)

    def on_orientation_data(self, device, timestamp: int, quat: Quaternion) -> None:
        self.emit("orientationQuat", quat)
        self.emit("orientation", quat)

    def on_pose(self, device, timestamp: int, pose: str) -> None:
        self.emit("pose", Label(pose), haptics=device)

    def on_emg_data(self, device, timestamp: int, emg: Sequence[int]) -> None:
        if len(emg) != EMG_SENSOR_COUNT:
            raise ValueError(f"expected {EMG_SENSOR_COUNT} EMG values, got {len(emg)}")
        self.emit("emg", ByteArray(tuple(emg)))

    def on_rssi(self, device, timestamp: int, rssi: int) -> None:
        self.emit("rssi", Byte(rssi))

    def on_arm_sync(self, device, timestamp: int, arm: Arm, x_direction=None) -> None:
        self.emit("sync", Label("L" if arm is Arm.LEFT else "R"))

    def on_arm_unsync(self, device, timestamp: int) -> None:
        self.emit("sync", Label("-"))

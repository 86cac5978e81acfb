"""Config validation helpers for the Myo→OSC bridge.

Each output channel accepts a few shorthand shapes in the config document:

* ``null`` / missing: channel off, default OSC address.
* ``true`` / ``false``: on or off at the default address.
* ``"/some/path"``: on, sending to that address (``""`` switches it off).
* a mapping: ``enabled``, ``path`` (or ``address``), ``in``/``out`` ranges and
  ``scale`` (``"none"``, ``"scale"``, ``"clamp"`` or the old ``0``/``1``/``2``
  codes).
"""

from __future__ import annotations

import dataclasses
from typing import Any, Iterable, Mapping

from software.myo_bridge.scaling import Range, Scaling


class ValidationError(Exception):
    """Aggregates config validation failures."""

    def __init__(self, errors: Iterable[str]):
        messages = list(errors)
        super().__init__("; ".join(messages))
        self.errors = messages


class InvalidConfig(ValidationError):
    """A config document (or one value in it) has the wrong shape."""


class InvalidArguments(ValidationError):
    """Command-line flags or positionals don't add up."""


# Config key → default OSC address.  Order here is the order operators see
# channels listed in settings summaries.
CHANNEL_DEFAULT_PATHS = {
    "accel": "/myo/accel",
    "gyro": "/myo/gyro",
    "orientation": "/myo/orientation",
    "orientationQuat": "/myo/quat",
    "pose": "/myo/pose",
    "emg": "/myo/emg",
    "sync": "/myo/onarm",
    "rssi": "/myo/rssi",
}
CHANNELS = tuple(CHANNEL_DEFAULT_PATHS)

GLOBAL_KEYS = {"host", "port", "console", "logOsc"}
POLICY_KEYS = {"enabled", "path", "address", "in", "out", "scale"}
SCALING_KEYWORDS = {mode.keyword: mode for mode in Scaling}


@dataclasses.dataclass(frozen=True)
class ChannelPolicy:
    enabled: bool
    path: str
    scaling: Scaling = Scaling.NONE
    in_range: Range = dataclasses.field(default_factory=Range)
    out_range: Range = dataclasses.field(default_factory=Range)

    def __bool__(self) -> bool:
        return self.enabled

    @classmethod
    def disabled(cls, channel: str) -> "ChannelPolicy":
        return cls(enabled=False, path=CHANNEL_DEFAULT_PATHS[channel])

    @classmethod
    def at_default(cls, channel: str, enabled: bool = True) -> "ChannelPolicy":
        return cls(enabled=enabled, path=CHANNEL_DEFAULT_PATHS[channel])


def describe_policy(policy: ChannelPolicy) -> str:
    """One-line summary like ``/a/x [-2, 2] -> [-1, 1] (clamp)``."""

    text = policy.path if policy.enabled else "(none)"
    if policy.scaling is not Scaling.NONE:
        text += f" {policy.in_range} -> {policy.out_range}"
        if policy.scaling is Scaling.CLAMP:
            text += " (clamp)"
    return text


# ---- validation primitives -------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_range(value: Any, path: str) -> Range:
    """Accept ``[min, max]`` or ``{min: .., max: ..}``."""

    if isinstance(value, (list, tuple)):
        if len(value) != 2 or not all(_is_number(v) for v in value):
            raise InvalidConfig([f"'{path}' must hold exactly two numbers, got {value!r}"])
        return Range(float(value[0]), float(value[1]))
    if isinstance(value, Mapping):
        extra = set(value) - {"min", "max"}
        lo, hi = value.get("min"), value.get("max")
        if extra or not (_is_number(lo) and _is_number(hi)):
            raise InvalidConfig([f"'{path}' must be {{min, max}} with two numbers, got {value!r}"])
        return Range(float(lo), float(hi))
    raise InvalidConfig([f"'{path}' must be a two-element list or a min/max mapping, got {value!r}"])


def parse_scaling(value: Any, path: str) -> Scaling:
    if isinstance(value, str):
        if value in SCALING_KEYWORDS:
            return SCALING_KEYWORDS[value]
        allowed = sorted(SCALING_KEYWORDS)
        raise InvalidConfig([f"'{path}' must be one of {allowed}, got {value!r}"])
    if _is_number(value) and float(value).is_integer():
        try:
            return Scaling(int(value))
        except ValueError:
            pass
    raise InvalidConfig([f"'{path}' is not a valid scaling mode: {value!r}"])


def _parse_policy_mapping(channel: str, value: Mapping) -> ChannelPolicy:
    errors: list[str] = []
    unknown = sorted(str(k) for k in set(value) - POLICY_KEYS)
    if unknown:
        errors.append(f"'{channel}' has unknown keys {unknown}")

    enabled = value.get("enabled")
    if enabled is None:
        enabled = True
    elif not isinstance(enabled, bool):
        errors.append(f"'{channel}.enabled' must be boolean, got {enabled!r}")
        enabled = False

    path = CHANNEL_DEFAULT_PATHS[channel]
    given = {k: value[k] for k in ("path", "address") if value.get(k) is not None}
    for key, candidate in given.items():
        if not isinstance(candidate, str):
            errors.append(f"'{channel}.{key}' must be a string, got {candidate!r}")
    if len(set(map(str, given.values()))) > 1:
        errors.append(f"'{channel}' sets both path and address to different values")
    elif given and all(isinstance(v, str) for v in given.values()):
        path = next(iter(given.values()))
        if not path:
            enabled = False
            path = CHANNEL_DEFAULT_PATHS[channel]

    scaling = Scaling.NONE
    ranges = {}
    for key in ("in", "out"):
        if value.get(key) is None:
            continue
        try:
            ranges[key] = parse_range(value[key], f"{channel}.{key}")
        except InvalidConfig as exc:
            errors.extend(exc.errors)
        scaling = Scaling.SCALE
    if value.get("scale") is not None:
        try:
            scaling = parse_scaling(value["scale"], f"{channel}.scale")
        except InvalidConfig as exc:
            errors.extend(exc.errors)

    if errors:
        raise InvalidConfig(errors)
    return ChannelPolicy(
        enabled=enabled,
        path=path,
        scaling=scaling,
        in_range=ranges.get("in", Range()),
        out_range=ranges.get("out", Range()),
    )


def parse_channel_policy(channel: str, value: Any) -> ChannelPolicy:
    """Turn one channel's config value into a :class:`ChannelPolicy`."""

    if channel not in CHANNEL_DEFAULT_PATHS:
        raise InvalidConfig([f"unknown channel '{channel}'"])
    if value is None:
        return ChannelPolicy.disabled(channel)
    if isinstance(value, bool):
        return ChannelPolicy.at_default(channel, enabled=value)
    if isinstance(value, str):
        if not value:
            return ChannelPolicy.disabled(channel)
        return ChannelPolicy(enabled=True, path=value)
    if isinstance(value, Mapping):
        return _parse_policy_mapping(channel, value)
    raise InvalidConfig([f"'{channel}' must be null, a boolean, a path string or a mapping, got {value!r}"])

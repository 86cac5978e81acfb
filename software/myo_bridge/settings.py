"""Bridge settings: one policy per channel plus where and how to send.

Settings come from two places.  A config document (JSON or YAML) describes
every channel in detail; command-line flags switch channels on/off and pick
the OSC target.  Flags always layer on top of a loaded document, never the
other way round.
"""

from __future__ import annotations

import argparse
import dataclasses
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

import yaml

from software.myo_bridge.config_validation import (
    CHANNEL_DEFAULT_PATHS,
    CHANNELS,
    GLOBAL_KEYS,
    ChannelPolicy,
    InvalidArguments,
    InvalidConfig,
    describe_policy,
    parse_channel_policy,
)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 7777

# Config key → (long flag, short flag).  ``--noX``/upper-case short disables.
CHANNEL_FLAGS = {
    "accel": ("accel", "a"),
    "gyro": ("gyro", "g"),
    "orientation": ("orient", "o"),
    "orientationQuat": ("quat", "q"),
    "pose": ("pose", "p"),
    "emg": ("emg", "e"),
    "sync": ("sync", "s"),
    "rssi": ("rssi", "r"),
}


@dataclasses.dataclass(frozen=True)
class Settings:
    channels: Mapping[str, ChannelPolicy]
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    console: bool = True
    log_osc: bool = False

    def __post_init__(self):
        missing = [ch for ch in CHANNELS if ch not in self.channels]
        if missing:
            raise InvalidConfig([f"settings missing channel policies for {missing}"])
        # Read-only view over a private copy; DEFAULT_SETTINGS is shared.
        object.__setattr__(self, "channels", MappingProxyType(dict(self.channels)))

    def policy(self, channel: str) -> ChannelPolicy:
        return self.channels[channel]

    def enabled_channels(self) -> list[str]:
        return [ch for ch in CHANNELS if self.channels[ch].enabled]


def default_settings(enabled: bool = False) -> Settings:
    return Settings(channels={ch: ChannelPolicy.at_default(ch, enabled=enabled) for ch in CHANNELS})


DEFAULT_SETTINGS = default_settings()


def describe_settings(settings: Settings) -> str:
    lines = [
        "Settings<",
        f"  hostname: {settings.host}",
        f"  port: {settings.port}",
    ]
    for channel in CHANNELS:
        lines.append(f"  {channel}: {describe_policy(settings.channels[channel])}")
    lines.append(f"  console: {str(settings.console).lower()}")
    lines.append(f"  logOsc: {str(settings.log_osc).lower()}")
    lines.append(">")
    return "\n".join(lines)


# ---- config documents ------------------------------------------------------


def _read_bool(doc: Mapping, key: str, current: bool, errors: list[str]) -> bool:
    value = doc.get(key)
    if value is None:
        return current
    if not isinstance(value, bool):
        errors.append(f"'{key}' must be boolean, got {value!r}")
        return current
    return value


def _read_port(value: Any, current: int, errors: list[str], label: str = "port") -> int:
    if value is None:
        return current
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not float(value).is_integer():
        errors.append(f"'{label}' must be an integer, got {value!r}")
        return current
    if not 0 < int(value) < 65536:
        errors.append(f"'{label}' must be within 1-65535, got {value!r}")
        return current
    return int(value)


def settings_from_document(doc: Any, base: Settings = DEFAULT_SETTINGS) -> Settings:
    """Build settings from a parsed config document.

    Channels missing from ``doc`` are switched off.  ``host``, ``port``,
    ``console`` and ``logOsc`` keep the ``base`` value unless set.  Every
    problem in the document is collected before raising, so one run of the
    validator shows the operator everything that's wrong.
    """

    if doc is None:
        return base
    if not isinstance(doc, Mapping):
        raise InvalidConfig([f"config must be a mapping, got {type(doc).__name__}"])

    errors: list[str] = []
    unknown = sorted(str(k) for k in set(doc) - set(CHANNELS) - GLOBAL_KEYS)
    if unknown:
        errors.append(f"unknown config keys {unknown}")

    channels = {}
    for channel in CHANNELS:
        try:
            channels[channel] = parse_channel_policy(channel, doc.get(channel))
        except InvalidConfig as exc:
            errors.extend(exc.errors)

    host = doc.get("host")
    if host is None:
        host = base.host
    elif not isinstance(host, str) or not host:
        errors.append(f"'host' must be a non-empty string, got {host!r}")
        host = base.host
    port = _read_port(doc.get("port"), base.port, errors)
    console = _read_bool(doc, "console", base.console, errors)
    log_osc = _read_bool(doc, "logOsc", base.log_osc, errors)

    if errors:
        raise InvalidConfig(errors)
    return Settings(channels=channels, host=host, port=port, console=console, log_osc=log_osc)


def load_yaml(path: Path) -> Any:
    """Read YAML/JSON from ``path`` and return the parsed structure."""

    with open(path, encoding="utf-8") as fh:
        return yaml.safe_load(fh)


def load_settings_file(path: Path, base: Settings = DEFAULT_SETTINGS) -> Settings:
    path = Path(path)
    try:
        doc = load_yaml(path)
    except OSError as exc:
        raise InvalidConfig([f"{path}: cannot read config ({exc.strerror or exc})"]) from exc
    except yaml.YAMLError as exc:
        raise InvalidConfig([f"{path}: cannot parse config: {exc}"]) from exc
    try:
        return settings_from_document(doc, base)
    except InvalidConfig as exc:
        raise InvalidConfig([f"{path.name}: {err}" for err in exc.errors]) from exc


# ---- command-line flags ----------------------------------------------------


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise InvalidArguments([message])


def build_arg_parser(**kwargs) -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        description=kwargs.pop(
            "description",
            "Stream Myo armband data as OSC messages. Give no channel flags "
            "to send everything; name channels to send only those.",
        ),
        **kwargs,
    )
    channels = parser.add_argument_group("channels")
    for channel, (long_name, short) in CHANNEL_FLAGS.items():
        default_path = CHANNEL_DEFAULT_PATHS[channel]
        channels.add_argument(
            f"--{long_name}",
            dest=f"{channel}_path",
            nargs="?",
            const="",
            metavar="PATH",
            help=f"Enable {channel} output, optionally at OSC address PATH (starts with /, default {default_path})",
        )
        channels.add_argument(f"-{short}", dest=f"{channel}_on", action="store_true", help=argparse.SUPPRESS)
        channels.add_argument(
            f"--no{long_name}",
            f"-{short.upper()}",
            dest=f"{channel}_off",
            action="store_true",
            help=f"Disable {channel} output",
        )
    parser.add_argument("--config", help="Path to a JSON/YAML bridge config; flags override it.")
    parser.add_argument("--log-osc", action="store_true", default=None, help="Trace every OSC message.")
    parser.add_argument(
        "--no-console",
        dest="console",
        action="store_false",
        default=None,
        help="Skip the live status line.",
    )
    parser.add_argument("target", nargs="*", metavar="[host] port", help="OSC destination.")
    return parser


def _normalize_argv(argv: Iterable[str]) -> list[str]:
    # ``--accel /hand/accel`` takes the OSC address; a bare ``--accel`` before
    # anything else (host, port, flags) becomes the explicit empty form so it
    # never swallows a positional.
    bare = {f"--{long_name}" for long_name, _ in CHANNEL_FLAGS.values()}
    tokens = list(argv)
    out: list[str] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token in bare:
            following = tokens[i + 1] if i + 1 < len(tokens) else None
            if following is not None and following.startswith("/"):
                out.append(f"{token}={following}")
                i += 2
                continue
            token = f"{token}="
        out.append(token)
        i += 1
    return out


def parse_args(argv: Iterable[str], parser: argparse.ArgumentParser | None = None) -> argparse.Namespace:
    parser = parser or build_arg_parser()
    return parser.parse_intermixed_args(_normalize_argv(argv))


def settings_from_namespace(args: argparse.Namespace, base: Settings | None = None) -> Settings:
    """Layer parsed flags over ``base`` (or over the all-on defaults)."""

    enabling = {}
    for channel in CHANNELS:
        inline = getattr(args, f"{channel}_path")
        if inline is not None or getattr(args, f"{channel}_on"):
            enabling[channel] = inline or None
    disabling = {ch for ch in CHANNELS if getattr(args, f"{ch}_off")}

    start = base or default_settings(enabled=True)
    channels = {}
    for channel in CHANNELS:
        policy = start.channels[channel]
        if channel in disabling:
            policy = dataclasses.replace(policy, enabled=False)
        elif channel in enabling:
            policy = dataclasses.replace(policy, enabled=True, path=enabling[channel] or policy.path)
        elif enabling:
            policy = dataclasses.replace(policy, enabled=False)
        channels[channel] = policy

    host, port = start.host, start.port
    errors: list[str] = []
    if len(args.target) == 2:
        host = args.target[0]
        port = _parse_cli_port(args.target[1], port, errors)
    elif len(args.target) == 1:
        port = _parse_cli_port(args.target[0], port, errors)
    elif args.target:
        errors.append(f"strange number of non-option arguments: {len(args.target)}")
    if errors:
        raise InvalidArguments(errors)

    return Settings(
        channels=channels,
        host=host,
        port=port,
        console=start.console if args.console is None else args.console,
        log_osc=start.log_osc if args.log_osc is None else args.log_osc,
    )


def _parse_cli_port(raw: str, current: int, errors: list[str]) -> int:
    try:
        value = int(raw)
    except ValueError:
        errors.append(f"port must be an integer, got {raw!r}")
        return current
    return _read_port(value, current, errors)


def settings_from_flags(argv: Iterable[str], base: Settings | None = None) -> Settings:
    return settings_from_namespace(parse_args(argv), base)


def settings_from_args(argv: Iterable[str]) -> Settings:
    """Full CLI path: optional ``--config`` document, then flags on top."""

    args = parse_args(argv)
    return resolve_settings(args)


def resolve_settings(args: argparse.Namespace) -> Settings:
    base = None
    if args.config:
        base = load_settings_file(Path(args.config).expanduser())
    return settings_from_namespace(args, base)

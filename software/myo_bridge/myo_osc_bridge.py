#!/usr/bin/env python3
"""Myo-to-OSC bridge: stream armband channels to any OSC listener.

Each channel (accel, gyro, orientation, quaternion, pose, EMG, arm sync,
RSSI) can be switched on or off, pointed at its own OSC address and
optionally remapped into a different numeric range before it leaves.

Usage::

    myo-osc [channel flags] [--config bridge.json] [host] port

No channel flags means "send everything".  Naming any channel (``--emg``,
``--accel=/hand/accel``) sends only the named ones.  ``--replay`` plays a
recorded session through the bridge, which is how rehearsals and CI run
without an armband on anyone's arm.

References worth a browser tab:

* OSC 1.0 spec: https://opensoundcontrol.stanford.edu/spec-1_0.html
* python-osc docs: https://pypi.org/project/python-osc/
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable

from software.myo_bridge.audit import AuditLogger
from software.myo_bridge.config_validation import InvalidArguments, InvalidConfig, ValidationError
from software.myo_bridge.console import ConsoleView
from software.myo_bridge.device import Hub, ReplayDevice, replay_session
from software.myo_bridge.dispatch import OscGenerator
from software.myo_bridge.settings import build_arg_parser, describe_settings, parse_args, resolve_settings
from software.myo_bridge.transport import DryRunTransport, OscTransport


def build_parser():
    parser = build_arg_parser()
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Skip UDP sends and report OSC traffic locally.",
    )
    parser.add_argument(
        "--replay",
        help="Recorded device session (JSON/YAML) to play through the bridge.",
    )
    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Pace --replay using the recorded timestamps.",
    )
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    audit = AuditLogger()

    args = None
    try:
        args = parse_args(argv, build_parser())
        settings = resolve_settings(args)
    except InvalidArguments as exc:
        audit.write(
            "config_validation",
            status="error",
            message="Rejected command-line arguments",
            details={"errors": exc.errors},
        )
        _report(exc)
        return 2
    except InvalidConfig as exc:
        audit.write(
            "config_load",
            status="error",
            message="Failed to load bridge config",
            details={"path": getattr(args, "config", None), "errors": exc.errors},
        )
        _report(exc)
        return 2

    audit.write(
        "config_load",
        status="info",
        message="Bridge settings resolved",
        details={
            "config": args.config,
            "channels": settings.enabled_channels(),
            "host": settings.host,
            "port": settings.port,
        },
    )

    print(describe_settings(settings))
    print(f"Sending Myo OSC to {settings.host}:{settings.port}")

    if not args.replay:
        # Live capture needs the vendor SDK; wire its events into a Hub with
        # an OscGenerator the same way the replay path below does.
        print("[bridge] no device source given; pass --replay SESSION", file=sys.stderr)
        return 2

    if args.dry_run:
        transport = DryRunTransport()
        print("[dry-run] UDP sends suppressed; OSC traffic reported locally.")
    else:
        transport = OscTransport(settings.host, settings.port)

    generator = OscGenerator(settings, transport, audit=audit)
    hub = Hub()
    hub.add_listener(generator)
    console = None
    if settings.console:
        console = ConsoleView()
        hub.add_listener(console)

    device = ReplayDevice(announce=settings.log_osc)
    audit.write(
        "bridge_boot",
        status="info",
        message=f"Myo→OSC bridge sending to {settings.host}:{settings.port}",
        details={"replay": str(Path(args.replay)), "dry_run": args.dry_run},
    )

    exit_code = 0
    replayed = 0
    try:
        replayed = replay_session(Path(args.replay).expanduser(), hub, device, realtime=args.realtime)
    except InvalidConfig as exc:
        audit.write(
            "config_validation",
            status="error",
            message="Session replay rejected",
            details={"path": args.replay, "errors": exc.errors},
        )
        _report(exc)
        exit_code = 2
    except KeyboardInterrupt:
        audit.write(
            "bridge_shutdown",
            status="info",
            message="Operator interrupted bridge (Ctrl+C).",
        )
    finally:
        if console is not None:
            console.finish()
        transport.close()
        audit.write(
            "bridge_shutdown",
            status="closed",
            message="OSC transport closed{suffix}.".format(suffix=" (dry-run stub)" if args.dry_run else ""),
            details={
                "events": replayed,
                "sent": generator.sent,
                "dropped": generator.dropped,
                "haptic_pulses": device.haptic_pulses,
            },
        )
    return exit_code


def _report(exc: ValidationError) -> None:
    for line in exc.errors:
        print(f"[bridge] ✖ {line}", file=sys.stderr)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

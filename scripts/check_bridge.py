#!/usr/bin/env python3
"""End-to-end loopback check for the Myo→OSC bridge.

Plays the recorded fixture session through the real UDP transport into an
OSC server on localhost, then checks that every channel showed up with the
argument count and types a listener would expect.  Run it before a show to
catch a broken install or a config that silently drops channels.
"""
from __future__ import annotations

import argparse
import sys
import threading
import time
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pythonosc import dispatcher
from pythonosc.osc_server import ThreadingOSCUDPServer

from software.myo_bridge.config_validation import CHANNEL_DEFAULT_PATHS
from software.myo_bridge.device import Hub, ReplayDevice, replay_session
from software.myo_bridge.dispatch import OscGenerator
from software.myo_bridge.settings import settings_from_flags
from software.myo_bridge.transport import OscTransport

DEFAULT_FIXTURE = REPO_ROOT / "config" / "test-fixtures" / "session.json"

# Channel → (argument count, argument type) on the wire.
EXPECTED_SHAPES = {
    "accel": (3, float),
    "gyro": (3, float),
    "orientation": (7, float),
    "orientationQuat": (4, float),
    "pose": (1, str),
    "emg": (8, int),
    "sync": (1, str),
    "rssi": (1, int),
}


class OscCapture:
    """Collect every OSC message arriving on an ephemeral localhost port."""

    def __init__(self) -> None:
        self._messages: List[Tuple[str, tuple]] = []
        self._lock = threading.Lock()
        disp = dispatcher.Dispatcher()
        disp.set_default_handler(self._record)
        self._server = ThreadingOSCUDPServer(("127.0.0.1", 0), disp)
        self._server.daemon_threads = True
        self._thread: threading.Thread | None = None

    def _record(self, address: str, *args) -> None:
        with self._lock:
            self._messages.append((address, args))

    @property
    def port(self) -> int:
        return self._server.server_address[1]

    def start(self) -> None:
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()
        if self._thread:
            self._thread.join(timeout=1)
            self._thread = None

    def messages(self) -> List[Tuple[str, tuple]]:
        with self._lock:
            return list(self._messages)

    def wait_for(self, count: int, timeout: float) -> bool:
        deadline = time.time() + timeout
        while time.time() < deadline:
            if len(self.messages()) >= count:
                return True
            time.sleep(0.005)
        return len(self.messages()) >= count


def assert_channel_shapes(messages: List[Tuple[str, tuple]]) -> Dict[str, int]:
    """Raise if any channel is missing or arrived with the wrong shape."""

    by_address: Dict[str, List[tuple]] = defaultdict(list)
    for address, args in messages:
        by_address[address].append(args)
    counts = {}
    for channel, (arity, kind) in EXPECTED_SHAPES.items():
        address = CHANNEL_DEFAULT_PATHS[channel]
        received = by_address.get(address)
        if not received:
            raise AssertionError(f"{channel} never arrived on {address}")
        for args in received:
            if len(args) != arity or not all(isinstance(v, kind) for v in args):
                raise AssertionError(f"{channel} arrived as {args!r}; expected {arity} × {kind.__name__}")
        counts[channel] = len(received)
    return counts


def run_check(fixture: Path, *, timeout: float = 2.0) -> Dict[str, int]:
    capture = OscCapture()
    capture.start()
    try:
        settings = settings_from_flags(["--no-console", "127.0.0.1", str(capture.port)])
        transport = OscTransport(settings.host, settings.port)
        generator = OscGenerator(settings, transport)
        hub = Hub()
        hub.add_listener(generator)
        replay_session(fixture, hub, ReplayDevice())
        transport.close()
        if not capture.wait_for(generator.sent, timeout):
            raise AssertionError(f"only {len(capture.messages())} of {generator.sent} OSC messages arrived")
    finally:
        capture.stop()
    return assert_channel_shapes(capture.messages())


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Loopback smoke test for the Myo→OSC bridge.")
    parser.add_argument(
        "--fixture",
        default=str(DEFAULT_FIXTURE),
        help="Recorded session to replay (defaults to config/test-fixtures/session.json).",
    )
    parser.add_argument("--timeout", type=float, default=2.0, help="Seconds to wait for UDP delivery")
    args = parser.parse_args(list(argv) if argv is not None else None)

    fixture = Path(args.fixture)
    if not fixture.is_absolute():
        fixture = (REPO_ROOT / fixture).resolve()
    if not fixture.is_file():
        print(f"Fixture file not found: {fixture}", file=sys.stderr)
        return 2

    try:
        counts = run_check(fixture, timeout=args.timeout)
    except AssertionError as exc:
        print(f"[check] ✖ {exc}")
        return 1

    for channel, count in counts.items():
        print(f"[check] {channel:<16} {count} message(s)")
    print("All channels arrived with the expected shape. Go strap on the armband.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

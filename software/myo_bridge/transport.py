"""Transport sinks: real OSC over UDP, or a dry-run stand-in.

python-osc does the packet framing.  We only pick the type tag for each
field so int8 samples go out as OSC ints and everything numeric-but-not-int
goes out as float32.
"""

from __future__ import annotations

import time

from pythonosc.osc_message_builder import OscMessageBuilder
from pythonosc.udp_client import UDPClient


def build_osc_message(message):
    builder = OscMessageBuilder(address=message.address)
    for value in message.fields:
        if isinstance(value, str):
            builder.add_arg(value, OscMessageBuilder.ARG_TYPE_STRING)
        elif isinstance(value, int) and not isinstance(value, bool):
            builder.add_arg(value, OscMessageBuilder.ARG_TYPE_INT)
        else:
            builder.add_arg(float(value), OscMessageBuilder.ARG_TYPE_FLOAT)
    return builder.build()


class OscTransport:
    """Fire-and-forget UDP sender."""

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self._client = UDPClient(host, port)

    def send(self, message) -> None:
        if self._client is None:
            raise RuntimeError(f"OSC transport to {self.host}:{self.port} is closed")
        self._client.send(build_osc_message(message))

    def close(self) -> None:
        # python-osc exposes no close; dropping the client releases its socket.
        self._client = None


class DryRunTransport:
    """Lightweight stand-in for :class:`OscTransport` during dry runs."""

    def __init__(self, report_interval: float = 1.0):
        self.message_count = 0
        self.byte_count = 0
        self.report_interval = report_interval
        self._last_report = time.time()
        self._last_message = None

    def send(self, message) -> None:
        self.message_count += 1
        self.byte_count += build_osc_message(message).size
        self._last_message = message
        now = time.time()
        if now - self._last_report >= self.report_interval:
            print(
                "[dry-run] {} {} (messages={} bytes={})".format(
                    message.address,
                    list(message.fields),
                    self.message_count,
                    self.byte_count,
                )
            )
            self._last_report = now

    def close(self) -> None:
        if self._last_message:
            print(f"[dry-run] last message {self._last_message.address} {list(self._last_message.fields)}")
        print(f"[dry-run] OSC stub built {self.message_count} messages ({self.byte_count} bytes)")

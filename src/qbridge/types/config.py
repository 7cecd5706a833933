"""Configuration types for the bridge process."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from enum import StrEnum

from mashumaro import DataClassDictMixin

from qbridge.util.defaults import (
    DEFAULT_LOGLEVEL,
    OSC_BUF_LEN,
    QUEUE_LEN,
)


class DecodePolicy(StrEnum):
    """What the receiver does with a datagram it cannot turn into a Request."""

    LENIENT = "lenient"  # log and drop, keep receiving
    STRICT = "strict"  # abort the receive loop


class OutboundFraming(StrEnum):
    """How each response message is framed on the wire."""

    BARE = "bare"
    BUNDLE = "bundle"  # single-element bundle, for older clients


class Lifecycle(StrEnum):
    INTERRUPT = "interrupt"  # run until SIGINT/SIGTERM or all stages exited
    RUN_TO_COMPLETION = "run_to_completion"  # first stage exit stops all, raises


class UnhandledPolicy(StrEnum):
    """What the runner does with a request kind it does not implement."""

    FATAL = "fatal"
    SKIP = "skip"


@dataclass(frozen=True)
class Endpoint(DataClassDictMixin):
    """A UDP endpoint, written `host:port` (or `[v6host]:port`)."""

    host: str
    port: int

    @classmethod
    def parse(cls, text: str) -> Endpoint:
        """Parse `host:port`.

        Raises
        ------
        ValueError
            If the string is not a valid `host:port` pair.
        """
        host, sep, port_str = str(text).strip().rpartition(":")
        if not sep or not host or not port_str:
            raise ValueError(f"Expected host:port, got '{text}'.")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
            ipaddress.IPv6Address(host)  # raises ValueError
        elif ":" in host:
            raise ValueError(f"IPv6 hosts must be bracketed: '{text}'.")
        try:
            port = int(port_str)
        except ValueError:
            raise ValueError(f"Invalid port '{port_str}' in '{text}'.") from None
        if not 0 <= port <= 65535:
            raise ValueError(f"Port out of range in '{text}'.")
        return cls(host=host, port=port)

    def as_tuple(self) -> tuple[str, int]:
        return (self.host, self.port)

    def __str__(self):
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(kw_only=True)
class BridgeConfig(DataClassDictMixin):
    """Everything needed to start a bridge.

    `send_addr` is where results are transmitted, `recv_addr` is where
    instructions are received. Both are required.
    """

    send_addr: Endpoint
    recv_addr: Endpoint
    # local address the sender binds before sending, None lets the OS pick
    send_bind_addr: Endpoint | None = None
    queue_len: int = QUEUE_LEN
    buffer_len: int = OSC_BUF_LEN
    decode_policy: DecodePolicy = DecodePolicy.LENIENT
    outbound_framing: OutboundFraming = OutboundFraming.BARE
    lifecycle: Lifecycle = Lifecycle.INTERRUPT
    unhandled_policy: UnhandledPolicy = UnhandledPolicy.FATAL
    seed: int | None = None  # simulator seed, None for nondeterministic
    # logging
    log_to_file: bool = True
    log_to_stdout: bool = False
    log_path: str = ""
    clear_prev_log: bool = True
    log_level: str = DEFAULT_LOGLEVEL

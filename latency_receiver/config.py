"""
Receiver Configuration
======================

Command-line configuration for the receiver and its validation.
"""

import os
import random
import socket
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from .protocol import MAX_SEQUENCE

DEFAULT_PORT = 5672
LINK_PATH = "/ws/link"


class ConfigError(ValueError):
    """Invalid or inconsistent receiver configuration."""


def _container_id() -> str:
    # must be unique for each client attached to the peer
    return f"receiver-container-{socket.gethostname()}-{os.getpid()}-{random.randint(0, 2**31 - 1)}"


def parse_address(address: str) -> tuple[str, int]:
    """Split a peer address into (host, port).

    Accepts `host`, `host:port` or `scheme://[user@]host[:port][/path]`.

    Raises:
        ConfigError: the address has no host or an invalid port.
    """
    text = address.strip()
    parts = urlsplit(text if "//" in text else f"//{text}")
    try:
        host = parts.hostname
        port = parts.port
    except ValueError:
        raise ConfigError(f"Invalid host address {address}") from None
    if not host:
        raise ConfigError(f"Invalid host address {address}")
    return host, port if port is not None else DEFAULT_PORT


@dataclass
class ReceiverConfig:
    """Receiver settings.

    Args:
        host_address:       Peer address.
        message_count:      Messages to receive before closing, -1 = forever.
        target:             Address the receiving link is bound to.
        display_interval:   Seconds between periodic reports, 0 = disabled.
        credit_window:      Pre-fetch (credit) window size.
        expected_sequence:  First expected sequence id.
        latency:            Enable latency measurement.
        csv_output:         Report in CSV format.
        verbosity:          Debug verbosity level.
    """

    host_address: str = f"localhost:{DEFAULT_PORT}"
    message_count: int = 1
    target: str = "topic"
    display_interval: int = 0
    credit_window: int = 100
    expected_sequence: int = 0
    latency: bool = False
    csv_output: bool = False
    verbosity: int = 0
    container_id: str = field(default_factory=_container_id)

    @classmethod
    def from_args(cls, args) -> 'ReceiverConfig':
        return cls(
            host_address=args.address,
            message_count=args.count,
            target=args.target,
            display_interval=args.interval,
            credit_window=args.prefetch,
            expected_sequence=args.sequence,
            latency=args.latency,
            csv_output=args.csv,
            verbosity=args.verbose,
        )

    def validate(self) -> 'ReceiverConfig':
        if self.credit_window <= 0:
            raise ConfigError("pre-fetch must be > zero")
        if self.display_interval < 0:
            raise ConfigError("display interval must be >= zero")
        if self.display_interval and not self.latency:
            raise ConfigError("must enable latency if display enabled")
        if not 0 <= self.expected_sequence <= MAX_SEQUENCE:
            raise ConfigError(f"expected sequence out of range: {self.expected_sequence}")
        parse_address(self.host_address)
        return self

    def peer_url(self) -> str:
        host, port = parse_address(self.host_address)
        if ":" in host:
            host = f"[{host}]"
        return f"ws://{host}:{port}{LINK_PATH}?container={self.container_id}"

    def describe(self) -> str:
        return (
            "Configuration:\n"
            f" Bus: {self.host_address}\n"
            f" Count: {self.message_count}\n"
            f" Topic: {self.target}\n"
            f" Display Intrv: {self.display_interval}\n"
            f" Latency: {'enabled' if self.latency else 'disabled'}\n"
            f" Pre-fetch: {self.credit_window}"
        )

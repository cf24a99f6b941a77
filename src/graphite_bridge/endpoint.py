"""Endpoint descriptors: ``<scheme>://<host>:<port>`` plus an export interval."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import urlsplit

from .errors import ConfigurationInvalid, InvalidEndpoint


class Scheme(str, enum.Enum):
    """Recognized transport tokens."""

    TCP = "net.tcp"
    UDP = "net.udp"
    PICKLED = "net.pickled"

    @classmethod
    def parse(cls, value: str) -> Scheme:
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidEndpoint(value, [s.value for s in cls]) from None


DEFAULT_PORTS = {
    Scheme.TCP: 2003,
    Scheme.UDP: 2003,
    Scheme.PICKLED: 2004,
}


@dataclass(frozen=True)
class EndpointDescriptor:
    scheme: Scheme
    host: str
    port: int
    interval: timedelta

    def __post_init__(self) -> None:
        if not isinstance(self.scheme, Scheme):
            object.__setattr__(self, "scheme", Scheme.parse(str(self.scheme)))
        if not self.host:
            raise ConfigurationInvalid("endpoint host must not be empty")
        if not 1 <= self.port <= 65535:
            raise ConfigurationInvalid(f"endpoint port {self.port} is out of range 1..65535")
        if self.interval <= timedelta(0):
            raise ConfigurationInvalid(f"export interval must be positive, got {self.interval}")

    @property
    def uri(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme.value}://{host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.uri} every {int(self.interval.total_seconds())}s"


def parse_endpoint(uri: str, interval: timedelta | float) -> EndpointDescriptor:
    """Parse *uri* into an :class:`EndpointDescriptor`.

    Raises :class:`ConfigurationInvalid` when the URI is not an absolute
    ``scheme://host[:port]`` string and :class:`InvalidEndpoint` when the
    scheme is not one of the recognized transports.
    """
    if not isinstance(interval, timedelta):
        interval = timedelta(seconds=interval)

    parts = urlsplit(uri.strip())
    if not parts.scheme or not parts.netloc:
        raise ConfigurationInvalid(f"{uri!r} is not an absolute URI")
    scheme = Scheme.parse(parts.scheme)
    if not parts.hostname:
        raise ConfigurationInvalid(f"{uri!r} has no host")
    try:
        port = parts.port
    except ValueError as exc:
        raise ConfigurationInvalid(f"{uri!r} has an invalid port: {exc}") from exc

    return EndpointDescriptor(
        scheme=scheme,
        host=parts.hostname,
        port=port if port is not None else DEFAULT_PORTS[scheme],
        interval=interval,
    )

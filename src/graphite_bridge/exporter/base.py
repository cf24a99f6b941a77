"""Base interface for Graphite senders and the plaintext line encoding."""

from __future__ import annotations

import abc
import math
import re
import socket
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..collector.base import MetricSample
from ..errors import DeliveryError, DeliveryErrorKind

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class SenderOptions:
    """Tuning knobs shared by every sender variant."""

    timeout_seconds: float = 5.0
    pickle_jar_size: int = 100
    max_datagram_bytes: int = 1400


def sanitize_path(path: str) -> str:
    """Graphite paths cannot contain whitespace."""
    return _WHITESPACE.sub("_", path.strip())


def format_value(value: float) -> str:
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    try:
        value = float(value)
    except (TypeError, ValueError) as exc:
        raise DeliveryError(DeliveryErrorKind.SERIALIZATION, f"non-numeric value {value!r}") from exc
    if not math.isfinite(value):
        raise DeliveryError(DeliveryErrorKind.SERIALIZATION, f"non-finite value {value!r}")
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_line(sample: MetricSample) -> str:
    """Render one sample in the classic ``<path> <value> <timestamp>`` form."""
    try:
        path = sanitize_path(sample.path)
        timestamp = int(sample.timestamp)
    except (AttributeError, TypeError, ValueError) as exc:
        raise DeliveryError(DeliveryErrorKind.SERIALIZATION, f"unserializable sample {sample!r}") from exc
    return f"{path} {format_value(sample.value)} {timestamp}\n"


def encode_lines(samples: Iterable[MetricSample]) -> bytes:
    return "".join(format_line(s) for s in samples).encode("utf-8")


def delivery_error(exc: OSError, host: str, port: int) -> DeliveryError:
    """Map a socket-level failure onto the delivery error taxonomy."""
    kind = DeliveryErrorKind.TIMEOUT if isinstance(exc, socket.timeout) else DeliveryErrorKind.CONNECTION
    return DeliveryError(kind, f"{host}:{port}: {exc}")


class GraphiteSender(abc.ABC):
    """Delivers batches of metric samples to one fixed Graphite endpoint."""

    def __init__(self, host: str, port: int, options: SenderOptions | None = None) -> None:
        self.host = host
        self.port = port
        self.options = options or SenderOptions()

    @abc.abstractmethod
    def send(self, batch: Sequence[MetricSample]) -> None:
        """Deliver *batch*; raises :class:`DeliveryError` on failure."""

    def flush(self) -> None:
        """Push out anything buffered. Line senders buffer nothing."""

    @abc.abstractmethod
    def close(self) -> None:
        """Flush and release network resources."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.host}:{self.port})"

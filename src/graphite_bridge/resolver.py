"""Maps endpoint schemes to sender implementations."""

from __future__ import annotations

from typing import Callable, Mapping

from .endpoint import EndpointDescriptor, Scheme
from .exporter.base import GraphiteSender, SenderOptions
from .exporter.pickled import PickledBatchSender
from .exporter.tcp import TcpLineSender
from .exporter.udp import UdpLineSender

SenderFactory = Callable[[str, int, SenderOptions], GraphiteSender]

TRANSPORTS: Mapping[Scheme, SenderFactory] = {
    Scheme.TCP: TcpLineSender,
    Scheme.UDP: UdpLineSender,
    Scheme.PICKLED: PickledBatchSender,
}


def create_sender(endpoint: EndpointDescriptor, options: SenderOptions | None = None) -> GraphiteSender:
    """Build the sender for *endpoint*'s scheme."""
    return TRANSPORTS[endpoint.scheme](endpoint.host, endpoint.port, options or SenderOptions())

"""Plaintext line protocol over UDP datagrams."""

from __future__ import annotations

import logging
import socket
from typing import Iterator, Sequence

from ..collector.base import MetricSample
from .base import GraphiteSender, delivery_error, format_line

logger = logging.getLogger(__name__)


class UdpLineSender(GraphiteSender):
    """Packs lines into datagrams bounded by ``max_datagram_bytes``.

    Nothing is acknowledged, so a lost datagram goes unnoticed. Only local
    failures (address resolution, socket errors) surface as delivery errors.
    """

    def _datagrams(self, batch: Sequence[MetricSample]) -> Iterator[bytes]:
        limit = self.options.max_datagram_bytes
        chunk = bytearray()
        for sample in batch:
            line = format_line(sample).encode("utf-8")
            if chunk and len(chunk) + len(line) > limit:
                yield bytes(chunk)
                chunk = bytearray()
            chunk += line
        if chunk:
            yield bytes(chunk)

    def send(self, batch: Sequence[MetricSample]) -> None:
        if not batch:
            return
        datagrams = list(self._datagrams(batch))
        try:
            family, socktype, proto, _, address = socket.getaddrinfo(
                self.host, self.port, type=socket.SOCK_DGRAM
            )[0]
            with socket.socket(family, socktype, proto) as sock:
                sock.settimeout(self.options.timeout_seconds)
                for datagram in datagrams:
                    sock.sendto(datagram, address)
        except OSError as exc:
            raise delivery_error(exc, self.host, self.port) from exc
        logger.debug("Sent %d datagrams to %s:%d", len(datagrams), self.host, self.port)

    def close(self) -> None:
        pass

"""Plaintext line protocol over a persistent TCP connection."""

from __future__ import annotations

import logging
import socket
from typing import Sequence

from ..collector.base import MetricSample
from .base import GraphiteSender, SenderOptions, delivery_error, encode_lines

logger = logging.getLogger(__name__)


class StreamSender(GraphiteSender):
    """Owns one outbound TCP connection, opened lazily and reopened after errors."""

    def __init__(self, host: str, port: int, options: SenderOptions | None = None) -> None:
        super().__init__(host, port, options)
        self._sock: socket.socket | None = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def _connect(self) -> socket.socket:
        if self._sock is None:
            self._sock = socket.create_connection(
                (self.host, self.port), timeout=self.options.timeout_seconds
            )
            logger.debug("Connected to graphite at %s:%d", self.host, self.port)
        return self._sock

    def _disconnect(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                logger.debug("Error closing graphite connection", exc_info=True)
            self._sock = None

    def _write(self, payload: bytes) -> None:
        """Write *payload* in one ``sendall``; drops the connection on failure."""
        try:
            self._connect().sendall(payload)
        except OSError as exc:
            self._disconnect()
            raise delivery_error(exc, self.host, self.port) from exc

    def close(self) -> None:
        self._disconnect()


class TcpLineSender(StreamSender):
    """Writes ``<path> <value> <timestamp>`` lines, one batch per write."""

    def send(self, batch: Sequence[MetricSample]) -> None:
        if not batch:
            return
        self._write(encode_lines(batch))

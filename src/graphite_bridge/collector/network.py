"""Network resource collector."""

from __future__ import annotations

import time

import psutil

from .base import BaseCollector, MetricSample


class NetworkCollector(BaseCollector):
    """Collects network I/O counters and rates per interface."""

    def __init__(self, interface: str = "") -> None:
        self._interface = interface
        self._prev_counters: dict[str, tuple[int, int]] | None = None
        self._prev_time: float | None = None

    @property
    def name(self) -> str:
        return "network"

    def collect(self) -> list[MetricSample]:
        now = time.time()
        stamp = int(now)
        samples: list[MetricSample] = []

        counters = psutil.net_io_counters(pernic=True)
        interfaces = [self._interface] if self._interface and self._interface in counters else list(counters.keys())

        current: dict[str, tuple[int, int]] = {}
        for iface in interfaces:
            if iface == "lo":
                continue
            nio = counters.get(iface)
            if nio is None:
                continue
            current[iface] = (nio.bytes_sent, nio.bytes_recv)
            base = f"system.network.{iface.replace('.', '_')}"

            samples.append(MetricSample(f"{base}.bytes_sent_total", nio.bytes_sent, stamp))
            samples.append(MetricSample(f"{base}.bytes_recv_total", nio.bytes_recv, stamp))

            if self._prev_counters and self._prev_time:
                dt = now - self._prev_time
                if dt > 0 and iface in self._prev_counters:
                    prev_sent, prev_recv = self._prev_counters[iface]
                    samples.append(MetricSample(f"{base}.bytes_sent_rate", (nio.bytes_sent - prev_sent) / dt, stamp))
                    samples.append(MetricSample(f"{base}.bytes_recv_rate", (nio.bytes_recv - prev_recv) / dt, stamp))

        self._prev_counters = current
        self._prev_time = now
        return samples

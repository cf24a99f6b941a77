"""CPU resource collector."""

from __future__ import annotations

import time

import psutil

from .base import BaseCollector, MetricSample


class CpuCollector(BaseCollector):
    """Collects CPU usage metrics."""

    @property
    def name(self) -> str:
        return "cpu"

    def collect(self) -> list[MetricSample]:
        now = int(time.time())
        samples: list[MetricSample] = [
            MetricSample("system.cpu.total.usage_percent", psutil.cpu_percent(interval=0), now),
        ]

        per_cpu = psutil.cpu_percent(interval=0, percpu=True)
        for idx, pct in enumerate(per_cpu):
            samples.append(MetricSample(f"system.cpu.core{idx}.usage_percent", pct, now))

        load1, load5, load15 = psutil.getloadavg()
        samples.append(MetricSample("system.cpu.load_avg.1m", load1, now))
        samples.append(MetricSample("system.cpu.load_avg.5m", load5, now))
        samples.append(MetricSample("system.cpu.load_avg.15m", load15, now))

        return samples

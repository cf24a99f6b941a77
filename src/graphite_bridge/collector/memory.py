"""Memory resource collector."""

from __future__ import annotations

import time

import psutil

from .base import BaseCollector, MetricSample


class MemoryCollector(BaseCollector):
    """Collects memory usage metrics."""

    @property
    def name(self) -> str:
        return "memory"

    def collect(self) -> list[MetricSample]:
        now = int(time.time())
        mem = psutil.virtual_memory()
        swap = psutil.swap_memory()

        return [
            MetricSample("system.memory.usage_percent", mem.percent, now),
            MetricSample("system.memory.used_bytes", mem.used, now),
            MetricSample("system.memory.available_bytes", mem.available, now),
            MetricSample("system.memory.total_bytes", mem.total, now),
            MetricSample("system.swap.usage_percent", swap.percent, now),
        ]

"""Collector manager that orchestrates resource collection."""

from __future__ import annotations

import logging
import threading

from ..config import CollectorConfig
from .base import BaseCollector, MetricSample
from .cpu import CpuCollector
from .memory import MemoryCollector
from .network import NetworkCollector

logger = logging.getLogger(__name__)


class CollectorManager:
    """Runs resource collectors on an interval and keeps the latest snapshot.

    Collection runs on its own thread. Exporters read the most recent
    samples through :meth:`snapshot`, which never waits on collection or on
    network I/O, so a stalled export cannot slow down metric recording.
    """

    def __init__(self, config: CollectorConfig, prefix: str = "") -> None:
        self._config = config
        self._prefix = prefix.strip(".")
        self._collectors: list[BaseCollector] = []
        self._latest: list[MetricSample] = []
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

        if config.cpu:
            self._collectors.append(CpuCollector())
        if config.memory:
            self._collectors.append(MemoryCollector())
        if config.network:
            self._collectors.append(NetworkCollector(interface=config.network_interface))

    def collect_once(self) -> list[MetricSample]:
        """Run all collectors once, store and return the aggregated samples."""
        all_samples: list[MetricSample] = []
        for collector in self._collectors:
            try:
                all_samples.extend(collector.collect())
            except Exception:
                logger.exception("Collector %s failed", collector.name)
        if self._prefix:
            all_samples = [
                MetricSample(f"{self._prefix}.{s.path}", s.value, s.timestamp)
                for s in all_samples
            ]
        with self._lock:
            self._latest = all_samples
        return all_samples

    def snapshot(self) -> list[MetricSample]:
        """Return a copy of the most recently collected samples."""
        with self._lock:
            return list(self._latest)

    def _run(self) -> None:
        """Background thread loop."""
        while not self._stop_event.is_set():
            self.collect_once()
            self._stop_event.wait(self._config.interval_seconds)

    def start(self) -> None:
        """Start collecting in the background."""
        if not self._config.enabled:
            return
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="collector", daemon=True)
        self._thread.start()
        logger.info("CollectorManager started (interval=%.1fs)", self._config.interval_seconds)

    def stop(self) -> None:
        """Stop background collection."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("CollectorManager stopped")

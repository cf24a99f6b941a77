"""Periodic report host and the binding that ties a sender to it."""

from __future__ import annotations

import enum
import logging
import threading
import time
from datetime import timedelta
from typing import Callable

from .collector.base import SnapshotSource
from .errors import DeliveryError
from .exporter.base import GraphiteSender

logger = logging.getLogger(__name__)

# longest wait Event.wait accepts, capped at a 32-bit int
MAX_INTERVAL_SECONDS = int(min(2**31 - 1, threading.TIMEOUT_MAX))


class ScheduledTask:
    """Runs *callback* every *interval* on a dedicated daemon thread.

    Ticks never overlap: if a callback overruns one or more intervals the
    missed ticks are skipped and the schedule resumes on the next boundary.
    """

    def __init__(self, interval: timedelta, callback: Callable[[], object], name: str) -> None:
        self.interval = interval
        self.name = name
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self.skipped = 0

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        period = self.interval.total_seconds()
        next_run = time.monotonic() + period
        while not self._stop_event.wait(max(0.0, next_run - time.monotonic())):
            try:
                self._callback()
            except Exception:
                logger.exception("Scheduled report %s failed", self.name)
            next_run += period
            now = time.monotonic()
            if next_run <= now:
                missed = int((now - next_run) // period) + 1
                next_run += missed * period
                self.skipped += missed
                logger.warning("Scheduled report %s overran, skipped %d tick(s)", self.name, missed)

    def stop(self) -> None:
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> bool:
        if self._thread.ident is not None:
            self._thread.join(timeout)
        return not self._thread.is_alive()


class MetricsReports:
    """Hosts recurring report callbacks until :meth:`stop` is called."""

    def __init__(self) -> None:
        self._tasks: list[ScheduledTask] = []
        self._shutdown_hooks: list[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def tasks(self) -> list[ScheduledTask]:
        with self._lock:
            return list(self._tasks)

    def register_periodic(
        self,
        interval: timedelta,
        callback: Callable[[], object],
        name: str | None = None,
    ) -> ScheduledTask:
        """Schedule *callback* to run every *interval*, starting one interval from now."""
        if interval <= timedelta(0):
            raise ValueError(f"interval must be positive, got {interval}")
        if interval.total_seconds() > MAX_INTERVAL_SECONDS:
            raise ValueError(f"interval must be at most {MAX_INTERVAL_SECONDS}s, got {interval}")
        with self._lock:
            task = ScheduledTask(interval, callback, name or f"report-{len(self._tasks) + 1}")
            self._tasks.append(task)
        task.start()
        return task

    def add_shutdown_hook(self, hook: Callable[[], None]) -> None:
        with self._lock:
            self._shutdown_hooks.append(hook)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop every task, then run shutdown hooks; bounded by *timeout* overall."""
        deadline = time.monotonic() + timeout
        with self._lock:
            tasks, self._tasks = self._tasks, []
            hooks, self._shutdown_hooks = self._shutdown_hooks, []
        for task in tasks:
            task.stop()
        for task in tasks:
            if not task.join(max(0.0, deadline - time.monotonic())):
                logger.warning("Scheduled report %s did not stop within %.1fs", task.name, timeout)
        for hook in hooks:
            try:
                hook()
            except Exception:
                logger.exception("Metrics shutdown hook failed")
        logger.info("MetricsReports stopped (%d task(s))", len(tasks))


class BindingState(str, enum.Enum):
    UNBOUND = "unbound"
    BOUND = "bound"


class ReportBinding:
    """Ships the source's snapshot through one sender on every tick.

    A binding is bound exactly once and then runs until its host stops.
    Delivery failures are logged and the batch is dropped; nothing is
    raised into the scheduler.
    """

    def __init__(
        self,
        sender: GraphiteSender,
        interval: timedelta,
        source: SnapshotSource,
    ) -> None:
        self.sender = sender
        self.interval = interval
        self._source = source
        self._task: ScheduledTask | None = None
        self._closed = False
        self.delivered = 0
        self.failed = 0

    @property
    def state(self) -> BindingState:
        return BindingState.UNBOUND if self._task is None else BindingState.BOUND

    def bind(self, reports: MetricsReports) -> ReportBinding:
        if self._task is not None:
            raise RuntimeError(f"{self!r} is already bound")
        self._task = reports.register_periodic(self.interval, self.tick, name=f"graphite-{self.sender.host}")
        reports.add_shutdown_hook(self.close)
        return self

    def tick(self) -> bool:
        """Run one export; returns True when the batch was delivered."""
        try:
            batch = self._source.snapshot()
        except Exception:
            logger.exception("Metrics snapshot failed, skipping graphite report")
            self.failed += 1
            return False

        try:
            self.sender.send(batch)
        except DeliveryError as exc:
            self.failed += 1
            logger.warning("Graphite report to %s failed, dropped %d sample(s): %s", self.sender, len(batch), exc)
            return False
        except Exception:
            self.failed += 1
            logger.exception("Unexpected error sending graphite report to %s", self.sender)
            return False

        self.delivered += 1
        logger.debug("Sent %d sample(s) to %s", len(batch), self.sender)
        return True

    def close(self) -> None:
        """Final best-effort flush; skipped while a tick may still be running."""
        if self._closed:
            return
        if self._task is not None and self._task.alive:
            logger.warning("Graphite report to %s still running, skipping final flush", self.sender)
            return
        self._closed = True
        try:
            self.sender.close()
        except Exception:
            logger.exception("Error closing %s", self.sender)

    def __repr__(self) -> str:
        return f"ReportBinding({self.sender!r}, interval={self.interval}, state={self.state.value})"

"""Base interface for metric sample sources."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Protocol, Sequence


@dataclass(frozen=True)
class MetricSample:
    """A single metric observation as sent to Graphite."""

    path: str
    value: float
    timestamp: int


class SnapshotSource(Protocol):
    """Anything that can hand out the current set of samples."""

    def snapshot(self) -> Sequence[MetricSample]:
        ...


class BaseCollector(abc.ABC):
    """Abstract base class for system resource collectors."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Collector name used in configuration and output."""

    @abc.abstractmethod
    def collect(self) -> list[MetricSample]:
        """Collect current resource metrics. Returns a list of samples."""

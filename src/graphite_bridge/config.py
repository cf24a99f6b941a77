"""Configuration loading for graphite_bridge."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exporter.base import SenderOptions

URI_SETTING = "Metrics.Graphite.Uri"
INTERVAL_SETTING = "Metrics.Graphite.Interval.Seconds"


@dataclass
class GraphiteConfig:
    """Graphite export settings.

    ``uri`` and ``interval_seconds`` are kept raw; they are validated when the
    export is bootstrapped, not when the file is loaded.
    """

    uri: str = ""
    interval_seconds: Any = None
    prefix: str = ""
    pickle_jar_size: int = 100
    timeout_seconds: float = 5.0
    max_datagram_bytes: int = 1400

    def as_settings(self) -> dict[str, str]:
        """Expose the two endpoint settings as a string-keyed lookup."""
        interval = "" if self.interval_seconds is None else str(self.interval_seconds)
        return {URI_SETTING: self.uri or "", INTERVAL_SETTING: interval}

    def sender_options(self) -> SenderOptions:
        return SenderOptions(
            timeout_seconds=self.timeout_seconds,
            pickle_jar_size=self.pickle_jar_size,
            max_datagram_bytes=self.max_datagram_bytes,
        )


@dataclass
class CollectorConfig:
    """System resource collector settings."""

    enabled: bool = True
    interval_seconds: float = 2.0
    cpu: bool = True
    memory: bool = True
    network: bool = True
    network_interface: str = ""


@dataclass
class GraphiteBridgeConfig:
    """Top-level graphite_bridge configuration."""

    graphite: GraphiteConfig = field(default_factory=GraphiteConfig)
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    shutdown_timeout_seconds: float = 5.0


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides using GRAPHITE_BRIDGE_ prefix."""
    env_map = {
        "GRAPHITE_BRIDGE_URI": ("graphite", "uri"),
        "GRAPHITE_BRIDGE_INTERVAL": ("graphite", "interval_seconds"),
        "GRAPHITE_BRIDGE_PREFIX": ("graphite", "prefix"),
        "GRAPHITE_BRIDGE_PICKLE_JAR_SIZE": ("graphite", "pickle_jar_size"),
        "GRAPHITE_BRIDGE_COLLECTOR_INTERVAL": ("collector", "interval_seconds"),
    }
    for env_key, path in env_map.items():
        value = os.environ.get(env_key)
        if value is not None:
            obj = data
            for part in path[:-1]:
                if not isinstance(obj.get(part), dict):
                    obj[part] = {}
                obj = obj[part]
            final_key = path[-1]
            # interval_seconds under graphite stays a raw string
            if path == ("collector", "interval_seconds"):
                obj[final_key] = float(value)
            elif final_key == "pickle_jar_size":
                obj[final_key] = int(value)
            else:
                obj[final_key] = value
    return data


def _dict_to_config(data: dict[str, Any]) -> GraphiteBridgeConfig:
    """Convert a raw dictionary to a GraphiteBridgeConfig dataclass."""
    graphite_data = data.get("graphite") or {}
    collector_data = data.get("collector") or {}

    return GraphiteBridgeConfig(
        graphite=GraphiteConfig(**{
            k: v for k, v in graphite_data.items()
            if k in GraphiteConfig.__dataclass_fields__
        }),
        collector=CollectorConfig(**{
            k: v for k, v in collector_data.items()
            if k in CollectorConfig.__dataclass_fields__
        }),
        shutdown_timeout_seconds=float(data.get("shutdown_timeout_seconds", 5.0)),
    )


def load_config(path: str | Path | None = None) -> GraphiteBridgeConfig:
    """Load configuration from a YAML file with environment overrides.

    Looks for ``graphite_bridge.yaml`` in the current directory if *path* is None.
    """
    data: dict[str, Any] = {}
    if path is None:
        path = Path("graphite_bridge.yaml")
    else:
        path = Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    return _dict_to_config(data)

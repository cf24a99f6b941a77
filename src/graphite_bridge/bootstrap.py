"""Wiring a Graphite sender into the periodic report host.

The ``with_*`` helpers register a binding and raise on bad input.
:func:`with_graphite_from_config` is the fail-soft entry point used at
application startup: it never raises, whatever the settings contain.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional

from .collector.base import SnapshotSource
from .config import INTERVAL_SETTING, URI_SETTING
from .endpoint import EndpointDescriptor, parse_endpoint
from .errors import (
    ConfigurationInvalid,
    MetricsErrorHandler,
    UnexpectedBootstrapFailure,
    default_error_handler,
)
from .exporter.base import GraphiteSender, SenderOptions
from .exporter.pickled import DEFAULT_PICKLE_JAR_SIZE, PickledBatchSender
from .exporter.tcp import TcpLineSender
from .exporter.udp import UdpLineSender
from .reports import MAX_INTERVAL_SECONDS, MetricsReports, ReportBinding
from .resolver import create_sender

logger = logging.getLogger(__name__)

INVALID_CONFIGURATION_MESSAGE = (
    f"Invalid Metrics Configuration: {URI_SETTING} must be a valid absolute URI "
    f"and {INTERVAL_SETTING} must be an integer > 0"
)
BOOTSTRAP_FAILURE_CONTEXT = "Error while configuring graphite from config"
_INTEGER = re.compile(r"[+-]?[0-9]+")


def _as_interval(interval: timedelta | float) -> timedelta:
    return interval if isinstance(interval, timedelta) else timedelta(seconds=interval)


def with_graphite_sender(
    reports: MetricsReports,
    source: SnapshotSource,
    sender: GraphiteSender,
    interval: timedelta | float,
) -> ReportBinding:
    """Report *source* through an already constructed *sender*."""
    return ReportBinding(sender, _as_interval(interval), source).bind(reports)


def with_graphite(
    reports: MetricsReports,
    source: SnapshotSource,
    uri: str,
    interval: timedelta | float,
    options: SenderOptions | None = None,
) -> ReportBinding:
    """Report to the transport named by *uri*, e.g. ``net.udp://graphite:2003``.

    Raises :class:`~graphite_bridge.errors.InvalidEndpoint` for an unknown
    scheme before anything is scheduled.
    """
    endpoint = parse_endpoint(uri, interval)
    return with_graphite_endpoint(reports, source, endpoint, options)


def with_graphite_endpoint(
    reports: MetricsReports,
    source: SnapshotSource,
    endpoint: EndpointDescriptor,
    options: SenderOptions | None = None,
) -> ReportBinding:
    return with_graphite_sender(reports, source, create_sender(endpoint, options), endpoint.interval)


def with_tcp_graphite(
    reports: MetricsReports,
    source: SnapshotSource,
    host: str,
    port: int,
    interval: timedelta | float,
    options: SenderOptions | None = None,
) -> ReportBinding:
    return with_graphite_sender(reports, source, TcpLineSender(host, port, options), interval)


def with_udp_graphite(
    reports: MetricsReports,
    source: SnapshotSource,
    host: str,
    port: int,
    interval: timedelta | float,
    options: SenderOptions | None = None,
) -> ReportBinding:
    return with_graphite_sender(reports, source, UdpLineSender(host, port, options), interval)


def with_pickled_graphite(
    reports: MetricsReports,
    source: SnapshotSource,
    host: str,
    port: int,
    interval: timedelta | float,
    batch_size: int = DEFAULT_PICKLE_JAR_SIZE,
    options: SenderOptions | None = None,
) -> ReportBinding:
    sender = PickledBatchSender(host, port, options, jar_size=batch_size)
    return with_graphite_sender(reports, source, sender, interval)


class BootstrapStatus(str, enum.Enum):
    BOUND = "bound"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass
class BootstrapResult:
    status: BootstrapStatus
    binding: Optional[ReportBinding] = None
    endpoint: Optional[EndpointDescriptor] = None
    error: Optional[BaseException] = None


def _setting(settings: Mapping[str, Optional[str]], key: str) -> str:
    value = settings.get(key)
    return "" if value is None else str(value).strip()


def validate_settings(settings: Mapping[str, Optional[str]]) -> EndpointDescriptor:
    """Turn the two settings into an endpoint or raise :class:`ConfigurationInvalid`.

    Missing and malformed settings raise the same error so the message never
    reveals which half of the pair was wrong. An unrecognized scheme in an
    otherwise valid URI still raises ``InvalidEndpoint``.
    """
    uri = _setting(settings, URI_SETTING)
    raw_interval = _setting(settings, INTERVAL_SETTING)
    if not uri or not raw_interval:
        raise ConfigurationInvalid(INVALID_CONFIGURATION_MESSAGE)
    if not _INTEGER.fullmatch(raw_interval):
        raise ConfigurationInvalid(INVALID_CONFIGURATION_MESSAGE)
    seconds = int(raw_interval)
    if not 0 < seconds <= MAX_INTERVAL_SECONDS:
        raise ConfigurationInvalid(INVALID_CONFIGURATION_MESSAGE)
    try:
        return parse_endpoint(uri, timedelta(seconds=seconds))
    except ConfigurationInvalid:
        raise ConfigurationInvalid(INVALID_CONFIGURATION_MESSAGE) from None


def bootstrap_graphite(
    reports: MetricsReports,
    source: SnapshotSource,
    settings: Mapping[str, Optional[str]],
    options: SenderOptions | None = None,
) -> BootstrapResult:
    """Validate *settings* and bind a report; failures come back as a result."""
    try:
        endpoint = validate_settings(settings)
    except ConfigurationInvalid as exc:
        return BootstrapResult(BootstrapStatus.INVALID, error=exc)
    except Exception as exc:
        return BootstrapResult(BootstrapStatus.FAILED, error=UnexpectedBootstrapFailure(exc))

    try:
        binding = with_graphite_endpoint(reports, source, endpoint, options)
    except Exception as exc:
        return BootstrapResult(BootstrapStatus.FAILED, endpoint=endpoint, error=UnexpectedBootstrapFailure(exc))
    return BootstrapResult(BootstrapStatus.BOUND, binding=binding, endpoint=endpoint)


def with_graphite_from_config(
    reports: MetricsReports,
    source: SnapshotSource,
    settings: Mapping[str, Optional[str]],
    error_handler: MetricsErrorHandler | None = None,
    options: SenderOptions | None = None,
) -> ReportBinding | None:
    """Bind a Graphite report from settings; never raises.

    Returns the binding, or None when the settings are missing, invalid or
    the setup failed. Invalid settings produce one warning; anything else is
    forwarded to *error_handler*.
    """
    handler = error_handler or default_error_handler
    try:
        result = bootstrap_graphite(reports, source, settings, options)
        if result.status is BootstrapStatus.BOUND:
            logger.debug("Metrics: Sending Graphite reports to %s", result.endpoint)
            return result.binding
        if result.status is BootstrapStatus.INVALID:
            logger.warning(INVALID_CONFIGURATION_MESSAGE)
            return None
        error = result.error
        if isinstance(error, UnexpectedBootstrapFailure):
            error = error.cause
        handler.handle(error, BOOTSTRAP_FAILURE_CONTEXT)
    except Exception as exc:
        try:
            handler.handle(exc, BOOTSTRAP_FAILURE_CONTEXT)
        except Exception:
            logger.exception(BOOTSTRAP_FAILURE_CONTEXT)
    return None

"""Exception types and the process-wide metrics error handler."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class GraphiteBridgeError(Exception):
    """Base class for all graphite_bridge errors."""


class InvalidEndpoint(GraphiteBridgeError, ValueError):
    """The endpoint scheme is not one of the recognized transports."""

    def __init__(self, value: str, valid: list[str]) -> None:
        self.value = value
        self.valid = valid
        super().__init__(
            f"Graphite uri scheme {value!r} is not supported; it must be one of "
            f"{', '.join(valid)} (ex: net.udp://graphite.myhost.com:2003)"
        )


class ConfigurationInvalid(GraphiteBridgeError):
    """Graphite settings are missing or malformed."""


class DeliveryErrorKind(str, enum.Enum):
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    SERIALIZATION = "serialization"


class DeliveryError(GraphiteBridgeError):
    """A batch could not be delivered to the collector."""

    def __init__(self, kind: DeliveryErrorKind, message: str) -> None:
        self.kind = kind
        super().__init__(f"{kind.value}: {message}")


class UnexpectedBootstrapFailure(GraphiteBridgeError):
    """Wraps any unexpected exception raised while configuring an export."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")


ErrorCallback = Callable[[BaseException, str], None]


class MetricsErrorHandler:
    """Collects errors the metrics layer must never raise to its caller.

    Errors are always logged. Additional callbacks registered with
    :meth:`add_handler` receive ``(error, context)``; a failing callback is
    logged and otherwise ignored.
    """

    def __init__(self) -> None:
        self._handlers: list[ErrorCallback] = []
        self._lock = threading.Lock()

    def add_handler(self, handler: ErrorCallback) -> None:
        with self._lock:
            self._handlers.append(handler)

    def handle(self, error: BaseException, context: str = "") -> None:
        logger.error(
            "Metrics: unhandled error (%s)",
            context or "no context",
            exc_info=(type(error), error, error.__traceback__),
        )
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(error, context)
            except Exception:
                logger.exception("Metrics error handler %r failed", handler)


default_error_handler = MetricsErrorHandler()

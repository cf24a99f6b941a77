"""Graphite pickle protocol: length-prefixed frames of pickled tuples."""

from __future__ import annotations

import logging
import pickle
import struct
from typing import Sequence

from ..collector.base import MetricSample
from ..errors import DeliveryError, DeliveryErrorKind
from .base import SenderOptions, sanitize_path
from .tcp import StreamSender

logger = logging.getLogger(__name__)

DEFAULT_PICKLE_JAR_SIZE = 100
PICKLE_PROTOCOL = 2
_HEADER = struct.Struct("!L")


def encode_frame(samples: Sequence[MetricSample]) -> bytes:
    """Serialize samples as ``[(path, (timestamp, value)), ...]`` behind a 4-byte length."""
    try:
        body = pickle.dumps(
            [(sanitize_path(s.path), (int(s.timestamp), s.value)) for s in samples],
            protocol=PICKLE_PROTOCOL,
        )
    except (pickle.PicklingError, AttributeError, TypeError, ValueError) as exc:
        raise DeliveryError(DeliveryErrorKind.SERIALIZATION, str(exc)) from exc
    return _HEADER.pack(len(body)) + body


def decode_frames(data: bytes) -> list[list[tuple[str, tuple[int, float]]]]:
    """Split a byte stream back into frames; the inverse of :func:`encode_frame`."""
    frames = []
    offset = 0
    while offset < len(data):
        (length,) = _HEADER.unpack_from(data, offset)
        offset += _HEADER.size
        frames.append(pickle.loads(data[offset:offset + length]))
        offset += length
    return frames


class PickledBatchSender(StreamSender):
    """Buffers samples and ships them in frames of at most ``jar_size`` entries.

    A frame goes out as soon as the buffer holds ``jar_size`` samples; the
    remainder is flushed at the end of every :meth:`send`. The buffer is
    emptied after each flush whether or not the write succeeded.
    """

    def __init__(
        self,
        host: str,
        port: int,
        options: SenderOptions | None = None,
        jar_size: int | None = None,
    ) -> None:
        super().__init__(host, port, options)
        self.jar_size = jar_size if jar_size is not None else self.options.pickle_jar_size
        if self.jar_size < 1:
            raise ValueError(f"jar_size must be >= 1, got {self.jar_size}")
        self._jar: list[MetricSample] = []

    @property
    def pending(self) -> int:
        return len(self._jar)

    def add(self, sample: MetricSample) -> None:
        self._jar.append(sample)
        if len(self._jar) >= self.jar_size:
            self.flush()

    def flush(self) -> None:
        if not self._jar:
            return
        jar, self._jar = self._jar, []
        self._write_frame(encode_frame(jar))

    def _write_frame(self, frame: bytes) -> None:
        self._write(frame)

    def send(self, batch: Sequence[MetricSample]) -> None:
        try:
            for sample in batch:
                self.add(sample)
            self.flush()
        finally:
            self._jar = []

    def close(self) -> None:
        try:
            self.flush()
        except DeliveryError as exc:
            logger.warning("Dropped buffered samples for %s on close: %s", self, exc)
        finally:
            super().close()

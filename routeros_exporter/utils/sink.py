"""Append-only sample destination shared by concurrent device scrapes."""

import threading
from typing import Iterator, List

from ..errors import SinkClosedError
from .metrics import Sample


class MetricSink:
    """
    Thread-safe, append-only collection of samples.

    One writer per in-flight device, one reader after ``close()``. Samples
    from a single writer keep their emission order.
    """

    def __init__(self):
        self._samples: List[Sample] = []
        self._lock = threading.Lock()
        self._closed = False

    def emit(self, sample: Sample) -> None:
        """
        Append one sample.

        Raises:
            SinkClosedError: If the sink was already closed
        """
        with self._lock:
            if self._closed:
                raise SinkClosedError(f"sink closed, dropping {sample.descriptor.name}")
            self._samples.append(sample)

    def close(self) -> None:
        """Stop accepting samples."""
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def samples(self) -> List[Sample]:
        """Snapshot of everything emitted so far."""
        with self._lock:
            return list(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self.samples)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

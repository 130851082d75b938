"""
inkscribe.progress - Ordered progress event channel.

The pipeline writes events from its worker thread; the host reads them from
its own thread. Progress fractions never go backwards.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterator

from inkscribe.models import ProgressEvent, ProgressKind

_CLOSED = object()


class ProgressChannel:
    """FIFO channel of ProgressEvent objects with a monotonic fraction."""

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._fraction = 0.0

    @property
    def fraction(self) -> float:
        return self._fraction

    def emit(
        self,
        kind: ProgressKind,
        fraction: float,
        message: str,
        chunk_text: str | None = None,
    ) -> ProgressEvent:
        """Queue an event, raising its fraction to the last one emitted if lower."""
        with self._lock:
            fraction = min(max(fraction, 0.0), 1.0)
            self._fraction = max(self._fraction, fraction)
            event = ProgressEvent(kind, self._fraction, message, chunk_text)
            self._queue.put(event)
        return event

    def started(self, message: str) -> ProgressEvent:
        """Begin a new request: the fraction restarts at 0.0.

        A close marker left by a previous request is discarded; events
        nobody has read yet stay queued in order.
        """
        with self._lock:
            self._fraction = 0.0
            pending = []
            while True:
                try:
                    item = self._queue.get_nowait()
                except queue.Empty:
                    break
                if item is not _CLOSED:
                    pending.append(item)
            for item in pending:
                self._queue.put(item)
        return self.emit(ProgressKind.STARTED, 0.0, message)

    def progress(self, fraction: float, message: str, chunk_text: str | None = None) -> ProgressEvent:
        return self.emit(ProgressKind.PROGRESS, fraction, message, chunk_text)

    def completed(self, message: str) -> ProgressEvent:
        return self.emit(ProgressKind.COMPLETED, 1.0, message)

    def error(self, message: str) -> ProgressEvent:
        return self.emit(ProgressKind.ERROR, self._fraction, message)

    def close(self) -> None:
        """Signal readers that no more events will arrive."""
        self._queue.put(_CLOSED)

    def drain(self) -> list[ProgressEvent]:
        """Return queued events without blocking."""
        events = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return events
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return events
            events.append(item)

    def get(self, timeout: float | None = None) -> ProgressEvent | None:
        """Block for the next event; None once the channel is closed."""
        item = self._queue.get(timeout=timeout)
        return None if item is _CLOSED else item

    def __iter__(self) -> Iterator[ProgressEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

"""
FanoutLogger - the single ingestion entry point.

Each emit() builds one immutable Record and delivers it twice, along
independent paths:

    emit() → Record ─┬→ Sink.accept()            (synchronous, every sink, in order)
                     └→ BatchProcessor.enqueue()  (non-blocking, exported later)

A failing sink never affects the other sinks or the export path, and the
export path never reports back to the caller: remote delivery is
inherently asynchronous.
"""

import logging
import threading
from typing import Any, Iterable, List, Optional, Union

from logtee.clock import Clock
from logtee.context import current_correlation
from logtee.processor import BatchProcessor
from logtee.record import AttributesInput, Record, Severity, normalize_attributes
from logtee.sink import Sink

logger = logging.getLogger(__name__)


class FanoutLogger:
    """
    Writes each record to an ordered list of sinks and to a batch processor.

    Usage:
        log = FanoutLogger([ConsoleSink()], processor)
        log.info("order placed", {"order_id": 42})
    """

    def __init__(
        self,
        sinks: Optional[Iterable[Sink]] = None,
        processor: Optional[BatchProcessor] = None,
        clock: Optional[Clock] = None,
        min_severity: Union[Severity, int, str] = Severity.DEBUG,
    ):
        """
        Initialize the logger.

        Args:
            sinks: Local sinks, called in this order on every emit
            processor: Export path; None runs the logger local-only
            clock: Timestamp source
            min_severity: Records below this severity are discarded
        """
        self._sinks: List[Sink] = list(sinks or [])
        self._processor = processor
        self._clock = clock or Clock()
        self.min_severity = Severity.parse(min_severity)
        self._lock = threading.Lock()
        self._sink_failures = 0

    @property
    def sinks(self) -> List[Sink]:
        return list(self._sinks)

    @property
    def processor(self) -> Optional[BatchProcessor]:
        return self._processor

    @property
    def sink_failures(self) -> int:
        """Number of exceptions swallowed from sinks."""
        with self._lock:
            return self._sink_failures

    def is_enabled_for(self, severity: Union[Severity, int, str]) -> bool:
        return Severity.parse(severity) >= self.min_severity

    def emit(
        self,
        severity: Union[Severity, int, str],
        body: str,
        attributes: AttributesInput = None,
        context: Optional[Any] = None,
    ) -> Optional[Record]:
        """
        Build a record and fan it out.

        Never raises because of a sink or the export path.

        Args:
            severity: Record severity
            body: The log message
            attributes: Mapping or iterable of (key, value) pairs
            context: Correlation token; defaults to the current one

        Returns:
            The emitted Record, or None if it was below min_severity
        """
        severity = Severity.parse(severity)
        if severity < self.min_severity:
            return None

        if context is None:
            context = current_correlation()

        record = Record(
            timestamp=self._clock.now(),
            severity=severity,
            body=str(body),
            attributes=normalize_attributes(attributes),
            context=context,
        )

        for sink in self._sinks:
            try:
                sink.accept(record)
            except Exception as e:
                self._count_sink_failure(sink, e)

        if self._processor is not None:
            self._processor.enqueue(record)

        return record

    def _count_sink_failure(self, sink: Sink, error: Exception) -> None:
        with self._lock:
            self._sink_failures += 1
            failures = self._sink_failures
        if failures % 100 == 1:
            logger.error(
                f"Sink {type(sink).__name__} failed ({failures} failures so far): {error}"
            )

    def debug(self, body: str, attributes: AttributesInput = None, context: Optional[Any] = None) -> Optional[Record]:
        return self.emit(Severity.DEBUG, body, attributes, context)

    def info(self, body: str, attributes: AttributesInput = None, context: Optional[Any] = None) -> Optional[Record]:
        return self.emit(Severity.INFO, body, attributes, context)

    def warn(self, body: str, attributes: AttributesInput = None, context: Optional[Any] = None) -> Optional[Record]:
        return self.emit(Severity.WARN, body, attributes, context)

    def error(self, body: str, attributes: AttributesInput = None, context: Optional[Any] = None) -> Optional[Record]:
        return self.emit(Severity.ERROR, body, attributes, context)

"""
Shutdown orchestration for the emission pipeline.

Drains the batch processor within a deadline, then releases the
transport and the local sinks. The transport is closed exactly once, on
every exit path, including when the deadline passes with records still
outstanding.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from logtee.processor import BatchProcessor, ProcessorStats
from logtee.sink import Sink
from logtee.transport import Transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShutdownResult:
    """
    Outcome of a pipeline shutdown.

    Attributes:
        lost: Records that were buffered or in flight at shutdown and never
            reached the backend
        dropped: Records dropped by backpressure over the pipeline's lifetime
        drained: False if the deadline passed with work still outstanding
        elapsed: Seconds the shutdown took
        stats: Final processor counters (None for a local-only pipeline)
    """
    lost: int = 0
    dropped: int = 0
    drained: bool = True
    elapsed: float = 0.0
    stats: Optional[ProcessorStats] = None


class ShutdownCoordinator:
    """
    Runs the shutdown sequence once and remembers its result.

    Sequence:
        1. Stop accepting new records
        2. Flush whatever is buffered
        3. Wait for queued and in-flight batches, up to the deadline
        4. Close the transport, then the sinks
        5. Report what was lost
    """

    def __init__(
        self,
        processor: Optional[BatchProcessor],
        transport: Optional[Transport],
        default_deadline: float = 5.0,
        sinks: Optional[Iterable[Sink]] = None,
    ):
        self._processor = processor
        self._transport = transport
        self._sinks = list(sinks or [])
        self._default_deadline = default_deadline
        self._lock = threading.Lock()
        self._result: Optional[ShutdownResult] = None

    @property
    def is_shut_down(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> Optional[ShutdownResult]:
        return self._result

    def shutdown(self, deadline: Optional[float] = None) -> ShutdownResult:
        """
        Drain the pipeline, then release the transport and the sinks.

        Idempotent: later calls return the first call's result without
        touching the transport again.

        Args:
            deadline: Seconds to wait for the drain; defaults to the
                configured shutdown deadline

        Returns:
            The ShutdownResult
        """
        with self._lock:
            if self._result is not None:
                return self._result

            if deadline is None:
                deadline = self._default_deadline
            start = time.monotonic()
            lost = 0

            try:
                if self._processor is not None:
                    lost = self._processor.drain(deadline)
            except Exception:
                self._result = ShutdownResult(drained=False, elapsed=time.monotonic() - start)
                raise
            finally:
                self._close_transport()
                self._close_sinks()

            stats = self._processor.stats if self._processor is not None else None
            self._result = ShutdownResult(
                lost=lost,
                dropped=stats.dropped if stats is not None else 0,
                drained=self._processor is None or not self._processor.abandoned,
                elapsed=time.monotonic() - start,
                stats=stats,
            )

        if self._result.lost or self._result.dropped:
            logger.warning(
                f"Shutdown finished in {self._result.elapsed:.3f}s: "
                f"{self._result.lost} records lost, {self._result.dropped} dropped"
            )
        else:
            logger.info(f"Shutdown finished in {self._result.elapsed:.3f}s, all records delivered")
        return self._result

    def _close_transport(self) -> None:
        if self._transport is None:
            return
        try:
            self._transport.close()
        except Exception as e:
            logger.error(f"Failed to close transport {type(self._transport).__name__}: {e}")

    def _close_sinks(self) -> None:
        for sink in self._sinks:
            try:
                sink.close()
            except Exception as e:
                logger.error(f"Failed to close sink {type(sink).__name__}: {e}")

"""
BatchProcessor - buffered, non-blocking export to a Transport.

The emitting path must never wait on the network. Records are appended
to a bounded in-memory buffer and a single background thread cuts them
into batches and hands those to the transport, retrying transient
failures with exponential backoff.

Architecture:
    enqueue() → RecordBuffer → worker thread → Transport.send(batch)

Flush triggers (whichever comes first):
    - the buffer holds max_batch_size records
    - linger_interval has elapsed since the buffer became non-empty
    - flush() or drain() was called

Only the worker thread talks to the transport, so there is never more
than one send in flight and batches arrive in the order they were cut.
Records that pile up while a send is in flight stay in the buffer and
are cut into the next batch as soon as the worker is free.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from logtee.buffer import BackpressurePolicy, RecordBuffer
from logtee.errors import ConfigError
from logtee.record import Batch, Record
from logtee.transport import ExportResult, Transport

if TYPE_CHECKING:
    from logtee.config import PipelineConfig

logger = logging.getLogger(__name__)


class ProcessorState(Enum):
    """Lifecycle of a BatchProcessor."""
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"
    CLOSED = "closed"


@dataclass(frozen=True)
class ProcessorStats:
    """
    Point-in-time counters of a BatchProcessor.

    Every record offered to enqueue() ends up in exactly one of
    exported, dropped, lost or pending.

    Attributes:
        enqueued: Records accepted into the buffer
        exported: Records the transport acknowledged
        dropped: Records refused or evicted by backpressure, or offered
            after close
        lost: Accepted records that never reached the backend (fatal
            result, retries exhausted, or abandoned at the drain deadline)
        fatal_batches: Batches dropped on a FATAL result
        retries: Send attempts beyond the first
        batches_exported: Batches the transport acknowledged
        pending: Records buffered or in flight right now
    """
    enqueued: int = 0
    exported: int = 0
    dropped: int = 0
    lost: int = 0
    fatal_batches: int = 0
    retries: int = 0
    batches_exported: int = 0
    pending: int = 0


class BatchProcessor:
    """
    Buffers records and exports them in batches from a background thread.

    Features:
        - Non-blocking enqueue() (bounded wait under BLOCK)
        - Size- and time-triggered flushes
        - Exponential backoff on RETRYABLE results
        - Deadline-bounded drain()
    """

    def __init__(
        self,
        transport: Transport,
        max_batch_size: int = 512,
        linger_interval: float = 1.0,
        max_queue_capacity: int = 2048,
        backpressure_policy: Union[BackpressurePolicy, str] = BackpressurePolicy.DROP_OLDEST,
        block_timeout: float = 0.1,
        max_retry_attempts: int = 3,
        retry_initial_backoff: float = 0.1,
        retry_max_backoff: float = 5.0,
    ):
        """
        Initialize the processor and start its worker thread.

        Args:
            transport: Destination for batches; owned by the worker from now on
            max_batch_size: Upper bound on records per batch
            linger_interval: Seconds a non-empty buffer may wait before flushing
            max_queue_capacity: Upper bound on buffered records
            backpressure_policy: What enqueue() does when the buffer is full
            block_timeout: Seconds enqueue() may wait for room under BLOCK
            max_retry_attempts: Retries after the first attempt on RETRYABLE
            retry_initial_backoff: Delay before the first retry, in seconds
            retry_max_backoff: Cap on the doubling retry delay, in seconds

        Raises:
            ConfigError: If a size or interval is out of range
        """
        if max_batch_size < 1:
            raise ConfigError("must be at least 1", option="max_batch_size")
        if max_queue_capacity < 1:
            raise ConfigError("must be at least 1", option="max_queue_capacity")
        if linger_interval <= 0:
            raise ConfigError("must be positive", option="linger_interval")
        if max_retry_attempts < 0:
            raise ConfigError("must not be negative", option="max_retry_attempts")

        self._transport = transport
        self._max_batch_size = max_batch_size
        self._linger_interval = linger_interval
        self._policy = BackpressurePolicy.parse(backpressure_policy)
        self._block_timeout = block_timeout
        self._max_retry_attempts = max_retry_attempts
        self._retry_initial_backoff = retry_initial_backoff
        self._retry_max_backoff = retry_max_backoff

        self._buffer = RecordBuffer(max_queue_capacity, self._policy)
        self._cond = threading.Condition()
        self._closed = False
        self._abandoned = False
        self._first_at: Optional[float] = None
        self._in_flight: Batch = ()
        # Records that have left the buffer, by batch cut or eviction
        self._removed = 0
        self._flush_target = 0

        self._enqueued = 0
        self._exported = 0
        self._dropped = 0
        self._lost = 0
        self._fatal_batches = 0
        self._retries = 0
        self._batches_exported = 0

        self._worker = threading.Thread(
            target=self._run,
            daemon=True,
            name="logtee-batch-export",
        )
        self._worker.start()

    @classmethod
    def from_config(cls, transport: Transport, config: "PipelineConfig") -> "BatchProcessor":
        """Build a processor from a PipelineConfig."""
        return cls(
            transport,
            max_batch_size=config.max_batch_size,
            linger_interval=config.linger_interval,
            max_queue_capacity=config.max_queue_capacity,
            backpressure_policy=config.backpressure_policy,
            block_timeout=config.block_timeout,
            max_retry_attempts=config.max_retry_attempts,
            retry_initial_backoff=config.retry_initial_backoff,
            retry_max_backoff=config.retry_max_backoff,
        )

    # -- producer side ---------------------------------------------------------

    def enqueue(self, record: Record) -> bool:
        """
        Add a record to the buffer. Never raises.

        Returns:
            True if the record was accepted, False if it was dropped
        """
        with self._cond:
            if self._closed:
                self._count_drop("processor is closed")
                return False

            if self._buffer.is_full:
                if self._policy is BackpressurePolicy.BLOCK:
                    has_room = self._cond.wait_for(
                        lambda: self._closed or not self._buffer.is_full,
                        timeout=self._block_timeout,
                    )
                    if self._closed or not has_room:
                        self._count_drop("buffer full")
                        return False
                elif self._policy is BackpressurePolicy.DROP_NEWEST:
                    self._count_drop("buffer full")
                    return False

            evicted = self._buffer.append(record)
            self._enqueued += 1
            if evicted is not None:
                self._removed += 1
                self._count_drop("buffer full")

            size = len(self._buffer)
            if size == 1 and evicted is None:
                self._first_at = time.monotonic()
                self._cond.notify_all()
            elif size >= self._max_batch_size:
                self._cond.notify_all()
            return True

    def _count_drop(self, reason: str) -> None:
        self._dropped += 1
        if self._dropped % 100 == 1:
            logger.warning(f"Export {reason}, dropped {self._dropped} records so far")

    # -- control ---------------------------------------------------------------

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Flush everything enqueued so far and wait for it to be handed off.

        Returns once those records were exported, lost or dropped.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Returns:
            True if the flush completed within the timeout
        """
        with self._cond:
            target = self._enqueued
            self._flush_target = max(self._flush_target, target)
            self._cond.notify_all()
            return self._cond.wait_for(
                lambda: self._abandoned or self._settled() >= target,
                timeout=timeout,
            )

    def drain(self, deadline: float) -> int:
        """
        Close the processor, flush the buffer and wait for the worker.

        Later enqueue() calls are refused. Whatever is still buffered or in
        flight when the deadline passes is abandoned and counted as lost.

        Args:
            deadline: Seconds to wait for the worker to finish

        Returns:
            Number of records lost since drain() was called
        """
        with self._cond:
            lost_before = self._lost
            self._closed = True
            self._cond.notify_all()

        self._worker.join(timeout=max(0.0, deadline))

        with self._cond:
            outstanding = len(self._buffer) + len(self._in_flight)
            if self._worker.is_alive() and outstanding and not self._abandoned:
                self._abandon()
            return self._lost - lost_before

    def _abandon(self) -> None:
        self._abandoned = True
        cleared = self._buffer.clear()
        self._removed += cleared
        stranded = cleared + len(self._in_flight)
        self._in_flight = ()
        self._lost += stranded
        if stranded:
            logger.warning(f"Drain deadline passed, abandoning {stranded} undelivered records")
        self._cond.notify_all()

    def _settled(self) -> int:
        return self._removed - len(self._in_flight)

    # -- worker side -----------------------------------------------------------

    def _run(self) -> None:
        """
        Background thread that cuts batches and exports them.
        """
        while True:
            with self._cond:
                batch = self._next_batch()
                if batch is None:
                    self._cond.notify_all()
                    return
                self._in_flight = batch

            result = self._export(batch)

            with self._cond:
                if not self._abandoned:
                    self._record_result(batch, result)
                self._in_flight = ()
                self._cond.notify_all()

    def _next_batch(self) -> Optional[Batch]:
        """Wait for a flush trigger; caller holds the lock. None means stop."""
        while True:
            if self._abandoned:
                return None

            pending = len(self._buffer)
            if pending == 0:
                if self._closed:
                    return None
                self._cond.wait()
                continue

            if (
                pending >= self._max_batch_size
                or self._closed
                or self._removed < self._flush_target
            ):
                return self._cut()

            waited = time.monotonic() - self._first_at
            if waited >= self._linger_interval:
                return self._cut()
            self._cond.wait(self._linger_interval - waited)

    def _cut(self) -> Batch:
        batch = self._buffer.take(self._max_batch_size)
        self._removed += len(batch)
        if not len(self._buffer):
            self._first_at = None
        # Wake producers waiting for room under BLOCK
        self._cond.notify_all()
        return batch

    def _export(self, batch: Batch) -> ExportResult:
        """Send a batch, retrying RETRYABLE results with exponential backoff."""
        attempt = 0
        while True:
            try:
                result = self._transport.send(batch)
            except Exception as e:
                logger.warning(f"Transport raised while sending {len(batch)} records: {e}")
                result = ExportResult.RETRYABLE

            if result is not ExportResult.RETRYABLE:
                return result

            if attempt >= self._max_retry_attempts:
                logger.warning(
                    f"Giving up on batch of {len(batch)} records after {attempt + 1} attempts"
                )
                return result

            delay = min(self._retry_initial_backoff * (2 ** attempt), self._retry_max_backoff)
            attempt += 1
            logger.debug(f"Retrying batch of {len(batch)} records in {delay:.3f}s (retry {attempt})")

            with self._cond:
                self._retries += 1
                if self._cond.wait_for(lambda: self._abandoned, timeout=delay):
                    return result

    def _record_result(self, batch: Batch, result: ExportResult) -> None:
        if result is ExportResult.OK:
            self._exported += len(batch)
            self._batches_exported += 1
            return

        self._lost += len(batch)
        if result is ExportResult.FATAL:
            self._fatal_batches += 1
            logger.error(f"Collector rejected batch of {len(batch)} records, dropping it")

    # -- introspection ---------------------------------------------------------

    @property
    def state(self) -> ProcessorState:
        with self._cond:
            if self._closed:
                return ProcessorState.CLOSED
            if self._in_flight:
                return ProcessorState.FLUSHING
            return ProcessorState.ACCUMULATING

    @property
    def stats(self) -> ProcessorStats:
        with self._cond:
            return ProcessorStats(
                enqueued=self._enqueued,
                exported=self._exported,
                dropped=self._dropped,
                lost=self._lost,
                fatal_batches=self._fatal_batches,
                retries=self._retries,
                batches_exported=self._batches_exported,
                pending=len(self._buffer) + len(self._in_flight),
            )

    @property
    def pending_count(self) -> int:
        """Number of records buffered or in flight."""
        with self._cond:
            return len(self._buffer) + len(self._in_flight)

    @property
    def dropped_count(self) -> int:
        """Number of records dropped by backpressure or after close."""
        return self._dropped

    @property
    def abandoned(self) -> bool:
        """True once a drain deadline passed with work still outstanding."""
        return self._abandoned

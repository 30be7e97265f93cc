"""
logtee - fan-out structured logging with batched remote export

This package provides:
- A FanoutLogger that writes every record to local sinks synchronously
- A BatchProcessor that exports records to a remote collector in the background
- An HTTP transport with retry classification
- Deadline-bounded, idempotent shutdown draining
"""

from logtee.buffer import BackpressurePolicy
from logtee.clock import Clock
from logtee.config import PipelineConfig, load_config
from logtee.context import (
    bind_logger,
    correlation,
    current_correlation,
    current_logger,
)
from logtee.errors import ConfigError, LogteeError
from logtee.logger import FanoutLogger
from logtee.pipeline import Pipeline, build_pipeline
from logtee.processor import BatchProcessor, ProcessorState, ProcessorStats
from logtee.record import Record, Severity
from logtee.shutdown import ShutdownCoordinator, ShutdownResult
from logtee.sink import ConsoleSink, Sink, format_record
from logtee.transport import ExportResult, HttpTransport, Transport

__version__ = "0.1.0"

__all__ = [
    # Records
    "Record",
    "Severity",
    # Sinks
    "Sink",
    "ConsoleSink",
    "format_record",
    # Transports
    "Transport",
    "HttpTransport",
    "ExportResult",
    # Processing
    "BatchProcessor",
    "BackpressurePolicy",
    "ProcessorState",
    "ProcessorStats",
    # Logger
    "FanoutLogger",
    "Clock",
    # Context
    "bind_logger",
    "current_logger",
    "correlation",
    "current_correlation",
    # Shutdown
    "ShutdownCoordinator",
    "ShutdownResult",
    # Assembly
    "Pipeline",
    "build_pipeline",
    "PipelineConfig",
    "load_config",
    # Errors
    "LogteeError",
    "ConfigError",
]

"""
Pipeline assembly - wires sinks, processor, transport and shutdown.

Usage:
    from logtee import build_pipeline, PipelineConfig

    config = PipelineConfig(remote_endpoint="collector.internal:4318", insecure_transport=True)
    with build_pipeline(config) as pipeline:
        pipeline.logger.info("service started", {"port": 7070})
    # leaving the block drains and closes the pipeline
"""

import atexit
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from logtee.clock import Clock, clock_from_env
from logtee.config import PipelineConfig
from logtee.errors import ConfigError
from logtee.logger import FanoutLogger
from logtee.processor import BatchProcessor
from logtee.shutdown import ShutdownCoordinator, ShutdownResult
from logtee.sink import ConsoleSink, Sink
from logtee.transport import HttpTransport, Transport

logger = logging.getLogger(__name__)


@dataclass
class Pipeline:
    """An assembled emission pipeline."""
    logger: FanoutLogger
    processor: Optional[BatchProcessor]
    transport: Optional[Transport]
    coordinator: ShutdownCoordinator
    config: PipelineConfig

    def shutdown(self, deadline: Optional[float] = None) -> ShutdownResult:
        """Drain and close; see ShutdownCoordinator.shutdown()."""
        return self.coordinator.shutdown(deadline)

    @property
    def is_local_only(self) -> bool:
        return self.processor is None

    def __enter__(self) -> "Pipeline":
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()


def _default_transport(config: PipelineConfig) -> Optional[Transport]:
    try:
        return HttpTransport(
            config.remote_endpoint,
            insecure=config.insecure_transport,
            timeout=config.request_timeout,
            headers=config.headers,
            service_name=config.service_name,
        )
    except ConfigError as e:
        logger.error(f"Remote export disabled, logging to local sinks only: {e}")
        return None


def build_pipeline(
    config: Optional[PipelineConfig] = None,
    sinks: Optional[Iterable[Sink]] = None,
    transport: Optional[Transport] = None,
    clock: Optional[Clock] = None,
    register_atexit: bool = False,
) -> Pipeline:
    """
    Build a pipeline.

    A bad or missing remote endpoint is reported once through logging and
    the pipeline runs local-only; the sinks keep working.

    Args:
        config: Pipeline configuration. If None, uses PipelineConfig.from_env()
        sinks: Local sinks, in delivery order. Defaults to [ConsoleSink()]
        transport: Remote transport. Defaults to an HttpTransport built
            from config
        clock: Timestamp source for records. Defaults to clock_from_env()
        register_atexit: Register pipeline.shutdown() with atexit

    Returns:
        The assembled Pipeline

    Raises:
        ConfigError: If a numeric or policy option is out of range
    """
    config = (config or PipelineConfig.from_env()).validate()

    sinks = [ConsoleSink()] if sinks is None else list(sinks)
    if transport is None:
        transport = _default_transport(config)

    processor = None
    if transport is not None:
        processor = BatchProcessor.from_config(transport, config)

    fanout = FanoutLogger(
        sinks,
        processor,
        clock=clock or clock_from_env(),
        min_severity=config.min_severity,
    )
    coordinator = ShutdownCoordinator(
        processor,
        transport,
        default_deadline=config.shutdown_deadline,
        sinks=sinks,
    )
    pipeline = Pipeline(
        logger=fanout,
        processor=processor,
        transport=transport,
        coordinator=coordinator,
        config=config,
    )

    if register_atexit:
        atexit.register(pipeline.shutdown)

    return pipeline

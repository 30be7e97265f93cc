"""
Execution-context helpers - contextvars-based storage for the active
logger and the current correlation token.

Uses Python's contextvars.ContextVar so that state is both thread-safe
and async-safe: each thread and each asyncio Task sees its own value.
Nothing here is a process-wide singleton; a FanoutLogger is always built
explicitly and then bound where callers need to find it.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Iterator, Optional

if TYPE_CHECKING:
    from logtee.logger import FanoutLogger


_logger_var: ContextVar[Optional["FanoutLogger"]] = ContextVar(
    "logtee_logger", default=None,
)

_correlation_var: ContextVar[Optional[Any]] = ContextVar(
    "logtee_correlation", default=None,
)


# ---------------------------------------------------------------------------
# Logger binding
# ---------------------------------------------------------------------------

def current_logger() -> Optional["FanoutLogger"]:
    """Return the logger bound to the current context, or None."""
    return _logger_var.get()


@contextmanager
def bind_logger(logger: "FanoutLogger") -> Iterator["FanoutLogger"]:
    """
    Make logger the current one for the duration of the block.

    Usage:
        with bind_logger(pipeline.logger):
            handle_request()   # code inside calls current_logger()
    """
    token = _logger_var.set(logger)
    try:
        yield logger
    finally:
        _logger_var.reset(token)


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------

def current_correlation() -> Optional[Any]:
    """Return the correlation token of the current context, or None."""
    return _correlation_var.get()


def set_correlation(token: Optional[Any]) -> None:
    """Set the correlation token for the current thread/task."""
    _correlation_var.set(token)


def clear_correlation() -> None:
    """Clear the correlation token for the current thread/task."""
    _correlation_var.set(None)


@contextmanager
def correlation(token: Any) -> Iterator[Any]:
    """
    Attach token to every record emitted in the block without an explicit
    context.
    """
    reset_token = _correlation_var.set(token)
    try:
        yield token
    finally:
        _correlation_var.reset(reset_token)

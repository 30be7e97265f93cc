"""
Sinks - synchronous, local delivery targets.

A sink receives each record on the emitting thread, one at a time, and
never buffers. It must not perform network I/O. Any exception a sink
raises is swallowed and counted by the FanoutLogger, so a broken sink can
never fail application code.

Components:
    Sink (ABC): Interface for all sinks
    ConsoleSink: One line of structured text per record on stderr
"""

import json
import sys
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional, TextIO

from logtee.record import Record


class Sink(ABC):
    """
    Abstract base class for local record sinks.
    """

    @abstractmethod
    def accept(self, record: Record) -> None:
        """
        Deliver a single record.

        Called synchronously from the emitting thread, so it must be cheap
        and must not block on network I/O.

        Args:
            record: The record to deliver
        """
        pass

    def close(self) -> None:
        """Release any resources held by the sink."""
        pass


def _render_value(value: Any) -> str:
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    if text == "" or any(ch.isspace() or ch in '="' for ch in text):
        return json.dumps(text)
    return text


def format_record(record: Record) -> str:
    """
    Render a record as a single line of structured text.

    Layout: ``<timestamp> <SEVERITY> <body> key=value ... [context=<token>]``
    Values containing whitespace, ``=`` or quotes are JSON-quoted; the body
    has line breaks escaped so one record is always one line.
    """
    body = record.body.replace("\r", "\\r").replace("\n", "\\n")
    parts = [record.timestamp.isoformat(), record.severity.name, body]
    parts.extend(f"{key}={_render_value(value)}" for key, value in record.attributes)
    if record.context is not None:
        parts.append(f"context={_render_value(record.context)}")
    return " ".join(parts)


class ConsoleSink(Sink):
    """
    Writes one line per record to a text stream (stderr by default).

    The stream is looked up on every write when none is given, so
    redirecting sys.stderr after construction is honoured.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream
        self._lock = threading.Lock()

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def accept(self, record: Record) -> None:
        line = format_record(record) + "\n"
        with self._lock:
            stream = self.stream
            stream.write(line)
            stream.flush()

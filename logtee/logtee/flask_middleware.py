"""
Flask middleware that logs one record per request through a FanoutLogger.

Each request gets a correlation id, taken from the X-Request-Id header or
generated, which is attached to every record emitted while the request
is handled and echoed back on the response.
"""

import time
import uuid
from typing import Iterable, Optional

from flask import Flask, Response, g, request

from logtee.context import clear_correlation, set_correlation
from logtee.logger import FanoutLogger
from logtee.record import Severity

DEFAULT_REQUEST_ID_HEADER = "X-Request-Id"


def _severity_for_status(status_code: int) -> Severity:
    if status_code >= 500:
        return Severity.ERROR
    if status_code >= 400:
        return Severity.WARN
    return Severity.INFO


def request_logging(
    app: Flask,
    fanout: FanoutLogger,
    request_id_header: str = DEFAULT_REQUEST_ID_HEADER,
    exclude_paths: Optional[Iterable[str]] = None,
) -> None:
    """
    Register request logging hooks on a Flask app.

    Records carry method, path, status, latency_ms and client_ip
    attributes. 4xx responses are logged at WARN, 5xx at ERROR.

    Args:
        app: Flask application instance
        fanout: Logger to emit request records through
        request_id_header: Header read for, and echoed with, the request id
        exclude_paths: Paths that are served but not logged
    """
    excluded = frozenset(exclude_paths or ())

    @app.before_request
    def before_logged_request():
        """Start the timer and establish the request's correlation id."""
        request_id = request.headers.get(request_id_header) or uuid.uuid4().hex[:16]
        g.logtee_request_id = request_id
        g.logtee_start_time = time.perf_counter()
        set_correlation(request_id)

    @app.after_request
    def after_logged_request(response: Response) -> Response:
        """Emit the access record and echo the request id."""
        request_id = getattr(g, "logtee_request_id", None)
        if request_id is None:
            return response

        response.headers[request_id_header] = request_id

        if request.path in excluded:
            return response

        start_time = getattr(g, "logtee_start_time", time.perf_counter())
        latency_ms = (time.perf_counter() - start_time) * 1000

        fanout.emit(
            _severity_for_status(response.status_code),
            f"{request.method} {request.path} {response.status_code}",
            [
                ("method", request.method),
                ("path", request.path),
                ("status", response.status_code),
                ("latency_ms", round(latency_ms, 2)),
                ("client_ip", request.remote_addr or ""),
            ],
            context=request_id,
        )
        return response

    @app.teardown_request
    def teardown_logged_request(exc: Optional[BaseException] = None) -> None:
        clear_correlation()


def get_request_id() -> Optional[str]:
    """
    Get the correlation id of the current request.

    Returns:
        Request id or None if no request is active
    """
    try:
        return getattr(g, "logtee_request_id", None)
    except RuntimeError:
        # Outside of request context
        return None

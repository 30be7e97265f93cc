"""
Transports - remote, batched delivery targets.

A transport is only ever called from the batch processor's worker
thread, one batch at a time. It reports what happened instead of
raising, so the processor can decide whether to retry.

Components:
    ExportResult: Outcome of one send attempt
    Transport (ABC): Interface for all transports
    HttpTransport: JSON batches POSTed to a collector over HTTP(S)
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional
from urllib.parse import urlsplit

import requests

from logtee.errors import ConfigError
from logtee.record import Batch

logger = logging.getLogger(__name__)

# Status codes worth another attempt besides the 5xx range
RETRYABLE_STATUS_CODES = frozenset({408, 429})


class ExportResult(Enum):
    """Outcome of a single Transport.send() attempt."""
    OK = "ok"
    RETRYABLE = "retryable"
    FATAL = "fatal"


class Transport(ABC):
    """
    Abstract base class for batch transports.
    """

    @abstractmethod
    def send(self, batch: Batch) -> ExportResult:
        """
        Deliver a batch to the remote backend.

        Args:
            batch: Non-empty, ordered tuple of records

        Returns:
            OK on success, RETRYABLE for transient failures (network,
            server errors), FATAL when retrying cannot help
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Release connection state.

        Must be idempotent and safe to call when nothing was ever sent.
        """
        pass

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def resolve_endpoint(endpoint: str, insecure: bool = False) -> str:
    """
    Normalize a collector address into a full URL.

    Scheme-less addresses get ``http://`` when insecure is set and
    ``https://`` otherwise.

    Raises:
        ConfigError: If the address is empty or not an HTTP(S) URL
    """
    endpoint = (endpoint or "").strip()
    if not endpoint:
        raise ConfigError("remote endpoint is not set", option="remote_endpoint")

    if "://" not in endpoint:
        scheme = "http" if insecure else "https"
        endpoint = f"{scheme}://{endpoint}"

    parts = urlsplit(endpoint)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigError(f"not an HTTP(S) address: {endpoint!r}", option="remote_endpoint")
    return endpoint


def classify_status(status_code: int) -> ExportResult:
    """Map an HTTP status code onto an ExportResult."""
    if 200 <= status_code < 300:
        return ExportResult.OK
    if status_code >= 500 or status_code in RETRYABLE_STATUS_CODES:
        return ExportResult.RETRYABLE
    return ExportResult.FATAL


class HttpTransport(Transport):
    """
    POSTs each batch as a JSON document to a collector endpoint.

    Body layout:
        {"service": "<service_name>", "records": [<Record.to_dict()>, ...]}

    A requests.Session is created lazily on the first send and reused for
    connection pooling until close().
    """

    def __init__(
        self,
        endpoint: str,
        insecure: bool = False,
        timeout: float = 5.0,
        headers: Optional[Dict[str, str]] = None,
        service_name: str = "default",
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the HttpTransport.

        Args:
            endpoint: Collector address; a scheme is added if missing
            insecure: Use plaintext HTTP for scheme-less addresses and skip
                certificate verification
            timeout: Per-attempt request timeout in seconds
            headers: Extra HTTP headers sent with every batch
            service_name: Reported alongside every batch
            session: Pre-built session (mostly for tests)

        Raises:
            ConfigError: If the endpoint is not a usable HTTP(S) address
        """
        self.endpoint = resolve_endpoint(endpoint, insecure)
        self.insecure = insecure
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}
        if headers:
            self.headers.update(headers)
        self.service_name = service_name
        self._session = session
        self._lock = threading.Lock()
        self._closed = False

    def _get_session(self) -> Optional[requests.Session]:
        """Lazy initialization of the pooled session; None once closed."""
        with self._lock:
            if self._closed:
                return None
            if self._session is None:
                self._session = requests.Session()
                self._session.headers.update(self.headers)
                self._session.verify = not self.insecure
            return self._session

    def serialize(self, batch: Batch) -> bytes:
        """Encode a batch as the JSON request body."""
        payload = {
            "service": self.service_name,
            "records": [record.to_dict() for record in batch],
        }
        return json.dumps(payload, default=str).encode("utf-8")

    def send(self, batch: Batch) -> ExportResult:
        if not batch:
            return ExportResult.FATAL

        session = self._get_session()
        if session is None:
            logger.error("HttpTransport.send() called after close()")
            return ExportResult.FATAL

        try:
            body = self.serialize(batch)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize batch of {len(batch)} records: {e}")
            return ExportResult.FATAL

        try:
            response = session.post(
                self.endpoint,
                data=body,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.debug(f"Export to {self.endpoint} failed: {e}")
            return ExportResult.RETRYABLE

        result = classify_status(response.status_code)
        if result is not ExportResult.OK:
            logger.debug(
                f"Collector {self.endpoint} answered {response.status_code} ({result.value})"
            )
        return result

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            session, self._session = self._session, None
        if session is not None:
            session.close()

    @property
    def closed(self) -> bool:
        return self._closed

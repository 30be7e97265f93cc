"""
Pipeline configuration.

Values come from explicit arguments, from LOGTEE_* environment
variables, or from a logtee.yaml file. Durations are in seconds.

Environment Variables:
    LOGTEE_CONFIG: Path to a YAML config file
    LOGTEE_REMOTE_ENDPOINT: Collector address
    LOGTEE_INSECURE_TRANSPORT: Plaintext HTTP / skip TLS verification (true/false)
    LOGTEE_MAX_BATCH_SIZE: Records per batch
    LOGTEE_LINGER_INTERVAL: Max seconds a non-empty buffer waits
    LOGTEE_MAX_QUEUE_CAPACITY: Max buffered records
    LOGTEE_BACKPRESSURE_POLICY: block | drop-newest | drop-oldest
    LOGTEE_BLOCK_TIMEOUT: Max seconds enqueue waits under block
    LOGTEE_MAX_RETRY_ATTEMPTS: Retries after the first send attempt
    LOGTEE_RETRY_INITIAL_BACKOFF: Delay before the first retry
    LOGTEE_RETRY_MAX_BACKOFF: Cap on the doubling retry delay
    LOGTEE_SHUTDOWN_DEADLINE: Max seconds shutdown waits for the drain
    LOGTEE_REQUEST_TIMEOUT: Per-attempt HTTP timeout
    LOGTEE_MIN_SEVERITY: debug | info | warn | error
    LOGTEE_SERVICE_NAME: Reported with every batch
    LOGTEE_HEADERS: Extra HTTP headers, as Key=Value,Other=Value
"""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import yaml

from logtee.buffer import BackpressurePolicy
from logtee.errors import ConfigError
from logtee.record import Severity
from logtee.transport import resolve_endpoint

CONFIG_FILENAME = "logtee.yaml"
ENV_PREFIX = "LOGTEE_"


@dataclass
class PipelineConfig:
    """Configuration for a logtee pipeline."""
    remote_endpoint: str = ""
    insecure_transport: bool = False
    max_batch_size: int = 512
    linger_interval: float = 1.0
    max_queue_capacity: int = 2048
    backpressure_policy: BackpressurePolicy = BackpressurePolicy.DROP_OLDEST
    block_timeout: float = 0.1
    max_retry_attempts: int = 3
    retry_initial_backoff: float = 0.1
    retry_max_backoff: float = 5.0
    shutdown_deadline: float = 5.0
    request_timeout: float = 5.0
    min_severity: Severity = Severity.DEBUG
    service_name: str = "default"
    headers: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> "PipelineConfig":
        """
        Check value ranges.

        The endpoint is not checked here; build_pipeline() reports a bad
        endpoint once and carries on local-only.

        Raises:
            ConfigError: On the first invalid value
        """
        if self.max_batch_size < 1:
            raise ConfigError("must be at least 1", option="max_batch_size")
        if self.max_queue_capacity < 1:
            raise ConfigError("must be at least 1", option="max_queue_capacity")
        if self.max_retry_attempts < 0:
            raise ConfigError("must not be negative", option="max_retry_attempts")
        for name in ("linger_interval", "request_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError("must be positive", option=name)
        for name in ("block_timeout", "retry_initial_backoff", "retry_max_backoff", "shutdown_deadline"):
            if getattr(self, name) < 0:
                raise ConfigError("must not be negative", option=name)
        return self

    @property
    def endpoint_url(self) -> str:
        """
        The collector address as a full URL.

        Raises:
            ConfigError: If the endpoint is missing or malformed
        """
        return resolve_endpoint(self.remote_endpoint, self.insecure_transport)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PipelineConfig":
        """
        Build a config from a mapping, ignoring unknown keys.

        camelCase keys (``maxBatchSize``) are accepted as well as
        snake_case ones.

        Raises:
            ConfigError: If a value cannot be converted
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, raw in (data or {}).items():
            name = _snake_case(str(key))
            if name not in known or raw is None:
                continue
            values[name] = _convert(name, raw)
        return cls(**values).validate()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """Create config from LOGTEE_* environment variables."""
        environ = os.environ if environ is None else environ
        data = {
            name: environ[ENV_PREFIX + name.upper()]
            for name in _CONVERTERS
            if ENV_PREFIX + name.upper() in environ
        }
        return cls.from_dict(data)

    def merged(self, **overrides: Any) -> "PipelineConfig":
        """Return a copy with the given options replaced."""
        values = {name: _convert(name, value) for name, value in overrides.items()}
        return replace(self, **values).validate()


def _snake_case(name: str) -> str:
    out = []
    for ch in name.replace("-", "_"):
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out).lstrip("_")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_headers(value: Any) -> Dict[str, str]:
    if isinstance(value, Mapping):
        return {str(k): str(v) for k, v in value.items()}
    # "Key=Value,Other=Value" form, as found in environment variables
    headers = {}
    for item in str(value).split(","):
        if not item.strip():
            continue
        key, sep, val = item.partition("=")
        if not sep:
            raise ValueError(f"expected key=value, got {item!r}")
        headers[key.strip()] = val.strip()
    return headers


_CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    "remote_endpoint": str,
    "insecure_transport": _parse_bool,
    "max_batch_size": int,
    "linger_interval": float,
    "max_queue_capacity": int,
    "backpressure_policy": BackpressurePolicy.parse,
    "block_timeout": float,
    "max_retry_attempts": int,
    "retry_initial_backoff": float,
    "retry_max_backoff": float,
    "shutdown_deadline": float,
    "request_timeout": float,
    "min_severity": Severity.parse,
    "service_name": str,
    "headers": _parse_headers,
}


def _convert(name: str, raw: Any) -> Any:
    converter = _CONVERTERS.get(name)
    if converter is None:
        raise ConfigError("unknown option", option=name)
    try:
        return converter(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(str(e), option=name) from None


def load_config(config_path: Optional[str] = None) -> PipelineConfig:
    """
    Load configuration from logtee.yaml.

    Search order:
    1. Provided config_path
    2. LOGTEE_CONFIG environment variable
    3. ./logtee.yaml in current directory
    4. logtee.yaml in parent directories (walk up the tree)

    A file may nest its options under a top-level ``logtee:`` key.
    Environment variables override values from the file. With no file
    found, the environment alone is used.

    Raises:
        ConfigError: If a value is invalid or the file is not a mapping
        FileNotFoundError: If an explicit path does not exist
    """
    path = config_path or os.environ.get("LOGTEE_CONFIG")
    if path is None:
        path = _find_config_file(Path.cwd())

    data: Dict[str, Any] = {}
    if path is not None:
        data = _load_from_path(str(path))

    env_config = PipelineConfig.from_env()
    env_values = {
        f.name: getattr(env_config, f.name)
        for f in fields(PipelineConfig)
        if ENV_PREFIX + f.name.upper() in os.environ
    }

    return PipelineConfig.from_dict(data).merged(**env_values)


def _find_config_file(start: Path) -> Optional[Path]:
    current = start
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate

        # Stop at filesystem root
        if current == current.parent:
            return None
        current = current.parent


def _load_from_path(path: str) -> Dict[str, Any]:
    """Load the option mapping from a YAML (or JSON) file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"{path} does not contain a mapping")
    if isinstance(data.get("logtee"), dict):
        data = data["logtee"]
    return data

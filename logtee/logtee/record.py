"""
Record - the immutable value carried through the pipeline.

A Record is built once by the FanoutLogger and then shared, read-only,
by every sink and by the batch processor.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union


Attributes = Tuple[Tuple[str, Any], ...]
AttributesInput = Union[Mapping[str, Any], Iterable[Tuple[str, Any]], None]


class Severity(IntEnum):
    """Ordered log severities."""
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40

    @classmethod
    def parse(cls, value: Union["Severity", int, str]) -> "Severity":
        """
        Coerce a name or number into a Severity.

        Accepts "warn"/"warning" and "err"/"error" spellings, any case.

        Raises:
            ValueError: If the value does not name a severity
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        name = str(value).strip().upper()
        if name.isdigit():
            return cls(int(name))
        aliases = {"WARNING": "WARN", "ERR": "ERROR"}
        name = aliases.get(name, name)
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown severity: {value!r}") from None


def normalize_attributes(attributes: AttributesInput) -> Attributes:
    """
    Turn a mapping or an iterable of pairs into an ordered tuple of pairs.

    Mappings keep their iteration order. Pairs keep their given order and
    may repeat keys. Dict, list and set values are copied so later changes
    by the caller do not reach an emitted record.
    """
    if attributes is None:
        return ()
    if isinstance(attributes, Mapping):
        items = attributes.items()
    else:
        items = attributes
    return tuple((str(key), _snapshot(value)) for key, value in items)


def _snapshot(value: Any) -> Any:
    if isinstance(value, (dict, list, set)):
        return copy.deepcopy(value)
    return value


@dataclass(frozen=True)
class Record:
    """
    One structured log event.

    Attributes:
        timestamp: Emission time (timezone-aware, UTC)
        severity: Event severity
        body: The log message
        attributes: Ordered (key, value) pairs; keys may repeat
        context: Opaque correlation token, carried but never interpreted
    """
    timestamp: datetime
    severity: Severity
    body: str
    attributes: Attributes = field(default_factory=tuple)
    context: Optional[Any] = None

    def attribute(self, key: str, default: Any = None) -> Any:
        """Return the first value recorded for key."""
        for name, value in self.attributes:
            if name == key:
                return value
        return default

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.name,
            "body": self.body,
            "attributes": [[key, value] for key, value in self.attributes],
        }
        if self.context is not None:
            data["context"] = self.context
        return data


# A Batch is an ordered, non-empty run of records taken from the buffer.
Batch = Tuple[Record, ...]

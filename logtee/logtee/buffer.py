"""
Bounded record buffer with backpressure policies.
"""

from collections import deque
from enum import Enum
from typing import Deque, Optional, Union

from logtee.record import Batch, Record


class BackpressurePolicy(Enum):
    BLOCK = "block"
    DROP_NEWEST = "drop-newest"
    DROP_OLDEST = "drop-oldest"

    @classmethod
    def parse(cls, value: Union["BackpressurePolicy", str]) -> "BackpressurePolicy":
        """Accept enum members, values ("drop-oldest") or names ("DROP_OLDEST")."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("_", "-")
        return cls(text)


class RecordBuffer:
    """Bounded FIFO of records.

    Not synchronized: the owning BatchProcessor holds its condition lock
    around every call. When full, DROP_OLDEST evicts the head to make room;
    the other policies refuse the append and leave the decision (wait or
    drop) to the caller.
    """

    def __init__(self, capacity: int, policy: BackpressurePolicy = BackpressurePolicy.DROP_OLDEST):
        self._records: Deque[Record] = deque()
        self.capacity = capacity
        self.policy = policy

    def __len__(self) -> int:
        return len(self._records)

    @property
    def is_full(self) -> bool:
        return len(self._records) >= self.capacity

    def append(self, record: Record) -> Optional[Record]:
        """Append a record.

        Returns:
            The evicted record under DROP_OLDEST when full, else None.

        Raises:
            BufferError: If full and the policy does not evict
        """
        evicted = None
        if self.is_full:
            if self.policy is not BackpressurePolicy.DROP_OLDEST:
                raise BufferError("record buffer is full")
            evicted = self._records.popleft()
        self._records.append(record)
        return evicted

    def take(self, max_items: int) -> Batch:
        """Remove and return up to max_items records from the head, in order."""
        if len(self._records) <= max_items:
            # Swap the whole container out for a fresh one
            retired, self._records = self._records, deque()
            return tuple(retired)
        return tuple(self._records.popleft() for _ in range(max_items))

    def clear(self) -> int:
        """Discard everything; returns how many records were discarded."""
        count = len(self._records)
        self._records = deque()
        return count

"""Tests for logtee.buffer module."""

import pytest

from fakes import make_record
from logtee.buffer import BackpressurePolicy, RecordBuffer


class TestBackpressurePolicy:

    @pytest.mark.parametrize("raw,expected", [
        ("block", BackpressurePolicy.BLOCK),
        ("drop-newest", BackpressurePolicy.DROP_NEWEST),
        ("DROP_OLDEST", BackpressurePolicy.DROP_OLDEST),
        (BackpressurePolicy.BLOCK, BackpressurePolicy.BLOCK),
    ])
    def test_parse(self, raw, expected):
        assert BackpressurePolicy.parse(raw) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            BackpressurePolicy.parse("drop-random")


class TestRecordBuffer:
    """Tests for RecordBuffer."""

    def test_drop_oldest_keeps_newest(self):
        capacity, extra = 5, 3
        buffer = RecordBuffer(capacity, BackpressurePolicy.DROP_OLDEST)

        evicted = []
        for i in range(capacity + extra):
            dropped = buffer.append(make_record(f"r{i}"))
            if dropped is not None:
                evicted.append(dropped.body)

        assert evicted == ["r0", "r1", "r2"]
        assert [r.body for r in buffer.take(100)] == ["r3", "r4", "r5", "r6", "r7"]

    def test_non_evicting_policies_refuse_when_full(self):
        buffer = RecordBuffer(1, BackpressurePolicy.DROP_NEWEST)
        buffer.append(make_record("kept"))

        with pytest.raises(BufferError):
            buffer.append(make_record("refused"))
        assert len(buffer) == 1

    def test_take_whole_buffer_swaps_container(self):
        buffer = RecordBuffer(10)
        for i in range(3):
            buffer.append(make_record(f"r{i}"))

        batch = buffer.take(3)
        assert [r.body for r in batch] == ["r0", "r1", "r2"]
        assert len(buffer) == 0

        buffer.append(make_record("after"))
        assert len(batch) == 3

    def test_take_partial_keeps_order(self):
        buffer = RecordBuffer(10)
        for i in range(5):
            buffer.append(make_record(f"r{i}"))

        assert [r.body for r in buffer.take(2)] == ["r0", "r1"]
        assert [r.body for r in buffer.take(2)] == ["r2", "r3"]
        assert [r.body for r in buffer.take(2)] == ["r4"]
        assert buffer.take(2) == ()

    def test_clear(self):
        buffer = RecordBuffer(10)
        buffer.append(make_record())
        buffer.append(make_record())
        assert buffer.clear() == 2
        assert len(buffer) == 0

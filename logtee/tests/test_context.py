"""Tests for logtee.context module."""

import asyncio
import threading

from logtee.context import (
    bind_logger,
    clear_correlation,
    correlation,
    current_correlation,
    current_logger,
    set_correlation,
)
from logtee.logger import FanoutLogger


class TestLoggerBinding:

    def test_nothing_bound_by_default(self):
        assert current_logger() is None

    def test_bind_is_scoped(self):
        log = FanoutLogger()
        with bind_logger(log) as bound:
            assert bound is log
            assert current_logger() is log
        assert current_logger() is None

    def test_nested_bindings_restore(self):
        outer, inner = FanoutLogger(), FanoutLogger()
        with bind_logger(outer):
            with bind_logger(inner):
                assert current_logger() is inner
            assert current_logger() is outer

    def test_binding_not_visible_in_other_thread(self):
        seen = []
        with bind_logger(FanoutLogger()):
            t = threading.Thread(target=lambda: seen.append(current_logger()))
            t.start()
            t.join()
        assert seen == [None]


class TestCorrelation:

    def test_set_and_clear(self):
        set_correlation("abc")
        assert current_correlation() == "abc"
        clear_correlation()
        assert current_correlation() is None

    def test_scoped(self):
        with correlation({"trace_id": "t"}):
            assert current_correlation() == {"trace_id": "t"}
        assert current_correlation() is None

    def test_isolated_between_tasks(self):
        async def handler(token):
            with correlation(token):
                await asyncio.sleep(0.01)
                return current_correlation()

        async def main():
            return await asyncio.gather(handler("a"), handler("b"))

        assert asyncio.run(main()) == ["a", "b"]

from __future__ import annotations

import threading
import time

import pytest

from txn_pipeline.pmap import p_map, p_map_skip


@pytest.mark.parametrize("concurrency", [1, 3])
def test_order_is_preserved(concurrency: int) -> None:
    def slow_square(n: int) -> int:
        time.sleep(0.001 * (5 - n % 5))
        return n * n

    assert p_map(range(10), slow_square, concurrency=concurrency) == [n * n for n in range(10)]


def test_skip_marker_drops_items() -> None:
    out = p_map(range(6), lambda n: p_map_skip if n % 2 else n, concurrency=2)
    assert out == [0, 2, 4]


def test_concurrency_must_be_positive() -> None:
    with pytest.raises(ValueError):
        p_map([1], lambda n: n, concurrency=0)


def test_stop_on_error_propagates() -> None:
    def boom(n: int) -> int:
        if n == 2:
            raise RuntimeError("bad row")
        return n

    with pytest.raises(RuntimeError):
        p_map(range(5), boom, concurrency=2)
    with pytest.raises(ExceptionGroup):
        p_map(range(5), boom, concurrency=2, stop_on_error=False)


def test_cancel_stops_new_work() -> None:
    cancel = threading.Event()
    seen: list[int] = []

    def record(n: int) -> int:
        seen.append(n)
        if n == 1:
            cancel.set()
        return n

    assert p_map(range(10), record, concurrency=1, cancel=cancel) == [0, 1]
    assert seen == [0, 1]

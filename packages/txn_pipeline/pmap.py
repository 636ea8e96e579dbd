"""Ordered, bounded-concurrency map over a thread pool.

``p_map(items, mapper, concurrency=n)`` runs ``mapper`` on at most ``n`` items
at once and returns results in input order. Mappers may return
:data:`p_map_skip` to drop an item. A ``threading.Event`` passed as ``cancel``
stops new submissions; work already running is allowed to finish and the
results gathered so far are returned.

``concurrency=1`` runs inline on the calling thread, so single-worker
statement parsing never pays for a pool.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait


class _Skip:
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "p_map_skip"


# Return this from a mapper to omit the element from the output.
p_map_skip: object = _Skip()


def _run_inline[InT, OutT](
    items: Iterable[InT],
    mapper: Callable[[InT], OutT | object],
    cancel: threading.Event | None,
) -> list[OutT]:
    out: list[OutT] = []
    for item in items:
        if cancel is not None and cancel.is_set():
            break
        val = mapper(item)
        if val is not p_map_skip:
            out.append(val)  # type: ignore[arg-type]
    return out


def p_map[InT, OutT](
    items: Iterable[InT],
    mapper: Callable[[InT], OutT | object],
    *,
    concurrency: int,
    stop_on_error: bool = True,
    cancel: threading.Event | None = None,
) -> list[OutT]:
    """Map ``items`` through ``mapper`` with at most ``concurrency`` in flight.

    With ``stop_on_error`` the first mapper exception propagates and pending
    work is cancelled; otherwise every item runs and failures are raised
    together as an ``ExceptionGroup``.
    """

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")
    if concurrency == 1:
        return _run_inline(items, mapper, cancel)

    source = enumerate(items)
    results: dict[int, object] = {}
    errors: list[Exception] = []
    pending: dict[Future, int] = {}
    submitted = 0

    def _submit_next(pool: ThreadPoolExecutor) -> bool:
        nonlocal submitted
        if cancel is not None and cancel.is_set():
            return False
        try:
            idx, item = next(source)
        except StopIteration:
            return False
        pending[pool.submit(mapper, item)] = idx
        submitted += 1
        return True

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        for _ in range(concurrency):
            if not _submit_next(pool):
                break
        while pending:
            done, _ = wait(pending, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = pending.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception as e:  # noqa: BLE001
                    if stop_on_error:
                        pool.shutdown(wait=False, cancel_futures=True)
                        raise
                    errors.append(e)
                _submit_next(pool)

    if errors:
        raise ExceptionGroup("p_map: one or more mapper calls failed", errors)

    out: list[OutT] = []
    for i in range(submitted):
        val = results.get(i, p_map_skip)
        if val is not p_map_skip:
            out.append(val)  # type: ignore[arg-type]
    return out


__all__ = ["p_map", "p_map_skip"]

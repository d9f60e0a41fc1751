"""A tiny, clean abstraction over ThreadPoolExecutor inspired by `p-map`.

Goals
-----
- Minimal boilerplate: a single `p_map()` function you call with an iterable,
  a mapper, and a `concurrency` cap.
- Hide `ThreadPoolExecutor` mechanics (submission window, shutdown, cancels).
- Preserve input order while running work concurrently.
- Optional per-call `timeout`: a call running longer is abandoned and either
  replaced by `on_timeout(item)` or reported as a `TimeoutError`.

Non‑goals
---------
- Async-iterable streaming equivalent to `pMapIterable`.
- Killing abandoned calls (Python threads cannot be interrupted; the thread
  keeps running until the mapper returns and its result is discarded).
- Process pools.

The API mirrors the parts of `p-map` we need:
- `concurrency`: maximum number of (non-abandoned) mapper calls running at once.
- `stop_on_error` (default True): fail fast on first error; when False, wait for
  all tasks to finish and raise an `ExceptionGroup` of all failures.
- `p_map_skip`: return this sentinel from the mapper to omit a value from the
  output while preserving relative order of the remaining items.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")

# Extra threads so abandoned (timed-out) calls do not starve the window.
_ABANDON_HEADROOM: int = 16
# Poll interval while a call is queued; its deadline starts when it runs.
_START_POLL: float = 0.05


class _Skip:
    __slots__ = ()

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "p_map_skip"


# Sentinel value: mappers can `return p_map_skip` to omit the element.
p_map_skip: object = _Skip()


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT | object],
    *,
    concurrency: int,
    stop_on_error: bool = True,
    timeout: float | None = None,
    on_timeout: Callable[[InT], OutT | object] | None = None,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with a bounded concurrency limit.

    - The returned list preserves the input order, excluding any items where the
      mapper returned ``p_map_skip``.
    - When ``stop_on_error`` is True (default), the first mapper error is
      propagated immediately and any not-yet-started work is cancelled.
    - When ``stop_on_error`` is False, the function waits for all mappers to
      finish and then raises an ``ExceptionGroup`` if any failed.
    - When ``timeout`` is set, a call still running ``timeout`` seconds after it
      started is abandoned. Queued calls never time out. With ``on_timeout`` its
      return value takes the call's place in the output; without it a
      ``TimeoutError`` is treated like any other mapper error.
    """

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")
    if timeout is not None and timeout <= 0:
        raise ValueError("timeout must be positive when set")

    it = enumerate(iterable)

    results: dict[int, OutT | object] = {}
    errors: list[Exception] = []
    submitted = 0
    abandoned = 0

    future_to_idx: dict[Future, int] = {}
    # Monotonic start time per index, written by the worker when the call begins.
    started: dict[int, float] = {}
    pending_items: dict[Future, InT] = {}

    max_workers = concurrency if timeout is None else concurrency + _ABANDON_HEADROOM
    pool = ThreadPoolExecutor(max_workers=max_workers)

    def _call(idx: int, item: InT) -> OutT | object:
        started[idx] = time.monotonic()
        return mapper(item)

    def _submit() -> Future | None:
        nonlocal submitted
        try:
            idx, item = next(it)
        except StopIteration:
            return None
        fut = pool.submit(_call, idx, item)
        future_to_idx[fut] = idx
        if timeout is not None:
            pending_items[fut] = item
        submitted += 1
        return fut

    def _overdue(fut: Future, now: float) -> bool:
        start = started.get(future_to_idx[fut])
        return start is not None and start + timeout <= now

    def _wait_budget(active: set[Future]) -> float:
        now = time.monotonic()
        budgets = []
        for fut in active:
            start = started.get(future_to_idx[fut])
            budgets.append(_START_POLL if start is None else max(0.0, start + timeout - now))
        return min(budgets)

    def _fail(exc: Exception) -> None:
        if stop_on_error:
            raise exc
        errors.append(exc)

    try:
        # Prime the window
        active: set[Future] = set()
        for _ in range(concurrency):
            fut = _submit()
            if fut is None:
                break
            active.add(fut)

        while active:
            wait_for = _wait_budget(active) if timeout is not None else None
            done, active = wait(active, timeout=wait_for, return_when=FIRST_COMPLETED)

            freed = 0
            for fut in done:
                freed += 1
                idx = future_to_idx.pop(fut)
                pending_items.pop(fut, None)
                try:
                    results[idx] = fut.result()
                except Exception as e:  # noqa: BLE001
                    _fail(e)

            if timeout is not None:
                now = time.monotonic()
                expired = [f for f in active if not f.done() and _overdue(f, now)]
                for fut in expired:
                    active.discard(fut)
                    freed += 1
                    abandoned += 1
                    idx = future_to_idx.pop(fut)
                    item = pending_items.pop(fut)
                    if on_timeout is None:
                        _fail(TimeoutError(f"p_map: call {idx} exceeded {timeout}s"))
                    else:
                        results[idx] = on_timeout(item)

            # Top up: one new task per finished or abandoned call.
            for _ in range(freed):
                fut = _submit()
                if fut is None:
                    break
                active.add(fut)
    except BaseException:
        # Fail fast: drop queued work and don't wait for running calls.
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    else:
        # Abandoned calls may still be running; never block on them.
        pool.shutdown(wait=abandoned == 0)

    if errors:
        raise ExceptionGroup("p_map: one or more mapper calls failed", errors)

    # Stitch output in input order, skipping sentinels.
    out: list[OutT] = []
    for i in range(submitted):
        val = results.get(i, p_map_skip)
        if val is p_map_skip:
            continue
        out.append(val)  # type: ignore[arg-type]
    return out


__all__ = ["p_map", "p_map_skip"]

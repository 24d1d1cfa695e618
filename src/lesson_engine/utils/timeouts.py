"""Bounded calls into external code that may block indefinitely.

Each call runs on its own daemon thread and reports through a Future. A call
that outlives its bound is abandoned: the thread keeps running until the
callable returns, but it never occupies a shared worker slot and never holds
up interpreter exit.
"""

import threading
from concurrent.futures import Future
from typing import Callable, TypeVar

T = TypeVar("T")


def _run(fn: Callable[[], T], future: Future) -> None:
    if not future.set_running_or_notify_cancel():
        return
    try:
        result = fn()
    except Exception as exc:
        future.set_exception(exc)
    else:
        future.set_result(result)


def call_with_timeout(fn: Callable[[], T], timeout: float, name: str = "bounded-call") -> T:
    """Run ``fn`` on a daemon thread and wait at most ``timeout`` seconds.

    Raises:
        concurrent.futures.TimeoutError: If ``fn`` did not finish in time
        Exception: Whatever ``fn`` raised
    """
    future: Future = Future()
    thread = threading.Thread(target=_run, args=(fn, future), name=name, daemon=True)
    thread.start()
    return future.result(timeout=timeout)

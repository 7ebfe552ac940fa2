"""
Single-writer execution context.

Every public operation of a manager runs on the session actor's one worker
thread, so behavior logs and model states have exactly one writer and need
no locks. Calls made from the actor thread itself (a manager operation
invoking another) run inline instead of queueing behind themselves.
"""
from __future__ import annotations

import functools
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, TypeVar

T = TypeVar("T")


class SessionActor:
    def __init__(self, name: str = "sipsense-session"):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._thread_id: int | None = None

    def _run(self, fn: Callable[..., T], args: tuple, kwargs: dict) -> T:
        self._thread_id = threading.get_ident()
        return fn(*args, **kwargs)

    def on_actor_thread(self) -> bool:
        return threading.get_ident() == self._thread_id

    def post(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future:
        """Queue `fn` on the actor and return immediately."""
        return self._executor.submit(self._run, fn, args, kwargs)

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run `fn` on the actor and wait for its result (exceptions propagate)."""
        if self.on_actor_thread():
            return fn(*args, **kwargs)
        return self.post(fn, *args, **kwargs).result()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


def serialized(method: Callable[..., T]) -> Callable[..., T]:
    """Run a method of an object exposing `_actor` on that actor."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        return self._actor.call(method, self, *args, **kwargs)
    return wrapper

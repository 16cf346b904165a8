"""StateManager — a single value held outside the component tree.

Readers subscribe a zero-argument listener and re-read get_state() when it
fires. Every write notifies every listener, synchronously, in subscription
order. No dirty-checking: writing the same object still notifies.

The listener list is copy-on-write. subscribe() and unsubscribe build a new
list, and emit_change() iterates a snapshot taken when the cycle starts, so
listeners added or removed mid-cycle only count from the next cycle.

Thread safety: call set_scheduler() once from the main thread. After that,
any write from a background thread is handed to the scheduler. Main-thread
writes remain synchronous.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, Protocol, TypeVar, Union

logger = logging.getLogger("syncstore.store")

T = TypeVar("T")

Listener = Callable[[], None]
Unsubscribe = Callable[[], None]
SetStateCallback = Callable[[T], T]

# ─── Auto-marshal ────────────────────────────────────────────────────────────
_scheduler = None
_scheduler_thread = None


def set_scheduler(scheduler) -> None:
    """Set the global thread scheduler for cross-thread store writes.

    Call once from the main/UI thread:
        syncstore.set_scheduler(app.call_from_thread)

    After this, any write from a background thread is handed to the scheduler
    so the read-modify-notify sequence runs on the main thread. Pass None to
    go back to running every write inline.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread() if scheduler is not None else None


class DataObserver(Protocol[T]):
    """The handle every store exposes to readers and writers."""

    def get_state(self) -> T: ...

    def set_state(self, update: Union[T, SetStateCallback[T]]) -> None: ...

    def subscribe(self, listener: Listener) -> Unsubscribe: ...

    def emit_change(self) -> None: ...


class StateManager(Generic[T]):
    """Holds one value and the listeners interested in it."""

    __slots__ = ("_state", "_listeners")

    def __init__(self, initial_state: T) -> None:
        self._state = initial_state
        self._listeners: list[Listener] = []

    @property
    def state(self) -> T:
        return self._state

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def get_state(self) -> T:
        """Current value. Same object on every call until the next write."""
        return self._state

    def set_state(self, update: Union[T, SetStateCallback[T]]) -> None:
        """Store a new value, or the result of calling update on the current one.

        Any callable is treated as an updater. To store a callable as the
        value itself, use replace_state().
        """
        if callable(update):
            self._dispatch(lambda: self._apply(update))
        else:
            self._dispatch(lambda: self._assign(update))

    def update_state(self, fn: SetStateCallback[T]) -> None:
        """Store fn(current) and notify."""
        self._dispatch(lambda: self._apply(fn))

    def replace_state(self, value: T) -> None:
        """Store value as-is, even if it is callable, and notify."""
        self._dispatch(lambda: self._assign(value))

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register listener. Returns a function that removes it.

        The returned function drops every entry that is this listener, so a
        listener subscribed twice goes away on the first call to either
        unsubscribe. Calling it again does nothing.
        """
        self._listeners = [*self._listeners, listener]
        logger.debug("subscribe %r (%d listeners)", listener, len(self._listeners))

        def _unsubscribe() -> None:
            remaining = [l for l in self._listeners if l is not listener]
            if len(remaining) != len(self._listeners):
                self._listeners = remaining
                logger.debug("unsubscribe %r (%d listeners)", listener, len(remaining))

        return _unsubscribe

    def emit_change(self) -> None:
        """Call every listener registered when the cycle starts, in order.

        A listener that raises stops the cycle; the exception reaches the
        caller and the remaining listeners are not called.
        """
        for listener in tuple(self._listeners):
            listener()

    def _dispatch(self, write: Callable[[], None]) -> None:
        if _scheduler is not None and threading.current_thread() != _scheduler_thread:
            _scheduler(write)
        else:
            write()

    def _apply(self, fn: SetStateCallback[T]) -> None:
        self._state = fn(self._state)
        self.emit_change()

    def _assign(self, value: T) -> None:
        self._state = value
        self.emit_change()

    def __repr__(self) -> str:
        return f"StateManager({self._state!r})"

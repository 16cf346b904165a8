"""Consumers — render functions that read external stores.

A Consumer is the host side of the subscription protocol. Its render
function reads stores through use_external_store() (usually via the
wrappers in syncstore.hooks). The first time a hook slot is used the
consumer subscribes to the store; from then on, a notification re-reads
the snapshot and re-renders only if it is a different object.

Tearing guard: after each render pass every snapshot read during the pass is
read again. If any store moved on while the render was running, the pass is
thrown away and the render repeats, so a committed output never mixes values
from before and after a write. Notifications that arrive mid-render are not
acted on directly; the post-render check picks them up.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

from syncstore._tracking import current_consumer

logger = logging.getLogger("syncstore.consumer")

T = TypeVar("T")
R = TypeVar("R")

MAX_RENDER_PASSES = 50


class RenderLoopError(RuntimeError):
    """A consumer kept seeing changed snapshots and never settled."""


class _Slot:
    """One use_external_store() call site within a consumer."""

    __slots__ = ("subscribe", "get_snapshot", "snapshot", "unsubscribe")

    def __init__(self, subscribe, get_snapshot: Callable[[], object]) -> None:
        self.subscribe = subscribe
        self.get_snapshot = get_snapshot
        self.snapshot: object = None
        self.unsubscribe: Callable[[], None] | None = None


class Consumer(Generic[R]):
    """A mounted render function subscribed to the stores it reads."""

    __slots__ = ("_render_fn", "_slots", "_cursor", "_rendering", "_disposed",
                 "output", "render_count")

    def __init__(self, render_fn: Callable[[], R]) -> None:
        self._render_fn = render_fn
        self._slots: list[_Slot] = []
        self._cursor = 0
        self._rendering = False
        self._disposed = False
        self.output: R | None = None
        self.render_count = 0

    @property
    def disposed(self) -> bool:
        return self._disposed

    def use_external_store(
        self,
        subscribe: Callable[[Callable[[], None]], Callable[[], None]],
        get_snapshot: Callable[[], T],
    ) -> T:
        """Read a store and keep this consumer subscribed to it.

        subscribe is called once per slot, and again only if a later render
        passes a different subscribe (a different store) for the same slot;
        the old subscription is dropped first. The returned snapshot is
        remembered and compared by identity when the store notifies.
        """
        index = self._cursor
        self._cursor += 1
        if index < len(self._slots):
            slot = self._slots[index]
            slot.get_snapshot = get_snapshot
            if subscribe != slot.subscribe:
                if slot.unsubscribe is not None:
                    slot.unsubscribe()
                slot.subscribe = subscribe
                slot.unsubscribe = subscribe(lambda: self._on_store_change(slot))
                logger.debug("%r: slot %d switched stores", self, index)
        else:
            slot = _Slot(subscribe, get_snapshot)
            self._slots.append(slot)
            slot.unsubscribe = subscribe(lambda: self._on_store_change(slot))

        snapshot = get_snapshot()
        if get_snapshot() is not snapshot:
            logger.warning(
                "get_snapshot %r returned a new object on consecutive reads; "
                "it must return the same object until the store changes",
                get_snapshot,
            )
        slot.snapshot = snapshot
        return snapshot

    def render(self) -> R:
        """Run the render function until it commits a consistent output.

        If the very first render fails, the consumer never mounted: it is
        disposed before the error propagates so no subscription outlives it.
        """
        if self._disposed:
            raise RuntimeError(f"{self!r} is disposed")

        try:
            return self._render_until_settled()
        except Exception:
            if self.render_count == 0:
                self.dispose()
            raise

    def _render_until_settled(self) -> R:
        for attempt in range(1, MAX_RENDER_PASSES + 1):
            self._cursor = 0
            self._rendering = True
            token = current_consumer.set(self)
            try:
                output = self._render_fn()
            finally:
                current_consumer.reset(token)
                self._rendering = False

            if not self._torn():
                self.output = output
                self.render_count += 1
                return output
            logger.debug("%r: store changed during render pass %d, rendering again", self, attempt)

        raise RenderLoopError(
            f"{self!r} did not settle after {MAX_RENDER_PASSES} render passes"
        )

    def dispose(self) -> None:
        """Unsubscribe from every store. Later notifications are ignored."""
        if self._disposed:
            return
        self._disposed = True
        for slot in self._slots:
            if slot.unsubscribe is not None:
                slot.unsubscribe()
        self._slots.clear()

    def _torn(self) -> bool:
        return any(
            slot.get_snapshot() is not slot.snapshot
            for slot in self._slots[: self._cursor]
        )

    def _on_store_change(self, slot: _Slot) -> None:
        if self._disposed or self._rendering:
            return
        if slot.get_snapshot() is slot.snapshot:
            return
        self.render()

    def __repr__(self) -> str:
        name = getattr(self._render_fn, "__name__", repr(self._render_fn))
        state = "disposed" if self._disposed else "mounted"
        return f"Consumer({name}, {state})"


def mount(render_fn: Callable[[], R]) -> Consumer[R]:
    """Render render_fn now and re-render it whenever a store it reads changes.

    Returns the Consumer (call .dispose() to stop).

    Usage:
        counter = create_store(0)
        seen = []

        view = mount(lambda: seen.append(use_get_store(counter)))
        # seen == [0] — rendered immediately

        counter.set_state(lambda n: n + 1)
        # seen == [0, 1] — re-rendered with the new value

        view.dispose()
        counter.set_state(5)
        # seen == [0, 1] — unsubscribed
    """
    consumer = Consumer(render_fn)
    consumer.render()
    return consumer

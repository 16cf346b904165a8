"""Store construction and the accessors consumers read stores through.

The use_* functions must run inside a render (see syncstore.consumer.mount);
they register the store with the rendering consumer so it re-renders on
change. get_store_snapshot() and use_set_store() register nothing and work
anywhere, e.g. from event handlers.
"""

from __future__ import annotations

from typing import Callable, TypeVar, Union

from syncstore._tracking import get_current_consumer
from syncstore.store import DataObserver, SetStateCallback, StateManager

T = TypeVar("T")

Setter = Callable[[Union[T, SetStateCallback[T]]], None]


def create_store(initial_state: T) -> StateManager[T]:
    """New, independent store holding initial_state."""
    return StateManager(initial_state)


def use_external_store(
    subscribe: Callable[[Callable[[], None]], Callable[[], None]],
    get_snapshot: Callable[[], T],
) -> T:
    """Hand a subscribe/get_snapshot pair to the consumer being rendered."""
    return get_current_consumer().use_external_store(subscribe, get_snapshot)


def use_store(store: DataObserver[T]) -> tuple[T, Setter[T]]:
    """Current value plus the store's own setter, with a subscription.

    Usage:
        todos = create_store([])

        def view():
            items, set_items = use_store(todos)
            ...
    """
    state = use_external_store(store.subscribe, store.get_state)
    return state, store.set_state


def use_get_store(store: DataObserver[T]) -> T:
    """Current value only, with a subscription."""
    return use_external_store(store.subscribe, store.get_state)


def use_set_store(store: DataObserver[T]) -> Setter[T]:
    """The store's setter. Registers nothing, so writers never re-render."""
    return store.set_state


def get_store_snapshot(store: DataObserver[T]) -> T:
    """The store's value right now, without subscribing."""
    return store.get_state()

"""Render tracking — which consumer is rendering right now.

Uses contextvars so the adapter functions in syncstore.hooks can find the
consumer whose render called them, the same way a component framework
resolves hooks to the component being rendered.
"""

from __future__ import annotations

import contextvars
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from syncstore.consumer import Consumer

# The currently-rendering consumer. None outside of a render pass.
current_consumer: contextvars.ContextVar[Consumer | None] = contextvars.ContextVar(
    "current_consumer", default=None
)


def get_current_consumer() -> Consumer:
    """The consumer being rendered. Raises RuntimeError outside a render."""
    consumer = current_consumer.get()
    if consumer is None:
        raise RuntimeError(
            "Store hooks can only be called while a consumer is rendering. "
            "Use get_store_snapshot() to read a store outside a render."
        )
    return consumer

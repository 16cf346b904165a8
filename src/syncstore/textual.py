"""Textual integration for syncstore. Opt-in — requires textual.

Widgets are not render functions, so instead of mounting a Consumer a
widget binds an effect to a store. The guard, NoMatches handling and thread
marshaling live here, not at callsites, and core syncstore stays free of
Textual imports.
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

logger = logging.getLogger("syncstore.textual")

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()

_UNSET = object()


@contextmanager
def pause(app):
    """Suspend bound effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def bind(app, store, effect_fn, *, selector=None, fire_immediately=False):
    """Call effect_fn with the store's value whenever the store notifies.

    With a selector, effect_fn receives selector(state) and only fires when
    that result changes. Skips while the app is paused or not running,
    swallows NoMatches from widget queries, and marshals calls from other
    threads via call_from_thread.

    Returns the store's unsubscribe function.
    """
    _main = threading.get_ident()
    last = [_UNSET]

    def _select():
        state = store.get_state()
        return selector(state) if selector is not None else state

    def _listener():
        if not is_safe(app):
            logger.debug("skipping %r: app not safe to query", effect_fn)
            return
        value = _select()
        if selector is not None:
            if last[0] is not _UNSET and value == last[0]:
                return
            last[0] = value
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, value)
        else:
            _safe(value)

    def _safe(value):
        try:
            effect_fn(value)
        except NoMatches:
            pass

    if selector is not None:
        last[0] = _select()
    if fire_immediately:
        _safe(last[0] if selector is not None else _select())
    return store.subscribe(_listener)

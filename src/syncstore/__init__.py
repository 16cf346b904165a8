"""syncstore: external state stores with a tearing-safe subscription protocol."""

from importlib.metadata import version as _version

__version__ = _version("syncstore")

from syncstore.store import DataObserver, StateManager, SetStateCallback, set_scheduler
from syncstore.consumer import Consumer, RenderLoopError, mount
from syncstore.hooks import (
    create_store,
    get_store_snapshot,
    use_external_store,
    use_get_store,
    use_set_store,
    use_store,
)
# textual NOT auto-imported — opt-in only

__all__ = [
    "DataObserver",
    "StateManager",
    "SetStateCallback",
    "set_scheduler",
    "Consumer",
    "RenderLoopError",
    "mount",
    "create_store",
    "get_store_snapshot",
    "use_external_store",
    "use_get_store",
    "use_set_store",
    "use_store",
]

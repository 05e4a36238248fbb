"""Clean/dirty latch guarding the invalidation cascade."""
from __future__ import annotations

import enum
import logging

from litmusview.events import CASCADE, EventBus
from litmusview.state import ViewState

log = logging.getLogger("litmusview.invalidation")


class Latch(enum.Enum):
    CLEAN = "clean"
    DIRTY = "dirty"  # also means: cascade already performed


class InvalidationTracker:
    """Fires the invalidation cascade at most once per clean -> dirty transition.

    A new tracker starts ``DIRTY``: there are no results to invalidate yet, so
    the first edit after the first successful run is the one that cascades.
    """

    def __init__(self, bus: EventBus, state: ViewState):
        self._bus = bus
        self._state = state
        self.latch = Latch.DIRTY

    @property
    def is_dirty(self) -> bool:
        return self.latch is Latch.DIRTY

    def request_dirty(self, *_args) -> bool:
        """Invalidate current results; return True if the cascade fired."""
        if self.latch is Latch.DIRTY:
            return False
        log.debug("invalidating %r", self._state.title)
        self._state.interactive_session = None
        self._state.executions = []
        for event in CASCADE:
            self._bus.emit(event)
        self.latch = Latch.DIRTY
        return True

    def mark_clean(self) -> None:
        self.latch = Latch.CLEAN

"""Per-view publish/subscribe channel.

Every callback receives the emitted arguments followed by the view's current
``ViewState``. ``HIGHLIGHT`` and ``MARK`` are suppressed while the view is
dirty so observers never colour stale results.
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Callable

from litmusview.state import ViewState

log = logging.getLogger("litmusview.events")


class Event(str, enum.Enum):
    DIRTY = "dirty"
    EDIT = "edit"
    CLEAR = "clear"
    UPDATE = "update"
    UPDATE_ARENA = "updateArena"
    UPDATE_MEMORY = "updateMemory"
    UPDATE_EXECUTION = "updateExecution"
    UPDATE_EXECUTION_GRAPH = "updateExecutionGraph"
    UPDATE_UI = "updateUI"
    HIGHLIGHT = "highlight"
    MARK = "mark"
    LAYOUT_CHANGED = "layoutChanged"


# Fired by the invalidation tracker on the first edit after clean results
CASCADE = (
    Event.CLEAR,
    Event.UPDATE_ARENA,
    Event.UPDATE_MEMORY,
    Event.UPDATE_EXECUTION_GRAPH,
    Event.UPDATE_UI,
)

# Fired unconditionally by View.restart_interactive
RESTART_SEQUENCE = (
    Event.CLEAR,
    Event.UPDATE_EXECUTION,
    Event.UPDATE_EXECUTION_GRAPH,
    Event.UPDATE_MEMORY,
    Event.UPDATE_UI,
)

Listener = Callable[..., Any]


class EventBus:
    """Event channel owned by exactly one view."""

    def __init__(self, state: Callable[[], ViewState], is_dirty: Callable[[], bool]):
        self._state = state
        self._is_dirty = is_dirty
        self._channels: dict[Event, list[tuple[object, Listener]]] = {}
        self.highlighted = False

    @property
    def state(self) -> ViewState:
        return self._state()

    def is_dirty(self) -> bool:
        """True while the owning view's results are out of date."""
        return self._is_dirty()

    def subscribe(self, event: Event, owner: object, callback: Listener) -> None:
        self._channels.setdefault(Event(event), []).append((owner, callback))

    def unsubscribe(self, owner_or_event: object) -> None:
        """Reset a whole channel (given an ``Event``) or drop every entry of an owner."""
        if isinstance(owner_or_event, Event):
            self._channels[owner_or_event] = []
            return
        for event, listeners in self._channels.items():
            self._channels[event] = [
                (owner, cb) for owner, cb in listeners if owner is not owner_or_event
            ]

    def listeners(self, event: Event) -> list[tuple[object, Listener]]:
        return list(self._channels.get(event, ()))

    def emit(self, event: Event, *args: Any) -> bool:
        """Dispatch ``event``; return False if a guard suppressed it."""
        event = Event(event)
        state = self._state()
        if event is Event.HIGHLIGHT:
            if self.highlighted or not state.options["colour_all"] or self._is_dirty():
                return False
            self.highlighted = True
        elif event is Event.CLEAR:
            self.highlighted = False
        elif event is Event.MARK:
            if not state.options["colour_cursor"] or self._is_dirty():
                return False

        log.debug("emit %s", event.value)
        # Snapshot: listeners may (un)subscribe while we dispatch
        for _, callback in list(self._channels.get(event, ())):
            callback(*args, state)
        return True

"""A view: one litmus test + cat model editing/checking session."""
from __future__ import annotations

import logging
from typing import Any

from litmusview.events import RESTART_SEQUENCE, Event, EventBus
from litmusview.invalidation import InvalidationTracker
from litmusview.layout import STATE_CHANGED, DockLayout, default_config
from litmusview.observers import ExecutionGraphTab, Observer, ObserverRegistry
from litmusview.state import (
    Architecture, InteractiveMode, InteractiveSession, ViewState,
)

log = logging.getLogger("litmusview.view")

# Options whose change only needs the execution graph re-rendered
_GRAPH_OPTIONS = {"hide_tau", "show_mem_order", "colour_all", "colour_cursor"}


class View:
    """Owns a ``ViewState``, its event bus, invalidation latch and observers.

    Args:
        title: Litmus test file name.
        source_text: Litmus test contents.
        model_title: Cat model file name.
        model_text: Cat model contents.
        architecture: Target architecture for queries.
        initial_state: State to adopt (already copied by the caller when
            forking); a fresh state is created when omitted.
        config: Layout configuration, e.g. from a share token.
    """

    def __init__(self, title: str, source_text: str, model_title: str, model_text: str,
                 architecture: Architecture = Architecture.AARCH64,
                 initial_state: ViewState | None = None,
                 config: dict | None = None):
        self.state = initial_state if initial_state is not None else ViewState()
        self.state.title = title
        self.state.source_text = source_text
        self.state.model_title = model_title
        self.state.model_text = model_text
        self.state.architecture = Architecture(architecture)

        self.bus = EventBus(lambda: self.state, lambda: self.tracker.is_dirty)
        self.tracker = InvalidationTracker(self.bus, self.state)
        self.bus.subscribe(Event.EDIT, self, self._on_edit)
        self.bus.subscribe(Event.DIRTY, self, self.tracker.request_dirty)

        self.visible = True
        self.query_pending = False
        self.marked_event: str | None = None

        self.observers = ObserverRegistry(self.bus, title, model_title)
        self.layout = DockLayout(config or default_config(title, model_title))
        self.observers.attach(self.layout)
        self.layout.on(STATE_CHANGED, lambda: self.bus.emit(Event.LAYOUT_CHANGED))
        self.layout.init()

    def __repr__(self) -> str:
        return f"<View {self.title!r}>"

    # --- identity / documents ---

    @property
    def title(self) -> str:
        return self.state.title

    @property
    def source_editor(self) -> Observer:
        return self.observers.source_editor

    @property
    def model_editor(self) -> Observer:
        return self.observers.model_editor

    def _on_edit(self, field: str, text: str, state: ViewState) -> None:
        setattr(state, field, text)

    def edit_source(self, text: str) -> None:
        self.observers.source_editor.set_value(text)

    def edit_model(self, text: str) -> None:
        self.observers.model_editor.set_value(text)

    def set_model_title(self, title: str) -> None:
        self.state.model_title = title
        self.observers.model_editor.title = title

    def set_architecture(self, architecture: Architecture) -> None:
        self.state.architecture = Architecture(architecture)

    def toggle_option(self, key: str) -> bool:
        """Flip a display option; unknown keys raise ``UnknownOptionError``."""
        value = self.state.options.toggle(key)
        graph = self.observers.find_by_kind("graph")
        if key == "colour_all":
            if value:
                self.bus.emit(Event.HIGHLIGHT)
            else:
                self.bus.highlighted = False
                if graph is not None:
                    graph.clear_highlight()
        elif key == "colour_cursor":
            if value:
                self.bus.emit(Event.MARK, self.marked_event)
            elif graph is not None:
                graph.clear_mark()
        if key in _GRAPH_OPTIONS and graph is not None:
            graph.update_mem_graph()
        return value

    def mark(self, event_name: str | None) -> bool:
        """Select ``event_name`` as the cursor event; False if ``colour_cursor`` suppressed it."""
        self.marked_event = event_name
        return self.bus.emit(Event.MARK, event_name)

    # --- invalidation ---

    def is_dirty(self) -> bool:
        return self.tracker.is_dirty

    def request_dirty(self) -> bool:
        return self.tracker.request_dirty()

    def mark_clean(self) -> None:
        self.tracker.mark_clean()

    # --- events ---

    def on(self, event: Event, owner: object, callback) -> None:
        self.bus.subscribe(event, owner, callback)

    def off(self, owner_or_event: object) -> None:
        self.bus.unsubscribe(owner_or_event)

    def emit(self, event: Event, *args: Any) -> bool:
        return self.bus.emit(event, *args)

    # --- interactive exploration ---

    def reset_interactive(self) -> None:
        self.state.interactive_session = None
        self.state.console_log = ""

    def restart_interactive(self) -> None:
        """Forced restart requested by the user; bypasses the invalidation latch."""
        self.reset_interactive()
        for event in RESTART_SEQUENCE:
            self.bus.emit(event)

    def begin_interactive(self) -> InteractiveSession:
        """Start stepping through the executions of the last run."""
        session = InteractiveSession([g.copy() for g in self.state.executions])
        self.state.interactive_session = session
        self.bus.emit(Event.UPDATE_EXECUTION)
        self.bus.emit(Event.UPDATE_MEMORY)
        return session

    def step_interactive(self, delta: int = 1) -> int:
        session = self.state.interactive_session
        if session is None:
            raise RuntimeError("no interactive session; call begin_interactive first")
        cursor = session.step(delta)
        self.bus.emit(Event.UPDATE_EXECUTION)
        self.bus.emit(Event.UPDATE_MEMORY)
        # the cursor event follows into the newly selected execution
        self.bus.emit(Event.MARK, self.marked_event)
        return cursor

    def set_mode(self, mode: InteractiveMode) -> None:
        self.state.mode = InteractiveMode(mode)

    # --- observers ---

    def get_or_create_observer(self, kind: str, title: str | None = None,
                               closable: bool = True, *args: Any) -> Observer:
        return self.observers.get_or_create(kind, title, closable, *args)

    def find_observer(self, kind: str) -> Observer | None:
        return self.observers.find_by_kind(kind)

    @property
    def console(self) -> Observer:
        return self.get_or_create_observer("console", "Console")

    @property
    def graph(self) -> ExecutionGraphTab:
        return self.get_or_create_observer("graph", "Execution graph")

    # --- visibility / lifecycle ---

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False

    def refresh(self) -> None:
        self.observers.refresh_all()

    def destroy(self) -> None:
        """Tear down the layout; every dynamic observer is unsubscribed."""
        self.layout.destroy()
        self.visible = False

    def encode_state(self) -> str:
        from litmusview.serializer import StateSerializer
        return StateSerializer().encode(self)

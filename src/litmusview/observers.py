"""Observers ("tabs") attached to a view, and the registry that owns them.

An observer renders one facet of the view state into ``content`` (text or
Cytoscape elements) whenever ``refresh`` is called. Optional capabilities are
declared explicitly in ``capabilities``; the registry wires ``set_active`` and
``close`` to the layout only for observers that declare them.
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Callable

from litmusview.errors import UnknownObserverKindError
from litmusview.events import Event, EventBus
from litmusview.graph_builder import ResultModel
from litmusview.layout import ITEM_DESTROYED, DockLayout, LayoutItem, tab_component
from litmusview.state import ViewState

log = logging.getLogger("litmusview.observers")

STALE_PLACEHOLDER = "(results are out of date, run the test again)"


class Capability(enum.Enum):
    HIGHLIGHT = "highlight"
    ACTIVATE = "setActive"
    CLOSE = "close"


class Observer:
    """Base observer: subscribes in ``__init__``, renders in ``render``."""

    kind = ""
    capabilities: frozenset[Capability] = frozenset()

    def __init__(self, bus: EventBus, title: str, *args: Any):
        self.bus = bus
        self.title = title
        self.args = list(args)
        self.state: ViewState | None = None
        self.content: Any = ""
        self.stale = True
        self.set_active: Callable[[], None] | None = None
        self.close: Callable[[], None] | None = None
        self.subscribe()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.title!r}>"

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def subscribe(self) -> None:
        """Register bus listeners; called once from ``__init__``."""

    def initial(self, state: ViewState) -> None:
        self.state = state

    def refresh(self) -> None:
        if self.state is not None:
            self.content = self.render(self.state)

    def render(self, state: ViewState) -> Any:
        return ""

    # listener adapter: (…args, state) -> refresh
    def _on_update(self, *args: Any) -> None:
        self.state = args[-1]
        # stale until results are applied to a clean view
        self.stale = self.bus.is_dirty()
        self.refresh()

    def _on_clear(self, *args: Any) -> None:
        self.state = args[-1]
        self.stale = True
        self.refresh()


# ---------------------------------------------------------------------------
# Editors (permanent)
# ---------------------------------------------------------------------------

class _Editor(Observer):
    field = ""

    @property
    def value(self) -> str:
        return getattr(self.bus.state, self.field)

    def set_value(self, text: str) -> None:
        """Replace the document text; invalidates the view's results."""
        if text == self.value:
            return
        self.bus.emit(Event.EDIT, self.field, text)
        self.bus.emit(Event.DIRTY)

    def render(self, state: ViewState) -> str:
        return getattr(state, self.field)


class SourceEditor(_Editor):
    kind = "litmus"
    field = "source_text"


class ModelEditor(_Editor):
    kind = "cat"
    field = "model_text"


# ---------------------------------------------------------------------------
# Dynamic tabs
# ---------------------------------------------------------------------------

class ConsoleTab(Observer):
    kind = "console"
    capabilities = frozenset({Capability.ACTIVATE, Capability.CLOSE})

    def subscribe(self) -> None:
        self.bus.subscribe(Event.UPDATE, self, self._on_update)
        self.bus.subscribe(Event.CLEAR, self, self._on_clear)
        self.bus.subscribe(Event.UPDATE_EXECUTION, self, self._on_update)

    def render(self, state: ViewState) -> str:
        return state.console_log


class MemoryTab(Observer):
    """Accesses of the execution being explored, one line per event."""

    kind = "memory"
    capabilities = frozenset({Capability.ACTIVATE, Capability.CLOSE})

    def subscribe(self) -> None:
        self.bus.subscribe(Event.UPDATE_MEMORY, self, self._on_memory)
        self.bus.subscribe(Event.UPDATE, self, self._on_update)
        self.bus.subscribe(Event.CLEAR, self, self._on_clear)

    def _on_memory(self, state: ViewState) -> None:
        self.state = state
        self.refresh()

    def render(self, state: ViewState) -> str:
        if state.interactive_session is not None:
            graph = state.interactive_session.current
        else:
            graph = state.executions[0] if state.executions else None
        if graph is None:
            return STALE_PLACEHOLDER if self.stale else ""
        lines = []
        for ev in graph.events:
            if ev.internal and state.options["hide_tau"]:
                continue
            thread = "-" if ev.thread is None else str(ev.thread)
            lines.append(f"[{thread}] {ev.name} {ev.label}".rstrip())
        return "\n".join(lines)


class ExecutionGraphTab(Observer):
    kind = "graph"
    capabilities = frozenset({Capability.HIGHLIGHT, Capability.ACTIVATE, Capability.CLOSE})

    def __init__(self, bus: EventBus, title: str, *args: Any):
        self.model: ResultModel | None = None
        super().__init__(bus, title, *args)

    def subscribe(self) -> None:
        self.bus.subscribe(Event.UPDATE, self, self._on_update)
        self.bus.subscribe(Event.CLEAR, self, self._on_clear)
        self.bus.subscribe(Event.UPDATE_EXECUTION_GRAPH, self, self._on_graph)
        self.bus.subscribe(Event.UPDATE_EXECUTION, self, self._on_execution)
        self.bus.subscribe(Event.HIGHLIGHT, self, lambda state: self.highlight(state))
        self.bus.subscribe(Event.MARK, self, self._on_mark)

    def set_model(self, model: ResultModel | None) -> None:
        self.model = model
        self.stale = model is None
        self.refresh()

    def update_mem_graph(self) -> None:
        """Re-render after a display option changed."""
        self.refresh()

    def highlight(self, state: ViewState) -> None:
        self.state = state
        if self.model is not None:
            self.model.highlight_all()
        self.refresh()

    def clear_highlight(self) -> None:
        if self.model is not None:
            self.model.highlighted = set()
        self.refresh()

    def clear_mark(self) -> None:
        if self.model is not None:
            self.model.mark(None)
        self.refresh()

    def _on_clear(self, *args: Any) -> None:
        if self.model is not None:
            self.model.clear_colours()
        super()._on_clear(*args)

    def _on_graph(self, state: ViewState) -> None:
        self.state = state
        self.refresh()

    def _on_execution(self, state: ViewState) -> None:
        self.state = state
        session = state.interactive_session
        if self.model is not None and session is not None and session.cursor < len(self.model):
            self.model.select(session.cursor)
        self.refresh()

    def _on_mark(self, event_name: str | None, state: ViewState) -> None:
        self.state = state
        if self.model is not None:
            self.model.mark(event_name)
        self.refresh()

    def render(self, state: ViewState) -> list[dict]:
        if self.model is None or self.stale:
            return []
        return self.model.elements()

    def graphviz(self) -> str:
        return self.model.graphviz() if self.model is not None else ""


class ObjdumpTab(Observer):
    kind = "objdump"
    capabilities = frozenset({Capability.ACTIVATE, Capability.CLOSE})

    def subscribe(self) -> None:
        self.bus.subscribe(Event.UPDATE, self, self._on_update)
        self.bus.subscribe(Event.CLEAR, self, self._on_clear)

    def render(self, state: ViewState) -> str:
        if self.stale and not state.auxiliary_output:
            return STALE_PLACEHOLDER
        return state.auxiliary_output


HELP_TEXT = """\
Edit the litmus test and the cat model, choose an architecture and press Run.
The console reports how many candidate executions the model allows; each
allowed execution is shown in the execution graph tab.

Editing either document marks the results as out of date. Use the share
link to reopen the current layout and litmus test elsewhere.
"""


class HelpTab(Observer):
    kind = "help"
    capabilities = frozenset({Capability.ACTIVATE, Capability.CLOSE})

    def render(self, state: ViewState) -> str:
        return HELP_TEXT


OBSERVER_KINDS: dict[str, type[Observer]] = {
    cls.kind: cls
    for cls in (ConsoleTab, MemoryTab, ExecutionGraphTab, ObjdumpTab, HelpTab)
}


def create_observer(kind: str, bus: EventBus, title: str | None = None,
                    args: list | None = None) -> Observer:
    """Instantiate the dynamic observer registered for ``kind``."""
    cls = OBSERVER_KINDS.get(kind)
    if cls is None:
        raise UnknownObserverKindError(
            f"Unknown observer kind {kind!r}; expected one of {sorted(OBSERVER_KINDS)}"
        )
    return cls(bus, title or kind.capitalize(), *(args or []))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class ObserverRegistry:
    """Ordered observers of one view: two permanent editors plus dynamic tabs."""

    def __init__(self, bus: EventBus, source_title: str, model_title: str):
        self.bus = bus
        self.source_editor = SourceEditor(bus, source_title)
        self.model_editor = ModelEditor(bus, model_title)
        self._observers: list[Observer] = [self.source_editor, self.model_editor]
        self._items: dict[int, LayoutItem] = {}
        self._layout: DockLayout | None = None

    def __iter__(self):
        return iter(list(self._observers))

    def __len__(self) -> int:
        return len(self._observers)

    def attach(self, layout: DockLayout) -> None:
        """Register component factories and teardown handling on ``layout``."""
        self._layout = layout
        layout.register_component("litmus", self._mount_editor(self.source_editor))
        layout.register_component("cat", self._mount_editor(self.model_editor))
        layout.register_component("tab", self._mount_tab)
        layout.on(ITEM_DESTROYED, self._on_item_destroyed)

    def _mount_editor(self, editor: Observer):
        def factory(item: LayoutItem, _component_state: dict) -> None:
            item.content = editor
            editor.initial(self.bus.state)
            editor.refresh()
        return factory

    def _mount_tab(self, item: LayoutItem, component_state: dict) -> None:
        state = self.bus.state
        observer = create_observer(
            component_state.get("tab", ""), self.bus,
            item.title, component_state.get("args"),
        )
        self._observers.append(observer)
        self._items[id(observer)] = item
        item.content = observer
        layout = self._layout
        if observer.has(Capability.ACTIVATE):
            observer.set_active = lambda: layout.activate(item)
        if observer.has(Capability.CLOSE):
            observer.close = lambda: layout.remove(item)
        observer.initial(state)
        observer.refresh()
        if observer.has(Capability.HIGHLIGHT) and state.options["colour_all"]:
            observer.highlight(state)
        log.debug("created %r", observer)

    def _on_item_destroyed(self, item: LayoutItem) -> None:
        observer = item.content
        if item.component_name != "tab" or observer is None:
            return
        for i, candidate in enumerate(self._observers):
            if candidate is observer:
                del self._observers[i]
                break
        self._items.pop(id(observer), None)
        self.bus.unsubscribe(observer)
        log.debug("removed %r", observer)

    def find_by_kind(self, kind: str) -> Observer | None:
        for observer in self._observers:
            if observer.kind == kind:
                return observer
        return None

    def get_or_create(self, kind: str, title: str | None = None,
                      closable: bool = True, *args: Any) -> Observer:
        """Return the first observer of ``kind``, creating it if needed."""
        observer = self.find_by_kind(kind)
        if observer is not None:
            return observer
        if kind not in OBSERVER_KINDS:
            raise UnknownObserverKindError(f"Unknown observer kind {kind!r}")
        if self._layout is None:
            raise RuntimeError("registry is not attached to a layout")
        item = self._layout.add_component(tab_component(kind, title, closable, list(args)))
        return item.content

    def item_for(self, observer: Observer) -> LayoutItem | None:
        return self._items.get(id(observer))

    def remove(self, observer: Observer) -> None:
        """Remove a dynamic observer through the layout."""
        item = self._items.get(id(observer))
        if item is not None and self._layout is not None:
            self._layout.remove(item)

    def refresh_all(self) -> None:
        for observer in list(self._observers):
            observer.refresh()

"""In-memory docking layout: a tree of rows, columns, stacks and components.

The layout knows nothing about observers. Component factories registered by
name are called when a component item is created, and ``itemDestroyed``
listeners are told when an item leaves the tree. ``to_config`` returns the
structure only (kinds, titles, closability, nesting), never geometry.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

log = logging.getLogger("litmusview.layout")

ITEM_DESTROYED = "itemDestroyed"
STATE_CHANGED = "stateChanged"

CONTAINER_TYPES = ("row", "column", "stack")

ComponentFactory = Callable[["LayoutItem", dict], None]


@dataclass(eq=False)
class LayoutItem:
    type: str  # root, row, column, stack, component
    title: str = ""
    component_name: str = ""
    component_state: dict = field(default_factory=dict)
    closable: bool = True
    children: list[LayoutItem] = field(default_factory=list)
    parent: LayoutItem | None = None
    active_index: int = 0
    content: Any = None  # whatever the factory attached

    @property
    def is_component(self) -> bool:
        return self.type == "component"

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()


# ---------------------------------------------------------------------------
# Default configuration
# ---------------------------------------------------------------------------

def tab_component(kind: str, title: str | None = None, closable: bool = True,
                  args: list | None = None) -> dict:
    """Config entry for a dynamic observer tab."""
    return {
        "type": "component",
        "componentName": "tab",
        "componentState": {"tab": kind, "args": list(args or [])},
        "title": title or kind.capitalize(),
        "isClosable": closable,
    }


def default_config(source_title: str, model_title: str) -> dict:
    """Editor column with a console stack, the model editor, then memory."""
    return {
        "settings": {
            "hasHeaders": True,
            "constrainDragToContainer": True,
            "reorderEnabled": True,
            "showPopoutIcon": False,
            "showMaximiseIcon": True,
            "showCloseIcon": True,
        },
        "content": [{
            "type": "row",
            "content": [{
                "type": "column",
                "content": [{
                    "type": "component",
                    "componentName": "litmus",
                    "title": source_title,
                    "isClosable": False,
                }, {
                    "type": "stack",
                    "content": [tab_component("console", "Console")],
                }],
            }, {
                "type": "stack",
                "content": [{
                    "type": "component",
                    "componentName": "cat",
                    "title": model_title,
                    "isClosable": False,
                }],
            }, {
                "type": "stack",
                "content": [tab_component("memory", "Memory")],
            }],
        }],
    }


# ---------------------------------------------------------------------------
# Minified config (used in share tokens)
# ---------------------------------------------------------------------------

_KEY_MAP = {
    "settings": "s",
    "dimensions": "d",
    "labels": "l",
    "content": "c",
    "type": "t",
    "componentName": "n",
    "componentState": "cs",
    "title": "ti",
    "isClosable": "ic",
    "activeItemIndex": "a",
    "tab": "tb",
    "args": "ar",
    "hasHeaders": "hh",
    "constrainDragToContainer": "cd",
    "reorderEnabled": "re",
    "showPopoutIcon": "sp",
    "showMaximiseIcon": "sm",
    "showCloseIcon": "sc",
}
_TYPE_MAP = {"component": "C", "row": "R", "column": "L", "stack": "S"}

_KEY_UNMAP = {v: k for k, v in _KEY_MAP.items()}
_TYPE_UNMAP = {v: k for k, v in _TYPE_MAP.items()}


def _translate(node: Any, keys: dict[str, str], types: dict[str, str]) -> Any:
    if isinstance(node, list):
        return [_translate(n, keys, types) for n in node]
    if not isinstance(node, dict):
        return node
    out = {}
    for key, value in node.items():
        new_key = keys.get(key, key)
        if new_key in ("type", "t") and isinstance(value, str):
            out[new_key] = types.get(value, value)
        elif key in ("componentState", "cs"):
            # component state keys are translated, argument values are not
            out[new_key] = {keys.get(k, k): v for k, v in value.items()}
        else:
            out[new_key] = _translate(value, keys, types)
    return out


def minify_config(config: dict) -> dict:
    return _translate(config, _KEY_MAP, _TYPE_MAP)


def unminify_config(config: dict) -> dict:
    return _translate(config, _KEY_UNMAP, _TYPE_UNMAP)


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

class DockLayout:
    """Layout tree hosting the observers of one view."""

    def __init__(self, config: dict):
        self._config = copy.deepcopy(config)
        self._factories: dict[str, ComponentFactory] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self.root = LayoutItem(type="root")
        self.initialised = False

    # --- registration ---

    def register_component(self, name: str, factory: ComponentFactory) -> None:
        self._factories[name] = factory

    def on(self, event: str, callback: Callable) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def _fire(self, event: str, *args) -> None:
        for cb in list(self._listeners.get(event, ())):
            cb(*args)

    # --- construction ---

    def init(self) -> None:
        """Build the tree from the configuration and instantiate components."""
        for entry in self._config.get("content", []):
            self._attach(self.root, entry)
        self.initialised = True

    def _attach(self, parent: LayoutItem, entry: dict) -> LayoutItem:
        item_type = entry.get("type", "component")
        item = LayoutItem(
            type=item_type,
            title=entry.get("title", ""),
            component_name=entry.get("componentName", ""),
            component_state=copy.deepcopy(entry.get("componentState", {})),
            closable=entry.get("isClosable", True),
            parent=parent,
            active_index=entry.get("activeItemIndex", 0),
        )
        factory = None
        if item.is_component:
            factory = self._factories.get(item.component_name)
            if factory is None:
                raise KeyError(f"No component registered as {item.component_name!r}")
        parent.children.append(item)
        if factory is not None:
            factory(item, item.component_state)
        else:
            for child in entry.get("content", []):
                self._attach(item, child)
        return item

    def add_component(self, entry: dict) -> LayoutItem:
        """Add ``entry`` to the first top-level container."""
        if not self.root.children:
            self._attach(self.root, {"type": "stack", "content": []})
        target = self.root.children[0]
        item = self._attach(target, entry)
        self._fire(STATE_CHANGED)
        return item

    # --- item operations ---

    def activate(self, item: LayoutItem) -> None:
        parent = item.parent
        if parent is not None and item in parent.children:
            parent.active_index = parent.children.index(item)
            self._fire(STATE_CHANGED)

    def remove(self, item: LayoutItem) -> None:
        """Detach ``item`` and report every destroyed item, leaves first."""
        parent = item.parent
        if parent is None or item not in parent.children:
            return
        parent.children.remove(item)
        parent.active_index = min(parent.active_index, max(len(parent.children) - 1, 0))
        for node in reversed(list(item.walk())):
            node.parent = None
            self._fire(ITEM_DESTROYED, node)
        self._fire(STATE_CHANGED)

    def destroy(self) -> None:
        for child in list(self.root.children):
            self.remove(child)

    def components(self) -> list[LayoutItem]:
        return [item for item in self.root.walk() if item.is_component]

    # --- serialisation ---

    def to_config(self) -> dict:
        def dump(item: LayoutItem) -> dict:
            if item.is_component:
                entry = {
                    "type": "component",
                    "componentName": item.component_name,
                    "title": item.title,
                    "isClosable": item.closable,
                }
                if item.component_state:
                    entry["componentState"] = copy.deepcopy(item.component_state)
                return entry
            entry = {"type": item.type, "content": [dump(c) for c in item.children]}
            if item.type == "stack" and item.active_index:
                entry["activeItemIndex"] = item.active_index
            return entry

        config = {k: copy.deepcopy(v) for k, v in self._config.items() if k != "content"}
        config["content"] = [dump(c) for c in self.root.children]
        return config

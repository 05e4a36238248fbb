"""Shareable state tokens: percent-encoded JSON of layout + documents."""
from __future__ import annotations

import json
from dataclasses import dataclass
from urllib.parse import quote, unquote

from litmusview.errors import StateTokenError
from litmusview.layout import CONTAINER_TYPES, minify_config, unminify_config
from litmusview.observers import OBSERVER_KINDS
from litmusview.state import Architecture

# Characters encodeURIComponent leaves alone besides alphanumerics and "-_."
_SAFE = "!~*'()"

_ARCHITECTURES = {a.value for a in Architecture}
# Component names a view registers on its layout
_COMPONENTS = ("litmus", "cat", "tab")


@dataclass
class DecodedState:
    title: str
    source: str
    config: dict
    model_title: str | None = None
    model: str | None = None
    arch: str | None = None


class StateSerializer:
    """Encode a view into a URL-fragment-safe token and back."""

    def encode(self, view) -> str:
        config = minify_config(view.layout.to_config())
        config["title"] = view.state.title
        config["source"] = view.state.source_text
        config["modelTitle"] = view.state.model_title
        config["model"] = view.state.model_text
        config["arch"] = view.state.architecture.value
        return quote(json.dumps(config, separators=(",", ":")), safe=_SAFE)

    def decode(self, token: str) -> DecodedState:
        if token.startswith("#"):
            token = token[1:]
        try:
            data = json.loads(unquote(token))
        except ValueError as e:
            raise StateTokenError(f"state token is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise StateTokenError("state token must encode an object")
        try:
            title = data.pop("title")
            source = data.pop("source")
        except KeyError as e:
            raise StateTokenError(f"state token is missing {e}") from None
        if not isinstance(title, str) or not isinstance(source, str):
            raise StateTokenError("state token title and source must be strings")
        model_title = data.pop("modelTitle", None)
        model = data.pop("model", None)
        arch = data.pop("arch", None)
        for name, value in (("modelTitle", model_title), ("model", model)):
            if value is not None and not isinstance(value, str):
                raise StateTokenError(f"state token {name} must be a string")
        if arch is not None and (not isinstance(arch, str) or arch not in _ARCHITECTURES):
            raise StateTokenError(f"state token names an unknown architecture: {arch!r}")
        try:
            config = unminify_config(data)
        except (AttributeError, TypeError) as e:
            raise StateTokenError(f"state token layout is malformed: {e}") from e
        _check_layout(config.get("content", []))
        return DecodedState(
            title=title,
            source=source,
            config=config,
            model_title=model_title,
            model=model,
            arch=arch,
        )


def _check_layout(content: object) -> None:
    """Reject layouts that would not rebuild into a view."""
    if not isinstance(content, list):
        raise StateTokenError("state token layout content must be a list")
    for entry in content:
        if not isinstance(entry, dict):
            raise StateTokenError("state token layout entries must be objects")
        item_type = entry.get("type", "component")
        if item_type == "component":
            name = entry.get("componentName")
            if name not in _COMPONENTS:
                raise StateTokenError(f"state token names an unknown component: {name!r}")
            state = entry.get("componentState", {})
            if not isinstance(state, dict):
                raise StateTokenError("state token component state must be an object")
            if name == "tab":
                kind = state.get("tab")
                if not isinstance(kind, str) or kind not in OBSERVER_KINDS:
                    raise StateTokenError(
                        f"state token names an unknown tab: {kind!r}")
                if not isinstance(state.get("args", []), list):
                    raise StateTokenError("state token tab arguments must be a list")
        elif item_type in CONTAINER_TYPES:
            _check_layout(entry.get("content", []))
        else:
            raise StateTokenError(f"state token names an unknown layout item: {item_type!r}")

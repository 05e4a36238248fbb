"""Dataclasses for the per-view document/session state."""
from __future__ import annotations

import enum
from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass, field
from typing import Union

from litmusview.errors import ResponseFormatError, UnknownOptionError


# --- Enumerations ---

class Architecture(str, enum.Enum):
    AARCH64 = "AArch64"
    RISCV = "RISCV"


class InteractiveMode(str, enum.Enum):
    MEMORY = "Memory"
    EXECUTION_GRAPH = "ExecutionGraph"


# --- Options ---

# (key, default) in display order
OPTION_DEFAULTS: dict[str, bool] = {
    "show_integer_provenances": True,
    "show_string_literals": False,
    "show_pointer_bytes": False,
    "hide_tau": True,
    "colour_all": False,
    "colour_cursor": True,
    "show_mem_order": False,
    "align_allocs": False,
    "ignore_ifetch": False,
}


def is_option(key: object) -> bool:
    """Return True if ``key`` names one of the fixed display/behaviour toggles."""
    return isinstance(key, str) and key in OPTION_DEFAULTS


class Options(MutableMapping):
    """Fixed set of boolean toggles; unknown keys raise ``UnknownOptionError``."""

    def __init__(self, values: dict[str, bool] | None = None):
        self._values = dict(OPTION_DEFAULTS)
        for key, value in (values or {}).items():
            self[key] = value

    def __getitem__(self, key: str) -> bool:
        if not is_option(key):
            raise UnknownOptionError(key)
        return self._values[key]

    def __setitem__(self, key: str, value: bool) -> None:
        if not is_option(key):
            raise UnknownOptionError(key)
        self._values[key] = bool(value)

    def __delitem__(self, key: str) -> None:
        raise TypeError("options cannot be removed")

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Options({self._values!r})"

    def toggle(self, key: str) -> bool:
        """Flip ``key`` and return its new value."""
        self[key] = not self[key]
        return self._values[key]

    def enabled(self) -> list[str]:
        return [k for k, v in self._values.items() if v]

    def copy(self) -> Options:
        return Options(self._values)


# --- Execution graphs ---

@dataclass
class GraphEvent:
    name: str
    thread: int | None = None
    label: str = ""
    internal: bool = False  # tau / ifetch events, hidden by ``hide_tau``


@dataclass
class ExecutionGraph:
    """One allowed execution returned by the checking service."""
    events: list[GraphEvent] = field(default_factory=list)
    relations: dict[str, list[tuple[str, str]]] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: object) -> ExecutionGraph:
        """Decode a graph payload.

        Accepts ``{"events": [...], "relations": {name: [[src, dst], ...]}}``
        where each event is either a name or a dict with ``name`` and optional
        ``thread``, ``label`` and ``internal`` keys.
        """
        if not isinstance(data, dict):
            raise ResponseFormatError(f"graph must be an object, got {type(data).__name__}")
        events = []
        for raw in data.get("events", []):
            if isinstance(raw, str):
                events.append(GraphEvent(name=raw))
            elif isinstance(raw, dict) and "name" in raw:
                events.append(GraphEvent(
                    name=str(raw["name"]),
                    thread=raw.get("thread"),
                    label=str(raw.get("label", "")),
                    internal=bool(raw.get("internal", False)),
                ))
            else:
                raise ResponseFormatError(f"malformed graph event: {raw!r}")
        relations: dict[str, list[tuple[str, str]]] = {}
        raw_rels = data.get("relations", {})
        if not isinstance(raw_rels, dict):
            raise ResponseFormatError("graph relations must be an object")
        for name, pairs in raw_rels.items():
            try:
                relations[str(name)] = [(str(a), str(b)) for a, b in pairs]
            except (TypeError, ValueError):
                raise ResponseFormatError(f"malformed relation {name!r}") from None
        return cls(events=events, relations=relations)

    def copy(self) -> ExecutionGraph:
        return ExecutionGraph(
            events=[GraphEvent(e.name, e.thread, e.label, e.internal) for e in self.events],
            relations={k: list(v) for k, v in self.relations.items()},
        )


# --- Check results ---

@dataclass
class Done:
    execution_graphs: list[ExecutionGraph]
    auxiliary_output: str
    candidate_count: int

    @property
    def allowed_count(self) -> int:
        return len(self.execution_graphs)

    def copy(self) -> Done:
        return Done([g.copy() for g in self.execution_graphs],
                    self.auxiliary_output, self.candidate_count)


@dataclass
class Error:
    message: str

    def copy(self) -> Error:
        return Error(self.message)


CheckResult = Union[Done, Error]


# --- Interactive exploration ---

@dataclass
class InteractiveSession:
    """Step-through over a list of allowed executions."""
    executions: list[ExecutionGraph]
    cursor: int = 0

    @property
    def current(self) -> ExecutionGraph | None:
        if 0 <= self.cursor < len(self.executions):
            return self.executions[self.cursor]
        return None

    def step(self, delta: int) -> int:
        """Move the cursor by ``delta``, clamped to the available executions."""
        if not self.executions:
            self.cursor = 0
        else:
            self.cursor = max(0, min(len(self.executions) - 1, self.cursor + delta))
        return self.cursor

    def copy(self) -> InteractiveSession:
        return InteractiveSession([g.copy() for g in self.executions], self.cursor)


# --- View state ---

@dataclass
class ViewState:
    title: str = ""
    source_text: str = ""
    model_title: str = ""
    model_text: str = ""
    architecture: Architecture = Architecture.AARCH64
    options: Options = field(default_factory=Options)
    interactive_session: InteractiveSession | None = None
    executions: list[ExecutionGraph] = field(default_factory=list)
    results: CheckResult | None = None
    auxiliary_output: str = ""
    console_log: str = ""
    mode: InteractiveMode = InteractiveMode.MEMORY

    def copy(self) -> ViewState:
        """Return an independent copy; no nested mapping or list is shared."""
        return ViewState(
            title=self.title,
            source_text=self.source_text,
            model_title=self.model_title,
            model_text=self.model_text,
            architecture=self.architecture,
            options=self.options.copy(),
            interactive_session=(self.interactive_session.copy()
                                 if self.interactive_session else None),
            executions=[g.copy() for g in self.executions],
            results=self.results.copy() if self.results else None,
            auxiliary_output=self.auxiliary_output,
            console_log=self.console_log,
            mode=self.mode,
        )

    def append_console(self, text: str) -> None:
        self.console_log += text

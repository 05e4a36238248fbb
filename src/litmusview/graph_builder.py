"""Build Cytoscape.js elements and Graphviz text from allowed executions."""
from __future__ import annotations

from litmusview.state import ExecutionGraph, GraphEvent, Options

# Relations drawn only when the matching option is enabled
_OPTIONAL_RELATIONS = {
    "co": "show_mem_order",
}

_RELATION_COLOURS = {
    "po": "#7f8c8d",
    "rf": "#e74c3c",
    "co": "#2980b9",
    "fr": "#e67e22",
    "iio": "#8e44ad",
}


def _visible_events(graph: ExecutionGraph, options: Options) -> list[GraphEvent]:
    if options["hide_tau"]:
        return [e for e in graph.events if not e.internal]
    return list(graph.events)


def _visible_relations(graph: ExecutionGraph, options: Options):
    for name, pairs in graph.relations.items():
        opt = _OPTIONAL_RELATIONS.get(name)
        if opt is not None and not options[opt]:
            continue
        yield name, pairs


def build_graph_elements(graph: ExecutionGraph,
                         options: Options,
                         highlighted: set[str] | None = None,
                         marked: str | None = None) -> list[dict]:
    """Build Cytoscape elements (events + relation edges) for one execution.

    Args:
        graph: Execution returned by the checking service.
        options: View options; ``hide_tau`` drops internal events and
            ``show_mem_order`` enables coherence edges.
        highlighted: Event names to colour (``colour_all``).
        marked: Event under the editor cursor (``colour_cursor``).

    Returns:
        List of Cytoscape element dicts.
    """
    highlighted = highlighted or set()
    events = _visible_events(graph, options)
    node_ids = set()
    elements = []
    for ev in events:
        node_ids.add(ev.name)
        classes = []
        if ev.thread is not None:
            classes.append(f"thread-{ev.thread}")
        if ev.internal:
            classes.append("internal")
        if ev.name in highlighted:
            classes.append("highlighted")
        if ev.name == marked:
            classes.append("marked")
        elements.append({
            "data": {
                "id": ev.name,
                "label": f"{ev.name}: {ev.label}" if ev.label else ev.name,
                "thread": -1 if ev.thread is None else ev.thread,
            },
            "classes": " ".join(classes),
        })

    seen = set()
    for name, pairs in _visible_relations(graph, options):
        for src, dst in pairs:
            # Edges touching hidden events are dropped with them
            if src not in node_ids or dst not in node_ids:
                continue
            edge_id = f"{name}_{src}_{dst}"
            if edge_id in seen:
                continue
            seen.add(edge_id)
            elements.append({
                "data": {"id": edge_id, "source": src, "target": dst, "label": name},
                "classes": f"rel-{name}" + (" self-loop" if src == dst else ""),
            })
    return elements


def to_dot(graph: ExecutionGraph, options: Options, name: str = "exec") -> str:
    """Render one execution as Graphviz DOT, one cluster per thread."""
    events = _visible_events(graph, options)
    visible = {e.name for e in events}
    lines = [f"digraph {name} {{", "  node [shape=box, fontsize=10];"]
    threads: dict[int | None, list[GraphEvent]] = {}
    for ev in events:
        threads.setdefault(ev.thread, []).append(ev)
    for tid, evs in threads.items():
        indent = "  "
        if tid is not None:
            lines.append(f"  subgraph cluster_{tid} {{")
            lines.append(f'    label="Thread #{tid}";')
            indent = "    "
        for ev in evs:
            label = f"{ev.name}: {ev.label}" if ev.label else ev.name
            lines.append(f'{indent}"{ev.name}" [label="{_escape(label)}"];')
        if tid is not None:
            lines.append("  }")
    for rel, pairs in _visible_relations(graph, options):
        colour = _RELATION_COLOURS.get(rel, "#333333")
        for src, dst in pairs:
            if src in visible and dst in visible:
                lines.append(
                    f'  "{src}" -> "{dst}" [label="{rel}", color="{colour}", fontcolor="{colour}"];'
                )
    lines.append("}")
    return "\n".join(lines)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


class ResultModel:
    """The allowed executions of one run, with a selected execution."""

    def __init__(self, graphs: list[ExecutionGraph], options: Options):
        self.graphs = graphs
        self.options = options
        self.index = 0
        self.highlighted: set[str] = set()
        self.marked: str | None = None

    def __len__(self) -> int:
        return len(self.graphs)

    @property
    def current(self) -> ExecutionGraph | None:
        return self.graphs[self.index] if self.graphs else None

    def select(self, index: int) -> None:
        if not 0 <= index < len(self.graphs):
            raise IndexError(f"execution {index} out of range (0..{len(self.graphs) - 1})")
        self.index = index

    def highlight_all(self) -> None:
        graph = self.current
        self.highlighted = {e.name for e in graph.events} if graph else set()

    def mark(self, event_name: str | None) -> None:
        self.marked = event_name

    def clear_colours(self) -> None:
        self.highlighted = set()
        self.marked = None

    def elements(self) -> list[dict]:
        graph = self.current
        if graph is None:
            return []
        return build_graph_elements(graph, self.options, self.highlighted, self.marked)

    def graphviz(self) -> str:
        graph = self.current
        return to_dot(graph, self.options) if graph else ""


# ---------------------------------------------------------------------------
# Stylesheet
# ---------------------------------------------------------------------------

GRAPH_STYLESHEET = [
    {
        "selector": "node",
        "style": {
            "label": "data(label)",
            "shape": "round-rectangle",
            "font-size": "9px",
            "width": "label",
            "height": 22,
            "padding": "6px",
            "background-color": "#ecf0f1",
            "border-width": 1,
            "border-color": "#7f8c8d",
            "text-valign": "center",
            "text-halign": "center",
            "color": "#2c3e50",
        },
    },
    {"selector": "node.internal", "style": {"opacity": 0.5, "border-style": "dashed"}},
    {"selector": "node.highlighted", "style": {"background-color": "#f9e79f"}},
    {"selector": "node.marked", "style": {
        "border-width": 3, "border-color": "#e74c3c",
    }},
    {
        "selector": "edge",
        "style": {
            "curve-style": "bezier",
            "target-arrow-shape": "triangle",
            "label": "data(label)",
            "font-size": "8px",
            "width": 1,
            "line-color": "#333",
            "target-arrow-color": "#333",
            "arrow-scale": 0.8,
        },
    },
    {
        "selector": "edge.self-loop",
        "style": {
            "curve-style": "loop",
            "loop-direction": "-45deg",
            "loop-sweep": "90deg",
        },
    },
] + [
    {"selector": f"edge.rel-{rel}", "style": {
        "line-color": colour, "target-arrow-color": colour, "color": colour,
    }}
    for rel, colour in _RELATION_COLOURS.items()
]

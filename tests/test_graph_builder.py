"""Tests for Cytoscape element and Graphviz generation."""
import pytest

from litmusview.graph_builder import (
    GRAPH_STYLESHEET, ResultModel, build_graph_elements, to_dot,
)
from litmusview.state import ExecutionGraph, Options


def _nodes(elements):
    return {e["data"]["id"]: e for e in elements if "source" not in e["data"]}


def _edges(elements):
    return {e["data"]["id"]: e for e in elements if "source" in e["data"]}


def _validate_cytoscape_elements(elements: list[dict]):
    """Validate that elements form a valid Cytoscape graph (no dangling edges)."""
    node_ids = set(_nodes(elements))
    for e in _edges(elements).values():
        d = e["data"]
        assert d["source"] in node_ids, f"edge source '{d['source']}' not in nodes"
        assert d["target"] in node_ids, f"edge target '{d['target']}' not in nodes"


class TestBuildGraphElements:
    def test_hide_tau(self, mp_graph):
        elements = build_graph_elements(mp_graph, Options())
        assert set(_nodes(elements)) == {"a", "b", "c", "d"}
        assert "po_t0_a" not in _edges(elements)
        _validate_cytoscape_elements(elements)

    def test_show_tau(self, mp_graph):
        elements = build_graph_elements(mp_graph, Options({"hide_tau": False}))
        nodes = _nodes(elements)
        assert "t0" in nodes
        assert "internal" in nodes["t0"]["classes"]
        assert "po_t0_a" in _edges(elements)

    def test_mem_order_optional(self, mp_graph):
        assert "co_a_b" not in _edges(build_graph_elements(mp_graph, Options()))
        shown = build_graph_elements(mp_graph, Options({"show_mem_order": True}))
        assert _edges(shown)["co_a_b"]["classes"] == "rel-co"

    def test_node_classes(self, mp_graph):
        elements = build_graph_elements(mp_graph, Options(), highlighted={"a"}, marked="c")
        nodes = _nodes(elements)
        assert nodes["a"]["classes"] == "thread-0 highlighted"
        assert nodes["c"]["classes"] == "thread-1 marked"
        assert nodes["a"]["data"]["label"] == "a: W x=1"

    def test_edges_dropped_with_missing_events(self):
        g = ExecutionGraph.from_json({"events": ["a"], "relations": {"rf": [["init", "a"]]}})
        elements = build_graph_elements(g, Options())
        assert _edges(elements) == {}

    def test_self_loop(self):
        g = ExecutionGraph.from_json({"events": ["a"], "relations": {"rmw": [["a", "a"]]}})
        edge = _edges(build_graph_elements(g, Options()))["rmw_a_a"]
        assert "self-loop" in edge["classes"]

    @pytest.mark.parametrize("hide_tau", [True, False])
    @pytest.mark.parametrize("show_mem_order", [True, False])
    def test_never_dangling(self, mp_graph, hide_tau, show_mem_order):
        opts = Options({"hide_tau": hide_tau, "show_mem_order": show_mem_order})
        _validate_cytoscape_elements(build_graph_elements(mp_graph, opts))


class TestToDot:
    def test_clusters_and_edges(self, mp_graph):
        dot = to_dot(mp_graph, Options())
        assert dot.startswith("digraph exec {")
        assert "subgraph cluster_0" in dot
        assert "subgraph cluster_1" in dot
        assert '"b" -> "c" [label="rf"' in dot
        assert "t0" not in dot

    def test_escapes_labels(self):
        g = ExecutionGraph.from_json({"events": [{"name": "a", "label": 'W "x"'}]})
        assert 'label="a: W \\"x\\""' in to_dot(g, Options())


class TestResultModel:
    def test_select(self, mp_graph):
        model = ResultModel([mp_graph, mp_graph.copy()], Options())
        model.select(1)
        assert model.current is model.graphs[1]
        with pytest.raises(IndexError):
            model.select(2)

    def test_colours(self, mp_graph):
        model = ResultModel([mp_graph], Options())
        model.highlight_all()
        model.mark("d")
        assert model.highlighted == {"a", "b", "c", "d", "t0"}
        model.clear_colours()
        assert model.highlighted == set()
        assert model.marked is None

    def test_empty(self):
        model = ResultModel([], Options())
        assert len(model) == 0
        assert model.current is None
        assert model.elements() == []
        assert model.graphviz() == ""

    def test_follows_options(self, mp_graph):
        opts = Options()
        model = ResultModel([mp_graph], opts)
        assert "t0" not in _nodes(model.elements())
        opts["hide_tau"] = False
        assert "t0" in _nodes(model.elements())


class TestStylesheet:
    def test_relation_selectors(self):
        selectors = {s["selector"] for s in GRAPH_STYLESHEET}
        assert {"node", "edge", "edge.rel-rf", "edge.rel-po", "node.marked"} <= selectors

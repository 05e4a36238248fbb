"""Tests for ViewController: view management, queries, sharing."""
import pytest

from litmusview.controller import ViewController
from litmusview.errors import (
    NoCurrentViewError, QueryInProgressError, ServiceError, ServiceTimeoutError,
    StateTokenError, UnknownOptionError,
)
from litmusview.events import Event
from litmusview.state import Architecture, Done, Error

from conftest import FakeService


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class TestViews:
    def test_no_current_view(self):
        c = ViewController()
        assert not c.has_views
        with pytest.raises(NoCurrentViewError):
            c.current_view

    def test_fork_without_current_view(self):
        with pytest.raises(NoCurrentViewError):
            ViewController().new_litmus_view("x.toml")

    def test_create_makes_current(self, controller):
        first = controller.current_view
        second = controller.create_view("SB.toml", "", "sc.cat", "")
        assert controller.current_view is second
        assert not first.visible
        assert second.visible
        assert controller.view_titles() == ["MP.toml", "SB.toml"]

    def test_set_current_view(self, controller):
        first = controller.current_view
        controller.create_view("SB.toml", "", "sc.cat", "")
        controller.set_current_view(first)
        assert controller.current_view is first
        assert first.visible
        assert controller.ui["title"] == "MP.toml"

    def test_fork_independence(self, controller):
        a = controller.current_view
        controller.toggle_option("colour_all")
        b = controller.new_litmus_view("SB.toml", "")
        assert b.state.options["colour_all"] is True
        b.state.options["colour_all"] = False
        assert a.state.options["colour_all"] is True
        assert b.state is not a.state

    def test_new_litmus_keeps_model(self, controller, sc_model):
        v = controller.new_litmus_view("SB.toml", "src")
        assert v.state.model_text == sc_model
        assert v.state.source_text == "src"

    def test_new_cat_keeps_source(self, controller, mp_source):
        v = controller.new_cat_view("mine.cat", "let x = po")
        assert v.state.source_text == mp_source
        assert v.state.model_title == "mine.cat"

    def test_close_view(self, controller):
        first = controller.current_view
        second = controller.create_view("SB.toml", "", "sc.cat", "")
        controller.close_view(second)
        assert controller.current_view is first
        assert controller.views == [first]
        controller.close_view(first)
        assert not controller.has_views

    def test_ui_follows_current(self, controller):
        controller.set_architecture(Architecture.RISCV)
        assert controller.ui["arch"] == "RISCV"
        controller.toggle_option("show_mem_order")
        assert controller.ui["options"]["show_mem_order"] is True

    def test_toggle_unknown_option(self, controller):
        before = dict(controller.current_view.state.options)
        with pytest.raises(UnknownOptionError):
            controller.toggle_option("colour_none")
        assert dict(controller.current_view.state.options) == before

    def test_load_builtin_model(self, controller):
        controller.load_builtin_model("aarch64.cat")
        st = controller.current_view.state
        assert st.model_title == "aarch64.cat"
        assert "aarch64" in st.model_text.lower()

    def test_load_missing_model(self, controller):
        with pytest.raises(FileNotFoundError):
            controller.load_builtin_model("missing.cat")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

class TestQueries:
    def test_request_contents(self, controller, service, allowed_result, mp_source, sc_model):
        service.push(allowed_result)
        controller.run_query()
        request = service.requests[0]
        assert request.arch == "AArch64"
        assert request.litmus == mp_source
        assert request.cat == sc_model
        assert request.params()["ignore_ifetch"] == "false"

    def test_allowed(self, controller, service, allowed_result, recorder):
        view = controller.current_view
        view.on(Event.UPDATE, "spy", recorder)
        service.push(allowed_result)
        result = controller.run_query()
        assert result is allowed_result
        assert "1 out of 3 allowed" in view.state.console_log
        assert view.state.results is allowed_result
        assert view.state.auxiliary_output == "obj"
        assert len(view.state.executions) == 1
        assert view.graph.model is not None
        assert view.graph.content
        assert not view.is_dirty()
        assert recorder.count == 1

    def test_forbidden(self, controller, service, forbidden_result):
        view = controller.current_view
        service.push(forbidden_result)
        controller.run_query()
        assert "0 out of 3 allowed" in view.state.console_log
        assert view.find_observer("graph") is None
        assert view.state.executions == []
        assert not view.is_dirty()

    def test_forbidden_drops_previous_model(self, controller, service,
                                            allowed_result, forbidden_result):
        view = controller.current_view
        service.push(allowed_result)
        service.push(forbidden_result)
        controller.run_query()
        controller.run_query()
        assert view.graph.model is None
        assert view.graph.content == []

    def test_checker_error(self, controller, service):
        view = controller.current_view
        service.push(Error("Parse error in litmus file"))
        controller.run_query()
        assert view.state.console_log.endswith("Parse error in litmus file\n")
        assert view.state.results is None
        assert view.is_dirty()

    def test_service_failure_keeps_results(self, controller, service, allowed_result):
        view = controller.current_view
        service.push(allowed_result)
        service.push(ServiceTimeoutError("no response after 120 seconds"))
        controller.run_query()
        assert controller.run_query() is None
        assert view.state.results is allowed_result
        assert "Failed request! no response" in view.state.console_log
        assert controller.alerts == ["Failed request! no response after 120 seconds"]
        assert not controller.busy
        assert not view.query_pending

    def test_failure_after_edit_keeps_stale_graph_hidden(self, controller, service,
                                                         allowed_result):
        view = controller.current_view
        service.push(allowed_result)
        controller.run_query()
        assert view.graph.content
        view.edit_source("changed")
        assert view.graph.content == []
        service.push(ServiceError("boom"))
        assert controller.run_query() is None
        assert view.is_dirty()
        assert view.graph.content == []
        assert view.state.results is allowed_result

    def test_checker_error_after_edit_keeps_stale_graph_hidden(self, controller, service,
                                                               allowed_result):
        view = controller.current_view
        service.push(allowed_result)
        service.push(Error("Parse error"))
        controller.run_query()
        view.edit_source("changed")
        controller.run_query()
        assert view.graph.content == []

    def test_unexpected_exception_propagates(self, controller, service):
        service.push(ZeroDivisionError("boom"))
        with pytest.raises(ZeroDivisionError):
            controller.run_query()
        assert not controller.current_view.query_pending
        assert not controller.busy

    def test_concurrent_query_rejected(self, controller, service, allowed_result):
        view = controller.current_view
        controller.begin_query(view)
        with pytest.raises(QueryInProgressError):
            controller.begin_query(view)
        assert controller.run_query() is None
        assert service.requests == []
        assert controller.alerts
        controller.complete_query(view, allowed_result)
        assert not view.query_pending

    def test_without_service(self):
        c = ViewController()
        c.create_view("MP.toml", "", "sc.cat", "")
        with pytest.raises(RuntimeError):
            c.run_query()

    def test_edit_after_run_invalidates(self, controller, service, allowed_result):
        view = controller.current_view
        service.push(allowed_result)
        controller.run_query()
        view.edit_source(view.state.source_text + "\n# edited\n")
        assert view.is_dirty()
        assert view.state.executions == []
        assert view.graph.content == []
        assert view.state.results is allowed_result

    def test_fail_query_reports(self, controller):
        view = controller.current_view
        controller.fail_query(view, ServiceError("connection refused"))
        assert "Failed request! connection refused" in view.console.content

    def test_complete_query_rejects_garbage(self, controller):
        with pytest.raises(TypeError):
            controller.complete_query(controller.current_view, "Done")


# ---------------------------------------------------------------------------
# Colouring
# ---------------------------------------------------------------------------

def _classes(view, node_id):
    return next(e["classes"] for e in view.graph.content if e["data"]["id"] == node_id)


class TestColouring:
    def test_toggle_colour_all(self, controller, service, allowed_result):
        view = controller.current_view
        service.push(allowed_result)
        controller.run_query()
        assert "highlighted" not in _classes(view, "a")
        assert controller.toggle_option("colour_all") is True
        assert "highlighted" in _classes(view, "a")
        assert controller.toggle_option("colour_all") is False
        assert "highlighted" not in _classes(view, "a")
        assert view.bus.highlighted is False

    def test_run_with_colour_all_on(self, controller, service, allowed_result):
        view = controller.current_view
        controller.toggle_option("colour_all")
        service.push(allowed_result)
        service.push(allowed_result.copy())
        controller.run_query()
        assert "highlighted" in _classes(view, "b")
        controller.run_query()
        assert "highlighted" in _classes(view, "b")

    def test_colour_all_ignored_while_dirty(self, controller):
        view = controller.current_view
        controller.toggle_option("colour_all")
        assert view.bus.highlighted is False

    def test_mark_event(self, controller, service, allowed_result):
        view = controller.current_view
        service.push(allowed_result)
        controller.run_query()
        assert view.mark("c") is True
        assert "marked" in _classes(view, "c")
        assert controller.toggle_option("colour_cursor") is False
        assert view.graph.model.marked is None
        assert "marked" not in _classes(view, "c")
        assert view.mark("d") is False
        assert view.marked_event == "d"
        controller.toggle_option("colour_cursor")
        assert "marked" in _classes(view, "d")

    def test_mark_survives_rerun(self, controller, service, allowed_result):
        view = controller.current_view
        service.push(allowed_result)
        service.push(allowed_result.copy())
        controller.run_query()
        view.mark("c")
        controller.run_query()
        assert view.graph.model.marked == "c"

    def test_mark_follows_step(self, controller, service, mp_graph):
        view = controller.current_view
        service.push(Done([mp_graph, mp_graph.copy()], "", 2))
        controller.run_query()
        view.mark("c")
        view.begin_interactive()
        view.step_interactive(1)
        assert view.graph.model.index == 1
        assert view.graph.model.marked == "c"
        assert "marked" in _classes(view, "c")


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------

class TestSharing:
    def test_share_url(self, controller):
        url = controller.share_url("http://localhost:8050/")
        assert url.startswith("http://localhost:8050/#")

    def test_restore_round_trip(self, controller):
        original = controller.current_view
        original.get_or_create_observer("graph")
        original.set_architecture(Architecture.RISCV)
        token = original.encode_state()

        restored = controller.restore("#" + token)
        assert restored is controller.current_view
        assert restored is not original
        assert restored.title == original.title
        assert restored.state.source_text == original.state.source_text
        assert restored.state.model_text == original.state.model_text
        assert restored.state.architecture is Architecture.RISCV
        assert [o.kind for o in restored.observers] == [o.kind for o in original.observers]
        assert restored.layout.to_config() == original.layout.to_config()

    def test_restore_without_model_uses_current(self, controller, sc_model):
        token = "%7B%22title%22%3A%22x.toml%22%2C%22source%22%3A%22src%22%7D"
        restored = controller.restore(token)
        assert restored.state.source_text == "src"
        assert restored.state.model_text == sc_model
        assert restored.state.architecture is Architecture.AARCH64

    def test_restore_bad_token(self, controller):
        with pytest.raises(StateTokenError):
            controller.restore("not-json")
        assert len(controller.views) == 1

    @pytest.mark.parametrize("token", [
        '{"title":"a","source":"b","arch":"x86"}',
        '{"title":"a","source":"b","c":[{"t":"S","c":[{"t":"C","n":"terminal"}]}]}',
        '{"title":"a","source":"b","c":[{"t":"C","n":"tab","cs":[]}]}',
    ])
    def test_restore_rejects_unbuildable_token(self, controller, token):
        current = controller.current_view
        with pytest.raises(StateTokenError):
            controller.restore(token)
        assert controller.views == [current]
        assert controller.current_view is current

    def test_restore_into_empty_controller(self, controller):
        token = controller.current_view.encode_state()
        fresh = ViewController(FakeService())
        view = fresh.restore(token)
        assert fresh.current_view is view
        assert view.title == "MP.toml"

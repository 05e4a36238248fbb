"""Owns the views, the current view, and checking-service requests."""
from __future__ import annotations

import logging

from litmusview.config import Settings
from litmusview.errors import (
    NoCurrentViewError, QueryInProgressError, ServiceError, UnknownOptionError,
)
from litmusview.events import Event
from litmusview.graph_builder import ResultModel
from litmusview.library import load_model_text
from litmusview.serializer import StateSerializer
from litmusview.service import CheckingService, QueryRequest
from litmusview.state import Architecture, CheckResult, Done, Error, ViewState, is_option
from litmusview.view import View

log = logging.getLogger("litmusview.controller")


class ViewController:
    """Ordered views plus the current one; the single entry point for the host UI."""

    def __init__(self, service: CheckingService | None = None,
                 settings: Settings | None = None):
        self.service = service
        self.settings = settings or Settings()
        self.views: list[View] = []
        self._current: View | None = None
        self.busy = False
        self.alerts: list[str] = []
        self.ui: dict = {}

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def current_view(self) -> View:
        if self._current is None:
            raise NoCurrentViewError("no view has been created")
        return self._current

    @property
    def has_views(self) -> bool:
        return self._current is not None

    def create_view(self, title: str, source_text: str, model_title: str, model_text: str,
                    architecture: Architecture = Architecture.AARCH64,
                    from_current: bool = False, config: dict | None = None) -> View:
        """Create a view and make it current.

        With ``from_current`` the new view starts from an independent copy of
        the current view's state (options, results, console).
        """
        state: ViewState | None = None
        if from_current:
            state = self.current_view.state.copy()
        view = View(title, source_text, model_title, model_text,
                    architecture, initial_state=state, config=config)
        self.views.append(view)
        view.on(Event.UPDATE_UI, self, self.update_ui)
        self.set_current_view(view)
        log.info("created view %r (%d views)", title, len(self.views))
        return view

    def set_current_view(self, view: View) -> None:
        if self._current is not None and self._current is not view:
            self._current.hide()
        self._current = view
        self.update_ui(view.state)
        view.show()
        view.refresh()

    def close_view(self, view: View) -> None:
        """Destroy ``view``; the last remaining view becomes current."""
        view.destroy()
        view.off(self)
        self.views = [v for v in self.views if v is not view]
        if self._current is view:
            self._current = None
            if self.views:
                self.set_current_view(self.views[-1])

    def view_titles(self) -> list[str]:
        return [v.title for v in self.views]

    def refresh(self) -> None:
        if self._current is not None:
            self._current.refresh()

    def update_ui(self, state: ViewState) -> None:
        """Snapshot of the menu/toolbar state of the current view."""
        if self._current is not None and state is not self._current.state:
            return
        self.ui = {
            "title": state.title,
            "arch": state.architecture.value,
            "options": dict(state.options),
            "dirty": self._current.is_dirty() if self._current else True,
        }

    # ------------------------------------------------------------------
    # Menu actions
    # ------------------------------------------------------------------

    def new_litmus_view(self, title: str, source_text: str = "") -> View:
        cur = self.current_view
        return self.create_view(title, source_text, cur.state.model_title,
                                cur.state.model_text, cur.state.architecture,
                                from_current=True)

    def new_cat_view(self, title: str, model_text: str = "") -> View:
        cur = self.current_view
        return self.create_view(cur.state.title, cur.state.source_text, title,
                                model_text, cur.state.architecture, from_current=True)

    def load_builtin_model(self, filename: str) -> None:
        """Replace the current cat model with a bundled one."""
        text = load_model_text(filename, self.settings.models_dir)
        view = self.current_view
        view.set_model_title(filename)
        view.edit_model(text)

    def toggle_option(self, key: str) -> bool:
        if not is_option(key):
            raise UnknownOptionError(key)
        view = self.current_view
        value = view.toggle_option(key)
        self.update_ui(view.state)
        return value

    def set_architecture(self, architecture: Architecture) -> None:
        view = self.current_view
        view.set_architecture(architecture)
        self.update_ui(view.state)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def begin_query(self, view: View) -> QueryRequest:
        """Reserve ``view`` for one outstanding query and build its request."""
        if view.query_pending:
            raise QueryInProgressError(f"a query is already running for {view.title!r}")
        view.query_pending = True
        state = view.state
        return QueryRequest.build(
            state.architecture, state.model_text, state.source_text,
            state.options["ignore_ifetch"],
        )

    def complete_query(self, view: View, result: CheckResult) -> None:
        """Apply a service response to ``view`` and emit one ``update``."""
        view.query_pending = False
        state = view.state
        if isinstance(result, Done):
            state.results = result
            state.auxiliary_output = result.auxiliary_output
            allowed = result.allowed_count
            if allowed > 0:
                model = ResultModel(result.execution_graphs, state.options)
                view.graph.set_model(model)
                state.executions = [g.copy() for g in result.execution_graphs]
                state.append_console(
                    f"Allowed: {allowed} out of {result.candidate_count} allowed\n"
                )
            else:
                graph = view.find_observer("graph")
                if graph is not None:
                    graph.set_model(None)
                state.executions = []
                state.append_console(
                    f"Forbidden: 0 out of {result.candidate_count} allowed\n"
                )
            view.mark_clean()
            log.info("%s: %d of %d candidates allowed",
                     view.title, allowed, result.candidate_count)
        elif isinstance(result, Error):
            message = result.message
            state.append_console(message if message.endswith("\n") else message + "\n")
            log.info("%s: checker reported an error", view.title)
        else:
            raise TypeError(f"not a check result: {result!r}")
        view.emit(Event.UPDATE)
        if isinstance(result, Done) and result.allowed_count > 0:
            # a fresh model carries no colours; both emits are no-ops unless enabled
            view.bus.highlighted = False
            view.emit(Event.HIGHLIGHT)
            view.emit(Event.MARK, view.marked_event)

    def fail_query(self, view: View, error: ServiceError) -> None:
        """Report a failed request; previous results stay in place."""
        view.query_pending = False
        message = f"Failed request! {error}"
        log.warning("%s: %s", view.title, message)
        self.alerts.append(message)
        view.state.append_console(message + "\n")
        view.emit(Event.UPDATE)

    def run_query(self) -> CheckResult | None:
        """Check the current view against the service.

        Returns the decoded result, or None when the request failed or a
        query for the view is still outstanding.
        """
        if self.service is None:
            raise RuntimeError("ViewController has no checking service")
        view = self.current_view
        try:
            request = self.begin_query(view)
        except QueryInProgressError as e:
            self.alerts.append(str(e))
            log.warning("%s", e)
            return None

        self.busy = True
        try:
            result = self.service.query(request, timeout=self.settings.request_timeout)
        except ServiceError as e:
            self.fail_query(view, e)
            return None
        except Exception:
            view.query_pending = False
            raise
        finally:
            self.busy = False
        try:
            self.complete_query(view, result)
        finally:
            view.query_pending = False
        return result

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    def share_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/#{self.current_view.encode_state()}"

    def restore(self, token: str) -> View:
        """Create a view from a share token (see ``View.encode_state``)."""
        decoded = StateSerializer().decode(token)
        model_title = decoded.model_title
        model = decoded.model
        if model is None and self._current is not None:
            model_title = model_title or self._current.state.model_title
            model = self._current.state.model_text
        arch = Architecture(decoded.arch) if decoded.arch else Architecture.AARCH64
        return self.create_view(decoded.title, decoded.source,
                                model_title or "model.cat", model or "",
                                arch, config=decoded.config)

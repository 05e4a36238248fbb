"""Dash web application hosting litmusview views."""
from __future__ import annotations

import json
import logging
import time

import dash
from dash import html, dcc, ctx, Input, Output, State, no_update
import dash_cytoscape as cyto

from litmusview.config import Settings, load_settings
from litmusview.controller import ViewController
from litmusview.errors import StateTokenError
from litmusview.graph_builder import GRAPH_STYLESHEET
from litmusview.library import CAT_SUFFIX, LITMUS_SUFFIX, find_model_files, load_model_text
from litmusview.service import (
    CachedCheckingService, HttpCheckingService, WorkerCheckingService,
)
from litmusview.state import OPTION_DEFAULTS, Architecture
from litmusview.view import View

log = logging.getLogger("litmusview")

# Callback log for debugging GUI interactions server-side
_callback_log: list[dict] = []
_CALLBACK_LOG_MAX = 200


def _log_callback(name: str, inputs: dict, error: str | None = None):
    entry = {"time": time.time(), "callback": name, "inputs": inputs}
    if error:
        entry["error"] = error
    _callback_log.append(entry)
    if len(_callback_log) > _CALLBACK_LOG_MAX:
        _callback_log.pop(0)


def build_controller(settings: Settings) -> ViewController:
    """Controller wired to the worker (if configured) or the HTTP service."""
    if settings.worker_path:
        inner = WorkerCheckingService(settings.worker_path, settings.resources_dir,
                                      settings.cache_dir)
    else:
        inner = HttpCheckingService(settings.service_url)
    controller = ViewController(CachedCheckingService(inner), settings)

    litmus_files = find_model_files(settings.models_dir, LITMUS_SUFFIX)
    cat_files = find_model_files(settings.models_dir, CAT_SUFFIX)
    litmus_name = litmus_files[0] if litmus_files else "litmus.toml"
    cat_name = cat_files[0] if cat_files else "model.cat"
    controller.create_view(
        litmus_name,
        load_model_text(litmus_name, settings.models_dir) if litmus_files else "",
        cat_name,
        load_model_text(cat_name, settings.models_dir) if cat_files else "",
        Architecture.AARCH64,
    )
    return controller


def _panel_contents(view: View) -> tuple[str, list, str, str]:
    console = view.console.content
    elements = view.graph.content
    objdump = view.get_or_create_observer("objdump", "Objdump").content
    memory = view.get_or_create_observer("memory", "Memory").content
    return console, elements, objdump, memory


def _status(view: View) -> str:
    if view.state.results is not None and view.is_dirty():
        return "Results are out of date."
    return ""


def create_app(controller: ViewController | None = None,
               settings: Settings | None = None) -> dash.Dash:
    settings = settings or load_settings()
    if controller is None:
        controller = build_controller(settings)

    app = dash.Dash(__name__, suppress_callback_exceptions=True,
                    title="litmusview")

    view = controller.current_view
    cat_files = find_model_files(settings.models_dir, CAT_SUFFIX)
    option_values = [k for k, v in view.state.options.items() if v]

    app.layout = html.Div([
        dcc.Location(id="url", refresh=False),

        # ---- Header ----
        html.Div([
            html.H2("litmusview", style={"margin": "0", "flex": "1"}),
            dcc.Dropdown(
                id="view-selector",
                options=_view_options(controller),
                value=controller.views.index(view),
                clearable=False,
                style={"width": "200px"},
            ),
            dcc.Input(id="new-view-title", type="text", placeholder="litmus.toml",
                      style={"width": "120px", "marginLeft": "8px"}),
            html.Button("New litmus", id="btn-new-litmus", n_clicks=0,
                        style=_btn_style("#3498db")),
            dcc.Dropdown(
                id="cat-selector",
                options=[{"label": f, "value": f} for f in cat_files],
                placeholder="Load cat model...",
                style={"width": "180px", "marginLeft": "8px"},
            ),
            dcc.RadioItems(
                id="arch-selector",
                options=[{"label": " AArch64", "value": Architecture.AARCH64.value}],
                value=view.state.architecture.value,
                inline=True,
                style={"marginLeft": "12px"},
            ),
            html.Button("Run", id="btn-run", n_clicks=0, style=_btn_style("#27ae60")),
            html.Button("Share", id="btn-share", n_clicks=0, style=_btn_style("#8e44ad")),
            dcc.Input(id="share-link", type="text", readOnly=True,
                      style={"width": "220px", "marginLeft": "8px", "fontSize": "11px"}),
            html.Button("Debug Log", id="btn-debug", n_clicks=0, style={
                "marginLeft": "16px", "fontSize": "11px", "padding": "4px 10px",
                "backgroundColor": "#7f8c8d", "color": "#fff", "border": "none",
                "borderRadius": "3px", "cursor": "pointer",
            }),
        ], style={
            "display": "flex", "alignItems": "center", "gap": "6px",
            "padding": "10px 20px", "backgroundColor": "#2c3e50", "color": "#ecf0f1",
        }),

        dcc.Checklist(
            id="option-checklist",
            options=[{"label": f" {k}", "value": k} for k in OPTION_DEFAULTS],
            value=option_values,
            inline=True,
            style={"fontSize": "12px", "padding": "4px 20px"},
        ),

        # ---- Debug Log Panel (hidden by default) ----
        html.Div(id="debug-panel", style={
            "display": "none", "padding": "8px 20px",
            "backgroundColor": "#1e1e1e", "color": "#d4d4d4",
            "maxHeight": "200px", "overflowY": "auto",
            "fontSize": "11px", "fontFamily": "Consolas, monospace",
        }),

        # ---- Main Content ----
        html.Div([
            # ---- Left Column: Editors ----
            html.Div([
                html.H4(view.state.title, id="litmus-title", style={"marginTop": "0"}),
                dcc.Textarea(id="litmus-editor", value=view.state.source_text,
                             style=_editor_style()),
                html.H4(view.state.model_title, id="cat-title"),
                dcc.Textarea(id="cat-editor", value=view.state.model_text,
                             style=_editor_style()),
                html.Div(id="run-status", style={
                    "marginTop": "8px", "fontSize": "12px", "color": "#e67e22",
                }),
            ], style={"flex": "1", "padding": "10px"}),

            # ---- Right Column: Results ----
            html.Div([
                html.H4("Console", style={"marginTop": "0"}),
                html.Pre(id="console-output", style=_pre_style("150px")),
                html.Div([
                    html.H4("Execution graph", style={"margin": "0", "flex": "1"}),
                    html.Button("◀", id="btn-prev-exec", n_clicks=0),
                    html.Button("▶", id="btn-next-exec", n_clicks=0),
                ], style={"display": "flex", "alignItems": "center", "gap": "4px"}),
                cyto.Cytoscape(
                    id="execution-graph",
                    layout={"name": "breadthfirst", "directed": True, "animate": False},
                    style={"width": "100%", "height": "380px", "border": "1px solid #ddd"},
                    stylesheet=GRAPH_STYLESHEET,
                    elements=[],
                ),
                html.H4("Memory"),
                html.Pre(id="memory-output", style=_pre_style("120px")),
                html.H4("Objdump"),
                html.Pre(id="objdump-output", style=_pre_style("160px")),
            ], style={"flex": "1", "padding": "10px"}),
        ], style={"display": "flex"}),
    ], style={"fontFamily": "Segoe UI, Arial, sans-serif"})

    # ================================================================
    # CALLBACKS
    # ================================================================

    @app.callback(
        Output("view-selector", "options"),
        Output("view-selector", "value"),
        Output("litmus-editor", "value"),
        Output("cat-editor", "value"),
        Output("litmus-title", "children"),
        Output("cat-title", "children"),
        Output("arch-selector", "value"),
        Output("option-checklist", "value"),
        Input("url", "hash"),
        Input("btn-new-litmus", "n_clicks"),
        Input("view-selector", "value"),
        State("new-view-title", "value"),
    )
    def sync_views(url_hash, n_new, selected, new_title):
        trigger = ctx.triggered_id
        _log_callback("sync_views", {"trigger": trigger, "selected": selected})
        try:
            if trigger == "url" and url_hash and len(url_hash) > 1:
                controller.restore(url_hash)
            elif trigger == "btn-new-litmus" and n_new:
                controller.new_litmus_view(new_title or "litmus.toml")
            elif trigger == "view-selector" and selected is not None \
                    and 0 <= selected < len(controller.views):
                controller.set_current_view(controller.views[selected])
        except StateTokenError as e:
            _log_callback("sync_views", {"hash": url_hash}, error=str(e))
            log.warning("Ignoring bad share token: %s", e)
        cur = controller.current_view
        st = cur.state
        return (
            _view_options(controller), controller.views.index(cur),
            st.source_text, st.model_text, st.title, st.model_title,
            st.architecture.value, [k for k, v in st.options.items() if v],
        )

    @app.callback(
        Output("run-status", "children"),
        Input("litmus-editor", "value"),
        Input("cat-editor", "value"),
        prevent_initial_call=True,
    )
    def edit_documents(litmus, cat):
        _log_callback("edit_documents", {"trigger": ctx.triggered_id})
        view = controller.current_view
        if ctx.triggered_id == "litmus-editor":
            view.edit_source(litmus or "")
        elif ctx.triggered_id == "cat-editor":
            view.edit_model(cat or "")
        return _status(view)

    @app.callback(
        Output("console-output", "children"),
        Output("execution-graph", "elements"),
        Output("objdump-output", "children"),
        Output("memory-output", "children"),
        Output("run-status", "children", allow_duplicate=True),
        Input("btn-run", "n_clicks"),
        prevent_initial_call=True,
    )
    def run_check(n):
        _log_callback("run_check", {"n": n})
        if not n:
            return (no_update,) * 5
        view = controller.current_view
        try:
            controller.run_query()
        except Exception as e:
            _log_callback("run_check", {"n": n}, error=str(e))
            log.exception("Error in run_check callback")
            return (no_update, no_update, no_update, no_update, f"Error: {e}")
        return (*_panel_contents(view), _status(view))

    @app.callback(
        Output("execution-graph", "elements", allow_duplicate=True),
        Input("option-checklist", "value"),
        prevent_initial_call=True,
    )
    def update_options(selected):
        _log_callback("update_options", {"selected": selected})
        view = controller.current_view
        wanted = set(selected or [])
        for key, value in list(view.state.options.items()):
            if (key in wanted) != value:
                controller.toggle_option(key)
        return view.graph.content

    @app.callback(
        Output("arch-selector", "style"),
        Input("arch-selector", "value"),
        prevent_initial_call=True,
    )
    def select_arch(arch):
        _log_callback("select_arch", {"arch": arch})
        if arch:
            controller.set_architecture(Architecture(arch))
        return no_update

    @app.callback(
        Output("cat-editor", "value", allow_duplicate=True),
        Output("cat-title", "children", allow_duplicate=True),
        Input("cat-selector", "value"),
        prevent_initial_call=True,
    )
    def load_cat(filename):
        _log_callback("load_cat", {"filename": filename})
        if not filename:
            return no_update, no_update
        try:
            controller.load_builtin_model(filename)
        except OSError as e:
            log.exception("Error loading cat model %s", filename)
            return no_update, f"Error: {e}"
        st = controller.current_view.state
        return st.model_text, st.model_title

    @app.callback(
        Output("share-link", "value"),
        Input("btn-share", "n_clicks"),
        State("url", "href"),
        prevent_initial_call=True,
    )
    def share(n, href):
        if not n:
            return no_update
        base = (href or "").split("#", 1)[0]
        return controller.share_url(base)

    @app.callback(
        Output("memory-output", "children", allow_duplicate=True),
        Output("execution-graph", "elements", allow_duplicate=True),
        Input("btn-prev-exec", "n_clicks"),
        Input("btn-next-exec", "n_clicks"),
        prevent_initial_call=True,
    )
    def step_execution(n_prev, n_next):
        view = controller.current_view
        if not view.state.executions:
            return no_update, no_update
        if view.state.interactive_session is None:
            view.begin_interactive()
        view.step_interactive(-1 if ctx.triggered_id == "btn-prev-exec" else 1)
        _, elements, _, memory = _panel_contents(view)
        return memory, elements

    @app.callback(
        Output("execution-graph", "elements", allow_duplicate=True),
        Input("execution-graph", "tapNodeData"),
        prevent_initial_call=True,
    )
    def mark_event(node_data):
        _log_callback("mark_event", {"node": node_data})
        if not node_data:
            return no_update
        view = controller.current_view
        view.mark(node_data.get("id"))
        return view.graph.content

    # ---- Debug log panel toggle ----
    @app.callback(
        Output("debug-panel", "children"),
        Output("debug-panel", "style"),
        Input("btn-debug", "n_clicks"),
        State("debug-panel", "style"),
        prevent_initial_call=True,
    )
    def toggle_debug_panel(n_clicks, current_style):
        if not n_clicks:
            return no_update, no_update
        visible = current_style.get("display", "none") != "none"
        new_style = {**current_style, "display": "none" if visible else "block"}
        if visible:
            return no_update, new_style
        from datetime import datetime
        lines = []
        for entry in reversed(_callback_log):
            ts = datetime.fromtimestamp(entry["time"]).strftime("%H:%M:%S")
            inputs_str = json.dumps(entry["inputs"], default=str)[:120]
            line = f"[{ts}] {entry['callback']}: {inputs_str}"
            if "error" in entry:
                line += f"  ERROR: {entry['error']}"
            lines.append(line)
        content = html.Pre("\n".join(lines) if lines else "(no callbacks logged yet)")
        return content, new_style

    return app


def _view_options(controller: ViewController) -> list[dict]:
    return [{"label": v.title, "value": i} for i, v in enumerate(controller.views)]


def _btn_style(color: str) -> dict:
    return {
        "backgroundColor": color, "color": "#fff", "border": "none",
        "padding": "6px 14px", "borderRadius": "4px", "cursor": "pointer",
        "fontSize": "13px", "marginLeft": "8px",
    }


def _editor_style() -> dict:
    return {
        "width": "100%", "height": "260px",
        "fontFamily": "Consolas, monospace", "fontSize": "12px",
        "resize": "vertical", "backgroundColor": "#1e1e1e", "color": "#d4d4d4",
        "border": "1px solid #555", "padding": "8px",
    }


def _pre_style(max_height: str) -> dict:
    return {
        "backgroundColor": "#f8f9fa", "padding": "6px", "fontSize": "11px",
        "maxHeight": max_height, "overflowY": "auto", "whiteSpace": "pre-wrap",
    }

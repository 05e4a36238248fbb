"""Shared fixtures for litmusview tests."""
from __future__ import annotations
import os
import sys
import pytest

# Ensure src/ is on the path so litmusview is importable without install
_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_SRC = os.path.join(_ROOT, "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from litmusview.config import Settings
from litmusview.controller import ViewController
from litmusview.state import Done, ExecutionGraph
from litmusview.view import View

EXAMPLES_DIR = os.path.join(_ROOT, "examples")


def _example_text(name: str) -> str:
    with open(os.path.join(EXAMPLES_DIR, name), encoding="utf-8") as f:
        return f.read()


# --------------- Execution graphs ---------------

# Message passing: both writes of thread 0 are seen out of order by thread 1
MP_GRAPH = {
    "events": [
        {"name": "a", "thread": 0, "label": "W x=1"},
        {"name": "b", "thread": 0, "label": "W y=1"},
        {"name": "c", "thread": 1, "label": "R y=1"},
        {"name": "d", "thread": 1, "label": "R x=0"},
        {"name": "t0", "thread": 0, "label": "ifetch", "internal": True},
    ],
    "relations": {
        "po": [["t0", "a"], ["a", "b"], ["c", "d"]],
        "rf": [["b", "c"]],
        "fr": [["d", "a"]],
        "co": [["a", "b"]],
    },
}


@pytest.fixture
def mp_graph():
    return ExecutionGraph.from_json(MP_GRAPH)


@pytest.fixture
def allowed_result(mp_graph):
    return Done([mp_graph], "obj", 3)


@pytest.fixture
def forbidden_result():
    return Done([], "", 3)


# --------------- Checking service ---------------

class FakeService:
    """Scripted checking service: returns or raises the queued outcomes in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def push(self, outcome) -> None:
        self.outcomes.append(outcome)

    def query(self, request, timeout=120.0):
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def settings():
    return Settings(models_dir=EXAMPLES_DIR)


# --------------- Views ---------------

@pytest.fixture
def mp_source():
    return _example_text("MP.toml")


@pytest.fixture
def sc_model():
    return _example_text("sc.cat")


@pytest.fixture
def view(mp_source, sc_model):
    return View("MP.toml", mp_source, "sc.cat", sc_model)


@pytest.fixture
def controller(service, settings, mp_source, sc_model):
    c = ViewController(service, settings)
    c.create_view("MP.toml", mp_source, "sc.cat", sc_model)
    return c


class Recorder:
    """Bus listener that remembers every call it receives."""

    def __init__(self):
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)

    @property
    def count(self) -> int:
        return len(self.calls)


@pytest.fixture
def recorder():
    return Recorder()

"""Checking-service clients: HTTP query endpoint and local worker process."""
from __future__ import annotations

import hashlib
import json
import logging
import os
import subprocess
import threading
from dataclasses import asdict, dataclass
from typing import Protocol

import requests

from litmusview.config import DEFAULT_TIMEOUT, DEFAULT_WORKER
from litmusview.errors import ResponseFormatError, ServiceError, ServiceTimeoutError
from litmusview.state import Architecture, CheckResult, Done, Error, ExecutionGraph

log = logging.getLogger("litmusview.service")

MAX_WORKERS = 10
_CACHE_MAX = 32


@dataclass(frozen=True)
class QueryRequest:
    arch: str
    cat: str
    litmus: str
    ignore_ifetch: bool = False

    @classmethod
    def build(cls, architecture: Architecture, model_text: str, source_text: str,
              ignore_ifetch: bool) -> QueryRequest:
        return cls(Architecture(architecture).value, model_text, source_text, bool(ignore_ifetch))

    def params(self) -> dict[str, str]:
        """Query-string parameters for ``GET /query``."""
        return {
            "arch": self.arch,
            "cat": self.cat,
            "litmus": self.litmus,
            "ignore_ifetch": "true" if self.ignore_ifetch else "false",
        }

    def cache_key(self) -> str:
        return hashlib.sha256(json.dumps(asdict(self), sort_keys=True).encode()).hexdigest()


# ---------------------------------------------------------------------------
# Response decoding
# ---------------------------------------------------------------------------

def decode_response(payload: object) -> CheckResult:
    """Decode a ``{"tag": ..., "content": ...}`` response.

    ``Done`` and ``Error`` map to the result types; any other tag or a
    malformed body raises ``ResponseFormatError``.
    """
    if not isinstance(payload, dict) or "tag" not in payload:
        raise ResponseFormatError(f"response is not a tagged object: {payload!r:.200}")
    tag = payload["tag"]
    content = payload.get("content")
    if tag == "Done":
        if not isinstance(content, dict):
            raise ResponseFormatError("Done response without content")
        graphs = content.get("graphs", [])
        candidates = content.get("candidates")
        if not isinstance(graphs, list) or not isinstance(candidates, int) \
                or isinstance(candidates, bool):
            raise ResponseFormatError("Done response needs a graph list and a candidate count")
        return Done(
            execution_graphs=[ExecutionGraph.from_json(g) for g in graphs],
            auxiliary_output=str(content.get("objdump", "")),
            candidate_count=candidates,
        )
    if tag == "Error":
        if not isinstance(content, dict) or "message" not in content:
            raise ResponseFormatError("Error response without a message")
        return Error(message=str(content["message"]))
    raise ResponseFormatError(f"unexpected response tag {tag!r}")


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

class CheckingService(Protocol):
    def query(self, request: QueryRequest, timeout: float = DEFAULT_TIMEOUT) -> CheckResult:
        """Run ``request``; raise ``ServiceError`` if no usable answer arrives."""
        ...


class HttpCheckingService:
    """Talks to the web server's ``/query`` endpoint."""

    def __init__(self, base_url: str, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def query(self, request: QueryRequest, timeout: float = DEFAULT_TIMEOUT) -> CheckResult:
        url = f"{self.base_url}/query"
        log.info("GET %s (arch=%s)", url, request.arch)
        try:
            resp = self.session.get(
                url,
                params=request.params(),
                headers={"Accept": "application/json; charset=utf-8"},
                timeout=timeout,
            )
            resp.raise_for_status()
        except requests.exceptions.Timeout:
            raise ServiceTimeoutError(f"no response after {timeout:.0f} seconds") from None
        except requests.exceptions.RequestException as e:
            raise ServiceError(str(e)) from e
        try:
            payload = resp.json()
        except ValueError as e:
            raise ResponseFormatError(f"response is not JSON: {e}") from e
        return decode_response(payload)


def worker_available(path: str | None = None) -> bool:
    """Check if the worker binary exists."""
    return os.path.isfile(path or DEFAULT_WORKER)


class WorkerCheckingService:
    """Runs the checker worker binary directly, one process per query.

    The request is written to the worker's stdin as JSON and the tagged
    response is read from its stdout. At most ``MAX_WORKERS`` processes run
    at once.
    """

    _slots = threading.BoundedSemaphore(MAX_WORKERS)

    def __init__(self, worker_path: str | None = None, resources_dir: str = "",
                 cache_dir: str = "", ld_library_path: str | None = None):
        self.worker_path = worker_path or DEFAULT_WORKER
        self.resources_dir = resources_dir
        self.cache_dir = cache_dir
        self.ld_library_path = ld_library_path

    def command(self) -> list[str]:
        args = [self.worker_path]
        if self.resources_dir:
            args += ["--resources", self.resources_dir]
        if self.cache_dir:
            args += ["--cache", self.cache_dir]
        return args

    def query(self, request: QueryRequest, timeout: float = DEFAULT_TIMEOUT) -> CheckResult:
        if not os.path.isfile(self.worker_path):
            raise ServiceError(f"worker binary not found at: {self.worker_path}")
        env = None
        if self.ld_library_path:
            env = {**os.environ, "LD_LIBRARY_PATH": self.ld_library_path}
        with self._slots:
            try:
                proc = subprocess.run(
                    self.command(),
                    input=json.dumps(asdict(request)),
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                    env=env,
                )
            except subprocess.TimeoutExpired:
                raise ServiceTimeoutError(f"worker timed out after {timeout:.0f} seconds") from None
            except OSError as e:
                raise ServiceError(f"could not start worker: {e}") from e

        if proc.returncode != 0:
            stderr = proc.stderr.strip()[:200]
            log.warning("worker exited with %d: %s", proc.returncode, stderr)
            raise ServiceError(f"worker exited with {proc.returncode}: {stderr}")
        try:
            payload = json.loads(proc.stdout)
        except ValueError as e:
            raise ResponseFormatError(f"worker output is not JSON: {e}") from e
        return decode_response(payload)


class CachedCheckingService:
    """Memoises responses of another service, keyed by the full request."""

    def __init__(self, inner: CheckingService, max_entries: int = _CACHE_MAX):
        self.inner = inner
        self.max_entries = max_entries
        self._cache: dict[str, CheckResult] = {}
        self._lock = threading.Lock()

    def query(self, request: QueryRequest, timeout: float = DEFAULT_TIMEOUT) -> CheckResult:
        key = request.cache_key()
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            log.debug("cache hit %s", key[:12])
            return cached.copy()
        result = self.inner.query(request, timeout)
        with self._lock:
            self._cache[key] = result
            if len(self._cache) > self.max_entries:
                oldest = next(iter(self._cache))
                del self._cache[oldest]
        return result.copy()

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

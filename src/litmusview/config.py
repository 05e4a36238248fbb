"""Runtime settings, read from ``LITMUSVIEW_*`` environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass

# Repository root (src/litmusview/config.py -> ../../..)
_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

DEFAULT_SERVICE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 120.0  # seconds, matches the checking service's own bound
DEFAULT_PORT = 8050
DEFAULT_MODELS_DIR = os.path.join(_ROOT, "examples")
DEFAULT_WORKER = os.path.join(_ROOT, "bin", "isla-worker")

_ENV_PREFIX = "LITMUSVIEW_"


@dataclass
class Settings:
    service_url: str = DEFAULT_SERVICE_URL
    request_timeout: float = DEFAULT_TIMEOUT
    port: int = DEFAULT_PORT
    models_dir: str = DEFAULT_MODELS_DIR
    worker_path: str | None = None
    resources_dir: str = ""
    cache_dir: str = ""


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build settings from the environment, falling back to module defaults.

    Recognised variables: ``LITMUSVIEW_SERVICE_URL``, ``LITMUSVIEW_TIMEOUT``,
    ``LITMUSVIEW_PORT``, ``LITMUSVIEW_MODELS_DIR``, ``LITMUSVIEW_WORKER``,
    ``LITMUSVIEW_RESOURCES`` and ``LITMUSVIEW_CACHE_DIR``. Setting
    ``LITMUSVIEW_WORKER`` switches the host from the HTTP service to a local
    worker process.
    """
    env = os.environ if environ is None else environ

    def get(name: str, default: str) -> str:
        return env.get(_ENV_PREFIX + name, default)

    try:
        timeout = float(get("TIMEOUT", str(DEFAULT_TIMEOUT)))
    except ValueError:
        timeout = DEFAULT_TIMEOUT
    try:
        port = int(get("PORT", str(DEFAULT_PORT)))
    except ValueError:
        port = DEFAULT_PORT

    return Settings(
        service_url=get("SERVICE_URL", DEFAULT_SERVICE_URL).rstrip("/"),
        request_timeout=timeout,
        port=port,
        models_dir=get("MODELS_DIR", DEFAULT_MODELS_DIR),
        worker_path=env.get(_ENV_PREFIX + "WORKER") or None,
        resources_dir=get("RESOURCES", ""),
        cache_dir=get("CACHE_DIR", ""),
    )

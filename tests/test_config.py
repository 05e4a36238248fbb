"""Tests for settings loaded from the environment."""
from litmusview.config import (
    DEFAULT_MODELS_DIR, DEFAULT_PORT, DEFAULT_SERVICE_URL, DEFAULT_TIMEOUT, load_settings,
)


class TestLoadSettings:
    def test_defaults(self):
        s = load_settings({})
        assert s.service_url == DEFAULT_SERVICE_URL
        assert s.request_timeout == DEFAULT_TIMEOUT == 120.0
        assert s.port == DEFAULT_PORT
        assert s.models_dir == DEFAULT_MODELS_DIR
        assert s.worker_path is None

    def test_overrides(self):
        s = load_settings({
            "LITMUSVIEW_SERVICE_URL": "http://checker:9000/",
            "LITMUSVIEW_TIMEOUT": "30",
            "LITMUSVIEW_PORT": "8123",
            "LITMUSVIEW_MODELS_DIR": "/models",
            "LITMUSVIEW_WORKER": "/opt/isla/worker",
            "LITMUSVIEW_RESOURCES": "/opt/isla/res",
            "LITMUSVIEW_CACHE_DIR": "/tmp/isla",
        })
        assert s.service_url == "http://checker:9000"
        assert s.request_timeout == 30.0
        assert s.port == 8123
        assert s.models_dir == "/models"
        assert s.worker_path == "/opt/isla/worker"
        assert s.resources_dir == "/opt/isla/res"
        assert s.cache_dir == "/tmp/isla"

    def test_bad_numbers_fall_back(self):
        s = load_settings({"LITMUSVIEW_TIMEOUT": "soon", "LITMUSVIEW_PORT": "http"})
        assert s.request_timeout == DEFAULT_TIMEOUT
        assert s.port == DEFAULT_PORT

    def test_empty_worker_means_http(self):
        assert load_settings({"LITMUSVIEW_WORKER": ""}).worker_path is None

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("LITMUSVIEW_PORT", "9999")
        assert load_settings().port == 9999

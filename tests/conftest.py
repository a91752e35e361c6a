"""Shared pytest fixtures."""

from unittest.mock import MagicMock

import pytest
import yaml

from formation.config import FormationSettings, get_settings
from formation.elements import FormBuilder
from formation.values import MappingOldInput


class FakeUrls:
    """UrlResolver stand-in producing predictable URLs."""

    def to(self, path, params=None, secure=None):
        scheme = "https" if secure else "http"
        if path.startswith(("http://", "https://")):
            return path
        suffix = "".join(f"/{p}" for p in (params or []))
        return f"{scheme}://example.test/{path.lstrip('/')}{suffix}"

    def route(self, name, params=None):
        query = "&".join(f"{k}={v}" for k, v in (params or {}).items())
        return f"http://example.test/route/{name}" + (f"?{query}" if query else "")

    def action(self, action, params=None):
        return f"http://example.test/action/{action}"

    def asset(self, path, secure=None):
        scheme = "https" if secure else "http"
        return f"{scheme}://cdn.example.test/{path.lstrip('/')}"

    def current(self):
        return "http://example.test/current"

    def previous(self):
        return "http://example.test/previous"


class FakeCsrf:
    def __init__(self, token="tok-123"):
        self._token = token

    def token(self):
        return self._token


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make sure every test reads settings fresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return FormationSettings()


@pytest.fixture
def urls():
    return FakeUrls()


@pytest.fixture
def csrf():
    return FakeCsrf()


@pytest.fixture
def builder_factory(settings):
    """Factory fixture returning FormBuilders with optional old input / model."""
    from formation.html import HtmlBuilder

    def _make(old=None, model=None, url=None, csrf=None):
        old_input = MappingOldInput(old) if old is not None else None
        return FormBuilder(
            HtmlBuilder(url),
            old_input=old_input,
            model=model,
            csrf=csrf,
            settings=settings,
        )

    return _make


@pytest.fixture
def temp_config_yaml(tmp_path):
    """Create a temporary formation.yaml file for testing."""
    config_path = tmp_path / "formation.yaml"

    def _create_config(config: dict):
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        return config_path

    return _create_config


@pytest.fixture
def mock_request_factory():
    """Factory fixture that returns mock requests with a session dict."""
    def _make(session=None, headers=None, base_url="http://testserver/", url="http://testserver/items/1"):
        request = MagicMock()
        request.session = session if session is not None else {}
        request.headers = headers or {}
        request.base_url = base_url
        request.url = url
        return request
    return _make

"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib

import pytest

from app.core.config import Settings
from app.observability import client as client_module


class _DummyOpik:
    def __init__(self, *args, **kwargs):
        self.kwargs = kwargs
        self.traces = []

    def trace(self, **kwargs):
        self.traces.append(kwargs)
        return None


@pytest.fixture(autouse=True)
def _reset_client():
    client_module.reset_opik()
    yield
    client_module.reset_opik()


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import app.core.config as core_config
    import app.main as main_module

    importlib.reload(core_config)
    reloaded_app = importlib.reload(main_module)

    assert hasattr(reloaded_app, "app")


def test_init_opik_disabled_returns_none(monkeypatch) -> None:
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)

    assert client_module.init_opik(Settings(opik_enabled=False)) is None
    assert client_module.get_opik_client() is None


def test_init_opik_requires_api_key(monkeypatch) -> None:
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)

    assert client_module.init_opik(Settings(opik_enabled=True, opik_api_key=None)) is None
    assert client_module.get_opik_client() is None


def test_init_opik_creates_client_once(monkeypatch) -> None:
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    config = Settings(opik_enabled=True, opik_api_key="key", opik_project="nextaction-test")

    first = client_module.init_opik(config)
    second = client_module.init_opik(config)

    assert isinstance(first, _DummyOpik)
    assert first is second
    assert first.kwargs == {"project_name": "nextaction-test", "api_key": "key"}
    assert client_module.get_opik_client() is first

    client_module.reset_opik()
    assert client_module.get_opik_client() is None

"""Shared fixtures for curlbridge tests."""

import json

import pytest
from click.testing import CliRunner

from curlbridge import core
from curlbridge.executor import TransportResponse
from curlbridge.models import Environment


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def global_curlbridge_dir(tmp_path, monkeypatch):
    """Override the global ~/.curlbridge directory to a temp location."""
    fake_global = tmp_path / "fake_home" / ".curlbridge"
    fake_global.mkdir(parents=True)
    monkeypatch.setattr(core, "GLOBAL_DIR", fake_global)
    monkeypatch.setattr(core, "GLOBAL_CONFIG", fake_global / "config.yaml")
    monkeypatch.setattr(core, "GLOBAL_HISTORY", fake_global / "history.json")
    return fake_global


@pytest.fixture(autouse=True)
def isolate_history(tmp_path, monkeypatch):
    """Prevent tests from polluting ~/.curlbridge/history.json."""
    from curlbridge import cli

    monkeypatch.setattr(cli, "HISTORY_FILE", tmp_path / "test_history.json")


@pytest.fixture
def api_env():
    env = Environment(name="staging")
    env.set_variable("host", "api.x.com")
    env.set_variable("path", "v1")
    env.set_variable("token", "s3cret")
    return env


def make_transport_response(
    status_code=200,
    body=None,
    headers=None,
    elapsed_ms=42.0,
    status_text="OK",
    raw_text="",
):
    """Factory for TransportResponse objects."""
    r = TransportResponse()
    r.status_code = status_code
    r.status_text = status_text
    r.headers = headers or {}
    r.body = body
    r.elapsed_ms = elapsed_ms
    r.raw_text = raw_text or (
        json.dumps(body) if isinstance(body, dict | list) else str(body or "")
    )
    return r


class FakeTransport:
    """Records descriptors; returns a canned response or raises a canned error."""

    def __init__(self, response=None, error=None):
        self.response = response if response is not None else make_transport_response()
        self.error = error
        self.calls = []

    def __call__(self, descriptor):
        self.calls.append(descriptor)
        if self.error is not None:
            raise self.error
        return self.response

    @property
    def last(self):
        return self.calls[-1]

import os

import pytest

import logfanout
from logfanout.diagnostics import LoggerFactory
from logfanout.settings import CONNECTION_STRING_ENV_VAR


@pytest.fixture(autouse=True)
def isolated_logfanout(monkeypatch):
    """Every test starts without environment configuration and without a default context."""
    for name in list(os.environ):
        if name.startswith("LOGFANOUT_") or name == CONNECTION_STRING_ENV_VAR:
            monkeypatch.delenv(name, raising=False)
    LoggerFactory.reset()
    monkeypatch.setattr(logfanout, "_context", None)
    monkeypatch.setattr(logfanout, "_dispatcher", None)
    yield
    if logfanout._context is not None:
        logfanout._context.telemetry.reset()
    LoggerFactory.reset()

from __future__ import annotations

import pytest
from pydantic import ValidationError

from miqro.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    settings = Settings()
    assert settings.port == 3000
    assert settings.duplicate_policy == "overwrite"
    assert settings.workflow_modules == []


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("LOG_LEVEL", "warning")
    monkeypatch.setenv("MIQRO_WORKFLOW_MODULES", "pkg.one, pkg.two,")
    monkeypatch.setenv("MIQRO_DUPLICATE_POLICY", "error")
    settings = Settings()
    assert settings.port == 8080
    assert settings.log_level == "WARNING"
    assert settings.workflow_modules == ["pkg.one", "pkg.two"]
    assert settings.duplicate_policy == "error"


def test_json_module_list(monkeypatch):
    monkeypatch.setenv("MIQRO_WORKFLOW_MODULES", '["a.b", "c.d"]')
    assert Settings().workflow_modules == ["a.b", "c.d"]


@pytest.mark.parametrize("env,value", [("PORT", "0"), ("LOG_LEVEL", "chatty"), ("MIQRO_DUPLICATE_POLICY", "skip")])
def test_invalid_values_rejected(monkeypatch, env, value):
    monkeypatch.setenv(env, value)
    with pytest.raises(ValidationError):
        Settings()

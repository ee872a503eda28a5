from __future__ import annotations

import importlib

import pytest

from crew_ledger.config import get_settings_module


@pytest.mark.parametrize(
    "env, expected",
    [
        ("production", "crew_ledger.config.production"),
        ("PROD", "crew_ledger.config.production"),
        ("testing", "crew_ledger.config.testing"),
        ("development", "crew_ledger.config.development"),
        ("staging", "crew_ledger.config.development"),
    ],
)
def test_settings_module_follows_app_env(monkeypatch, env, expected):
    monkeypatch.setenv("APP_ENV", env)
    assert get_settings_module() == expected


def test_settings_module_defaults_to_development(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)
    assert get_settings_module() == "crew_ledger.config.development"


def test_testing_settings_use_memory_backend_without_remote():
    settings = importlib.import_module("crew_ledger.config.testing")

    assert settings.LEDGER_BACKEND == "memory"
    assert settings.REMOTE_BASE_URL == ""
    assert settings.AUTO_INIT_DB is False

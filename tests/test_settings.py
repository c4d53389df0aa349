from __future__ import annotations

import pytest

from academy_dashboard.config import get_settings_module


@pytest.mark.parametrize(
    "env,module",
    [
        ("production", "academy_dashboard.config.production"),
        ("PROD", "academy_dashboard.config.production"),
        ("testing", "academy_dashboard.config.testing"),
        ("anything", "academy_dashboard.config.development"),
    ],
)
def test_settings_module_by_app_env(monkeypatch, env, module):
    monkeypatch.setenv("APP_ENV", env)

    assert get_settings_module() == module


def test_settings_module_defaults_to_development(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)

    assert get_settings_module() == "academy_dashboard.config.development"

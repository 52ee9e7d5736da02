from __future__ import annotations

import importlib

from microlog_app import config


def test_secure_cookie_flag_read_from_its_own_key(monkeypatch):
    monkeypatch.setenv("SESSION_COOKIE_SECURE", "true")
    try:
        assert importlib.reload(config).BaseConfig.SESSION_COOKIE_SECURE is True
    finally:
        monkeypatch.delenv("SESSION_COOKIE_SECURE")
        importlib.reload(config)
    assert config.BaseConfig.SESSION_COOKIE_SECURE is False


def test_env_bool_parsing(monkeypatch):
    monkeypatch.setenv("MICROLOG_FLAG", " Yes ")
    assert config._env_bool("MICROLOG_FLAG") is True
    monkeypatch.setenv("MICROLOG_FLAG", "off")
    assert config._env_bool("MICROLOG_FLAG", True) is False
    monkeypatch.delenv("MICROLOG_FLAG")
    assert config._env_bool("MICROLOG_FLAG", True) is True

# tests/test_settings.py
from __future__ import annotations

import sys
import logging
from pathlib import Path
from typing import Any

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from verifyform.settings import DEFAULT_COLLECTION_KEY, EnvironmentConfig, configure_logging, load_config

def test_defaults_when_environment_is_empty() -> None:
    config = load_config({})
    assert config == EnvironmentConfig()
    assert config.default_collection_key == DEFAULT_COLLECTION_KEY
    assert config.port == 8080
    assert config.dev_mode is False
    assert config.log_level == 'INFO'

def test_values_are_read_from_environment() -> None:
    config = load_config({
        'DEFAULT_COLLECTION_KEY': 'en-M-N-N-N-N-N-C',
        'PORT': '9000',
        'DEV_MODE': 'TRUE',
        'LOG_LEVEL': 'debug',
        'STORAGE_SECRET': 's3cret',
    })
    assert config.default_collection_key == 'en-M-N-N-N-N-N-C'
    assert config.port == 9000
    assert config.dev_mode is True, "DEV_MODE is case-insensitive"
    assert config.log_level == 'DEBUG'
    assert config.storage_secret == 's3cret'

@pytest.mark.parametrize("raw", ['1', 'yes', 'false', ''])
def test_dev_mode_only_for_true(raw: str) -> None:
    assert load_config({'DEV_MODE': raw}).dev_mode is False

def test_bad_port_falls_back(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        config = load_config({'PORT': 'eighty'})
    assert config.port == 8080
    assert "PORT" in caplog.text

def test_bad_log_level_falls_back(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        config = load_config({'LOG_LEVEL': 'chatty'})
    assert config.log_level == 'INFO'
    assert "LOG_LEVEL" in caplog.text

def test_configure_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(logging, 'basicConfig', lambda **kwargs: calls.append(kwargs))

    configure_logging(EnvironmentConfig(log_level='WARNING'))
    configure_logging(EnvironmentConfig(log_level='WARNING', dev_mode=True))

    assert calls[0]['level'] == logging.WARNING
    assert calls[1]['level'] == logging.DEBUG, "Dev mode always logs at DEBUG"
    assert '%(levelname)s' in calls[0]['format']

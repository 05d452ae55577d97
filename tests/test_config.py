from datetime import timedelta

import pytest
from pydantic import ValidationError

from pack_components.card_utils.pack_utils import PACK_JSON_DIR
from pack_components.config import EngineConfig
from pack_components.errors import ConfigurationError


def test_defaults():
    config = EngineConfig()
    assert config.expiry_window == timedelta(days=14)
    assert config.conversion_rate == 0.5
    assert config.starting_credits == 1500
    assert config.pack_json_dir == PACK_JSON_DIR


def test_shipping_fee():
    config = EngineConfig()
    assert config.shipping_fee(1) == 17
    assert config.shipping_fee(3) == 21


def test_values_are_validated():
    with pytest.raises(ValidationError):
        EngineConfig(conversion_rate=1.5)
    with pytest.raises(ValidationError):
        EngineConfig(expiry_window_days=0)


def test_from_env_reads_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("PACK_EXPIRY_DAYS", "30")
    monkeypatch.setenv("PACK_CONVERSION_RATE", "0.25")
    monkeypatch.setenv("PACK_JSON_DIR", str(tmp_path))
    config = EngineConfig.from_env()
    assert config.expiry_window == timedelta(days=30)
    assert config.conversion_rate == 0.25
    assert config.pack_json_dir == tmp_path
    assert config.shipping_base_fee == 15


def test_from_env_rejects_bad_values(monkeypatch):
    monkeypatch.setenv("PACK_CONVERSION_RATE", "2")
    with pytest.raises(ConfigurationError):
        EngineConfig.from_env()

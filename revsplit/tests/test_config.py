import json

import pytest

from revsplit.config import Limits, get_config, load_config


def test_defaults():
    cfg = load_config(env={})
    assert cfg.limits == Limits(224, 32, 8, 256)
    assert cfg.limits.max_members == 255
    assert cfg.log_level == "INFO"
    assert cfg.metrics_enabled is True


def test_env_overrides():
    cfg = load_config(env={
        "REVSPLIT_AMOUNT_BITS": "128",
        "REVSPLIT_WEIGHT_BITS": "0x10",
        "REVSPLIT_LOG_LEVEL": "debug",
        "REVSPLIT_METRICS": "off",
    })
    assert cfg.limits.amount_bits == 128
    assert cfg.limits.weight_bits == 16
    assert cfg.log_level == "DEBUG"
    assert cfg.metrics_enabled is False


def test_widths_must_fit_accumulator():
    with pytest.raises(ValueError):
        load_config(env={"REVSPLIT_AMOUNT_BITS": "240", "REVSPLIT_WEIGHT_BITS": "32"})
    with pytest.raises(ValueError):
        load_config(env={"REVSPLIT_ID_BITS": "nope"})


def test_file_then_env(tmp_path):
    path = tmp_path / "revsplit.yaml"
    path.write_text("limits:\n  amount_bits: 200\n  weight_bits: 40\nlog_level: WARNING\n")
    cfg = load_config(env={"REVSPLIT_CONFIG_FILE": str(path), "REVSPLIT_WEIGHT_BITS": "48"})
    assert cfg.limits.amount_bits == 200
    assert cfg.limits.weight_bits == 48
    assert cfg.log_level == "WARNING"

    jpath = tmp_path / "revsplit.json"
    jpath.write_text(json.dumps({"metrics_enabled": False}))
    assert load_config(env={"REVSPLIT_CONFIG_FILE": str(jpath)}).metrics_enabled is False


def test_get_config_is_cached(monkeypatch):
    monkeypatch.setenv("REVSPLIT_ID_BITS", "4")
    get_config.cache_clear()
    assert get_config().limits.max_members == 15
    monkeypatch.setenv("REVSPLIT_ID_BITS", "5")
    assert get_config().limits.max_members == 15


def test_as_dict_includes_derived_caps():
    d = load_config(env={}).as_dict()
    assert d["limits"]["max_amount"] == (1 << 224) - 1

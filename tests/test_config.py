"""
Tests for configuration loading.
"""

import dataclasses

import pytest

from analysis.config import DEFAULT_SETTINGS, AnalyzerConfig, load_config, load_settings


def test_defaults():
    config = AnalyzerConfig()
    assert config.len1 == 4
    assert config.zigzag_min_change_percent == 0.5
    assert config.min_confidence == 70.0
    assert config.fib1618 == 1.618


def test_config_is_immutable():
    config = AnalyzerConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.len1 = 10


@pytest.mark.parametrize("kwargs", [{"len1": 0}, {"zigzag_min_change_percent": -1}, {"min_confidence": 120}])
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValueError):
        AnalyzerConfig(**kwargs)


def test_from_dict_ignores_unknown_keys():
    config = AnalyzerConfig.from_dict({"len1": 3, "no_such_setting": True})
    assert config.len1 == 3


def test_load_settings_merges_sections(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("analyzer:\n  len1: 5\n  min_confidence: 80\ndata_source:\n  default_symbol: ETHUSDT\n")

    settings = load_settings(str(path))

    assert settings["analyzer"]["len1"] == 5
    assert settings["data_source"]["default_symbol"] == "ETHUSDT"
    assert settings["data_source"]["default_interval"] == DEFAULT_SETTINGS["data_source"]["default_interval"]
    assert settings["api"]["symbol_rate_limit_seconds"] == 1

    config = load_config(str(path))
    assert config.len1 == 5
    assert config.min_confidence == 80


def test_missing_file_uses_defaults(tmp_path, caplog):
    settings = load_settings(str(tmp_path / "missing.yaml"))
    assert settings["data_source"] == DEFAULT_SETTINGS["data_source"]
    assert "not found" in caplog.text


def test_malformed_yaml_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("analyzer: [unclosed\n")
    assert load_config(str(path)) == AnalyzerConfig()


@pytest.mark.parametrize("content", ["- analyzer\n- data_source\n", "just a string\n", "42\n"])
def test_non_mapping_yaml_uses_defaults(tmp_path, caplog, content):
    path = tmp_path / "config.yaml"
    path.write_text(content)

    settings = load_settings(str(path))

    assert settings["data_source"] == DEFAULT_SETTINGS["data_source"]
    assert "must contain a mapping" in caplog.text
    assert load_config(str(path)) == AnalyzerConfig()


def test_fibonacci_ratio_fields():
    names = [f.name for f in dataclasses.fields(AnalyzerConfig) if f.name.startswith("fib")]
    assert names == ["fib236", "fib382", "fib500", "fib618", "fib764", "fib786",
                     "fib1000", "fib1272", "fib1618", "fib2618"]


def test_defaults_not_mutated_by_loading(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("data_source:\n  default_limit: 999\n")
    load_settings(str(path))
    assert DEFAULT_SETTINGS["data_source"]["default_limit"] == 200

import json

import pytest

import context._globals as _globals
from context.config import Config, Settings
from djazure.errors import ConfigError


@pytest.fixture
def no_default_file(monkeypatch, tmp_path):
    monkeypatch.setattr(_globals, "GLOBAL_CFG_FILE", tmp_path / "missing.toml")


def test_load_defaults_without_file(no_default_file):
    settings = Config.load()
    assert isinstance(settings, Settings)
    assert settings.project == "myapp"
    assert settings.environment == "production"
    assert settings.region == "West Europe"
    assert settings.db_storage_gb == 32
    assert settings.rollback_on_failure is False


def test_load_toml_file(tmp_path):
    cfg = tmp_path / "djazure.toml"
    cfg.write_text('project = "shop"\nenvironment = "staging"\ndb_storage_gb = 64\n', encoding="utf-8")
    settings = Config.load(cfg)
    assert settings.project == "shop"
    assert settings.environment == "staging"
    assert settings.db_storage_gb == 64


def test_load_toml_section(tmp_path):
    cfg = tmp_path / "settings.toml"
    cfg.write_text('[djazure]\nproject = "blog"\nregion = "North Europe"\n', encoding="utf-8")
    settings = Config.load(cfg)
    assert settings.project == "blog"
    assert settings.region == "North Europe"


def test_load_yaml_coerces_numeric_version(tmp_path):
    cfg = tmp_path / "djazure.yaml"
    cfg.write_text("project: api\ndb_version: 16\npython_version: 3.12\n", encoding="utf-8")
    settings = Config.load(cfg)
    assert settings.db_version == "16"
    assert settings.python_version == "3.12"


def test_load_json_file(tmp_path):
    cfg = tmp_path / "djazure.json"
    cfg.write_text(json.dumps({"project": "crm", "secret_backend": "openssl"}), encoding="utf-8")
    assert Config.load(cfg).secret_backend == "openssl"


def test_overrides_win_over_file(tmp_path):
    cfg = tmp_path / "djazure.toml"
    cfg.write_text('project = "shop"\n', encoding="utf-8")
    settings = Config.load(cfg, {"project": "app", "region": None})
    assert settings.project == "app"
    assert settings.region == "West Europe"


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError):
        Config.load(tmp_path / "nope.toml")


def test_unsupported_format(tmp_path):
    cfg = tmp_path / "djazure.ini"
    cfg.write_text("[x]\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Config.load(cfg)


def test_broken_toml(tmp_path):
    cfg = tmp_path / "djazure.toml"
    cfg.write_text("project = \n", encoding="utf-8")
    with pytest.raises(ConfigError):
        Config.load(cfg)


def test_unknown_option_rejected(no_default_file):
    with pytest.raises(ConfigError, match="sku_tier"):
        Config.load(overrides={"sku_tier": "gold"})


@pytest.mark.parametrize("overrides", [
    {"secret_backend": "vault"},
    {"db_storage_gb": 0},
    {"db_storage_gb": "32"},
    {"project": ""},
    {"project": "1app"},
    {"project": "Ü1app"},
    {"log_level": "LOUD"},
    {"rollback_on_failure": "yes"},
])
def test_invalid_values_rejected(no_default_file, overrides):
    with pytest.raises(ConfigError):
        Config.load(overrides=overrides)


def test_log_level_is_normalized(no_default_file):
    assert Config.load(overrides={"log_level": "debug"}).log_level == "DEBUG"


def test_settings_are_frozen(no_default_file):
    settings = Config.load()
    with pytest.raises(AttributeError):
        settings.project = "other"

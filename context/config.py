import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import toml
import yaml

import context._globals as _globals
from djazure.errors import ConfigError
from util.error_handling import check_types


@dataclass(frozen=True)
class Settings:
    """
    Read-only provisioning settings. One attribute per recognized option;
    defaults live in context._globals.SETTINGS_DEFAULT.
    """
    project: str
    environment: str
    region: str
    app_service_sku: str
    db_sku: str
    db_tier: str
    db_storage_gb: int
    db_version: str
    db_admin_user: str
    storage_sku: str
    python_version: str
    django_settings_module: str
    wsgi_module: str
    created_by: str
    secret_backend: str
    output_dir: str
    summary_file: str
    rollback_on_failure: bool
    log_level: str

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir)


class Config:
    """
    Configuration loader supporting multi-format file loading and validation.

    Loads configuration from TOML, JSON, or YAML files, layers it over the defaults,
    applies command-line overrides and validates the result into a frozen Settings.

    File format is auto-detected based on file extension.
    """

    @staticmethod
    def dump(path: Path) -> dict:
        """
        Parse a config file into a dict.

        Raises:
            ConfigError: If the format is unsupported or the file cannot be parsed.
        """
        path = Path(path)
        file_ext = path.suffix.lower().lstrip(".")

        def parse_toml(p: Path) -> dict:
            return toml.load(p)

        def parse_json(p: Path) -> dict:
            return json.loads(p.read_text(encoding="utf-8"))

        def parse_yaml(p: Path) -> dict:
            return yaml.safe_load(p.read_text(encoding="utf-8")) or {}

        parsers = {
            "toml": parse_toml,
            "json": parse_json,
            "yaml": parse_yaml,
            "yml": parse_yaml,
        }

        if file_ext not in parsers:
            raise ConfigError(f"[Config.dump] Unsupported config format: {file_ext or path.name}")
        try:
            parsed_data = parsers[file_ext](path)
        except (OSError, ValueError, toml.TomlDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"[Config.dump] Failed to parse config at {path}: {e}") from e
        if not isinstance(parsed_data, dict):
            raise ConfigError(f"[Config.dump] Parsed config is not a table: {type(parsed_data).__name__}")

        # A [djazure] table is accepted as well as top-level keys
        if isinstance(parsed_data.get("djazure"), dict):
            parsed_data = parsed_data["djazure"]
        return parsed_data

    @staticmethod
    def load(path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None) -> Settings:
        """
        Build Settings from defaults, an optional config file and overrides.

        Args:
            path: Config file. When None, the default djazure.toml is read if it exists.
            overrides: Values from the command line; None entries are skipped.

        Raises:
            ConfigError: On unreadable files, unknown keys or invalid values.
        """
        data = dict(_globals.SETTINGS_DEFAULT)

        if path is not None:
            path = Path(path)
            if not path.exists():
                raise ConfigError(f"[Config.load] Config file not found: {path}")
            data.update(Config.dump(path))
        elif _globals.GLOBAL_CFG_FILE.exists():
            data.update(Config.dump(_globals.GLOBAL_CFG_FILE))

        if overrides:
            data.update({k: v for k, v in overrides.items() if v is not None})

        return Config.validate(data)

    @staticmethod
    def validate(data: Dict[str, Any]) -> Settings:
        known = {f.name for f in fields(Settings)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"[Config.validate] Unrecognized option(s): {', '.join(unknown)}")

        try:
            for f in fields(Settings):
                value = data[f.name]
                # YAML reads db_version: 14 as an int
                if f.type is str and isinstance(value, (int, float)) and not isinstance(value, bool):
                    data[f.name] = value = str(value)
                check_types(value, f.type, label=f.name)
        except TypeError as e:
            raise ConfigError(str(e)) from e

        for key in ("project", "environment", "region", "db_admin_user"):
            if not data[key].strip():
                raise ConfigError(f"[Config.validate] '{key}' must not be empty")
        first = data["project"][0]
        if not (first.isascii() and first.isalpha()):
            raise ConfigError("[Config.validate] 'project' must start with an ASCII letter")
        if data["secret_backend"] not in _globals.SECRET_BACKENDS:
            raise ConfigError(
                f"[Config.validate] 'secret_backend' must be one of {', '.join(_globals.SECRET_BACKENDS)}"
            )
        if data["db_storage_gb"] <= 0:
            raise ConfigError("[Config.validate] 'db_storage_gb' must be a positive integer")

        data["log_level"] = data["log_level"].upper()
        if data["log_level"] not in _globals.LOG_LEVELS:
            raise ConfigError(f"[Config.validate] Unknown log level: {data['log_level']}")

        return Settings(**data)


cfg = Config

"""Configuration loader with layered precedence."""

import os
from dataclasses import dataclass, fields, is_dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..errors import ConfigError
from .defaults import (
    AccessParams,
    ExecutionParams,
    NetworkParams,
    ProtectorParams,
    StoreParams,
    VaultConfig,
    get_default_config,
)

SETTINGS_FILE = "settings.yaml"

# Environment variable -> (section, key). The executor address feeds both
# the access grant and the execution target.
ENV_OVERRIDES: dict[str, list[tuple[str, str]]] = {
    "STRATEGY_VAULT_EXECUTOR_ADDRESS": [("access", "executor_address"), ("execution", "executor_address")],
    "STRATEGY_VAULT_EXECUTOR_URL": [("execution", "executor_url")],
    "STRATEGY_VAULT_DB_PATH": [("store", "db_path")],
    "STRATEGY_VAULT_ENCRYPTION_KEY": [("protector", "encryption_key")],
}


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with layered precedence."""

    config_dir: Path
    defaults: VaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_settings_file(self) -> dict[str, Any]:
        """Load overrides from ``settings.yaml`` if present."""
        settings_file = self.config_dir / SETTINGS_FILE

        if not settings_file.exists():
            return {}

        with open(settings_file) as f:
            try:
                settings = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {settings_file}: {e}", setting=str(settings_file)) from e

        if settings is None:
            return {}
        if not isinstance(settings, dict):
            raise ConfigError(f"{settings_file} must contain a mapping", setting=str(settings_file))
        return settings

    def load_env_overrides(self, environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
        """Collect overrides from environment variables."""
        environ = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}

        for var, targets in ENV_OVERRIDES.items():
            value = environ.get(var)
            if not value:
                continue
            for section, key in targets:
                overrides.setdefault(section, {})[key] = value

        return overrides

    def merge_config(
        self,
        overrides: Optional[dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration layers.

        Priority order:
        1. Explicit overrides (highest priority)
        2. Environment variables
        3. settings.yaml
        4. Defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_settings_file())
        config = self._deep_merge(config, self.load_env_overrides(environ))

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(
        self,
        overrides: Optional[dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> VaultConfig:
        """Resolve all layers into a typed VaultConfig."""
        merged = self.merge_config(overrides, environ)

        execution = dict(merged.get("execution", {}))
        network = NetworkParams(**self._known(NetworkParams, execution.pop("network", {})))

        return VaultConfig(
            access=AccessParams(**self._known(AccessParams, merged.get("access", {}))),
            execution=ExecutionParams(network=network, **self._known(ExecutionParams, execution)),
            store=StoreParams(**self._known(StoreParams, merged.get("store", {}))),
            protector=ProtectorParams(**self._known(ProtectorParams, merged.get("protector", {}))),
        )

    def _known(self, cls: type, section: Any) -> dict[str, Any]:
        """Keep only keys the dataclass declares; reject unknown ones."""
        if not isinstance(section, dict):
            raise ConfigError(f"Section for {cls.__name__} must be a mapping", setting=cls.__name__)
        names = {f.name for f in fields(cls)} - {"network"}
        unknown = set(section) - names
        if unknown:
            raise ConfigError(
                f"Unknown {cls.__name__} settings: {', '.join(sorted(unknown))}",
                setting=cls.__name__,
            )
        return dict(section)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if is_dataclass(obj):
            result = {}
            for f in fields(obj):
                value = getattr(obj, f.name)
                if is_dataclass(value):
                    result[f.name] = self._dataclass_to_dict(value)
                else:
                    result[f.name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

"""
LANDLEDGER Configuration System

Unified configuration management with YAML files, environment variables,
validation, and runtime updates.

Configuration Sources (in order of precedence):
    1. Environment variables (LANDLEDGER_*)
    2. Runtime overrides
    3. User config file (~/.landledger/config.yaml)
    4. Project config file (./landledger.yaml)
    5. Default values

Copyright (c) 2026 Landledger. All rights reserved.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

T = TypeVar("T")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding,
    validation, and change callbacks.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)
    _callbacks: List[Callable[[T, T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            return self._coerce(os.environ[self.env_var])

        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if isinstance(value, str) and not isinstance(self.default, str):
            value = self._coerce(value)
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value!r}")

        old_value = self._value
        self._value = value

        for callback in self._callbacks:
            callback(old_value, value)

    def reset(self) -> None:
        """Drop any runtime override."""
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            return int(value)  # type: ignore
        else:
            return value  # type: ignore

    def on_change(self, callback: Callable[[T, T], None]) -> None:
        """Register a change callback."""
        self._callbacks.append(callback)


@dataclass
class KeysConfig:
    """Reserved state-store keys."""
    init_marker: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="abc",
        env_var="LANDLEDGER_KEY_INIT_MARKER",
        description="Key holding the init marker value",
        validator=lambda x: bool(x),
    ))
    owner_index: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="_ownerIndex",
        env_var="LANDLEDGER_KEY_OWNER_INDEX",
        description="Key holding the JSON array of all owner names",
        validator=lambda x: bool(x) and not x.isdigit(),
    ))
    survey_index: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="_surveyIndex",
        env_var="LANDLEDGER_KEY_SURVEY_INDEX",
        description="Key holding the JSON array of all survey numbers",
        validator=lambda x: bool(x) and not x.isdigit(),
    ))

    def reserved(self) -> frozenset:
        return frozenset((self.init_marker.get(), self.owner_index.get(), self.survey_index.get()))


@dataclass
class StoreConfig:
    """Configuration for the state store backend."""
    backend: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="file",
        env_var="LANDLEDGER_STORE_BACKEND",
        description="State store backend (memory, file)",
        validator=lambda x: x in ("memory", "file"),
    ))
    path: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="landledger-state.json",
        env_var="LANDLEDGER_STORE_PATH",
        description="State file used by the file backend",
        validator=lambda x: bool(x),
    ))


@dataclass
class OutputConfig:
    """Configuration for query result encoding."""
    quote_records: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=False,
        env_var="LANDLEDGER_QUOTE_RECORDS",
        description="Wrap single-record query results in single quotes (legacy callers)",
    ))
    format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="LANDLEDGER_OUTPUT_FORMAT",
        description="CLI output format (json, yaml, text)",
        validator=lambda x: x in ("json", "yaml", "text"),
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for Observability."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="warning",
        env_var="LANDLEDGER_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="LANDLEDGER_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))
    audit_enabled: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=True,
        env_var="LANDLEDGER_AUDIT_ENABLED",
        description="Emit hash-chained audit events for committed transactions",
    ))


@dataclass
class LedgerConfig:
    """
    Root configuration for LANDLEDGER.

    Aggregates all component configurations and provides
    loading/saving functionality.
    """
    keys: KeysConfig = field(default_factory=KeysConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False)


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = LedgerConfig()
        self._config_paths: List[Path] = []
        self._watchers: List[Callable[[LedgerConfig], None]] = []
        self._initialized = True

    @property
    def config(self) -> LedgerConfig:
        """Get the current configuration."""
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {path}")

        self._apply_dict(data)
        if path not in self._config_paths:
            self._config_paths.append(path)

    def load_defaults(self) -> List[Path]:
        """Load default configuration files if they exist. Returns the files loaded."""
        default_paths = [
            Path.home() / ".landledger" / "config.yaml",
            Path("config/landledger.yaml"),
            Path("landledger.yaml"),
        ]

        loaded = []
        for path in default_paths:
            if path.exists():
                self.load_from_file(path)
                loaded.append(path)
        return loaded

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary values to configuration."""
        def apply_to_config(config_obj: Any, values: Dict[str, Any], prefix: str) -> None:
            for key, value in values.items():
                if not hasattr(config_obj, key):
                    raise ConfigError(f"Unknown config key: {prefix}{key}")
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, f"{prefix}{key}.")
                else:
                    raise ConfigError(f"Expected a mapping for config section: {prefix}{key}")

        apply_to_config(self._config, data, "")

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("output.quote_records", True)
        """
        attr = self._resolve(path)
        if isinstance(attr, ConfigValue):
            attr.set(value)
        else:
            raise ConfigError(f"Invalid config path: {path}")

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("keys.owner_index")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        if hasattr(obj, "__dataclass_fields__"):
            return LedgerConfig.to_dict(obj)
        return obj

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if part.startswith("_") or not hasattr(obj, part):
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def watch(self, callback: Callable[[LedgerConfig], None]) -> None:
        """Register a callback for configuration changes."""
        self._watchers.append(callback)

    def reload(self) -> None:
        """Reload configuration from all loaded files."""
        for path in self._config_paths:
            if path.exists():
                self.load_from_file(path)

        for watcher in self._watchers:
            watcher(self._config)

    def validate(self) -> List[str]:
        """
        Validate all configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value!r}")
                except ValueError as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)

        reserved = [
            self._config.keys.init_marker.get(),
            self._config.keys.owner_index.get(),
            self._config.keys.survey_index.get(),
        ]
        if len(set(reserved)) != len(reserved):
            errors.append(f"keys: reserved keys must be distinct, got {reserved}")
        return errors

    def export_schema(self) -> Dict[str, Any]:
        """Export configuration schema for documentation."""
        schema: Dict[str, Any] = {"properties": {}}

        def extract_schema(obj: Any, properties: Dict[str, Any]) -> None:
            if isinstance(obj, ConfigValue):
                properties["type"] = type(obj.default).__name__
                properties["default"] = str(obj.default)
                properties["description"] = obj.description
                if obj.env_var:
                    properties["env_var"] = obj.env_var
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    properties[field_name] = {}
                    extract_schema(getattr(obj, field_name), properties[field_name])

        extract_schema(self._config, schema["properties"])
        return schema


def get_config() -> LedgerConfig:
    """Get the current LANDLEDGER configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()


def reset_config_manager() -> ConfigManager:
    """Discard the singleton and return a fresh manager with defaults."""
    with ConfigManager._lock:
        ConfigManager._instance = None
    return ConfigManager()

"""Container module configuration."""

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

CONFIG_ENV_VAR = "DITESTKIT_CONFIG"


class ConfigurationError(Exception):
    """Module or suite configuration is missing or invalid. Fatal for the suite."""


@dataclass
class SuiteSettings:
    """Settings supplied once per suite by the test runner.

    Attributes:
        path: Base directory every relative path is resolved against
    """
    path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SuiteSettings":
        return cls(path=data.get("path"))


@dataclass
class ModuleConfig:
    """Container module configuration.

    Example (ditestkit.yaml):
        temp_dir: tests/_temp
        config_files:
            - tests/config/common.yaml
        app_dir: src
        log_dir: tests/_log
        debug_mode: true
        remove_default_extensions: false
        new_container_for_each_test: false

    Attributes:
        temp_dir: Temp directory name, relative to the suite path (required)
        config_files: Container config files, relative or absolute
        app_dir: Sub-path registered as the appDir parameter
        log_dir: Sub-path for diagnostic logs; tracing is off when unset
        www_dir: Sub-path registered as the wwwDir parameter
        debug_mode: Force debug (True) or production (False); None auto-detects
        remove_default_extensions: Keep only the ``extensions`` extension
        new_container_for_each_test: Build and tear down a container per test
    """
    temp_dir: Optional[str] = None
    config_files: list[str] = field(default_factory=list)
    app_dir: Optional[str] = None
    log_dir: Optional[str] = None
    www_dir: Optional[str] = None
    debug_mode: Optional[bool] = None
    remove_default_extensions: bool = False
    new_container_for_each_test: bool = False

    @classmethod
    def from_file(cls, path: str | Path) -> "ModuleConfig":
        """Load configuration from a YAML file."""
        path = Path(path).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Module config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(f"Module config file {path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "ModuleConfig":
        """Create configuration from a dictionary.

        camelCase keys (``tempDir``, ``newContainerForEachTest``) are
        accepted as aliases of the snake_case fields.
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        unknown = []
        for key, value in data.items():
            name = _snake_case(str(key))
            if name in known:
                values[name] = value
            else:
                unknown.append(str(key))
        if unknown:
            raise ConfigurationError(f"Unknown module option(s): {', '.join(sorted(unknown))}")

        if values.get("config_files") is None:
            values.pop("config_files", None)
        return cls(**values)

    @classmethod
    def from_env(cls, default: Optional[str] = None) -> Optional["ModuleConfig"]:
        """Load from the file named by DITESTKIT_CONFIG (or ``default``)."""
        config_path = os.environ.get(CONFIG_ENV_VAR, default)
        if not config_path:
            return None
        return cls.from_file(config_path)

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not isinstance(self.temp_dir, str) or not self.temp_dir.strip():
            errors.append("temp_dir is required")

        if not isinstance(self.config_files, list) or not all(
            isinstance(f, str) for f in self.config_files
        ):
            errors.append("config_files must be a list of file paths")

        for name in ("app_dir", "log_dir", "www_dir"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                errors.append(f"{name} must be a string, got {type(value).__name__}")

        if self.debug_mode is not None and not isinstance(self.debug_mode, bool):
            errors.append("debug_mode must be true, false or unset")

        for name in ("remove_default_extensions", "new_container_for_each_test"):
            if not isinstance(getattr(self, name), bool):
                errors.append(f"{name} must be true or false")

        return errors

    def require_valid(self) -> "ModuleConfig":
        errors = self.validate()
        if errors:
            raise ConfigurationError("Invalid module configuration: " + "; ".join(errors))
        return self


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()

"""Config file loader.

Reads YAML/JSON container config files, follows ``includes:`` and
merges everything into a single mapping.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from .exceptions import InvalidConfigurationError
from .helpers import merge

logger = logging.getLogger(__name__)

INCLUDES_KEY = "includes"
SERVICES_KEY = "services"

# Prefix for keys given to list-style (anonymous) service entries
ANONYMOUS_PREFIX = "#"


class Loader:
    """Loads config files and tracks every file that was read.

    Usage:
        loader = Loader()
        data = loader.load("config/common.yaml")
        loader.dependencies  # ['/abs/config/common.yaml', ...]
    """

    def __init__(self):
        self._dependencies: list[str] = []
        self._anonymous_counter = 0

    @property
    def dependencies(self) -> list[str]:
        """Absolute paths of all files loaded so far, in load order."""
        return list(self._dependencies)

    def load(self, file: str, _loading: Optional[tuple] = None) -> dict:
        """Load a file and its includes, returning the merged mapping."""
        path = Path(file).resolve()
        loading = _loading or ()
        if str(path) in loading:
            raise InvalidConfigurationError(f"Recursive include of file '{path}'.")

        data = self._read(path)
        self._dependencies.append(str(path))

        includes = data.pop(INCLUDES_KEY, None) or []
        if not isinstance(includes, list):
            raise InvalidConfigurationError(
                f"'{INCLUDES_KEY}' in '{path}' must be a list of files."
            )

        merged: dict = {}
        for include in includes:
            include_path = Path(include)
            if not include_path.is_absolute():
                include_path = path.parent / include_path
            merged = merge(merged, self.load(str(include_path), loading + (str(path),)))

        merged = merge(merged, data)
        logger.debug(f"Loaded config file {path} ({len(includes)} includes)")
        return merged

    def _read(self, path: Path) -> dict:
        if not path.is_file():
            raise InvalidConfigurationError(f"Config file '{path}' not found.")

        suffix = path.suffix.lower()
        try:
            with open(path, encoding="utf-8") as f:
                if suffix in (".yaml", ".yml", ".neon"):
                    data = yaml.safe_load(f)
                elif suffix == ".json":
                    data = json.load(f)
                else:
                    raise InvalidConfigurationError(
                        f"Unsupported config file '{path}' (expected .yaml, .yml or .json)."
                    )
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise InvalidConfigurationError(f"Cannot parse config file '{path}': {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise InvalidConfigurationError(
                f"Config file '{path}' must contain a mapping at the top level."
            )
        return self._normalize_services(data)

    def _normalize_services(self, data: dict) -> dict:
        """Give list-style service entries unique keys so files merge cleanly."""
        for key in list(data):
            if not isinstance(key, str) or key.rstrip("!") != SERVICES_KEY:
                continue
            if not isinstance(data[key], list):
                continue
            services: dict[str, Any] = {}
            for entry in data[key]:
                self._anonymous_counter += 1
                services[f"{ANONYMOUS_PREFIX}{self._anonymous_counter}"] = entry
            data[key] = services
        return data

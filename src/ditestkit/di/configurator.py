"""Configurator: the mutable builder a container is created from."""

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from .. import tracing
from ..utils import PathLike, create_dir
from .compiler import Compiler
from .container import Container
from .extensions import CacheExtension, ExtensionsExtension, SessionExtension
from .helpers import class_path, merge

logger = logging.getLogger(__name__)

DEBUG_ENV_VAR = "DITESTKIT_DEBUG"
CACHE_DIR = "cache/ditestkit.configurator"


def detect_debug_mode() -> bool:
    """Debug mode is on when DITESTKIT_DEBUG is 1/true/yes."""
    return os.environ.get(DEBUG_ENV_VAR, "").strip().lower() in ("1", "true", "yes")


class Configurator:
    """Accumulates parameters, config files and extensions.

    Usage:
        configurator = Configurator()
        configurator.set_temp_directory("/app/tmp")
        configurator.add_static_parameters({"appDir": "/app/src"})
        configurator.add_config("/app/config/common.yaml")
        container = configurator.create_container()

    ``default_extensions`` maps section name -> extension class and may be
    replaced before ``create_container()``. With ``cache=False`` the merged
    config is never written to or read from the temp directory.
    """

    def __init__(self, cache: bool = True):
        self.cache = cache
        self.default_extensions: dict[str, type] = {
            "extensions": ExtensionsExtension,
            "cache": CacheExtension,
            "session": SessionExtension,
        }
        self.static_parameters: dict[str, Any] = self._get_default_parameters()
        self._config_files: list[str] = []

    @staticmethod
    def _get_default_parameters() -> dict[str, Any]:
        debug = detect_debug_mode()
        cwd = os.getcwd()
        return {
            "appDir": cwd,
            "wwwDir": cwd,
            "tempDir": None,
            "logDir": None,
            "debugMode": debug,
            "productionMode": not debug,
        }

    def set_debug_mode(self, value: bool) -> "Configurator":
        self.static_parameters["debugMode"] = bool(value)
        self.static_parameters["productionMode"] = not value
        return self

    def is_debug_mode(self) -> bool:
        return bool(self.static_parameters["debugMode"])

    def set_temp_directory(self, path: PathLike) -> "Configurator":
        self.static_parameters["tempDir"] = str(path)
        return self

    def add_static_parameters(self, parameters: dict[str, Any]) -> "Configurator":
        self.static_parameters = merge(self.static_parameters, parameters)
        return self

    def add_config(self, file: PathLike) -> "Configurator":
        self._config_files.append(str(file))
        return self

    @property
    def config_files(self) -> list[str]:
        return list(self._config_files)

    def enable_tracing(self, log_dir: PathLike) -> "Configurator":
        """Send diagnostic output to ``log_dir`` (see ditestkit.tracing)."""
        tracing.enable_tracing(log_dir, debug=self.is_debug_mode())
        self.static_parameters["logDir"] = str(log_dir)
        return self

    def create_compiler(self) -> Compiler:
        """Compiler with parameters and default extensions, no files loaded."""
        compiler = Compiler()
        compiler.parameters = dict(self.static_parameters)
        for name, extension_class in self.default_extensions.items():
            compiler.add_extension(name, extension_class())
        return compiler

    def create_container(self) -> Container:
        """Load config files (or their cached merge) and compile."""
        compiler = self.create_compiler()
        cache_file = self._get_cache_file()

        cached = self._load_cache(cache_file) if cache_file else None
        if cached is not None:
            logger.debug(f"Using cached configuration {cache_file}")
            compiler.add_config(cached["config"])
            compiler.add_dependencies(list(cached["dependencies"]))
        else:
            for file in self._config_files:
                compiler.load_config(file)
            if cache_file:
                self._save_cache(cache_file, compiler)

        container = compiler.compile()
        logger.info(
            f"Container created from {len(self._config_files)} config file(s), "
            f"debug={self.is_debug_mode()}"
        )
        return container

    def _get_cache_file(self) -> Optional[Path]:
        temp_dir = self.static_parameters.get("tempDir")
        if not self.cache or not temp_dir:
            return None
        key_source = json.dumps(
            [
                self.static_parameters,
                self._config_files,
                {name: class_path(cls) for name, cls in self.default_extensions.items()},
            ],
            sort_keys=True,
            default=str,
        )
        key = hashlib.sha1(key_source.encode("utf-8")).hexdigest()[:12]
        return Path(temp_dir) / CACHE_DIR / f"Container_{key}.yaml"

    def _load_cache(self, cache_file: Path) -> Optional[dict]:
        if not cache_file.is_file():
            return None
        with open(cache_file, encoding="utf-8") as f:
            cached = yaml.safe_load(f) or {}
        if "config" not in cached or "dependencies" not in cached:
            return None

        if self.is_debug_mode():
            for file, mtime in cached["dependencies"].items():
                if not os.path.exists(file) or os.path.getmtime(file) != mtime:
                    logger.debug(f"Cached configuration is stale ({file} changed)")
                    return None
        return cached

    def _save_cache(self, cache_file: Path, compiler: Compiler) -> None:
        create_dir(cache_file.parent)
        payload = {
            "dependencies": {file: os.path.getmtime(file) for file in compiler.dependencies},
            "config": compiler.get_config(),
        }
        with open(cache_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(payload, f, sort_keys=False)

"""Compiles merged configuration and extensions into a Container."""

import logging
from typing import Any, Optional

from .container import Container
from .definitions import ServiceDefinition
from .exceptions import InvalidConfigurationError
from .extensions import CompilerExtension
from .helpers import expand, merge
from .loader import ANONYMOUS_PREFIX, Loader

logger = logging.getLogger(__name__)

PARAMETERS_KEY = "parameters"
SERVICES_KEY = "services"
RESERVED_SECTIONS = {PARAMETERS_KEY, SERVICES_KEY}


class Compiler:
    """Collects config, extensions and definitions, then builds a Container.

    Compile order:
    1. Resolve parameters (static parameters + ``parameters:`` section)
    2. Load extension configurations, including extensions added on the way
    3. Register ``services:`` definitions
    4. before_compile() on every extension
    5. Build the Container, then after_compile() on every extension
    """

    def __init__(self, loader: Optional[Loader] = None):
        self.loader = loader or Loader()
        self.parameters: dict[str, Any] = {}
        self._config: dict[str, Any] = {}
        self._extensions: dict[str, CompilerExtension] = {}
        self._definitions: dict[str, ServiceDefinition] = {}
        self._dependencies: list[str] = []

    # ------------------------------------------------------------------
    # Extensions
    # ------------------------------------------------------------------
    def add_extension(self, name: str, extension: CompilerExtension) -> "Compiler":
        if name in RESERVED_SECTIONS:
            raise InvalidConfigurationError(f"Name '{name}' is reserved.")
        if name in self._extensions:
            raise InvalidConfigurationError(f"Name '{name}' is already used or reserved.")
        self._extensions[name] = extension.set_compiler(self, name)
        return self

    def get_extensions(self, extension_type: Optional[type] = None) -> dict[str, CompilerExtension]:
        if extension_type is None:
            return dict(self._extensions)
        return {
            name: extension for name, extension in self._extensions.items()
            if isinstance(extension, extension_type)
        }

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------
    def load_config(self, file: str) -> "Compiler":
        before = len(self.loader.dependencies)
        self.add_config(self.loader.load(file))
        self.add_dependencies(self.loader.dependencies[before:])
        return self

    def add_config(self, config: dict) -> "Compiler":
        self._config = merge(self._config, config)
        return self

    def get_config(self) -> dict:
        return self._config

    def add_dependencies(self, files: list[str]) -> "Compiler":
        for file in files:
            if file not in self._dependencies:
                self._dependencies.append(file)
        return self

    @property
    def dependencies(self) -> list[str]:
        return list(self._dependencies)

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------
    def add_definition(self, definition: ServiceDefinition) -> ServiceDefinition:
        if definition.name in self._definitions:
            raise InvalidConfigurationError(f"Service '{definition.name}' has already been added.")
        self._definitions[definition.name] = definition
        return definition

    def has_definition(self, name: str) -> bool:
        return name in self._definitions

    def get_definition(self, name: str) -> ServiceDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise InvalidConfigurationError(f"Service '{name}' not found.") from None

    def remove_definition(self, name: str) -> None:
        self._definitions.pop(name, None)

    @property
    def definitions(self) -> dict[str, ServiceDefinition]:
        return dict(self._definitions)

    # ------------------------------------------------------------------
    # Compile
    # ------------------------------------------------------------------
    def compile(self) -> Container:
        self._process_parameters()
        self._process_extensions()
        self._process_services()

        for extension in self._extensions.values():
            extension.before_compile()

        container = Container(self.parameters, self._definitions)

        for extension in self._extensions.values():
            extension.after_compile(container)

        logger.info(
            f"Compiled container: {len(self._definitions)} services, "
            f"{len(self._extensions)} extensions"
        )
        return container

    def _process_parameters(self) -> None:
        section = self._config.get(PARAMETERS_KEY) or {}
        if not isinstance(section, dict):
            raise InvalidConfigurationError("Section 'parameters' must be a mapping.")
        parameters = merge(self.parameters, section)
        self.parameters = expand(parameters, parameters)

    def _process_extensions(self) -> None:
        processed: set[str] = set()
        while True:
            pending = [name for name in self._extensions if name not in processed]
            if not pending:
                break
            for name in pending:
                processed.add(name)
                extension = self._extensions[name]
                extension.set_config(expand(self._config.get(name), self.parameters))
                extension.load_configuration()

        unknown = set(self._config) - set(self._extensions) - RESERVED_SECTIONS
        if unknown:
            section = sorted(unknown)[0]
            raise InvalidConfigurationError(
                f"Found section '{section}' in configuration, but corresponding extension is missing."
            )

    def _process_services(self) -> None:
        section = self._config.get(SERVICES_KEY) or {}
        if not isinstance(section, dict):
            raise InvalidConfigurationError("Section 'services' must be a list or a mapping.")

        anonymous = 0
        for key, entry in expand(section, self.parameters).items():
            if isinstance(key, str) and key.startswith(ANONYMOUS_PREFIX):
                anonymous += 1
                name = f"{anonymous:02d}"
            else:
                name = str(key)
            if entry is None:
                raise InvalidConfigurationError(f"Service '{name}' has no definition.")
            # services: entries override definitions registered by extensions
            self._definitions.pop(name, None)
            self._definitions[name] = ServiceDefinition.from_config(name, entry)

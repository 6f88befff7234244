"""Compiler extensions.

An extension owns one top-level config section (named after the
extension) and contributes service definitions to the compiler.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from .definitions import ServiceDefinition
from .exceptions import InvalidConfigurationError
from .helpers import expand, import_string, merge

if TYPE_CHECKING:
    from .compiler import Compiler
    from .container import Container

logger = logging.getLogger(__name__)


class CompilerExtension(ABC):
    """Base class for compiler extensions.

    Lifecycle, driven by the compiler:
    1. load_configuration() - register service definitions
    2. before_compile() - adjust definitions registered by others
    3. after_compile(container) - act on the finished container
    """

    defaults: dict[str, Any] = {}

    def __init__(self):
        self.name: Optional[str] = None
        self.config: dict[str, Any] = {}
        self.compiler: Optional["Compiler"] = None

    def set_compiler(self, compiler: "Compiler", name: str) -> "CompilerExtension":
        self.compiler = compiler
        self.name = name
        return self

    def set_config(self, config: Any) -> "CompilerExtension":
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise InvalidConfigurationError(
                f"Section '{self.name}' must be a mapping, got {type(config).__name__}."
            )
        unknown = set(config) - set(self.defaults) if self.defaults else set()
        if unknown:
            raise InvalidConfigurationError(
                f"Unknown option(s) {', '.join(sorted(unknown))} in section '{self.name}'."
            )
        self.config = merge(expand(self.defaults, self.compiler.parameters), config)
        return self

    def prefix(self, service_name: str) -> str:
        return f"{self.name}.{service_name}"

    @abstractmethod
    def load_configuration(self) -> None:
        """Register service definitions with the compiler."""

    def before_compile(self) -> None:
        pass

    def after_compile(self, container: "Container") -> None:
        pass


class ExtensionsExtension(CompilerExtension):
    """Registers extensions listed in the ``extensions:`` section.

    extensions:
        mail: myapp.di.MailExtension
    """

    def set_config(self, config: Any) -> "CompilerExtension":
        # Keys are extension names, so skip the option check
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise InvalidConfigurationError("Section 'extensions' must be a mapping of name: class.")
        self.config = dict(config)
        return self

    def load_configuration(self) -> None:
        for name, target in self.config.items():
            extension_class = import_string(target) if isinstance(target, str) else target
            if not (isinstance(extension_class, type) and issubclass(extension_class, CompilerExtension)):
                raise InvalidConfigurationError(
                    f"Extension '{name}': '{target}' is not a CompilerExtension subclass."
                )
            self.compiler.add_extension(name, extension_class())
            logger.debug(f"Registered extension '{name}' ({target})")


class CacheExtension(CompilerExtension):
    """Registers the cache journal service.

    cache:
        journal: %tempDir%/cache/journal.db   # default
    """

    defaults = {"journal": None}

    def load_configuration(self) -> None:
        from ..caching.journal import SQLiteJournal

        path = self.config["journal"]
        if path is None:
            temp_dir = self.compiler.parameters.get("tempDir")
            if not temp_dir:
                logger.debug("No temp directory, cache journal not registered")
                return
            path = f"{temp_dir}/cache/journal.db"

        self.compiler.add_definition(ServiceDefinition(
            name=self.prefix("journal"),
            type=SQLiteJournal,
            arguments={"path": path},
        ))


class SessionExtension(CompilerExtension):
    """Registers a file-backed session service.

    session:
        enabled: true
        save_path: %tempDir%/sessions   # default
    """

    defaults = {"enabled": True, "save_path": None}

    def load_configuration(self) -> None:
        from ..http.session import FileSession

        if not self.config["enabled"]:
            return

        save_path = self.config["save_path"]
        if save_path is None:
            temp_dir = self.compiler.parameters.get("tempDir")
            if not temp_dir:
                logger.debug("No temp directory, session not registered")
                return
            save_path = f"{temp_dir}/sessions"

        self.compiler.add_definition(ServiceDefinition(
            name=self.prefix("session"),
            type=FileSession,
            arguments={"save_path": save_path},
        ))

"""Dependency Injection container framework.

Builds containers from YAML config files:

    configurator = Configurator()
    configurator.set_temp_directory("tmp")
    configurator.add_config("config/common.yaml")
    container = configurator.create_container()

    mailer = container.get_by_type(Mailer)
"""

from .compiler import Compiler
from .configurator import Configurator
from .container import Container
from .definitions import ServiceDefinition
from .exceptions import (
    AmbiguousServiceError,
    ContainerError,
    InvalidConfigurationError,
    MissingServiceError,
    ServiceCreationError,
)
from .extensions import CacheExtension, CompilerExtension, ExtensionsExtension, SessionExtension

__all__ = [
    "Compiler",
    "Configurator",
    "Container",
    "ServiceDefinition",
    "CompilerExtension",
    "ExtensionsExtension",
    "CacheExtension",
    "SessionExtension",
    "ContainerError",
    "InvalidConfigurationError",
    "MissingServiceError",
    "AmbiguousServiceError",
    "ServiceCreationError",
]

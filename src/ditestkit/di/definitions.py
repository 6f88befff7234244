"""Service definitions parsed from the ``services:`` config section."""

import abc
import inspect
import typing
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from .exceptions import InvalidConfigurationError
from .helpers import class_path, import_string

# Prefix marking an argument as a reference to another service
REFERENCE_PREFIX = "@"

_ALLOWED_KEYS = {"class", "factory", "type", "arguments", "setup", "tags", "autowired"}


@dataclass
class ServiceDefinition:
    """How to create a single service.

    Attributes:
        name: Service name, unique within a container
        type: Class the service is registered under for lookups by type
        factory: Callable producing the instance; defaults to ``type``
        arguments: Positional (list) or keyword (dict) arguments
        setup: Method calls made on the new instance, as (method, arguments)
        tags: Free-form tag -> value mapping
        autowired: Whether lookups by type may return this service
        instance: Pre-built instance (runtime services only)
    """
    name: str
    type: Optional[type] = None
    factory: Optional[Callable[..., Any]] = None
    arguments: Union[list, dict] = field(default_factory=dict)
    setup: list[tuple[str, Union[list, dict]]] = field(default_factory=list)
    tags: dict[str, Any] = field(default_factory=dict)
    autowired: bool = True
    instance: Any = None

    def __post_init__(self):
        if self.type is None and self.factory is None and self.instance is None:
            raise InvalidConfigurationError(
                f"Service '{self.name}': either 'class' or 'factory' is required."
            )
        if self.instance is not None and self.type is None:
            self.type = type(self.instance)

    @classmethod
    def from_config(cls, name: str, entry: Any) -> "ServiceDefinition":
        """Build a definition from a config entry.

        ``entry`` is either an import path string or a mapping with the
        keys class, factory, type, arguments, setup, tags and autowired.
        """
        if isinstance(entry, str):
            return cls(name=name, type=_import_class(name, entry))
        if not isinstance(entry, dict):
            raise InvalidConfigurationError(
                f"Service '{name}': expected a class path or a mapping, got {type(entry).__name__}."
            )

        unknown = set(entry) - _ALLOWED_KEYS
        if unknown:
            raise InvalidConfigurationError(
                f"Service '{name}': unknown key(s) {', '.join(sorted(unknown))}."
            )

        service_type = _import_class(name, entry["class"]) if entry.get("class") else None
        factory = None
        if entry.get("factory"):
            factory = _import_callable(name, entry["factory"])
            if service_type is None and entry.get("type"):
                service_type = _import_class(name, entry["type"])
            if service_type is None:
                service_type = _return_type(factory)

        arguments = entry.get("arguments") or {}
        if not isinstance(arguments, (list, dict)):
            raise InvalidConfigurationError(
                f"Service '{name}': 'arguments' must be a list or a mapping."
            )

        return cls(
            name=name,
            type=service_type,
            factory=factory,
            arguments=arguments,
            setup=_parse_setup(name, entry.get("setup") or []),
            tags=_parse_tags(name, entry.get("tags") or {}),
            autowired=bool(entry.get("autowired", True)),
        )

    def matches(self, service_type: type) -> bool:
        """Whether this service can be returned for ``service_type``."""
        if not isinstance(self.type, type):
            return False
        return issubclass(self.type, service_type)

    def get_types(self) -> list[type]:
        """All classes this service is registered under (its MRO)."""
        if not isinstance(self.type, type):
            return []
        return [t for t in inspect.getmro(self.type) if t not in _IGNORED_TYPES]

    def describe(self) -> str:
        return class_path(self.type) if isinstance(self.type, type) else "?"


_IGNORED_TYPES = {object, abc.ABC, typing.Generic}


def _import_class(name: str, path: Any) -> type:
    target = import_string(path) if isinstance(path, str) else path
    if not isinstance(target, type):
        raise InvalidConfigurationError(f"Service '{name}': '{path}' is not a class.")
    return target


def _import_callable(name: str, path: Any) -> Callable[..., Any]:
    target = import_string(path) if isinstance(path, str) else path
    if not callable(target):
        raise InvalidConfigurationError(f"Service '{name}': factory '{path}' is not callable.")
    return target


def _return_type(factory: Callable[..., Any]) -> Optional[type]:
    if isinstance(factory, type):
        return factory
    try:
        hints = typing.get_type_hints(factory)
    except (NameError, TypeError):
        return None
    returned = hints.get("return")
    return returned if isinstance(returned, type) else None


def _parse_setup(name: str, setup: Any) -> list[tuple[str, Union[list, dict]]]:
    if not isinstance(setup, list):
        raise InvalidConfigurationError(f"Service '{name}': 'setup' must be a list.")

    calls = []
    for item in setup:
        if isinstance(item, str):
            calls.append((item, []))
        elif isinstance(item, dict) and len(item) == 1:
            method, arguments = next(iter(item.items()))
            calls.append((method, arguments if arguments is not None else []))
        else:
            raise InvalidConfigurationError(
                f"Service '{name}': setup entries must be 'method' or {{method: arguments}}."
            )
    return calls


def _parse_tags(name: str, tags: Any) -> dict[str, Any]:
    if isinstance(tags, list):
        return {tag: True for tag in tags}
    if isinstance(tags, dict):
        return dict(tags)
    raise InvalidConfigurationError(f"Service '{name}': 'tags' must be a list or a mapping.")

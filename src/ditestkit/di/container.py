"""Compiled dependency injection container.

Services are created lazily, once, from their definitions. Instance
construction and constructor autowiring are delegated to ``injector``:
every autowired type is bound to a provider that performs a unique
lookup by type, so ``@inject``-decorated constructors receive container
services.
"""

import logging
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Type, TypeVar, Union

import injector

from .definitions import REFERENCE_PREFIX, ServiceDefinition
from .exceptions import (
    AmbiguousServiceError,
    ContainerError,
    InvalidConfigurationError,
    MissingServiceError,
    ServiceCreationError,
)
from .helpers import class_path, import_string

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Dependency injection container.

    Usage:
        container = Compiler(...).compile()

        mailer = container.get_by_type(Mailer)
        clock = container.get_service("clock")

        if container.has_type(Session):
            container.get_by_type(Session).close()
    """

    def __init__(
        self,
        parameters: Optional[dict] = None,
        definitions: Optional[dict[str, ServiceDefinition]] = None,
    ):
        self._parameters = MappingProxyType(dict(parameters or {}))
        self._definitions: dict[str, ServiceDefinition] = dict(definitions or {})
        self._instances: dict[str, Any] = {}
        self._creating: list[str] = []
        self._bound_types: set[type] = set()
        self._injector = injector.Injector([self._configure], auto_bind=False)

    def _configure(self, binder: injector.Binder) -> None:
        binder.bind(Container, to=injector.InstanceProvider(self))
        self._bound_types.add(Container)
        for definition in self._definitions.values():
            self._bind_types(binder, definition)

    def _bind_types(self, binder: injector.Binder, definition: ServiceDefinition) -> None:
        if not definition.autowired:
            return
        for service_type in definition.get_types():
            if service_type in self._bound_types:
                continue
            binder.bind(service_type, to=injector.CallableProvider(self._type_provider(service_type)))
            self._bound_types.add(service_type)

    def _type_provider(self, service_type: type) -> Callable[[], Any]:
        return lambda: self.get_by_type(service_type)

    @property
    def parameters(self) -> Mapping[str, Any]:
        """Resolved container parameters (read-only)."""
        return self._parameters

    @property
    def service_names(self) -> list[str]:
        return list(self._definitions)

    def get_definition(self, name: str) -> ServiceDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise MissingServiceError(f"Service '{name}' not found.") from None

    def has_service(self, name: str) -> bool:
        return name in self._definitions

    def is_created(self, name: str) -> bool:
        if name not in self._definitions:
            raise MissingServiceError(f"Service '{name}' not found.")
        return name in self._instances

    def add_service(self, name: str, instance: Any) -> "Container":
        """Register an already created instance under ``name``."""
        if name in self._definitions:
            raise ContainerError(f"Service '{name}' already exists.")
        definition = ServiceDefinition(name=name, instance=instance)
        self._definitions[name] = definition
        self._instances[name] = instance
        self._bind_types(self._injector.binder, definition)
        return self

    def get_service(self, name: str) -> Any:
        """Get a service by name, creating it on first access."""
        if name in self._instances:
            return self._instances[name]
        definition = self.get_definition(name)
        instance = self._create_service(definition)
        self._instances[name] = instance
        return instance

    def find_by_type(self, service_type: Union[type, str]) -> list[str]:
        """Names of autowired services assignable to ``service_type``."""
        service_type = self._resolve_type(service_type)
        return [
            name for name, definition in self._definitions.items()
            if definition.autowired and definition.matches(service_type)
        ]

    def find_by_tag(self, tag: str) -> dict[str, Any]:
        """Map of service name -> tag value for services carrying ``tag``."""
        return {
            name: definition.tags[tag]
            for name, definition in self._definitions.items()
            if tag in definition.tags
        }

    def has_type(self, service_type: Union[type, str]) -> bool:
        """Whether exactly one autowired service matches ``service_type``."""
        try:
            return len(self.find_by_type(service_type)) == 1
        except MissingServiceError:
            return False

    def get_by_type(self, service_type: Union[Type[T], str], throw: bool = True) -> Optional[T]:
        """Get the unique autowired service of the given type.

        Args:
            service_type: Class (or import path of a class) to look up
            throw: Raise when no unique service exists; otherwise return None

        Raises:
            MissingServiceError: no autowired service matches
            AmbiguousServiceError: more than one autowired service matches
        """
        try:
            service_type = self._resolve_type(service_type)
        except MissingServiceError:
            if not throw:
                return None
            raise
        names = self.find_by_type(service_type)
        if len(names) == 1:
            return self.get_service(names[0])
        if not throw:
            return None
        if not names:
            raise MissingServiceError(
                f"Service of type {class_path(service_type)} not found. "
                f"Did you add it to configuration file?"
            )
        raise AmbiguousServiceError(
            f"Multiple services of type {class_path(service_type)} found: {', '.join(names)}."
        )

    def _resolve_type(self, service_type: Union[type, str]) -> type:
        if isinstance(service_type, str):
            name = service_type
            try:
                service_type = import_string(name)
            except InvalidConfigurationError as e:
                raise MissingServiceError(f"Service of type {name} not found. {e}") from e
            if not isinstance(service_type, type):
                raise MissingServiceError(f"Service of type {name} not found. '{name}' is not a class.")
        if not isinstance(service_type, type):
            raise TypeError(f"Expected a class, got {service_type!r}.")
        return service_type

    def _create_service(self, definition: ServiceDefinition) -> Any:
        name = definition.name
        if name in self._creating:
            chain = " -> ".join(self._creating + [name])
            raise ServiceCreationError(f"Circular reference detected for services: {chain}")

        self._creating.append(name)
        try:
            instance = self._instantiate(definition)
            for method, arguments in definition.setup:
                args, kwargs = self._split_arguments(arguments)
                getattr(instance, method)(*args, **kwargs)
        except ContainerError:
            raise
        except (injector.Error, TypeError, AttributeError) as e:
            raise ServiceCreationError(f"Service '{name}': {e}") from e
        finally:
            self._creating.pop()

        if (
            definition.factory is not None
            and isinstance(definition.type, type)
            and not isinstance(instance, definition.type)
        ):
            raise ServiceCreationError(
                f"Service '{name}': factory returned {type(instance).__name__}, "
                f"expected {class_path(definition.type)}."
            )

        logger.debug(f"Created service '{name}' ({definition.describe()})")
        return instance

    def _instantiate(self, definition: ServiceDefinition) -> Any:
        args, kwargs = self._split_arguments(definition.arguments)
        if definition.factory is not None:
            return self._injector.call_with_injection(
                definition.factory, args=tuple(args), kwargs=kwargs
            )
        if args:
            return definition.type(*args, **kwargs)
        return self._injector.create_object(definition.type, additional_kwargs=kwargs)

    def _split_arguments(self, arguments: Union[list, dict]) -> tuple[list, dict]:
        if isinstance(arguments, dict):
            return [], {key: self._resolve_reference(value) for key, value in arguments.items()}
        if isinstance(arguments, list):
            return [self._resolve_reference(value) for value in arguments], {}
        return [self._resolve_reference(arguments)], {}

    def _resolve_reference(self, value: Any) -> Any:
        """Replace ``@name`` / ``@package.Type`` strings with services."""
        if isinstance(value, list):
            return [self._resolve_reference(item) for item in value]
        if isinstance(value, dict):
            return {key: self._resolve_reference(item) for key, item in value.items()}
        if not isinstance(value, str) or not value.startswith(REFERENCE_PREFIX):
            return value

        reference = value[len(REFERENCE_PREFIX):]
        if reference.startswith(REFERENCE_PREFIX):
            return reference
        if self.has_service(reference):
            return self.get_service(reference)
        if "." in reference:
            return self.get_by_type(reference)
        raise MissingServiceError(f"Reference to missing service '{reference}'.")

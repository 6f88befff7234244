"""Exceptions raised by the DI container framework."""


class ContainerError(Exception):
    """Base class for container build and lookup errors."""


class InvalidConfigurationError(ContainerError):
    """A config file could not be read, merged, or expanded."""


class ServiceCreationError(ContainerError):
    """A service definition could not be turned into an instance."""


class MissingServiceError(ContainerError):
    """No service matches the requested name or type."""


class AmbiguousServiceError(MissingServiceError):
    """More than one autowired service matches the requested type.

    Subclasses MissingServiceError so callers that only care whether a
    unique service exists can catch the base class.
    """

"""Parameter expansion, config merging and import helpers."""

import importlib
import re
from typing import Any

from .exceptions import InvalidConfigurationError

# %name% or %dotted.name%; %% is an escaped percent sign
_PARAMETER_RE = re.compile(r"%([\w.\-]*)%")

# Suffix on a config key meaning "replace, don't merge"
REPLACE_MARKER = "!"


def expand(value: Any, parameters: dict, _stack: tuple = ()) -> Any:
    """Replace %parameter% references inside a config value.

    Mappings and lists are expanded recursively. A string consisting of
    exactly one reference takes the referenced value as-is, so
    ``"%debugMode%"`` expands to a bool rather than ``"True"``.

    Raises:
        InvalidConfigurationError: for unknown or circular references, or
            when a mapping/list would be concatenated into a string.
    """
    if isinstance(value, dict):
        return {key: expand(item, parameters, _stack) for key, item in value.items()}
    if isinstance(value, list):
        return [expand(item, parameters, _stack) for item in value]
    if not isinstance(value, str) or "%" not in value:
        return value

    whole = _PARAMETER_RE.fullmatch(value)
    if whole and whole.group(1):
        return _lookup(whole.group(1), parameters, _stack)

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if not name:
            return "%"
        resolved = _lookup(name, parameters, _stack)
        if isinstance(resolved, (dict, list)):
            raise InvalidConfigurationError(
                f"Unable to concatenate non-scalar parameter '{name}' into '{value}'."
            )
        return str(resolved)

    return _PARAMETER_RE.sub(replace, value)


def _lookup(name: str, parameters: dict, stack: tuple) -> Any:
    if name in stack:
        chain = " -> ".join(stack + (name,))
        raise InvalidConfigurationError(f"Circular reference detected for parameters: {chain}")

    current: Any = parameters
    for part in name.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            raise InvalidConfigurationError(f"Missing parameter '{name}'.")
    return expand(current, parameters, stack + (name,))


def merge(base: Any, override: Any) -> Any:
    """Merge two config values; ``override`` wins.

    Mappings merge key by key, lists concatenate, scalars are replaced.
    A key ending in ``!`` discards whatever ``base`` had for that key.
    """
    if isinstance(override, dict):
        result = dict(base) if isinstance(base, dict) else {}
        for key, item in override.items():
            if isinstance(key, str) and key.endswith(REPLACE_MARKER):
                result[key[:-1]] = merge(None, item)
            elif key in result:
                result[key] = merge(result[key], item)
            else:
                result[key] = merge(None, item)
        return result
    if isinstance(override, list) and isinstance(base, list):
        return base + override
    return override


def import_string(dotted_path: str) -> Any:
    """Import an object from ``package.module.Name`` or ``package.module:Name``."""
    if ":" in dotted_path:
        module_path, _, attribute = dotted_path.partition(":")
    else:
        module_path, _, attribute = dotted_path.rpartition(".")
    if not module_path or not attribute:
        raise InvalidConfigurationError(
            f"'{dotted_path}' is not an importable path (expected 'module.Name')."
        )

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise InvalidConfigurationError(f"Cannot import '{dotted_path}': {e}") from e

    try:
        return getattr(module, attribute)
    except AttributeError as e:
        raise InvalidConfigurationError(
            f"Module '{module_path}' has no attribute '{attribute}'."
        ) from e


def class_path(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"

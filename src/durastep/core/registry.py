"""Cleanup registry loading for out-of-process reapers.

A sweep started from the CLI or a scheduler needs the same compensation
runners the workflow registered. They are referenced as 'module:attribute',
where the attribute is a mapping of action type to runner.
"""

import importlib
from collections.abc import Mapping

from durastep.contracts import CleanupRegistry, RegistryImportError


def load_registry(reference: str) -> CleanupRegistry:
    """Import a cleanup registry from a 'package.module:ATTRIBUTE' reference.

    Args:
        reference: Import path and attribute name separated by a colon

    Returns:
        The referenced mapping of action type to runner

    Raises:
        RegistryImportError: If the reference is malformed, the module or
            attribute is missing, or the attribute is not a mapping of callables
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise RegistryImportError(f"Registry reference must be 'module:attribute', got {reference!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise RegistryImportError(f"Cannot import registry module {module_name!r}: {e}") from e

    try:
        registry = getattr(module, attribute)
    except AttributeError:
        raise RegistryImportError(f"Module {module_name!r} has no attribute {attribute!r}") from None

    if not isinstance(registry, Mapping):
        raise RegistryImportError(f"{reference} is a {type(registry).__name__}, expected a mapping of action type to runner")

    not_callable = sorted(str(name) for name, runner in registry.items() if not callable(runner))
    if not_callable:
        raise RegistryImportError(f"{reference} has non-callable runners for: {', '.join(not_callable)}")

    return registry

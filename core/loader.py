"""Resolve the framework request handler from an import path.

Importing this module has no side effects, so both the Lambda entry point
and the local server can share it.
"""

import importlib
from typing import Any

from core.validators import ConfigurationError

HANDLER_ENV_VAR = "HTTP_BRIDGE_HANDLER"
LOAD_CONTEXT_ENV_VAR = "HTTP_BRIDGE_LOAD_CONTEXT"


def resolve_import_path(import_path: str) -> Any:
    """Resolve a ``package.module:attribute`` string to an object.

    Args:
        import_path: Import path with a single ':' separating the attribute

    Returns:
        The referenced object

    Raises:
        ConfigurationError: If the path is malformed or cannot be imported
    """
    module_name, sep, attribute = import_path.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigurationError(
            f"Invalid import path '{import_path}'. Expected 'package.module:attribute'"
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import module '{module_name}': {e}") from e

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ConfigurationError(
                f"Module '{module_name}' has no attribute '{attribute}'"
            ) from e

    return target

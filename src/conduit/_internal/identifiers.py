from __future__ import annotations

import importlib
import logging
from typing import Any

from conduit._internal.type_checks import is_builtin_class, is_runtime_class
from conduit.exceptions import ConduitInvalidBindingError

logger = logging.getLogger(__name__)


def identifier_of(value: object) -> str:
    """Normalize a class or string into an abstract identifier.

    Classes become their dotted import path (``module.QualName``). Builtin
    classes keep their bare name (``int``, ``str``).

    Raises:
        ConduitInvalidBindingError: If ``value`` is an empty string or neither
            a string nor a class.

    """
    if isinstance(value, str):
        if not value.strip():
            msg = "Identifier must not be empty."
            raise ConduitInvalidBindingError(msg)
        return value
    if is_runtime_class(value):
        if is_builtin_class(value):
            return value.__qualname__
        return f"{value.__module__}.{value.__qualname__}"
    msg = f"Identifier must be a non-empty string or a class, got {value!r}."
    raise ConduitInvalidBindingError(msg)


class ClassLocator:
    """Map class identifiers back to class objects.

    Every class passed through ``remember`` is found without importing, which
    covers classes that are not reachable by their dotted path (for example
    classes defined inside a function). Any other identifier is imported by
    splitting it at the longest importable module prefix.
    """

    def __init__(self) -> None:
        self._classes: dict[str, type[Any]] = {}

    def remember(self, cls: type[Any]) -> str:
        """Record a class and return its identifier."""
        identifier = identifier_of(cls)
        self._classes[identifier] = cls
        return identifier

    def locate(self, identifier: str) -> type[Any] | None:
        """Return the class named by ``identifier``, or ``None`` when there is none."""
        cls = self._classes.get(identifier)
        if cls is not None:
            return cls

        cls = self._import(identifier)
        if cls is not None:
            self._classes[identifier] = cls
        return cls

    def clear(self) -> None:
        self._classes.clear()

    def _import(self, identifier: str) -> type[Any] | None:
        parts = identifier.split(".")
        for split_at in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:split_at])
            try:
                target: Any = importlib.import_module(module_name)
            except ModuleNotFoundError as error:
                # Only a missing prefix means "try a shorter one"; a module that
                # exists but fails its own imports is a real error.
                if error.name is None or not _is_module_prefix(error.name, module_name):
                    raise
                continue

            for attribute in parts[split_at:]:
                target = getattr(target, attribute, None)
                if target is None:
                    logger.debug("Identifier %r has no attribute %r", identifier, attribute)
                    return None
            return target if is_runtime_class(target) else None
        return None


def _is_module_prefix(prefix: str, module_name: str) -> bool:
    return module_name == prefix or module_name.startswith(f"{prefix}.")


__all__ = ["ClassLocator", "identifier_of"]

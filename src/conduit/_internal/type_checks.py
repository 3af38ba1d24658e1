from __future__ import annotations

import inspect
import types
from typing import Any, TypeGuard

_BUILTINS_MODULE = "builtins"


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_builtin_class(candidate: object) -> bool:
    """Return true for classes defined in the ``builtins`` module (``int``, ``str``, ...)."""
    return is_runtime_class(candidate) and candidate.__module__ == _BUILTINS_MODULE


def is_interface(cls: type[Any]) -> bool:
    """Return true for abstract classes and protocols, which need a concrete binding."""
    return inspect.isabstract(cls) or bool(getattr(cls, "_is_protocol", False))


__all__ = ["is_builtin_class", "is_interface", "is_runtime_class"]

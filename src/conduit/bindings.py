from __future__ import annotations

import functools
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeAlias

from conduit._internal.type_checks import is_runtime_class

FactoryCallable: TypeAlias = Callable[..., Any]
"""A factory receives the container and the override mapping of the current ``make`` call."""


@dataclass(frozen=True, slots=True)
class ClassRef:
    """Build the abstract by constructing the class named by ``identifier``."""

    identifier: str


@dataclass(frozen=True, slots=True)
class Factory:
    """Build the abstract by calling ``factory(container, overrides)``."""

    factory: FactoryCallable


@dataclass(frozen=True, slots=True)
class Instance:
    """Return a pre-built ``value`` for the abstract."""

    value: Any


Concrete: TypeAlias = ClassRef | Factory | Instance
"""A construction recipe. Every consumer handles all three variants."""


@dataclass(frozen=True, slots=True)
class Binding:
    """A registered association between an abstract and its concrete recipe."""

    abstract: str
    concrete: Concrete
    shared: bool = False


def is_factory_callable(value: object) -> bool:
    """Return true for plain functions, lambdas, methods and partials.

    Callable instances of user classes are not treated as factories; wrap them
    in ``Factory`` explicitly when that is what you mean.
    """
    if inspect.isfunction(value) or inspect.ismethod(value) or inspect.isbuiltin(value):
        return True
    return isinstance(value, functools.partial)


def coerce_concrete(
    abstract: str,
    concrete: object,
    class_identifier: Callable[[type[Any]], str],
) -> Concrete:
    """Normalize a raw ``bind`` argument into a ``Concrete`` variant.

    ``None`` binds the abstract to itself, strings and classes become
    ``ClassRef``, functions become ``Factory`` and anything else is an
    ``Instance``.
    """
    if isinstance(concrete, ClassRef | Factory | Instance):
        return concrete
    if concrete is None:
        return ClassRef(abstract)
    if isinstance(concrete, str):
        return ClassRef(concrete)
    if is_runtime_class(concrete):
        return ClassRef(class_identifier(concrete))
    if is_factory_callable(concrete):
        return Factory(concrete)  # type: ignore[arg-type]
    return Instance(concrete)


__all__ = [
    "Binding",
    "ClassRef",
    "Concrete",
    "Factory",
    "FactoryCallable",
    "Instance",
    "coerce_concrete",
    "is_factory_callable",
]

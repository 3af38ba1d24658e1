from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar, overload

from conduit._internal.descriptors import ParameterDescriptor, TypeDescriptorProvider
from conduit._internal.identifiers import ClassLocator, identifier_of
from conduit._internal.registry import MISSING, BindingRegistry
from conduit._internal.resolving import ResolvingSet
from conduit._internal.type_checks import is_interface, is_runtime_class
from conduit.bindings import Binding, ClassRef, Concrete, Factory, Instance, coerce_concrete
from conduit.exceptions import (
    ConduitCannotInstantiateError,
    ConduitUnboundInterfaceError,
    ConduitUnresolvedParameterError,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Container:
    """Register construction recipes and build fully-wired object graphs.

    Identifiers are strings (conventionally dotted class paths, but any token
    works) or classes, which are normalized to ``module.QualName``. Unbound
    class identifiers are constructed directly, so most classes never need a
    registration at all.

    A container is synchronous and not thread-safe: confine one container per
    worker, or guard every call with a lock.
    """

    def __init__(self) -> None:
        self._registry = BindingRegistry()
        self._locator = ClassLocator()
        self._descriptors = TypeDescriptorProvider()
        self._resolving = ResolvingSet()

    # region Registration Methods
    def bind(self, abstract: Any, concrete: Any = None, *, shared: bool = False) -> None:
        """Register or overwrite the recipe for ``abstract``.

        Args:
            abstract: Identifier to bind (string or class).
            concrete: Recipe. ``None`` binds the abstract to itself; a class or
                string binds to a class identifier; a function is called as
                ``factory(container, overrides)``; any other object is returned
                as-is. ``ClassRef``/``Factory``/``Instance`` are accepted directly.
            shared: Cache the first built instance and reuse it.

        Raises:
            ConduitInvalidBindingError: If ``abstract`` is empty or not a string/class.

        Examples:
            .. code-block:: python

                container.bind(Mailer)
                container.bind("mailer.transport", lambda c, params: SmtpTransport(**params))

        """
        key = self._identifier(abstract)
        resolved_concrete = coerce_concrete(key, concrete, self._locator.remember)
        if isinstance(resolved_concrete, ClassRef):
            identifier_of(resolved_concrete.identifier)  # rejects empty class identifiers
        self._registry.add(Binding(abstract=key, concrete=resolved_concrete, shared=shared))
        self._binding_changed(key)
        logger.debug("Bound [%s] shared=%s", key, shared)

    def singleton(self, abstract: Any, concrete: Any = None) -> None:
        """Register ``abstract`` as shared. Same as ``bind(..., shared=True)``."""
        self.bind(abstract, concrete, shared=True)

    def instance(self, abstract: Any, obj: Any) -> None:
        """Register a pre-built value, immediately treated as a cached singleton."""
        key = self._identifier(abstract)
        self._registry.add_instance(key, obj)

    def alias(self, abstract: Any, alias_name: Any) -> None:
        """Make ``alias_name`` resolve to ``abstract``.

        Aliases are one hop: aliasing an alias, or turning an alias target into
        an alias, is rejected. Re-aliasing an existing alias name overwrites it.

        Raises:
            ConduitInvalidBindingError: If either name is invalid or the alias
                would form a chain.

        """
        alias_key = self._identifier(alias_name)
        self._registry.add_alias(self._identifier(abstract), alias_key)
        self._binding_changed(alias_key)

    def forget(self, identifier: Any) -> None:
        """Drop the binding, cached instance and alias registered under ``identifier``."""
        key = self._identifier(identifier)
        self._registry.remove(key)
        self._binding_changed(key)

    def bound(self, identifier: Any) -> bool:
        """Return true if a binding, instance, or alias exists for ``identifier``."""
        return self._registry.is_registered(self._identifier(identifier))

    def has(self, identifier: Any) -> bool:
        """Container-interface synonym of ``bound``."""
        return self.bound(identifier)

    def flush(self) -> None:
        """Clear every binding, alias, cached instance and bookkeeping structure.

        Intended for test isolation only.
        """
        self._registry.clear()
        self._locator.clear()
        self._descriptors.clear()
        self._resolving.clear()

    # endregion Registration Methods

    # region Introspection
    @property
    def registry(self) -> BindingRegistry:
        return self._registry

    @property
    def locator(self) -> ClassLocator:
        return self._locator

    @property
    def descriptors(self) -> TypeDescriptorProvider:
        return self._descriptors

    @property
    def resolving(self) -> ResolvingSet:
        return self._resolving

    @property
    def bindings(self) -> Mapping[str, Binding]:
        return self._registry.bindings

    @property
    def aliases(self) -> Mapping[str, str]:
        return self._registry.aliases

    @property
    def singletons(self) -> list[str]:
        return self._registry.shared_abstracts()

    def locate_class(self, identifier: str) -> type[Any]:
        """Return the constructible class named by ``identifier``.

        Raises:
            ConduitCannotInstantiateError: If no class exists under ``identifier``.
            ConduitUnboundInterfaceError: If the class is abstract or a protocol.

        """
        cls = self._locator.locate(identifier)
        if cls is None:
            raise ConduitCannotInstantiateError(identifier, "class does not exist")
        if is_interface(cls):
            raise ConduitUnboundInterfaceError(identifier)
        return cls

    # endregion Introspection

    # region Resolution
    @overload
    def make(self, identifier: type[T], overrides: Mapping[str, Any] | None = None) -> T: ...

    @overload
    def make(self, identifier: str, overrides: Mapping[str, Any] | None = None) -> Any: ...

    def make(self, identifier: Any, overrides: Mapping[str, Any] | None = None) -> Any:
        """Build (or fetch from cache) the instance registered under ``identifier``.

        Args:
            identifier: Identifier or alias to resolve.
            overrides: Constructor arguments by parameter name. Overrides always
                force a fresh build, and the result is never cached.

        Returns:
            The resolved instance.

        Raises:
            ConduitCannotInstantiateError: If the class does not exist.
            ConduitUnboundInterfaceError: If an abstract class or protocol has
                no binding.
            ConduitUnresolvedParameterError: If a constructor parameter cannot
                be satisfied.
            ConduitCircularDependencyError: If the graph contains a cycle.

        Examples:
            .. code-block:: python

                container.singleton(Logger)
                notifier = container.make(Notifier, {"channel": "sms"})

        """
        abstract = self._registry.resolve_alias(self._identifier(identifier))
        parameters = dict(overrides) if overrides else {}

        if not parameters:
            cached = self._registry.find_instance(abstract)
            if cached is not MISSING:
                return cached

        binding = self._registry.find_binding(abstract)
        concrete: Concrete = binding.concrete if binding is not None else ClassRef(abstract)
        instance = self._build(abstract, concrete, parameters)

        if binding is not None and binding.shared and not parameters:
            self._registry.add_instance(abstract, instance)
        return instance

    def get(self, identifier: Any) -> Any:
        """Container-interface synonym of ``make`` without overrides."""
        return self.make(identifier)

    def _build(self, abstract: str, concrete: Concrete, parameters: dict[str, Any]) -> Any:
        if isinstance(concrete, Instance):
            return concrete.value
        if isinstance(concrete, Factory):
            return concrete.factory(self, parameters)

        target = concrete.identifier
        if target != abstract and self._registry.is_registered(target):
            # rebinding to another registered abstract: follow its own recipe
            with self._resolving.enter(abstract):
                return self.make(target, parameters)
        return self._build_class(target, parameters)

    def _build_class(self, class_identifier: str, parameters: dict[str, Any]) -> Any:
        with self._resolving.enter(class_identifier):
            cls = self.locate_class(class_identifier)
            args: list[Any] = []
            kwargs: dict[str, Any] = {}
            for descriptor in self._descriptors.describe(cls):
                value = self._resolve_parameter(class_identifier, descriptor, parameters)
                if descriptor.positional_only:
                    args.append(value)
                else:
                    kwargs[descriptor.name] = value
        return cls(*args, **kwargs)

    def _resolve_parameter(
        self,
        class_identifier: str,
        descriptor: ParameterDescriptor,
        parameters: Mapping[str, Any],
    ) -> Any:
        if descriptor.name in parameters:
            return parameters[descriptor.name]
        if descriptor.annotation is not None and not descriptor.builtin:
            return self.make(descriptor.annotation)
        if descriptor.has_default:
            return descriptor.default
        if descriptor.nullable:
            return None
        raise ConduitUnresolvedParameterError(class_identifier, descriptor.name)

    # endregion Resolution

    def _identifier(self, value: Any) -> str:
        if is_runtime_class(value):
            return self._locator.remember(value)
        return identifier_of(value)

    def _binding_changed(self, abstract: str) -> None:
        """Hook for subclasses that keep derived state per abstract."""


__all__ = ["Container"]

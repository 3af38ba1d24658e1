from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Final

from conduit.bindings import Binding
from conduit.exceptions import ConduitInvalidBindingError

MISSING: Final[Any] = object()
"""Sentinel for "no cached instance", since ``None`` is a valid instance."""


class BindingRegistry:
    """Holds bindings, aliases and cached instances of one container.

    Pure data with simple mutators. Rebinding an abstract evicts its cached
    instance so the registry never serves a stale singleton.
    """

    def __init__(self) -> None:
        self._bindings: dict[str, Binding] = {}
        self._aliases: dict[str, str] = {}
        self._instances: dict[str, Any] = {}

    def add(self, binding: Binding) -> None:
        """Register or overwrite a binding and evict its cached instance."""
        self._bindings[binding.abstract] = binding
        self._instances.pop(binding.abstract, None)

    def add_instance(self, abstract: str, instance: Any) -> None:
        """Store a pre-built instance as the cached value for ``abstract``."""
        self._instances[abstract] = instance

    def add_alias(self, abstract: str, alias: str) -> None:
        """Register ``alias`` as a one-hop name for ``abstract``.

        Raises:
            ConduitInvalidBindingError: If the alias would point at itself, at
                another alias, or if ``alias`` is already the target of an alias.

        """
        if alias == abstract:
            msg = f"Alias [{alias}] cannot point at itself."
            raise ConduitInvalidBindingError(msg)
        if abstract in self._aliases:
            msg = (
                f"Cannot alias [{alias}] to [{abstract}]: [{abstract}] is itself an alias "
                f"of [{self._aliases[abstract]}]. Alias the target abstract directly."
            )
            raise ConduitInvalidBindingError(msg)
        if alias in self._aliases.values():
            msg = f"Cannot use [{alias}] as an alias: other aliases already point at it."
            raise ConduitInvalidBindingError(msg)
        self._aliases[alias] = abstract

    def resolve_alias(self, identifier: str) -> str:
        return self._aliases.get(identifier, identifier)

    def find_binding(self, abstract: str) -> Binding | None:
        return self._bindings.get(abstract)

    def find_instance(self, abstract: str) -> Any:
        """Return the cached instance for ``abstract``, or ``MISSING``."""
        return self._instances.get(abstract, MISSING)

    def has_instance(self, abstract: str) -> bool:
        return abstract in self._instances

    def is_registered(self, identifier: str) -> bool:
        """Return true if a binding, instance, or alias exists for ``identifier``."""
        return (
            identifier in self._bindings
            or identifier in self._instances
            or identifier in self._aliases
        )

    def remove(self, identifier: str) -> None:
        """Drop the binding, cached instance and alias registered under ``identifier``."""
        self._bindings.pop(identifier, None)
        self._instances.pop(identifier, None)
        self._aliases.pop(identifier, None)

    def clear(self) -> None:
        self._bindings.clear()
        self._aliases.clear()
        self._instances.clear()

    @property
    def bindings(self) -> Mapping[str, Binding]:
        return MappingProxyType(self._bindings)

    @property
    def aliases(self) -> Mapping[str, str]:
        return MappingProxyType(self._aliases)

    def shared_abstracts(self) -> list[str]:
        """Get all abstracts bound with ``shared=True``, in registration order."""
        return [abstract for abstract, binding in self._bindings.items() if binding.shared]

    def __len__(self) -> int:
        return len(self._bindings)


__all__ = ["MISSING", "BindingRegistry"]

from __future__ import annotations

from collections.abc import Sequence


class ConduitError(Exception):
    """Represent a base class for all Conduit-specific failures.

    Catch this type when you want to handle any Conduit error path without
    matching each concrete exception class individually.
    """


class ConduitInvalidBindingError(ConduitError):
    """Signal invalid registration arguments.

    Raised by ``Container.bind``, ``Container.singleton``, ``Container.instance``
    and ``Container.alias`` when an identifier is empty or not a string/class,
    and when an alias would create a chain of aliases.
    """


class ConduitBindingResolutionError(ConduitError):
    """Signal that ``make`` could not produce an instance.

    This is the umbrella type for every resolution failure. ``abstract`` holds
    the identifier (or class identifier) that failed and ``parameter`` holds
    the constructor parameter name when the failure is parameter-specific.
    """

    def __init__(self, message: str, *, abstract: str, parameter: str | None = None) -> None:
        super().__init__(message)
        self.abstract = abstract
        self.parameter = parameter


class ConduitCannotInstantiateError(ConduitBindingResolutionError):
    """Signal that a concrete class does not exist or cannot be constructed.

    Typical fixes include binding the identifier explicitly, or making sure the
    dotted path points at an importable class.
    """

    def __init__(self, abstract: str, reason: str) -> None:
        msg = f"Cannot instantiate [{abstract}]: {reason}"
        super().__init__(msg, abstract=abstract)
        self.reason = reason


class ConduitUnboundInterfaceError(ConduitCannotInstantiateError):
    """Signal resolution of an abstract class or protocol with no binding.

    Typical fix is ``container.bind(Interface, Implementation)``.
    """

    def __init__(self, abstract: str) -> None:
        super().__init__(abstract, "interface is not bound to any concrete implementation")


class ConduitUnresolvedParameterError(ConduitBindingResolutionError):
    """Signal a constructor parameter that cannot be satisfied.

    Raised for builtin or unannotated parameters that have no override, no
    default value, and do not accept ``None``.

    Typical fixes include passing the value through ``overrides``, adding a
    default, or binding a factory for the class.
    """

    def __init__(self, abstract: str, parameter: str) -> None:
        msg = f"Unresolved dependency for parameter [{parameter}] in class [{abstract}]."
        super().__init__(msg, abstract=abstract, parameter=parameter)


class ConduitCircularDependencyError(ConduitBindingResolutionError):
    """Signal that an identifier is already being constructed.

    Raised the same way by ``Container.make`` at request time and by
    ``ContainerCompiler.compile`` at build time. ``chain`` lists the
    identifiers in construction order, ending with the repeated one.
    """

    def __init__(self, abstract: str, chain: Sequence[str] = ()) -> None:
        self.chain = (*chain, abstract)
        msg = f"Circular dependency detected for [{abstract}]: {' -> '.join(self.chain)}"
        super().__init__(msg, abstract=abstract)


class ConduitCompiledArtifactError(ConduitError):
    """Signal a compiled artifact that cannot be trusted.

    Raised by ``ArtifactStore.read`` when the file is unreadable, is not a
    valid artifact document, or declares an unsupported ``schemaVersion``.
    ``CompiledContainer`` catches it and falls back to dynamic resolution.
    """

from __future__ import annotations

import logging
import math
import os
import platform
import time
from collections import Counter
from pathlib import Path
from typing import Any

from conduit._internal.descriptors import ParameterDescriptor
from conduit._internal.resolving import ResolvingSet
from conduit.artifact import (
    SCHEMA_VERSION,
    ArtifactStore,
    BindingDescriptor,
    BindingType,
    CompiledArtifact,
    DependencyDescriptor,
)
from conduit.bindings import Binding, ClassRef, Factory, Instance
from conduit.container import Container
from conduit.exceptions import ConduitCannotInstantiateError

logger = logging.getLogger(__name__)

_PORTABLE_SCALARS = (type(None), bool, int, str)


class ContainerCompiler:
    """Analyze a container's bindings into a ``CompiledArtifact``.

    The compiler never constructs objects. It reads constructor metadata,
    follows the dependency graph to reject cycles ahead of deployment, and
    records enough about each class binding for ``CompiledContainer`` to build
    it without introspection.
    """

    def __init__(self, container: Container) -> None:
        self._container = container
        self._resolving = ResolvingSet()
        self._visited: set[str] = set()

    def compile(self) -> CompiledArtifact:
        """Compile every registered binding.

        Returns:
            A new artifact stamped with the current schema version, time and
            interpreter.

        Raises:
            ConduitCircularDependencyError: If any binding's dependency graph
                contains a cycle.

        """
        self._resolving.clear()
        self._visited.clear()

        bindings: dict[str, BindingDescriptor] = {}
        for abstract, binding in self._container.bindings.items():
            self._visit(abstract)
            bindings[abstract] = self._compile_binding(binding)

        artifact = CompiledArtifact(
            schema_version=SCHEMA_VERSION,
            compiled_at=int(time.time()),
            platform_info=platform_info(),
            bindings=bindings,
            aliases=dict(self._container.aliases),
            singletons=tuple(self._container.singletons),
        )
        self._log_summary(artifact)
        return artifact

    def save(self, artifact: CompiledArtifact, path: str | os.PathLike[str]) -> Path:
        """Atomically write ``artifact`` to ``path``."""
        return ArtifactStore(path).write(artifact)

    def _log_summary(self, artifact: CompiledArtifact) -> None:
        type_counts = Counter(descriptor.type for descriptor in artifact.bindings.values())
        logger.info(
            (
                "Container compiled: binding_count=%d compilable_count=%d "
                "type_counts={simple:%d,complex:%d,closure:%d,not_instantiable:%d,unknown:%d}"
            ),
            len(artifact.bindings),
            artifact.compilable_count,
            type_counts.get(BindingType.SIMPLE, 0),
            type_counts.get(BindingType.COMPLEX, 0),
            type_counts.get(BindingType.CLOSURE, 0),
            type_counts.get(BindingType.NOT_INSTANTIABLE, 0),
            type_counts.get(BindingType.UNKNOWN, 0),
        )

    # region Classification
    def _compile_binding(self, binding: Binding) -> BindingDescriptor:
        concrete = binding.concrete
        if isinstance(concrete, Factory):
            return BindingDescriptor(
                type=BindingType.CLOSURE,
                compilable=False,
                shared=binding.shared,
            )
        if isinstance(concrete, Instance):
            return BindingDescriptor(
                type=BindingType.UNKNOWN,
                compilable=False,
                shared=binding.shared,
            )
        if self._is_delegation(binding.abstract, concrete):
            return BindingDescriptor(
                type=BindingType.UNKNOWN,
                compilable=False,
                shared=binding.shared,
                class_=concrete.identifier,
            )
        return self._compile_class(concrete.identifier, shared=binding.shared)

    def _compile_class(self, class_identifier: str, *, shared: bool) -> BindingDescriptor:
        try:
            cls = self._container.locate_class(class_identifier)
            parameters = self._container.descriptors.describe(cls)
        except ConduitCannotInstantiateError as error:
            logger.debug("Binding class [%s] is not instantiable: %s", class_identifier, error)
            return BindingDescriptor(
                type=BindingType.NOT_INSTANTIABLE,
                compilable=False,
                shared=shared,
                class_=class_identifier,
            )

        if not parameters:
            return BindingDescriptor(
                type=BindingType.SIMPLE,
                compilable=True,
                shared=shared,
                class_=class_identifier,
            )

        return BindingDescriptor(
            type=BindingType.COMPLEX,
            compilable=all(self._is_portable_parameter(parameter) for parameter in parameters),
            shared=shared,
            class_=class_identifier,
            dependencies=tuple(self._dependency_descriptor(parameter) for parameter in parameters),
        )

    def _dependency_descriptor(self, parameter: ParameterDescriptor) -> DependencyDescriptor:
        return DependencyDescriptor(
            name=parameter.name,
            type=parameter.type,
            builtin=parameter.builtin,
            optional=parameter.optional,
            default=parameter.default if self._is_portable_value(parameter.default) else None,
        )

    def _is_portable_parameter(self, parameter: ParameterDescriptor) -> bool:
        # compiled construction passes every argument by keyword
        if parameter.positional_only:
            return False
        return self._is_portable_value(parameter.default)

    def _is_portable_value(self, value: Any) -> bool:
        """Whether ``value`` survives a JSON round trip unchanged."""
        if type(value) in _PORTABLE_SCALARS:
            return True
        if type(value) is float:
            # JSON has no nan or infinity
            return math.isfinite(value)
        if type(value) is list:
            return all(self._is_portable_value(item) for item in value)
        if type(value) is dict:
            return all(
                type(key) is str and self._is_portable_value(item) for key, item in value.items()
            )
        return False

    # endregion Classification

    # region Cycle Detection
    def _visit(self, identifier: str) -> None:
        """Walk the graph reachable from ``identifier`` the way ``make`` would.

        Nodes are keyed exactly as the dynamic resolver keys its resolving set,
        so a cycle raises the same error here as at request time.
        """
        registry = self._container.registry
        abstract = registry.resolve_alias(identifier)
        if abstract in self._visited:
            return

        binding = registry.find_binding(abstract)
        if binding is None:
            if registry.has_instance(abstract):
                self._visited.add(abstract)
                return
            self._visit_class(abstract)
            self._visited.add(abstract)
            return

        concrete = binding.concrete
        if isinstance(concrete, Factory | Instance):
            self._visited.add(abstract)
            return
        if self._is_delegation(abstract, concrete):
            with self._resolving.enter(abstract):
                self._visit(concrete.identifier)
        else:
            self._visit_class(concrete.identifier)
        self._visited.add(abstract)

    def _visit_class(self, class_identifier: str) -> None:
        if class_identifier in self._visited:
            return
        with self._resolving.enter(class_identifier):
            try:
                cls = self._container.locate_class(class_identifier)
                parameters = self._container.descriptors.describe(cls)
            except ConduitCannotInstantiateError as error:
                # classified where it is bound; elsewhere it only fails at make time
                logger.warning("Class [%s] cannot be instantiated: %s", class_identifier, error)
                parameters = ()
            for parameter in parameters:
                if parameter.annotation is not None and not parameter.builtin:
                    self._visit(self._container.locator.remember(parameter.annotation))
        self._visited.add(class_identifier)

    def _is_delegation(self, abstract: str, concrete: ClassRef) -> bool:
        target = concrete.identifier
        return target != abstract and self._container.registry.is_registered(target)

    # endregion Cycle Detection


def platform_info() -> str:
    """Describe the interpreter that produced an artifact."""
    return f"{platform.python_implementation()} {platform.python_version()}"


__all__ = ["ContainerCompiler", "platform_info"]

"""Container that builds from a compiled artifact.

Compilable bindings are constructed straight from their recorded descriptors,
without reading any constructor signature. Everything else (closures,
unregistered classes, bindings changed after the artifact was loaded) falls
through to the dynamic resolver, so the result is always the same object graph.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from typing_extensions import Self, override

from conduit._internal.registry import MISSING
from conduit.artifact import (
    SUPPORTED_SCHEMA_VERSIONS,
    ArtifactStore,
    BindingDescriptor,
    CompiledArtifact,
    DependencyDescriptor,
)
from conduit.bindings import ClassRef
from conduit.container import Container
from conduit.exceptions import ConduitCompiledArtifactError, ConduitUnresolvedParameterError
from conduit.settings import ContainerSettings

logger = logging.getLogger(__name__)


class CompiledContainer(Container):
    """A ``Container`` that prefers a loaded ``CompiledArtifact`` in ``make``.

    Without an artifact it behaves exactly like ``Container``. An artifact with
    an unsupported schema version is refused and resolution stays dynamic.
    """

    def __init__(self, artifact: CompiledArtifact | None = None) -> None:
        super().__init__()
        self._artifact: CompiledArtifact | None = None
        self._stale: set[str] = set()
        if artifact is not None:
            self.load_compiled(artifact)

    @classmethod
    def from_settings(cls, settings: ContainerSettings | None = None) -> Self:
        """Create a container and load the configured artifact when enabled.

        A missing or untrusted artifact file is not an error: the container
        resolves dynamically instead.
        """
        if settings is None:
            settings = ContainerSettings()
        container = cls()
        if settings.use_compiled:
            container.load_compiled_file(settings.compiled_path)
        return container

    # region Artifact Loading
    def load_compiled(self, artifact: CompiledArtifact) -> bool:
        """Use ``artifact`` for subsequent ``make`` calls.

        Returns:
            Whether the artifact was accepted.

        """
        if artifact.schema_version not in SUPPORTED_SCHEMA_VERSIONS:
            logger.warning(
                "Refusing compiled artifact with schema version %r; resolving dynamically",
                artifact.schema_version,
            )
            self._artifact = None
            return False

        self._artifact = artifact
        self._stale.clear()
        logger.info(
            "Compiled artifact loaded: bindings=%d compilable=%d compiled_at=%d",
            len(artifact.bindings),
            artifact.compilable_count,
            artifact.compiled_at,
        )
        return True

    def load_compiled_file(self, path: str | os.PathLike[str]) -> bool:
        """Load the artifact stored at ``path``.

        Returns:
            Whether an artifact was loaded. ``False`` when the file is missing
            or cannot be trusted.

        """
        store = ArtifactStore(path)
        if not store.exists():
            logger.debug("No compiled artifact at %s; resolving dynamically", store.path)
            return False
        try:
            artifact = store.read()
        except ConduitCompiledArtifactError as error:
            logger.warning("Ignoring compiled artifact at %s: %s", store.path, error)
            self._artifact = None
            return False
        return self.load_compiled(artifact)

    def unload_compiled(self) -> None:
        self._artifact = None
        self._stale.clear()

    @property
    def is_compiled(self) -> bool:
        return self._artifact is not None

    @property
    def artifact(self) -> CompiledArtifact | None:
        return self._artifact

    def compilation_info(self) -> dict[str, Any] | None:
        """Summarize the loaded artifact, or ``None`` when resolving dynamically."""
        artifact = self._artifact
        if artifact is None:
            return None
        return {
            "schema_version": artifact.schema_version,
            "compiled_at": artifact.compiled_at,
            "platform_info": artifact.platform_info,
            "bindings_count": len(artifact.bindings),
            "compilable_count": artifact.compilable_count,
        }

    # endregion Artifact Loading

    # region Resolution
    @override
    def make(self, identifier: Any, overrides: Mapping[str, Any] | None = None) -> Any:
        artifact = self._artifact
        if artifact is None:
            return super().make(identifier, overrides)

        key = self._identifier(identifier)
        abstract = self._resolve_compiled_alias(artifact, key)
        descriptor = artifact.bindings.get(abstract)
        if (
            descriptor is None
            or not descriptor.compilable
            or abstract in self._stale
            or self._delegates(abstract, descriptor)
        ):
            logger.debug("Dynamic fallback for [%s]", abstract)
            return super().make(abstract, overrides)

        parameters = dict(overrides) if overrides else {}
        if not parameters:
            cached = self._registry.find_instance(abstract)
            if cached is not MISSING:
                return cached

        instance = self._build_compiled(descriptor, parameters)
        if descriptor.shared and not parameters:
            self._registry.add_instance(abstract, instance)
        return instance

    def _resolve_compiled_alias(self, artifact: CompiledArtifact, key: str) -> str:
        if key not in self._stale and key in artifact.aliases:
            return artifact.aliases[key]
        return self._registry.resolve_alias(key)

    def _delegates(self, abstract: str, descriptor: BindingDescriptor) -> bool:
        # the recorded class was registered as an abstract of its own after compiling
        target = descriptor.class_
        return target is not None and target != abstract and self._registry.is_registered(target)

    def _build_compiled(self, descriptor: BindingDescriptor, parameters: dict[str, Any]) -> Any:
        class_identifier = descriptor.class_
        if class_identifier is None:  # pragma: no cover
            msg = "Compilable binding descriptor has no class."
            raise ConduitCompiledArtifactError(msg)

        with self._resolving.enter(class_identifier):
            cls = self.locate_class(class_identifier)
            kwargs = {
                dependency.name: self._resolve_dependency(class_identifier, dependency, parameters)
                for dependency in descriptor.dependencies
            }
        return cls(**kwargs)

    def _resolve_dependency(
        self,
        class_identifier: str,
        dependency: DependencyDescriptor,
        parameters: Mapping[str, Any],
    ) -> Any:
        if dependency.name in parameters:
            return parameters[dependency.name]
        if not dependency.builtin and dependency.type is not None:
            return self.make(dependency.type)
        if dependency.optional:
            return dependency.default
        raise ConduitUnresolvedParameterError(class_identifier, dependency.name)

    # endregion Resolution

    @override
    def flush(self) -> None:
        super().flush()
        self.unload_compiled()

    @override
    def _binding_changed(self, abstract: str) -> None:
        artifact = self._artifact
        if artifact is None:
            return
        if self._matches_artifact(artifact, abstract):
            self._stale.discard(abstract)
        else:
            self._stale.add(abstract)

    def _matches_artifact(self, artifact: CompiledArtifact, abstract: str) -> bool:
        """Whether the registration under ``abstract`` is the one the artifact recorded."""
        aliases = self._registry.aliases
        if abstract in aliases:
            return artifact.aliases.get(abstract) == aliases[abstract]

        binding = self._registry.find_binding(abstract)
        descriptor = artifact.bindings.get(abstract)
        if binding is None or descriptor is None or abstract in artifact.aliases:
            return False
        concrete = binding.concrete
        return (
            isinstance(concrete, ClassRef)
            and concrete.identifier == descriptor.class_
            and binding.shared == descriptor.shared
        )


__all__ = ["CompiledContainer"]

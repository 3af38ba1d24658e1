from conduit.artifact import (
    SCHEMA_VERSION,
    ArtifactStore,
    BindingDescriptor,
    BindingType,
    CompiledArtifact,
    DependencyDescriptor,
)
from conduit.bindings import Binding, ClassRef, Factory, Instance
from conduit.compiled_container import CompiledContainer
from conduit.compiler import ContainerCompiler
from conduit.container import Container
from conduit.exceptions import (
    ConduitBindingResolutionError,
    ConduitCannotInstantiateError,
    ConduitCircularDependencyError,
    ConduitCompiledArtifactError,
    ConduitError,
    ConduitInvalidBindingError,
    ConduitUnboundInterfaceError,
    ConduitUnresolvedParameterError,
)
from conduit.settings import ContainerSettings

__all__ = [
    "SCHEMA_VERSION",
    "ArtifactStore",
    "Binding",
    "BindingDescriptor",
    "BindingType",
    "ClassRef",
    "CompiledArtifact",
    "CompiledContainer",
    "ConduitBindingResolutionError",
    "ConduitCannotInstantiateError",
    "ConduitCircularDependencyError",
    "ConduitCompiledArtifactError",
    "ConduitError",
    "ConduitInvalidBindingError",
    "ConduitUnboundInterfaceError",
    "ConduitUnresolvedParameterError",
    "Container",
    "ContainerCompiler",
    "ContainerSettings",
    "DependencyDescriptor",
    "Factory",
    "Instance",
]

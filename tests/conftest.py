"""Shared pytest fixtures for conduit tests."""

from pathlib import Path

import pytest

from conduit import ArtifactStore, CompiledArtifact, CompiledContainer, Container, ContainerCompiler
from tests.services import build_container


def _compiled_from(source: Container, artifact: CompiledArtifact) -> CompiledContainer:
    compiled = CompiledContainer()
    for abstract, binding in source.bindings.items():
        compiled.bind(abstract, binding.concrete, shared=binding.shared)
    for alias, abstract in source.aliases.items():
        compiled.alias(abstract, alias)
    compiled.load_compiled(artifact)
    return compiled


@pytest.fixture()
def container() -> Container:
    """Empty dynamic container."""
    return Container()


@pytest.fixture()
def populated_container() -> Container:
    """Dynamic container with the shared binding set."""
    return build_container()


@pytest.fixture()
def compiled_container() -> CompiledContainer:
    """Compiled container built from the shared binding set and its own artifact."""
    source = build_container()
    return _compiled_from(source, ContainerCompiler(source).compile())


@pytest.fixture()
def stored_compiled_container(artifact_path: Path) -> CompiledContainer:
    """Like ``compiled_container``, with the artifact written to disk and read back."""
    source = build_container()
    store = ArtifactStore(artifact_path)
    store.write(ContainerCompiler(source).compile())
    return _compiled_from(source, store.read())


@pytest.fixture()
def artifact_path(tmp_path: Path) -> Path:
    """Artifact location inside a not-yet-existing cache directory."""
    return tmp_path / "bootstrap" / "cache" / "container.json"

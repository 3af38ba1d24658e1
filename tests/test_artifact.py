import json
import threading
from pathlib import Path

import msgspec
import pytest

from conduit import (
    SCHEMA_VERSION,
    ArtifactStore,
    BindingType,
    CompiledArtifact,
    ConduitCompiledArtifactError,
    ContainerCompiler,
)
from conduit.artifact import decode_artifact, encode_artifact
from tests.services import build_container


@pytest.fixture()
def artifact() -> CompiledArtifact:
    return ContainerCompiler(build_container()).compile()


def test_write_then_read(artifact: CompiledArtifact, artifact_path: Path) -> None:
    store = ArtifactStore(artifact_path)

    written = store.write(artifact)

    assert written == artifact_path
    assert store.exists()
    assert store.read() == artifact


def test_document_layout(artifact: CompiledArtifact, artifact_path: Path) -> None:
    ArtifactStore(artifact_path).write(artifact)

    document = json.loads(artifact_path.read_text(encoding="utf-8"))

    assert set(document) == {
        "schemaVersion",
        "compiledAt",
        "platformInfo",
        "bindings",
        "aliases",
        "singletons",
    }
    assert document["schemaVersion"] == SCHEMA_VERSION
    assert document["aliases"] == {"logger": "tests.services.Logger"}

    notifier = document["bindings"]["tests.services.Notifier"]
    assert notifier["type"] == "complex"
    assert notifier["class"] == "tests.services.Notifier"
    assert notifier["compilable"] is True
    assert notifier["shared"] is False
    assert notifier["dependencies"][1] == {
        "name": "channel",
        "type": "str",
        "builtin": True,
        "optional": True,
        "default": "email",
    }

    closure = document["bindings"]["tests.services.Transport"]
    assert closure["type"] == BindingType.CLOSURE.value
    assert closure["class"] is None


def test_document_is_indented(artifact: CompiledArtifact) -> None:
    assert b'\n  "schemaVersion": "1.0"' in encode_artifact(artifact)


def test_write_creates_missing_directories(
    artifact: CompiledArtifact,
    tmp_path: Path,
) -> None:
    path = tmp_path / "a" / "b" / "c" / "container.json"

    ArtifactStore(path).write(artifact)

    assert path.is_file()


def test_write_leaves_no_temporary_files(
    artifact: CompiledArtifact,
    artifact_path: Path,
) -> None:
    store = ArtifactStore(artifact_path)

    store.write(artifact)
    store.write(artifact)

    assert [path.name for path in artifact_path.parent.iterdir()] == ["container.json"]


def test_failed_write_keeps_previous_artifact(
    artifact: CompiledArtifact,
    artifact_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    store = ArtifactStore(artifact_path)
    store.write(artifact)
    previous = artifact_path.read_bytes()

    def fail_replace(src: str, dst: Path) -> None:
        msg = "disk full"
        raise OSError(msg)

    monkeypatch.setattr("conduit.artifact.os.replace", fail_replace)

    with pytest.raises(OSError, match="disk full"):
        store.write(msgspec.structs.replace(artifact, compiled_at=0))

    assert artifact_path.read_bytes() == previous
    assert [path.name for path in artifact_path.parent.iterdir()] == ["container.json"]


def test_concurrent_readers_never_see_partial_documents(
    artifact: CompiledArtifact,
    artifact_path: Path,
) -> None:
    store = ArtifactStore(artifact_path)
    store.write(artifact)
    errors: list[Exception] = []
    done = threading.Event()

    def read_continuously() -> None:
        while not done.is_set():
            try:
                store.read()
            except ConduitCompiledArtifactError as error:
                errors.append(error)

    reader = threading.Thread(target=read_continuously)
    reader.start()
    try:
        for compiled_at in range(50):
            store.write(msgspec.structs.replace(artifact, compiled_at=compiled_at))
    finally:
        done.set()
        reader.join()

    assert errors == []
    assert store.read().compiled_at == 49


def test_clear(artifact: CompiledArtifact, artifact_path: Path) -> None:
    store = ArtifactStore(artifact_path)
    store.write(artifact)

    assert store.clear()
    assert not store.exists()
    assert not store.clear()


class TestDecode:
    def test_rejects_invalid_json(self) -> None:
        with pytest.raises(ConduitCompiledArtifactError, match="not a valid document"):
            decode_artifact(b"{broken")

    def test_rejects_missing_version(self) -> None:
        with pytest.raises(ConduitCompiledArtifactError):
            decode_artifact(b'{"bindings": {}}')

    def test_rejects_unsupported_version(self, artifact: CompiledArtifact) -> None:
        document = json.loads(encode_artifact(artifact))
        document["schemaVersion"] = "2.0"

        with pytest.raises(ConduitCompiledArtifactError, match="not supported"):
            decode_artifact(json.dumps(document).encode())

    def test_rejects_wrong_layout(self) -> None:
        data = b'{"schemaVersion": "1.0", "bindings": []}'

        with pytest.raises(ConduitCompiledArtifactError, match="does not match schema"):
            decode_artifact(data)

    def test_rejects_unknown_binding_type(self, artifact: CompiledArtifact) -> None:
        document = json.loads(encode_artifact(artifact))
        document["bindings"]["tests.services.Logger"]["type"] = "magic"

        with pytest.raises(ConduitCompiledArtifactError):
            decode_artifact(json.dumps(document).encode())

    def test_read_missing_file(self, artifact_path: Path) -> None:
        with pytest.raises(ConduitCompiledArtifactError, match="Cannot read"):
            ArtifactStore(artifact_path).read()

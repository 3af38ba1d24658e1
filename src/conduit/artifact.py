"""Compiled artifact model and its on-disk store.

The artifact is the static analysis of a container's bindings. It is written
once by a build step and loaded read-only by every process afterwards, so the
store publishes new versions with a temp-file + rename and never edits a file
in place.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Final

import msgspec

from conduit.exceptions import ConduitCompiledArtifactError

logger = logging.getLogger(__name__)

SCHEMA_VERSION: Final[str] = "1.0"
"""Artifact layout version. Loaders refuse any other value."""

SUPPORTED_SCHEMA_VERSIONS: Final[frozenset[str]] = frozenset({SCHEMA_VERSION})


class BindingType(str, Enum):
    """Classification of a binding by the compiler."""

    CLOSURE = "closure"
    """Factory callable. Opaque to static analysis."""

    SIMPLE = "simple"
    """Class constructed without arguments."""

    COMPLEX = "complex"
    """Class with constructor dependencies."""

    NOT_INSTANTIABLE = "not_instantiable"
    """Missing class, abstract class, or protocol."""

    UNKNOWN = "unknown"
    """Pre-built instance, or a rebinding to another registered abstract."""


class DependencyDescriptor(msgspec.Struct, frozen=True, kw_only=True):
    """One constructor parameter of a compiled binding."""

    name: str
    type: str | None = None
    builtin: bool = True
    optional: bool = False
    default: Any = None


class BindingDescriptor(msgspec.Struct, frozen=True, kw_only=True):
    """The statically known shape of one binding."""

    type: BindingType
    compilable: bool
    shared: bool
    class_: str | None = msgspec.field(default=None, name="class")
    dependencies: tuple[DependencyDescriptor, ...] = ()


class CompiledArtifact(msgspec.Struct, frozen=True, kw_only=True, rename="camel"):
    """Versioned result of compiling a container. Immutable once written."""

    schema_version: str
    compiled_at: int
    platform_info: str
    bindings: dict[str, BindingDescriptor]
    aliases: dict[str, str]
    singletons: tuple[str, ...]

    @property
    def compilable_count(self) -> int:
        return sum(1 for descriptor in self.bindings.values() if descriptor.compilable)


class _ArtifactHeader(msgspec.Struct, rename="camel"):
    schema_version: str


def encode_artifact(artifact: CompiledArtifact) -> bytes:
    """Serialize an artifact to indented JSON."""
    return msgspec.json.format(msgspec.json.encode(artifact), indent=2)


def decode_artifact(data: bytes) -> CompiledArtifact:
    """Parse and validate an artifact document.

    The schema version is checked before the full document is validated, so
    a layout from a newer writer is reported as a version mismatch.

    Raises:
        ConduitCompiledArtifactError: If the document is malformed or its
            ``schemaVersion`` is not supported.

    """
    try:
        header = msgspec.json.decode(data, type=_ArtifactHeader)
    except msgspec.DecodeError as error:
        msg = f"Compiled artifact is not a valid document: {error}"
        raise ConduitCompiledArtifactError(msg) from error

    if header.schema_version not in SUPPORTED_SCHEMA_VERSIONS:
        msg = (
            f"Compiled artifact schema version {header.schema_version!r} is not supported "
            f"(expected one of {sorted(SUPPORTED_SCHEMA_VERSIONS)})."
        )
        raise ConduitCompiledArtifactError(msg)

    try:
        return msgspec.json.decode(data, type=CompiledArtifact)
    except msgspec.DecodeError as error:
        msg = f"Compiled artifact does not match schema {header.schema_version}: {error}"
        raise ConduitCompiledArtifactError(msg) from error


class ArtifactStore:
    """Read and atomically publish a compiled artifact at ``path``."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def write(self, artifact: CompiledArtifact) -> Path:
        """Publish ``artifact``, replacing any previous file in one rename.

        The document is written to a temporary file in the destination
        directory, flushed to disk, then moved over ``path``. Readers see
        either the previous artifact or the new one, never a partial write.
        """
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        payload = encode_artifact(artifact)

        file_descriptor, temp_name = tempfile.mkstemp(
            dir=directory,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(file_descriptor, "wb") as temp_file:
                temp_file.write(payload)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            os.replace(temp_name, self.path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(temp_name)
            raise

        logger.info(
            "Compiled artifact written: path=%s bytes=%d bindings=%d",
            self.path,
            len(payload),
            len(artifact.bindings),
        )
        return self.path

    def read(self) -> CompiledArtifact:
        """Load the artifact.

        Raises:
            ConduitCompiledArtifactError: If the file cannot be read or is not
                a trusted artifact.

        """
        try:
            data = self.path.read_bytes()
        except OSError as error:
            msg = f"Cannot read compiled artifact at {self.path}: {error}"
            raise ConduitCompiledArtifactError(msg) from error
        return decode_artifact(data)

    def clear(self) -> bool:
        """Delete the artifact file. Returns whether a file was removed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Compiled artifact removed: path=%s", self.path)
        return True


__all__ = [
    "SCHEMA_VERSION",
    "SUPPORTED_SCHEMA_VERSIONS",
    "ArtifactStore",
    "BindingDescriptor",
    "BindingType",
    "CompiledArtifact",
    "DependencyDescriptor",
    "decode_artifact",
    "encode_artifact",
]

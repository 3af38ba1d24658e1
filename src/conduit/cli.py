"""Command line entry points for building and clearing compiled artifacts.

Usage:
    python -m conduit compile myapp.bootstrap:build_container
    python -m conduit compile myapp.bootstrap:container --output var/container.json
    python -m conduit clear
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import Any

from conduit.artifact import ArtifactStore
from conduit.compiler import ContainerCompiler
from conduit.container import Container
from conduit.exceptions import ConduitError
from conduit.settings import ContainerSettings

_DESCRIPTION = "Compile a container's bindings ahead of time, or remove the compiled artifact."
_BYTE_UNITS = ("B", "KB", "MB")
_KILOBYTE = 1024


def load_container(target: str) -> Container:
    """Import ``module:attribute`` and return the container it names.

    ``attribute`` may be a ``Container`` or a zero-argument callable returning
    one.

    Raises:
        ValueError: If ``target`` is malformed or does not produce a container.

    """
    module_name, separator, attribute_path = target.partition(":")
    if not separator or not module_name or not attribute_path:
        msg = f"Target {target!r} must look like 'package.module:attribute'."
        raise ValueError(msg)

    value: Any = importlib.import_module(module_name)
    for attribute in attribute_path.split("."):
        value = getattr(value, attribute)
    if not isinstance(value, Container) and callable(value):
        value = value()
    if not isinstance(value, Container):
        msg = f"Target {target!r} did not produce a Container (got {type(value).__name__})."
        raise ValueError(msg)
    return value


def format_bytes(size: int) -> str:
    value = float(size)
    for unit in _BYTE_UNITS[:-1]:
        if value < _KILOBYTE:
            return f"{value:g} {unit}"
        value /= _KILOBYTE
    return f"{round(value, 2):g} {_BYTE_UNITS[-1]}"


def _compile(args: argparse.Namespace, output: Path) -> int:
    try:
        container = load_container(args.target)
    except (ValueError, ImportError, AttributeError) as error:
        sys.stderr.write(f"Cannot load container {args.target!r}: {error}\n")
        return 1

    compiler = ContainerCompiler(container)
    try:
        artifact = compiler.compile()
    except ConduitError as error:
        sys.stderr.write(f"Compilation failed: {error}\n")
        return 1

    path = compiler.save(artifact, output)
    bindings_count = len(artifact.bindings)
    compilable_count = artifact.compilable_count
    sys.stdout.write(
        f"Container compiled successfully: {path}\n"
        f"Total bindings: {bindings_count}\n"
        f"Compilable: {compilable_count}\n"
        f"Closures: {bindings_count - compilable_count}\n"
        f"Cache size: {format_bytes(path.stat().st_size)}\n",
    )
    return 0


def _clear(output: Path) -> int:
    if ArtifactStore(output).clear():
        sys.stdout.write(f"Container cache cleared: {output}\n")
    else:
        sys.stdout.write("No container cache to clear.\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="conduit", description=_DESCRIPTION)
    subparsers = parser.add_subparsers(dest="command", required=True)

    compile_parser = subparsers.add_parser("compile", help="Compile a container to an artifact.")
    compile_parser.add_argument(
        "target",
        help="Container to compile, as 'package.module:attribute'.",
    )
    compile_parser.add_argument("--output", type=Path, help="Artifact path.")

    clear_parser = subparsers.add_parser("clear", help="Remove the compiled artifact.")
    clear_parser.add_argument("--output", type=Path, help="Artifact path.")

    args = parser.parse_args(argv)
    settings = ContainerSettings()
    logging.basicConfig(level=settings.log_level.upper())
    output: Path = args.output or settings.compiled_path

    if args.command == "compile":
        return _compile(args, output)
    return _clear(output)


__all__ = ["format_bytes", "load_container", "main"]

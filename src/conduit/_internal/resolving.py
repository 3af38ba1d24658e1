from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from conduit.exceptions import ConduitCircularDependencyError


class ResolvingSet:
    """Track identifiers that are currently mid-construction.

    Shared by the dynamic resolver, the compiled executor and the compiler so
    cycles are reported the same way wherever they are found. Membership is
    released when the ``enter`` block exits, including on exceptions, so a
    failed resolution never poisons later ones.
    """

    def __init__(self) -> None:
        # dict keeps insertion order, which is the construction chain
        self._active: dict[str, None] = {}

    @contextmanager
    def enter(self, identifier: str) -> Iterator[None]:
        """Mark ``identifier`` as in progress for the duration of the block.

        Raises:
            ConduitCircularDependencyError: If ``identifier`` is already in progress.

        """
        if identifier in self._active:
            raise ConduitCircularDependencyError(identifier, chain=tuple(self._active))
        self._active[identifier] = None
        try:
            yield
        finally:
            self._active.pop(identifier, None)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._active

    def __len__(self) -> int:
        return len(self._active)

    def clear(self) -> None:
        self._active.clear()


__all__ = ["ResolvingSet"]

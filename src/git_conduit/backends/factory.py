"""Engine selection by identifier."""

from __future__ import annotations

from typing import Final

from git_conduit.backends.base import CoreBackend
from git_conduit.backends.cli import CliBackend
from git_conduit.backends.dulwich_backend import DulwichBackend
from git_conduit.backends.pygit2_backend import Pygit2Backend
from git_conduit.execution.runner import GitRunner

ENGINE_IDS: Final[tuple[str, ...]] = ("cli", "pygit2", "dulwich")


def create_backend(engine_id: str = "cli", *, runner: GitRunner | None = None) -> CoreBackend:
    """Return a fresh engine instance. ``runner`` only applies to the ``cli`` engine."""

    if engine_id == "cli":
        return CliBackend(runner)
    if engine_id == "pygit2":
        return Pygit2Backend()
    if engine_id == "dulwich":
        return DulwichBackend()
    raise ValueError(f"unknown engine {engine_id!r}; expected one of {', '.join(ENGINE_IDS)}")


__all__ = ["ENGINE_IDS", "create_backend"]

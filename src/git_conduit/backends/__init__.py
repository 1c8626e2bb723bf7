"""
git-conduit — backend capability layer

File: src/git_conduit/backends/__init__.py

Purpose
- Interchangeable engines behind one capability-gated operation surface.
"""

from git_conduit.backends.base import (
    NO_OPTIONS,
    BackendCapabilities,
    CallOptions,
    CoreBackend,
    ExtendedTransferBackend,
)
from git_conduit.backends.cli import CLI_CAPABILITIES, CliBackend
from git_conduit.backends.dulwich_backend import DULWICH_CAPABILITIES, DulwichBackend
from git_conduit.backends.factory import ENGINE_IDS, create_backend
from git_conduit.backends.gate import GatedBackend
from git_conduit.backends.loader import LazyModule
from git_conduit.backends.pygit2_backend import PYGIT2_CAPABILITIES, Pygit2Backend

__all__ = [
    "BackendCapabilities",
    "CLI_CAPABILITIES",
    "CallOptions",
    "CliBackend",
    "CoreBackend",
    "DULWICH_CAPABILITIES",
    "DulwichBackend",
    "ENGINE_IDS",
    "ExtendedTransferBackend",
    "GatedBackend",
    "LazyModule",
    "NO_OPTIONS",
    "PYGIT2_CAPABILITIES",
    "Pygit2Backend",
    "create_backend",
]

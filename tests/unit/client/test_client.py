"""Unit tests for the repository surface: preflight gating, open-time shape and narrowing."""

from __future__ import annotations

from typing import Any

import pytest

from git_conduit import (
    BareRepository,
    GitClient,
    WorktreeRepository,
    as_bare,
    as_worktree,
)
from git_conduit.backends import CLI_CAPABILITIES, DULWICH_CAPABILITIES, BackendCapabilities
from git_conduit.domain.context import BareScope, WorktreeScope
from git_conduit.domain.models import EngineVersion, RepositoryProbe, StatusBranch, StatusResult
from git_conduit.errors import ErrorKind, GitError


class ProbeBackend:
    def __init__(
        self,
        *,
        version: EngineVersion = EngineVersion(2, 40, 1),
        probes: dict[str, RepositoryProbe] | None = None,
        capabilities: BackendCapabilities = CLI_CAPABILITIES,
    ) -> None:
        self.version = version
        self.probes = probes or {}
        self._capabilities = capabilities
        self.calls: list[tuple[str, Any]] = []

    @property
    def capabilities(self) -> BackendCapabilities:
        return self._capabilities

    async def engine_version(self) -> EngineVersion:
        return self.version

    async def check_repository(self, path: str) -> RepositoryProbe | None:
        return self.probes.get(path)

    async def init(self, path: str, **kwargs: Any) -> None:
        self.calls.append(("init", kwargs))
        self.probes[path] = RepositoryProbe(
            path=path,
            is_bare=kwargs.get("bare", False),
            git_dir=path if kwargs.get("bare") else f"{path}/.git",
        )

    async def clone(self, url: str, path: str, **kwargs: Any) -> None:
        self.calls.append(("clone", url))
        self.probes[path] = RepositoryProbe(path=path, is_bare=False, git_dir=f"{path}/.git")

    async def status(self, context: object, **kwargs: Any) -> StatusResult:
        self.calls.append(("status", context))
        return StatusResult(branch=StatusBranch(head="main"))

    async def log(self, context: object, **kwargs: Any) -> list[object]:
        self.calls.append(("log", context))
        return []


WORKTREE_PROBE = RepositoryProbe(path="/w", is_bare=False, git_dir="/w/.git")
BARE_PROBE = RepositoryProbe(path="/b.git", is_bare=True, git_dir="/b.git")


@pytest.mark.asyncio
async def test_preflight_accepts_versions_at_or_above_minimum() -> None:
    client = GitClient(ProbeBackend(version=EngineVersion(2, 30, 0)), minimum_version="2.30")
    assert await client.preflight() == EngineVersion(2, 30, 0)


@pytest.mark.asyncio
async def test_preflight_rejects_older_engine() -> None:
    client = GitClient(
        ProbeBackend(version=EngineVersion(2, 25, 4)), minimum_version=EngineVersion(2, 30, 0)
    )

    with pytest.raises(GitError) as caught:
        await client.preflight()

    error = caught.value
    assert error.kind is ErrorKind.UNSUPPORTED_ENGINE_VERSION
    assert error.context.details == {"found": "2.25.4", "minimum": "2.30.0"}


@pytest.mark.asyncio
async def test_open_decides_shape_once() -> None:
    backend = ProbeBackend(probes={"/w": WORKTREE_PROBE, "/b.git": BARE_PROBE})
    client = GitClient(backend)

    worktree = await client.open("/w")
    bare = await client.open("/b.git")

    assert isinstance(worktree, WorktreeRepository)
    assert worktree.context == WorktreeScope("/w")
    assert isinstance(bare, BareRepository)
    assert bare.context == BareScope("/b.git")
    assert as_worktree(worktree) is worktree
    assert as_bare(bare) is bare

    await worktree.status()
    await bare.log()
    assert backend.calls == [("status", WorktreeScope("/w")), ("log", BareScope("/b.git"))]


@pytest.mark.asyncio
async def test_narrowing_mismatch_raises_scope_mismatch() -> None:
    client = GitClient(ProbeBackend(probes={"/w": WORKTREE_PROBE, "/b.git": BARE_PROBE}))

    with pytest.raises(GitError) as caught:
        await client.open_bare("/w")
    assert caught.value.kind is ErrorKind.SCOPE_MISMATCH
    assert caught.value.context.details["expected"] == "bare"

    with pytest.raises(GitError) as caught:
        as_worktree(await client.open("/b.git"))
    assert caught.value.kind is ErrorKind.SCOPE_MISMATCH


@pytest.mark.asyncio
async def test_open_unknown_path_is_non_zero_exit() -> None:
    client = GitClient(ProbeBackend())

    with pytest.raises(GitError) as caught:
        await client.open("/nowhere")

    assert caught.value.kind is ErrorKind.NON_ZERO_EXIT
    assert caught.value.context.details == {"path": "/nowhere"}


@pytest.mark.asyncio
async def test_init_and_clone_reopen_result() -> None:
    backend = ProbeBackend()
    client = GitClient(backend)

    created = await client.init("/new.git", bare=True, initial_branch="main")
    cloned = await client.clone("https://example.com/r.git", "/clone")

    assert isinstance(created, BareRepository)
    assert isinstance(cloned, WorktreeRepository)
    operation, kwargs = backend.calls[0]
    assert operation == "init"
    assert (kwargs["bare"], kwargs["initial_branch"]) == (True, "main")
    assert backend.calls[1] == ("clone", "https://example.com/r.git")


@pytest.mark.asyncio
async def test_large_file_operations_refused_on_engine_without_extended_transfer() -> None:
    backend = ProbeBackend(probes={"/w": WORKTREE_PROBE}, capabilities=DULWICH_CAPABILITIES)
    repository = as_worktree(await GitClient(backend).open("/w"))

    with pytest.raises(GitError) as caught:
        await repository.lfs_pull()

    assert caught.value.kind is ErrorKind.CAPABILITY_MISSING
    assert caught.value.context.operation == "lfs_pull"

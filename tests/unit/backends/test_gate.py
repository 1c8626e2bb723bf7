"""
git-conduit — unit tests for the capability gate.

File: tests/unit/backends/test_gate.py

Purpose
- Every engine refuses requests its capability record does not cover, before the engine is
  touched, and forwards everything else unchanged.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

import pytest

from git_conduit.backends import (
    CLI_CAPABILITIES,
    DULWICH_CAPABILITIES,
    PYGIT2_CAPABILITIES,
    BackendCapabilities,
    CallOptions,
    GatedBackend,
)
from git_conduit.domain.context import BareScope, WorktreeScope
from git_conduit.domain.models import (
    BranchInfo,
    EngineVersion,
    LfsStatus,
    StatusBranch,
    StatusResult,
)
from git_conduit.errors import ErrorKind, GitError
from git_conduit.execution.process import CancelToken

WORKTREE = WorktreeScope("/repo")
BARE = BareScope("/repo.git")


class RecordingBackend:
    """Engine stub that records every call it receives."""

    def __init__(self, capabilities: BackendCapabilities) -> None:
        self._capabilities = capabilities
        self.calls: list[str] = []

    @property
    def capabilities(self) -> BackendCapabilities:
        return self._capabilities

    async def engine_version(self) -> EngineVersion:
        self.calls.append("engine_version")
        return EngineVersion(2, 40, 0)

    async def check_repository(self, path: str) -> None:
        self.calls.append("check_repository")

    async def init(self, path: str, **kwargs: Any) -> None:
        self.calls.append("init")

    async def clone(self, url: str, path: str, **kwargs: Any) -> None:
        self.calls.append("clone")

    async def status(self, context: object, **kwargs: Any) -> StatusResult:
        self.calls.append("status")
        return StatusResult(branch=StatusBranch(head="main"))

    async def log(self, context: object, **kwargs: Any) -> list[object]:
        self.calls.append("log")
        return []

    async def commit(self, context: object, message: str, **kwargs: Any) -> str:
        self.calls.append("commit")
        return "c" * 40

    async def add(self, context: object, paths: object = (), **kwargs: Any) -> None:
        self.calls.append("add")

    async def branch_list(self, context: object, **kwargs: Any) -> list[BranchInfo]:
        self.calls.append("branch_list")
        return [BranchInfo(name="main", current=True)]

    async def branch_create(self, context: object, name: str, **kwargs: Any) -> None:
        self.calls.append("branch_create")

    async def lfs_pull(self, context: object, **kwargs: Any) -> None:
        self.calls.append("lfs_pull")

    async def lfs_push(self, context: object, **kwargs: Any) -> None:
        self.calls.append("lfs_push")

    async def lfs_status(self, context: object, **kwargs: Any) -> LfsStatus:
        self.calls.append("lfs_status")
        return LfsStatus()


GateCall = Callable[[GatedBackend], Awaitable[object]]

PROGRESS = CallOptions(on_progress=lambda _event: None)

# (capability flag, operation name, call that needs the flag)
GATED_REQUESTS: list[tuple[str, str, GateCall]] = [
    ("supports_bare_repository", "init", lambda gate: gate.init("/r", bare=True)),
    ("supports_bare_repository", "clone", lambda gate: gate.clone("u", "/r", bare=True)),
    ("supports_bare_repository", "log", lambda gate: gate.log(BARE)),
    ("supports_bare_repository", "branch_list", lambda gate: gate.branch_list(BARE)),
    ("supports_progress", "clone", lambda gate: gate.clone("u", "/r", options=PROGRESS)),
    ("supports_progress", "status", lambda gate: gate.status(WORKTREE, options=PROGRESS)),
    (
        "supports_cancellation",
        "commit",
        lambda gate: gate.commit(WORKTREE, "m", options=CallOptions(cancel=CancelToken())),
    ),
    (
        "supports_cancellation",
        "add",
        lambda gate: gate.add(WORKTREE, ["a"], options=CallOptions(cancel=CancelToken())),
    ),
    ("supports_extended_transfer", "lfs_pull", lambda gate: gate.lfs_pull(WORKTREE)),
    ("supports_extended_transfer", "lfs_push", lambda gate: gate.lfs_push(WORKTREE)),
    ("supports_extended_transfer", "lfs_status", lambda gate: gate.lfs_status(WORKTREE)),
]

ENGINES = [CLI_CAPABILITIES, PYGIT2_CAPABILITIES, DULWICH_CAPABILITIES]


def _cases() -> list[Any]:
    cases = []
    for capabilities in ENGINES:
        for flag, operation, call in GATED_REQUESTS:
            cases.append(
                pytest.param(
                    capabilities,
                    flag,
                    operation,
                    call,
                    id=f"{capabilities.engine_id}-{operation}-{flag}",
                )
            )
    return cases


@pytest.mark.asyncio
@pytest.mark.parametrize(("capabilities", "flag", "operation", "call"), _cases())
async def test_gate_matches_capability_record(
    capabilities: BackendCapabilities, flag: str, operation: str, call: GateCall
) -> None:
    backend = RecordingBackend(capabilities)
    gate = GatedBackend(backend)

    if getattr(capabilities, flag):
        await call(gate)
        assert backend.calls == [operation]
        return

    with pytest.raises(GitError) as caught:
        await call(gate)

    error = caught.value
    assert error.kind is ErrorKind.CAPABILITY_MISSING
    assert error.context.operation == operation
    assert error.context.engine_id == capabilities.engine_id
    assert error.context.details == {"capability": flag}
    assert operation in error.message
    assert capabilities.engine_id in error.message
    assert backend.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("flag", sorted({flag for flag, _op, _call in GATED_REQUESTS}))
async def test_each_flag_alone_disables_its_requests(flag: str) -> None:
    capabilities = replace(CLI_CAPABILITIES, engine_id="custom", **{flag: False})
    backend = RecordingBackend(capabilities)
    gate = GatedBackend(backend)

    for needed, _operation, call in GATED_REQUESTS:
        if needed != flag:
            continue
        with pytest.raises(GitError) as caught:
            await call(gate)
        assert caught.value.kind is ErrorKind.CAPABILITY_MISSING

    assert backend.calls == []


@pytest.mark.asyncio
async def test_plain_requests_pass_through_on_every_engine() -> None:
    for capabilities in ENGINES:
        backend = RecordingBackend(capabilities)
        gate = GatedBackend(backend)

        status = await gate.status(WORKTREE)
        branches = await gate.branch_list(WORKTREE)
        commit_id = await gate.commit(WORKTREE, "message")
        await gate.branch_create(WORKTREE, "feature")
        version = await gate.engine_version()

        assert status.branch.head == "main"
        assert branches[0].name == "main"
        assert commit_id == "c" * 40
        assert version == EngineVersion(2, 40, 0)
        assert backend.calls == [
            "status",
            "branch_list",
            "commit",
            "branch_create",
            "engine_version",
        ]
        assert gate.engine_id == capabilities.engine_id
        assert gate.inner is backend


def test_capability_records_match_engine_contracts() -> None:
    assert CLI_CAPABILITIES.to_dict() == {
        "engine_id": "cli",
        "supports_extended_transfer": True,
        "supports_progress": True,
        "supports_cancellation": True,
        "supports_bare_repository": True,
        "supports_embedded_runtime": False,
    }
    assert PYGIT2_CAPABILITIES.supports_progress is True
    assert PYGIT2_CAPABILITIES.supports_extended_transfer is False
    assert PYGIT2_CAPABILITIES.supports_cancellation is False
    assert DULWICH_CAPABILITIES.supports_embedded_runtime is True
    assert DULWICH_CAPABILITIES.supports_progress is False
    assert DULWICH_CAPABILITIES.supports_bare_repository is True

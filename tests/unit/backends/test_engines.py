"""
git-conduit — engine behaviour over real repositories.

File: tests/unit/backends/test_engines.py

Purpose
- Run the same repository workflow through every engine that is available locally and check
  that they agree on the uniform record shapes.

What this test file should cover
- init/open/add/commit/status/log/branch operations for worktree repositories.
- Bare repository detection and scope narrowing.
- Failure kinds for non-repositories and empty commits.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from git_conduit.backends import create_backend
from git_conduit.client import BareRepository, GitClient, WorktreeRepository, as_worktree
from git_conduit.domain.models import ChangedEntry, UntrackedEntry
from git_conduit.errors import ErrorKind, GitError

IDENTITY = "[user]\n\tname = Ada Lovelace\n\temail = ada@example.com\n"


def _engine_param(engine_id: str) -> object:
    marks = []
    if engine_id == "cli":
        marks.append(pytest.mark.skipif(shutil.which("git") is None, reason="git not installed"))
    return pytest.param(engine_id, id=engine_id, marks=marks)


@pytest.fixture(params=[_engine_param("cli"), _engine_param("pygit2"), _engine_param("dulwich")])
def client(request: pytest.FixtureRequest) -> GitClient:
    engine_id = request.param
    if engine_id != "cli":
        pytest.importorskip(engine_id)
    return GitClient(create_backend(engine_id))


@pytest.fixture(autouse=True)
def isolated_git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    home = tmp_path / "home"
    xdg = tmp_path / "xdg"
    home.mkdir()
    xdg.mkdir()

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")


async def _new_worktree(client: GitClient, path: Path) -> WorktreeRepository:
    repository = as_worktree(await client.init(str(path), initial_branch="main"))
    with (path / ".git" / "config").open("a", encoding="utf-8") as handle:
        handle.write(IDENTITY)
    return repository


@pytest.mark.asyncio
async def test_worktree_workflow(client: GitClient, tmp_path: Path) -> None:
    repo_path = tmp_path / "repo"
    repository = await _new_worktree(client, repo_path)
    assert repository.path == str(repo_path)

    (repo_path / "hello.txt").write_text("hello\n", encoding="utf-8")
    status = await repository.status()
    assert status.entries == (UntrackedEntry(path="hello.txt"),)
    assert status.branch.head == "main"
    assert status.branch.oid is None

    await repository.add(["hello.txt"])
    staged = await repository.status()
    assert len(staged.entries) == 1
    added = staged.entries[0]
    assert isinstance(added, ChangedEntry)
    assert (added.xy, added.path) == ("A.", "hello.txt")

    first = await repository.commit("Add greeting\n\nFirst line of the body.")
    assert len(first) == 40

    (repo_path / "hello.txt").write_text("hello again\n", encoding="utf-8")
    modified = await repository.status()
    assert len(modified.entries) == 1
    entry = modified.entries[0]
    assert isinstance(entry, ChangedEntry)
    assert (entry.xy, entry.path) == (".M", "hello.txt")
    assert modified.branch.oid == first

    await repository.add(all=True)
    second = await repository.commit("Update greeting", author="Grace Hopper <grace@example.com>")
    assert (await repository.status()).is_clean

    commits = await repository.log()
    assert [commit.hash for commit in commits] == [second, first]
    assert commits[0].parents == (first,)
    assert commits[0].author_name == "Grace Hopper"
    assert commits[0].author_email == "grace@example.com"
    assert commits[1].subject == "Add greeting"
    assert commits[1].body == "First line of the body."
    assert commits[1].committer_name == "Ada Lovelace"
    assert [commit.hash for commit in await repository.log(max_count=1)] == [second]

    await repository.branch_create("feature", start_point=first)
    branches = await repository.branch_list()
    assert [(branch.name, branch.current) for branch in branches] == [
        ("feature", False),
        ("main", True),
    ]
    assert branches[0].object_id == first
    assert [commit.hash for commit in await repository.log(ref="feature")] == [first]


@pytest.mark.asyncio
async def test_empty_commit_is_refused_unless_allowed(client: GitClient, tmp_path: Path) -> None:
    repo_path = tmp_path / "repo"
    repository = await _new_worktree(client, repo_path)
    (repo_path / "a.txt").write_text("a\n", encoding="utf-8")
    await repository.add(["a.txt"])
    await repository.commit("initial")

    with pytest.raises(GitError) as caught:
        await repository.commit("nothing changed")
    assert caught.value.kind is ErrorKind.NON_ZERO_EXIT

    empty = await repository.commit("checkpoint", allow_empty=True)
    assert len(empty) == 40


@pytest.mark.asyncio
async def test_bare_repository_is_opened_as_bare(client: GitClient, tmp_path: Path) -> None:
    bare_path = tmp_path / "remote.git"

    repository = await client.init(str(bare_path), bare=True)

    assert isinstance(repository, BareRepository)
    assert Path(repository.probe.git_dir).resolve() == bare_path.resolve()
    reopened = await client.open_bare(str(bare_path))
    assert reopened.probe.is_bare is True
    with pytest.raises(GitError) as caught:
        as_worktree(reopened)
    assert caught.value.kind is ErrorKind.SCOPE_MISMATCH
    with pytest.raises(GitError):
        await client.open_worktree(str(bare_path))


@pytest.mark.asyncio
async def test_open_rejects_plain_directory(client: GitClient, tmp_path: Path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()

    with pytest.raises(GitError) as caught:
        await client.open(str(plain))

    assert caught.value.kind is ErrorKind.NON_ZERO_EXIT
    assert str(plain) in caught.value.message


@pytest.mark.asyncio
async def test_preflight_reports_engine_version(client: GitClient) -> None:
    version = await client.preflight()
    assert version.major >= 0


@pytest.mark.asyncio
async def test_relative_paths_resolve_against_current_directory(
    client: GitClient, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)

    created = as_worktree(await client.init("relrepo", initial_branch="main"))
    reopened = await client.open_worktree("relrepo")

    expected = str(tmp_path.resolve() / "relrepo")
    assert Path(created.path).resolve() == Path(expected)
    assert Path(reopened.path).resolve() == Path(expected)
    (tmp_path / "relrepo" / "notes.txt").write_text("hello\n", encoding="utf-8")
    status = await reopened.status()
    assert [entry.path for entry in status.entries] == ["notes.txt"]

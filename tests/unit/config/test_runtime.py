"""Unit tests for building runner options, engines and clients from effective config."""

from __future__ import annotations

import logging

import pytest

from git_conduit.backends.cli import CliBackend
from git_conduit.backends.dulwich_backend import DulwichBackend
from git_conduit.backends.pygit2_backend import Pygit2Backend
from git_conduit.config.runtime import (
    backend_from_config,
    client_from_config,
    runner_options_from_config,
)
from git_conduit.config.schema import default_config, merge_config
from git_conduit.domain.models import EngineVersion
from git_conduit.execution.audit import AuditEvent, TraceEvent
from git_conduit.execution.runner import CredentialHelper, GitRunner, RunnerOptions


def _config(**sections: object) -> dict[str, object]:
    return merge_config(default_config(), sections)


def test_default_config_maps_to_default_runner_options() -> None:
    options = runner_options_from_config(default_config())

    assert options == RunnerOptions()
    assert options.credential is None
    assert options.home is None
    assert options.on_trace is None


def test_runner_section_is_mapped_field_by_field() -> None:
    def on_audit(event: AuditEvent) -> None:
        del event

    config = _config(
        runner={
            "git_binary": "/opt/git/bin/git",
            "home": "/srv/sandbox",
            "path_prefix": ["/opt/helpers"],
            "extra_env": {"GIT_SSH_COMMAND": "ssh -o BatchMode=yes"},
            "credential": {"helper": "", "helper_path": "/opt/helpers/git-credential-vault"},
        },
        progress={"poll_interval_seconds": 0.5, "temp_prefix": "conduit-progress-"},
    )

    options = runner_options_from_config(config, on_audit=on_audit)

    assert options.git_binary == "/opt/git/bin/git"
    assert options.home == "/srv/sandbox"
    assert options.path_prefix == ("/opt/helpers",)
    assert options.env == {"GIT_SSH_COMMAND": "ssh -o BatchMode=yes"}
    assert options.credential == CredentialHelper(
        helper=None, helper_path="/opt/helpers/git-credential-vault"
    )
    assert options.on_audit is on_audit
    assert options.poll_interval == 0.5
    assert options.temp_prefix == "conduit-progress-"


def test_trace_flag_routes_trace_lines_to_debug_log(caplog: pytest.LogCaptureFixture) -> None:
    options = runner_options_from_config(_config(runner={"trace": True}))

    assert options.on_trace is not None
    with caplog.at_level(logging.DEBUG, logger="git_conduit"):
        options.on_trace(TraceEvent(timestamp=0.0, line="trace: built-in: git status"))

    assert any(record.getMessage() == "git_trace" for record in caplog.records)


def test_explicit_trace_hook_wins_over_default() -> None:
    seen: list[TraceEvent] = []

    options = runner_options_from_config(
        _config(runner={"trace": True}), on_trace=seen.append
    )

    assert options.on_trace == seen.append


@pytest.mark.parametrize(
    ("engine_id", "backend_type"),
    [("cli", CliBackend), ("pygit2", Pygit2Backend), ("dulwich", DulwichBackend)],
)
def test_backend_from_config_picks_engine(engine_id: str, backend_type: type) -> None:
    backend = backend_from_config(_config(engine={"default": engine_id}))

    assert isinstance(backend, backend_type)


def test_cli_backend_uses_configured_runner_options() -> None:
    backend = backend_from_config(_config(runner={"git_binary": "/usr/local/bin/git"}))

    assert isinstance(backend, CliBackend)
    assert backend.runner.options.git_binary == "/usr/local/bin/git"


def test_cli_backend_keeps_supplied_runner() -> None:
    runner = GitRunner()

    backend = backend_from_config(default_config(), runner=runner)

    assert isinstance(backend, CliBackend)
    assert backend.runner is runner


def test_minimum_version_applies_to_cli_engine_only() -> None:
    cli_client = client_from_config(_config(engine={"minimum_version": "2.35"}))
    embedded_client = client_from_config(
        _config(engine={"default": "dulwich", "minimum_version": "2.35"})
    )

    assert cli_client.minimum_version == EngineVersion.parse("2.35")
    assert cli_client.backend.engine_id == "cli"
    assert embedded_client.minimum_version is None
    assert embedded_client.backend.engine_id == "dulwich"

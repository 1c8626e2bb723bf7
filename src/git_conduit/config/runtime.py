"""Turn an effective config mapping into runner options, engines and clients."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from git_conduit.backends.base import CoreBackend
from git_conduit.backends.factory import create_backend
from git_conduit.client import GitClient
from git_conduit.execution.audit import AuditCallback, TraceCallback, TraceEvent
from git_conduit.execution.runner import CredentialHelper, GitRunner, RunnerOptions
from git_conduit.observability.logging import get_logger

_logger = get_logger(__name__)


def _log_trace(event: TraceEvent) -> None:
    _logger.debug("git_trace", line=event.line)


def runner_options_from_config(
    config: Mapping[str, Any],
    *,
    on_audit: AuditCallback | None = None,
    on_trace: TraceCallback | None = None,
) -> RunnerOptions:
    """Build :class:`RunnerOptions` from the ``[runner]`` and ``[progress]`` tables.

    With ``runner.trace`` enabled and no ``on_trace`` hook, trace lines go to the debug log.
    """

    runner = config["runner"]
    progress = config["progress"]
    credential_cfg = runner["credential"]

    credential = None
    if credential_cfg["helper"] or credential_cfg["helper_path"]:
        credential = CredentialHelper(
            helper=credential_cfg["helper"] or None,
            helper_path=credential_cfg["helper_path"] or None,
        )
    if on_trace is None and runner["trace"]:
        on_trace = _log_trace

    return RunnerOptions(
        git_binary=runner["git_binary"],
        env=dict(runner["extra_env"]),
        path_prefix=tuple(runner["path_prefix"]),
        home=runner["home"] or None,
        credential=credential,
        on_audit=on_audit,
        on_trace=on_trace,
        poll_interval=float(progress["poll_interval_seconds"]),
        temp_prefix=progress["temp_prefix"],
    )


def backend_from_config(
    config: Mapping[str, Any], *, runner: GitRunner | None = None
) -> CoreBackend:
    engine_id = config["engine"]["default"]
    if engine_id == "cli" and runner is None:
        runner = GitRunner(runner_options_from_config(config))
    return create_backend(engine_id, runner=runner)


def client_from_config(
    config: Mapping[str, Any], *, runner: GitRunner | None = None
) -> GitClient:
    """Build a :class:`GitClient`; the minimum version gate applies to the ``cli`` engine only."""

    engine_id = config["engine"]["default"]
    minimum = config["engine"]["minimum_version"] if engine_id == "cli" else None
    return GitClient(backend_from_config(config, runner=runner), minimum_version=minimum)


__all__ = ["backend_from_config", "client_from_config", "runner_options_from_config"]

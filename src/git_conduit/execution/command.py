"""Command line construction for an execution scope."""

from __future__ import annotations

from collections.abc import Sequence

from git_conduit.domain.context import BareScope, ExecutionContext, WorktreeScope


def scope_flags(context: ExecutionContext) -> tuple[str, ...]:
    if isinstance(context, WorktreeScope):
        return ("-C", context.workdir)
    if isinstance(context, BareScope):
        return ("--git-dir", context.git_dir)
    return ()


def build_argv(
    context: ExecutionContext,
    args: Sequence[str],
    *,
    git_binary: str = "git",
    config: Sequence[tuple[str, str]] = (),
) -> tuple[str, ...]:
    """Return ``binary, -c k=v..., <scope flag>, *args``.

    Global configuration precedes the scope flag, so the caller's arguments always directly
    follow it.
    """

    argv: list[str] = [git_binary]
    for key, value in config:
        argv.extend(("-c", f"{key}={value}"))
    argv.extend(scope_flags(context))
    argv.extend(args)
    return tuple(argv)


__all__ = ["build_argv", "scope_flags"]

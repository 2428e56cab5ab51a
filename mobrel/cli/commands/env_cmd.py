from __future__ import annotations

import typer

from mobrel.cli.commands._helpers import exit_on_error
from mobrel.cli.context import build_context
from mobrel.output.console import Style
from mobrel.services.release.environment import BranchRef


def env(
    branch: str | None = typer.Argument(
        None, help="Branch or ref (defaults to GITHUB_REF / GITHUB_HEAD_REF)", show_default=False
    ),
) -> None:
    """Print the environment class a branch resolves to."""
    ctx = build_context()
    if branch is None:
        exit_on_error(ctx.config.require(("branch",)), ctx)
        branch = ctx.config.branch or ""

    ref = BranchRef.from_ref(branch)
    ctx.console.print(str(ref.environment))
    ctx.console.print(f"branch: {ref.name} ({ref.url_encoded})", Style.DIM)

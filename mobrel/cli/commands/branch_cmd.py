from __future__ import annotations

import tempfile
from enum import StrEnum
from pathlib import Path

import typer

from mobrel.cli.commands._helpers import exit_on_error
from mobrel.cli.context import build_context
from mobrel.core.result import Err
from mobrel.net.http import RealHttpClient
from mobrel.services.release.branch_setup import configure_branch
from mobrel.services.release.errors import ConflictSignal
from mobrel.services.release.model import PublishMethod
from mobrel.services.release.provisioner import OpenSslCredentialTools

branch_app = typer.Typer(add_completion=False, no_args_is_help=True)


class Method(StrEnum):
    create = "create"
    update = "update"


@branch_app.command("configure")
def configure_cmd(
    method: Method = typer.Option(Method.create, "--method", help="create (POST) or update (PUT)"),
    work_dir: Path | None = typer.Option(
        None,
        "--work-dir",
        help="Keep decrypted credentials here (default: temporary, removed afterwards)",
        show_default=False,
    ),
) -> None:
    """Push the build configuration for the current branch to the build service."""
    ctx = build_context()
    publish_method = PublishMethod.CREATE if method == Method.create else PublishMethod.UPDATE

    with tempfile.TemporaryDirectory(prefix="mobrel-") as tmp:
        result = configure_branch(
            config=ctx.config,
            tools=OpenSslCredentialTools(),
            http=RealHttpClient(),
            console=ctx.console,
            work_dir=work_dir.expanduser().resolve() if work_dir else Path(tmp),
            method=publish_method,
        )
    if isinstance(result, Err) and isinstance(result.error, ConflictSignal):
        # 409: already configured.
        ctx.console.warning(f"{result.error.message}; leaving it unchanged")
        return
    exit_on_error(result, ctx)

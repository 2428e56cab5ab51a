from __future__ import annotations

from pathlib import Path

import typer

from mobrel.cli.commands._helpers import exit_on_error
from mobrel.cli.context import build_context
from mobrel.core.config import PROVISIONING_FIELDS
from mobrel.core.result import Err
from mobrel.services.release.environment import BranchRef
from mobrel.services.release.model import EnvironmentClass
from mobrel.services.release.provisioner import CredentialProvisioner, OpenSslCredentialTools

credentials_app = typer.Typer(add_completion=False, no_args_is_help=True)


@credentials_app.command("provision")
def provision_cmd(
    work_dir: Path = typer.Option(
        Path("signing"), "--work-dir", help="Directory receiving the decrypted files"
    ),
    environment: EnvironmentClass | None = typer.Option(
        None,
        "--env",
        help="Environment class (defaults to the one resolved from the branch)",
        show_default=False,
    ),
) -> None:
    """Decrypt the signing certificate and provisioning profile for the branch."""
    ctx = build_context()

    env = environment
    if env is None:
        # Report the branch together with every other missing provisioning key.
        exit_on_error(ctx.config.require(("branch", *PROVISIONING_FIELDS)), ctx)
        env = BranchRef.from_ref(ctx.config.branch or "").environment

    provisioner = CredentialProvisioner(
        tools=OpenSslCredentialTools(),
        config=ctx.config,
        work_dir=work_dir.expanduser().resolve(),
        console=ctx.console,
    )
    result = provisioner.provision(env)
    exit_on_error(result, ctx)
    if isinstance(result, Err):
        return

    paths = result.value
    for p in (
        paths.private_key,
        paths.certificate,
        paths.pkcs12_bundle,
        paths.provisioning_profile,
    ):
        ctx.console.success(str(p))

"""Upload command - roll a built .ipa out through the device-management service."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import typer

from mobrel.cli.commands._helpers import exit_on_error
from mobrel.cli.context import build_context
from mobrel.core.result import Err
from mobrel.net.http import RealHttpClient
from mobrel.output.console import Style
from mobrel.services.release.airwatch import AirwatchClient
from mobrel.services.release.orchestrator import ReleaseOrchestrator


def upload(
    artifact: Path | None = typer.Option(
        None,
        "--artifact",
        help="Path to the .ipa or its directory (overrides IPA_PATH)",
        show_default=False,
    ),
) -> None:
    """Upload, install and retire superseded versions; assign smart groups on first install."""
    ctx = build_context()
    config = ctx.config
    if artifact is not None:
        config = replace(config, artifact_path=artifact.expanduser())

    client = AirwatchClient.from_config(RealHttpClient(), config)
    exit_on_error(client, ctx)
    if isinstance(client, Err):
        return

    orchestrator = ReleaseOrchestrator(client=client.value, console=ctx.console)
    result = orchestrator.run(config)
    exit_on_error(result, ctx)
    if isinstance(result, Err):
        return

    outcome = result.value
    ctx.console.print(
        f"app id {outcome.app_id}, retired {len(outcome.retired)}, "
        f"smart groups {'assigned' if outcome.assigned else 'unchanged'}",
        Style.DIM,
    )

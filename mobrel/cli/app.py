from __future__ import annotations

import typer

from mobrel import __version__
from mobrel.cli.commands.branch_cmd import branch_app
from mobrel.cli.commands.credentials_cmd import credentials_app
from mobrel.cli.commands.env_cmd import env
from mobrel.cli.commands.upload_cmd import upload

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(env)
app.command()(upload)

# Sub-apps
app.add_typer(branch_app, name="branch")
app.add_typer(credentials_app, name="credentials")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    del version


def main() -> None:
    app()

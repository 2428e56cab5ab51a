"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from mobrel.core.config import MissingConfigError
from mobrel.core.errors import ErrorCode
from mobrel.core.result import Err, Result
from mobrel.net.http import TransportError
from mobrel.output.console import Style
from mobrel.services.release.errors import (
    ArtifactError,
    CredentialNotFoundError,
    ProvisioningError,
    ReleaseStepError,
    RemoteError,
)

if TYPE_CHECKING:
    from mobrel.cli.context import CLIContext


def error_code_for(error: object) -> ErrorCode:
    """Exit code for a pipeline error value."""
    if isinstance(error, ReleaseStepError):
        return error_code_for(error.cause)
    if isinstance(error, MissingConfigError):
        return ErrorCode.USER_ERROR
    if isinstance(error, CredentialNotFoundError | ProvisioningError):
        return ErrorCode.ENV_ERROR
    if isinstance(error, ArtifactError):
        return ErrorCode.BUILD_ERROR
    if isinstance(error, RemoteError | TransportError):
        return ErrorCode.NETWORK_ERROR
    return ErrorCode.USER_ERROR


def exit_on_error[T, E](result: Result[T, E], ctx: CLIContext) -> None:
    """Exit with error if result is Err, otherwise return.

    Prints the error ``message`` and optional ``hint`` and exits with the
    code mapped from the error type.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        ctx.console.error(message)
        if hint:
            ctx.console.print(f"hint: {hint}", Style.DIM)
        raise typer.Exit(code=int(error_code_for(error)))
"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from devrel.core.errors import ErrorCode
from devrel.core.result import Err, Result
from devrel.output.console import ConsoleProtocol, Style


def exit_on_error[T, E](
    result: Result[T, E],
    console: ConsoleProtocol,
    error_code: ErrorCode = ErrorCode.FATAL_ERROR,
) -> T:
    """Return the value of ``result`` or report its error and exit.

    Expects error objects to have a ``message`` and an optional ``hint``.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        console.error(message)
        if hint:
            console.print(f"hint: {hint}", Style.DIM)
        raise typer.Exit(code=int(error_code))
    return result.value


def exit_with_code(code: ErrorCode) -> NoReturn:
    raise typer.Exit(code=int(code))

"""CLI error handling for nodebundle.

Wraps nodebundle exceptions into user-friendly messages with exit codes.
"""

from __future__ import annotations

from typing import NoReturn

import click

from nodebundle.cli.output import error
from nodebundle.errors import BundleError, CompilerProcessError, ModuleGraphError

# Exit codes following sysexits.h convention
EXIT_USER_ERROR = 1  # Build failed (compiler error, bad module graph)
EXIT_SYSTEM_ERROR = 2  # Setup failed (config, SDK, staging, permissions)


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
        diagnostic: Captured compiler output shown below the message.
    """

    def __init__(
        self,
        message: str,
        exit_code: int = EXIT_USER_ERROR,
        diagnostic: str | None = None,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.diagnostic = diagnostic

    def show(self, file: object = None) -> None:
        error(self.format_message(), self.diagnostic)


def handle_bundle_error(err: BundleError) -> NoReturn:
    """Translate a nodebundle exception into a CLIError.

    Raises:
        CLIError: Always. Compiler failures carry the captured compiler output.
    """
    if isinstance(err, CompilerProcessError):
        raise CLIError(
            err.user_message,
            exit_code=EXIT_USER_ERROR,
            diagnostic=err.result.diagnostic(),
        )
    exit_code = EXIT_USER_ERROR if isinstance(err, ModuleGraphError) else EXIT_SYSTEM_ERROR
    raise CLIError(err.user_message, exit_code=exit_code)

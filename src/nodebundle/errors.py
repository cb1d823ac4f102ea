"""Exception hierarchy for nodebundle.

This module defines the exception classes raised by the build step:
- BundleError: Base exception for all nodebundle errors
- ConfigurationError: Raised when configuration or SDK discovery fails
- ModuleGraphError: Raised when a module descriptor is missing or malformed
- StagingError: Raised when sources cannot be materialized in the staging area
- CompilerProcessError: Raised when dart2js fails or produces no output

An unsupported module subgraph is NOT an error. It is returned as an
UnsupportedSubgraph value and turns into a skipped build (see modules.py).

User-facing messages are short; technical details are logged via structlog.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from nodebundle.process import CompileResult

logger = structlog.get_logger(__name__)


class BundleError(Exception):
    """Base exception for nodebundle.

    Args:
        user_message: Short message safe to display in the CLI.
        internal_details: Optional technical details. Logged internally,
            not included in the exception message.

    Example:
        >>> raise BundleError(
        ...     "Build failed",
        ...     internal_details="permission denied on /tmp/staging/web/main.dart",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details

        if internal_details:
            logger.error(
                "bundle_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ConfigurationError(BundleError):
    """Raised when configuration cannot be loaded or is incomplete.

    Use this exception when:
    - nodebundle.yaml cannot be parsed or fails validation
    - The Dart SDK cannot be located

    Attributes:
        file_path: Path to the configuration file (if known).
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        full_message = f"{user_message} (in {file_path})" if file_path else user_message
        super().__init__(full_message, internal_details=internal_details)
        self.file_path = file_path


class ModuleGraphError(BundleError):
    """Raised when a module descriptor cannot be read or parsed.

    Attributes:
        module_id: The descriptor asset that failed, in ``package|path`` form.
    """

    def __init__(
        self,
        module_id: str,
        reason: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(
            f"Invalid module descriptor {module_id}: {reason}",
            internal_details=internal_details,
        )
        self.module_id = module_id
        self.reason = reason


class StagingError(BundleError):
    """Raised when a source asset cannot be materialized in the staging area.

    Staging failures are fatal to the current build step.

    Attributes:
        asset_id: The asset being staged, in ``package|path`` form.
    """

    def __init__(
        self,
        asset_id: str,
        reason: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(
            f"Failed to stage {asset_id}: {reason}",
            internal_details=internal_details,
        )
        self.asset_id = asset_id
        self.reason = reason


class CompilerProcessError(BundleError):
    """Raised when the compiler exits non-zero or its declared output is missing.

    Attributes:
        entry_point: The entry point that failed, in ``package|path`` form.
        result: The captured CompileResult (exit code, stdout, stderr).

    Example:
        >>> raise CompilerProcessError("app|web/main.dart", result)
        # User sees: "dart2js failed for app|web/main.dart (exit code 1)"
    """

    def __init__(self, entry_point: str, result: CompileResult) -> None:
        if result.exit_code == 0:
            message = f"dart2js produced no output for {entry_point}"
        else:
            message = f"dart2js failed for {entry_point} (exit code {result.exit_code})"
        super().__init__(message)
        self.entry_point = entry_point
        self.result = result

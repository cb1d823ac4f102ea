"""Compiler process invocation and result classification.

The compiler's exit code alone is not trusted: a run only counts as
successful when it exits 0 AND the declared output file exists afterwards.
"""

from __future__ import annotations

import subprocess

import structlog
from pydantic import BaseModel, ConfigDict, Field

from nodebundle.arguments import CompilerInvocation
from nodebundle.observability import span

logger = structlog.get_logger(__name__)

# Exit code recorded when the executable could not be started at all
SPAWN_FAILED_EXIT_CODE = -1


class CompileResult(BaseModel):
    """Outcome of one compiler run.

    Attributes:
        exit_code: Process exit status.
        stdout: Captured standard output.
        stderr: Captured standard error.
        output_exists: Whether the declared output file exists after exit.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    exit_code: int = Field(..., description="Process exit status")
    stdout: str = Field(default="", description="Captured standard output")
    stderr: str = Field(default="", description="Captured standard error")
    output_exists: bool = Field(default=False, description="Declared output exists")

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and self.output_exists

    def diagnostic(self) -> str:
        """Exit code and both streams, formatted for a severe log entry."""
        return f"ExitCode:{self.exit_code}\nStdOut:\n{self.stdout}\nStdErr:\n{self.stderr}"


def run_compiler(invocation: CompilerInvocation) -> CompileResult:
    """Run the compiler and wait for it to finish.

    Args:
        invocation: The derived command, working directory and output path.

    Returns:
        CompileResult. Failing to start the executable is reported as a
        result with exit code -1 and the OS error on stderr.
    """
    attributes = {
        "compiler.entry_uri": invocation.entry_uri,
        "compiler.output_path": invocation.output_path,
    }
    with span("dart2js.compile", attributes=attributes):
        try:
            completed = subprocess.run(
                invocation.command,
                cwd=invocation.working_directory,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            logger.error(
                "compiler_spawn_failed",
                executable=str(invocation.executable),
                error=str(e),
            )
            return CompileResult(
                exit_code=SPAWN_FAILED_EXIT_CODE,
                stderr=f"{type(e).__name__}: {e}",
                output_exists=False,
            )

    return CompileResult(
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        output_exists=invocation.output_file.is_file(),
    )

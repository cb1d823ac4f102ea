"""The dart2js-for-Node build step.

BundleBuilder runs one entry point through the whole pipeline:

    resolve closure -> stage sources -> build invocation -> run compiler
        -> add preamble -> copy bundle (+ source map if present)

An unsupported module subgraph ends the step early with a warning and a
SKIPPED outcome. Every other failure raises, so the orchestration runtime
reports the step as failed. Nothing is written to the output space before
the compile and the preamble have both succeeded.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field

from nodebundle.arguments import build_invocation
from nodebundle.assets import AssetId, AssetReader, AssetWriter, FileSystemAssets
from nodebundle.config import BundlerConfig
from nodebundle.errors import BundleError, CompilerProcessError
from nodebundle.modules import ModuleClosure, UnsupportedSubgraph, resolve_closure
from nodebundle.outputs import copy_if_exists
from nodebundle.preamble import add_preamble, get_preamble
from nodebundle.process import run_compiler
from nodebundle.staging import StagingArea

logger = structlog.get_logger(__name__)

SKIPPED_HELP_URL = (
    "https://github.com/dart-lang/build/blob/master/docs/faq.md"
    "#how-can-i-resolve-skipped-compiling-warnings"
)

FAILURE_LOG_PREFIX = ".dart2js"
FAILURE_LOG_SUFFIX = ".log"


class BuildStep(AssetReader, AssetWriter, Protocol):
    """One scheduled unit of work, as supplied by the orchestration runtime."""

    @property
    def input_id(self) -> AssetId: ...


class FileSystemBuildStep:
    """BuildStep over FileSystemAssets, used by the CLI and tests.

    Example:
        >>> assets = FileSystemAssets({"app": Path("app")}, Path("build"))
        >>> step = FileSystemBuildStep(assets, AssetId.parse("app|web/main.dart"))
    """

    def __init__(self, assets: FileSystemAssets, input_id: AssetId) -> None:
        self.assets = assets
        self._input_id = input_id

    @property
    def input_id(self) -> AssetId:
        return self._input_id

    def can_read(self, asset_id: AssetId) -> bool:
        return self.assets.can_read(asset_id)

    def read_as_bytes(self, asset_id: AssetId) -> bytes:
        return self.assets.read_as_bytes(asset_id)

    def read_as_string(self, asset_id: AssetId) -> str:
        return self.assets.read_as_string(asset_id)

    def write_as_bytes(self, asset_id: AssetId, data: bytes) -> None:
        self.assets.write_as_bytes(asset_id, data)


class BuildStatus(str, Enum):
    """Outcome of one build step.

    Attributes:
        BUILT: The bundle was compiled and written.
        SKIPPED: The closure needs SDK libraries the target lacks.
    """

    BUILT = "built"
    SKIPPED = "skipped"


class BuildOutcome(BaseModel):
    """Result of BundleBuilder.build().

    Attributes:
        entry_point: The compiled entry point.
        status: BUILT or SKIPPED.
        outputs: Asset ids written to the output space.
        unsupported_libraries: Offending libraries when SKIPPED.
        duration_ms: Wall time of the step.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    entry_point: AssetId
    status: BuildStatus
    outputs: tuple[AssetId, ...] = ()
    unsupported_libraries: tuple[AssetId, ...] = ()
    duration_ms: int = Field(default=0, ge=0)

    @property
    def built(self) -> bool:
        return self.status is BuildStatus.BUILT


class BundleBuilder:
    """Compile one entry point into a Node.js bundle with dart2js.

    Attributes:
        config: Session configuration. Environment-derived values (VM args,
            SDK location) must already be resolved, see
            BundlerConfig.with_environment().

    Example:
        >>> builder = BundleBuilder(BundlerConfig().with_environment())
        >>> outcome = builder.build(step, staging)
        >>> outcome.outputs
        (AssetId(package='app', path='web/main.dart.js'),)
    """

    def __init__(self, config: BundlerConfig) -> None:
        self.config = config
        self._preamble = get_preamble(minified=config.minify_preamble)

    def build(self, step: BuildStep, staging: StagingArea) -> BuildOutcome:
        """Run the build step for ``step.input_id``.

        Args:
            step: Build step providing the entry point, reads and writes.
            staging: Shared staging area for this build session.

        Returns:
            BuildOutcome with BUILT or SKIPPED status.

        Raises:
            ModuleGraphError: If a module descriptor is missing or malformed.
            StagingError: If sources cannot be materialized or stale outputs
                cannot be removed.
            CompilerProcessError: If dart2js fails or writes no output.
            BundleError: If the compiled bundle cannot be post-processed.
        """
        start_time = time.monotonic()
        entry_point = step.input_id
        log = logger.bind(entry_point=str(entry_point))

        resolved = resolve_closure(step, entry_point, self.config.platform)
        if isinstance(resolved, UnsupportedSubgraph):
            self._warn_skipped(resolved, log)
            return BuildOutcome(
                entry_point=entry_point,
                status=BuildStatus.SKIPPED,
                unsupported_libraries=resolved.libraries,
                duration_ms=_elapsed_ms(start_time),
            )

        outputs = self._compile(step, staging, resolved, log)
        duration_ms = _elapsed_ms(start_time)
        log.info(
            "compile_completed",
            outputs=[str(o) for o in outputs],
            duration_ms=duration_ms,
        )
        return BuildOutcome(
            entry_point=entry_point,
            status=BuildStatus.BUILT,
            outputs=outputs,
            duration_ms=duration_ms,
        )

    def _compile(
        self,
        step: BuildStep,
        staging: StagingArea,
        closure: ModuleClosure,
        log: structlog.stdlib.BoundLogger,
    ) -> tuple[AssetId, ...]:
        staging.ensure_assets(closure.sources, step)

        invocation = build_invocation(closure.entry, staging.root, self.config)
        # Output checks below must only ever see what this run produced
        staging.discard([invocation.output_id, invocation.source_map_id])
        log.info("compile_started", args=" ".join(invocation.args))

        result = run_compiler(invocation)
        failure_log = staging.scratch_path_for(
            closure.entry, FAILURE_LOG_PREFIX, FAILURE_LOG_SUFFIX
        )

        if not result.succeeded:
            try:
                failure_log.write_text(result.diagnostic())
            except OSError as e:
                log.warning("failure_log_unwritten", path=str(failure_log), error=str(e))
            log.error(
                "compile_failed",
                exit_code=result.exit_code,
                output_exists=result.output_exists,
                stdout=result.stdout,
                stderr=result.stderr,
                failure_log=str(failure_log),
            )
            raise CompilerProcessError(str(closure.entry), result)

        log.info("compiler_output", stdout=result.stdout, stderr=result.stderr)
        failure_log.unlink(missing_ok=True)

        try:
            add_preamble(invocation.output_file, self._preamble)
        except OSError as e:
            raise BundleError(
                f"Failed to add the Node preamble to {invocation.output_id}",
                internal_details=f"{type(e).__name__}: {e}",
            ) from e

        staging.copy_output(invocation.output_id, step)
        outputs = [invocation.output_id]
        if copy_if_exists(invocation.source_map_id, staging, step):
            outputs.append(invocation.source_map_id)
        return tuple(outputs)

    def _warn_skipped(
        self,
        unsupported: UnsupportedSubgraph,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        libraries = [str(lib) for lib in unsupported.libraries]
        log.warning(
            "compile_skipped",
            reason=(
                "some transitive libraries have SDK dependencies that are not "
                f"supported on the {self.config.platform.name} platform"
            ),
            libraries=libraries,
            help_url=SKIPPED_HELP_URL,
        )


def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)

"""nodebundle: compile Dart entry points into standalone Node.js bundles.

This package provides:
- BundleBuilder: The build step (closure, staging, dart2js, post-processing)
- resolve_closure: Module closure resolution with unsupported-subgraph results
- StagingArea: Shared, collision-free working directory for the compiler
- build_invocation: Pure mapping from entry point to compiler arguments
- BundlerConfig: Session configuration loadable from nodebundle.yaml
"""

from __future__ import annotations

__version__ = "0.1.0"

from nodebundle.arguments import CompilerInvocation, build_invocation, entry_uri, output_path_for
from nodebundle.assets import AssetId, AssetReader, AssetWriter, FileSystemAssets
from nodebundle.builder import (
    BuildOutcome,
    BuildStatus,
    BuildStep,
    BundleBuilder,
    FileSystemBuildStep,
)
from nodebundle.config import BundlerConfig, TargetPlatform, vm_args_from_env
from nodebundle.errors import (
    BundleError,
    CompilerProcessError,
    ConfigurationError,
    ModuleGraphError,
    StagingError,
)
from nodebundle.modules import (
    ClosureResult,
    Module,
    ModuleClosure,
    ModuleGraph,
    UnsupportedSubgraph,
    resolve_closure,
)
from nodebundle.preamble import add_preamble, get_preamble
from nodebundle.process import CompileResult, run_compiler
from nodebundle.staging import StagingArea

__all__ = [
    "__version__",
    # Build step
    "BundleBuilder",
    "BuildOutcome",
    "BuildStatus",
    "BuildStep",
    "FileSystemBuildStep",
    # Assets
    "AssetId",
    "AssetReader",
    "AssetWriter",
    "FileSystemAssets",
    # Configuration
    "BundlerConfig",
    "TargetPlatform",
    "vm_args_from_env",
    # Module closure
    "ClosureResult",
    "Module",
    "ModuleClosure",
    "ModuleGraph",
    "UnsupportedSubgraph",
    "resolve_closure",
    # Staging
    "StagingArea",
    # Compiler invocation
    "CompilerInvocation",
    "CompileResult",
    "build_invocation",
    "entry_uri",
    "output_path_for",
    "run_compiler",
    # Preamble
    "add_preamble",
    "get_preamble",
    # Errors
    "BundleError",
    "ConfigurationError",
    "ModuleGraphError",
    "StagingError",
    "CompilerProcessError",
]

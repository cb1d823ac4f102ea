"""Configuration models for nodebundle.

This module provides:
- TargetPlatform: The compilation target and the SDK libraries it supports
- BundlerConfig: All settings of the build step, loadable from nodebundle.yaml
- vm_args_from_env: Extra compiler VM arguments from BUILD_DART2JS_VM_ARGS
- resolve_sdk_dir: Dart SDK discovery from DART_SDK or the dart executable

Environment-sourced values are read once, when the config is constructed,
and then passed explicitly into the invocation builder.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Mapping
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nodebundle.errors import ConfigurationError

logger = structlog.get_logger(__name__)

# Environment variable holding space-delimited VM arguments for the compiler
VM_ARGS_ENV_VAR = "BUILD_DART2JS_VM_ARGS"

# Environment variable pointing at the Dart SDK root
SDK_ENV_VAR = "DART_SDK"

# Standard config file name
CONFIG_FILE_NAME = "nodebundle.yaml"

DEFAULT_MULTI_ROOT_SCHEME = "org-dartlang-app"

# SDK libraries usable when the bundle runs under Node.js
DEFAULT_SUPPORTED_LIBRARIES: tuple[str, ...] = (
    "dart:async",
    "dart:collection",
    "dart:convert",
    "dart:core",
    "dart:developer",
    "dart:io",
    "dart:isolate",
    "dart:js",
    "dart:js_interop",
    "dart:js_interop_unsafe",
    "dart:js_util",
    "dart:math",
    "dart:typed_data",
    "dart:_internal",
)


def vm_args_from_env(environ: Mapping[str, str] | None = None) -> list[str]:
    """Read extra compiler VM arguments from BUILD_DART2JS_VM_ARGS.

    Args:
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        Whitespace-split arguments, or an empty list when unset.
    """
    env = os.environ if environ is None else environ
    return env.get(VM_ARGS_ENV_VAR, "").split()


def resolve_sdk_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Locate the Dart SDK root.

    Checks DART_SDK first, then the ``dart`` executable on PATH
    (``<sdk>/bin/dart``).

    Raises:
        ConfigurationError: If no SDK can be found.
    """
    env = os.environ if environ is None else environ
    explicit = env.get(SDK_ENV_VAR)
    if explicit:
        return Path(explicit)

    dart = shutil.which("dart", path=env.get("PATH"))
    if dart is None:
        raise ConfigurationError(
            f"Dart SDK not found. Set {SDK_ENV_VAR} or put 'dart' on PATH",
        )
    sdk_dir = Path(dart).resolve().parent.parent
    logger.debug("sdk_discovered", sdk_dir=str(sdk_dir))
    return sdk_dir


class TargetPlatform(BaseModel):
    """Compilation target platform.

    Attributes:
        name: Platform name, used in module descriptor extensions.
        supported_libraries: ``dart:`` libraries available on this platform.

    Example:
        >>> platform = TargetPlatform(name="dart2js")
        >>> platform.supports("dart:html")
        False
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="dart2js", min_length=1, description="Platform name")
    supported_libraries: frozenset[str] = Field(
        default=frozenset(DEFAULT_SUPPORTED_LIBRARIES),
        description="SDK libraries supported on this platform",
    )

    @property
    def module_extension(self) -> str:
        return f".{self.name}.module"

    def supports(self, library: str) -> bool:
        """Whether an SDK library import is available on this platform."""
        if not library.startswith("dart:"):
            return True
        return library in self.supported_libraries


class BundlerConfig(BaseModel):
    """Settings for one build session.

    Attributes:
        sdk_dir: Dart SDK root. ``None`` means discover on first use.
        platform: Compilation target platform.
        multi_root_scheme: Virtual URI scheme backed by the staging root.
        package_config_path: Package config path under the multi-root.
        js_extension: Extension of the generated bundle.
        source_map_extension: Extension of the companion source map.
        compiler_args: Extra dart2js flags, placed before the fixed flags.
        vm_args: Dart VM flags, placed before ``compile js``.
        minify_preamble: Use the minified Node preamble.

    Example:
        >>> config = BundlerConfig(compiler_args=["-O2"]).with_environment()
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    sdk_dir: Path | None = Field(default=None, description="Dart SDK root")
    platform: TargetPlatform = Field(
        default_factory=TargetPlatform,
        description="Compilation target platform",
    )
    multi_root_scheme: str = Field(
        default=DEFAULT_MULTI_ROOT_SCHEME,
        pattern=r"^[a-z][a-z0-9+.-]*$",
        description="Multi-root URI scheme",
    )
    package_config_path: str = Field(
        default=".dart_tool/package_config.json",
        min_length=1,
        description="Package config path relative to the multi-root",
    )
    js_extension: str = Field(default=".dart.js", description="Bundle extension")
    source_map_extension: str = Field(
        default=".dart.js.map",
        description="Source map extension",
    )
    compiler_args: tuple[str, ...] = Field(default=(), description="Extra dart2js flags")
    vm_args: tuple[str, ...] = Field(default=(), description="Dart VM flags")
    minify_preamble: bool = Field(default=False, description="Use minified preamble")

    @field_validator("js_extension", "source_map_extension")
    @classmethod
    def extension_starts_with_dot(cls, v: str) -> str:
        if not v.startswith("."):
            msg = f"extension must start with '.': {v!r}"
            raise ValueError(msg)
        return v

    @classmethod
    def from_yaml(cls, path: Path) -> BundlerConfig:
        """Load BundlerConfig from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If YAML is invalid or validation fails.
        """
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                "Config file is not valid YAML",
                file_path=str(path),
                internal_details=str(e),
            ) from e

        if data is None:
            data = {}

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid configuration",
                file_path=str(path),
                internal_details=str(e),
            ) from e

    def with_environment(self, environ: Mapping[str, str] | None = None) -> BundlerConfig:
        """Return a copy with VM args and SDK location filled from the environment.

        VM args from BUILD_DART2JS_VM_ARGS are appended after configured ones.
        """
        updates: dict[str, object] = {
            "vm_args": (*self.vm_args, *vm_args_from_env(environ)),
        }
        if self.sdk_dir is None:
            updates["sdk_dir"] = resolve_sdk_dir(environ)
        return self.model_copy(update=updates)

    def require_sdk_dir(self) -> Path:
        """Return the SDK root, discovering it when not configured."""
        return self.sdk_dir if self.sdk_dir is not None else resolve_sdk_dir()

    @property
    def libraries_spec(self) -> Path:
        return self.require_sdk_dir() / "lib" / "libraries.json"

    @property
    def dart_executable(self) -> Path:
        return self.require_sdk_dir() / "bin" / "dart"

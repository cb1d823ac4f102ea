"""Module graph consumption and transitive closure resolution.

Module descriptors are produced upstream as JSON assets next to each
module's primary source (``<primary>.<platform>.module``). This module
loads the descriptors reachable from an entry point into an immutable,
index-based graph and computes the entry point's closure.

Resolution returns a tagged result instead of raising for the recoverable
case:
- ModuleClosure: every reachable module, entry module included
- UnsupportedSubgraph: the libraries that need SDK features the target lacks
"""

from __future__ import annotations

import json
from collections import deque
from collections.abc import Iterable, Sequence
from typing import Annotated, Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nodebundle.assets import AssetId, AssetReader
from nodebundle.config import TargetPlatform
from nodebundle.errors import ModuleGraphError

logger = structlog.get_logger(__name__)

MODULE_LIBRARY_EXTENSION = ".module.library"


def _asset_id_from_json(value: Any) -> AssetId:
    # Upstream writes ids either as ["package", "path"] or "package|path"
    if isinstance(value, str):
        return AssetId.parse(value)
    if isinstance(value, list | tuple) and len(value) == 2:
        return AssetId(package=value[0], path=value[1])
    msg = f"not an asset id: {value!r}"
    raise ValueError(msg)


class Module(BaseModel):
    """A compiled-unit descriptor.

    Attributes:
        primary_source: The source that names the module.
        sources: All sources contributed by the module.
        direct_dependencies: Primary sources of the modules this one imports.
        is_supported: False when a library in the module needs an SDK
            library the target platform lacks.
        is_missing: True when the module's sources could not be found upstream.
        platform: Name of the platform the descriptor was computed for.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    primary_source: AssetId
    sources: frozenset[AssetId]
    direct_dependencies: frozenset[AssetId] = frozenset()
    is_supported: bool = True
    is_missing: bool = False
    platform: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Module:
        """Build a Module from the upstream short-key JSON form."""
        return cls(
            primary_source=_asset_id_from_json(data["p"]),
            sources=frozenset(_asset_id_from_json(s) for s in data["s"]),
            direct_dependencies=frozenset(_asset_id_from_json(d) for d in data.get("d", [])),
            is_supported=data.get("is", True),
            is_missing=data.get("m", False),
            platform=data["pf"],
        )


class LibraryInfo(BaseModel):
    """SDK imports of a single library, read from ``<source>.module.library``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    sdk_deps: tuple[str, ...] = ()


class ModuleClosure(BaseModel):
    """All modules transitively reachable from the entry module, entry included."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["closure"] = "closure"
    entry: AssetId
    modules: tuple[Module, ...]

    @property
    def sources(self) -> tuple[AssetId, ...]:
        """Every source contributed by the closure, deduplicated and sorted."""
        found = {source for module in self.modules for source in module.sources}
        return tuple(sorted(found, key=AssetId.sort_key))


class UnsupportedSubgraph(BaseModel):
    """Libraries in the closure that depend on SDK libraries the target lacks.

    Attributes:
        entry: The entry point whose closure was resolved.
        libraries: Offending library sources, sorted by package then path.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["unsupported"] = "unsupported"
    entry: AssetId
    libraries: tuple[AssetId, ...]


ClosureResult = Annotated[ModuleClosure | UnsupportedSubgraph, Field(discriminator="kind")]


def load_module(reader: AssetReader, module_id: AssetId) -> Module:
    """Read and parse one module descriptor.

    Raises:
        ModuleGraphError: If the descriptor is missing or malformed.
    """
    if not reader.can_read(module_id):
        raise ModuleGraphError(str(module_id), "descriptor not found")

    try:
        return Module.from_json(json.loads(reader.read_as_string(module_id)))
    except (KeyError, TypeError, ValueError) as e:
        raise ModuleGraphError(
            str(module_id),
            "malformed descriptor",
            internal_details=f"{type(e).__name__}: {e}",
        ) from e


class ModuleGraph:
    """Immutable module graph stored as an arena with index adjacency.

    Modules are identified by their primary source. ``edges[i]`` holds the
    arena indices of the direct dependencies of ``modules[i]``.

    Example:
        >>> graph = ModuleGraph([app_module, lib_module])
        >>> graph.closure(app_module.primary_source)
    """

    def __init__(self, modules: Sequence[Module]) -> None:
        index: dict[AssetId, int] = {}
        arena: list[Module] = []
        for module in modules:
            if module.primary_source in index:
                continue
            index[module.primary_source] = len(arena)
            arena.append(module)

        edges: list[tuple[int, ...]] = []
        for module in arena:
            missing = [d for d in module.direct_dependencies if d not in index]
            if missing:
                raise ModuleGraphError(
                    str(module.primary_source),
                    "dependency not in graph: " + ", ".join(sorted(str(m) for m in missing)),
                )
            edges.append(
                tuple(sorted(index[d] for d in module.direct_dependencies)),
            )

        self.modules: tuple[Module, ...] = tuple(arena)
        self.edges: tuple[tuple[int, ...], ...] = tuple(edges)
        self._index = index

    def __len__(self) -> int:
        return len(self.modules)

    def __contains__(self, primary_source: object) -> bool:
        return primary_source in self._index

    @classmethod
    def load(
        cls,
        reader: AssetReader,
        entry_module: Module,
        platform: TargetPlatform,
    ) -> ModuleGraph:
        """Load every descriptor reachable from ``entry_module`` (breadth-first)."""
        loaded: dict[AssetId, Module] = {entry_module.primary_source: entry_module}
        queue = deque([entry_module])
        while queue:
            module = queue.popleft()
            for dep in sorted(module.direct_dependencies, key=AssetId.sort_key):
                if dep in loaded:
                    continue
                dep_module = load_module(reader, dep.change_extension(platform.module_extension))
                loaded[dep] = dep_module
                queue.append(dep_module)
        return cls(list(loaded.values()))

    def closure(self, start: AssetId) -> tuple[Module, ...]:
        """Return ``start`` plus every module reachable from it, each once."""
        if start not in self._index:
            raise ModuleGraphError(str(start), "module not in graph")

        root = self._index[start]
        seen = {root}
        order: list[int] = []
        stack = [root]
        while stack:
            node = stack.pop()
            order.append(node)
            for dep in self.edges[node]:
                if dep not in seen:
                    seen.add(dep)
                    stack.append(dep)
        return tuple(self.modules[i] for i in order)


def _exact_libraries(
    reader: AssetReader,
    modules: Iterable[Module],
    platform: TargetPlatform,
) -> list[AssetId]:
    """Find the library sources that make unsupported modules unsupported."""
    libraries: set[AssetId] = set()
    for module in modules:
        found: list[AssetId] = []
        for source in module.sources:
            info_id = source.change_extension(MODULE_LIBRARY_EXTENSION)
            if not reader.can_read(info_id):
                continue
            try:
                info = LibraryInfo.model_validate_json(reader.read_as_string(info_id))
            except ValidationError as e:
                raise ModuleGraphError(
                    str(info_id),
                    "malformed library info",
                    internal_details=str(e),
                ) from e
            if any(not platform.supports(dep) for dep in info.sdk_deps):
                found.append(source)
        # Without library info, blame the module as a whole
        libraries.update(found or [module.primary_source])
    return sorted(libraries, key=AssetId.sort_key)


def resolve_closure(
    reader: AssetReader,
    entry_point: AssetId,
    platform: TargetPlatform,
) -> ClosureResult:
    """Resolve the module closure of ``entry_point``.

    Args:
        reader: Asset reader for descriptors and library info.
        entry_point: The ``.dart`` entry point.
        platform: Compilation target.

    Returns:
        ModuleClosure when every reachable module is supported, otherwise an
        UnsupportedSubgraph naming the offending libraries.

    Raises:
        ModuleGraphError: If a descriptor is missing or malformed, or a
            module's sources are missing upstream.
    """
    entry_module = load_module(reader, entry_point.change_extension(platform.module_extension))
    graph = ModuleGraph.load(reader, entry_module, platform)
    modules = graph.closure(entry_module.primary_source)

    missing = [m for m in modules if m.is_missing]
    if missing:
        raise ModuleGraphError(
            str(entry_point),
            "missing modules: "
            + ", ".join(sorted(str(m.primary_source) for m in missing)),
        )

    unsupported = [m for m in modules if not m.is_supported]
    if unsupported:
        libraries = _exact_libraries(reader, unsupported, platform)
        logger.debug(
            "unsupported_modules_found",
            entry_point=str(entry_point),
            modules=len(unsupported),
            libraries=len(libraries),
        )
        return UnsupportedSubgraph(entry=entry_point, libraries=tuple(libraries))

    logger.debug("closure_resolved", entry_point=str(entry_point), modules=len(modules))
    return ModuleClosure(entry=entry_point, modules=modules)

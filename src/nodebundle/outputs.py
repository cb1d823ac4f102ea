"""Output identities and output copying.

The bundle and its optional source map keep the entry point's logical path
with the entry extension replaced: ``web/main.dart`` produces
``web/main.dart.js`` and, if the compiler emitted one, ``web/main.dart.js.map``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from nodebundle.assets import AssetId, AssetWriter
from nodebundle.config import BundlerConfig

if TYPE_CHECKING:
    from nodebundle.staging import StagingArea

logger = structlog.get_logger(__name__)


def output_ids(entry_point: AssetId, config: BundlerConfig) -> tuple[AssetId, AssetId]:
    """Asset ids of the bundle and its source map for ``entry_point``."""
    return (
        entry_point.change_extension(config.js_extension),
        entry_point.change_extension(config.source_map_extension),
    )


def copy_if_exists(asset_id: AssetId, staging: StagingArea, writer: AssetWriter) -> bool:
    """Copy a staged file to the output space only if the compiler produced it.

    Returns:
        True if the file existed and was copied.
    """
    if not staging.file_for(asset_id).is_file():
        logger.debug("optional_output_absent", asset=str(asset_id))
        return False
    staging.copy_output(asset_id, writer)
    return True

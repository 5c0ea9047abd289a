"""Layer source for OGC GeoPackage tile pyramids."""

import logging
import sqlite3
from pathlib import Path

from tilelayers.core.config import GEOPACKAGE_TILES_DATA_TYPE
from tilelayers.core.errors import UnsupportedSource
from tilelayers.core.geopackage import GeoPackage
from tilelayers.core.level_set_calculator import LevelSetCalculator
from tilelayers.core.tile_factories import GpkgTileFactory
from tilelayers.models.build_request import BuildRequest, SourceKind
from tilelayers.models.geopackage import GpkgContent
from tilelayers.models.layer import LayerContents, TiledSurfaceImage
from tilelayers.models.level_set import LevelSet

logger = logging.getLogger(__name__)


def _skip(contents: LayerContents, content: GpkgContent, reason: str) -> None:
    message = f"Skipping GeoPackage table '{content.table_name}': {reason}"
    logger.warning(message)
    contents.skipped.append(message)


def scan_geopackage(geopackage: GeoPackage) -> LayerContents:
    """
    Build one tiled surface image per displayable tiles table.

    A table is displayable when it holds tiles, is referenced to EPSG:4326,
    has a tile matrix set in the same reference system and can be read.
    Other tables are skipped and their reasons recorded.

    Args:
        geopackage: Open GeoPackage

    Returns:
        LayerContents with renderables in gpkg_contents order
    """
    contents = LayerContents()

    for content in geopackage.get_contents():
        data_type = content.data_type or ""
        if data_type.lower() != GEOPACKAGE_TILES_DATA_TYPE:
            _skip(contents, content, f"unsupported data_type {content.data_type!r}")
            continue

        srs = geopackage.get_spatial_reference_system(content.srs_id)
        if srs is None or srs.identifier != "EPSG:4326":
            _skip(contents, content, f"unsupported spatial reference system {srs.srs_name if srs else 'undefined'}")
            continue

        tile_matrix_set = geopackage.get_tile_matrix_set(content.table_name)
        if tile_matrix_set is None or tile_matrix_set.srs_id != content.srs_id:
            _skip(contents, content, "missing or mismatched tile matrix set")
            continue

        metrics = geopackage.get_tile_user_metrics(content.table_name)
        if metrics is None:
            _skip(contents, content, "unreadable tiles table")
            continue

        config = LevelSetCalculator.from_geopackage(content, metrics, tile_matrix_set)
        contents.renderables.append(
            TiledSurfaceImage(
                level_set=LevelSet(config),
                tile_factory=GpkgTileFactory(geopackage, content),
                display_name=content.identifier or content.table_name,
            )
        )
        logger.info(f"Added GeoPackage table '{content.table_name}' with {config.num_levels} levels")

    return contents


def read_geopackage(path: str | Path) -> LayerContents:
    """
    Read every displayable tiles table of a GeoPackage file.

    The GeoPackage stays open for the tile factories when at least one table
    is usable; release it with GpkgTileFactory.close().

    Args:
        path: Path to the .gpkg file

    Returns:
        LayerContents with at least one renderable

    Raises:
        UnsupportedSource: If the file cannot be opened or read, or no table is displayable
    """
    try:
        geopackage = GeoPackage(path)
    except (FileNotFoundError, ValueError) as e:
        raise UnsupportedSource(f"Unable to open GeoPackage {path}: {e}") from e

    try:
        contents = scan_geopackage(geopackage)
    except sqlite3.Error as e:
        geopackage.close()
        raise UnsupportedSource(f"Unable to read GeoPackage {path}: {e}") from e
    except Exception:
        geopackage.close()
        raise

    if not contents.renderables:
        geopackage.close()
        raise UnsupportedSource(f"Unsupported GeoPackage contents in {path}")

    return contents


class GeoPackageSource:
    """Reads layers from a local GeoPackage file on a background worker."""

    kind = SourceKind.GEOPACKAGE
    background = True

    def read(self, request: BuildRequest) -> LayerContents:
        return read_geopackage(request.path_or_address)

"""Read access to OGC GeoPackage files."""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from tilelayers.models.geopackage import (
    GpkgContent,
    GpkgSpatialReferenceSystem,
    GpkgTileMatrix,
    GpkgTileMatrixSet,
    GpkgTileUserMetrics,
)

logger = logging.getLogger(__name__)


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class GeoPackage:
    """Read-only view of a GeoPackage SQLite database.

    Implements the metadata lookups of the GeoPackage 1.2 specification:
    http://www.geopackage.org/spec120/

    Lookups return None when metadata is missing rather than raising, leaving
    the caller to decide whether to skip or fail.
    """

    def __init__(self, path: str | Path):
        """
        Open a GeoPackage file.

        Args:
            path: Path to the .gpkg file

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not a GeoPackage
        """
        self.path = Path(path)
        if not self.path.is_file():
            raise FileNotFoundError(f"GeoPackage file not found: {self.path}")

        uri = self.path.resolve().as_uri() + "?mode=ro"
        self._lock = threading.Lock()
        self.conn = None

        try:
            # Tile reads may come from any thread; access is serialized by _lock
            self.conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
            self.conn.execute("SELECT count(*) FROM gpkg_contents").fetchone()
        except sqlite3.Error as e:
            if self.conn is not None:
                self.conn.close()
            raise ValueError(f"Not a GeoPackage: {self.path} ({e})") from e

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self.conn.close()

    def _query(self, sql: str, params: tuple = ()) -> list[tuple]:
        with self._lock:
            return self.conn.execute(sql, params).fetchall()

    def get_contents(self) -> list[GpkgContent]:
        """
        Read all rows of gpkg_contents.

        Returns:
            Content entries in table order
        """
        rows = self._query(
            "SELECT table_name, data_type, identifier, description, min_x, min_y, max_x, max_y, srs_id "
            "FROM gpkg_contents"
        )
        return [GpkgContent(*row) for row in rows]

    def get_spatial_reference_system(self, srs_id: Optional[int]) -> Optional[GpkgSpatialReferenceSystem]:
        """
        Look up a spatial reference system by id.

        Args:
            srs_id: gpkg_spatial_ref_sys.srs_id

        Returns:
            Spatial reference system, or None if undefined
        """
        if srs_id is None:
            return None

        try:
            rows = self._query(
                "SELECT srs_name, srs_id, organization, organization_coordsys_id, definition, description "
                "FROM gpkg_spatial_ref_sys WHERE srs_id = ?",
                (srs_id,),
            )
        except sqlite3.OperationalError as e:
            logger.debug(f"No spatial reference systems in {self.path}: {e}")
            return None

        return GpkgSpatialReferenceSystem(*rows[0]) if rows else None

    def get_tile_matrix_set(self, table_name: str) -> Optional[GpkgTileMatrixSet]:
        """
        Look up the tile matrix set of a tiles table.

        Args:
            table_name: Tile pyramid user data table name

        Returns:
            Tile matrix set, or None if undefined
        """
        try:
            rows = self._query(
                "SELECT table_name, srs_id, min_x, min_y, max_x, max_y FROM gpkg_tile_matrix_set WHERE table_name = ?",
                (table_name,),
            )
        except sqlite3.OperationalError as e:
            logger.debug(f"No tile matrix sets in {self.path}: {e}")
            return None

        return GpkgTileMatrixSet(*rows[0]) if rows else None

    def get_tile_matrices(self, table_name: str) -> dict[int, GpkgTileMatrix]:
        """
        Read the tile matrix of every zoom level of a tiles table.

        Args:
            table_name: Tile pyramid user data table name

        Returns:
            Dictionary mapping zoom level to tile matrix
        """
        try:
            rows = self._query(
                "SELECT table_name, zoom_level, matrix_width, matrix_height, tile_width, tile_height, "
                "pixel_x_size, pixel_y_size FROM gpkg_tile_matrix WHERE table_name = ? ORDER BY zoom_level",
                (table_name,),
            )
        except sqlite3.OperationalError as e:
            logger.debug(f"No tile matrices in {self.path}: {e}")
            return {}

        return {row[1]: GpkgTileMatrix(*row) for row in rows}

    def get_tile_user_metrics(self, table_name: str) -> Optional[GpkgTileUserMetrics]:
        """
        Find the zoom levels stored in a tiles table.

        Args:
            table_name: Tile pyramid user data table name

        Returns:
            Zoom level metrics, or None if the table cannot be read
        """
        try:
            rows = self._query(f"SELECT DISTINCT zoom_level FROM {_quote_identifier(table_name)} ORDER BY zoom_level")
        except sqlite3.OperationalError as e:
            logger.debug(f"Unable to read tiles table {table_name}: {e}")
            return None

        return GpkgTileUserMetrics(table_name=table_name, zoom_levels=tuple(row[0] for row in rows))

    def read_tile(self, table_name: str, zoom_level: int, tile_column: int, tile_row: int) -> Optional[bytes]:
        """
        Read one tile image.

        Args:
            table_name: Tile pyramid user data table name
            zoom_level: GeoPackage zoom level
            tile_column: Column, counted from the west edge of the tile matrix set
            tile_row: Row, counted from the north edge of the tile matrix set

        Returns:
            Encoded image bytes, or None if the tile is not stored
        """
        rows = self._query(
            f"SELECT tile_data FROM {_quote_identifier(table_name)} "
            "WHERE zoom_level = ? AND tile_column = ? AND tile_row = ?",
            (zoom_level, tile_column, tile_row),
        )
        return bytes(rows[0][0]) if rows and rows[0][0] is not None else None

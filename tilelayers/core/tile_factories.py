"""Tile fetch strategies for WMS services and GeoPackage tables."""

import asyncio
import logging
from typing import Optional

import aiohttp
import requests

from tilelayers.core.config import DOWNLOAD_TIMEOUT
from tilelayers.core.geopackage import GeoPackage
from tilelayers.models.geopackage import GpkgContent
from tilelayers.models.level_set import Level
from tilelayers.models.sector import Sector
from tilelayers.models.wms_layer_config import WmsLayerConfig

logger = logging.getLogger(__name__)

SERVICE_EXCEPTION_TYPES = ("application/vnd.ogc.se_xml", "text/xml", "application/xml")


class WmsTileFactory:
    """Builds GetMap requests for tiles of a negotiated WMS layer."""

    def __init__(self, layer_config: WmsLayerConfig):
        """
        Initialize WMS tile factory.

        Args:
            layer_config: Negotiated GetMap configuration
        """
        self.layer = layer_config

    def url_for_tile(self, sector: Sector, width: int, height: int) -> str:
        """
        Build the GetMap URL for a geographic sector.

        WMS 1.3.0 with EPSG:4326 uses latitude/longitude axis order in BBOX; all
        other combinations use longitude/latitude.

        Args:
            sector: Tile sector
            width: Image width in pixels
            height: Image height in pixels

        Returns:
            GetMap request URL
        """
        version = self.layer.wms_version
        if version == "1.3.0" and self.layer.coordinate_system == "EPSG:4326":
            bbox = (sector.min_latitude, sector.min_longitude, sector.max_latitude, sector.max_longitude)
        else:
            bbox = (sector.min_longitude, sector.min_latitude, sector.max_longitude, sector.max_latitude)

        params = {
            "SERVICE": "WMS",
            "VERSION": version,
            "REQUEST": "GetMap",
            "LAYERS": self.layer.layer_names,
            "STYLES": self.layer.style_names or "",
            "CRS" if version == "1.3.0" else "SRS": self.layer.coordinate_system,
            "BBOX": ",".join(repr(float(value)) for value in bbox),
            "WIDTH": width,
            "HEIGHT": height,
            "FORMAT": self.layer.image_format,
            "TRANSPARENT": "TRUE" if self.layer.transparent else "FALSE",
        }
        return requests.Request("GET", self.layer.service_address, params=params).prepare().url

    def url_for_tile_address(self, level: Level, row: int, column: int) -> str:
        """Build the GetMap URL for a level set tile address."""
        return self.url_for_tile(level.tile_sector(row, column), level.tile_width, level.tile_height)

    async def fetch_tile(
        self, session: aiohttp.ClientSession, level: Level, row: int, column: int
    ) -> Optional[bytes]:
        """
        Download a single tile image.

        Args:
            session: Open aiohttp session
            level: Level of the tile
            row: Tile row
            column: Tile column

        Returns:
            Image bytes, or None if the service did not return an image
        """
        url = self.url_for_tile_address(level, row, column)
        try:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=DOWNLOAD_TIMEOUT)) as response:
                if response.status != 200:
                    logger.warning(f"HTTP {response.status} for {url}")
                    return None
                if response.content_type in SERVICE_EXCEPTION_TYPES:
                    logger.warning(f"Service exception for {url}: {await response.text()}")
                    return None
                return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Error downloading {url}: {e}")
            return None


class GpkgTileFactory:
    """Reads tiles of one GeoPackage tiles table.

    Assumes the table's tile pyramid lines up with the level set, such that
    zoom level 0 is the first level and GeoPackage rows count down from the
    northern edge.
    """

    def __init__(self, geopackage: GeoPackage, content: GpkgContent):
        """
        Initialize GeoPackage tile factory.

        Args:
            geopackage: Open GeoPackage
            content: gpkg_contents row of the tiles table
        """
        self.geopackage = geopackage
        self.content = content
        self.tile_matrices = geopackage.get_tile_matrices(content.table_name)

    @property
    def table_name(self) -> str:
        return self.content.table_name

    def close(self) -> None:
        """Release the GeoPackage connection, shared by every table of the archive."""
        self.geopackage.close()

    def read_tile(self, level: Level, row: int, column: int) -> Optional[bytes]:
        """
        Read a tile by level set address.

        Args:
            level: Level of the tile
            row: Tile row, counted from the south
            column: Tile column, counted from the west

        Returns:
            Encoded image bytes, or None if the table has no such tile
        """
        tile_matrix = self.tile_matrices.get(level.level_number)
        if tile_matrix is None:
            return None

        gpkg_row = tile_matrix.matrix_height - row - 1
        if not (0 <= gpkg_row < tile_matrix.matrix_height and 0 <= column < tile_matrix.matrix_width):
            return None

        return self.geopackage.read_tile(self.table_name, level.level_number, column, gpkg_row)

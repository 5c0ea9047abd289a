"""Level set derivation from source metadata."""

import logging
import math
from typing import Optional, Sequence

from tilelayers.core.config import (
    DEFAULT_WMS_METERS_PER_PIXEL,
    GEOPACKAGE_FIRST_LEVEL_DELTA,
    TILE_SIZE,
    WGS84_SEMI_MAJOR_AXIS,
    WMS_PIXEL_SIZE,
)
from tilelayers.core.errors import NegotiationFailed
from tilelayers.models.geopackage import GpkgContent, GpkgTileMatrixSet, GpkgTileUserMetrics
from tilelayers.models.level_set import LevelSetConfig
from tilelayers.models.sector import Sector
from tilelayers.models.wms_capabilities import WmsLayerCapabilities

logger = logging.getLogger(__name__)

DEFAULT_WMS_RADIANS_PER_PIXEL = DEFAULT_WMS_METERS_PER_PIXEL / WGS84_SEMI_MAJOR_AXIS


class LevelSetCalculator:
    """Utilities for turning extents and scales into level set configurations."""

    @staticmethod
    def _fractional_level(config: LevelSetConfig, radians_per_pixel: float) -> float:
        if radians_per_pixel <= 0:
            raise ValueError(f"Resolution must be positive, got {radians_per_pixel}")

        degrees_per_pixel = math.degrees(radians_per_pixel)
        first_level_degrees_per_pixel = config.first_level_delta / min(config.tile_width, config.tile_height)
        return math.log2(first_level_degrees_per_pixel / degrees_per_pixel)

    @staticmethod
    def num_levels_for_resolution(config: LevelSetConfig, radians_per_pixel: float) -> int:
        """
        Count the levels needed to reach a target resolution.

        The last level is at least as fine as the target. At least one level is
        always returned, even if the first level is already finer.

        Args:
            config: Level set configuration providing first level delta and tile size
            radians_per_pixel: Target resolution in radians per pixel

        Returns:
            Number of levels
        """
        level = LevelSetCalculator._fractional_level(config, radians_per_pixel)
        level_number = max(0, math.ceil(level))
        return level_number + 1

    @staticmethod
    def num_levels_for_min_resolution(config: LevelSetConfig, radians_per_pixel: float) -> int:
        """
        Count the levels allowed without exceeding a minimum resolution.

        The last level is never finer than the given resolution, except that at
        least one level is always returned.

        Args:
            config: Level set configuration providing first level delta and tile size
            radians_per_pixel: Finest permitted resolution in radians per pixel

        Returns:
            Number of levels
        """
        level = LevelSetCalculator._fractional_level(config, radians_per_pixel)
        level_number = max(0, math.floor(level))
        return level_number + 1

    @staticmethod
    def from_geopackage(
        content: GpkgContent,
        metrics: GpkgTileUserMetrics,
        tile_matrix_set: Optional[GpkgTileMatrixSet] = None,
    ) -> LevelSetConfig:
        """
        Derive the level set for a GeoPackage tiles table.

        Levels map one-to-one onto GeoPackage zoom levels, so a table without
        any stored zoom level yields zero levels.

        Args:
            content: gpkg_contents row of the table
            metrics: Zoom levels stored in the table
            tile_matrix_set: Used for the extent when the contents row has no bounds

        Returns:
            LevelSetConfig for the table
        """
        bounds = (content.min_x, content.min_y, content.max_x, content.max_y)
        if any(value is None for value in bounds) and tile_matrix_set is not None:
            bounds = (tile_matrix_set.min_x, tile_matrix_set.min_y, tile_matrix_set.max_x, tile_matrix_set.max_y)

        min_x, min_y, max_x, max_y = bounds
        sector = Sector.from_bounds(min_x, min_y, max_x, max_y)

        return LevelSetConfig(
            sector=sector,
            first_level_delta=GEOPACKAGE_FIRST_LEVEL_DELTA,
            num_levels=metrics.max_zoom_level + 1,  # 0 when there are no zoom levels (-1 + 1)
            tile_width=TILE_SIZE,
            tile_height=TILE_SIZE,
        )

    @staticmethod
    def from_wms_layers(layers: Sequence[WmsLayerCapabilities]) -> LevelSetConfig:
        """
        Derive the level set for a combined GetMap request.

        The extent is the union of every layer's geographic bounding box. The
        level count comes from the smallest scale denominator (WMS 1.3.0), else
        the smallest scale hint (WMS 1.1.1), else a default resolution.

        Args:
            layers: Requested layer capabilities

        Returns:
            LevelSetConfig for the request

        Raises:
            NegotiationFailed: If no layer declares a geographic bounding box
        """
        config = LevelSetConfig()

        min_scale_denominator = math.inf
        min_scale_hint = math.inf
        sector = Sector.empty()
        for layer in layers:
            if layer.min_scale_denominator is not None and layer.min_scale_denominator > 0:
                min_scale_denominator = min(min_scale_denominator, layer.min_scale_denominator)
            if layer.min_scale_hint is not None and layer.min_scale_hint > 0:
                min_scale_hint = min(min_scale_hint, layer.min_scale_hint)
            if layer.geographic_bounding_box is not None:
                sector = sector.union(layer.geographic_bounding_box)

        if sector.is_empty():
            raise NegotiationFailed("Geographic bounding box not defined for the requested layers")
        config.sector = sector

        if min_scale_denominator != math.inf:
            # Keep the finest level from exceeding the min scale denominator
            min_meters_per_pixel = min_scale_denominator * WMS_PIXEL_SIZE
            min_radians_per_pixel = min_meters_per_pixel / WGS84_SEMI_MAJOR_AXIS
            config.num_levels = LevelSetCalculator.num_levels_for_min_resolution(config, min_radians_per_pixel)
        elif min_scale_hint != math.inf:
            # ScaleHint is already ground distance in meters per pixel
            min_radians_per_pixel = min_scale_hint / WGS84_SEMI_MAJOR_AXIS
            config.num_levels = LevelSetCalculator.num_levels_for_min_resolution(config, min_radians_per_pixel)
        else:
            config.num_levels = LevelSetCalculator.num_levels_for_resolution(config, DEFAULT_WMS_RADIANS_PER_PIXEL)

        logger.debug(f"Derived {config.num_levels} levels over {sector.to_dict()}")
        return config

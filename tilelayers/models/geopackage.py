"""Records read from GeoPackage metadata tables."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GpkgContent:
    """Row of gpkg_contents."""

    table_name: str
    data_type: Optional[str]
    identifier: Optional[str]
    description: Optional[str]
    min_x: Optional[float]
    min_y: Optional[float]
    max_x: Optional[float]
    max_y: Optional[float]
    srs_id: Optional[int]


@dataclass(frozen=True)
class GpkgSpatialReferenceSystem:
    """Row of gpkg_spatial_ref_sys."""

    srs_name: str
    srs_id: int
    organization: str
    organization_coordsys_id: int
    definition: str = ""
    description: Optional[str] = None

    @property
    def identifier(self) -> str:
        """Authority code, e.g. "EPSG:4326"."""
        return f"{(self.organization or '').upper()}:{self.organization_coordsys_id}"


@dataclass(frozen=True)
class GpkgTileMatrixSet:
    """Row of gpkg_tile_matrix_set."""

    table_name: str
    srs_id: int
    min_x: float
    min_y: float
    max_x: float
    max_y: float


@dataclass(frozen=True)
class GpkgTileMatrix:
    """Row of gpkg_tile_matrix."""

    table_name: str
    zoom_level: int
    matrix_width: int
    matrix_height: int
    tile_width: int
    tile_height: int
    pixel_x_size: float
    pixel_y_size: float


@dataclass(frozen=True)
class GpkgTileUserMetrics:
    """Zoom levels present in a tile pyramid user data table."""

    table_name: str
    zoom_levels: tuple[int, ...] = ()

    @property
    def max_zoom_level(self) -> int:
        """Highest stored zoom level, or -1 when the table is empty."""
        return self.zoom_levels[-1] if self.zoom_levels else -1

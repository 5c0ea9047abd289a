"""Configuration for layer sources and application settings."""

from dataclasses import dataclass

import pyproj


@dataclass(frozen=True)
class SourceConfig:
    """A well-known layer source usable from the command line.

    Archive sources only need a path; service sources also name the
    sub-layers to request.
    """

    name: str
    display_name: str
    source: str
    location: str
    description: str
    layer_names: tuple[str, ...] = ()


# Example sources
SOURCES: dict[str, SourceConfig] = {
    "neo_land_surface_temp": SourceConfig(
        name="neo_land_surface_temp",
        display_name="Land Surface Temperature",
        source="WMS",
        location="https://neo.gsfc.nasa.gov/wms/wms",
        description="Monthly average daytime land surface temperature from NASA Earth Observations",
        layer_names=("MOD_LSTD_CLIM_M",),
    ),
    "neo_blue_marble": SourceConfig(
        name="neo_blue_marble",
        display_name="Blue Marble",
        source="WMS",
        location="https://neo.gsfc.nasa.gov/wms/wms",
        description="Blue Marble next generation true color imagery",
        layer_names=("BlueMarbleNG-TB",),
    ),
    "gibs_viirs_true_color": SourceConfig(
        name="gibs_viirs_true_color",
        display_name="VIIRS Corrected Reflectance",
        source="WMS",
        location="https://gibs.earthdata.nasa.gov/wms/epsg4326/best/wms.cgi",
        description="Daily VIIRS true color corrected reflectance from NASA GIBS",
        layer_names=("VIIRS_SNPP_CorrectedReflectance_TrueColor",),
    ),
    "geopackage_tutorial": SourceConfig(
        name="geopackage_tutorial",
        display_name="NAS Oceana (GeoPackage)",
        source="GeoPackage",
        location="geopackage_tutorial.gpkg",
        description="High resolution monochromatic image of Naval Air Station Oceana, Virginia Beach",
    ),
}

# Source kinds accepted by LayerBuilder.set_source (compared upper-case)
SOURCE_GEOPACKAGE = "GEOPACKAGE"
SOURCE_WMS = "WMS"
SOURCE_WMS_LAYER_CAPABILITIES = "WMSLAYERCAPABILITIES"

# Background task settings
MAX_TASK_WORKERS = 4
MAX_PENDING_TASKS = 64

# Network settings
CONNECT_TIMEOUT = 3  # seconds
READ_TIMEOUT = 30  # seconds
DOWNLOAD_TIMEOUT = 30  # seconds, per tile

# WMS negotiation
WMS_CAPABILITIES_VERSION = "1.3.0"
COMPATIBLE_WMS_VERSIONS = ("1.3.0", "1.1.1")
COMPATIBLE_COORDINATE_SYSTEMS = ("EPSG:4326", "CRS:84")
COMPATIBLE_IMAGE_FORMATS = ("image/png", "image/jpg", "image/jpeg", "image/gif", "image/bmp")

# Standardized rendering pixel size of 0.28mm x 0.28mm (WMS 1.3.0, section 7.2.4.6.9)
WMS_PIXEL_SIZE = 0.00028  # meters
DEFAULT_WMS_METERS_PER_PIXEL = 10.0

# Ellipsoid
WGS84_SEMI_MAJOR_AXIS = pyproj.Geod(ellps="WGS84").a  # meters

# Tile settings
TILE_SIZE = 256  # pixels
GEOPACKAGE_FIRST_LEVEL_DELTA = 180.0  # degrees
DEFAULT_FIRST_LEVEL_DELTA = 90.0  # degrees
GEOPACKAGE_TILES_DATA_TYPE = "tiles"

"""Layer source readers registry."""

from typing import Optional

from tilelayers.core.errors import ConfigurationError
from tilelayers.core.wms_client import WmsClient
from tilelayers.models.build_request import SourceKind
from tilelayers.sources.base import SourceReader
from tilelayers.sources.geopackage_source import GeoPackageSource
from tilelayers.sources.wms_source import WmsLayerCapabilitiesSource, WmsSource

# Registry of available source readers
SOURCE_READERS: dict[SourceKind, type] = {
    SourceKind.GEOPACKAGE: GeoPackageSource,
    SourceKind.WMS: WmsSource,
    SourceKind.WMS_LAYER_CAPABILITIES: WmsLayerCapabilitiesSource,
}


def get_source_reader(kind: SourceKind, wms_client: Optional[WmsClient] = None) -> SourceReader:
    """Get a source reader instance for the given kind.

    Args:
        kind: Source kind
        wms_client: Client for readers that contact a WMS

    Returns:
        Instance of the source reader

    Raises:
        ConfigurationError: If the source kind is not supported
    """
    if kind not in SOURCE_READERS:
        raise ConfigurationError(
            f"Unsupported layer source: {kind}. "
            f"Supported sources: {', '.join(source.value for source in SOURCE_READERS)}"
        )

    reader_class = SOURCE_READERS[kind]
    if reader_class is WmsSource:
        return WmsSource(wms_client)
    return reader_class()


__all__ = [
    "SOURCE_READERS",
    "get_source_reader",
    "SourceReader",
    "GeoPackageSource",
    "WmsSource",
    "WmsLayerCapabilitiesSource",
]

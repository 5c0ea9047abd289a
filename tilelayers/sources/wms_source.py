"""Layer source for OGC Web Map Services."""

import logging
from typing import Optional, Sequence

from tilelayers.core.errors import UnsupportedSource
from tilelayers.core.tile_factories import WmsTileFactory
from tilelayers.core.wms_client import WmsClient
from tilelayers.core.wms_negotiator import negotiate
from tilelayers.models.build_request import BuildRequest, SourceKind
from tilelayers.models.layer import LayerContents, TiledSurfaceImage
from tilelayers.models.level_set import LevelSet
from tilelayers.models.wms_capabilities import WmsLayerCapabilities

logger = logging.getLogger(__name__)


def read_wms_capabilities(layers: Sequence[WmsLayerCapabilities]) -> LayerContents:
    """
    Build a single tiled surface image requesting all layers together.

    Args:
        layers: Layer capabilities from one capabilities document

    Returns:
        LayerContents with one renderable and the joined layer titles as display name

    Raises:
        NegotiationFailed: If the layers cannot be requested together
    """
    negotiation = negotiate(layers)
    surface_image = TiledSurfaceImage(
        level_set=LevelSet(negotiation.level_set_config),
        tile_factory=WmsTileFactory(negotiation.layer_config),
        display_name=negotiation.display_name,
    )
    return LayerContents(renderables=[surface_image], display_name=negotiation.display_name)


def read_wms(service_address: str, layer_names: Sequence[str], client: Optional[WmsClient] = None) -> LayerContents:
    """
    Fetch a service's capabilities and build a layer from the named sub-layers.

    Names the service does not know are dropped.

    Args:
        service_address: Base service URL
        layer_names: Requested layer names, in request order
        client: Client used for the capabilities request

    Returns:
        LayerContents with one renderable

    Raises:
        SourceUnreachable: If the capabilities cannot be read
        UnsupportedSource: If none of the names match
        NegotiationFailed: If the matched layers cannot be requested
    """
    client = client or WmsClient()
    capabilities = client.retrieve_capabilities(service_address)

    layers = []
    skipped = []
    for name in layer_names:
        layer = capabilities.get_layer_by_name(name)
        if layer is None:
            logger.warning(f"Layer '{name}' not found in capabilities of {service_address}")
            skipped.append(f"Layer '{name}' not found")
        else:
            layers.append(layer)

    if not layers:
        raise UnsupportedSource(f"Provided layers did not match available layers: {', '.join(layer_names)}")

    contents = read_wms_capabilities(layers)
    contents.skipped = skipped
    return contents


class WmsSource:
    """Reads a layer from a remote WMS on a background worker."""

    kind = SourceKind.WMS
    background = True

    def __init__(self, client: Optional[WmsClient] = None):
        self.client = client or WmsClient()

    def read(self, request: BuildRequest) -> LayerContents:
        return read_wms(request.path_or_address, request.layer_names, self.client)


class WmsLayerCapabilitiesSource:
    """Builds a layer from capabilities the caller already holds.

    No I/O is involved, so negotiation runs on the calling thread.
    """

    kind = SourceKind.WMS_LAYER_CAPABILITIES
    background = False

    def read(self, request: BuildRequest) -> LayerContents:
        return read_wms_capabilities(request.layer_capabilities)

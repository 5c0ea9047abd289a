"""Negotiation of GetMap parameters from WMS layer capabilities."""

import logging
from dataclasses import dataclass
from typing import Sequence

from tilelayers.core.config import COMPATIBLE_COORDINATE_SYSTEMS, COMPATIBLE_IMAGE_FORMATS, COMPATIBLE_WMS_VERSIONS
from tilelayers.core.errors import NegotiationFailed
from tilelayers.core.level_set_calculator import LevelSetCalculator
from tilelayers.models.level_set import LevelSetConfig
from tilelayers.models.wms_capabilities import WmsCapabilities, WmsLayerCapabilities
from tilelayers.models.wms_layer_config import WmsLayerConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WmsNegotiation:
    """Everything needed to display a set of WMS layers as one tiled image."""

    layer_config: WmsLayerConfig
    level_set_config: LevelSetConfig
    display_name: str


def check_layer_limit(capabilities: WmsCapabilities, layer_count: int) -> None:
    """
    Check that the service accepts this many layers in one request.

    Raises:
        NegotiationFailed: If the service declares a smaller LayerLimit
    """
    layer_limit = capabilities.service_information.layer_limit
    if layer_limit is not None and layer_limit < layer_count:
        raise NegotiationFailed(
            f"The number of layers specified ({layer_count}) exceeds the service limit ({layer_limit})"
        )


def negotiate_version(capabilities: WmsCapabilities) -> str:
    """Accept the document's version verbatim if this library speaks it."""
    if capabilities.version not in COMPATIBLE_WMS_VERSIONS:
        raise NegotiationFailed(f"WMS version not compatible: {capabilities.version}")
    return capabilities.version


def negotiate_request_url(capabilities: WmsCapabilities) -> str:
    """Resolve the GetMap HTTP Get endpoint."""
    request_url = capabilities.get_request_url("GetMap", "Get")
    if request_url is None:
        raise NegotiationFailed("Unable to resolve GetMap URL")
    return request_url


def negotiate_coordinate_system(layers: Sequence[WmsLayerCapabilities]) -> str:
    """
    Pick a coordinate system every requested layer supports.

    The candidate set is the intersection of all layers' reference systems, so
    the result does not depend on layer order.

    Raises:
        NegotiationFailed: If neither EPSG:4326 nor CRS:84 is common to all layers
    """
    matching = set(layers[0].reference_systems)
    for layer in layers[1:]:
        matching &= layer.reference_systems

    for coordinate_system in COMPATIBLE_COORDINATE_SYSTEMS:
        if coordinate_system in matching:
            return coordinate_system

    raise NegotiationFailed(f"Coordinate systems not compatible: {sorted(matching)}")


def negotiate_image_format(capabilities: WmsCapabilities) -> str:
    """Pick the first compatible image format the service advertises."""
    advertised = set(capabilities.image_formats)
    for image_format in COMPATIBLE_IMAGE_FORMATS:
        if image_format in advertised:
            return image_format

    raise NegotiationFailed(f"Image formats not compatible: {capabilities.image_formats}")


def negotiate(layers: Sequence[WmsLayerCapabilities]) -> WmsNegotiation:
    """
    Negotiate request parameters and tiling for a list of WMS layers.

    All layers must come from the same capabilities document.

    Args:
        layers: Requested layers, in request order

    Returns:
        WmsNegotiation with the GetMap configuration, level set and display name

    Raises:
        NegotiationFailed: On any incompatibility with the service
    """
    if not layers:
        raise NegotiationFailed("No layers to negotiate")

    capabilities = layers[0].service_capabilities
    if capabilities is None:
        raise NegotiationFailed("Layer capabilities are not attached to a capabilities document")

    check_layer_limit(capabilities, len(layers))

    version = negotiate_version(capabilities)
    request_url = negotiate_request_url(capabilities)
    if any(not layer.name for layer in layers):
        raise NegotiationFailed("Layers without a name cannot be requested")

    layer_config = WmsLayerConfig(
        service_address=request_url,
        wms_version=version,
        layer_names=",".join(layer.name for layer in layers),
        coordinate_system=negotiate_coordinate_system(layers),
        image_format=negotiate_image_format(capabilities),
    )
    level_set_config = LevelSetCalculator.from_wms_layers(layers)
    display_name = ",".join(layer.title for layer in layers)

    logger.info(
        f"Negotiated WMS {layer_config.wms_version} {layer_config.coordinate_system} "
        f"{layer_config.image_format} for '{layer_config.layer_names}' ({level_set_config.num_levels} levels)"
    )
    return WmsNegotiation(layer_config=layer_config, level_set_config=level_set_config, display_name=display_name)

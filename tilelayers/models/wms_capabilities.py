"""Data model for parsed WMS capability documents."""

from dataclasses import dataclass, field
from typing import Optional

from tilelayers.models.sector import Sector


@dataclass
class WmsServiceInformation:
    """Service-level metadata from the <Service> element."""

    name: str = ""
    title: str = ""
    abstract: str = ""
    layer_limit: Optional[int] = None
    max_width: Optional[int] = None
    max_height: Optional[int] = None


@dataclass(eq=False)
class WmsLayerCapabilities:
    """A <Layer> element with WMS inheritance already applied.

    ``reference_systems`` includes those declared by ancestor layers; the
    bounding box and scale values fall back to the nearest ancestor that
    declares them.
    """

    name: Optional[str]
    title: str
    reference_systems: set[str] = field(default_factory=set)
    geographic_bounding_box: Optional[Sector] = None
    min_scale_denominator: Optional[float] = None
    max_scale_denominator: Optional[float] = None
    min_scale_hint: Optional[float] = None
    max_scale_hint: Optional[float] = None
    styles: list[str] = field(default_factory=list)
    layers: list["WmsLayerCapabilities"] = field(default_factory=list)
    parent: Optional["WmsLayerCapabilities"] = field(default=None, repr=False)
    service_capabilities: Optional["WmsCapabilities"] = field(default=None, repr=False)

    def named_layers(self) -> list["WmsLayerCapabilities"]:
        """
        Get this layer and all descendants that carry a name.

        Returns:
            Named layers in document order
        """
        named = [self] if self.name else []
        for child in self.layers:
            named.extend(child.named_layers())
        return named


@dataclass(eq=False)
class WmsCapabilities:
    """Parsed GetCapabilities response."""

    version: str
    service_information: WmsServiceInformation = field(default_factory=WmsServiceInformation)
    image_formats: list[str] = field(default_factory=list)
    request_urls: dict[tuple[str, str], str] = field(default_factory=dict)
    layers: list[WmsLayerCapabilities] = field(default_factory=list)

    def get_request_url(self, operation: str, method: str) -> Optional[str]:
        """
        Resolve the online resource for an operation.

        Args:
            operation: Operation name, e.g. "GetMap"
            method: HTTP method name, "Get" or "Post"

        Returns:
            Request URL, or None if the document does not declare one
        """
        return self.request_urls.get((operation.lower(), method.lower()))

    def named_layers(self) -> list[WmsLayerCapabilities]:
        """Get all named layers in document order."""
        named = []
        for layer in self.layers:
            named.extend(layer.named_layers())
        return named

    def get_layer_by_name(self, name: str) -> Optional[WmsLayerCapabilities]:
        """
        Look up a named layer anywhere in the layer tree.

        Args:
            name: Layer name

        Returns:
            Matching layer, or None
        """
        for layer in self.named_layers():
            if layer.name == name:
                return layer
        return None

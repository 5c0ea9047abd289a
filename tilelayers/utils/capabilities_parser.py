"""Parsing of WMS GetCapabilities documents."""

import logging
import xml.etree.ElementTree as ET
from typing import Optional

from tilelayers.models.sector import Sector
from tilelayers.models.wms_capabilities import WmsCapabilities, WmsLayerCapabilities, WmsServiceInformation

logger = logging.getLogger(__name__)

XLINK_HREF = "{http://www.w3.org/1999/xlink}href"

CAPABILITIES_ROOTS = ("WMS_Capabilities", "WMT_MS_Capabilities")


class CapabilitiesParseError(ValueError):
    """The document is not a readable WMS capabilities document."""


def _strip_namespaces(root: ET.Element) -> None:
    """Drop element namespaces so 1.1.1 and 1.3.0 documents read alike."""
    for element in root.iter():
        if isinstance(element.tag, str) and "}" in element.tag:
            element.tag = element.tag.split("}", 1)[1]


def _text(element: ET.Element, path: str) -> Optional[str]:
    value = element.findtext(path)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


def _int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    return int(value)


def _parse_service(element: Optional[ET.Element]) -> WmsServiceInformation:
    if element is None:
        return WmsServiceInformation()

    return WmsServiceInformation(
        name=_text(element, "Name") or "",
        title=_text(element, "Title") or "",
        abstract=_text(element, "Abstract") or "",
        layer_limit=_int(element.findtext("LayerLimit")),
        max_width=_int(element.findtext("MaxWidth")),
        max_height=_int(element.findtext("MaxHeight")),
    )


def _parse_requests(element: Optional[ET.Element], capabilities: WmsCapabilities) -> None:
    if element is None:
        return

    for operation in element:
        for method in operation.findall("DCPType/HTTP/*"):
            resource = method.find("OnlineResource")
            href = resource.get(XLINK_HREF) if resource is not None else None
            if href:
                capabilities.request_urls.setdefault((operation.tag.lower(), method.tag.lower()), href.strip())

    get_map = element.find("GetMap")
    if get_map is not None:
        capabilities.image_formats = [fmt.text.strip() for fmt in get_map.findall("Format") if fmt.text]


def _parse_geographic_bounding_box(element: ET.Element) -> Optional[Sector]:
    """Read EX_GeographicBoundingBox (1.3.0) or LatLonBoundingBox (1.1.1)."""
    box = element.find("EX_GeographicBoundingBox")
    if box is not None:
        west = _float(box.findtext("westBoundLongitude"))
        east = _float(box.findtext("eastBoundLongitude"))
        south = _float(box.findtext("southBoundLatitude"))
        north = _float(box.findtext("northBoundLatitude"))
        if None not in (west, east, south, north):
            return Sector.from_bounds(west, south, east, north)

    box = element.find("LatLonBoundingBox")
    if box is not None:
        west, south = _float(box.get("minx")), _float(box.get("miny"))
        east, north = _float(box.get("maxx")), _float(box.get("maxy"))
        if None not in (west, east, south, north):
            return Sector.from_bounds(west, south, east, north)

    return None


def _parse_layer(
    element: ET.Element, parent: Optional[WmsLayerCapabilities], capabilities: WmsCapabilities
) -> WmsLayerCapabilities:
    reference_systems = set(parent.reference_systems) if parent else set()
    for tag in ("CRS", "SRS"):
        for crs in element.findall(tag):
            if crs.text:
                # 1.1.1 servers may list several codes in one element
                reference_systems.update(crs.text.split())

    scale_hint = element.find("ScaleHint")
    min_scale_hint = _float(scale_hint.get("min")) if scale_hint is not None else None
    max_scale_hint = _float(scale_hint.get("max")) if scale_hint is not None else None

    layer = WmsLayerCapabilities(
        name=_text(element, "Name"),
        title=_text(element, "Title") or "",
        reference_systems=reference_systems,
        geographic_bounding_box=_parse_geographic_bounding_box(element),
        min_scale_denominator=_float(element.findtext("MinScaleDenominator")),
        max_scale_denominator=_float(element.findtext("MaxScaleDenominator")),
        min_scale_hint=min_scale_hint,
        max_scale_hint=max_scale_hint,
        styles=[name for name in (_text(style, "Name") for style in element.findall("Style")) if name],
        parent=parent,
        service_capabilities=capabilities,
    )

    if parent is not None:
        # Extent and scale are replaced, not added to, by child declarations
        if layer.geographic_bounding_box is None:
            layer.geographic_bounding_box = parent.geographic_bounding_box
        if layer.min_scale_denominator is None:
            layer.min_scale_denominator = parent.min_scale_denominator
        if layer.max_scale_denominator is None:
            layer.max_scale_denominator = parent.max_scale_denominator
        if scale_hint is None:
            layer.min_scale_hint = parent.min_scale_hint
            layer.max_scale_hint = parent.max_scale_hint

    layer.layers = [_parse_layer(child, layer, capabilities) for child in element.findall("Layer")]
    return layer


def parse_capabilities(data: bytes) -> WmsCapabilities:
    """
    Parse a GetCapabilities response body.

    Args:
        data: Raw XML bytes

    Returns:
        Parsed capabilities

    Raises:
        CapabilitiesParseError: If the XML is malformed or not a WMS capabilities document
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise CapabilitiesParseError(f"Invalid capabilities XML: {e}") from e

    _strip_namespaces(root)
    if root.tag not in CAPABILITIES_ROOTS:
        raise CapabilitiesParseError(f"Not a WMS capabilities document: <{root.tag}>")

    version = root.get("version")
    if not version:
        raise CapabilitiesParseError("Capabilities document has no version")

    capability = root.find("Capability")
    if capability is None:
        raise CapabilitiesParseError("Capabilities document has no <Capability> section")

    try:
        capabilities = WmsCapabilities(version=version.strip())
        capabilities.service_information = _parse_service(root.find("Service"))
        _parse_requests(capability.find("Request"), capabilities)
        capabilities.layers = [_parse_layer(layer, None, capabilities) for layer in capability.findall("Layer")]
    except ValueError as e:
        raise CapabilitiesParseError(f"Invalid value in capabilities document: {e}") from e

    logger.debug(
        f"Parsed WMS {capabilities.version} capabilities with {len(capabilities.named_layers())} named layers"
    )
    return capabilities


def parse_capabilities_file(path) -> WmsCapabilities:
    """
    Parse a capabilities document saved on disk.

    Raises:
        FileNotFoundError: If the file doesn't exist
        CapabilitiesParseError: If the document cannot be parsed
    """
    with open(path, "rb") as f:
        return parse_capabilities(f.read())

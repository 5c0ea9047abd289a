"""WMS GetMap request configuration."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class WmsLayerConfig:
    """Negotiated parameters for GetMap requests against one service."""

    service_address: str
    wms_version: str
    layer_names: str  # comma-separated
    coordinate_system: str
    image_format: str
    style_names: Optional[str] = None
    transparent: bool = True

    def __post_init__(self):
        """Validate configuration."""
        if not self.service_address:
            raise ValueError("service_address cannot be empty")

        if not self.layer_names:
            raise ValueError("layer_names cannot be empty")

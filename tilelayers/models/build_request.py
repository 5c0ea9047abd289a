"""Layer build request and result models."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from tilelayers.core.config import SOURCE_GEOPACKAGE, SOURCE_WMS, SOURCE_WMS_LAYER_CAPABILITIES
from tilelayers.models.layer import RenderableLayer
from tilelayers.models.wms_capabilities import WmsLayerCapabilities

if TYPE_CHECKING:
    from tilelayers.core.layer_builder import LayerBuilder

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    """Kinds of data source a layer can be built from."""

    GEOPACKAGE = SOURCE_GEOPACKAGE
    WMS = SOURCE_WMS
    WMS_LAYER_CAPABILITIES = SOURCE_WMS_LAYER_CAPABILITIES

    @staticmethod
    def normalize(value: "str | SourceKind") -> str:
        """Canonical upper-case token for a source name."""
        if isinstance(value, SourceKind):
            return value.value
        return str(value).strip().upper()


@dataclass(frozen=True)
class LayerResult:
    """Outcome of one build, delivered once on the front context."""

    builder: "LayerBuilder"
    layer: RenderableLayer
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


LayerCallbackType = Callable[[LayerResult], Any]


class LayerCallback:
    """Two-method callback interface.

    Subclasses override ``creation_succeeded`` and ``creation_failed``. Instances
    are callables accepting a LayerResult, so they can be passed anywhere a
    plain result callback is accepted.
    """

    def creation_succeeded(self, builder: "LayerBuilder", layer: RenderableLayer) -> None:
        """Called with the populated layer."""

    def creation_failed(self, builder: "LayerBuilder", layer: RenderableLayer, error: BaseException) -> None:
        """Called with the (empty) layer and the reason it could not be built."""
        logger.error(f"Layer creation failed: {error}")

    def __call__(self, result: LayerResult) -> None:
        if result.succeeded:
            self.creation_succeeded(result.builder, result.layer)
        else:
            self.creation_failed(result.builder, result.layer, result.error)


@dataclass(frozen=True)
class BuildRequest:
    """Immutable snapshot of a builder's settings taken by build()."""

    source: SourceKind
    callback: LayerCallbackType
    path_or_address: Optional[str] = None
    layer_names: tuple[str, ...] = ()
    layer_capabilities: tuple[WmsLayerCapabilities, ...] = ()

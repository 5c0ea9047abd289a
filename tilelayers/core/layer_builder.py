"""Builder for layers backed by GeoPackage files and Web Map Services.

A layer is configured with chained setters and created by ``build``, which
returns an empty layer immediately. The layer is filled in later on the front
context, after which the callback receives a LayerResult::

    layer = (
        LayerBuilder()
        .set_source("GeoPackage")
        .set_location("geopackage_tutorial.gpkg")
        .set_callback(on_layer)
        .build()
    )
"""

import logging
from functools import partial
from typing import Iterable, Optional

from tilelayers.core.errors import CapacityExceeded, ConfigurationError
from tilelayers.core.front_context import FrontContext, get_front_context
from tilelayers.core.task_service import TaskService, get_task_service
from tilelayers.core.wms_client import WmsClient
from tilelayers.models.build_request import BuildRequest, LayerCallbackType, LayerResult, SourceKind
from tilelayers.models.layer import LayerContents, RenderableLayer
from tilelayers.models.wms_capabilities import WmsLayerCapabilities
from tilelayers.sources import get_source_reader
from tilelayers.sources.base import SourceReader

logger = logging.getLogger(__name__)


def _as_tuple(values) -> tuple:
    if values is None:
        return ()
    if isinstance(values, (str, WmsLayerCapabilities)):
        return (values,)
    return tuple(values)


class LayerBuilder:
    """Creates layers from GeoPackage files, WMS addresses or WMS layer capabilities."""

    def __init__(
        self,
        front_context: Optional[FrontContext] = None,
        task_service: Optional[TaskService] = None,
        wms_client: Optional[WmsClient] = None,
    ):
        """
        Initialize layer builder.

        Args:
            front_context: Context that receives layer mutations and callbacks
                (defaults to the process-wide front context)
            task_service: Worker pool for background reads (defaults to the shared one)
            wms_client: Client for capabilities requests
        """
        self.front_context = front_context or get_front_context()
        self.task_service = task_service or get_task_service()
        self.wms_client = wms_client or WmsClient()

        self.source: Optional[str] = None
        self.path_or_address: Optional[str] = None
        self.callback: Optional[LayerCallbackType] = None
        self.layer_names: tuple[str, ...] = ()
        self.layer_capabilities: tuple[WmsLayerCapabilities, ...] = ()

    def set_source(self, source: "str | SourceKind") -> "LayerBuilder":
        """Set the data source kind: "GeoPackage", "WMS" or "WmsLayerCapabilities" (any case)."""
        self.source = None if source is None else SourceKind.normalize(source)
        return self

    def set_location(self, path_or_address: str) -> "LayerBuilder":
        """Set the GeoPackage file path or the WMS service address."""
        self.path_or_address = None if path_or_address is None else str(path_or_address)
        return self

    def set_callback(self, callback: LayerCallbackType) -> "LayerBuilder":
        """Set the callable receiving the LayerResult."""
        self.callback = callback
        return self

    def set_sub_layer_names(self, layer_names: "str | Iterable[str]") -> "LayerBuilder":
        """Set one or more WMS layer names to request."""
        self.layer_names = _as_tuple(layer_names)
        return self

    def set_precomputed_capabilities(
        self, layer_capabilities: "WmsLayerCapabilities | Iterable[WmsLayerCapabilities]"
    ) -> "LayerBuilder":
        """Set one or more WMS layer capabilities to build from without a network request."""
        self.layer_capabilities = _as_tuple(layer_capabilities)
        return self

    def _snapshot(self) -> BuildRequest:
        """Validate settings and capture them as an immutable request."""
        if self.callback is None:
            raise ConfigurationError("Missing callback")

        if self.source is None:
            raise ConfigurationError("Missing layer source")

        try:
            source = SourceKind(self.source)
        except ValueError:
            supported = ", ".join(kind.value for kind in SourceKind)
            raise ConfigurationError(
                f"Unsupported layer source: {self.source}. Supported sources: {supported}"
            ) from None

        if source is SourceKind.GEOPACKAGE:
            if not self.path_or_address:
                raise ConfigurationError("Missing GeoPackage path")

        elif source is SourceKind.WMS:
            if not self.layer_names:
                raise ConfigurationError("Missing WMS layer names")
            if not self.path_or_address:
                raise ConfigurationError("Missing WMS service address")

        elif source is SourceKind.WMS_LAYER_CAPABILITIES:
            if not self.layer_capabilities:
                raise ConfigurationError("Missing WMS layer capabilities")

        return BuildRequest(
            source=source,
            callback=self.callback,
            path_or_address=self.path_or_address,
            layer_names=self.layer_names,
            layer_capabilities=self.layer_capabilities,
        )

    def build(self) -> RenderableLayer:
        """
        Start building the configured layer.

        Returns:
            The layer, empty until the result is delivered on the front context

        Raises:
            ConfigurationError: If a required setting is missing or the source is unknown
        """
        request = self._snapshot()
        reader = get_source_reader(request.source, wms_client=self.wms_client)

        layer = RenderableLayer()
        # Terrain surface picking is handled by the globe, not by imagery layers
        layer.pick_enabled = False

        if not reader.background:
            self._read_and_deliver(reader, request, layer)
            return layer

        try:
            self.task_service.submit(self._read_and_deliver, reader, request, layer)
        except CapacityExceeded as e:
            logger.error(f"Unable to schedule {request.source.value} layer creation: {e}")
            request.callback(LayerResult(builder=self, layer=layer, error=e))

        return layer

    def _read_and_deliver(self, reader: SourceReader, request: BuildRequest, layer: RenderableLayer) -> None:
        """Read the source, then hand the outcome to the front context."""
        try:
            contents = reader.read(request)
        except Exception as e:
            logger.error(f"Layer creation from {request.source.value} {request.path_or_address or ''} failed: {e}")
            self.front_context.post(partial(self._deliver_failure, request, layer, e))
            return

        self.front_context.post(partial(self._deliver_success, request, layer, contents))

    def _deliver_success(self, request: BuildRequest, layer: RenderableLayer, contents: LayerContents) -> None:
        """Attach the renderables and notify the caller. Runs on the front context."""
        if contents.display_name is not None:
            layer.display_name = contents.display_name
        layer.add_all_renderables(contents.renderables)
        request.callback(LayerResult(builder=self, layer=layer))
        # Make the new imagery appear on every globe the layer is attached to
        self.front_context.request_redraw()

    def _deliver_failure(self, request: BuildRequest, layer: RenderableLayer, error: BaseException) -> None:
        """Notify the caller of a failure. Runs on the front context."""
        request.callback(LayerResult(builder=self, layer=layer, error=error))

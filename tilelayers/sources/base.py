"""Protocol for layer source readers."""

from typing import Protocol

from tilelayers.models.build_request import BuildRequest, SourceKind
from tilelayers.models.layer import LayerContents


class SourceReader(Protocol):
    """Interface implemented by each data source adapter.

    ``read`` runs on a background worker when ``background`` is True and on
    the calling thread otherwise. It must not touch the layer being built.
    """

    kind: SourceKind
    background: bool

    def read(self, request: BuildRequest) -> LayerContents:
        """Produce the renderables for a build request.

        Raises:
            LayerBuilderError: If no usable content can be produced
        """
        ...

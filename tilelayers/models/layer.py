"""Layer and renderable models."""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from tilelayers.models.level_set import LevelSet


@dataclass
class TiledSurfaceImage:
    """Binding of a level set to the strategy that supplies its tiles."""

    level_set: LevelSet
    tile_factory: Any
    display_name: Optional[str] = None
    enabled: bool = True


@dataclass
class LayerContents:
    """Renderables produced by a source reader, not yet attached to a layer."""

    renderables: list[TiledSurfaceImage] = field(default_factory=list)
    display_name: Optional[str] = None
    skipped: list[str] = field(default_factory=list)  # reasons, for logging


class RenderableLayer:
    """Named, ordered collection of renderables shown on one or more globes.

    Renderable contents are only changed from the front context.
    """

    def __init__(self, display_name: Optional[str] = None):
        """
        Initialize an empty layer.

        Args:
            display_name: Optional human-readable name
        """
        self.display_name = display_name
        self.enabled = True
        self.pick_enabled = True
        self._renderables: list[TiledSurfaceImage] = []

    @property
    def renderables(self) -> list[TiledSurfaceImage]:
        """Copy of the current renderables in draw order."""
        return list(self._renderables)

    def count(self) -> int:
        return len(self._renderables)

    def is_empty(self) -> bool:
        return not self._renderables

    def add_renderable(self, renderable: TiledSurfaceImage) -> None:
        self._renderables.append(renderable)

    def add_all_renderables(self, renderables: Iterable[TiledSurfaceImage]) -> None:
        self._renderables.extend(renderables)

    def remove_all_renderables(self) -> None:
        self._renderables.clear()

    def __repr__(self) -> str:
        return f"RenderableLayer(display_name={self.display_name!r}, renderables={len(self._renderables)})"

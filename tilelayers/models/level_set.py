"""Multi-resolution tiling scheme models."""

import math
from dataclasses import dataclass, field

from tilelayers.core.config import DEFAULT_FIRST_LEVEL_DELTA, TILE_SIZE
from tilelayers.models.sector import Sector


@dataclass
class LevelSetConfig:
    """Configuration values for a level set.

    Levels are numbered from 0 (coarsest). Level ``n`` has square tiles spanning
    ``first_level_delta / 2**n`` degrees, addressed from the south-west corner of
    the globe.
    """

    sector: Sector = field(default_factory=Sector.full_sphere)
    first_level_delta: float = DEFAULT_FIRST_LEVEL_DELTA
    num_levels: int = 1
    tile_width: int = TILE_SIZE
    tile_height: int = TILE_SIZE

    def __post_init__(self):
        """Validate level set settings."""
        if self.num_levels < 0:
            raise ValueError(f"num_levels must be >= 0, got {self.num_levels}")

        if self.first_level_delta <= 0:
            raise ValueError(f"first_level_delta must be positive, got {self.first_level_delta}")

        if self.tile_width <= 0 or self.tile_height <= 0:
            raise ValueError(f"Tile size must be positive, got {self.tile_width}x{self.tile_height}")


@dataclass(frozen=True)
class Level:
    """A single resolution level within a level set."""

    level_number: int
    tile_delta: float  # degrees
    tile_width: int
    tile_height: int

    @property
    def texel_height(self) -> float:
        """Angular size of one texel in radians."""
        return math.radians(self.tile_delta) / self.tile_height

    @property
    def row_count(self) -> int:
        """Number of tile rows covering the globe at this level."""
        return math.ceil(180.0 / self.tile_delta)

    @property
    def column_count(self) -> int:
        """Number of tile columns covering the globe at this level."""
        return math.ceil(360.0 / self.tile_delta)

    def tile_sector(self, row: int, column: int) -> Sector:
        """
        Get the geographic sector covered by a tile.

        Args:
            row: Tile row, counted northward from -90 degrees
            column: Tile column, counted eastward from -180 degrees

        Returns:
            Sector of the tile
        """
        return Sector.from_degrees(
            -90.0 + row * self.tile_delta,
            -180.0 + column * self.tile_delta,
            self.tile_delta,
            self.tile_delta,
        )


class LevelSet:
    """Ordered levels described by a LevelSetConfig."""

    def __init__(self, config: LevelSetConfig):
        """
        Build the levels for a configuration.

        Args:
            config: Level set configuration
        """
        self.sector = config.sector
        self.first_level_delta = config.first_level_delta
        self.tile_width = config.tile_width
        self.tile_height = config.tile_height
        self.levels = [
            Level(
                level_number=number,
                tile_delta=config.first_level_delta / (2**number),
                tile_width=config.tile_width,
                tile_height=config.tile_height,
            )
            for number in range(config.num_levels)
        ]

    @property
    def num_levels(self) -> int:
        return len(self.levels)

    def first_level(self) -> Level | None:
        return self.levels[0] if self.levels else None

    def last_level(self) -> Level | None:
        return self.levels[-1] if self.levels else None

    def level(self, level_number: int) -> Level | None:
        """Get a level by number, or None if out of range."""
        if 0 <= level_number < len(self.levels):
            return self.levels[level_number]
        return None

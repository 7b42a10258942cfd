"""
TileLayout Implementation

Implements the tile layout used for lazy, tile-wise raster computation.
"""

from typing import Tuple
import math

# Default tile edge length in pixels
DEFAULT_TILE_SIZE = 256


class TileLayout:
    """
    Fixed-size tiling of a raster image

    The image is split into tiles of ``tile_width`` × ``tile_height`` pixels
    starting at the upper left corner. Border tiles are cropped to the image.

    Tiles are addressed by (tile_x, tile_y) indices where:
    - tile_x increases to the right (columns)
    - tile_y increases downward (rows)

    Examples:
        >>> layout = TileLayout(1000, 600, tile_width=256, tile_height=256)
        >>> layout.tile_count_x, layout.tile_count_y
        (4, 3)
        >>> layout.get_tile_window(3, 2)
        (768, 512, 232, 88)
    """

    def __init__(
        self,
        width: int,
        height: int,
        tile_width: int = DEFAULT_TILE_SIZE,
        tile_height: int | None = None,
    ):
        """
        Initialize tile layout

        Args:
            width: Image width in pixels
            height: Image height in pixels
            tile_width: Tile width in pixels (default: 256)
            tile_height: Tile height in pixels (default: same as tile_width)
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Image size must be positive, got {width}x{height}")
        tile_height = tile_width if tile_height is None else tile_height
        if tile_width <= 0 or tile_height <= 0:
            raise ValueError(f"Tile size must be positive, got {tile_width}x{tile_height}")

        self.width = width
        self.height = height
        # Tiles never exceed the image
        self.tile_width = min(tile_width, width)
        self.tile_height = min(tile_height, height)

    @property
    def tile_count_x(self) -> int:
        """Number of tile columns"""
        return int(math.ceil(self.width / self.tile_width))

    @property
    def tile_count_y(self) -> int:
        """Number of tile rows"""
        return int(math.ceil(self.height / self.tile_height))

    @property
    def tile_count(self) -> int:
        """Total number of tiles"""
        return self.tile_count_x * self.tile_count_y

    def get_tile_window(self, tile_x: int, tile_y: int) -> Tuple[int, int, int, int]:
        """
        Get pixel window of a tile

        Args:
            tile_x: Tile column index
            tile_y: Tile row index

        Returns:
            Window as (x, y, width, height), cropped to the image

        Raises:
            IndexError: If the tile index is outside the layout
        """
        if not (0 <= tile_x < self.tile_count_x and 0 <= tile_y < self.tile_count_y):
            raise IndexError(
                f"Tile ({tile_x}, {tile_y}) outside layout "
                f"{self.tile_count_x}x{self.tile_count_y}"
            )
        x = tile_x * self.tile_width
        y = tile_y * self.tile_height
        return (x, y, min(self.tile_width, self.width - x), min(self.tile_height, self.height - y))

    def get_tiles_in_window(self, x: int, y: int, width: int, height: int) -> list:
        """
        Get all tiles that intersect with the given pixel window

        Args:
            x, y: Upper left corner of the window
            width, height: Window size in pixels

        Returns:
            List of (tile_x, tile_y) in row-major order (empty if the
            window does not intersect the image)

        Examples:
            >>> layout = TileLayout(1000, 600)
            >>> layout.get_tiles_in_window(200, 0, 100, 10)
            [(0, 0), (1, 0)]
        """
        x0 = max(x, 0)
        y0 = max(y, 0)
        x1 = min(x + width, self.width)
        y1 = min(y + height, self.height)
        if x1 <= x0 or y1 <= y0:
            return []

        tiles = []
        for tile_y in range(y0 // self.tile_height, (y1 - 1) // self.tile_height + 1):
            for tile_x in range(x0 // self.tile_width, (x1 - 1) // self.tile_width + 1):
                tiles.append((tile_x, tile_y))
        return tiles

    def iter_tiles(self):
        """Iterate over all (tile_x, tile_y) indices in row-major order"""
        for tile_y in range(self.tile_count_y):
            for tile_x in range(self.tile_count_x):
                yield (tile_x, tile_y)

    def __repr__(self) -> str:
        return (
            f"TileLayout({self.width}x{self.height}, "
            f"tiles={self.tile_width}x{self.tile_height}, "
            f"count={self.tile_count_x}x{self.tile_count_y})"
        )

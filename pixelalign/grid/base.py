"""
Tile Layout Protocol

Splits a raster image into fixed-size tiles for lazy, tile-wise computation.
"""

from typing import Protocol, Tuple


class TileGrid(Protocol):
    """
    Tiling of a single raster image

    Tiles are addressed by (tile_x, tile_y) indices counted from the upper
    left corner. Tiles in the last column/row may be smaller than the
    nominal tile size.
    """

    width: int
    height: int
    tile_width: int
    tile_height: int

    @property
    def tile_count(self) -> int:
        """Total number of tiles"""
        ...

    def get_tile_window(self, tile_x: int, tile_y: int) -> Tuple[int, int, int, int]:
        """
        Get pixel window of a tile

        Args:
            tile_x: Tile column index
            tile_y: Tile row index

        Returns:
            Window as (x, y, width, height) in pixels
        """
        ...

    def get_tiles_in_window(self, x: int, y: int, width: int, height: int) -> list:
        """
        Get all tiles intersecting a pixel window

        Returns:
            List of (tile_x, tile_y) tuples in row-major order
        """
        ...

    def iter_tiles(self):
        """Iterate over all (tile_x, tile_y) indices in row-major order"""
        ...

"""
PixelAlign Grid Module

Tile layout of raster images.
"""

from pixelalign.grid.base import TileGrid
from pixelalign.grid.tile_grid import DEFAULT_TILE_SIZE, TileLayout

__all__ = [
    "DEFAULT_TILE_SIZE",
    "TileGrid",
    "TileLayout",
]

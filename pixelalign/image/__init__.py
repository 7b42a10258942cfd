"""
PixelAlign Image Module

Lazy tiled images, the shared tile arena, and multi-level pyramids.
"""

from pixelalign.image.cache import TileArena, get_default_arena
from pixelalign.image.pyramid import MultiLevelImage, MultiLevelModel
from pixelalign.image.tiled import TiledImage

__all__ = [
    "MultiLevelImage",
    "MultiLevelModel",
    "TileArena",
    "TiledImage",
    "get_default_arena",
]

"""
Tiled lazy image

A single-band raster whose pixels are computed tile by tile on first read.
"""

import logging
import uuid
import weakref
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from numpy.typing import DTypeLike, NDArray

from pixelalign.grid.base import TileGrid
from pixelalign.grid.tile_grid import DEFAULT_TILE_SIZE, TileLayout
from pixelalign.image.cache import TileArena, get_default_arena

logger = logging.getLogger(__name__)

# compute_tile(x, y, width, height) -> array of shape (height, width)
TileFunction = Callable[[int, int, int, int], NDArray]


class TiledImage:
    """
    Lazily computed single-band image

    Pixels are produced by ``compute_tile`` for one tile window at a time.
    Computed tiles are memoised in a :class:`TileArena` under
    ``(*key, tile_x, tile_y)``, so each tile is computed at most once even
    with concurrent readers.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        dtype: Pixel data type
        layout: Tile layout
        key: Arena key prefix, e.g. (image_id, level)

    Examples:
        >>> image = TiledImage.from_array(np.arange(12).reshape(3, 4))
        >>> image.read(1, 1, 2, 2)
        array([[ 5,  6],
               [ 9, 10]])
    """

    def __init__(
        self,
        width: int,
        height: int,
        dtype: DTypeLike,
        compute_tile: TileFunction,
        tile_size: int = DEFAULT_TILE_SIZE,
        arena: TileArena | None = None,
        key: tuple | None = None,
        cached: bool = True,
    ):
        """
        Args:
            width: Image width in pixels
            height: Image height in pixels
            dtype: Pixel data type
            compute_tile: Function computing one tile window
            tile_size: Tile edge length in pixels
            arena: Tile memo (default: process-wide arena)
            key: Arena key prefix (default: fresh unique id, level 0)
            cached: Whether tiles go through the arena at all
        """
        self.layout: TileGrid = TileLayout(width, height, tile_size)
        self.dtype = np.dtype(dtype)
        self.key = key if key is not None else (uuid.uuid4().hex, 0)
        self._compute_tile = compute_tile
        self._arena = (arena if arena is not None else get_default_arena()) if cached else None
        # Tiles under an explicit key belong to the owner of the key
        if key is None and self._arena is not None:
            weakref.finalize(self, self._arena.evict, self.key[0])

    @classmethod
    def from_array(
        cls, array: NDArray, tile_size: int = DEFAULT_TILE_SIZE, key: tuple | None = None
    ) -> "TiledImage":
        """
        Wrap an in-memory 2D array

        Tiles are read-only views into the array, nothing is cached.
        """
        data = np.asarray(array)
        if data.ndim != 2:
            raise ValueError(f"Expected 2D array, got shape {data.shape}")
        view = data.view()
        view.setflags(write=False)

        def compute_tile(x: int, y: int, w: int, h: int) -> NDArray:
            return view[y : y + h, x : x + w]

        height, width = view.shape
        return cls(width, height, view.dtype, compute_tile, tile_size=tile_size, key=key, cached=False)

    @property
    def arena(self) -> TileArena | None:
        """Tile memo (None if uncached)"""
        return self._arena

    @property
    def width(self) -> int:
        return self.layout.width

    @property
    def height(self) -> int:
        return self.layout.height

    @property
    def shape(self) -> tuple:
        """Array shape (height, width)"""
        return (self.height, self.width)

    def get_tile(self, tile_x: int, tile_y: int) -> NDArray:
        """
        Get (and compute on first access) one tile

        Args:
            tile_x: Tile column index
            tile_y: Tile row index

        Returns:
            Read-only array of the tile window
        """
        x, y, w, h = self.layout.get_tile_window(tile_x, tile_y)
        if self._arena is None:
            return self._compute(x, y, w, h)
        return self._arena.get_or_compute(
            (*self.key, tile_x, tile_y), lambda: self._compute(x, y, w, h)
        )

    def _compute(self, x: int, y: int, w: int, h: int) -> NDArray:
        tile = np.asarray(self._compute_tile(x, y, w, h))
        if tile.shape != (h, w):
            raise ValueError(f"Tile function returned shape {tile.shape}, expected {(h, w)}")
        if tile.dtype != self.dtype:
            tile = tile.astype(self.dtype)
        return tile

    def read(self, x: int, y: int, width: int, height: int) -> NDArray:
        """
        Read a pixel window

        Args:
            x, y: Upper left corner of the window
            width, height: Window size (must lie inside the image)

        Returns:
            Array of shape (height, width)

        Raises:
            ValueError: If the window is empty or exceeds the image
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Empty window {width}x{height}")
        if x < 0 or y < 0 or x + width > self.width or y + height > self.height:
            raise ValueError(
                f"Window ({x}, {y}, {width}, {height}) exceeds image {self.width}x{self.height}"
            )

        tiles = self.layout.get_tiles_in_window(x, y, width, height)
        if len(tiles) == 1:
            tx0, ty0, _, _ = self.layout.get_tile_window(*tiles[0])
            tile = self.get_tile(*tiles[0])
            return tile[y - ty0 : y - ty0 + height, x - tx0 : x - tx0 + width]

        out = np.empty((height, width), dtype=self.dtype)
        for tile_x, tile_y in tiles:
            self._paste(out, x, y, width, height, tile_x, tile_y)
        return out

    def _paste(
        self, out: NDArray, x: int, y: int, width: int, height: int, tile_x: int, tile_y: int
    ) -> None:
        """Copy the overlap of one tile with the window into ``out``"""
        tx, ty, tw, th = self.layout.get_tile_window(tile_x, tile_y)
        x0, y0 = max(x, tx), max(y, ty)
        x1, y1 = min(x + width, tx + tw), min(y + height, ty + th)
        tile = self.get_tile(tile_x, tile_y)
        out[y0 - y : y1 - y, x0 - x : x1 - x] = tile[y0 - ty : y1 - ty, x0 - tx : x1 - tx]

    def to_array(self, max_workers: int | None = None) -> NDArray:
        """
        Materialize the whole image

        Args:
            max_workers: Number of threads reading tiles in parallel
                (None or 1: sequential)

        Returns:
            Writable array of shape (height, width)
        """
        out = np.empty(self.shape, dtype=self.dtype)
        tiles = list(self.layout.iter_tiles())

        if max_workers is None or max_workers <= 1 or len(tiles) == 1:
            for tile_x, tile_y in tiles:
                self._paste(out, 0, 0, self.width, self.height, tile_x, tile_y)
            return out

        logger.debug("Reading %d tiles with %d workers", len(tiles), max_workers)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(self._paste, out, 0, 0, self.width, self.height, tx, ty)
                for tx, ty in tiles
            ]
            for future in futures:
                future.result()
        return out

    def __repr__(self) -> str:
        return f"TiledImage({self.width}x{self.height}, dtype={self.dtype}, key={self.key})"

"""
Tile Arena

Shared memo of computed tiles, addressed by (image id, level, tile x, tile y).

Thread-safety: every tile is computed at most once. The first reader of a
tile computes it; concurrent readers of the same tile wait on a
``concurrent.futures.Future`` until the result (or the failure) is
available. Failures are stored and re-raised to every later reader, tile
computation is never retried.
"""

import logging
import threading
from collections.abc import Callable, Hashable
from concurrent.futures import Future

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

# ---- Process-wide default arena ------------------------------------------
_default_arena: "TileArena | None" = None
_default_arena_lock = threading.Lock()


def get_default_arena() -> "TileArena":
    """Get or create the process-wide :class:`TileArena`."""
    global _default_arena
    if _default_arena is None:
        with _default_arena_lock:
            if _default_arena is None:  # double-checked locking
                _default_arena = TileArena()
    return _default_arena


class TileArena:
    """
    Compute-or-wait tile memo

    Examples:
        >>> arena = TileArena()
        >>> tile = arena.get_or_compute(("band", 0, 0, 0), lambda: np.zeros((2, 2)))
        >>> len(arena)
        1
    """

    def __init__(self):
        self._tiles: dict[Hashable, Future] = {}
        self._lock = threading.Lock()

    def get_or_compute(self, key: Hashable, compute: Callable[[], NDArray]) -> NDArray:
        """
        Return the tile stored under ``key``, computing it on first access

        Args:
            key: Tile address, e.g. (image_id, level, tile_x, tile_y)
            compute: Function producing the tile data

        Returns:
            Read-only tile array

        Raises:
            Exception: Whatever ``compute`` raised (for every reader)
        """
        with self._lock:
            future = self._tiles.get(key)
            owner = future is None
            if owner:
                future = Future()
                future.set_running_or_notify_cancel()
                self._tiles[key] = future

        if not owner:
            return future.result()

        try:
            tile = np.asarray(compute())
            tile.setflags(write=False)
        except BaseException as e:
            logger.debug("Tile %s failed: %s", key, e)
            future.set_exception(e)
            raise
        future.set_result(tile)
        return tile

    def contains(self, key: Hashable) -> bool:
        """Check whether a tile has been requested (computed or in flight)"""
        with self._lock:
            return key in self._tiles

    def evict(self, image_id: str) -> int:
        """
        Drop all tiles of one image

        Args:
            image_id: First component of the tile keys to drop

        Returns:
            Number of dropped tiles
        """
        with self._lock:
            keys = [k for k in self._tiles if isinstance(k, tuple) and k and k[0] == image_id]
            for k in keys:
                del self._tiles[k]
        return len(keys)

    def clear(self) -> None:
        """Drop all tiles"""
        with self._lock:
            self._tiles.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tiles)

"""
Multi-level image pyramid

A multi-level image is an ordered sequence of resolution levels. Level 0 is
the full resolution image, level ``l`` is decimated by ``2**l``. Levels are
created on demand by a level factory and memoised, so every level is built
at most once.
"""

import logging
import threading
import uuid
import weakref
from collections.abc import Callable

import numpy as np
from affine import Affine
from numpy.typing import NDArray

from pixelalign.geometry.affine import EPSILON, compose
from pixelalign.grid.tile_grid import DEFAULT_TILE_SIZE
from pixelalign.image.cache import TileArena
from pixelalign.image.tiled import TiledImage

logger = logging.getLogger(__name__)

# create_image(level, key) -> TiledImage; key is the arena prefix for the level
LevelFactory = Callable[[int, tuple], TiledImage]


def _evict_tiles(arenas: list[TileArena], image_id: str) -> None:
    dropped = sum(arena.evict(image_id) for arena in arenas)
    if dropped:
        logger.debug("Evicted %d tiles of image %s", dropped, image_id)


class MultiLevelModel:
    """
    Geometry of a multi-level image

    Attributes:
        transform: Level-0 image-to-model transform
        width: Level-0 width in pixels
        height: Level-0 height in pixels
        level_count: Number of resolution levels

    Examples:
        >>> model = MultiLevelModel(Affine.scale(10, -10), 1000, 800, level_count=3)
        >>> model.get_scale(2)
        4.0
        >>> model.get_level(3.0)
        1
        >>> model.get_size(2)
        (250, 200)
    """

    def __init__(
        self,
        transform: Affine,
        width: int,
        height: int,
        level_count: int | None = None,
        tile_size: int = DEFAULT_TILE_SIZE,
    ):
        if width <= 0 or height <= 0:
            raise ValueError(f"Image size must be positive, got {width}x{height}")
        self.transform = transform
        self.width = width
        self.height = height
        if level_count is None:
            level_count = self.default_level_count(width, height, tile_size)
        if level_count < 1:
            raise ValueError(f"Level count must be at least 1, got {level_count}")
        self.level_count = level_count

    @staticmethod
    def default_level_count(width: int, height: int, tile_size: int = DEFAULT_TILE_SIZE) -> int:
        """Add levels while the next level still spans at least one tile"""
        count = 1
        while max(width, height) // (2**count) >= tile_size:
            count += 1
        return count

    def get_scale(self, level: int) -> float:
        """Scale factor of a level (level 0 = 1.0)"""
        return float(2**level)

    def get_level(self, scale: float) -> int:
        """
        Coarsest level whose scale does not exceed ``scale``

        Args:
            scale: Requested scale factor

        Returns:
            Level index in [0, level_count - 1]
        """
        level = 0
        while level + 1 < self.level_count and self.get_scale(level + 1) <= scale + EPSILON:
            level += 1
        return level

    def get_transform(self, level: int) -> Affine:
        """Image-to-model transform of a level"""
        scale = self.get_scale(level)
        return compose(self.transform, Affine.scale(scale))

    def get_size(self, level: int) -> tuple[int, int]:
        """(width, height) of a level"""
        factor = 2**level
        return (max(1, self.width // factor), max(1, self.height // factor))

    def __repr__(self) -> str:
        return (
            f"MultiLevelModel({self.width}x{self.height}, levels={self.level_count}, "
            f"transform={tuple(self.transform)[:6]})"
        )


class MultiLevelImage:
    """
    Lazily built resolution pyramid of a single-band image

    Attributes:
        model: Geometry of the pyramid
        id: Unique image id (first component of tile arena keys)

    Examples:
        >>> data = np.arange(16, dtype=np.float32).reshape(4, 4)
        >>> image = MultiLevelImage.from_array(data, Affine.identity(), level_count=2)
        >>> image.get_image(1).to_array()
        array([[ 0.,  2.],
               [ 8., 10.]], dtype=float32)
    """

    def __init__(self, model: MultiLevelModel, create_image: LevelFactory, image_id: str | None = None):
        """
        Args:
            model: Geometry of the pyramid
            create_image: Level factory, called at most once per level
            image_id: Image id (default: fresh unique id)
        """
        self.model = model
        self.id = image_id or uuid.uuid4().hex
        self._create_image = create_image
        self._levels: dict[int, TiledImage] = {}
        self._lock = threading.Lock()
        # Arenas holding tiles of this image, emptied when the owner is collected
        self._arenas: list[TileArena] = []
        if image_id is None:
            weakref.finalize(self, _evict_tiles, self._arenas, self.id)

    @classmethod
    def from_array(
        cls,
        array: NDArray,
        transform: Affine,
        level_count: int | None = None,
        tile_size: int = DEFAULT_TILE_SIZE,
    ) -> "MultiLevelImage":
        """
        Pyramid over an in-memory 2D array

        Level ``l`` takes every ``2**l``-th pixel of the array.

        Args:
            array: Level-0 pixels, shape (height, width)
            transform: Level-0 image-to-model transform
            level_count: Number of levels (default: derived from size)
            tile_size: Tile edge length

        Returns:
            MultiLevelImage
        """
        data = np.asarray(array)
        if data.ndim != 2:
            raise ValueError(f"Expected 2D array, got shape {data.shape}")
        data = data.view()
        data.setflags(write=False)
        height, width = data.shape
        model = MultiLevelModel(transform, width, height, level_count=level_count, tile_size=tile_size)

        def create_image(level: int, key: tuple) -> TiledImage:
            if level == 0:
                return TiledImage.from_array(data, tile_size=tile_size, key=key)
            step = 2**level
            level_width, level_height = model.get_size(level)

            def compute_tile(x: int, y: int, w: int, h: int) -> NDArray:
                return data[y * step : (y + h) * step : step, x * step : (x + w) * step : step]

            return TiledImage(
                level_width,
                level_height,
                data.dtype,
                compute_tile,
                tile_size=tile_size,
                key=key,
                cached=False,
            )

        return cls(model, create_image)

    def get_image(self, level: int) -> TiledImage:
        """
        Get the image of one level, creating it on first access

        Args:
            level: Level index in [0, level_count - 1]

        Returns:
            TiledImage of the level
        """
        if not 0 <= level < self.model.level_count:
            raise IndexError(f"Level {level} outside [0, {self.model.level_count - 1}]")
        image = self._levels.get(level)
        if image is None:
            with self._lock:
                image = self._levels.get(level)
                if image is None:
                    logger.debug("Creating level %d of image %s", level, self.id)
                    image = self._create_image(level, (self.id, level))
                    if image.arena is not None and not any(a is image.arena for a in self._arenas):
                        self._arenas.append(image.arena)
                    self._levels[level] = image
        return image

    def with_model(self, model: MultiLevelModel) -> "MultiLevelImage":
        """
        Attach the same level images to another model

        Used to rewrite the image-to-model transform without touching pixels.
        If ``model`` has more levels than this image, the image's level count
        is kept together with the model's level-0 transform.

        Returns:
            New MultiLevelImage sharing this image's levels and tiles
        """
        actual = model
        if model.level_count > self.model.level_count:
            actual = MultiLevelModel(
                model.transform, self.width, self.height, level_count=self.model.level_count
            )
        return MultiLevelImage(actual, lambda level, key: self.get_image(level), image_id=self.id)

    @property
    def width(self) -> int:
        return self.model.width

    @property
    def height(self) -> int:
        return self.model.height

    @property
    def dtype(self) -> np.dtype:
        return self.get_image(0).dtype

    def to_array(self, level: int = 0, max_workers: int | None = None) -> NDArray:
        """Materialize one level as a NumPy array"""
        return self.get_image(level).to_array(max_workers=max_workers)

    def __repr__(self) -> str:
        return f"MultiLevelImage(id={self.id}, {self.model!r})"

"""
Interpolation engine

Upsamples a source image onto a finer target grid.

For each target pixel, the pixel centre is mapped through the target
image-to-model transform into model space and then through the inverse
source transform into source pixel space, where it is sampled with
nearest-neighbour or bilinear interpolation. Target pixels falling outside
the source image become no-data.
"""

import logging

import numpy as np
from affine import Affine
from numpy.typing import NDArray

from pixelalign.core.exceptions import InvalidInterpolationMethodError
from pixelalign.geometry.affine import EPSILON, compose, invert
from pixelalign.grid.tile_grid import DEFAULT_TILE_SIZE
from pixelalign.image.pyramid import MultiLevelImage, MultiLevelModel
from pixelalign.image.tiled import TiledImage
from pixelalign.resample.pixels import fill_value, read_covering, to_dtype, valid_mask
from pixelalign.resample.types import InterpolationType

logger = logging.getLogger(__name__)


def check_interpolation_type(policy) -> InterpolationType:
    """Raise InvalidInterpolationMethodError unless ``policy`` is a known method"""
    if not isinstance(policy, InterpolationType):
        raise InvalidInterpolationMethodError(f"Invalid upsampling method: {policy!r}")
    return policy


def interpolate(
    source_image: TiledImage,
    source_transform: Affine,
    target_transform: Affine,
    width: int,
    height: int,
    no_data_value: float | None,
    policy: InterpolationType,
    tile_size: int = DEFAULT_TILE_SIZE,
    key: tuple | None = None,
) -> TiledImage:
    """
    Create a lazily interpolated image

    Args:
        source_image: Image to sample from
        source_transform: Image-to-model transform of the source
        target_transform: Image-to-model transform of the target
        width: Target width in pixels
        height: Target height in pixels
        no_data_value: Source/target no-data value (None: NaN for floats)
        policy: Interpolation method
        tile_size: Tile edge length of the target image
        key: Tile arena key prefix of the target image

    Returns:
        TiledImage of size width x height with the source data type

    Raises:
        InvalidInterpolationMethodError: If ``policy`` is unset or unknown
        NonInvertibleTransformError: If ``source_transform`` is singular

    Examples:
        >>> source = TiledImage.from_array(np.array([[1.0, 2.0], [3.0, 4.0]]))
        >>> target = interpolate(source, Affine.scale(2), Affine.identity(), 4, 4,
        ...                      None, InterpolationType.NEAREST)
        >>> target.to_array()[0]
        array([1., 1., 2., 2.])
    """
    policy = check_interpolation_type(policy)
    pixel_map = compose(invert(source_transform), target_transform)
    dtype = source_image.dtype
    fill = fill_value(dtype, no_data_value)

    if policy is InterpolationType.NEAREST:

        def compute_tile(x: int, y: int, w: int, h: int) -> NDArray:
            return _nearest(source_image, pixel_map, x, y, w, h, fill)

    else:

        def compute_tile(x: int, y: int, w: int, h: int) -> NDArray:
            return _bilinear(source_image, pixel_map, x, y, w, h, no_data_value, fill)

    return TiledImage(width, height, dtype, compute_tile, tile_size=tile_size, key=key)


def create_interpolated_image(
    source: MultiLevelImage,
    target_model: MultiLevelModel,
    no_data_value: float | None,
    policy: InterpolationType,
    name: str | None = None,
) -> MultiLevelImage:
    """
    Multi-level variant of :func:`interpolate`

    Target level ``l`` samples the coarsest source level whose scale does not
    exceed the scale of ``l``.

    Args:
        source: Source pyramid
        target_model: Geometry of the target pyramid
        no_data_value: No-data value
        policy: Interpolation method
        name: Band name (error context)

    Returns:
        Target pyramid
    """
    policy = check_interpolation_type(policy)
    # Fail up-front rather than on first tile read
    invert(source.model.transform, name=name)
    invert(target_model.transform, name=name)

    def create_image(level: int, key: tuple) -> TiledImage:
        source_level = source.model.get_level(target_model.get_scale(level))
        width, height = target_model.get_size(level)
        logger.debug(
            "Interpolating %s level %d from source level %d (%dx%d)",
            name, level, source_level, width, height,
        )
        return interpolate(
            source.get_image(source_level),
            source.model.get_transform(source_level),
            target_model.get_transform(level),
            width,
            height,
            no_data_value,
            policy,
            key=key,
        )

    return MultiLevelImage(target_model, create_image)


def _pixel_centres(pixel_map: Affine, x: int, y: int, w: int, h: int) -> tuple[NDArray, NDArray]:
    """Source pixel coordinates of the target pixel centres of a window"""
    cols, rows = np.meshgrid(np.arange(x, x + w) + 0.5, np.arange(y, y + h) + 0.5)
    sx = pixel_map.a * cols + pixel_map.b * rows + pixel_map.c
    sy = pixel_map.d * cols + pixel_map.e * rows + pixel_map.f
    return sx, sy


def _inside(sx: NDArray, sy: NDArray, width: int, height: int) -> NDArray:
    return (sx >= 0) & (sx < width) & (sy >= 0) & (sy < height)


def _nearest(
    source: TiledImage, pixel_map: Affine, x: int, y: int, w: int, h: int, fill
) -> NDArray:
    sx, sy = _pixel_centres(pixel_map, x, y, w, h)
    inside = _inside(sx, sy, source.width, source.height)
    out = np.full((h, w), fill, dtype=source.dtype)
    if not inside.any():
        return out

    ix = np.floor(sx[inside]).astype(np.int64)
    iy = np.floor(sy[inside]).astype(np.int64)
    window, x0, y0 = read_covering(source, ix, iy)
    out[inside] = window[iy - y0, ix - x0]
    return out


def _split(coord: NDArray, size: int) -> tuple[NDArray, NDArray, NDArray]:
    """Lower/upper neighbour indices and upper weight along one axis"""
    u = coord - 0.5
    i0 = np.floor(u)
    frac = u - i0
    # Snap weights so aligned grids do not pick up a zero-weight neighbour
    frac = np.where(frac <= EPSILON, 0.0, frac)
    upper = frac >= 1.0 - EPSILON
    i0 = np.where(upper, i0 + 1, i0).astype(np.int64)
    frac = np.where(upper, 0.0, frac)
    lo = np.clip(i0, 0, size - 1)
    hi = np.clip(i0 + 1, 0, size - 1)
    return lo, hi, frac


def _bilinear(
    source: TiledImage,
    pixel_map: Affine,
    x: int,
    y: int,
    w: int,
    h: int,
    no_data_value: float | None,
    fill,
) -> NDArray:
    sx, sy = _pixel_centres(pixel_map, x, y, w, h)
    inside = _inside(sx, sy, source.width, source.height)
    out = np.full((h, w), fill, dtype=source.dtype)
    if not inside.any():
        return out

    x_lo, x_hi, fx = _split(sx[inside], source.width)
    y_lo, y_hi, fy = _split(sy[inside], source.height)
    window, x0, y0 = read_covering(
        source, np.concatenate([x_lo, x_hi]), np.concatenate([y_lo, y_hi])
    )

    result = np.zeros(fx.shape, dtype=np.float64)
    invalid = np.zeros(fx.shape, dtype=bool)
    for cols, rows, weight in (
        (x_lo, y_lo, (1.0 - fx) * (1.0 - fy)),
        (x_hi, y_lo, fx * (1.0 - fy)),
        (x_lo, y_hi, (1.0 - fx) * fy),
        (x_hi, y_hi, fx * fy),
    ):
        values = window[rows - y0, cols - x0]
        valid = valid_mask(values, no_data_value)
        # Only neighbours that actually contribute can spoil the result
        invalid |= ~valid & (weight > 0)
        result += np.where(valid, values.astype(np.float64), 0.0) * weight

    interpolated = np.full(fx.shape, fill, dtype=source.dtype)
    good = ~invalid
    interpolated[good] = to_dtype(result[good], source.dtype)
    out[inside] = interpolated
    return out

"""
Aggregation engine

Downsamples a source image onto a coarser target grid.

Each target pixel covers a rectangle of source pixels (computed through the
inverse source transform). Source pixels on the border of that rectangle
may be covered only partially; their coverage fraction is used as weight by
the Mean method. Samples equal to the no-data value (or NaN) are excluded
from every reduction; a window without any valid sample yields no-data.

Flag methods treat samples as bit masks:

- FlagAnd / FlagOr: bitwise AND / OR of all valid samples
- FlagMedianAnd: a bit is set if it is set in more than half of the valid
  samples (a tie clears the bit)
- FlagMedianOr: a bit is set if it is set in at least half of the valid
  samples (a tie sets the bit)
"""

import logging
import warnings

import numpy as np
from affine import Affine
from numpy.typing import NDArray

from pixelalign.core.exceptions import InvalidAggregationMethodError, ResamplingError
from pixelalign.geometry.affine import compose, invert, is_axis_aligned, snap
from pixelalign.grid.tile_grid import DEFAULT_TILE_SIZE
from pixelalign.image.pyramid import MultiLevelImage, MultiLevelModel
from pixelalign.image.tiled import TiledImage
from pixelalign.resample.pixels import fill_value, read_covering, to_dtype, valid_mask
from pixelalign.resample.types import AggregationType

logger = logging.getLogger(__name__)


def check_aggregation_type(policy) -> AggregationType:
    """Raise InvalidAggregationMethodError unless ``policy`` is a known method"""
    if not isinstance(policy, AggregationType):
        raise InvalidAggregationMethodError(f"Invalid downsampling method: {policy!r}")
    return policy


def aggregate(
    source_image: TiledImage,
    source_transform: Affine,
    target_transform: Affine,
    width: int,
    height: int,
    no_data_value: float | None,
    policy: AggregationType,
    tile_size: int = DEFAULT_TILE_SIZE,
    key: tuple | None = None,
) -> TiledImage:
    """
    Create a lazily aggregated image

    Args:
        source_image: Image to aggregate
        source_transform: Image-to-model transform of the source
        target_transform: Image-to-model transform of the target
        width: Target width in pixels
        height: Target height in pixels
        no_data_value: Source/target no-data value (None: NaN for floats)
        policy: Aggregation method
        tile_size: Tile edge length of the target image
        key: Tile arena key prefix of the target image

    Returns:
        TiledImage of size width x height with the source data type

    Raises:
        InvalidAggregationMethodError: If ``policy`` is unset or unknown
        NonInvertibleTransformError: If ``source_transform`` is singular
        ResamplingError: If source and target grids are rotated/sheared
            relative to each other

    Examples:
        >>> source = TiledImage.from_array(np.array([[1.0, 2.0], [3.0, 6.0]]))
        >>> target = aggregate(source, Affine.identity(), Affine.scale(2), 1, 1,
        ...                    None, AggregationType.MEAN)
        >>> target.to_array()
        array([[3.]])
    """
    policy = check_aggregation_type(policy)
    pixel_map = compose(invert(source_transform), target_transform)
    if not is_axis_aligned(pixel_map):
        raise ResamplingError(
            "Aggregation requires source and target grids without relative rotation or shear"
        )
    dtype = source_image.dtype
    fill = fill_value(dtype, no_data_value)

    def compute_tile(x: int, y: int, w: int, h: int) -> NDArray:
        cols, col_weights = _axis_windows(pixel_map.a, pixel_map.c, x, w, source_image.width)
        rows, row_weights = _axis_windows(pixel_map.e, pixel_map.f, y, h, source_image.height)
        return _aggregate_window(
            source_image, cols, col_weights, rows, row_weights, no_data_value, fill, policy
        )

    return TiledImage(width, height, dtype, compute_tile, tile_size=tile_size, key=key)


def create_aggregated_image(
    source: MultiLevelImage,
    target_model: MultiLevelModel,
    no_data_value: float | None,
    policy: AggregationType,
    name: str | None = None,
) -> MultiLevelImage:
    """
    Multi-level variant of :func:`aggregate`

    Target level ``l`` aggregates the coarsest source level whose scale does
    not exceed the scale of ``l``.

    Args:
        source: Source pyramid
        target_model: Geometry of the target pyramid
        no_data_value: No-data value
        policy: Aggregation method
        name: Band name (error context)

    Returns:
        Target pyramid
    """
    policy = check_aggregation_type(policy)
    source_to_target = compose(invert(source.model.transform, name=name), target_model.transform)
    if not is_axis_aligned(source_to_target):
        raise ResamplingError(
            f"Cannot aggregate '{name}': grids are rotated or sheared relative to each other",
            node_name=name,
        )
    invert(target_model.transform, name=name)

    def create_image(level: int, key: tuple) -> TiledImage:
        source_level = source.model.get_level(target_model.get_scale(level))
        width, height = target_model.get_size(level)
        logger.debug(
            "Aggregating %s level %d from source level %d (%dx%d, %s)",
            name, level, source_level, width, height, policy.value,
        )
        return aggregate(
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


def _axis_windows(
    scale: float, offset: float, start: int, count: int, size: int
) -> tuple[NDArray, NDArray]:
    """
    Source pixel windows covered by a run of target pixels along one axis

    Args:
        scale, offset: Target-to-source pixel mapping along the axis
        start, count: Target pixel run
        size: Source image size along the axis

    Returns:
        (indices, weights), both of shape (count, k): source pixel indices
        (clipped into the image) and coverage weights (0 where the window
        of a target pixel is shorter than k)
    """
    t = np.arange(start, start + count, dtype=np.float64)
    a = snap(scale * t + offset)
    b = snap(scale * (t + 1) + offset)
    lo = np.clip(np.minimum(a, b), 0, size)
    hi = np.clip(np.maximum(a, b), 0, size)

    first = np.floor(lo).astype(np.int64)
    stop = np.ceil(hi).astype(np.int64)
    n = np.maximum(stop - first, 0)
    k = max(int(n.max()), 1)

    m = np.arange(k)
    indices = np.clip(first[:, None] + m[None, :], 0, size - 1)
    # Coverage of [i, i+1) by [lo, hi)
    weights = np.minimum(indices + 1, hi[:, None]) - np.maximum(indices, lo[:, None])
    weights = np.where(m[None, :] < n[:, None], np.clip(weights, 0.0, 1.0), 0.0)
    return indices, weights


def _aggregate_window(
    source: TiledImage,
    cols: NDArray,
    col_weights: NDArray,
    rows: NDArray,
    row_weights: NDArray,
    no_data_value: float | None,
    fill,
    policy: AggregationType,
) -> NDArray:
    h, w = rows.shape[0], cols.shape[0]
    out = np.full((h, w), fill, dtype=source.dtype)
    col_used = col_weights > 0
    row_used = row_weights > 0
    if not col_used.any() or not row_used.any():
        return out

    window, x0, y0 = read_covering(source, cols[col_used], rows[row_used])
    # Rows and columns outside the covering window carry zero weight
    col_index = np.clip(cols - x0, 0, window.shape[1] - 1)
    row_index = np.clip(rows - y0, 0, window.shape[0] - 1)

    # (h, w, ky, kx) -> (h, w, ky * kx), row-major within each window
    values = window[row_index[:, None, :, None], col_index[None, :, None, :]]
    weights = row_weights[:, None, :, None] * col_weights[None, :, None, :]
    values = values.reshape(h, w, -1)
    weights = weights.reshape(h, w, -1)

    valid = (weights > 0) & valid_mask(values, no_data_value)
    count = valid.sum(axis=-1)
    has_data = count > 0
    if not has_data.any():
        return out

    result = _REDUCERS[policy](values, weights, valid, count)
    out[has_data] = result[has_data]
    return out


def _first(values, weights, valid, count):
    position = np.argmax(valid, axis=-1)
    return np.take_along_axis(values, position[..., None], axis=-1)[..., 0]


def _extreme(values, valid, reducer, identity_attr):
    if np.issubdtype(values.dtype, np.integer):
        identity = getattr(np.iinfo(values.dtype), identity_attr)
    else:
        identity = np.inf if identity_attr == "max" else -np.inf
    return reducer(np.where(valid, values, identity), axis=-1).astype(values.dtype)


def _min(values, weights, valid, count):
    return _extreme(values, valid, np.min, "max")


def _max(values, weights, valid, count):
    return _extreme(values, valid, np.max, "min")


def _mean(values, weights, valid, count):
    w = np.where(valid, weights, 0.0)
    total = w.sum(axis=-1)
    weighted = (np.where(valid, values.astype(np.float64), 0.0) * w).sum(axis=-1)
    with np.errstate(invalid="ignore", divide="ignore"):
        mean = weighted / total
    return to_dtype(np.where(total > 0, mean, 0.0), values.dtype)


def _median(values, weights, valid, count):
    samples = np.where(valid, values.astype(np.float64), np.nan)
    with warnings.catch_warnings():
        # All-NaN windows are replaced by no-data afterwards
        warnings.simplefilter("ignore", RuntimeWarning)
        median = np.nanmedian(samples, axis=-1)
    return to_dtype(np.nan_to_num(median), values.dtype)


def _as_bits(values: NDArray) -> NDArray:
    """Reinterpret samples as unsigned 64-bit masks"""
    if np.issubdtype(values.dtype, np.unsignedinteger):
        return values.astype(np.uint64)
    if np.issubdtype(values.dtype, np.floating):
        values = np.nan_to_num(values)
    return values.astype(np.int64).view(np.uint64)


def _from_bits(bits: NDArray, dtype) -> NDArray:
    if np.issubdtype(dtype, np.integer):
        return bits.astype(dtype)
    return bits.view(np.int64).astype(dtype)


def _flag_and(values, weights, valid, count):
    bits = np.where(valid, _as_bits(values), np.uint64(0xFFFFFFFFFFFFFFFF))
    return _from_bits(np.bitwise_and.reduce(bits, axis=-1), values.dtype)


def _flag_or(values, weights, valid, count):
    bits = np.where(valid, _as_bits(values), np.uint64(0))
    return _from_bits(np.bitwise_or.reduce(bits, axis=-1), values.dtype)


def _flag_vote(values, valid, count, tie_sets_bit: bool):
    bits = _as_bits(values)
    result = np.zeros(count.shape, dtype=np.uint64)
    for bit in range(values.dtype.itemsize * 8):
        mask = np.uint64(1) << np.uint64(bit)
        votes = (((bits & mask) != 0) & valid).sum(axis=-1)
        if tie_sets_bit:
            selected = 2 * votes >= count
        else:
            selected = 2 * votes > count
        result |= np.where(selected & (votes > 0), mask, np.uint64(0))
    return _from_bits(result, values.dtype)


def _flag_median_and(values, weights, valid, count):
    return _flag_vote(values, valid, count, tie_sets_bit=False)


def _flag_median_or(values, weights, valid, count):
    return _flag_vote(values, valid, count, tie_sets_bit=True)


_REDUCERS = {
    AggregationType.FIRST: _first,
    AggregationType.MIN: _min,
    AggregationType.MAX: _max,
    AggregationType.MEAN: _mean,
    AggregationType.MEDIAN: _median,
    AggregationType.FLAG_AND: _flag_and,
    AggregationType.FLAG_OR: _flag_or,
    AggregationType.FLAG_MEDIAN_AND: _flag_median_and,
    AggregationType.FLAG_MEDIAN_OR: _flag_median_or,
}

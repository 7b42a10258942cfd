"""
Pixel helpers shared by the interpolation and aggregation engines
"""

import numpy as np
from numpy.typing import DTypeLike, NDArray

from pixelalign.image.tiled import TiledImage


def fill_value(dtype: DTypeLike, no_data_value: float | None):
    """
    Value written for pixels without valid input

    The no-data value if one is set, otherwise NaN for float and 0 for
    integer images.
    """
    dtype = np.dtype(dtype)
    if no_data_value is not None:
        return dtype.type(no_data_value)
    if np.issubdtype(dtype, np.floating):
        return dtype.type(np.nan)
    return dtype.type(0)


def valid_mask(values: NDArray, no_data_value: float | None) -> NDArray:
    """True where a sample is a valid measurement (not no-data, not NaN)"""
    if np.issubdtype(values.dtype, np.floating):
        valid = ~np.isnan(values)
        if no_data_value is not None and not np.isnan(no_data_value):
            valid &= values != no_data_value
        return valid
    if no_data_value is None:
        return np.ones(values.shape, dtype=bool)
    return values != no_data_value


def to_dtype(values: NDArray, dtype: DTypeLike) -> NDArray:
    """
    Convert computed float values to the image data type

    Integer types are rounded to nearest and clipped to the type range.
    """
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        values = np.clip(np.rint(values), info.min, info.max)
    return values.astype(dtype)


def read_covering(
    image: TiledImage, cols: NDArray, rows: NDArray
) -> tuple[NDArray, int, int]:
    """
    Read the smallest window containing all given pixel indices

    Args:
        image: Source image
        cols: Column indices (inside the image)
        rows: Row indices (inside the image)

    Returns:
        (window data, window x, window y)
    """
    x0, x1 = int(cols.min()), int(cols.max())
    y0, y1 = int(rows.min()), int(rows.max())
    return image.read(x0, y0, x1 - x0 + 1, y1 - y0 + 1), x0, y0

"""
Tie-point grid resampling

Tie-point grids are not resampled pixel by pixel. Only the lattice
parameters (offset and sub-sampling) are re-expressed in the pixel
coordinates of the reference band; the tie-point values stay the same.
"""

import logging

from pixelalign.core.exceptions import ResamplingError
from pixelalign.core.product import RasterBand, TiePointGrid
from pixelalign.geometry.affine import is_axis_aligned, is_identity, source_to_reference

logger = logging.getLogger(__name__)


def resample_tie_point_grid(grid: TiePointGrid, reference: RasterBand) -> TiePointGrid:
    """
    Re-express a tie-point grid in the pixel grid of the reference band

    Args:
        grid: Source tie-point grid
        reference: Reference band

    Returns:
        New tie-point grid (not attached to any product). An unchanged copy
        if the grid's pixel grid already coincides with the reference's.

    Raises:
        NonInvertibleTransformError: If the reference transform is singular
        ResamplingError: If the grids are rotated/sheared relative to each
            other

    Examples:
        >>> # 20 m grid, 10 m reference: offsets and sub-sampling double
        >>> grid = TiePointGrid("sun_zenith", 3, 3, 0.5, 0.5, 10, 10, np.zeros(9),
        ...                     transform=Affine.scale(20, -20))
        >>> reference = RasterBand("B02", 42, 42, transform=Affine.scale(10, -10))
        >>> resampled = resample_tie_point_grid(grid, reference)
        >>> resampled.offset_x, resampled.sub_sampling_x
        (1.0, 20.0)
    """
    composed = source_to_reference(grid.transform, reference.transform, name=grid.name)

    if is_identity(composed):
        logger.debug("Tie-point grid %s already matches %s", grid.name, reference.name)
        return _copy(grid, grid.offset_x, grid.offset_y, grid.sub_sampling_x, grid.sub_sampling_y, reference)

    if not is_axis_aligned(composed):
        raise ResamplingError(
            f"Cannot resample tie-point grid '{grid.name}': grid is rotated or sheared "
            f"relative to reference band '{reference.name}'",
            node_name=grid.name,
        )
    if composed.a <= 0 or composed.e <= 0:
        raise ResamplingError(
            f"Cannot resample tie-point grid '{grid.name}': axis orientation differs "
            f"from reference band '{reference.name}'",
            node_name=grid.name,
        )

    sub_sampling_x = grid.sub_sampling_x * composed.a
    sub_sampling_y = grid.sub_sampling_y * composed.e
    offset_x = composed.a * grid.offset_x + composed.c
    offset_y = composed.e * grid.offset_y + composed.f
    logger.debug(
        "Tie-point grid %s: offset (%g, %g) -> (%g, %g), sub-sampling (%g, %g) -> (%g, %g)",
        grid.name, grid.offset_x, grid.offset_y, offset_x, offset_y,
        grid.sub_sampling_x, grid.sub_sampling_y, sub_sampling_x, sub_sampling_y,
    )
    return _copy(grid, offset_x, offset_y, sub_sampling_x, sub_sampling_y, reference)


def _copy(grid, offset_x, offset_y, sub_sampling_x, sub_sampling_y, reference) -> TiePointGrid:
    return TiePointGrid(
        name=grid.name,
        grid_width=grid.grid_width,
        grid_height=grid.grid_height,
        offset_x=offset_x,
        offset_y=offset_y,
        sub_sampling_x=sub_sampling_x,
        sub_sampling_y=sub_sampling_y,
        tie_points=grid.tie_points.copy(),
        raster_width=reference.width,
        raster_height=reference.height,
        transform=reference.transform,
        scene_transform=grid.scene_transform,
        unit=grid.unit,
        description=grid.description,
    )

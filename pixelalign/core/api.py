"""
PixelAlign Public API Functions

Top-level functions for resampling multi-size products.
"""

import logging

from pixelalign.core.config import ResamplingConfig
from pixelalign.core.product import Product
from pixelalign.resample import router

logger = logging.getLogger(__name__)


def resample(
    product: Product,
    reference_band_name: str,
    interpolation: str = "NearestNeighbour",
    aggregation: str = "First",
    flag_aggregation: str = "First",
) -> Product:
    """
    Resample all bands of a product to the size of one band

    Args:
        product: Source product (not modified)
        reference_band_name: Band whose size and resolution the others take
        interpolation: Upsampling method ("NearestNeighbour", "Bilinear")
        aggregation: Downsampling method for non-flag bands
            ("First", "Min", "Max", "Mean", "Median")
        flag_aggregation: Downsampling method for flag bands
            ("First", "FlagAnd", "FlagOr", "FlagMedianAnd", "FlagMedianOr")

    Returns:
        Single-size product named ``<name>_resampled``, or ``product`` itself
        if it is not multi-size. Pixels are computed lazily on read.

    Raises:
        ResamplingError: If the product cannot be resampled (see
            :class:`~pixelalign.resample.router.ResampleRouter`)

    Examples:
        >>> import pixelalign as pa
        >>>
        >>> product = pa.Sentinel2L2A().create_product(arrays, origin=(300000, 5000000),
        ...                                           crs="EPSG:32633")
        >>> resampled = pa.resample(product, "B02", interpolation="Bilinear",
        ...                         aggregation="Mean", flag_aggregation="FlagOr")
        >>>
        >>> # All bands are now 10 m
        >>> ds = resampled.to_xarray()
        >>> ndvi = ds.bandmath("(B08 - B04) / (B08 + B04)")
    """
    config = ResamplingConfig(
        reference_band_name=reference_band_name,
        interpolation_method=interpolation,
        aggregation_method=aggregation,
        flag_aggregation_method=flag_aggregation,
    )
    return router.ResampleRouter(config).resample(product)


def can_be_applied(product: Product) -> bool:
    """
    Check whether a product can be resampled

    A product qualifies if all bands and tie-point grids map model
    coordinates 1:1 to scene coordinates.

    Examples:
        >>> pa.can_be_applied(product)
        True
    """
    return router.can_be_applied(product)

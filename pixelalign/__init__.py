"""
PixelAlign - Resample multi-size raster products to a single resolution

Brings every band of a product whose bands come in different resolutions
(e.g. Sentinel-2 at 10/20/60 m) onto the pixel grid of one reference band,
lazily and tile by tile.

Quick Start:
    >>> import pixelalign as pa
    >>>
    >>> # Assemble a multi-size product from GeoTIFF files
    >>> product = pa.read_product({"B02": "B02_10m.tif", "B05": "B05_20m.tif",
    ...                            "qa60": "QA60_60m.tif"})
    >>>
    >>> # Resample all bands to the 10 m grid of B02
    >>> resampled = pa.resample(product, "B02", interpolation="Bilinear",
    ...                         aggregation="Mean", flag_aggregation="FlagOr")
    >>>
    >>> # Analyse as xarray Dataset
    >>> ds = resampled.to_xarray()
    >>> ratio = ds.bandmath("B05 / B02")
"""

from pixelalign.core import (
    FlagCoding,
    GeoCoding,
    IndexCoding,
    InvalidAggregationMethodError,
    InvalidInterpolationMethodError,
    Mask,
    MissingReferenceBandError,
    NonIdentitySceneTransformError,
    NonInvertibleTransformError,
    # Exceptions
    PixelAlignError,
    # Classes
    Product,
    RasterBand,
    ResamplingConfig,
    ResamplingError,
    TiePointGrid,
    ValidationError,
    # Functions
    can_be_applied,
    evaluate_expression,
    resample,
)
from pixelalign.image import MultiLevelImage, MultiLevelModel, TiledImage
from pixelalign.products import Sentinel2L2A
from pixelalign.resample import (
    AggregationType,
    InterpolationType,
    ResampleRouter,
    ResampleState,
)

# Register xarray BandMath accessor (ds.bandmath("..."))
import pixelalign.core.bandmath

__version__ = "0.1.0"

__all__ = [
    "AggregationType",
    "FlagCoding",
    "GeoCoding",
    "IndexCoding",
    "InterpolationType",
    "InvalidAggregationMethodError",
    "InvalidInterpolationMethodError",
    "Mask",
    "MissingReferenceBandError",
    "MultiLevelImage",
    "MultiLevelModel",
    "NonIdentitySceneTransformError",
    "NonInvertibleTransformError",
    "PixelAlignError",
    "Product",
    "RasterBand",
    "ResampleRouter",
    "ResampleState",
    "ResamplingConfig",
    "ResamplingError",
    "Sentinel2L2A",
    "TiePointGrid",
    "TiledImage",
    "ValidationError",
    "__version__",
    "can_be_applied",
    "evaluate_expression",
    "read_band",
    "read_product",
    "resample",
    "write_band",
]


# Lazy imports for GeoTIFF I/O (avoids importing rasterio at startup)
def __getattr__(name):
    if name == "read_band":
        from pixelalign.io.geotiff import read_band

        return read_band
    elif name == "read_product":
        from pixelalign.io.geotiff import read_product

        return read_product
    elif name == "write_band":
        from pixelalign.io.geotiff import write_band

        return write_band
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

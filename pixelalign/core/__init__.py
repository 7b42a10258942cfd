"""
PixelAlign Core Module

Product data model, configuration, band maths, exceptions and the public
API.
"""

from pixelalign.core.exceptions import (
    InvalidAggregationMethodError,
    InvalidInterpolationMethodError,
    MissingReferenceBandError,
    NonIdentitySceneTransformError,
    NonInvertibleTransformError,
    PixelAlignError,
    ResamplingError,
    ValidationError,
)
from pixelalign.core.product import (
    FlagCoding,
    GeoCoding,
    IndexCoding,
    Mask,
    Product,
    RasterBand,
    TiePointGrid,
)
from pixelalign.core.bandmath import evaluate_expression
from pixelalign.core.config import ResamplingConfig
from pixelalign.core.api import can_be_applied, resample

__all__ = [
    # Data model
    "FlagCoding",
    "GeoCoding",
    "IndexCoding",
    "Mask",
    "Product",
    "RasterBand",
    "TiePointGrid",
    # Configuration
    "ResamplingConfig",
    # Functions
    "can_be_applied",
    "evaluate_expression",
    "resample",
    # Exceptions
    "PixelAlignError",
    "ValidationError",
    "ResamplingError",
    "NonIdentitySceneTransformError",
    "MissingReferenceBandError",
    "NonInvertibleTransformError",
    "InvalidInterpolationMethodError",
    "InvalidAggregationMethodError",
]

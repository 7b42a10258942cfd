"""
PixelAlign Resample Module

Interpolation and aggregation engines, tie-point grid re-parametrization,
and the router that resamples whole products.
"""

from pixelalign.resample.aggregation import aggregate, create_aggregated_image
from pixelalign.resample.interpolation import create_interpolated_image, interpolate
from pixelalign.resample.router import ResampleRouter, ResampleState, select_state
from pixelalign.resample.tiepoint import resample_tie_point_grid
from pixelalign.resample.types import (
    FLAG_AGGREGATIONS,
    NUMERIC_AGGREGATIONS,
    AggregationType,
    InterpolationType,
)

__all__ = [
    "FLAG_AGGREGATIONS",
    "NUMERIC_AGGREGATIONS",
    "AggregationType",
    "InterpolationType",
    "ResampleRouter",
    "ResampleState",
    "aggregate",
    "create_aggregated_image",
    "create_interpolated_image",
    "interpolate",
    "resample_tie_point_grid",
    "select_state",
]

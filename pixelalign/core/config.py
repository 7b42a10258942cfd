"""
Resampling configuration

Operator parameters selecting the reference band and the up-/downsampling
methods.
"""

import logging
from dataclasses import dataclass
from typing import Any

from pixelalign.core.exceptions import ValidationError
from pixelalign.resample.types import (
    FLAG_AGGREGATIONS,
    NUMERIC_AGGREGATIONS,
    AggregationType,
    InterpolationType,
)

logger = logging.getLogger(__name__)

# Accepted keys for each option (first entry is the canonical name)
_ALIASES = {
    "reference_band_name": ("reference_band_name", "referenceBandName", "referenceBand"),
    "interpolation_method": ("interpolation_method", "interpolationMethod", "interpolation"),
    "aggregation_method": ("aggregation_method", "aggregationMethod", "aggregation"),
    "flag_aggregation_method": (
        "flag_aggregation_method",
        "flagAggregationMethod",
        "flagAggregation",
    ),
}


@dataclass
class ResamplingConfig:
    """
    Parameters of a resampling request

    Attributes:
        reference_band_name: Band whose size and resolution all other bands
            are resampled to
        interpolation_method: Upsampling method ("NearestNeighbour", "Bilinear")
        aggregation_method: Downsampling method for non-flag bands
            ("First", "Min", "Max", "Mean", "Median")
        flag_aggregation_method: Downsampling method for flag bands
            ("First", "FlagAnd", "FlagOr", "FlagMedianAnd", "FlagMedianOr")

    Unknown method names are accepted here and rejected by the engine once a
    band actually needs that method.

    Examples:
        >>> config = ResamplingConfig("B02", aggregation_method="Mean")
        >>> config.aggregation_type
        <AggregationType.MEAN: 'Mean'>
        >>> ResamplingConfig.from_dict({"referenceBand": "B02", "interpolation": "Bilinear"})
    """

    reference_band_name: str
    interpolation_method: str = "NearestNeighbour"
    aggregation_method: str = "First"
    flag_aggregation_method: str = "First"

    def __post_init__(self):
        if not self.reference_band_name:
            raise ValidationError("A reference band name is required")
        if self.interpolation_type is None:
            logger.warning("Unknown interpolation method: %s", self.interpolation_method)
        if self.aggregation_type is None:
            logger.warning("Unknown aggregation method: %s", self.aggregation_method)
        if self.flag_aggregation_type is None:
            logger.warning("Unknown flag aggregation method: %s", self.flag_aggregation_method)

    @property
    def interpolation_type(self) -> InterpolationType | None:
        return InterpolationType.from_name(self.interpolation_method)

    @property
    def aggregation_type(self) -> AggregationType | None:
        return AggregationType.from_name(self.aggregation_method, allowed=NUMERIC_AGGREGATIONS)

    @property
    def flag_aggregation_type(self) -> AggregationType | None:
        return AggregationType.from_name(self.flag_aggregation_method, allowed=FLAG_AGGREGATIONS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference_band_name": self.reference_band_name,
            "interpolation_method": self.interpolation_method,
            "aggregation_method": self.aggregation_method,
            "flag_aggregation_method": self.flag_aggregation_method,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResamplingConfig":
        """
        Build a config from a parameter dictionary

        Accepts snake_case keys as well as the operator parameter names
        (``referenceBandName``/``referenceBand``, ``interpolation``, ...).
        """
        values: dict[str, Any] = {}
        for option, aliases in _ALIASES.items():
            for alias in aliases:
                if alias in data:
                    values[option] = data[alias]
                    break
        unknown = set(data) - {alias for aliases in _ALIASES.values() for alias in aliases}
        if unknown:
            logger.warning("Ignoring unknown resampling parameters: %s", sorted(unknown))
        if "reference_band_name" not in values:
            raise ValidationError("A reference band name is required")
        return cls(**values)

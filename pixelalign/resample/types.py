"""
Resampling policies

Interpolation (upsampling) and aggregation (downsampling) methods as closed
sets of variants. Values are the method names accepted in configuration.
"""

from enum import Enum


class InterpolationType(Enum):
    """Upsampling method"""

    NEAREST = "NearestNeighbour"
    BILINEAR = "Bilinear"

    @classmethod
    def from_name(cls, name: str | None) -> "InterpolationType | None":
        """
        Look up a method by its configuration name

        Returns:
            The method, or None if ``name`` is unset or unknown
        """
        for member in cls:
            if member.value == name:
                return member
        return None


class AggregationType(Enum):
    """Downsampling method"""

    FIRST = "First"
    MIN = "Min"
    MAX = "Max"
    MEAN = "Mean"
    MEDIAN = "Median"
    FLAG_AND = "FlagAnd"
    FLAG_OR = "FlagOr"
    FLAG_MEDIAN_AND = "FlagMedianAnd"
    FLAG_MEDIAN_OR = "FlagMedianOr"

    @classmethod
    def from_name(
        cls, name: str | None, allowed: frozenset | None = None
    ) -> "AggregationType | None":
        """
        Look up a method by its configuration name

        Args:
            name: Configuration name (e.g. "Mean", "FlagOr")
            allowed: Restrict the lookup to these methods

        Returns:
            The method, or None if ``name`` is unset, unknown or not allowed
        """
        for member in cls:
            if member.value == name:
                if allowed is not None and member not in allowed:
                    return None
                return member
        return None


# Methods allowed for continuous (non-flag) bands
NUMERIC_AGGREGATIONS = frozenset(
    {
        AggregationType.FIRST,
        AggregationType.MIN,
        AggregationType.MAX,
        AggregationType.MEAN,
        AggregationType.MEDIAN,
    }
)

# Methods allowed for flag bands
FLAG_AGGREGATIONS = frozenset(
    {
        AggregationType.FIRST,
        AggregationType.FLAG_AND,
        AggregationType.FLAG_OR,
        AggregationType.FLAG_MEDIAN_AND,
        AggregationType.FLAG_MEDIAN_OR,
    }
)

"""
PixelAlign Exceptions

Exception hierarchy for error handling.

All resampling errors are fatal for the whole request: no partial target
product is returned and nothing is retried.
"""


class PixelAlignError(Exception):
    """Base exception for PixelAlign"""

    pass


class ValidationError(PixelAlignError):
    """Data validation failed"""

    pass


class ResamplingError(PixelAlignError):
    """
    Resampling of a product failed

    Attributes:
        node_name: Name of the offending band or tie-point grid (if known)
    """

    def __init__(self, message: str, node_name: str | None = None):
        super().__init__(message)
        self.node_name = node_name


class NonIdentitySceneTransformError(ResamplingError):
    """A band or tie-point grid has a non-identity model-to-scene transform"""

    pass


class MissingReferenceBandError(ResamplingError):
    """The configured reference band does not exist in the source product"""

    pass


class NonInvertibleTransformError(ResamplingError):
    """An image-to-model transform has a singular linear part"""

    pass


class InvalidInterpolationMethodError(ResamplingError):
    """Interpolation (upsampling) method is unset or unknown"""

    pass


class InvalidAggregationMethodError(ResamplingError):
    """Aggregation (downsampling) method is unset or unknown"""

    pass

"""
PixelAlign Geometry Module

Affine transform algebra for pixel-to-model transforms.
"""

from pixelalign.geometry.affine import (
    EPSILON,
    IDENTITY,
    compose,
    invert,
    is_axis_aligned,
    is_identity,
    snap,
    source_to_reference,
)

__all__ = [
    "EPSILON",
    "IDENTITY",
    "compose",
    "invert",
    "is_axis_aligned",
    "is_identity",
    "snap",
    "source_to_reference",
]

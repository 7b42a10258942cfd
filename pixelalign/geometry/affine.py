"""
Affine transform algebra

Composition and inversion of 2D pixel-to-model transforms.

Transforms are ``affine.Affine`` objects (the transform type rasterio uses):

    | x' |   | a  b  c | | x |
    | y' | = | d  e  f | | y |
    | 1  |   | 0  0  1 | | 1 |

with ``a`` = scaleX, ``b`` = shearX, ``c`` = translateX, ``d`` = shearY,
``e`` = scaleY and ``f`` = translateY. Pixel ``(i, j)`` covers the pixel
coordinate square ``[i, i+1) x [j, j+1)``, so its centre is ``(i+0.5, j+0.5)``.
"""

import numpy as np
from affine import Affine

from pixelalign.core.exceptions import NonInvertibleTransformError

# Single tolerance for all transform and size equality decisions
EPSILON = 1e-8

IDENTITY = Affine.identity()


def compose(a: Affine, b: Affine) -> Affine:
    """
    Compose two transforms (apply ``b`` first, then ``a``)

    Examples:
        >>> compose(Affine.scale(2), Affine.translation(1, 0)) @ (0, 0)
        (2.0, 0.0)
    """
    return a @ b


def determinant(transform: Affine) -> float:
    """Determinant of the 2x2 linear part"""
    return transform.a * transform.e - transform.b * transform.d


def is_singular(transform: Affine, tol: float = EPSILON) -> bool:
    """
    Check whether the linear part is (numerically) singular

    The test is relative to the magnitude of the coefficients so that
    degree-sized pixels of geographic grids are not mistaken for
    singular ones.
    """
    magnitude = max(abs(transform.a), abs(transform.b), abs(transform.d), abs(transform.e))
    return abs(determinant(transform)) <= tol * magnitude * magnitude


def invert(transform: Affine, name: str | None = None) -> Affine:
    """
    Invert a transform

    Args:
        transform: Transform to invert
        name: Name of the band/grid owning the transform (error context)

    Returns:
        Inverse transform

    Raises:
        NonInvertibleTransformError: If the linear part is singular
    """
    if is_singular(transform):
        owner = f" of '{name}'" if name else ""
        raise NonInvertibleTransformError(
            f"Transform{owner} is not invertible (determinant {determinant(transform)!r})",
            node_name=name,
        )
    return ~transform


def is_identity(transform: Affine, tol: float = EPSILON) -> bool:
    """Check whether all coefficients are within ``tol`` of the identity"""
    return all(abs(v - w) <= tol for v, w in zip(transform[:6], IDENTITY[:6]))


def is_axis_aligned(transform: Affine, tol: float = EPSILON) -> bool:
    """Check that the transform has no shear/rotation component"""
    return abs(transform.b) <= tol and abs(transform.d) <= tol


def source_to_reference(
    source: Affine, reference: Affine, name: str | None = None
) -> Affine:
    """
    Transform mapping source pixel coordinates to reference pixel coordinates

    ``invert(reference) ∘ source``
    """
    return compose(invert(reference, name=name), source)


def snap(value, tol: float = EPSILON):
    """
    Round values lying within ``tol`` of an integer to that integer

    Accepts scalars and NumPy arrays.

    Examples:
        >>> snap(2.999999999)
        3.0
        >>> snap(2.5)
        2.5
    """
    nearest = np.rint(value)
    snapped = np.where(np.abs(value - nearest) <= tol, nearest, value)
    if np.ndim(value) == 0:
        return float(snapped)
    return snapped

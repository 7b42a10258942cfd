"""
Tests for affine transform algebra
"""

import warnings

import numpy as np
import pytest
from affine import Affine

from pixelalign.core.exceptions import NonInvertibleTransformError, ResamplingError
from pixelalign.geometry.affine import (
    EPSILON,
    IDENTITY,
    compose,
    determinant,
    invert,
    is_axis_aligned,
    is_identity,
    is_singular,
    snap,
    source_to_reference,
)


class TestCompose:
    """Test transform composition"""

    def test_applies_right_operand_first(self):
        """compose(A, B) applies B, then A"""
        composed = compose(Affine.scale(2), Affine.translation(1, 0))
        assert composed @ (0, 0) == (2.0, 0.0)

    def test_no_operator_deprecation_warning(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            composed = compose(Affine(10, 0, 399960, 0, -10, 5000040), Affine.scale(2))
            source_to_reference(composed, Affine(10, 0, 399960, 0, -10, 5000040))
        assert composed.a == 20.0

    def test_associative(self):
        a = Affine(2, 0.5, 3, 0.1, -4, 7)
        b = Affine.rotation(30)
        c = Affine.translation(-5, 2)
        left = compose(compose(a, b), c)
        right = compose(a, compose(b, c))
        assert left.almost_equals(right)

    def test_identity_is_neutral(self):
        t = Affine(10, 0, 300000, 0, -10, 5000000)
        assert compose(IDENTITY, t) == t
        assert compose(t, IDENTITY) == t


class TestInvert:
    """Test transform inversion"""

    def test_inverse_round_trip(self):
        t = Affine(10, 0, 300000, 0, -10, 5000000)
        assert is_identity(compose(invert(t), t))

    def test_singular_raises(self):
        with pytest.raises(NonInvertibleTransformError):
            invert(Affine(1, 2, 0, 2, 4, 0))

    def test_zero_matrix_is_singular(self):
        assert is_singular(Affine(0, 0, 5, 0, 0, 5))

    def test_error_names_owner(self):
        with pytest.raises(NonInvertibleTransformError) as exc_info:
            invert(Affine(0, 0, 0, 0, 0, 0), name="B05")
        assert exc_info.value.node_name == "B05"
        assert "B05" in str(exc_info.value)

    def test_error_is_resampling_error(self):
        with pytest.raises(ResamplingError):
            invert(Affine(0, 0, 0, 0, 0, 0))

    def test_degree_sized_pixels_are_invertible(self):
        """Small geographic pixel sizes are not mistaken for singular ones"""
        t = Affine(8.983e-5, 0, 12.0, 0, -8.983e-5, 48.0)
        assert not is_singular(t)
        assert is_identity(compose(invert(t), t), tol=1e-6)

    def test_determinant(self):
        assert determinant(Affine(2, 1, 0, 3, 4, 0)) == 5


class TestPredicates:
    """Test identity and axis-alignment checks"""

    def test_is_identity_within_tolerance(self):
        assert is_identity(Affine(1 + EPSILON / 2, 0, 0, 0, 1, EPSILON / 2))
        assert not is_identity(Affine(1 + 1e-6, 0, 0, 0, 1, 0))

    def test_is_axis_aligned(self):
        assert is_axis_aligned(Affine(10, 0, 5, 0, -10, 5))
        assert not is_axis_aligned(Affine.rotation(10))


class TestSourceToReference:
    """Test source-to-reference pixel mapping"""

    def test_20m_to_10m(self):
        source = Affine(20, 0, 0, 0, -20, 40)
        reference = Affine(10, 0, 0, 0, -10, 40)
        composed = source_to_reference(source, reference)
        assert composed.almost_equals(Affine.scale(2))

    def test_offset_grids(self):
        source = Affine(10, 0, 10, 0, -10, 40)
        reference = Affine(10, 0, 0, 0, -10, 40)
        assert source_to_reference(source, reference) @ (0, 0) == pytest.approx((1.0, 0.0))

    def test_singular_reference(self):
        with pytest.raises(NonInvertibleTransformError):
            source_to_reference(IDENTITY, Affine(0, 0, 0, 0, 0, 0), name="ref")


class TestSnap:
    """Test snapping to integers"""

    def test_scalar(self):
        assert snap(2.999999999) == 3.0
        assert snap(2.5) == 2.5

    def test_array(self):
        snapped = snap(np.array([0.1 + 0.2, 1.0 - 1e-12, 1.5]))
        np.testing.assert_array_equal(snapped, [0.1 + 0.2, 1.0, 1.5])

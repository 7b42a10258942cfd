"""
Tests for the interpolation engine
"""

import numpy as np
import pytest
from affine import Affine

from pixelalign.core.exceptions import (
    InvalidInterpolationMethodError,
    NonInvertibleTransformError,
)
from pixelalign.image.pyramid import MultiLevelImage, MultiLevelModel
from pixelalign.image.tiled import TiledImage
from pixelalign.resample.interpolation import create_interpolated_image, interpolate
from pixelalign.resample.types import InterpolationType


@pytest.fixture
def source():
    """2x2 image whose pixels are 2 model units wide"""
    return TiledImage.from_array(np.array([[1.0, 2.0], [3.0, 4.0]]))


def upsample(source, policy, no_data_value=None, width=4, height=4, tile_size=256):
    image = interpolate(
        source, Affine.scale(2), Affine.identity(), width, height, no_data_value, policy,
        tile_size=tile_size,
    )
    return image.to_array()


class TestNearest:
    """Test nearest-neighbour upsampling"""

    def test_duplicates_pixels(self, source):
        result = upsample(source, InterpolationType.NEAREST)
        np.testing.assert_array_equal(
            result,
            [[1, 1, 2, 2], [1, 1, 2, 2], [3, 3, 4, 4], [3, 3, 4, 4]],
        )

    def test_keeps_dtype(self):
        source = TiledImage.from_array(np.array([[1, 2], [3, 4]], dtype=np.uint16))
        result = upsample(source, InterpolationType.NEAREST)
        assert result.dtype == np.uint16

    def test_outside_source_is_no_data(self, source):
        result = upsample(source, InterpolationType.NEAREST, width=5, height=4)
        assert np.isnan(result[:, 4]).all()
        assert not np.isnan(result[:, :4]).any()

    def test_outside_source_uses_no_data_value(self, source):
        result = upsample(source, InterpolationType.NEAREST, no_data_value=-1.0, width=5)
        assert (result[:, 4] == -1.0).all()

    def test_identical_grids(self):
        data = np.arange(12, dtype=np.float32).reshape(3, 4)
        image = interpolate(
            TiledImage.from_array(data), Affine.identity(), Affine.identity(), 4, 3,
            None, InterpolationType.NEAREST,
        )
        np.testing.assert_array_equal(image.to_array(), data)

    def test_result_independent_of_tiling(self):
        data = np.random.default_rng(0).random((5, 7))
        source = TiledImage.from_array(data, tile_size=2)
        whole = interpolate(source, Affine.scale(2), Affine.identity(), 14, 10, None,
                            InterpolationType.NEAREST)
        tiled = interpolate(source, Affine.scale(2), Affine.identity(), 14, 10, None,
                            InterpolationType.NEAREST, tile_size=3)
        np.testing.assert_array_equal(whole.to_array(), tiled.to_array())


class TestBilinear:
    """Test bilinear upsampling"""

    def test_weights(self, source):
        result = upsample(source, InterpolationType.BILINEAR)
        np.testing.assert_allclose(result[0], [1.0, 1.25, 1.75, 2.0])
        np.testing.assert_allclose(result[1], [1.5, 1.75, 2.25, 2.5])
        assert result[3, 3] == pytest.approx(4.0)

    def test_constant_image_stays_constant(self):
        source = TiledImage.from_array(np.full((3, 3), 5.0))
        result = upsample(source, InterpolationType.BILINEAR, width=6, height=6)
        np.testing.assert_allclose(result, 5.0)

    def test_no_data_neighbour_spoils_result(self):
        source = TiledImage.from_array(np.array([[1.0, np.nan], [3.0, 4.0]]))
        result = upsample(source, InterpolationType.BILINEAR)
        # Only the corner pixel is computed from (0, 0) alone
        assert result[0, 0] == pytest.approx(1.0)
        assert np.isnan(result[0, 1])
        assert np.isnan(result[1, 1])
        assert result[3, 0] == pytest.approx(3.0)

    def test_no_data_value(self):
        source = TiledImage.from_array(np.array([[1, 0], [3, 4]], dtype=np.int16))
        result = upsample(source, InterpolationType.BILINEAR, no_data_value=0)
        assert result[0, 0] == 1
        assert result[0, 2] == 0
        assert result[3, 0] == 3

    def test_zero_weight_neighbour_ignored(self):
        """A no-data pixel with zero weight does not spoil aligned samples"""
        data = np.array([[1.0, 2.0, np.nan]])
        image = interpolate(
            TiledImage.from_array(data), Affine.identity(), Affine.identity(), 3, 1,
            None, InterpolationType.BILINEAR,
        )
        result = image.to_array()
        np.testing.assert_allclose(result[0, :2], [1.0, 2.0])
        assert np.isnan(result[0, 2])

    def test_integer_rounding(self):
        source = TiledImage.from_array(np.array([[0, 3]], dtype=np.uint8))
        image = interpolate(source, Affine.scale(2, 1), Affine.identity(), 4, 1, None,
                            InterpolationType.BILINEAR)
        # 0.75 -> 1, 2.25 -> 2
        np.testing.assert_array_equal(image.to_array(), [[0, 1, 2, 3]])


class TestErrors:
    """Test policy and transform errors"""

    def test_missing_policy(self, source):
        with pytest.raises(InvalidInterpolationMethodError):
            interpolate(source, Affine.scale(2), Affine.identity(), 4, 4, None, None)

    def test_unknown_policy(self, source):
        with pytest.raises(InvalidInterpolationMethodError):
            interpolate(source, Affine.scale(2), Affine.identity(), 4, 4, None, "Bicubic")

    def test_singular_source_transform(self, source):
        with pytest.raises(NonInvertibleTransformError):
            interpolate(source, Affine(0, 0, 0, 0, 0, 0), Affine.identity(), 4, 4, None,
                        InterpolationType.NEAREST)


class TestMultiLevel:
    """Test multi-level interpolation"""

    def test_level_zero(self):
        source = MultiLevelImage.from_array(np.array([[1.0, 2.0], [3.0, 4.0]]), Affine.scale(2))
        target_model = MultiLevelModel(Affine.identity(), 4, 4)
        image = create_interpolated_image(source, target_model, None, InterpolationType.NEAREST)
        assert image.model is target_model
        np.testing.assert_array_equal(image.to_array()[0], [1, 1, 2, 2])

    def test_coarse_level_uses_coarse_source(self):
        data = np.arange(64, dtype=np.float64).reshape(8, 8)
        source = MultiLevelImage.from_array(data, Affine.scale(2), level_count=2)
        target_model = MultiLevelModel(Affine.identity(), 16, 16, level_count=3)
        image = create_interpolated_image(source, target_model, None, InterpolationType.NEAREST)
        # Target level 2 (scale 4) reads source level 1 (pixel size 4)
        level = image.get_image(2).to_array()
        assert level.shape == (4, 4)
        np.testing.assert_array_equal(level, data[::2, ::2])

    def test_errors_raised_up_front(self):
        source = MultiLevelImage.from_array(np.zeros((2, 2)), Affine(0, 0, 0, 0, 0, 0))
        target_model = MultiLevelModel(Affine.identity(), 4, 4)
        with pytest.raises(NonInvertibleTransformError) as exc_info:
            create_interpolated_image(
                source, target_model, None, InterpolationType.NEAREST, name="B05"
            )
        assert exc_info.value.node_name == "B05"

    def test_policy_checked_up_front(self):
        source = MultiLevelImage.from_array(np.zeros((2, 2)), Affine.scale(2))
        target_model = MultiLevelModel(Affine.identity(), 4, 4)
        with pytest.raises(InvalidInterpolationMethodError):
            create_interpolated_image(source, target_model, None, None)

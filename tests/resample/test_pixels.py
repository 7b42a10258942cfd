"""
Tests for shared pixel helpers
"""

import numpy as np

from pixelalign.image.tiled import TiledImage
from pixelalign.resample.pixels import fill_value, read_covering, to_dtype, valid_mask


class TestFillValue:
    def test_no_data_value(self):
        assert fill_value(np.uint16, 0) == 0
        assert fill_value(np.float32, -9999.0) == np.float32(-9999.0)

    def test_float_without_no_data(self):
        assert np.isnan(fill_value(np.float32, None))

    def test_int_without_no_data(self):
        value = fill_value(np.int16, None)
        assert value == 0
        assert value.dtype == np.int16


class TestValidMask:
    def test_float_nan_and_no_data(self):
        values = np.array([1.0, np.nan, -1.0, 2.0])
        np.testing.assert_array_equal(valid_mask(values, -1.0), [True, False, False, True])

    def test_float_nan_no_data(self):
        values = np.array([1.0, np.nan])
        np.testing.assert_array_equal(valid_mask(values, np.nan), [True, False])

    def test_int_without_no_data(self):
        assert valid_mask(np.array([0, 1, 2]), None).all()

    def test_int_no_data(self):
        np.testing.assert_array_equal(valid_mask(np.array([0, 1, 2]), 0), [False, True, True])


class TestToDtype:
    def test_rounds_to_nearest(self):
        result = to_dtype(np.array([1.4, 1.6, 2.5]), np.int32)
        np.testing.assert_array_equal(result, [1, 2, 2])
        assert result.dtype == np.int32

    def test_clips_to_range(self):
        np.testing.assert_array_equal(to_dtype(np.array([-3.0, 300.0]), np.uint8), [0, 255])

    def test_float_unchanged(self):
        result = to_dtype(np.array([1.25]), np.float32)
        assert result.dtype == np.float32
        assert result[0] == 1.25


class TestReadCovering:
    def test_window(self):
        image = TiledImage.from_array(np.arange(20).reshape(4, 5), tile_size=2)
        data, x, y = read_covering(image, np.array([3, 1]), np.array([2, 3]))

        assert (x, y) == (1, 2)
        np.testing.assert_array_equal(data, [[11, 12, 13], [16, 17, 18]])

"""
Tests for product copy utilities
"""

import numpy as np
import pytest
from affine import Affine

from pixelalign.core import product_utils
from pixelalign.core.product import (
    FlagCoding,
    GeoCoding,
    IndexCoding,
    Mask,
    Product,
    RasterBand,
    TiePointGrid,
)

T10 = Affine(10.0, 0.0, 0.0, 0.0, -10.0, 40.0)
T20 = Affine(20.0, 0.0, 0.0, 0.0, -20.0, 40.0)


@pytest.fixture
def target():
    return Product("target", "S2_MSI_Level-2A", 4, 4)


class TestBandCopies:
    """Test band and grid copies"""

    def test_copy_raster_properties(self, fine_band):
        fine_band.no_data_value = -1.0
        fine_band.spectral_wavelength = 490.0
        fine_band.flag_coding = FlagCoding("f", {"a": 1})
        other = RasterBand("B02", 2, 2)

        product_utils.copy_raster_properties(fine_band, other)

        assert other.no_data_value == -1.0
        assert other.unit == "dl"
        assert other.spectral_wavelength == 490.0
        assert other.flag_coding == fine_band.flag_coding
        assert other.flag_coding is not fine_band.flag_coding

    def test_copy_band_shares_pixels(self, multi_size_product, fine_band, target):
        copy = product_utils.copy_band(fine_band, target)

        assert copy is not fine_band
        assert copy.product is target
        assert fine_band.product is multi_size_product
        assert copy.source_image is fine_band.source_image

    def test_copy_band_with_changes(self, coarse_band, target):
        copy = product_utils.copy_band(coarse_band, target, transform=T10)
        assert copy.transform == T10
        assert coarse_band.transform == T20

    def test_copy_virtual_band(self, fine_band, target):
        target.add_band(RasterBand.from_array("B02", np.ones((4, 4), np.float32), transform=T10))
        virtual = RasterBand("double", 2, 2, transform=T20, expression="B02 * 2")

        copy = product_utils.copy_virtual_band(virtual, target, width=4, height=4, transform=T10)

        assert copy.expression == "B02 * 2"
        assert copy.raster_size == (4, 4)
        np.testing.assert_array_equal(copy.read(), np.full((4, 4), 2.0))

    def test_copy_tie_point_grid(self, target):
        grid = TiePointGrid("sza", 2, 2, 0.5, 0.5, 3.0, 3.0, np.arange(4.0))

        copy = product_utils.copy_tie_point_grid(grid, target)

        assert target.get_tie_point_grid("sza") is copy
        copy.tie_points[0, 0] = 99.0
        assert grid.tie_points[0, 0] == 0.0


class TestProductCopies:
    """Test product-level copies"""

    def test_codings(self, multi_size_product, target):
        multi_size_product.flag_codings["qa"] = FlagCoding("qa", {"cloud": 1})
        multi_size_product.index_codings["scl"] = IndexCoding("scl", {"water": 6})

        product_utils.copy_flag_codings(multi_size_product, target)
        product_utils.copy_index_codings(multi_size_product, target)

        assert target.flag_codings == multi_size_product.flag_codings
        assert target.index_codings["scl"] is not multi_size_product.index_codings["scl"]

    def test_metadata_is_deep_copied(self, multi_size_product, target):
        multi_size_product.metadata = {"processing": {"baseline": "04.00"}}

        product_utils.copy_metadata(multi_size_product, target)
        target.metadata["processing"]["baseline"] = "05.00"

        assert multi_size_product.metadata["processing"]["baseline"] == "04.00"

    def test_vector_data_keeps_existing(self, multi_size_product, target):
        multi_size_product.vector_data = {"pins": [1], "aoi": [2]}
        target.vector_data["pins"] = [3]

        product_utils.copy_vector_data(multi_size_product, target)

        assert target.vector_data == {"pins": [3], "aoi": [2]}

    def test_masks_take_scene_size(self, multi_size_product, target):
        multi_size_product.add_mask(Mask("bright", "B05 > 2", color=(0, 255, 0), width=2, height=2))

        product_utils.copy_masks(multi_size_product, target)

        mask = target.masks["bright"]
        assert mask.expression == "B05 > 2"
        assert mask.color == (0, 255, 0)
        assert (mask.width, mask.height) == (4, 4)

    def test_existing_mask_kept(self, multi_size_product, target):
        multi_size_product.add_mask(Mask("bright", "B05 > 2"))
        target.add_mask(Mask("bright", "B02 > 2"))

        product_utils.copy_masks(multi_size_product, target)

        assert target.masks["bright"].expression == "B02 > 2"

    def test_transfer_geocoding(self, coarse_band, target):
        product_utils.transfer_geocoding(coarse_band, target)
        assert target.geocoding == GeoCoding("EPSG:32633", T20)

    def test_transfer_product_geocoding(self, target):
        source = Product("source")
        band = RasterBand.from_array("B05", np.zeros((2, 2)), transform=T20)
        source.add_band(band)
        source.geocoding = GeoCoding("EPSG:4326", T10)

        product_utils.transfer_geocoding(band, target)

        assert target.geocoding == GeoCoding("EPSG:4326", T20)

    def test_transfer_without_geocoding(self, target):
        band = RasterBand.from_array("B05", np.zeros((2, 2)), transform=T20)
        product_utils.transfer_geocoding(band, target)
        assert target.geocoding is None

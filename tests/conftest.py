"""
PixelAlign Test Configuration

Shared pytest fixtures for all tests.
"""

import numpy as np
import pytest
from affine import Affine

from pixelalign.core.product import GeoCoding, Product, RasterBand
from pixelalign.image.cache import get_default_arena

# 40 m x 40 m scene at 10 m and 20 m pixel size
T10 = Affine(10.0, 0.0, 0.0, 0.0, -10.0, 40.0)
T20 = Affine(20.0, 0.0, 0.0, 0.0, -20.0, 40.0)


@pytest.fixture(autouse=True)
def clear_default_arena():
    """Drop tiles cached by a test"""
    yield
    get_default_arena().clear()


@pytest.fixture
def fine_band():
    """4x4 float band at 10 m"""
    data = np.arange(16, dtype=np.float32).reshape(4, 4)
    return RasterBand.from_array(
        "B02", data, transform=T10, geocoding=GeoCoding("EPSG:32633", T10), unit="dl"
    )


@pytest.fixture
def coarse_band():
    """2x2 float band at 20 m"""
    data = np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32)
    return RasterBand.from_array(
        "B05", data, transform=T20, geocoding=GeoCoding("EPSG:32633", T20)
    )


@pytest.fixture
def multi_size_product(fine_band, coarse_band):
    """Product with one 10 m and one 20 m band"""
    product = Product("S2_test", "S2_MSI_Level-2A")
    product.add_band(fine_band)
    product.add_band(coarse_band)
    return product

"""
Tests for GeoTIFF reading and writing
"""

import numpy as np
import pytest
import rasterio
from affine import Affine
from rasterio.windows import Window

from pixelalign.core.api import resample
from pixelalign.core.exceptions import ValidationError
from pixelalign.core.product import GeoCoding, Product, RasterBand
from pixelalign.io import GeoTIFFReader, read_band, read_product, write_band

T10 = Affine(10.0, 0.0, 300000.0, 0.0, -10.0, 5000000.0)
T20 = Affine(20.0, 0.0, 300000.0, 0.0, -20.0, 5000000.0)


def _write(path, data, transform, nodata=0, crs="EPSG:32633"):
    count = 1 if data.ndim == 2 else data.shape[0]
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=data.shape[-2],
        width=data.shape[-1],
        count=count,
        dtype=data.dtype,
        crs=crs,
        transform=transform,
        nodata=nodata,
    ) as dst:
        if data.ndim == 2:
            dst.write(data, 1)
        else:
            dst.write(data)
    return path


@pytest.fixture
def b02_file(tmp_path):
    """4x4 uint16 band at 10 m"""
    data = np.arange(1, 17, dtype=np.uint16).reshape(4, 4)
    return _write(tmp_path / "B02_10m.tif", data, T10)


@pytest.fixture
def b05_file(tmp_path):
    """2x2 uint16 band at 20 m"""
    data = np.array([[10, 20], [30, 40]], dtype=np.uint16)
    return _write(tmp_path / "B05_20m.tif", data, T20)


class TestGeoTIFFReader:
    """Test GeoTIFFReader class"""

    def test_metadata(self, b02_file):
        with GeoTIFFReader(b02_file) as reader:
            metadata = reader.get_metadata()

        assert metadata["width"] == 4
        assert metadata["height"] == 4
        assert metadata["count"] == 1
        assert metadata["dtype"] == "uint16"
        assert metadata["nodata"] == 0
        assert metadata["transform"] == T10

    def test_read_window(self, b02_file):
        with GeoTIFFReader(b02_file) as reader:
            data = reader.read_window(Window(1, 2, 2, 1))
        np.testing.assert_array_equal(data, [[10, 11]])

    def test_to_band(self, b02_file):
        with GeoTIFFReader(b02_file) as reader:
            band = reader.to_band("B02", unit="dn")

        assert band.raster_size == (4, 4)
        assert band.transform == T10
        assert band.data_type == np.dtype(np.uint16)
        assert band.no_data_value == 0
        assert isinstance(band.no_data_value, int)
        assert band.unit == "dn"
        assert band.geocoding.crs == "EPSG:32633"

    def test_band_index_out_of_range(self, b02_file):
        with GeoTIFFReader(b02_file) as reader:
            with pytest.raises(ValidationError):
                reader.to_band("B02", band_index=2)

    def test_multi_band_file(self, tmp_path):
        data = np.stack([np.zeros((3, 3)), np.ones((3, 3))]).astype(np.float32)
        path = _write(tmp_path / "stack.tif", data, T10, nodata=None)

        band = read_band(path, "second", band_index=2)

        assert band.no_data_value is None
        np.testing.assert_array_equal(band.read(), np.ones((3, 3)))

    def test_repr_closed(self, b02_file):
        reader = GeoTIFFReader(b02_file)
        assert "Size: 4 x 4" in repr(reader)
        reader.close()
        assert "closed" in repr(reader)


class TestReadProduct:
    """Test assembling products from files"""

    def test_multi_size(self, b02_file, b05_file):
        product = read_product({"B02": b02_file, "B05": b05_file}, name="T33UUP")

        assert product.name == "T33UUP"
        assert product.multi_size
        assert product.get_band("B05").transform == T20
        assert product.geocoding == GeoCoding("EPSG:32633", T10)

    def test_no_paths(self):
        with pytest.raises(ValidationError):
            read_product({})


class TestWriteBand:
    """Test writing bands"""

    def test_round_trip(self, tmp_path, b02_file):
        band = read_band(b02_file, "B02")

        path = write_band(band, tmp_path / "copy.tif")

        with rasterio.open(path) as src:
            assert src.transform == T10
            assert src.crs.to_string() == "EPSG:32633"
            assert src.nodata == 0
            assert src.descriptions[0] == "B02"
            np.testing.assert_array_equal(src.read(1), band.read())

    def test_write_resampled_band(self, tmp_path, b02_file, b05_file):
        product = read_product({"B02": b02_file, "B05": b05_file})
        resampled = resample(product, "B02")

        path = write_band(resampled.get_band("B05"), tmp_path / "B05_10m.tif")

        with rasterio.open(path) as src:
            assert (src.width, src.height) == (4, 4)
            assert src.transform == T10
            np.testing.assert_array_equal(src.read(1), np.repeat(np.repeat([[10, 20], [30, 40]], 2, 0), 2, 1))

    def test_crs_from_product(self, tmp_path):
        band = RasterBand.from_array("B02", np.ones((2, 2), np.float32), transform=T10)
        product = Product("p")
        product.add_band(band)
        product.geocoding = GeoCoding("EPSG:32633", T10)

        path = write_band(band, tmp_path / "b.tif")

        with rasterio.open(path) as src:
            assert src.crs.to_string() == "EPSG:32633"
            assert src.nodata is None

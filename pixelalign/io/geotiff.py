"""
GeoTIFF reader and writer using Rasterio

Bands read from GeoTIFF keep the file's affine transform as image-to-model
transform, so a product assembled from files of different resolutions is
multi-size and can be resampled directly.
"""

import logging
from pathlib import Path
from typing import Any

import numpy as np
import rasterio
from numpy.typing import NDArray
from rasterio.windows import Window

from pixelalign.core.exceptions import ValidationError
from pixelalign.core.product import GeoCoding, Product, RasterBand

logger = logging.getLogger(__name__)


class GeoTIFFReader:
    """
    GeoTIFF reader using Rasterio

    Attributes:
        file_path: Path to the GeoTIFF file
        dataset: Rasterio dataset handle

    Examples:
        >>> with GeoTIFFReader("T33UUP_B05_20m.tif") as reader:
        ...     band = reader.to_band("B05")
        ...     metadata = reader.get_metadata()
    """

    def __init__(self, file_path: str | Path):
        """
        Open GeoTIFF file with Rasterio

        Args:
            file_path: Path to GeoTIFF file

        Raises:
            rasterio.errors.RasterioIOError: If file can't be opened
        """
        self.file_path = str(file_path)
        self.dataset = rasterio.open(self.file_path, "r")

    def read_band(self, band_index: int = 1) -> NDArray:
        """
        Read single band as NumPy array

        Args:
            band_index: Band index (1-based, following GDAL convention)
        """
        return self.dataset.read(band_index)

    def read_window(self, window: Window, band_index: int = 1) -> NDArray:
        """
        Read specific window from a band

        Examples:
            >>> window = Window(0, 0, 256, 256)  # col_off, row_off, width, height
            >>> data = reader.read_window(window, band_index=1)
        """
        return self.dataset.read(band_index, window=window)

    def get_metadata(self) -> dict[str, Any]:
        """
        Extract metadata from the file

        Returns:
            Dictionary with crs, transform, bounds, width, height, count,
            dtype and nodata
        """
        return {
            "crs": self.dataset.crs,
            "transform": self.dataset.transform,
            "bounds": self.dataset.bounds,
            "width": self.dataset.width,
            "height": self.dataset.height,
            "count": self.dataset.count,
            "dtype": self.dataset.dtypes[0],
            "nodata": self.dataset.nodata,
        }

    def to_band(self, name: str, band_index: int = 1, **kwargs: Any) -> RasterBand:
        """
        Read one band of the file into a stored RasterBand

        Args:
            name: Band name
            band_index: Band index (1-based)
            **kwargs: Further band attributes (flag_coding, unit, ...)

        Returns:
            RasterBand with the file's transform, no-data value and CRS
        """
        if not 1 <= band_index <= self.dataset.count:
            raise ValidationError(
                f"Band index {band_index} outside [1, {self.dataset.count}] in {self.file_path}"
            )
        data = self.read_band(band_index)
        transform = self.dataset.transform
        kwargs.setdefault("no_data_value", self._no_data_value(data.dtype))
        if self.dataset.crs is not None:
            kwargs.setdefault("geocoding", GeoCoding(crs=self.dataset.crs.to_string(), transform=transform))
        logger.debug(
            "Read band %s (%dx%d, %s) from %s",
            name, self.dataset.width, self.dataset.height, data.dtype, self.file_path,
        )
        return RasterBand.from_array(name, data, transform=transform, **kwargs)

    def _no_data_value(self, dtype: np.dtype) -> float | None:
        nodata = self.dataset.nodata
        if nodata is None:
            return None
        if np.issubdtype(dtype, np.integer):
            return int(nodata)
        return float(nodata)

    def close(self):
        """Close file handle"""
        if self.dataset is not None:
            self.dataset.close()

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()

    def __repr__(self) -> str:
        """String representation"""
        if self.dataset.closed:
            return f"<GeoTIFFReader (closed): {self.file_path}>"
        return (
            f"<GeoTIFFReader: {self.file_path}>\n"
            f"  Size: {self.dataset.width} x {self.dataset.height}\n"
            f"  Bands: {self.dataset.count}\n"
            f"  CRS: {self.dataset.crs}"
        )


def read_band(path: str | Path, name: str, band_index: int = 1, **kwargs: Any) -> RasterBand:
    """
    Read one band of a GeoTIFF file

    Args:
        path: GeoTIFF path
        name: Band name
        band_index: Band index (1-based)
        **kwargs: Further band attributes

    Returns:
        RasterBand

    Examples:
        >>> band = read_band("T33UUP_B02_10m.tif", "B02")
        >>> band.raster_size
        (10980, 10980)
    """
    with GeoTIFFReader(path) as reader:
        return reader.to_band(name, band_index=band_index, **kwargs)


def write_band(band: RasterBand, path: str | Path, level: int = 0) -> Path:
    """
    Write one band to a single-band GeoTIFF file

    Reads the band's pixels (computing resampled tiles as needed).

    Args:
        band: Band to write
        path: Output path
        level: Pyramid level to write (0 = full resolution)

    Returns:
        Output path
    """
    path = Path(path)
    data = band.read(level=level)
    height, width = data.shape
    transform = band.multi_level_model.get_transform(level)
    crs = band.geocoding.crs if band.geocoding is not None else None
    if crs is None and band.product is not None and band.product.geocoding is not None:
        crs = band.product.geocoding.crs

    profile = {
        "driver": "GTiff",
        "width": width,
        "height": height,
        "count": 1,
        "dtype": data.dtype.name,
        "crs": crs,
        "transform": transform,
        "nodata": band.no_data_value,
    }
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(data, 1)
        dst.set_band_description(1, band.name)
    logger.info("Wrote band %s (%dx%d) to %s", band.name, width, height, path)
    return path


def read_product(
    paths: dict[str, str | Path],
    name: str = "product",
    product_type: str = "",
) -> Product:
    """
    Assemble a product from single-band GeoTIFF files

    Args:
        paths: GeoTIFF path by band name
        name: Product name
        product_type: Product type

    Returns:
        Product with one band per file; multi-size if the files differ in
        size

    Examples:
        >>> product = read_product({"B02": "B02_10m.tif", "B05": "B05_20m.tif"}, name="T33UUP")
        >>> product = resample(product, "B02", aggregation="Mean")
    """
    if not paths:
        raise ValidationError("At least one band path is required")
    product = Product(name, product_type)
    for band_name, path in paths.items():
        product.add_band(read_band(path, band_name))

    geocoded = [band for band in product.bands.values() if band.geocoding is not None]
    if geocoded:
        finest = min(geocoded, key=lambda band: abs(band.transform.a))
        product.geocoding = finest.geocoding
    logger.info(
        "Read product %s with %d bands (multi-size: %s)", name, len(product.bands), product.multi_size
    )
    return product

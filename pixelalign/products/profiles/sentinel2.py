"""
Sentinel-2 Product Profile

Implements ProductProfile for Sentinel-2 L2A (Surface Reflectance) data.
"""

import logging
from dataclasses import dataclass

import numpy as np
from affine import Affine
from numpy.typing import NDArray

from pixelalign.core.exceptions import ValidationError
from pixelalign.core.product import (
    FlagCoding,
    GeoCoding,
    IndexCoding,
    Mask,
    Product,
    RasterBand,
)

logger = logging.getLogger(__name__)

# Scene classification (SCL) values
SCL_CLASSES = {
    "no_data": 0,
    "saturated_or_defective": 1,
    "dark_area_pixels": 2,
    "cloud_shadows": 3,
    "vegetation": 4,
    "not_vegetated": 5,
    "water": 6,
    "unclassified": 7,
    "cloud_medium_probability": 8,
    "cloud_high_probability": 9,
    "thin_cirrus": 10,
    "snow": 11,
}

# Cloud mask (QA60) bits
QA60_FLAGS = {
    "opaque_clouds": 1 << 10,
    "cirrus_clouds": 1 << 11,
}


@dataclass(frozen=True)
class Sentinel2BandInfo:
    """
    Sentinel-2 band metadata

    Attributes:
        native_name: Sentinel-2 band name (e.g., "B04")
        standard_name: Standardized name (e.g., "red")
        wavelength: Center wavelength in nanometers
        resolution: Native spatial resolution in meters (10m, 20m or 60m)
        bandwidth: Spectral bandwidth in nanometers
    """

    native_name: str
    standard_name: str
    wavelength: float
    resolution: float
    bandwidth: float


@dataclass(frozen=True)
class Sentinel2L2A:
    """
    Sentinel-2 Level-2A Product Profile

    Surface Reflectance data with atmospheric correction.
    Source: ESA Copernicus program

    Specifications:
    - Sensor: MultiSpectral Instrument (MSI)
    - Provider: European Space Agency (ESA)
    - Native Resolution: 10m (for primary bands)
    - Radiometric Resolution: 12-bit

    Band Configuration:
    - 10m bands: Blue, Green, Red, NIR
    - 20m bands: Red Edge (3 bands), Narrow NIR, SWIR (2 bands),
      scene classification (scl)
    - 60m bands: Coastal aerosol, Water vapour, cloud mask (qa60)

    Data Format:
    - DN to Reflectance: DN * 0.0001
    - No-data value: 0
    - Valid range: 1 - 10000 (0.0001 - 1.0 reflectance)

    Products created from this profile are multi-size: every band keeps its
    native resolution until resampled.

    Examples:
        >>> from pixelalign.products.profiles import Sentinel2L2A
        >>> profile = Sentinel2L2A()
        >>> print(profile.bands['red'].resolution)
        10.0
        >>> product = profile.create_product(
        ...     {"B02": np.zeros((6, 6), np.uint16), "B05": np.zeros((3, 3), np.uint16)},
        ...     origin=(300000.0, 5000000.0),
        ...     crs="EPSG:32633",
        ... )
        >>> product.multi_size
        True
    """

    # Product identification
    product_id: str = "sentinel2_l2a"
    product_type: str = "S2_MSI_Level-2A"
    provider: str = "ESA"
    sensor: str = "MSI"
    native_resolution: float = 10.0  # Primary band resolution

    # Radiometric conversion
    scale_factor: float = 0.0001  # DN to reflectance
    offset: float = 0.0
    nodata: int = 0

    # Band specifications (immutable)
    bands: dict[str, Sentinel2BandInfo] = None

    # Resolutions of the classification and cloud mask bands
    scl_resolution: float = 20.0
    qa60_resolution: float = 60.0

    def __post_init__(self):
        """Initialize band definitions"""
        if self.bands is None:
            # Use object.__setattr__ because dataclass is frozen
            object.__setattr__(
                self,
                "bands",
                {
                    # 10m resolution bands
                    "blue": Sentinel2BandInfo("B02", "blue", 490.0, 10.0, 65.0),
                    "green": Sentinel2BandInfo("B03", "green", 560.0, 10.0, 35.0),
                    "red": Sentinel2BandInfo("B04", "red", 665.0, 10.0, 30.0),
                    "nir": Sentinel2BandInfo("B08", "nir", 842.0, 10.0, 115.0),
                    # 20m resolution bands
                    "red_edge_1": Sentinel2BandInfo("B05", "red_edge_1", 705.0, 20.0, 15.0),
                    "red_edge_2": Sentinel2BandInfo("B06", "red_edge_2", 740.0, 20.0, 15.0),
                    "red_edge_3": Sentinel2BandInfo("B07", "red_edge_3", 783.0, 20.0, 20.0),
                    "nir_narrow": Sentinel2BandInfo("B8A", "nir_narrow", 865.0, 20.0, 20.0),
                    "swir_1": Sentinel2BandInfo("B11", "swir_1", 1610.0, 20.0, 90.0),
                    "swir_2": Sentinel2BandInfo("B12", "swir_2", 2190.0, 20.0, 180.0),
                    # 60m resolution bands
                    "coastal": Sentinel2BandInfo("B01", "coastal", 443.0, 60.0, 20.0),
                    "water_vapour": Sentinel2BandInfo("B09", "water_vapour", 945.0, 60.0, 20.0),
                },
            )

    def get_band_by_native_name(self, native_name: str) -> Sentinel2BandInfo:
        """
        Get band info by Sentinel-2 native name (e.g., "B04")

        Args:
            native_name: Sentinel-2 band name (e.g., "B04", "B08")

        Returns:
            BandInfo for the specified band

        Raises:
            KeyError: If band name not found

        Examples:
            >>> profile = Sentinel2L2A()
            >>> band = profile.get_band_by_native_name('B04')
            >>> print(band.standard_name)
            'red'
        """
        for band_info in self.bands.values():
            if band_info.native_name == native_name:
                return band_info
        raise KeyError(f"Band '{native_name}' not found in Sentinel-2 profile")

    def get_bands_by_resolution(self, resolution: float) -> dict[str, Sentinel2BandInfo]:
        """
        Get all spectral bands of one resolution

        Args:
            resolution: 10.0, 20.0 or 60.0

        Returns:
            Dictionary of bands keyed by standard name
        """
        return {name: band for name, band in self.bands.items() if band.resolution == resolution}

    def get_10m_bands(self) -> dict[str, Sentinel2BandInfo]:
        return self.get_bands_by_resolution(10.0)

    def get_20m_bands(self) -> dict[str, Sentinel2BandInfo]:
        return self.get_bands_by_resolution(20.0)

    def get_60m_bands(self) -> dict[str, Sentinel2BandInfo]:
        return self.get_bands_by_resolution(60.0)

    def create_product(
        self,
        arrays: dict[str, NDArray],
        origin: tuple[float, float],
        crs: str,
        name: str | None = None,
    ) -> Product:
        """
        Assemble a multi-size product from per-band arrays

        Every band gets a north-up transform with its native pixel size and
        the common upper left corner ``origin``. Spectral bands carry the
        profile's no-data value and scaling, ``scl`` gets the scene
        classification index coding and ``qa60`` the cloud flag coding
        (with one mask per flag).

        Args:
            arrays: 2D arrays keyed by native ("B04") or standard ("red")
                band name, or "scl"/"qa60"
            origin: Map coordinates (x, y) of the upper left corner
            crs: CRS identifier (e.g. "EPSG:32633")
            name: Product name (default: product_id)

        Returns:
            Product with one band per array, named by native name

        Raises:
            ValidationError: If a band name is unknown
        """
        if not arrays:
            raise ValidationError("At least one band array is required")

        bands = []
        for key, array in arrays.items():
            if key == "scl":
                bands.append(self._create_scl_band(array, origin, crs))
            elif key == "qa60":
                bands.append(self._create_qa60_band(array, origin, crs))
            else:
                bands.append(self._create_spectral_band(key, array, origin, crs))

        finest = min(bands, key=lambda band: band.transform.a)
        product = Product(
            name or self.product_id,
            self.product_type,
            scene_raster_width=finest.width,
            scene_raster_height=finest.height,
        )
        for band in bands:
            product.add_band(band)
            if band.flag_coding is not None:
                product.flag_codings[band.flag_coding.name] = band.flag_coding
            if band.index_coding is not None:
                product.index_codings[band.index_coding.name] = band.index_coding

        if "qa60" in product.bands:
            for flag, mask_value in QA60_FLAGS.items():
                product.add_mask(
                    Mask(
                        name=flag,
                        expression=f"(qa60 & {mask_value}) != 0",
                        description=f"QA60 {flag.replace('_', ' ')}",
                    )
                )

        product.geocoding = GeoCoding(crs=crs, transform=finest.transform)
        product.auto_grouping = "B"
        product.metadata = {
            "profile": {
                "product_id": self.product_id,
                "provider": self.provider,
                "sensor": self.sensor,
                "scale_factor": self.scale_factor,
                "offset": self.offset,
            }
        }
        logger.info(
            "Created %s product %s with %d bands (multi-size: %s)",
            self.product_id, product.name, len(product.bands), product.multi_size,
        )
        return product

    def _resolve(self, key: str) -> Sentinel2BandInfo:
        if key in self.bands:
            return self.bands[key]
        try:
            return self.get_band_by_native_name(key)
        except KeyError:
            raise ValidationError(f"Unknown Sentinel-2 L2A band: {key}") from None

    @staticmethod
    def _transform(resolution: float, origin: tuple[float, float]) -> Affine:
        return Affine(resolution, 0.0, origin[0], 0.0, -resolution, origin[1])

    def _create_spectral_band(self, key, array, origin, crs) -> RasterBand:
        info = self._resolve(key)
        transform = self._transform(info.resolution, origin)
        return RasterBand.from_array(
            info.native_name,
            np.asarray(array),
            transform=transform,
            no_data_value=self.nodata,
            geocoding=GeoCoding(crs=crs, transform=transform),
            description=info.standard_name,
            spectral_wavelength=info.wavelength,
            spectral_bandwidth=info.bandwidth,
            scaling_factor=self.scale_factor,
            scaling_offset=self.offset,
        )

    def _create_scl_band(self, array, origin, crs) -> RasterBand:
        transform = self._transform(self.scl_resolution, origin)
        return RasterBand.from_array(
            "scl",
            np.asarray(array),
            transform=transform,
            no_data_value=SCL_CLASSES["no_data"],
            index_coding=IndexCoding("scl", dict(SCL_CLASSES)),
            geocoding=GeoCoding(crs=crs, transform=transform),
            description="Scene classification",
        )

    def _create_qa60_band(self, array, origin, crs) -> RasterBand:
        transform = self._transform(self.qa60_resolution, origin)
        return RasterBand.from_array(
            "qa60",
            np.asarray(array),
            transform=transform,
            flag_coding=FlagCoding("qa60", dict(QA60_FLAGS)),
            geocoding=GeoCoding(crs=crs, transform=transform),
            description="Cloud mask",
        )

    def __repr__(self) -> str:
        """String representation"""
        return (
            f"<Sentinel2L2A>\n"
            f"Provider: {self.provider}\n"
            f"Sensor: {self.sensor}\n"
            f"Native Resolution: {self.native_resolution}m\n"
            f"Bands: {len(self.bands)} ({len(self.get_10m_bands())} @ 10m, "
            f"{len(self.get_20m_bands())} @ 20m, {len(self.get_60m_bands())} @ 60m)"
        )

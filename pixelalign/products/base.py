"""
Product profile protocols

A profile knows the native resolution of every band of a multi-resolution
sensor and assembles a multi-size Product from per-band arrays.
"""

from typing import Protocol, runtime_checkable

from numpy.typing import NDArray

from pixelalign.core.product import Product


@runtime_checkable
class BandInfo(Protocol):
    """
    Band of a multi-resolution sensor

    Attributes:
        native_name: Band name in the product (e.g., "B05")
        standard_name: Sensor-independent name (e.g., "red_edge_1")
        wavelength: Center wavelength in nanometers
        resolution: Native pixel size in meters
        bandwidth: Spectral bandwidth in nanometers
    """

    native_name: str
    standard_name: str
    wavelength: float
    resolution: float
    bandwidth: float


@runtime_checkable
class ProductProfile(Protocol):
    """
    Multi-resolution product definition

    Attributes:
        product_id: Unique identifier (e.g., "sentinel2_l2a")
        product_type: Product type given to assembled products
        native_resolution: Finest pixel size in meters
        bands: BandInfo by standard name
        nodata: No-data value of spectral bands
    """

    product_id: str
    product_type: str
    native_resolution: float
    bands: dict[str, BandInfo]
    nodata: int

    def get_bands_by_resolution(self, resolution: float) -> dict[str, BandInfo]:
        """Bands with the given native pixel size"""
        ...

    def create_product(
        self,
        arrays: dict[str, NDArray],
        origin: tuple[float, float],
        crs: str,
        name: str | None = None,
    ) -> Product:
        """Assemble a (multi-size) product from per-band arrays"""
        ...

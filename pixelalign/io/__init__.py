"""
PixelAlign I/O Module

GeoTIFF reading and writing of bands and products.
"""

from pixelalign.io.geotiff import GeoTIFFReader, read_band, read_product, write_band

__all__ = ["GeoTIFFReader", "read_band", "read_product", "write_band"]

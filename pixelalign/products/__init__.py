"""
PixelAlign Products Module

Satellite product profiles and band information.
"""

from pixelalign.products.base import BandInfo, ProductProfile
from pixelalign.products.profiles import Sentinel2BandInfo, Sentinel2L2A

__all__ = [
    "BandInfo",
    "ProductProfile",
    "Sentinel2BandInfo",
    "Sentinel2L2A",
]

"""
Product Profiles

Satellite product profile implementations.
"""

from pixelalign.products.profiles.sentinel2 import Sentinel2BandInfo, Sentinel2L2A

__all__ = [
    "Sentinel2BandInfo",
    "Sentinel2L2A",
]

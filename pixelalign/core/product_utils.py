"""
Product utilities

Copy operations between products. Each function adds entities to the target
product and returns nothing the resampling core needs.
"""

import copy
import dataclasses
import logging

from pixelalign.core.product import (
    GeoCoding,
    Mask,
    Product,
    RasterBand,
    TiePointGrid,
)

logger = logging.getLogger(__name__)

# Descriptive band properties carried over to copies and resampled bands
_RASTER_PROPERTIES = (
    "no_data_value",
    "flag_coding",
    "index_coding",
    "unit",
    "description",
    "spectral_wavelength",
    "spectral_bandwidth",
    "scaling_factor",
    "scaling_offset",
    "valid_pixel_expression",
)


def copy_raster_properties(source: RasterBand, target: RasterBand) -> None:
    """Copy descriptive properties (unit, no-data, codings, ...) between bands"""
    for name in _RASTER_PROPERTIES:
        setattr(target, name, copy.copy(getattr(source, name)))


def copy_band(source: RasterBand, target_product: Product, **changes) -> RasterBand:
    """
    Add a copy of a stored band to a product

    The copy shares the source pixel pyramid unless ``source_image`` is
    given in ``changes``.

    Returns:
        The added band
    """
    band = dataclasses.replace(source, product=None, **changes)
    target_product.add_band(band)
    return band


def copy_virtual_band(source: RasterBand, target_product: Product, **changes) -> RasterBand:
    """
    Add a copy of a virtual band to a product

    The copy keeps the expression and evaluates it over the bands of the
    target product.

    Returns:
        The added band
    """
    band = dataclasses.replace(source, product=None, source_image=None, **changes)
    target_product.add_band(band)
    return band


def copy_tie_point_grid(source: TiePointGrid, target_product: Product) -> TiePointGrid:
    """Add an unchanged copy of a tie-point grid to a product"""
    grid = dataclasses.replace(source, tie_points=source.tie_points.copy(), product=None)
    target_product.add_tie_point_grid(grid)
    return grid


def copy_flag_codings(source: Product, target: Product) -> None:
    for name, coding in source.flag_codings.items():
        target.flag_codings[name] = copy.deepcopy(coding)


def copy_index_codings(source: Product, target: Product) -> None:
    for name, coding in source.index_codings.items():
        target.index_codings[name] = copy.deepcopy(coding)


def copy_metadata(source: Product, target: Product) -> None:
    """Deep-copy the metadata tree"""
    target.metadata = copy.deepcopy(source.metadata)


def copy_vector_data(source: Product, target: Product) -> None:
    for name, data in source.vector_data.items():
        if name not in target.vector_data:
            target.vector_data[name] = copy.deepcopy(data)


def copy_masks(source: Product, target: Product) -> None:
    """
    Re-create band-maths masks at the target scene size

    Masks are copied by expression, so they evaluate over the target bands.
    """
    for mask in source.masks.values():
        if mask.name in target.masks:
            logger.debug("Mask %s already present in %s", mask.name, target.name)
            continue
        target.add_mask(
            Mask(
                name=mask.name,
                expression=mask.expression,
                color=mask.color,
                transparency=mask.transparency,
                description=mask.description,
                width=target.scene_raster_width,
                height=target.scene_raster_height,
            )
        )


def transfer_geocoding(reference: RasterBand, target: Product) -> None:
    """
    Give the target product the geocoding of the reference band

    Falls back to the source product geocoding if the reference band has
    none of its own.
    """
    geocoding = reference.geocoding
    if geocoding is None and reference.product is not None:
        geocoding = reference.product.geocoding
    if geocoding is None:
        logger.debug("Reference band %s has no geocoding to transfer", reference.name)
        return
    target.geocoding = GeoCoding(crs=geocoding.crs, transform=reference.transform)

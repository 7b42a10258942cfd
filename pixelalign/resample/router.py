"""
Resample router

Resamples a multi-size product to the size and resolution of one reference
band. Per band, the router compares the source and reference raster sizes
axis by axis and selects one of four strategies:

- IDENTITY: sizes are equal (or the band is virtual); pixels are reused and
  only the image-to-model transform is rewritten
- AGGREGATE: no axis grows; downsample
- INTERPOLATE: no axis shrinks; upsample
- TWO_PASS_AGGREGATE_THEN_INTERPOLATE: one axis shrinks and the other grows;
  aggregate the shrinking axis into an intermediate image, then interpolate
  the other axis

Tie-point grids are re-parametrized instead of resampled. Codings,
metadata, geocoding, vector data and masks are copied to the target product.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING

from affine import Affine

from pixelalign.core import product_utils
from pixelalign.core.exceptions import (
    MissingReferenceBandError,
    NonIdentitySceneTransformError,
    ResamplingError,
)
from pixelalign.core.product import (
    Product,
    RasterBand,
    has_identity_scene_transform,
)
from pixelalign.image.pyramid import MultiLevelImage, MultiLevelModel
from pixelalign.resample.aggregation import create_aggregated_image
from pixelalign.resample.interpolation import create_interpolated_image
from pixelalign.resample.tiepoint import resample_tie_point_grid
from pixelalign.resample.types import AggregationType

if TYPE_CHECKING:
    from pixelalign.core.config import ResamplingConfig

logger = logging.getLogger(__name__)

NAME_EXTENSION = "resampled"


class ResampleState(Enum):
    """Resampling strategy of one band"""

    IDENTITY = "identity"
    AGGREGATE = "aggregate"
    INTERPOLATE = "interpolate"
    TWO_PASS_AGGREGATE_THEN_INTERPOLATE = "two_pass_aggregate_then_interpolate"


def select_state(
    source_size: tuple[int, int], reference_size: tuple[int, int], is_virtual: bool = False
) -> ResampleState:
    """
    Select the resampling strategy of a band

    Sizes are compared in pixel counts only.

    Args:
        source_size: (width, height) of the band
        reference_size: (width, height) of the reference band
        is_virtual: Whether the band is virtual

    Returns:
        ResampleState

    Examples:
        >>> select_state((100, 100), (50, 50))
        <ResampleState.AGGREGATE: 'aggregate'>
        >>> select_state((200, 50), (100, 100))
        <ResampleState.TWO_PASS_AGGREGATE_THEN_INTERPOLATE: 'two_pass_aggregate_then_interpolate'>
    """
    source_width, source_height = source_size
    reference_width, reference_height = reference_size
    if is_virtual or source_size == reference_size:
        return ResampleState.IDENTITY
    if reference_width <= source_width and reference_height <= source_height:
        return ResampleState.AGGREGATE
    if reference_width >= source_width and reference_height >= source_height:
        return ResampleState.INTERPOLATE
    return ResampleState.TWO_PASS_AGGREGATE_THEN_INTERPOLATE


def can_be_applied(product: Product) -> bool:
    """Whether all bands and grids have an identity model-to-scene transform"""
    nodes = list(product.bands.values()) + list(product.tie_point_grids.values())
    return all(has_identity_scene_transform(node) for node in nodes)


class ResampleRouter:
    """
    Resamples all bands and tie-point grids of a product to a reference band

    Attributes:
        config: Resampling parameters

    Examples:
        >>> router = ResampleRouter(ResamplingConfig("B02", aggregation_method="Mean"))
        >>> target = router.resample(product)
        >>> target.multi_size
        False
    """

    def __init__(self, config: "ResamplingConfig"):
        self.config = config

    def resample(self, source: Product) -> Product:
        """
        Resample a product

        Args:
            source: Source product (not modified)

        Returns:
            The source product itself if it is not multi-size, otherwise a
            new product in which every band and grid has the reference size

        Raises:
            NonIdentitySceneTransformError: If a band/grid has a
                non-identity model-to-scene transform
            MissingReferenceBandError: If the reference band does not exist
            NonInvertibleTransformError: If a transform is singular
            InvalidInterpolationMethodError: If a band needs upsampling and
                the interpolation method is invalid
            InvalidAggregationMethodError: If a band needs downsampling and
                the (flag) aggregation method is invalid
        """
        if not source.multi_size:
            logger.info("Product %s is not multi-size, nothing to resample", source.name)
            return source

        self._check_scene_transforms(source)
        reference = source.get_band(self.config.reference_band_name)
        if reference is None:
            raise MissingReferenceBandError(
                f"Reference band '{self.config.reference_band_name}' not found in product "
                f"'{source.name}' (bands: {', '.join(source.bands)})",
                node_name=self.config.reference_band_name,
            )

        logger.info(
            "Resampling product %s to %dx%d of reference band %s",
            source.name, reference.width, reference.height, reference.name,
        )
        target = Product(
            f"{source.name}_{NAME_EXTENSION}",
            source.product_type,
            reference.width,
            reference.height,
        )
        reference_model = reference.multi_level_model

        for band in source.bands.values():
            self._add_resampled_band(band, reference, reference_model, target)
        for grid in source.tie_point_grids.values():
            target.add_tie_point_grid(resample_tie_point_grid(grid, reference))

        product_utils.copy_flag_codings(source, target)
        product_utils.copy_index_codings(source, target)
        product_utils.copy_metadata(source, target)
        product_utils.transfer_geocoding(reference, target)
        product_utils.copy_vector_data(source, target)
        product_utils.copy_masks(source, target)
        target.auto_grouping = source.auto_grouping

        logger.info(
            "Resampled %d bands and %d tie-point grids of %s",
            len(target.bands), len(target.tie_point_grids), source.name,
        )
        return target

    @staticmethod
    def _check_scene_transforms(product: Product) -> None:
        nodes = list(product.bands.values()) + list(product.tie_point_grids.values())
        for node in nodes:
            if not has_identity_scene_transform(node):
                raise NonIdentitySceneTransformError(
                    f"Node '{node.name}' of product '{product.name}' has a non-identity "
                    f"model-to-scene transform",
                    node_name=node.name,
                )

    def _add_resampled_band(
        self,
        band: RasterBand,
        reference: RasterBand,
        reference_model: MultiLevelModel,
        target: Product,
    ) -> None:
        state = select_state(band.raster_size, reference.raster_size, band.is_virtual)
        logger.debug(
            "Band %s (%dx%d -> %dx%d): %s",
            band.name, band.width, band.height, reference.width, reference.height, state.value,
        )

        if state is ResampleState.IDENTITY:
            if band.is_virtual:
                resampled = product_utils.copy_virtual_band(
                    band,
                    target,
                    width=reference.width,
                    height=reference.height,
                    transform=reference.transform,
                )
            else:
                image = band.get_source_image().with_model(reference_model)
                resampled = product_utils.copy_band(
                    band, target, transform=reference.transform, source_image=image
                )
            resampled.geocoding = reference.geocoding
            return

        try:
            image = self.resample_image(band, reference, reference_model, state)
        except ResamplingError as e:
            if e.node_name is not None and e.node_name == band.name:
                raise
            raise type(e)(f"Cannot resample band '{band.name}': {e}", node_name=band.name) from e

        resampled = RasterBand(
            name=band.name,
            width=reference.width,
            height=reference.height,
            data_type=band.data_type,
            transform=reference.transform,
            scene_transform=band.scene_transform,
            geocoding=reference.geocoding,
            source_image=image,
        )
        product_utils.copy_raster_properties(band, resampled)
        target.add_band(resampled)

    def resample_image(
        self,
        band: RasterBand,
        reference: RasterBand,
        reference_model: MultiLevelModel,
        state: ResampleState,
    ) -> MultiLevelImage:
        """
        Build the resampled pixel pyramid of a band

        Args:
            band: Source band (stored)
            reference: Reference band
            reference_model: Target pyramid geometry
            state: Strategy from :func:`select_state` (not IDENTITY)

        Returns:
            Lazy pyramid with the reference band's size
        """
        source_image = band.get_source_image()
        no_data = band.no_data_value

        if state is ResampleState.AGGREGATE:
            return create_aggregated_image(
                source_image, reference_model, no_data, self._aggregation_type(band), name=band.name
            )
        if state is ResampleState.INTERPOLATE:
            return create_interpolated_image(
                source_image, reference_model, no_data, self.config.interpolation_type, name=band.name
            )
        if state is ResampleState.TWO_PASS_AGGREGATE_THEN_INTERPOLATE:
            intermediate_model = self._intermediate_model(band, reference)
            intermediate = create_aggregated_image(
                source_image, intermediate_model, no_data, self._aggregation_type(band), name=band.name
            )
            return create_interpolated_image(
                intermediate, reference_model, no_data, self.config.interpolation_type, name=band.name
            )
        raise ValueError(f"No resampling needed for state {state}")

    def _aggregation_type(self, band: RasterBand) -> AggregationType | None:
        # Flag and non-flag methods are never substituted for one another
        if band.is_flag_band:
            return self.config.flag_aggregation_type
        return self.config.aggregation_type

    @staticmethod
    def _intermediate_model(band: RasterBand, reference: RasterBand) -> MultiLevelModel:
        """
        Geometry of the intermediate image of a two-pass band

        The shrinking axis takes the reference's size and transform row, the
        growing axis keeps the source's.
        """
        source_t = band.transform
        reference_t = reference.transform
        if reference.width < band.width:
            transform = Affine(
                reference_t.a, reference_t.b, reference_t.c, source_t.d, source_t.e, source_t.f
            )
            width, height = reference.width, band.height
        else:
            transform = Affine(
                source_t.a, source_t.b, source_t.c, reference_t.d, reference_t.e, reference_t.f
            )
            width, height = band.width, reference.height
        return MultiLevelModel(transform, width, height)

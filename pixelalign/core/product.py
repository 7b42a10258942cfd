"""
Product data model

Bands, tie-point grids, masks and codings of a (possibly multi-size)
raster product.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from affine import Affine
from numpy.typing import DTypeLike, NDArray

from pixelalign.core.exceptions import ValidationError
from pixelalign.geometry.affine import IDENTITY, is_identity
from pixelalign.image.pyramid import MultiLevelImage, MultiLevelModel

logger = logging.getLogger(__name__)


@dataclass
class GeoCoding:
    """
    Map geocoding of a raster

    Attributes:
        crs: CRS identifier (e.g. "EPSG:32633")
        transform: Image-to-map transform
    """

    crs: str
    transform: Affine = IDENTITY


@dataclass
class FlagCoding:
    """
    Named bit masks of a flag band

    Examples:
        >>> FlagCoding("qa60", {"opaque_clouds": 1 << 10, "cirrus_clouds": 1 << 11})
    """

    name: str
    flags: dict[str, int] = field(default_factory=dict)


@dataclass
class IndexCoding:
    """Named values of a classification band"""

    name: str
    indexes: dict[str, int] = field(default_factory=dict)


@dataclass
class Mask:
    """
    Band-maths mask

    Attributes:
        name: Mask name
        expression: Band-maths expression evaluating to a boolean raster
        color: RGB display color
        transparency: Display transparency in [0, 1]
        description: Human-readable description
        width: Raster width of the mask (None: product scene width)
        height: Raster height of the mask (None: product scene height)
    """

    name: str
    expression: str
    color: tuple[int, int, int] = (255, 0, 0)
    transparency: float = 0.5
    description: str = ""
    width: int | None = None
    height: int | None = None


def has_identity_scene_transform(node) -> bool:
    """Check that a band/grid maps model coordinates 1:1 to scene coordinates"""
    transform = node.scene_transform
    if transform is None:
        return True
    return isinstance(transform, Affine) and is_identity(transform)


@dataclass(eq=False)
class RasterBand:
    """
    Single raster band

    A band is either stored (pixels come from ``source_image``) or virtual
    (pixels are computed from ``expression`` over the other bands of the
    owning product).

    Attributes:
        name: Band name
        width: Raster width in pixels
        height: Raster height in pixels
        data_type: Pixel data type
        transform: Image-to-model transform
        no_data_value: No-data value (None: no no-data value used)
        flag_coding: Flag coding (makes this a flag band)
        index_coding: Index coding of classification bands
        expression: Band-maths expression (makes this a virtual band)
        scene_transform: Model-to-scene transform (None: identity)
        geocoding: Map geocoding
        source_image: Pixel pyramid of stored bands

    Examples:
        >>> band = RasterBand.from_array("B02", np.zeros((100, 100), np.uint16),
        ...                              transform=Affine(10, 0, 300000, 0, -10, 5000000))
        >>> band.raster_size
        (100, 100)
    """

    name: str
    width: int
    height: int
    data_type: DTypeLike = np.float32
    transform: Affine = IDENTITY
    no_data_value: float | None = None
    flag_coding: FlagCoding | None = None
    index_coding: IndexCoding | None = None
    expression: str | None = None
    scene_transform: Any = None
    geocoding: GeoCoding | None = None
    unit: str = ""
    description: str = ""
    spectral_wavelength: float = 0.0
    spectral_bandwidth: float = 0.0
    scaling_factor: float = 1.0
    scaling_offset: float = 0.0
    valid_pixel_expression: str | None = None
    source_image: MultiLevelImage | None = field(default=None, repr=False)
    product: "Product | None" = field(default=None, repr=False)

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValidationError(
                f"Band '{self.name}' must have a positive size, got {self.width}x{self.height}"
            )
        self.data_type = np.dtype(self.data_type)
        if self.source_image is not None:
            if (self.source_image.width, self.source_image.height) != (self.width, self.height):
                raise ValidationError(
                    f"Band '{self.name}' is {self.width}x{self.height} but its image is "
                    f"{self.source_image.width}x{self.source_image.height}"
                )
        self._virtual_image: MultiLevelImage | None = None

    @classmethod
    def from_array(
        cls,
        name: str,
        array: NDArray,
        transform: Affine = IDENTITY,
        level_count: int | None = None,
        **kwargs: Any,
    ) -> "RasterBand":
        """
        Create a stored band from an in-memory 2D array

        Args:
            name: Band name
            array: Pixels, shape (height, width)
            transform: Image-to-model transform
            level_count: Pyramid level count (default: derived from size)
            **kwargs: Further band attributes (no_data_value, flag_coding, ...)

        Returns:
            RasterBand
        """
        data = np.asarray(array)
        if data.ndim != 2:
            raise ValidationError(f"Band '{name}' needs a 2D array, got shape {data.shape}")
        image = MultiLevelImage.from_array(data, transform, level_count=level_count)
        height, width = data.shape
        return cls(
            name=name,
            width=width,
            height=height,
            data_type=data.dtype,
            transform=transform,
            source_image=image,
            **kwargs,
        )

    @property
    def is_flag_band(self) -> bool:
        return self.flag_coding is not None

    @property
    def is_virtual(self) -> bool:
        return self.expression is not None

    @property
    def raster_size(self) -> tuple[int, int]:
        """(width, height)"""
        return (self.width, self.height)

    @property
    def multi_level_model(self) -> MultiLevelModel:
        """Pyramid geometry of the band"""
        if self.source_image is not None:
            return self.source_image.model
        return MultiLevelModel(self.transform, self.width, self.height)

    def get_source_image(self) -> MultiLevelImage:
        """
        Pixel pyramid of the band

        Virtual bands build theirs on first access from the bands of the
        owning product.

        Raises:
            ValidationError: If a stored band has no image, or a virtual
                band is not part of a product
        """
        if self.source_image is not None:
            return self.source_image
        if not self.is_virtual:
            raise ValidationError(f"Band '{self.name}' has no pixel data")
        if self._virtual_image is None:
            if self.product is None:
                raise ValidationError(f"Virtual band '{self.name}' is not part of a product")
            from pixelalign.core.bandmath import create_virtual_image

            self._virtual_image = create_virtual_image(self, self.product)
        return self._virtual_image

    def read(self, level: int = 0, max_workers: int | None = None) -> NDArray:
        """
        Read all pixels of one resolution level

        Args:
            level: Pyramid level (0 = full resolution)
            max_workers: Threads reading tiles in parallel

        Returns:
            Array of shape (height, width) at that level
        """
        return self.get_source_image().to_array(level=level, max_workers=max_workers)

    def to_xarray(self, level: int = 0):
        """
        Read the band as labelled xarray.DataArray

        Coordinates are the model coordinates of the pixel centres.
        """
        import xarray as xr

        data = self.read(level=level)
        transform = self.multi_level_model.get_transform(level)
        height, width = data.shape
        return xr.DataArray(
            data,
            dims=("y", "x"),
            coords={
                "y": transform.f + transform.e * (np.arange(height) + 0.5),
                "x": transform.c + transform.a * (np.arange(width) + 0.5),
            },
            name=self.name,
            attrs=self._attrs(),
        )

    def _attrs(self) -> dict[str, Any]:
        attrs: dict[str, Any] = {
            "transform": tuple(self.transform)[:6],
            "unit": self.unit,
            "description": self.description,
        }
        if self.no_data_value is not None:
            attrs["_FillValue"] = self.no_data_value
        if self.flag_coding is not None:
            attrs["flag_masks"] = list(self.flag_coding.flags.values())
            attrs["flag_meanings"] = " ".join(self.flag_coding.flags)
        if self.expression is not None:
            attrs["expression"] = self.expression
        return attrs


@dataclass(eq=False)
class TiePointGrid:
    """
    Coarse lattice of values (e.g. geolocation or angles)

    Tie point ``(i, j)`` sits at pixel coordinate
    ``(offset_x + i * sub_sampling_x, offset_y + j * sub_sampling_y)`` of the
    raster the grid describes.

    Attributes:
        name: Grid name
        grid_width: Number of tie points per row
        grid_height: Number of tie point rows
        offset_x, offset_y: Pixel coordinate of the first tie point
        sub_sampling_x, sub_sampling_y: Pixel distance between tie points
        tie_points: Values, shape (grid_height, grid_width)
        raster_width, raster_height: Size of the described raster (default:
            the scene size of the owning product, or
            ``round(2 * offset + (grid - 1) * sub_sampling)`` outside a product)
        transform: Image-to-model transform of the described raster
        scene_transform: Model-to-scene transform (None: identity)
    """

    name: str
    grid_width: int
    grid_height: int
    offset_x: float
    offset_y: float
    sub_sampling_x: float
    sub_sampling_y: float
    tie_points: NDArray = field(repr=False)
    raster_width: int | None = None
    raster_height: int | None = None
    transform: Affine = IDENTITY
    scene_transform: Any = None
    unit: str = ""
    description: str = ""
    product: "Product | None" = field(default=None, repr=False)
    # Raster size computed from the lattice rather than given
    size_derived: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.sub_sampling_x <= 0 or self.sub_sampling_y <= 0:
            raise ValidationError(
                f"Tie-point grid '{self.name}' needs positive sub-sampling, got "
                f"({self.sub_sampling_x}, {self.sub_sampling_y})"
            )
        if self.grid_width <= 0 or self.grid_height <= 0:
            raise ValidationError(f"Tie-point grid '{self.name}' must not be empty")
        points = np.asarray(self.tie_points, dtype=np.float32)
        if points.size != self.grid_width * self.grid_height:
            raise ValidationError(
                f"Tie-point grid '{self.name}' has {points.size} values, expected "
                f"{self.grid_width}x{self.grid_height}"
            )
        self.tie_points = points.reshape(self.grid_height, self.grid_width)
        self.size_derived = self.raster_width is None and self.raster_height is None
        if self.raster_width is None:
            self.raster_width = max(
                1, int(round(2 * self.offset_x + (self.grid_width - 1) * self.sub_sampling_x))
            )
        if self.raster_height is None:
            self.raster_height = max(
                1, int(round(2 * self.offset_y + (self.grid_height - 1) * self.sub_sampling_y))
            )

    @property
    def raster_size(self) -> tuple[int, int]:
        """(width, height)"""
        return (self.raster_width, self.raster_height)

    def get_pixels(
        self, x: int = 0, y: int = 0, width: int | None = None, height: int | None = None
    ) -> NDArray:
        """
        Evaluate the grid at pixel centres by bilinear interpolation

        Positions outside the lattice take the value of the nearest edge.

        Args:
            x, y: Upper left pixel of the window
            width, height: Window size (default: up to the raster edge)

        Returns:
            float32 array of shape (height, width)
        """
        width = self.raster_width - x if width is None else width
        height = self.raster_height - y if height is None else height
        fi, i0, i1 = self._lattice_positions(x, width, self.offset_x, self.sub_sampling_x, self.grid_width)
        fj, j0, j1 = self._lattice_positions(y, height, self.offset_y, self.sub_sampling_y, self.grid_height)
        p = self.tie_points.astype(np.float64)
        top = p[j0][:, i0] * (1 - fi) + p[j0][:, i1] * fi
        bottom = p[j1][:, i0] * (1 - fi) + p[j1][:, i1] * fi
        return (top * (1 - fj)[:, None] + bottom * fj[:, None]).astype(np.float32)

    @staticmethod
    def _lattice_positions(start, count, offset, sub_sampling, size):
        pos = (np.arange(start, start + count) + 0.5 - offset) / sub_sampling
        pos = np.clip(pos, 0, size - 1)
        i0 = np.minimum(np.floor(pos).astype(np.int64), max(size - 2, 0))
        i1 = np.minimum(i0 + 1, size - 1)
        return pos - i0, i0, i1


class Product:
    """
    Raster product with bands and tie-point grids of possibly different sizes

    Attributes:
        name: Product name
        product_type: Product type (e.g. "S2_MSI_Level-2A")
        bands: Bands by name, in insertion order
        tie_point_grids: Tie-point grids by name
        masks: Masks by name
        flag_codings: Flag codings by name
        index_codings: Index codings by name
        metadata: Nested metadata dictionary
        vector_data: Vector data containers by name
        auto_grouping: Band auto-grouping pattern
        geocoding: Product geocoding

    Examples:
        >>> product = Product("S2A_tile", "S2_MSI_Level-2A")
        >>> product.add_band(RasterBand.from_array("B02", np.zeros((4, 4))))
        >>> product.add_band(RasterBand.from_array("B05", np.zeros((2, 2))))
        >>> product.multi_size
        True
    """

    def __init__(
        self,
        name: str,
        product_type: str = "",
        scene_raster_width: int | None = None,
        scene_raster_height: int | None = None,
    ):
        self.name = name
        self.product_type = product_type
        self._scene_raster_width = scene_raster_width
        self._scene_raster_height = scene_raster_height
        self.bands: dict[str, RasterBand] = {}
        self.tie_point_grids: dict[str, TiePointGrid] = {}
        self.masks: dict[str, Mask] = {}
        self.flag_codings: dict[str, FlagCoding] = {}
        self.index_codings: dict[str, IndexCoding] = {}
        self.metadata: dict[str, Any] = {}
        self.vector_data: dict[str, Any] = {}
        self.auto_grouping: str | None = None
        self.geocoding: GeoCoding | None = None

    @property
    def scene_raster_width(self) -> int:
        """Scene width (default: width of the first band)"""
        if self._scene_raster_width is not None:
            return self._scene_raster_width
        return next(iter(self.bands.values())).width if self.bands else 0

    @property
    def scene_raster_height(self) -> int:
        """Scene height (default: height of the first band)"""
        if self._scene_raster_height is not None:
            return self._scene_raster_height
        return next(iter(self.bands.values())).height if self.bands else 0

    @property
    def band_names(self) -> list[str]:
        return list(self.bands)

    @property
    def multi_size(self) -> bool:
        """Whether bands and tie-point grids differ in raster size"""
        sizes = {band.raster_size for band in self.bands.values()}
        sizes.update(grid.raster_size for grid in self.tie_point_grids.values())
        return len(sizes) > 1

    def _check_name(self, name: str) -> None:
        if name in self.bands or name in self.tie_point_grids:
            raise ValidationError(f"Product '{self.name}' already contains a node '{name}'")

    def add_band(self, band: RasterBand) -> None:
        """Add a band; the band becomes owned by this product"""
        self._check_name(band.name)
        band.product = self
        self.bands[band.name] = band
        if len(self.bands) == 1:
            for grid in self.tie_point_grids.values():
                self._fit_to_scene(grid)

    def get_band(self, name: str) -> RasterBand | None:
        return self.bands.get(name)

    def add_tie_point_grid(self, grid: TiePointGrid) -> None:
        """
        Add a tie-point grid; the grid becomes owned by this product

        A grid created without a raster size describes the product scene.
        """
        self._check_name(grid.name)
        grid.product = self
        self._fit_to_scene(grid)
        self.tie_point_grids[grid.name] = grid

    def _fit_to_scene(self, grid: TiePointGrid) -> None:
        width, height = self.scene_raster_width, self.scene_raster_height
        if not grid.size_derived or width <= 0 or height <= 0:
            return
        logger.debug(
            "Tie-point grid %s takes scene size %dx%d (was %dx%d)",
            grid.name, width, height, grid.raster_width, grid.raster_height,
        )
        grid.raster_width, grid.raster_height = width, height
        grid.size_derived = False

    def get_tie_point_grid(self, name: str) -> TiePointGrid | None:
        return self.tie_point_grids.get(name)

    def add_mask(self, mask: Mask) -> None:
        if mask.name in self.masks:
            raise ValidationError(f"Product '{self.name}' already contains a mask '{mask.name}'")
        self.masks[mask.name] = mask

    def read_mask(self, name: str) -> NDArray:
        """Evaluate a band-maths mask to a boolean array"""
        from pixelalign.core.bandmath import evaluate_expression

        mask = self.masks[name]
        arrays = {band_name: band.read() for band_name, band in self.bands.items()}
        return np.asarray(evaluate_expression(mask.expression, arrays), dtype=bool)

    def to_xarray(self):
        """
        Read all bands and tie-point grids into an xarray.Dataset

        Returns:
            xr.Dataset with dims (y, x) and one variable per band/grid

        Raises:
            ValidationError: If the product is multi-size
        """
        import xarray as xr

        if self.multi_size:
            raise ValidationError(
                f"Product '{self.name}' is multi-size; resample it before converting to xarray"
            )
        arrays = {name: band.to_xarray() for name, band in self.bands.items()}
        if arrays:
            coords = next(iter(arrays.values())).coords
            for name, grid in self.tie_point_grids.items():
                arrays[name] = xr.DataArray(
                    grid.get_pixels(), dims=("y", "x"), coords=coords, name=name
                )
        attrs = {"product_name": self.name, "product_type": self.product_type}
        if self.geocoding is not None:
            attrs["crs"] = self.geocoding.crs
        return xr.Dataset(arrays, attrs=attrs)

    def __repr__(self) -> str:
        return (
            f"<Product '{self.name}'>\n"
            f"Type: {self.product_type}\n"
            f"Scene size: {self.scene_raster_width}x{self.scene_raster_height}\n"
            f"Bands: {len(self.bands)} ({', '.join(self.bands)})\n"
            f"Tie-point grids: {len(self.tie_point_grids)}\n"
            f"Multi-size: {self.multi_size}"
        )

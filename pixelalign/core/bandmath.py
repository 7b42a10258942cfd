"""
Band Math for virtual bands and xarray Datasets.

Evaluates band math expressions over bands referenced by name (or by index
b0, b1, ... in the xarray accessor). Virtual bands are evaluated lazily,
tile by tile, from the tiles of the bands they reference.

Usage:
    >>> band = RasterBand("ndvi", 100, 100, expression="(B08 - B04) / (B08 + B04)")
    >>> product.add_band(band)
    >>> band.read()
    >>>
    >>> ds = product.to_xarray()
    >>> ndvi = ds.bandmath("(B08 - B04) / (B08 + B04)")
"""

from typing import TYPE_CHECKING, Any

import numpy as np
import xarray as xr
from numpy.typing import NDArray

from pixelalign.core.exceptions import ValidationError
from pixelalign.image.pyramid import MultiLevelImage, MultiLevelModel
from pixelalign.image.tiled import TiledImage

if TYPE_CHECKING:
    from pixelalign.core.product import Product, RasterBand


def referenced_names(expression: str) -> list[str]:
    """
    Names used by an expression (band candidates)

    Examples:
        >>> referenced_names("(B08 - B04) / (B08 + B04)")
        ['B08', 'B04']
    """
    try:
        code = compile(expression, "<expression>", "eval")
    except SyntaxError as e:
        raise ValidationError(f"Invalid expression '{expression}': {e}") from e
    return list(code.co_names)


def evaluate_expression(expression: str, arrays: dict[str, Any]) -> Any:
    """
    Evaluate a band math expression

    Args:
        expression: Expression over the names in ``arrays``;
            numpy is available as 'np'
        arrays: Values by name (NumPy arrays or xarray objects)

    Returns:
        Result of the expression

    Raises:
        ValidationError: If the expression is invalid or references
            unknown names
    """
    namespace = {"np": np}
    namespace.update(arrays)
    try:
        return eval(expression, {"__builtins__": {}}, namespace)
    except (NameError, SyntaxError, TypeError) as e:
        raise ValidationError(f"Cannot evaluate expression '{expression}': {e}") from e


def create_virtual_image(band: "RasterBand", product: "Product") -> MultiLevelImage:
    """
    Lazy pixel pyramid of a virtual band

    Every tile is computed by evaluating the band's expression over the same
    tile window of the referenced bands.

    Raises:
        ValidationError: If a referenced band differs in size from the
            virtual band
    """
    names = [
        name
        for name in referenced_names(band.expression)
        if name in product.bands and name != band.name
    ]
    sources = {}
    for name in names:
        source = product.bands[name]
        if source.raster_size != band.raster_size:
            raise ValidationError(
                f"Virtual band '{band.name}' ({band.width}x{band.height}) references "
                f"'{name}' of different size {source.width}x{source.height}"
            )
        sources[name] = source.get_source_image()

    level_count = min((s.model.level_count for s in sources.values()), default=None)
    model = MultiLevelModel(band.transform, band.width, band.height, level_count=level_count)
    dtype = band.data_type

    def create_image(level: int, key: tuple) -> TiledImage:
        images = {name: source.get_image(level) for name, source in sources.items()}
        width, height = model.get_size(level)

        def compute_tile(x: int, y: int, w: int, h: int) -> NDArray:
            arrays = {name: image.read(x, y, w, h) for name, image in images.items()}
            with np.errstate(divide="ignore", invalid="ignore"):
                result = evaluate_expression(band.expression, arrays)
            return np.broadcast_to(np.asarray(result), (h, w)).astype(dtype)

        return TiledImage(width, height, dtype, compute_tile, key=key)

    return MultiLevelImage(model, create_image)


@xr.register_dataset_accessor("bandmath")
class BandMathAccessor:
    """
    xarray Dataset accessor for band math expressions.

    Bands can be referenced by:
    - Name: B02, B03, B04, B08, ... (the data variables)
    - Index: b0, b1, b2, ... (order of the data variables)
    """

    def __init__(self, ds: xr.Dataset):
        self._ds = ds

    @property
    def bands(self):
        """Map index references to band names."""
        return {f"b{i}": name for i, name in enumerate(self._ds.data_vars)}

    def __call__(self, expr: str) -> xr.DataArray:
        """
        Evaluate a band math expression.

        Args:
            expr: Expression using band names or b0/b1/b2...
                  numpy is available as 'np'.

        Returns:
            xr.DataArray with the computed result.

        Examples:
            >>> ds.bandmath("(B08 - B04) / (B08 + B04)")   # NDVI by name
            >>> ds.bandmath("(b3 - b2) / (b3 + b2)")       # NDVI by index
        """
        namespace: dict[str, Any] = {}
        for idx, name in self.bands.items():
            namespace[idx] = self._ds[name]
            namespace[str(name)] = self._ds[name]

        result = evaluate_expression(expr, namespace)
        if isinstance(result, xr.DataArray):
            result.name = "bandmath"
        return result

    def __repr__(self) -> str:
        lines = ["<BandMath>"]
        for idx, name in self.bands.items():
            lines.append(f"  {idx}: {name}")
        return "\n".join(lines)

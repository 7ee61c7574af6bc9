"""
Diagnostic texture of the object layers.

The texture is a strip of cells running along the object height, wrapped into
rows. Each cell gets the color of the layer covering it: green for layers
thinner than nominal, yellow at the nominal height, red for thicker layers.
On the full resolution level an intensity profile darkens the layer edges so
that individual layers remain visible.

Buffer layout: the primary level of ``rows x cols`` RGBA8 pixels, optionally
followed by a secondary level of ``rows//2 x cols//2`` pixels in the same
flat byte buffer. The last column of each row repeats the first cell of the
next row, so the effective row length is ``cols - 1`` cells.
"""

import math
from typing import Optional, Sequence, Union

import numpy as np

from varlayer.core.exceptions import TextureError
from varlayer.core.logging import get_logger
from varlayer.slicing.layers import LayerBoundary
from varlayer.slicing.parameters import SlicingParameters

logger = get_logger(__name__)

# Diverging RdYlGn palette (reversed), https://github.com/aschn/gnuplot-colorbrewer
LAYER_HEIGHT_PALETTE = np.array(
    [
        [0x1A, 0x98, 0x50],
        [0x66, 0xBD, 0x63],
        [0xA6, 0xD9, 0x6A],
        [0xD9, 0xF1, 0xEB],
        [0xFE, 0xE6, 0xEB],
        [0xFD, 0xAE, 0x61],
        [0xF4, 0x6D, 0x43],
        [0xD7, 0x30, 0x27],
    ],
    dtype=np.float64,
)

# Texture cells per minimum layer height.
CELLS_PER_MIN_LAYER = 16
# Fraction of pi spanned by the layer intensity profile.
LAYER_INTENSITY_SPAN = 0.7


class TextureBuffer:
    """
    RGBA8 texture with an optional half resolution second level.

    Wraps a flat ``uint8`` array; :meth:`level` returns ``(rows, cols, 4)``
    views into it. Writes are bounds checked.
    """

    def __init__(
        self,
        rows: int,
        cols: int,
        second_level: bool = True,
        data: Optional[np.ndarray] = None,
    ) -> None:
        if rows < 2 or cols < 4:
            raise TextureError(
                "Texture must have at least 2 rows and 4 columns",
                details={"rows": rows, "cols": cols},
            )
        self.rows = rows
        self.cols = cols
        self.second_level = second_level
        size = self.required_size(rows, cols, second_level)
        if data is None:
            data = np.zeros(size, dtype=np.uint8)
        elif data.dtype != np.uint8 or data.ndim != 1 or data.size < size:
            raise TextureError(
                "Texture buffer too small or not a flat uint8 array",
                details={"required": size, "size": int(data.size)},
            )
        self.data = data

    @staticmethod
    def required_size(rows: int, cols: int, second_level: bool = True) -> int:
        """Bytes needed for a texture of the given size."""
        size = rows * cols * 4
        if second_level:
            size += (rows // 2) * (cols // 2) * 4
        return size

    @classmethod
    def from_buffer(
        cls,
        buffer: Union[bytearray, memoryview],
        rows: int,
        cols: int,
        second_level: bool = True,
    ) -> "TextureBuffer":
        """Wrap a caller owned writable buffer without copying it."""
        return cls(rows, cols, second_level, data=np.frombuffer(buffer, dtype=np.uint8))

    def shape(self, level: int) -> tuple:
        if level == 0:
            return self.rows, self.cols
        if level == 1 and self.second_level:
            return self.rows // 2, self.cols // 2
        raise TextureError(f"Texture has no level {level}", level=level)

    def level(self, level: int) -> np.ndarray:
        """``(rows, cols, 4)`` view of one level."""
        rows, cols = self.shape(level)
        offset = 0 if level == 0 else self.rows * self.cols * 4
        return self.data[offset:offset + rows * cols * 4].reshape(rows, cols, 4)

    def pixel(self, level: int, row: int, col: int) -> np.ndarray:
        self._check(level, np.array([row]), np.array([col]))
        return self.level(level)[row, col]

    def write(self, level: int, rows: np.ndarray, cols: np.ndarray, rgba: np.ndarray) -> None:
        """Write one RGBA color per ``(row, col)`` pair."""
        self._check(level, rows, cols)
        self.level(level)[rows, cols] = rgba

    def _check(self, level: int, rows: np.ndarray, cols: np.ndarray) -> None:
        n_rows, n_cols = self.shape(level)
        if rows.size and (
            rows.min() < 0 or rows.max() >= n_rows or cols.min() < 0 or cols.max() >= n_cols
        ):
            raise TextureError(
                "Texture write out of bounds",
                level=level,
                details={"shape": (n_rows, n_cols)},
            )

    def clear(self) -> None:
        self.data[:] = 0


def _palette_color(height: float, params: SlicingParameters, hscale: float) -> np.ndarray:
    """Palette color of a layer of the given thickness."""
    last = len(LAYER_HEIGHT_PALETTE) - 1
    idxf = (0.5 * hscale + (height - params.layer_height)) * last / hscale
    idx1 = min(max(int(math.floor(idxf)), 0), last)
    idx2 = min(last, idx1 + 1)
    t = idxf - idx1
    color1 = LAYER_HEIGHT_PALETTE[idx1]
    color2 = LAYER_HEIGHT_PALETTE[idx2]
    return color1 + (color2 - color1) * t


def _write_cells(
    texture: TextureBuffer,
    level: int,
    cells: np.ndarray,
    rgb: np.ndarray,
) -> None:
    """Write cells of one level, wrapping them into rows of ``cols - 1`` cells."""
    row_cells = texture.shape(level)[1] - 1
    rows = cells // row_cells
    cols = cells - rows * row_cells
    rgba = np.empty((len(cells), 4), dtype=np.uint8)
    rgba[:, :3] = np.clip(np.floor(rgb + 0.5), 0, 255)
    rgba[:, 3] = 255
    texture.write(level, rows, cols, rgba)
    # The first cell of a row is repeated as the last pixel of the previous row.
    seam = (cols == 0) & (rows > 0)
    if seam.any():
        texture.write(
            level, rows[seam] - 1, np.full(int(seam.sum()), row_cells), rgba[seam]
        )


def _cell_range(lo: float, hi: float, z_to_cell: float, ncells: int) -> np.ndarray:
    first = min(max(int(math.ceil(lo * z_to_cell)), 0), ncells - 1)
    last = min(max(int(math.floor(hi * z_to_cell)), 0), ncells - 1)
    return np.arange(first, last + 1)


def generate_layer_height_texture(
    params: SlicingParameters,
    layers: Sequence[LayerBoundary],
    texture: TextureBuffer,
    level_of_detail_2nd_level: bool = True,
) -> int:
    """
    Render the layer heights into *texture*.

    Only cells covered by a layer are written, the caller clears the buffer.

    Args:
        params: Slicing parameters of the object
        layers: Object layers as produced by ``generate_object_layers``
        texture: Target buffer
        level_of_detail_2nd_level: Also render the half resolution level

    Returns:
        Number of cells used on the primary level
    """
    object_height = params.object_print_z_height()
    render_2nd = level_of_detail_2nd_level and texture.second_level
    ncells = min(
        (texture.cols - 1) * texture.rows,
        int(math.ceil(CELLS_PER_MIN_LAYER * object_height / params.min_layer_height)),
    )
    if ncells < 2:
        return max(ncells, 0)
    z_to_cell = (ncells - 1) / object_height
    cell_to_z = object_height / (ncells - 1)
    ncells1 = 0
    z_to_cell1 = 0.0
    if render_2nd:
        rows1, cols1 = texture.shape(1)
        ncells1 = min(ncells // 2, (cols1 - 1) * rows1)
        z_to_cell1 = (ncells1 - 1) / object_height

    hscale = 2.0 * max(
        params.max_layer_height - params.layer_height,
        params.layer_height - params.min_layer_height,
    )
    if hscale == 0:
        # All layers have the same height.
        hscale = params.layer_height

    for layer in layers:
        hi = min(layer.high, object_height)
        color = _palette_color(layer.height, params, hscale)

        cells = _cell_range(layer.low, hi, z_to_cell, ncells)
        if cells.size:
            z = cell_to_z * cells
            intensity = np.cos(
                math.pi * LAYER_INTENSITY_SPAN * (layer.mid - z) / layer.height
            )
            _write_cells(texture, 0, cells, intensity[:, None] * color[None, :])

        if render_2nd and ncells1 > 1:
            cells = _cell_range(layer.low, hi, z_to_cell1, ncells1)
            if cells.size:
                _write_cells(texture, 1, cells, np.tile(color, (len(cells), 1)))

    logger.debug(
        "layer_height_texture_generated",
        layers=len(layers),
        cells=ncells,
        cells_2nd_level=ncells1,
    )
    return ncells

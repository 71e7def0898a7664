"""Image tiles: the unit of parallel work.

The image is cut into square tiles of `tile_size` pixels, row-major from the
top-left corner. Edge tiles are clipped to the image, so the tiles cover
every pixel exactly once for any image size.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt


@dataclass(frozen=True)
class Tile:
    """A rectangular block of pixels [x0, x1) x [y0, y1).

    Attributes:
        index: Position of the tile in row-major tile order.
        x0: First column.
        y0: First row (row 0 is the top of the image).
        x1: One past the last column.
        y1: One past the last row.
    """

    index: int
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def pixel_coordinates(self) -> tuple[npt.NDArray[np.int64], npt.NDArray[np.int64]]:
        """Column and row of every pixel of the tile, row-major, each (pixel_count,)."""
        ys, xs = np.mgrid[self.y0 : self.y1, self.x0 : self.x1]
        return xs.reshape(-1), ys.reshape(-1)


def tile_grid_shape(width: int, height: int, tile_size: int) -> tuple[int, int]:
    """Number of tile columns and rows."""
    return -(-width // tile_size), -(-height // tile_size)


def partition_tiles(width: int, height: int, tile_size: int) -> list[Tile]:
    """Cut a width x height image into tiles.

    Raises:
        ValueError: If a dimension or the tile size is not positive.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image must be at least 1x1, got {width}x{height}")
    if tile_size < 1:
        raise ValueError(f"tile_size must be at least 1, got {tile_size}")

    tiles = []
    for y0 in range(0, height, tile_size):
        for x0 in range(0, width, tile_size):
            tiles.append(
                Tile(
                    index=len(tiles),
                    x0=x0,
                    y0=y0,
                    x1=min(x0 + tile_size, width),
                    y1=min(y0 + tile_size, height),
                )
            )
    return tiles

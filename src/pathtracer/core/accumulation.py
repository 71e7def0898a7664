"""Accumulation buffer for progressive rendering.

The buffer keeps, per pixel, the running sum of radiance samples and the
number of samples taken. The displayed color of a pixel is sum / count.

Workers write disjoint tiles, so two writers never touch the same pixel in a
pass. Each tile region still has its own lock: it makes the sum and count
update of a commit atomic with respect to `snapshot`, which copies the
buffer tile by tile while rendering goes on. Workers never wait on each
other because no two of them hold the same tile.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from pathtracer.core.tiles import Tile, partition_tiles


@dataclass(frozen=True, eq=False)
class AccumulationSnapshot:
    """A consistent copy of the buffer.

    Attributes:
        sum: Per-pixel radiance sums, (height, width, 3).
        count: Per-pixel sample counts, (height, width).
        passes: Number of passes completed when the copy was taken.
    """

    sum: npt.NDArray[np.float64]
    count: npt.NDArray[np.int64]
    passes: int

    @property
    def width(self) -> int:
        return self.sum.shape[1]

    @property
    def height(self) -> int:
        return self.sum.shape[0]

    @property
    def total_samples(self) -> int:
        return int(self.count.sum())

    def image(self) -> npt.NDArray[np.float64]:
        """Mean radiance per pixel; pixels without samples are black."""
        counts = self.count[..., None]
        return np.where(counts > 0, self.sum / np.maximum(counts, 1), 0.0)


class AccumulationBuffer:
    """Per-pixel radiance sums and sample counts shared by the workers."""

    def __init__(self, width: int, height: int, tile_size: int) -> None:
        self._width = width
        self._height = height
        self._tile_size = tile_size
        self._tiles = partition_tiles(width, height, tile_size)
        self._locks = [threading.Lock() for _ in self._tiles]
        self._pass_lock = threading.Lock()
        self._sum = np.zeros((height, width, 3), dtype=np.float64)
        self._count = np.zeros((height, width), dtype=np.int64)
        self._passes = 0

    def __repr__(self) -> str:
        return f"AccumulationBuffer(width={self._width}, height={self._height}, passes={self.passes})"

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def tile_size(self) -> int:
        return self._tile_size

    @property
    def tiles(self) -> list[Tile]:
        return list(self._tiles)

    @property
    def passes(self) -> int:
        with self._pass_lock:
            return self._passes

    def commit(self, tile: Tile, sums: npt.NDArray[np.float64], samples: int) -> None:
        """Add a tile's radiance sums; every pixel of the tile gains `samples`.

        Args:
            tile: The tile the sums belong to.
            sums: Radiance summed over the tile's samples, (tile.height, tile.width, 3).
            samples: Samples taken per pixel.

        Raises:
            ValueError: If the tile does not belong to this buffer or the
                block has the wrong shape.
        """
        if not 0 <= tile.index < len(self._tiles) or self._tiles[tile.index] != tile:
            raise ValueError(f"{tile} is not a tile of this buffer")
        if sums.shape != (tile.height, tile.width, 3):
            raise ValueError(f"Expected a {(tile.height, tile.width, 3)} block, got {sums.shape}")

        with self._locks[tile.index]:
            self._sum[tile.y0 : tile.y1, tile.x0 : tile.x1] += sums
            self._count[tile.y0 : tile.y1, tile.x0 : tile.x1] += samples

    def complete_pass(self) -> int:
        """Bump the pass counter and return the new value."""
        with self._pass_lock:
            self._passes += 1
            return self._passes

    def snapshot(self) -> AccumulationSnapshot:
        """Copy sums and counts without blocking writers to other tiles."""
        sums = np.empty_like(self._sum)
        counts = np.empty_like(self._count)
        passes = self.passes
        for tile, lock in zip(self._tiles, self._locks):
            region = (slice(tile.y0, tile.y1), slice(tile.x0, tile.x1))
            with lock:
                sums[region] = self._sum[region]
                counts[region] = self._count[region]
        return AccumulationSnapshot(sum=sums, count=counts, passes=passes)

    def resolve(self) -> npt.NDArray[np.float64]:
        """Mean radiance image, (height, width, 3)."""
        return self.snapshot().image()

    def reset(self) -> None:
        """Discard every sample and the pass counter."""
        for tile, lock in zip(self._tiles, self._locks):
            with lock:
                self._sum[tile.y0 : tile.y1, tile.x0 : tile.x1] = 0.0
                self._count[tile.y0 : tile.y1, tile.x0 : tile.x1] = 0
        with self._pass_lock:
            self._passes = 0

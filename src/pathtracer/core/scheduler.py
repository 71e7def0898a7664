"""Tile scheduler: renders passes over the image with a pool of worker threads.

A pass enqueues every tile of the image on a shared ``queue.Queue``. Worker
threads pop tiles, trace `samples_per_pass` paths per pixel and commit the
sums to the AccumulationBuffer. When the queue has been drained the pass
counter is bumped and, unless the run is cancelled or the pass limit is
reached, all tiles are enqueued again.

Cancellation is checked by the workers between tiles, never inside one, so
after the cancel event is set each worker finishes at most the tile it is
rendering. A tile whose rendering raises is requeued up to
`max_tile_retries` times; after that it is dropped for the pass and the run
is marked degraded.

Randomness is deterministic: the tile rendered in pass p with index i always
draws from the generator seeded with (seed, p, i), whichever worker runs it.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace

import numpy as np
import numpy.typing as npt

from pathtracer.camera.pinhole import Camera
from pathtracer.core.accumulation import AccumulationBuffer
from pathtracer.core.config import RenderConfig
from pathtracer.core.integrator import PathIntegrator
from pathtracer.core.tiles import Tile, partition_tiles, tile_grid_shape

logger = logging.getLogger(__name__)

__all__ = [
    "Tile",
    "TileScheduler",
    "partition_tiles",
    "render_tile",
    "tile_grid_shape",
    "tile_rng",
]

# Callbacks: a tile was committed / a pass was completed (new pass count)
TileCallback = Callable[[Tile], None]
PassCallback = Callable[[int], None]


def tile_rng(seed: int, pass_index: int, tile_index: int) -> np.random.Generator:
    """Independent, reproducible generator for one tile of one pass."""
    return np.random.Generator(np.random.PCG64(np.random.SeedSequence([seed, pass_index, tile_index])))


def render_tile(
    integrator: PathIntegrator,
    camera: Camera,
    tile: Tile,
    samples: int,
    rng: np.random.Generator,
) -> npt.NDArray[np.float64]:
    """Trace `samples` jittered paths through every pixel of a tile.

    Returns:
        Radiance summed over the samples, (tile.height, tile.width, 3).
    """
    xs, ys = tile.pixel_coordinates()
    sums = np.zeros((tile.pixel_count, 3))
    for _ in range(samples):
        origins, directions = camera.generate_rays(xs, ys, rng)
        sums += integrator.trace(origins, directions, rng)
    return sums.reshape(tile.height, tile.width, 3)


@dataclass(frozen=True)
class _WorkItem:
    pass_index: int
    tile: Tile
    attempt: int = 0


class TileScheduler:
    """Runs progressive passes over a camera's image on worker threads.

    Attributes:
        integrator: Shared, read-only path integrator.
        camera: The camera snapshot being rendered.
        buffer: Destination of the tile sums.
        config: Sample counts, seed, worker count and retry limit.
    """

    def __init__(
        self,
        integrator: PathIntegrator,
        camera: Camera,
        buffer: AccumulationBuffer,
        config: RenderConfig,
        cancel_event: threading.Event,
        on_tile_rendered: TileCallback | None = None,
    ) -> None:
        if (buffer.width, buffer.height) != (camera.width, camera.height):
            raise ValueError(
                f"Buffer is {buffer.width}x{buffer.height} but the camera renders "
                f"{camera.width}x{camera.height}"
            )
        self.integrator = integrator
        self.camera = camera
        self.buffer = buffer
        self.config = config
        self._cancel = cancel_event
        self._on_tile_rendered = on_tile_rendered
        self._queue: queue.Queue[_WorkItem | None] = queue.Queue()
        self._stats_lock = threading.Lock()
        self._failed_tiles: list[tuple[int, Tile]] = []
        self._tiles_rendered = 0
        self._running = False

    @property
    def degraded(self) -> bool:
        """True once any tile has been dropped after exhausting its retries."""
        with self._stats_lock:
            return bool(self._failed_tiles)

    @property
    def failed_tiles(self) -> list[tuple[int, Tile]]:
        """(pass index, tile) of every dropped tile."""
        with self._stats_lock:
            return list(self._failed_tiles)

    @property
    def tiles_rendered(self) -> int:
        with self._stats_lock:
            return self._tiles_rendered

    def run(self, max_passes: int | None = None, on_pass_complete: PassCallback | None = None) -> int:
        """Render passes until cancelled or `max_passes` passes are done.

        Blocks the calling (control) thread. Worker threads are started on
        entry and joined before returning.

        Args:
            max_passes: Pass limit; defaults to config.max_passes (None
                refines until the cancel event is set).
            on_pass_complete: Called with the new pass count after each pass.

        Returns:
            The number of passes completed by this call.

        Raises:
            RuntimeError: If the scheduler is already running.
        """
        if self._running:
            raise RuntimeError("TileScheduler.run() is already in progress")
        self._running = True

        limit = max_passes if max_passes is not None else self.config.max_passes
        tiles = self.buffer.tiles
        worker_count = min(self.config.resolved_worker_count(), len(tiles))
        workers = [
            threading.Thread(target=self._worker_loop, name=f"pathtracer-worker-{i}", daemon=True)
            for i in range(worker_count)
        ]
        for worker in workers:
            worker.start()
        logger.debug("Started %d workers for %d tiles", worker_count, len(tiles))

        completed = 0
        pass_index = self.buffer.passes
        try:
            while not self._cancel.is_set() and (limit is None or completed < limit):
                for tile in tiles:
                    self._queue.put(_WorkItem(pass_index=pass_index, tile=tile))
                self._queue.join()

                if self._cancel.is_set():
                    break
                passes = self.buffer.complete_pass()
                completed += 1
                pass_index += 1
                logger.debug("Pass %d complete", passes)
                if on_pass_complete is not None:
                    on_pass_complete(passes)
        finally:
            for _ in workers:
                self._queue.put(None)
            for worker in workers:
                worker.join()
            self._running = False

        return completed

    # =========================================================================
    # Worker Side
    # =========================================================================

    def _worker_loop(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                if self._cancel.is_set():
                    # Drain the rest of the pass without rendering it
                    continue
                self._process(item)
            finally:
                self._queue.task_done()

    def _process(self, item: _WorkItem) -> None:
        tile = item.tile
        rng = tile_rng(self.config.seed, item.pass_index, tile.index)
        try:
            sums = render_tile(self.integrator, self.camera, tile, self.config.samples_per_pass, rng)
            self.buffer.commit(tile, sums, self.config.samples_per_pass)
        except Exception:
            if item.attempt < self.config.max_tile_retries:
                logger.warning(
                    "Tile %d failed in pass %d (attempt %d), requeueing",
                    tile.index,
                    item.pass_index,
                    item.attempt + 1,
                    exc_info=True,
                )
                # Requeued before task_done so the pass cannot complete without it
                self._queue.put(replace(item, attempt=item.attempt + 1))
            else:
                logger.exception(
                    "Tile %d failed in pass %d after %d attempts; render is degraded",
                    tile.index,
                    item.pass_index,
                    item.attempt + 1,
                )
                with self._stats_lock:
                    self._failed_tiles.append((item.pass_index, tile))
            return

        with self._stats_lock:
            self._tiles_rendered += 1
        if self._on_tile_rendered is not None:
            try:
                self._on_tile_rendered(tile)
            except Exception:
                logger.exception("on_tile_rendered callback failed for tile %d", tile.index)

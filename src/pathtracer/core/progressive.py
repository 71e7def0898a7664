"""Progressive renderer for iterative sample accumulation.

This module provides a convenient blocking wrapper around the tile scheduler
that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple passes in one call)
- Progress callbacks for UI updates
- Easy reset and re-render functionality

The ProgressiveRenderer class owns the accumulation buffer and renders on
the caller's thread (workers are still used for the tiles). Interactive
viewers use RenderSession instead, which renders in the background.

Example:
    >>> from pathtracer.core.config import RenderConfig
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>>
    >>> scene, camera = create_cornell_box_scene(width=16, height=16)
    >>> renderer = ProgressiveRenderer(scene, camera, RenderConfig(max_depth=3, worker_count=2))
    >>> renderer.render(2)
    >>> renderer.passes
    2
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from pathtracer.camera.pinhole import Camera
from pathtracer.core.accumulation import AccumulationBuffer, AccumulationSnapshot
from pathtracer.core.config import RenderConfig
from pathtracer.core.integrator import PathIntegrator
from pathtracer.core.scheduler import TileScheduler
from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_passes, target_passes)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates passes over time.

    Attributes:
        scene: The scene being rendered.
        camera: The camera snapshot; its resolution is the image size.
        config: Render settings.
    """

    def __init__(self, scene: Scene, camera: Camera, config: RenderConfig | None = None) -> None:
        self.scene = scene
        self.camera = camera
        self.config = config if config is not None else RenderConfig()
        self._integrator = PathIntegrator(scene, self.config)
        self._buffer = AccumulationBuffer(camera.width, camera.height, self.config.tile_size)
        self._degraded = False

    @property
    def width(self) -> int:
        return self.camera.width

    @property
    def height(self) -> int:
        return self.camera.height

    @property
    def passes(self) -> int:
        """Number of completed passes."""
        return self._buffer.passes

    @property
    def sample_count(self) -> int:
        """Samples every pixel has received.

        Read from the accumulated counts, so tiles dropped in a degraded run
        leave it below ``passes * samples_per_pass``.
        """
        return int(self._buffer.snapshot().count.min())

    @property
    def degraded(self) -> bool:
        """True if any tile was dropped after failing repeatedly."""
        return self._degraded

    def reset(self) -> None:
        """Reset the accumulator for a new render.

        Clears the sums, counts and pass counter. Rendering again with the
        same scene, camera and seed reproduces the same image.
        """
        self._buffer.reset()
        self._degraded = False

    def resize(self, width: int, height: int) -> None:
        """Change the image size and reset the accumulator."""
        self.camera = self.camera.with_resolution(width, height)
        self._buffer = AccumulationBuffer(width, height, self.config.tile_size)
        self._degraded = False

    def render(
        self,
        num_passes: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render passes with an optional progress callback.

        Accumulates the requested passes into the existing buffer. Can be
        called multiple times to continue refining the image.

        Args:
            num_passes: Number of passes to add.
            batch_size: Passes to render before each callback.
            callback: Called after each batch with (current_passes, target_passes).

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} passes")
            >>> renderer.render(10, batch_size=5, callback=progress)
        """
        for current, target in self.render_progressive(num_passes, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_passes: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render passes progressively, yielding progress after each batch.

        Yields:
            Tuple of (current_passes, target_passes).

        Example:
            >>> for current, target in renderer.render_progressive(100, batch_size=10):
            ...     print(f"Progress: {current}/{target} passes")
        """
        if num_passes <= 0:
            return

        target = self.passes + num_passes
        remaining = num_passes
        while remaining > 0:
            batch = min(batch_size, remaining)
            scheduler = TileScheduler(
                self._integrator,
                self.camera,
                self._buffer,
                self.config,
                threading.Event(),
            )
            scheduler.run(max_passes=batch)
            self._degraded = self._degraded or scheduler.degraded
            remaining -= batch
            yield (self.passes, target)

    def snapshot(self) -> AccumulationSnapshot:
        return self._buffer.snapshot()

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the rendered image as a NumPy array.

        Returns the mean radiance with values clamped to [0, 1] and optionally
        gamma corrected. The array shape is (height, width, 3), row 0 at the top.

        Args:
            gamma: Gamma correction value. Default 1.0 (linear).
                Use 2.2 for sRGB display.
        """
        image = np.clip(self._buffer.resolve(), 0.0, 1.0).astype(np.float32)

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)

        return image

    def get_image_uint8(self, gamma: float = 2.2) -> npt.NDArray[np.uint8]:
        """Get the rendered image as an 8-bit NumPy array."""
        image = self.get_image_numpy(gamma=gamma)
        return (image * 255).astype(np.uint8)

    def save_image(self, filepath: str | Path, gamma: float = 2.2) -> None:
        """Save the rendered image to a file.

        Args:
            filepath: Path to save the image (e.g., "output.png").
            gamma: Gamma correction value. Default 2.2 for sRGB.
        """
        from PIL import Image as PILImage

        PILImage.fromarray(self.get_image_uint8(gamma=gamma)).save(filepath)
        logger.info("Saved %dx%d image after %d passes to %s", self.width, self.height, self.passes, filepath)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"passes={self.passes})"
        )

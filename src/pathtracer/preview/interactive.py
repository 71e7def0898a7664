"""Interactive preview window using Taichi GGUI.

This module provides a fly-through viewer on top of the render session
controller. Each frame it:
    - reads the keyboard and mouse and updates the FlyCamera
    - reports the resulting camera snapshot to the controller
    - polls the controller, which starts a session once the view settles
    - shows the current session's accumulated image, tone mapped

While the camera moves no samples are shown; the last image stays on screen
until the new session has produced a pass.

Controls:
    W/S: forward/back    A/D: left/right    Q/E: down/up
    Drag with the left mouse button to look around.

Example:
    >>> import taichi as ti
    >>> from pathtracer.preview.interactive import InteractiveViewer
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>>
    >>> ti.init(arch=ti.cpu)
    >>> scene, camera = create_cornell_box_scene(width=512, height=512)
    >>> InteractiveViewer(scene, camera).run()
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime

import numpy as np
import numpy.typing as npt
import taichi as ti

from pathtracer.camera.pinhole import Camera
from pathtracer.core.config import RenderConfig
from pathtracer.core.session import RenderSession, RenderSessionController
from pathtracer.preview.display import ToneMapMethod, process_image_for_display
from pathtracer.preview.export import save_png
from pathtracer.preview.navigation import FlyCamera
from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

__all__ = ["FlyCamera", "InteractiveViewer"]

# key -> (forward, right, up)
MOVE_KEYS: dict[str, tuple[float, float, float]] = {
    "w": (1.0, 0.0, 0.0),
    "s": (-1.0, 0.0, 0.0),
    "d": (0.0, 1.0, 0.0),
    "a": (0.0, -1.0, 0.0),
    "e": (0.0, 0.0, 1.0),
    "q": (0.0, 0.0, -1.0),
}


class InteractiveViewer:
    """Fly-through viewer driving a RenderSessionController.

    Attributes:
        width: Window width in pixels (the render resolution).
        height: Window height in pixels.
        controller: The session controller owning the render sessions.
        fly_camera: The navigable camera pose.
        display_image: Taichi field storing the display image (RGB float).
    """

    def __init__(
        self,
        scene: Scene,
        camera: Camera,
        config: RenderConfig | None = None,
        *,
        title: str = "Path Tracer - Interactive Preview",
        tone_map: ToneMapMethod = "reinhard",
        gamma: float = 2.2,
        exposure: float = 1.0,
        move_speed: float = 200.0,
    ) -> None:
        """Create the viewer; the window opens when run() is called.

        Note:
            Taichi must be initialized (ti.init) before the viewer is created.
        """
        self.width = camera.width
        self.height = camera.height
        self.controller = RenderSessionController(scene, config)
        self.fly_camera = FlyCamera.from_camera(camera, move_speed=move_speed)
        self.tone_map: ToneMapMethod = tone_map
        self.gamma = gamma
        self.exposure = exposure
        self._title = title

        self._window: ti.ui.Window | None = None
        self._canvas: ti.ui.Canvas | None = None
        self._drag_origin: tuple[float, float] | None = None
        self._shown_passes = 0
        self._shown_session: RenderSession | None = None

        # Taichi fields use (x, y) indexing, i.e. (width, height)
        self.display_image: ti.MatrixField = ti.Vector.field(
            3, dtype=ti.f32, shape=(self.width, self.height)
        )

    def _initialize_window(self) -> None:
        if self._window is not None:
            return
        self._window = ti.ui.Window(
            name=self._title,
            res=(self.width, self.height),
            vsync=True,
        )
        self._canvas = self._window.get_canvas()

    @property
    def window(self) -> ti.ui.Window:
        """Get the Taichi GGUI window, initializing if needed."""
        self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def canvas(self) -> ti.ui.Canvas:
        self._initialize_window()
        assert self._canvas is not None
        return self._canvas

    @property
    def shown_passes(self) -> int:
        """Passes in the image currently on screen."""
        return self._shown_passes

    def update_image(self, image: npt.NDArray[np.float32]) -> None:
        """Update the display image from a display-ready (H, W, 3) array.

        Raises:
            ValueError: If image shape doesn't match (height, width, 3).
        """
        expected_shape = (self.height, self.width, 3)
        if image.shape != expected_shape:
            raise ValueError(
                f"Image shape {image.shape} doesn't match expected {expected_shape}"
            )

        # NumPy row 0 is the top; Taichi's origin is bottom-left
        image_transposed = np.ascontiguousarray(
            np.transpose(np.flipud(image), (1, 0, 2)), dtype=np.float32
        )
        self.display_image.from_numpy(image_transposed)

    def refresh_image(self) -> bool:
        """Show the current session's image if it is new or gained passes.

        Returns:
            True if the display image changed.
        """
        session = self.controller.session
        if session is None:
            return False
        snapshot = session.snapshot()
        if snapshot.passes == 0:
            return False
        if session is self._shown_session and snapshot.passes == self._shown_passes:
            return False
        image = process_image_for_display(
            snapshot.image().astype(np.float32),
            tone_map=self.tone_map,
            gamma=self.gamma,
            exposure=self.exposure,
        )
        self.update_image(image)
        self._shown_session = session
        self._shown_passes = snapshot.passes
        return True

    def is_running(self) -> bool:
        return self.window.running

    def show_frame(self) -> None:
        self.canvas.set_image(self.display_image)
        self.window.show()

    def run(self) -> None:
        """Run the viewer until the window is closed.

        Render sessions are cancelled and joined before returning.
        """
        self._initialize_window()
        self.controller.update_camera(self.fly_camera.camera())
        last_frame = time.monotonic()

        try:
            while self.is_running():
                now = time.monotonic()
                dt, last_frame = now - last_frame, now

                self._handle_input(dt)
                self.controller.update_camera(self.fly_camera.camera(), now)
                self.controller.poll(now)
                self.refresh_image()

                self._draw_gui_panel()
                self.show_frame()
        finally:
            self.controller.shutdown()

    def close(self) -> None:
        if self._window is not None:
            self._window.running = False

    # =========================================================================
    # Input
    # =========================================================================

    def _handle_input(self, dt: float) -> None:
        window = self.window
        forward = right = up = 0.0
        for key, (f, r, u) in MOVE_KEYS.items():
            if window.is_pressed(key):
                forward += f
                right += r
                up += u
        if forward or right or up:
            self.fly_camera.move(forward, right, up, dt=dt)

        if window.is_pressed(ti.ui.LMB):
            cursor = window.get_cursor_pos()
            if self._drag_origin is not None:
                dx = cursor[0] - self._drag_origin[0]
                dy = cursor[1] - self._drag_origin[1]
                if dx or dy:
                    self.fly_camera.turn(dx, dy)
            self._drag_origin = (cursor[0], cursor[1])
        else:
            self._drag_origin = None

    def _draw_gui_panel(self) -> None:
        with self.window.GUI.sub_window("Render", 0.02, 0.02, 0.28, 0.16) as gui:
            gui.text(f"State: {self.controller.state.value}")
            gui.text(f"Passes: {self._shown_passes}")
            session = self.controller.session
            if session is not None and session.degraded:
                gui.text("Degraded: tiles dropped")
            self.exposure = gui.slider_float("Exposure", self.exposure, minimum=0.1, maximum=4.0)
            if gui.button("Export PNG"):
                self._export_png()

    def _export_png(self) -> None:
        """Export the current session's image to a timestamped PNG file."""
        snapshot = self.controller.snapshot()
        if snapshot is None:
            logger.warning("Nothing to export: no render session is active")
            return

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"render_{timestamp}.png"
        save_png(snapshot, filename, tone_map=self.tone_map, gamma=self.gamma, exposure=self.exposure)

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering."""
        display = os.environ.get("DISPLAY")
        wayland = os.environ.get("WAYLAND_DISPLAY")

        if os.name == "nt":
            return True

        if os.uname().sysname == "Darwin":
            # SSH session without X forwarding
            return not (os.environ.get("SSH_CONNECTION") and not display)

        return bool(display or wayland)

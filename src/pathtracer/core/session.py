"""Render sessions and the controller that starts and cancels them.

A RenderSession renders one camera snapshot into its own accumulation
buffer on a background control thread, which drives the tile scheduler and
its worker pool. Cancelling a session sets its cancel event: workers finish
the tile they are on and stop.

The RenderSessionController bridges an interactive viewer to sessions:

    IDLE --(camera unchanged for debounce_seconds)--> RENDERING
    RENDERING --(camera moved)--> IDLE   (session cancelled, samples discarded)

The viewer reports every camera pose with `update_camera` and calls `poll`
regularly (e.g. once per frame). Both take an optional `now` so the clock
can be driven explicitly; by default the controller uses time.monotonic.

Example:
    >>> controller = RenderSessionController(scene, RenderConfig())
    >>> controller.update_camera(camera)   # viewer is moving
    >>> controller.poll()                  # starts once the camera settles
    >>> snapshot = controller.snapshot()   # None while idle
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from collections.abc import Callable

from pathtracer.camera.pinhole import Camera
from pathtracer.core.accumulation import AccumulationBuffer, AccumulationSnapshot
from pathtracer.core.config import RenderConfig
from pathtracer.core.integrator import PathIntegrator
from pathtracer.core.scheduler import PassCallback, TileScheduler
from pathtracer.core.tiles import Tile
from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class SessionState(enum.Enum):
    IDLE = "idle"
    RENDERING = "rendering"


class RenderSession:
    """One progressive render of a fixed camera snapshot.

    Attributes:
        scene: The scene, shared read-only with other sessions.
        camera: The camera snapshot this session renders.
        config: Render settings.
    """

    def __init__(
        self,
        scene: Scene,
        camera: Camera,
        config: RenderConfig,
        integrator: PathIntegrator | None = None,
        on_pass_complete: PassCallback | None = None,
    ) -> None:
        self.scene = scene
        self.camera = camera
        self.config = config
        self._integrator = integrator if integrator is not None else PathIntegrator(scene, config)
        self._buffer = AccumulationBuffer(camera.width, camera.height, config.tile_size)
        self._cancel = threading.Event()
        self._on_pass_complete = on_pass_complete
        self._scheduler: TileScheduler | None = None
        self._thread: threading.Thread | None = None
        self._error: BaseException | None = None

    def __repr__(self) -> str:
        return (
            f"RenderSession({self.camera.width}x{self.camera.height}, passes={self.passes}, "
            f"active={self.is_active}, cancelled={self.cancelled})"
        )

    def start(self, on_tile_rendered: Callable[[Tile], None] | None = None) -> None:
        """Start rendering on a background control thread.

        Raises:
            RuntimeError: If the session was already started.
        """
        if self._thread is not None:
            raise RuntimeError("RenderSession can only be started once")
        self._scheduler = TileScheduler(
            self._integrator,
            self.camera,
            self._buffer,
            self.config,
            self._cancel,
            on_tile_rendered=on_tile_rendered,
        )
        self._thread = threading.Thread(target=self._run, name="pathtracer-session", daemon=True)
        logger.info(
            "Starting render session: %dx%d, %d workers",
            self.camera.width,
            self.camera.height,
            self.config.resolved_worker_count(),
        )
        self._thread.start()

    def _run(self) -> None:
        assert self._scheduler is not None
        try:
            passes = self._scheduler.run(on_pass_complete=self._on_pass_complete)
        except Exception as err:
            self._error = err
            logger.exception("Render session failed")
            return
        if self._cancel.is_set():
            logger.info("Render session cancelled after %d passes", passes)
        else:
            logger.info("Render session finished after %d passes", passes)
        if self._scheduler.degraded:
            logger.warning(
                "Render session degraded: %d tiles dropped", len(self._scheduler.failed_tiles)
            )

    def cancel(self, wait: bool = False) -> None:
        """Ask the workers to stop after their current tile."""
        self._cancel.set()
        if wait:
            self.wait()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the control thread exits; returns False on timeout."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def snapshot(self) -> AccumulationSnapshot:
        """Current sums and counts; safe to call at any time."""
        return self._buffer.snapshot()

    @property
    def is_active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def passes(self) -> int:
        return self._buffer.passes

    @property
    def degraded(self) -> bool:
        """True if tiles were dropped or the control thread failed."""
        if self._error is not None:
            return True
        return self._scheduler is not None and self._scheduler.degraded

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def scheduler(self) -> TileScheduler | None:
        return self._scheduler


class RenderSessionController:
    """Starts a session when the camera settles and cancels it when it moves.

    At most one session is current. A cancelled session is joined before the
    next one starts, so two sessions never render at the same time. A session
    that reached config.max_passes stays current, keeping its image on
    screen, until the camera moves.
    """

    def __init__(self, scene: Scene, config: RenderConfig | None = None, clock: Clock = time.monotonic) -> None:
        self.scene = scene
        self.config = config if config is not None else RenderConfig()
        self._clock = clock
        self._integrator = PathIntegrator(scene, self.config)
        self._lock = threading.RLock()
        # Serialises session starts; held while retired sessions are joined
        self._start_lock = threading.Lock()
        self._camera: Camera | None = None
        self._last_change = 0.0
        self._session: RenderSession | None = None
        self._retired: list[RenderSession] = []

    @property
    def state(self) -> SessionState:
        with self._lock:
            return SessionState.IDLE if self._session is None else SessionState.RENDERING

    @property
    def session(self) -> RenderSession | None:
        with self._lock:
            return self._session

    @property
    def camera(self) -> Camera | None:
        with self._lock:
            return self._camera

    def update_camera(self, camera: Camera, now: float | None = None) -> SessionState:
        """Report the viewer's current camera pose.

        A pose different from the previous one counts as movement: the
        current session, if any, is cancelled immediately and its samples
        discarded.
        """
        now = self._clock() if now is None else now
        with self._lock:
            if camera == self._camera:
                return self.state
            self._camera = camera
            self._last_change = now
            self._discard_session("camera moved")
            return SessionState.IDLE

    def poll(self, now: float | None = None) -> SessionState:
        """Start a session once the camera has been still for the debounce interval."""
        now = self._clock() if now is None else now
        with self._start_lock:
            with self._lock:
                camera = self._camera
                settled = (
                    self._session is None
                    and camera is not None
                    and now - self._last_change >= self.config.debounce_seconds
                )
            if settled:
                self._start_session(camera)
        return self.state

    def start_now(self, camera: Camera, now: float | None = None) -> RenderSession | None:
        """Start rendering `camera` immediately, skipping the debounce.

        Returns:
            The current session, or None if another pose was reported while
            the previous session was being joined.
        """
        now = self._clock() if now is None else now
        with self._start_lock:
            with self._lock:
                if self._session is not None and camera == self._camera:
                    return self._session
                self._discard_session("restart requested")
                self._camera = camera
                self._last_change = now
            return self._start_session(camera)

    def snapshot(self) -> AccumulationSnapshot | None:
        """Accumulated image of the current session, None while idle."""
        with self._lock:
            session = self._session
        return session.snapshot() if session is not None else None

    def shutdown(self, timeout: float | None = None) -> None:
        """Cancel everything and wait for all render threads to exit."""
        with self._start_lock, self._lock:
            self._discard_session("shutdown")
            retired, self._retired = self._retired, []
        for session in retired:
            session.wait(timeout)

    def _start_session(self, camera: Camera) -> RenderSession | None:
        """Join retired sessions, then start `camera` if it is still the current pose.

        Called with the start lock held and the state lock released, so
        `update_camera` and `snapshot` stay responsive during the join.
        """
        with self._lock:
            retired, self._retired = self._retired, []
        for old in retired:
            old.wait()

        with self._lock:
            if self._session is not None or camera != self._camera:
                return self._session
            session = RenderSession(self.scene, camera, self.config, integrator=self._integrator)
            session.start()
            self._session = session
            return session

    def _discard_session(self, reason: str) -> None:
        if self._session is None:
            return
        logger.info("Cancelling render session (%s)", reason)
        self._session.cancel(wait=False)
        self._retired.append(self._session)
        self._session = None

"""Fly-through camera navigation for the interactive viewer.

FlyCamera is the mutable viewer-side pose: a position plus yaw and pitch
angles. Every change produces a new immutable Camera snapshot, which is
what the render session controller compares to detect movement.

Angles are in degrees. Yaw 0 and pitch 0 look along +z; positive yaw
turns toward +x and positive pitch looks up.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from pathtracer.camera.pinhole import Camera

# Pitch is kept away from the poles so the view never aligns with +y
MAX_PITCH = 89.0

WORLD_UP = (0.0, 1.0, 0.0)


@dataclass
class FlyCamera:
    """Viewer-side navigable camera pose.

    Attributes:
        position: Eye position in world space.
        yaw: Heading in degrees.
        pitch: Elevation in degrees, clamped to [-MAX_PITCH, MAX_PITCH].
        vfov: Vertical field of view in degrees.
        width: Image width in pixels.
        height: Image height in pixels.
        move_speed: World units per second for `move`.
        turn_speed: Degrees per unit of cursor travel for `turn`.
    """

    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    yaw: float = 0.0
    pitch: float = 0.0
    vfov: float = 40.0
    width: int = 256
    height: int = 256
    move_speed: float = 200.0
    turn_speed: float = 120.0

    def __post_init__(self) -> None:
        self.position = tuple(float(x) for x in self.position)  # type: ignore[assignment]
        self.pitch = _clamp_pitch(self.pitch)

    @classmethod
    def from_camera(cls, camera: Camera, **kwargs: float) -> FlyCamera:
        """Start navigating from an existing camera snapshot."""
        direction = np.subtract(camera.lookat, camera.lookfrom)
        direction = direction / np.linalg.norm(direction)
        yaw = math.degrees(math.atan2(direction[0], direction[2]))
        pitch = math.degrees(math.asin(float(np.clip(direction[1], -1.0, 1.0))))
        return cls(
            position=camera.lookfrom,
            yaw=yaw,
            pitch=pitch,
            vfov=camera.vfov,
            width=camera.width,
            height=camera.height,
            **kwargs,
        )

    def forward(self) -> npt.NDArray[np.float64]:
        yaw = math.radians(self.yaw)
        pitch = math.radians(self.pitch)
        return np.array(
            [
                math.sin(yaw) * math.cos(pitch),
                math.sin(pitch),
                math.cos(yaw) * math.cos(pitch),
            ]
        )

    def right(self) -> npt.NDArray[np.float64]:
        """Image-right direction, horizontal."""
        right = np.cross(self.forward(), WORLD_UP)
        return right / np.linalg.norm(right)

    def move(self, forward: float = 0.0, right: float = 0.0, up: float = 0.0, dt: float = 1.0) -> None:
        """Translate along the view axes, scaled by move_speed * dt."""
        step = self.move_speed * dt
        offset = (forward * self.forward() + right * self.right() + up * np.asarray(WORLD_UP)) * step
        self.position = tuple(float(x) for x in np.add(self.position, offset))  # type: ignore[assignment]

    def turn(self, dx: float, dy: float) -> None:
        """Rotate by a cursor displacement (fractions of the window size)."""
        self.yaw -= dx * self.turn_speed
        self.pitch = _clamp_pitch(self.pitch + dy * self.turn_speed)

    def camera(self) -> Camera:
        """Immutable snapshot of the current pose."""
        lookat = np.add(self.position, self.forward())
        return Camera(
            lookfrom=self.position,
            lookat=tuple(lookat),
            vup=WORLD_UP,
            vfov=self.vfov,
            width=self.width,
            height=self.height,
        )


def _clamp_pitch(pitch: float) -> float:
    return max(-MAX_PITCH, min(MAX_PITCH, float(pitch)))

"""Background radiance for rays that leave the scene.

Environments are queried by the integrator for escaping rays only; they are
never sampled by next-event estimation.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from pathtracer.core.ray import as_vec3

Vec3Array = npt.NDArray[np.float64]


@dataclass(frozen=True, eq=False)
class ConstantEnvironment:
    """Uniform background radiance (black by default)."""

    color: Vec3Array = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        color = as_vec3(self.color)
        color.flags.writeable = False
        object.__setattr__(self, "color", color)

    def radiance(self, directions: Vec3Array) -> Vec3Array:
        return np.broadcast_to(self.color, directions.shape).copy()


@dataclass(frozen=True, eq=False)
class GradientEnvironment:
    """Sky gradient blended on the y component of the ray direction.

    A ray pointing straight down sees `bottom`, straight up sees `top`:

        t = 0.5 * (direction.y + 1)
        L = (1 - t) * bottom + t * top
    """

    bottom: Vec3Array = (1.0, 1.0, 1.0)
    top: Vec3Array = (0.5, 0.7, 1.0)

    def __post_init__(self) -> None:
        for name in ("bottom", "top"):
            value = as_vec3(getattr(self, name))
            value.flags.writeable = False
            object.__setattr__(self, name, value)

    def radiance(self, directions: Vec3Array) -> Vec3Array:
        t = np.clip(0.5 * (directions[:, 1] + 1.0), 0.0, 1.0)[:, None]
        return (1.0 - t) * self.bottom + t * self.top


Environment = ConstantEnvironment | GradientEnvironment

"""Common interface for geometric primitives.

Every primitive answers three questions for a batch of rays:

    t = shape.intersect(origins, directions, t_min, t_max)   # inf on a miss
    n = shape.outward_normal(points)                          # unit normals
    p, n = shape.sample_surface(u, v)                         # area lights

Intersections use the open interval (t_min, t_max). ``t_max`` may be a
per-ray array, which lets the scene pass the closest hit found so far and
skip work on rays that already have a nearer hit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
import numpy.typing as npt

from pathtracer.errors import DegenerateGeometryError

Vec3Array = npt.NDArray[np.float64]
FloatArray = npt.NDArray[np.float64]

# Below this, a cross product (twice a triangle's area) is considered zero
DEGENERATE_AREA_EPSILON = 1e-12


class Shape(ABC):
    """Abstract base class for intersectable primitives."""

    @abstractmethod
    def validate(self) -> None:
        """Raise DegenerateGeometryError if the shape cannot be rendered."""

    @abstractmethod
    def intersect(
        self,
        origins: Vec3Array,
        directions: Vec3Array,
        t_min: float,
        t_max: float | FloatArray,
    ) -> FloatArray:
        """Return the nearest hit distance per ray in (t_min, t_max), inf on a miss."""

    @abstractmethod
    def outward_normal(self, points: Vec3Array) -> Vec3Array:
        """Return unit geometric normals at points lying on the surface."""

    @property
    def area(self) -> float:
        """Surface area used by area-light sampling."""
        raise NotImplementedError(f"{type(self).__name__} has no finite area")

    @property
    def can_sample(self) -> bool:
        """Whether points can be drawn uniformly on the surface."""
        return False

    def sample_surface(self, u: FloatArray, v: FloatArray) -> tuple[Vec3Array, Vec3Array]:
        """Map uniform (u, v) in [0, 1)^2 to uniformly distributed surface points.

        Returns:
            A tuple (points, normals), each of shape (N, 3).
        """
        raise NotImplementedError(f"{type(self).__name__} cannot be sampled")


def check_finite(name: str, *values: npt.ArrayLike) -> None:
    """Raise DegenerateGeometryError if any value contains NaN or Inf."""
    for value in values:
        if not np.all(np.isfinite(np.asarray(value, dtype=np.float64))):
            raise DegenerateGeometryError(f"{name} has non-finite coordinates")


def miss_array(count: int) -> FloatArray:
    """An array of `count` misses."""
    return np.full(count, np.inf)

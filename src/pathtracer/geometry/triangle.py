"""Triangle primitive using the Möller–Trumbore intersection test.

The test solves

    origin + t * direction = v0 + b1 * (v1 - v0) + b2 * (v2 - v0)

with Cramer's rule and accepts the hit when b1 >= 0, b2 >= 0 and
b1 + b2 <= 1. The geometric normal follows the winding order v0 -> v1 -> v2.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pathtracer.core.ray import as_vec3, cross, dot
from pathtracer.errors import DegenerateGeometryError
from pathtracer.geometry.shape import (
    DEGENERATE_AREA_EPSILON,
    FloatArray,
    Shape,
    Vec3Array,
    check_finite,
)

# Determinants smaller than this mean the ray is parallel to the triangle
DETERMINANT_EPSILON = 1e-12


@dataclass(frozen=True, eq=False)
class Triangle(Shape):
    """A triangle given by three vertices.

    Attributes:
        v0: First vertex.
        v1: Second vertex.
        v2: Third vertex.
    """

    v0: Vec3Array
    v1: Vec3Array
    v2: Vec3Array

    def __post_init__(self) -> None:
        for name in ("v0", "v1", "v2"):
            value = as_vec3(getattr(self, name))
            value.flags.writeable = False
            object.__setattr__(self, name, value)

        e1 = self.v1 - self.v0
        e2 = self.v2 - self.v0
        n = cross(e1, e2)
        n_len = float(np.linalg.norm(n))
        normal = n / n_len if n_len > 0.0 else np.zeros(3)
        object.__setattr__(self, "_edge1", e1)
        object.__setattr__(self, "_edge2", e2)
        object.__setattr__(self, "_normal", normal)
        object.__setattr__(self, "_double_area", n_len)

    def validate(self) -> None:
        check_finite("Triangle", self.v0, self.v1, self.v2)
        if self._double_area < DEGENERATE_AREA_EPSILON:
            raise DegenerateGeometryError("Triangle vertices are collinear: the triangle has zero area")

    @property
    def normal(self) -> Vec3Array:
        return self._normal

    def intersect(
        self,
        origins: Vec3Array,
        directions: Vec3Array,
        t_min: float,
        t_max: float | FloatArray,
    ) -> FloatArray:
        pvec = cross(directions, self._edge2)
        det = pvec @ self._edge1
        parallel = np.abs(det) < DETERMINANT_EPSILON
        inv_det = 1.0 / np.where(parallel, 1.0, det)

        tvec = origins - self.v0
        b1 = dot(tvec, pvec) * inv_det

        qvec = cross(tvec, self._edge1)
        b2 = dot(directions, qvec) * inv_det
        t = (qvec @ self._edge2) * inv_det

        inside = (b1 >= 0.0) & (b2 >= 0.0) & (b1 + b2 <= 1.0)
        valid = ~parallel & inside & (t > t_min) & (t < t_max)
        return np.where(valid, t, np.inf)

    def outward_normal(self, points: Vec3Array) -> Vec3Array:
        return np.broadcast_to(self._normal, points.shape).copy()

    @property
    def area(self) -> float:
        return 0.5 * self._double_area

    @property
    def can_sample(self) -> bool:
        return True

    def sample_surface(self, u: FloatArray, v: FloatArray) -> tuple[Vec3Array, Vec3Array]:
        """Uniform area sampling with the square-root warp of (u, v) to barycentrics."""
        su = np.sqrt(u)
        b1 = su * (1.0 - v)
        b2 = v * su
        points = self.v0 + b1[:, None] * self._edge1 + b2[:, None] * self._edge2
        return points, np.broadcast_to(self._normal, points.shape).copy()

"""Infinite plane primitive.

A plane is the set of points p with dot(normal, p - point) == 0. It is handy
for ground planes in test scenes. Planes have no finite area, so they can
never be sampled as area lights.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pathtracer.core.ray import MIN_DIRECTION_LENGTH, as_vec3
from pathtracer.errors import DegenerateGeometryError
from pathtracer.geometry.quad import PARALLEL_EPSILON
from pathtracer.geometry.shape import FloatArray, Shape, Vec3Array, check_finite


@dataclass(frozen=True, eq=False)
class Plane(Shape):
    """An infinite plane through `point` with the given normal.

    Attributes:
        point: Any point on the plane.
        normal: The plane normal; normalised on construction.
    """

    point: Vec3Array
    normal: Vec3Array

    def __post_init__(self) -> None:
        point = as_vec3(self.point)
        normal = as_vec3(self.normal)
        norm = float(np.linalg.norm(normal))
        if norm > MIN_DIRECTION_LENGTH:
            normal = normal / norm
        point.flags.writeable = False
        normal.flags.writeable = False
        object.__setattr__(self, "point", point)
        object.__setattr__(self, "normal", normal)

    def validate(self) -> None:
        check_finite("Plane", self.point, self.normal)
        if float(np.linalg.norm(self.normal)) < 0.5:
            raise DegenerateGeometryError("Plane normal has zero length")

    def intersect(
        self,
        origins: Vec3Array,
        directions: Vec3Array,
        t_min: float,
        t_max: float | FloatArray,
    ) -> FloatArray:
        denom = directions @ self.normal
        parallel = np.abs(denom) <= PARALLEL_EPSILON
        t = ((self.point - origins) @ self.normal) / np.where(parallel, 1.0, denom)
        valid = ~parallel & (t > t_min) & (t < t_max)
        return np.where(valid, t, np.inf)

    def outward_normal(self, points: Vec3Array) -> Vec3Array:
        return np.broadcast_to(self.normal, points.shape).copy()

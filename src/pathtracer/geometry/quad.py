"""Quad primitive with ray-quad intersection.

This module provides a Quad shape for rendering rectangular surfaces such as
the walls and the ceiling light of a Cornell box.

A quad is defined by:
- corner: A corner point of the quad
- edge_u: Edge vector from corner to adjacent corner
- edge_v: Edge vector from corner to other adjacent corner

The quad spans the parallelogram from corner to corner+edge_u+edge_v. The
normal is computed as normalize(cross(edge_u, edge_v)), pointing in the
direction determined by the right-hand rule.

Ray-quad intersection uses the parametric plane test:
1. Find where ray intersects the plane containing the quad
2. Check if the intersection point lies within the quad bounds

Example:
    >>> from pathtracer.geometry.quad import Quad
    >>> # Floor quad at y=0, spanning x=[0,1] and z=[0,1]
    >>> quad = Quad(corner=(0, 0, 0), edge_u=(1, 0, 0), edge_v=(0, 0, 1))
    >>> quad.area
    1.0
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

# Rays closer to parallel than this never hit a planar primitive
PARALLEL_EPSILON = 1e-8


@dataclass(frozen=True, eq=False)
class Quad(Shape):
    """A quad (parallelogram) defined by a corner point and two edge vectors.

    The quad represents the parallelogram with vertices at:
        corner, corner+edge_u, corner+edge_v, corner+edge_u+edge_v

    Attributes:
        corner: The corner point of the quad.
        edge_u: Edge vector from corner to adjacent corner.
        edge_v: Edge vector from corner to other adjacent corner.
    """

    corner: Vec3Array
    edge_u: Vec3Array
    edge_v: Vec3Array

    def __post_init__(self) -> None:
        for name in ("corner", "edge_u", "edge_v"):
            value = as_vec3(getattr(self, name))
            value.flags.writeable = False
            object.__setattr__(self, name, value)

        # For solving the parametric coordinates (alpha, beta):
        # P = corner + alpha * edge_u + beta * edge_v
        # alpha = dot(w_u, P - corner), beta = dot(w_v, P - corner)
        # with w_u = edge_v x n / dot(n, n), w_v = n x edge_u / dot(n, n)
        n = cross(self.edge_u, self.edge_v)
        n_dot_n = float(dot(n, n))
        if n_dot_n > DEGENERATE_AREA_EPSILON**2:
            normal = n / np.sqrt(n_dot_n)
            w_u = cross(self.edge_v, n) / n_dot_n
            w_v = cross(n, self.edge_u) / n_dot_n
        else:
            normal = np.zeros(3)
            w_u = np.zeros(3)
            w_v = np.zeros(3)
        object.__setattr__(self, "_normal", normal)
        object.__setattr__(self, "_plane_d", float(dot(normal, self.corner)))
        object.__setattr__(self, "_w_u", w_u)
        object.__setattr__(self, "_w_v", w_v)

    def validate(self) -> None:
        check_finite("Quad", self.corner, self.edge_u, self.edge_v)
        if self.area < DEGENERATE_AREA_EPSILON:
            raise DegenerateGeometryError("Quad edges are parallel or zero: the quad has no area")

    @property
    def normal(self) -> Vec3Array:
        """Unit normal, normalize(cross(edge_u, edge_v))."""
        return self._normal

    def intersect(
        self,
        origins: Vec3Array,
        directions: Vec3Array,
        t_min: float,
        t_max: float | FloatArray,
    ) -> FloatArray:
        """Test rays against the quad.

        The ray-plane intersection is found by solving:
            origin + t * direction = corner + alpha * edge_u + beta * edge_v

        Taking dot product with the normal:
            t = (d - dot(normal, origin)) / dot(normal, direction)

        The hit is kept when 0 <= alpha <= 1 and 0 <= beta <= 1.
        """
        denom = directions @ self._normal
        parallel = np.abs(denom) <= PARALLEL_EPSILON
        safe_denom = np.where(parallel, 1.0, denom)
        t = (self._plane_d - origins @ self._normal) / safe_denom

        p_minus_q = origins + t[:, None] * directions - self.corner
        alpha = p_minus_q @ self._w_u
        beta = p_minus_q @ self._w_v

        inside = (alpha >= 0.0) & (alpha <= 1.0) & (beta >= 0.0) & (beta <= 1.0)
        valid = ~parallel & inside & (t > t_min) & (t < t_max)
        return np.where(valid, t, np.inf)

    def outward_normal(self, points: Vec3Array) -> Vec3Array:
        return np.broadcast_to(self._normal, points.shape).copy()

    @property
    def area(self) -> float:
        """The magnitude of the cross product of the edge vectors."""
        return float(np.linalg.norm(cross(self.edge_u, self.edge_v)))

    @property
    def can_sample(self) -> bool:
        return True

    def sample_surface(self, u: FloatArray, v: FloatArray) -> tuple[Vec3Array, Vec3Array]:
        points = self.corner + u[:, None] * self.edge_u + v[:, None] * self.edge_v
        return points, np.broadcast_to(self._normal, points.shape).copy()

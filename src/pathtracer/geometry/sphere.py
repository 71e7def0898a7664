"""Sphere primitive with robust ray-sphere intersection.

This module provides a Sphere shape and its batched intersection routine
using the robust quadratic formula from Ray Tracing Gems to avoid
floating-point artifacts.

The robust quadratic formula avoids catastrophic cancellation when b^2 is
nearly equal to 4ac by using a reformulated calculation that maintains
numerical stability.

Example:
    >>> import numpy as np
    >>> from pathtracer.geometry.sphere import Sphere
    >>> sphere = Sphere(center=(0.0, 0.0, -1.0), radius=0.5)
    >>> origins = np.zeros((1, 3))
    >>> directions = np.array([[0.0, 0.0, -1.0]])
    >>> sphere.intersect(origins, directions, 1e-4, 1e10)
    array([0.5])
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pathtracer.core.ray import as_vec3, dot
from pathtracer.errors import DegenerateGeometryError
from pathtracer.geometry.shape import FloatArray, Shape, Vec3Array, check_finite


@dataclass(frozen=True, eq=False)
class Sphere(Shape):
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere.
        radius: The radius of the sphere (positive float).
    """

    center: Vec3Array
    radius: float

    def __post_init__(self) -> None:
        center = as_vec3(self.center)
        center.flags.writeable = False
        object.__setattr__(self, "center", center)
        object.__setattr__(self, "radius", float(self.radius))

    def validate(self) -> None:
        check_finite("Sphere", self.center, self.radius)
        if self.radius <= 0.0:
            raise DegenerateGeometryError(f"Sphere radius must be positive, got {self.radius}")

    def intersect(
        self,
        origins: Vec3Array,
        directions: Vec3Array,
        t_min: float,
        t_max: float | FloatArray,
    ) -> FloatArray:
        """Test rays against the sphere using the robust quadratic formula.

        The ray-sphere intersection is found by solving:
            |origin + t * direction - center|^2 = radius^2

        which gives a*t^2 + 2*h*t + c = 0 with
            a = dot(direction, direction)
            h = dot(direction, oc)  (half of traditional b)
            c = dot(oc, oc) - radius^2
            oc = origin - center

        The robust formula uses q = -(h + sign(h) * sqrt(discriminant)),
        t0 = q / a and t1 = c / q.

        Returns:
            The first root inside (t_min, t_max) per ray, inf on a miss.
        """
        oc = origins - self.center
        a = dot(directions, directions)
        h = dot(directions, oc)
        c = dot(oc, oc) - self.radius * self.radius

        discriminant = h * h - a * c
        hit = discriminant >= 0.0
        sqrt_d = np.sqrt(np.where(hit, discriminant, 0.0))

        sign_h = np.where(h < 0.0, -1.0, 1.0)
        q = -(h + sign_h * sqrt_d)

        with np.errstate(divide="ignore", invalid="ignore"):
            # Tangent rays leave q near zero: fall back to the textbook roots
            tangent = np.abs(q) < 1e-10
            r0 = np.where(tangent, (-h - sqrt_d) / a, q / a)
            r1 = np.where(tangent, (-h + sqrt_d) / a, c / np.where(tangent, 1.0, q))

        t0 = np.minimum(r0, r1)
        t1 = np.maximum(r0, r1)

        valid0 = hit & (t0 > t_min) & (t0 < t_max)
        valid1 = hit & (t1 > t_min) & (t1 < t_max)
        return np.where(valid0, t0, np.where(valid1, t1, np.inf))

    def outward_normal(self, points: Vec3Array) -> Vec3Array:
        # Outward normal: points from center to hit point
        return (points - self.center) / self.radius

    @property
    def area(self) -> float:
        return 4.0 * np.pi * self.radius * self.radius

    @property
    def can_sample(self) -> bool:
        return True

    def sample_surface(self, u: FloatArray, v: FloatArray) -> tuple[Vec3Array, Vec3Array]:
        """Uniform area sampling: z = 1 - 2u, phi = 2 * pi * v."""
        z = 1.0 - 2.0 * u
        r = np.sqrt(np.maximum(0.0, 1.0 - z * z))
        phi = 2.0 * np.pi * v
        normals = np.stack([r * np.cos(phi), r * np.sin(phi), z], axis=-1)
        return self.center + self.radius * normals, normals

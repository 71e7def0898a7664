"""Ray data structure and batched vector utilities for Monte Carlo ray tracing.

This module provides the immutable Ray dataclass used for single-ray queries
and the vector helpers the rest of the tracer uses on ray *batches*. A batch
is a float64 array of shape (N, 3); every helper operates row-wise so that a
whole tile of camera paths can be advanced with a handful of NumPy calls.

Random sampling helpers take an explicit ``numpy.random.Generator`` so each
worker thread can own an independently seeded stream.

Example:
    >>> import numpy as np
    >>> from pathtracer.core.ray import Ray
    >>> ray = Ray(origin=(0.0, 0.0, 0.0), direction=(0.0, 0.0, -2.0))
    >>> ray.direction
    array([ 0.,  0., -1.])
    >>> ray.at(5.0)  # Point 5 units along the ray
    array([ 0.,  0., -5.])
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

Vec3Array = npt.NDArray[np.float64]

# t_min and t_max for ray intersection
T_MIN = 1e-4
T_MAX = 1e10

# Ray offset epsilon to avoid self-intersection
RAY_EPSILON = 1e-4

# Directions shorter than this cannot be normalised
MIN_DIRECTION_LENGTH = 1e-12

# Rec. 709 luminance weights
LUMINANCE_WEIGHTS = np.array([0.2126, 0.7152, 0.0722])


@dataclass(frozen=True, eq=False)
class Ray:
    """A ray with an origin, a unit direction and a valid parametric interval.

    The direction is normalised on construction. Rays are immutable for the
    duration of an intersection query.

    Attributes:
        origin: The starting point of the ray, shape (3,).
        direction: The unit direction of the ray, shape (3,).
        t_min: Hits at t <= t_min are ignored.
        t_max: Hits at t >= t_max are ignored.

    Raises:
        ValueError: If the direction has near-zero length, the components are
            not finite, or the interval is empty.
    """

    origin: Vec3Array
    direction: Vec3Array
    t_min: float = T_MIN
    t_max: float = T_MAX

    def __post_init__(self) -> None:
        origin = np.asarray(self.origin, dtype=np.float64).reshape(3)
        direction = np.asarray(self.direction, dtype=np.float64).reshape(3)

        if not (np.all(np.isfinite(origin)) and np.all(np.isfinite(direction))):
            raise ValueError("Ray origin and direction must be finite")

        norm = float(np.linalg.norm(direction))
        if norm < MIN_DIRECTION_LENGTH:
            raise ValueError(f"Ray direction has near-zero length ({norm})")

        if not self.t_min < self.t_max:
            raise ValueError(f"Empty ray interval: t_min={self.t_min}, t_max={self.t_max}")

        direction = direction / norm
        origin.flags.writeable = False
        direction.flags.writeable = False
        object.__setattr__(self, "origin", origin)
        object.__setattr__(self, "direction", direction)

    def at(self, t: float) -> Vec3Array:
        """Compute the point along the ray at parameter t.

        Args:
            t: The parameter value. Positive values are in front of the origin.

        Returns:
            The point origin + t * direction.
        """
        return self.origin + t * self.direction

    def as_batch(self) -> tuple[Vec3Array, Vec3Array]:
        """Return the ray as a batch of one: (origins, directions), each (1, 3)."""
        return self.origin[None, :].copy(), self.direction[None, :].copy()


# =============================================================================
# Vector Utility Functions
# =============================================================================


def vec3(x: float, y: float, z: float) -> Vec3Array:
    """Create a float64 3-vector."""
    return np.array([x, y, z], dtype=np.float64)


def as_vec3(value: npt.ArrayLike) -> Vec3Array:
    """Convert a 3-component sequence into a float64 vector of shape (3,)."""
    return np.asarray(value, dtype=np.float64).reshape(3)


def dot(a: Vec3Array, b: Vec3Array) -> npt.NDArray[np.float64]:
    """Row-wise dot product of two (N, 3) arrays (broadcasts against (3,))."""
    return np.sum(a * b, axis=-1)


def cross(a: Vec3Array, b: Vec3Array) -> Vec3Array:
    """Row-wise cross product."""
    return np.cross(a, b)


def length(v: Vec3Array) -> npt.NDArray[np.float64]:
    """Row-wise Euclidean length."""
    return np.sqrt(dot(v, v))


def normalize(v: Vec3Array) -> Vec3Array:
    """Normalise each row to unit length.

    Zero-length rows are returned unchanged (as zeros) instead of NaN.
    """
    norm = length(v)
    safe = np.where(norm > MIN_DIRECTION_LENGTH, norm, 1.0)
    return v / safe[..., None]


def reflect(incident: Vec3Array, normal: Vec3Array) -> Vec3Array:
    """Reflect incident directions about the (unit) normals.

    Args:
        incident: Incoming directions pointing toward the surface.
        normal: Surface normals (unit length).

    Returns:
        The mirror directions.
    """
    return incident - 2.0 * dot(incident, normal)[..., None] * normal


def luminance(color: Vec3Array) -> npt.NDArray[np.float64]:
    """Rec. 709 luminance of RGB triples (works on (3,) or (N, 3))."""
    return np.asarray(color, dtype=np.float64) @ LUMINANCE_WEIGHTS


def build_onb_from_normal(normal: Vec3Array) -> tuple[Vec3Array, Vec3Array, Vec3Array]:
    """Build orthonormal bases whose z-axis is the given normal.

    Args:
        normal: Unit normals, shape (N, 3).

    Returns:
        A tuple (tangent, bitangent, normal) of (N, 3) arrays.
    """
    # Choose a helper axis that is not parallel to the normal
    helper = np.zeros_like(normal)
    use_y = np.abs(normal[..., 0]) > 0.9
    helper[..., 0] = np.where(use_y, 0.0, 1.0)
    helper[..., 1] = np.where(use_y, 1.0, 0.0)

    tangent = normalize(cross(helper, normal))
    bitangent = cross(normal, tangent)
    return tangent, bitangent, normal


def local_to_world(
    local_dir: Vec3Array, tangent: Vec3Array, bitangent: Vec3Array, normal: Vec3Array
) -> Vec3Array:
    """Transform local (z-up) directions into the world frame."""
    return (
        local_dir[..., 0:1] * tangent
        + local_dir[..., 1:2] * bitangent
        + local_dir[..., 2:3] * normal
    )


def offset_ray_origin(point: Vec3Array, normal: Vec3Array, direction: Vec3Array) -> Vec3Array:
    """Offset ray origins off the surface to avoid self-intersection.

    Pushes each point along the geometric normal toward the side the new ray
    travels (above the surface for reflection, below for transmission).
    """
    side = np.where(dot(direction, normal) < 0.0, -1.0, 1.0)
    return point + (RAY_EPSILON * side)[..., None] * normal


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


def random_cosine_direction(rng: np.random.Generator, count: int) -> Vec3Array:
    """Draw local-frame directions with density cos(theta) / pi.

    Args:
        rng: The random source.
        count: Number of directions.

    Returns:
        Unit directions in the local z-up frame, shape (count, 3).
    """
    r1 = rng.random(count)
    r2 = rng.random(count)
    phi = 2.0 * np.pi * r1
    sqrt_r2 = np.sqrt(r2)
    x = np.cos(phi) * sqrt_r2
    y = np.sin(phi) * sqrt_r2
    z = np.sqrt(np.maximum(0.0, 1.0 - r2))
    return np.stack([x, y, z], axis=-1)


def sample_cosine_hemisphere(
    normal: Vec3Array, rng: np.random.Generator
) -> tuple[Vec3Array, npt.NDArray[np.float64]]:
    """Cosine-weighted hemisphere sampling around each normal.

    This is the importance sampling distribution for Lambertian BRDFs: the
    cos(theta) / pi density cancels the cosine term of the rendering equation.

    Args:
        normal: Unit normals defining the hemispheres, shape (N, 3).
        rng: The random source.

    Returns:
        A tuple (directions, pdf) with world-space unit directions and the
        density cos(theta) / pi of each.
    """
    local_dir = random_cosine_direction(rng, normal.shape[0])
    tangent, bitangent, n = build_onb_from_normal(normal)
    world_dir = normalize(local_to_world(local_dir, tangent, bitangent, n))
    pdf = np.maximum(dot(world_dir, normal), 0.0) / np.pi
    return world_dir, pdf


def power_heuristic(pdf_a: npt.NDArray[np.float64], pdf_b: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Multiple importance sampling weight for strategy a (beta = 2).

    Returns 0 where both densities are zero.
    """
    a2 = pdf_a * pdf_a
    b2 = pdf_b * pdf_b
    total = a2 + b2
    return np.where(total > 0.0, a2 / np.where(total > 0.0, total, 1.0), 0.0)

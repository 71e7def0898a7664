"""Diffuse lobe: the Lambertian (ideal diffuse) BRDF.

This module implements the Lambertian BRDF, which models ideal diffuse
reflection where incident light is scattered uniformly in all directions
weighted by the cosine of the angle from the surface normal.

The Lambertian BRDF is:
    f_r(wi, wo) = albedo / pi

The probability density function for cosine-weighted hemisphere sampling is:
    pdf(wi) = cos(theta) / pi

where theta is the angle between the sampled direction and the surface normal.
All functions operate on batches: normals and directions are (N, 3) arrays.

Example:
    >>> import numpy as np
    >>> from pathtracer.materials.diffuse import scatter_lambertian
    >>> rng = np.random.default_rng(0)
    >>> normals = np.tile([0.0, 1.0, 0.0], (4, 1))
    >>> directions, weight, pdf = scatter_lambertian(np.array([0.5, 0.5, 0.5]), normals, rng)
    >>> directions.shape
    (4, 3)
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from pathtracer.core.ray import dot, sample_cosine_hemisphere

Vec3Array = npt.NDArray[np.float64]


def eval_lambertian(albedo: Vec3Array, normal: Vec3Array, direction: Vec3Array) -> Vec3Array:
    """Evaluate f_r * cos(theta) for the Lambertian BRDF.

    Args:
        albedo: The diffuse reflectance color (RGB).
        normal: Surface normals, shape (N, 3).
        direction: Outgoing directions, shape (N, 3).

    Returns:
        albedo / pi * max(cos(theta), 0) per direction, shape (N, 3).
    """
    cos_theta = np.maximum(dot(normal, direction), 0.0)
    return (albedo / np.pi) * cos_theta[:, None]


def pdf_lambertian(normal: Vec3Array, direction: Vec3Array) -> npt.NDArray[np.float64]:
    """Compute the PDF for Lambertian cosine-weighted sampling.

    Returns 0 for directions below the surface (negative cosine).
    """
    return np.maximum(dot(normal, direction), 0.0) / np.pi


def scatter_lambertian(
    albedo: Vec3Array, normal: Vec3Array, rng: np.random.Generator
) -> tuple[Vec3Array, Vec3Array, npt.NDArray[np.float64]]:
    """Sample scattered directions for the Lambertian lobe.

    Uses cosine-weighted hemisphere sampling, so that

        weight / pdf = (albedo / pi) * cos_theta / (cos_theta / pi) = albedo

    Args:
        albedo: The diffuse reflectance color (RGB).
        normal: Surface normals at the hit points, shape (N, 3).
        rng: The random source.

    Returns:
        A tuple of (directions, weight, pdf) where weight is f_r * cos(theta).
    """
    directions, pdf = sample_cosine_hemisphere(normal, rng)
    weight = (albedo / np.pi) * (pdf * np.pi)[:, None]
    return directions, weight, pdf

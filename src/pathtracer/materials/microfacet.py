"""Rough specular lobe: the GGX (Trowbridge-Reitz) microfacet BRDF.

This module implements reflection from a rough surface made of tiny mirror
facets whose normals follow the GGX distribution. The reflectance color
plays the role of a constant Fresnel term.

The BRDF times the cosine term is:
    f_r(v, l) * cos(theta_l) = F * D(h) * G2(v, l) / (4 * (n . v))

where h = normalize(v + l) is the half vector, D the GGX normal
distribution and G2 the Smith height-correlated masking-shadowing term.

Directions are sampled from the distribution of visible normals (Heitz
2018), so the sampling density is:
    pdf(l) = G1(v) * D(h) / (4 * (n . v))

and the sample weight reduces to F * G2 / G1(v).

Roughness is perceptual: alpha = roughness ** 2. Roughness 0 is the perfect
mirror of `specular.py`, which is handled as a Dirac delta instead.
All functions operate on batches: normals and directions are (N, 3) arrays.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from pathtracer.core.ray import build_onb_from_normal, dot, local_to_world, normalize

Vec3Array = npt.NDArray[np.float64]

# Lower bound on alpha so D stays finite for nearly smooth surfaces
MIN_ALPHA = 1e-4

# Cosines below this count as grazing and carry no energy
MIN_COSINE = 1e-6


def roughness_to_alpha(roughness: float) -> float:
    """Map perceptual roughness to the GGX alpha parameter."""
    return max(roughness * roughness, MIN_ALPHA)


# =============================================================================
# Microfacet Terms
# =============================================================================


def ggx_distribution(alpha: float, n_dot_h: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """GGX normal distribution D(h); zero for half vectors below the surface."""
    alpha_sq = alpha * alpha
    cos_sq = n_dot_h * n_dot_h
    denom = (alpha_sq - 1.0) * cos_sq + 1.0
    return np.where(n_dot_h > 0.0, alpha_sq / (np.pi * denom * denom), 0.0)


def smith_g1(alpha: float, n_dot_s: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Smith masking term for one direction."""
    alpha_sq = alpha * alpha
    cos = np.maximum(n_dot_s, MIN_COSINE)
    return 2.0 * cos / (cos + np.sqrt(alpha_sq + (1.0 - alpha_sq) * cos * cos))


def smith_g2(
    alpha: float, n_dot_l: npt.NDArray[np.float64], n_dot_v: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    """Height-correlated masking-shadowing built from the two G1 terms."""
    g1_v = smith_g1(alpha, n_dot_v)
    g1_l = smith_g1(alpha, n_dot_l)
    return g1_v * g1_l / (g1_v + g1_l - g1_v * g1_l)


def sample_ggx_vndf(
    view_local: Vec3Array,
    alpha: float,
    u1: npt.NDArray[np.float64],
    u2: npt.NDArray[np.float64],
) -> Vec3Array:
    """Sample microfacet normals visible from the local-frame view directions.

    Args:
        view_local: Directions toward the viewer in the z-up frame, (N, 3).
        alpha: GGX roughness parameter.
        u1: Uniform random numbers in [0, 1), shape (N,).
        u2: Uniform random numbers in [0, 1), shape (N,).

    Returns:
        Unit half vectors in the z-up frame, shape (N, 3).
    """
    # Stretch the view direction into the hemisphere configuration
    vh = normalize(
        np.stack([alpha * view_local[:, 0], alpha * view_local[:, 1], view_local[:, 2]], axis=-1)
    )

    lensq = vh[:, 0] ** 2 + vh[:, 1] ** 2
    has_tangent = lensq > 0.0
    inv_len = 1.0 / np.sqrt(np.where(has_tangent, lensq, 1.0))
    t1 = np.where(
        has_tangent[:, None],
        np.stack([-vh[:, 1] * inv_len, vh[:, 0] * inv_len, np.zeros_like(inv_len)], axis=-1),
        np.array([1.0, 0.0, 0.0]),
    )
    t2 = np.cross(vh, t1)

    # Uniform point on the projected disk, warped toward the visible half
    r = np.sqrt(u1)
    phi = 2.0 * np.pi * u2
    p1 = r * np.cos(phi)
    p2 = r * np.sin(phi)
    s = 0.5 * (1.0 + vh[:, 2])
    p2 = (1.0 - s) * np.sqrt(np.maximum(0.0, 1.0 - p1 * p1)) + s * p2

    # Reproject onto the hemisphere and unstretch
    pz = np.sqrt(np.maximum(0.0, 1.0 - p1 * p1 - p2 * p2))
    nh = p1[:, None] * t1 + p2[:, None] * t2 + pz[:, None] * vh
    return normalize(
        np.stack([alpha * nh[:, 0], alpha * nh[:, 1], np.maximum(nh[:, 2], 0.0)], axis=-1)
    )


# =============================================================================
# Lobe Evaluation and Sampling
# =============================================================================


def eval_ggx(
    specular: Vec3Array, alpha: float, normal: Vec3Array, view: Vec3Array, direction: Vec3Array
) -> Vec3Array:
    """Evaluate f_r * cos(theta) of the GGX lobe.

    Args:
        specular: Reflectance color (RGB).
        alpha: GGX roughness parameter.
        normal: Ray-facing surface normals, (N, 3).
        view: Unit directions toward the viewer, (N, 3).
        direction: Outgoing (light) directions, (N, 3).

    Returns:
        f_r * cos(theta), zero where either direction is below the surface.
    """
    n_dot_v = dot(normal, view)
    n_dot_l = dot(normal, direction)
    above = (n_dot_v > MIN_COSINE) & (n_dot_l > MIN_COSINE)

    half = normalize(view + direction)
    d = ggx_distribution(alpha, dot(normal, half))
    g2 = smith_g2(alpha, n_dot_l, n_dot_v)
    value = d * g2 / (4.0 * np.maximum(n_dot_v, MIN_COSINE))
    return np.asarray(specular) * np.where(above, value, 0.0)[:, None]


def pdf_ggx(alpha: float, normal: Vec3Array, view: Vec3Array, direction: Vec3Array) -> npt.NDArray[np.float64]:
    """Solid-angle density of `scatter_ggx` producing `direction`."""
    n_dot_v = dot(normal, view)
    n_dot_l = dot(normal, direction)
    above = (n_dot_v > MIN_COSINE) & (n_dot_l > MIN_COSINE)

    half = normalize(view + direction)
    d = ggx_distribution(alpha, dot(normal, half))
    pdf = smith_g1(alpha, n_dot_v) * d / (4.0 * np.maximum(n_dot_v, MIN_COSINE))
    return np.where(above, pdf, 0.0)


def scatter_ggx(
    specular: Vec3Array, alpha: float, incident: Vec3Array, normal: Vec3Array, rng: np.random.Generator
) -> tuple[Vec3Array, Vec3Array, npt.NDArray[np.float64]]:
    """Sample reflected directions from the GGX lobe.

    Args:
        specular: Reflectance color (RGB).
        alpha: GGX roughness parameter.
        incident: Incoming ray directions (pointing toward the surface), (N, 3).
        normal: Ray-facing surface normals, (N, 3).
        rng: The random source.

    Returns:
        A tuple of (directions, weight, pdf) where weight is f_r * cos(theta).
        Directions that end up below the surface have zero weight and pdf.
    """
    count = incident.shape[0]
    view = -incident
    tangent, bitangent, n = build_onb_from_normal(normal)
    view_local = np.stack([dot(view, tangent), dot(view, bitangent), dot(view, n)], axis=-1)

    half_local = sample_ggx_vndf(view_local, alpha, rng.random(count), rng.random(count))
    half = normalize(local_to_world(half_local, tangent, bitangent, n))
    directions = normalize(2.0 * dot(view, half)[:, None] * half - view)

    weight = eval_ggx(specular, alpha, normal, view, directions)
    pdf = pdf_ggx(alpha, normal, view, directions)
    return directions, weight, pdf

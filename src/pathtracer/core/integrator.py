"""Path tracing integrator for Monte Carlo light transport.

This module implements unbiased path tracing with next-event estimation,
multiple importance sampling and Russian-roulette termination.

The path tracer solves the rendering equation by tracing rays from the camera
through the scene, bouncing off surfaces according to their material properties,
and accumulating radiance along each path. Every path runs through

    TRACING -> (SHADE -> BOUNCE)* -> TERMINATED

and a whole batch of paths is advanced together as a wavefront: each loop
iteration intersects all live paths, shades them, and keeps only the paths
that survive the bounce.

Key features:
    - Emission counted in full on the camera hit and after mirror bounces
    - Next-event estimation: one light sample and shadow ray per vertex
    - Power-heuristic MIS between light sampling and BSDF sampling
    - Russian roulette after a minimum number of vertices
    - Self-intersection avoidance with ray offset
    - NaN/Inf firewall: a non-finite sample is replaced by zero

Example:
    >>> import numpy as np
    >>> from pathtracer.core.config import RenderConfig
    >>> from pathtracer.core.integrator import PathIntegrator
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>>
    >>> scene, camera = create_cornell_box_scene(width=8, height=8)
    >>> integrator = PathIntegrator(scene, RenderConfig(max_depth=4))
    >>> rng = np.random.default_rng(0)
    >>> origins, directions = camera.generate_rays(np.arange(8), np.full(8, 4), rng)
    >>> integrator.trace(origins, directions, rng).shape
    (8, 3)
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from pathtracer.core.config import RenderConfig
from pathtracer.core.ray import (
    Ray,
    dot,
    luminance,
    offset_ray_origin,
    power_heuristic,
)
from pathtracer.scene.scene import HitBatch, Scene

Vec3Array = npt.NDArray[np.float64]

# =============================================================================
# Rendering Constants
# =============================================================================

# Sampled directions with a smaller density terminate the path
PDF_EPSILON = 1e-12

# Shadow rays stop this fraction short of the sampled light point
SHADOW_EPSILON = 1e-4

# Light points seen this close to edge-on contribute nothing
COSINE_EPSILON = 1e-8


class PathIntegrator:
    """Estimates radiance along camera rays.

    The integrator only reads the scene and its own configuration, so one
    instance can be shared by every worker thread. All randomness comes from
    the generator passed to `trace`.

    Attributes:
        scene: The scene to render.
        config: Depth, roulette and light-sampling settings.
    """

    def __init__(self, scene: Scene, config: RenderConfig | None = None) -> None:
        self.scene = scene
        self.config = config if config is not None else RenderConfig()
        emission = np.array([m.emitted_radiance() for m in scene.materials], dtype=np.float64).reshape(-1, 3)
        emission.flags.writeable = False
        self._emission = emission

    def radiance(self, ray: Ray, rng: np.random.Generator) -> Vec3Array:
        """Single-ray convenience wrapper around `trace`."""
        origins, directions = ray.as_batch()
        return self.trace(origins, directions, rng)[0]

    def trace(self, origins: Vec3Array, directions: Vec3Array, rng: np.random.Generator) -> Vec3Array:
        """Trace one path per ray and return its radiance estimate.

        Args:
            origins: Ray origins, (N, 3).
            directions: Unit ray directions, (N, 3).
            rng: The random source.

        Returns:
            Non-negative, finite radiance samples, (N, 3).
        """
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            radiance = self._trace_paths(origins, directions, rng)

        # Firewall: a sample with any non-finite component is dropped entirely
        finite = np.all(np.isfinite(radiance), axis=1)
        radiance[~finite] = 0.0
        return np.maximum(radiance, 0.0)

    # =========================================================================
    # Wavefront Loop
    # =========================================================================

    def _trace_paths(self, origins: Vec3Array, directions: Vec3Array, rng: np.random.Generator) -> Vec3Array:
        config = self.config
        scene = self.scene
        count = origins.shape[0]

        radiance = np.zeros((count, 3))
        # Output row of each live path
        path = np.arange(count)
        throughput = np.ones((count, 3))
        origin = np.asarray(origins, dtype=np.float64)
        direction = np.asarray(directions, dtype=np.float64)
        # The camera ray counts like a mirror bounce: its emission is always added
        prev_delta = np.ones(count, dtype=bool)
        prev_pdf = np.zeros(count)

        for depth in range(1, config.max_depth + 1):
            if path.size == 0:
                break

            hits = scene.intersect_batch(origin, direction, config.t_min, config.t_max)

            # Miss: add environment radiance and terminate
            missed = ~hits.hit
            if np.any(missed):
                background = scene.environment.radiance(direction[missed])
                radiance[path[missed]] += throughput[missed] * background

            keep = hits.hit
            path = path[keep]
            if path.size == 0:
                break
            throughput = throughput[keep]
            direction = direction[keep]
            prev_delta = prev_delta[keep]
            prev_pdf = prev_pdf[keep]
            hits = _select(hits, keep)

            radiance[path] += throughput * self._emission_weighted(hits, direction, prev_delta, prev_pdf)

            if depth == config.max_depth:
                break

            if config.next_event_estimation and scene.light_sampler.has_lights:
                radiance[path] += throughput * self._direct_lighting(hits, direction, rng)

            # BOUNCE: sample the BSDF of each hit, grouped by material
            new_direction, weight, pdf, is_delta = self._sample_bsdf(hits, direction, rng)

            alive = (pdf > PDF_EPSILON) & np.any(weight > 0.0, axis=1)
            throughput = throughput * weight / np.where(alive, pdf, 1.0)[:, None]

            if config.roulette and depth >= config.roulette_min_depth:
                survival = np.clip(
                    luminance(throughput),
                    config.roulette_min_probability,
                    config.roulette_max_probability,
                )
                alive &= rng.random(path.size) < survival
                throughput = throughput / survival[:, None]

            alive &= np.all(np.isfinite(throughput), axis=1)

            path = path[alive]
            throughput = throughput[alive]
            direction = new_direction[alive]
            origin = offset_ray_origin(hits.point[alive], hits.normal[alive], direction)
            prev_delta = is_delta[alive]
            prev_pdf = pdf[alive]

        return radiance

    # =========================================================================
    # Shading Helpers
    # =========================================================================

    def _emission_weighted(
        self,
        hits: HitBatch,
        direction: Vec3Array,
        prev_delta: npt.NDArray[np.bool_],
        prev_pdf: npt.NDArray[np.float64],
    ) -> Vec3Array:
        """Emitted radiance at the hits, weighted against light sampling."""
        emission = self._emission[hits.material_id]
        emissive = np.any(emission > 0.0, axis=1)
        if not np.any(emissive) or not self.config.next_event_estimation:
            return emission

        # Hits reached by a non-delta bounce could also have been found by NEE
        diffuse_bounce = emissive & ~prev_delta
        if not np.any(diffuse_bounce):
            return emission

        weight = np.ones(emission.shape[0])
        if self.config.multiple_importance_sampling:
            light_sampler = self.scene.light_sampler
            primitive = hits.primitive[diffuse_bounce]
            cos_light = np.abs(dot(hits.geometric_normal[diffuse_bounce], direction[diffuse_bounce]))
            distance_sq = hits.t[diffuse_bounce] ** 2
            light_pdf = (
                light_sampler.selection_probability(primitive)
                * light_sampler.area_pdf(primitive)
                * distance_sq
                / np.maximum(cos_light, COSINE_EPSILON)
            )
            weight[diffuse_bounce] = power_heuristic(prev_pdf[diffuse_bounce], light_pdf)
        else:
            weight[diffuse_bounce] = 0.0
        return emission * weight[:, None]

    def _direct_lighting(self, hits: HitBatch, direction: Vec3Array, rng: np.random.Generator) -> Vec3Array:
        """One-sample next-event estimate of direct light at each hit."""
        scene = self.scene
        count = hits.t.shape[0]
        point = hits.point
        normal = hits.normal

        sample = scene.light_sampler.sample_light(point, rng)

        to_light = sample.position - point
        distance_sq = dot(to_light, to_light)
        distance = np.sqrt(distance_sq)
        wi = to_light / np.where(distance > 0.0, distance, 1.0)[:, None]

        cos_surface = dot(normal, wi)
        cos_light = np.where(sample.is_delta, 1.0, np.abs(dot(sample.normal, wi)))

        valid = (
            (cos_surface > 0.0)
            & (distance > 0.0)
            & (cos_light > COSINE_EPSILON)
            & (sample.primitive_index != hits.primitive)
        )

        f = np.zeros((count, 3))
        bsdf_pdf = np.zeros(count)
        for material_id in np.unique(hits.material_id[valid]):
            rows = valid & (hits.material_id == material_id)
            material = scene.materials[material_id]
            f[rows] = material.evaluate(direction[rows], wi[rows], normal[rows])
            bsdf_pdf[rows] = material.pdf(direction[rows], wi[rows], normal[rows])
        valid &= np.any(f > 0.0, axis=1)

        contribution = np.zeros((count, 3))
        if not np.any(valid):
            return contribution

        # Solid-angle density of the light sample (delta lights: 1 / d^2 falloff)
        light_pdf = np.where(
            sample.is_delta,
            sample.selection_probability * distance_sq,
            sample.selection_probability * sample.pdf * distance_sq / cos_light,
        )
        if self.config.multiple_importance_sampling:
            mis = np.where(sample.is_delta, 1.0, power_heuristic(light_pdf, bsdf_pdf))
        else:
            mis = np.ones(count)

        rows = np.flatnonzero(valid)
        shadow_origin = offset_ray_origin(point[rows], normal[rows], wi[rows])
        shadow_vector = sample.position[rows] - shadow_origin
        shadow_distance = np.sqrt(dot(shadow_vector, shadow_vector))
        shadow_direction = shadow_vector / shadow_distance[:, None]
        blocked = scene.occluded(
            shadow_origin,
            shadow_direction,
            shadow_distance * (1.0 - SHADOW_EPSILON),
            self.config.t_min,
        )
        lit = rows[~blocked]

        contribution[lit] = f[lit] * sample.radiance[lit] * (mis[lit] / light_pdf[lit])[:, None]
        return contribution

    def _sample_bsdf(
        self, hits: HitBatch, direction: Vec3Array, rng: np.random.Generator
    ) -> tuple[Vec3Array, Vec3Array, npt.NDArray[np.float64], npt.NDArray[np.bool_]]:
        count = direction.shape[0]
        new_direction = np.zeros((count, 3))
        weight = np.zeros((count, 3))
        pdf = np.zeros(count)
        is_delta = np.zeros(count, dtype=bool)

        for material_id in np.unique(hits.material_id):
            rows = hits.material_id == material_id
            sample = self.scene.materials[material_id].sample(direction[rows], hits.normal[rows], rng)
            new_direction[rows] = sample.direction
            weight[rows] = sample.weight
            pdf[rows] = sample.pdf
            is_delta[rows] = sample.is_delta

        return new_direction, weight, pdf, is_delta


def _select(hits: HitBatch, mask: npt.NDArray[np.bool_]) -> HitBatch:
    """Rows of a hit batch selected by a boolean mask."""
    return HitBatch(
        t=hits.t[mask],
        primitive=hits.primitive[mask],
        point=hits.point[mask],
        normal=hits.normal[mask],
        geometric_normal=hits.geometric_normal[mask],
        front_face=hits.front_face[mask],
        material_id=hits.material_id[mask],
    )

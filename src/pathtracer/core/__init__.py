"""Core rendering module.

This module contains the rendering machinery:

Components:
    ray: Ray data structure and batched vector utilities
    config: RenderConfig, the validated render settings
    integrator: Path integrator with next-event estimation and MIS
    tiles: Image partitioning into work tiles
    accumulation: Per-pixel sample sums shared by the workers
    scheduler: Worker pool rendering passes tile by tile
    progressive: Blocking progressive renderer
    session: Background render sessions and the debounce controller

The integrator solves the rendering equation with Monte Carlo path tracing,
Russian roulette termination and next-event estimation. Progressive passes
are spread over worker threads and accumulated per pixel.
"""

from .ray import (
    LUMINANCE_WEIGHTS,
    T_MAX,
    T_MIN,
    Ray,
    as_vec3,
    build_onb_from_normal,
    cross,
    dot,
    length,
    local_to_world,
    luminance,
    normalize,
    offset_ray_origin,
    power_heuristic,
    random_cosine_direction,
    reflect,
    sample_cosine_hemisphere,
    vec3,
)

# Note: integrator, scheduler, progressive and session are NOT imported here
# to avoid circular imports with the scene package. Import them directly:
#   from pathtracer.core.progressive import ProgressiveRenderer
#   from pathtracer.core.session import RenderSessionController

__all__ = [
    "Ray",
    "T_MIN",
    "T_MAX",
    "LUMINANCE_WEIGHTS",
    "vec3",
    "as_vec3",
    "dot",
    "cross",
    "length",
    "normalize",
    "reflect",
    "luminance",
    "build_onb_from_normal",
    "local_to_world",
    "offset_ray_origin",
    "random_cosine_direction",
    "sample_cosine_hemisphere",
    "power_heuristic",
]

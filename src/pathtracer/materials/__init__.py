"""Materials module for BRDF models.

This module implements the material model used by the path integrator:

Components:
    diffuse: Ideal diffuse (Lambertian) lobe
    specular: Perfect mirror lobe
    microfacet: Rough specular (GGX) lobe
    material: Material value combining the lobes with emission

Each material provides:
    - sample(): Importance sample a scattering direction
    - evaluate(): Evaluate f * cos(theta) for given directions
    - pdf(): Probability density for a sampled direction
    - emitted_radiance(): Emission, zero for non-emissive materials
"""

from .diffuse import eval_lambertian, pdf_lambertian, scatter_lambertian
from .material import BsdfSample, Material, emitter, glossy, lambertian, metal, mirror
from .microfacet import eval_ggx, pdf_ggx, scatter_ggx
from .specular import scatter_mirror

__all__ = [
    "Material",
    "BsdfSample",
    "lambertian",
    "mirror",
    "metal",
    "emitter",
    "glossy",
    "eval_lambertian",
    "pdf_lambertian",
    "scatter_lambertian",
    "scatter_mirror",
    "eval_ggx",
    "pdf_ggx",
    "scatter_ggx",
]

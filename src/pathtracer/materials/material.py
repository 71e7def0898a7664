"""Material model combining a diffuse lobe, a specular lobe and emission.

A Material holds three RGB parameters and a roughness:

    albedo     Lambertian reflectance, f = albedo / pi
    specular   specular reflectance
    roughness  0 for a perfect mirror (Dirac delta lobe), otherwise the
               perceptual roughness of a GGX microfacet lobe
    emission   emitted radiance; non-zero emission makes the owning
               primitive an area light

Mixed materials pick one lobe per sample with probability

    p_spec = lum(specular) / (lum(albedo) + lum(specular))

Delta samples carry the selection probability as their pdf. Samples from a
non-delta lobe are weighted by the full `evaluate` and `pdf` of all
non-delta lobes, so the sampling density matches what `pdf` reports to
multiple importance sampling. The path throughput is always multiplied by
``weight / pdf``.

Emission is two-sided: emissive surfaces radiate from both faces.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from pathtracer.core.ray import as_vec3, luminance
from pathtracer.errors import InvalidMaterialError
from pathtracer.materials.diffuse import eval_lambertian, pdf_lambertian, scatter_lambertian
from pathtracer.materials.microfacet import eval_ggx, pdf_ggx, roughness_to_alpha, scatter_ggx
from pathtracer.materials.specular import scatter_mirror

Vec3Array = npt.NDArray[np.float64]

# Slack for albedo + specular <= 1 with rounded inputs
ENERGY_TOLERANCE = 1e-9


@dataclass(frozen=True)
class BsdfSample:
    """A batch of sampled scattering events.

    Attributes:
        direction: Sampled outgoing unit directions, shape (N, 3).
        weight: f * cos(theta) of all non-delta lobes for non-delta samples,
            the specular color for delta samples, shape (N, 3).
        pdf: Density of the sampled direction including the lobe selection
            probabilities (the selection probability alone for delta samples).
        is_delta: True where the mirror lobe was sampled.
    """

    direction: Vec3Array
    weight: Vec3Array
    pdf: npt.NDArray[np.float64]
    is_delta: npt.NDArray[np.bool_]


@dataclass(frozen=True, eq=False)
class Material:
    """Reflectance and emission parameters of a surface.

    Attributes:
        albedo: Diffuse reflectance (RGB).
        specular: Specular reflectance (RGB).
        emission: Emitted radiance (RGB), may exceed 1.
        roughness: Specular roughness in [0, 1]; 0 is a perfect mirror.
        name: Optional label used in logs and error messages.
    """

    albedo: Vec3Array = (0.0, 0.0, 0.0)
    specular: Vec3Array = (0.0, 0.0, 0.0)
    emission: Vec3Array = (0.0, 0.0, 0.0)
    roughness: float = 0.0
    name: str = ""

    def __post_init__(self) -> None:
        for field_name in ("albedo", "specular", "emission"):
            value = as_vec3(getattr(self, field_name))
            value.flags.writeable = False
            object.__setattr__(self, field_name, value)
        object.__setattr__(self, "roughness", float(self.roughness))

        diffuse_lum = float(luminance(self.albedo))
        specular_lum = float(luminance(self.specular))
        total = diffuse_lum + specular_lum
        object.__setattr__(self, "_p_specular", specular_lum / total if total > 0.0 else 0.0)
        alpha = roughness_to_alpha(self.roughness) if self.roughness > 0.0 else 0.0
        object.__setattr__(self, "_alpha", alpha)

    def __repr__(self) -> str:
        label = f"{self.name!r}, " if self.name else ""
        rough = f", roughness={self.roughness}" if self.roughness > 0.0 else ""
        return (
            f"Material({label}albedo={self.albedo.tolist()}, "
            f"specular={self.specular.tolist()}{rough}, emission={self.emission.tolist()})"
        )

    def validate(self) -> None:
        """Check the parameters describe a physically plausible surface.

        Raises:
            InvalidMaterialError: If a component is negative or not finite,
                albedo + specular exceeds 1 in any channel, roughness is
                outside [0, 1], or the material neither reflects nor emits
                light.
        """
        label = self.name or "material"
        for field_name in ("albedo", "specular", "emission"):
            value = getattr(self, field_name)
            if not np.all(np.isfinite(value)):
                raise InvalidMaterialError(f"{label}: {field_name} must be finite, got {value.tolist()}")
            if np.any(value < 0.0):
                raise InvalidMaterialError(f"{label}: {field_name} must be non-negative, got {value.tolist()}")

        if not (math.isfinite(self.roughness) and 0.0 <= self.roughness <= 1.0):
            raise InvalidMaterialError(f"{label}: roughness must be in [0, 1], got {self.roughness}")

        if np.any(self.albedo + self.specular > 1.0 + ENERGY_TOLERANCE):
            raise InvalidMaterialError(
                f"{label}: albedo + specular must not exceed 1 per channel "
                f"(got {(self.albedo + self.specular).tolist()})"
            )

        if not (np.any(self.albedo > 0.0) or np.any(self.specular > 0.0) or self.is_emissive):
            raise InvalidMaterialError(f"{label}: zero albedo, specular and emission absorbs all light")

    @property
    def is_emissive(self) -> bool:
        return bool(np.any(self.emission > 0.0))

    @property
    def is_rough(self) -> bool:
        """True when the specular lobe is a GGX lobe rather than a mirror."""
        return self._alpha > 0.0

    @property
    def is_delta_only(self) -> bool:
        """True when the material has no non-delta lobe (a perfect mirror)."""
        return self._p_specular >= 1.0 and not self.is_rough

    @property
    def specular_probability(self) -> float:
        """Probability of sampling the specular lobe."""
        return self._p_specular

    def emitted_radiance(self) -> Vec3Array:
        """Radiance emitted from the surface, zero for non-emissive materials."""
        return self.emission

    def sample(self, incoming: Vec3Array, normal: Vec3Array, rng: np.random.Generator) -> BsdfSample:
        """Sample outgoing directions for a batch of hits on this material.

        Args:
            incoming: Incoming ray directions (pointing toward the surface), (N, 3).
            normal: Ray-facing unit normals, (N, 3).
            rng: The random source.

        Returns:
            The sampled directions with their weights and pdfs.
        """
        count = incoming.shape[0]
        p_spec = self._p_specular

        if p_spec <= 0.0:
            use_specular = np.zeros(count, dtype=bool)
        elif p_spec >= 1.0:
            use_specular = np.ones(count, dtype=bool)
        else:
            use_specular = rng.random(count) < p_spec

        direction = np.empty((count, 3))
        weight = np.zeros((count, 3))
        pdf = np.zeros(count)
        is_delta = use_specular & (not self.is_rough)

        if np.any(is_delta):
            d, w, p = scatter_mirror(self.specular, incoming[is_delta], normal[is_delta])
            direction[is_delta] = d
            weight[is_delta] = w
            pdf[is_delta] = p * p_spec

        rough = use_specular & ~is_delta
        if np.any(rough):
            direction[rough], _, _ = scatter_ggx(self.specular, self._alpha, incoming[rough], normal[rough], rng)

        diffuse = ~use_specular
        if np.any(diffuse):
            direction[diffuse], _, _ = scatter_lambertian(self.albedo, normal[diffuse], rng)

        smooth = ~is_delta
        if np.any(smooth):
            weight[smooth] = self.evaluate(incoming[smooth], direction[smooth], normal[smooth])
            pdf[smooth] = self.pdf(incoming[smooth], direction[smooth], normal[smooth])

        return BsdfSample(direction=direction, weight=weight, pdf=pdf, is_delta=is_delta)

    def evaluate(self, incoming: Vec3Array, outgoing: Vec3Array, normal: Vec3Array) -> Vec3Array:
        """f * cos(theta) of the non-delta lobes for given outgoing directions.

        Args:
            incoming: Incoming ray directions (pointing toward the surface), (N, 3).
            outgoing: Outgoing directions, (N, 3).
            normal: Ray-facing unit normals, (N, 3).
        """
        value = eval_lambertian(self.albedo, normal, outgoing)
        if self.is_rough:
            value = value + eval_ggx(self.specular, self._alpha, normal, -incoming, outgoing)
        return value

    def pdf(self, incoming: Vec3Array, outgoing: Vec3Array, normal: Vec3Array) -> npt.NDArray[np.float64]:
        """Density with which `sample` produces `outgoing` through a non-delta lobe."""
        density = pdf_lambertian(normal, outgoing) * (1.0 - self._p_specular)
        if self.is_rough:
            density = density + pdf_ggx(self._alpha, normal, -incoming, outgoing) * self._p_specular
        return density


# =============================================================================
# Convenience Constructors
# =============================================================================


def lambertian(albedo: npt.ArrayLike, name: str = "") -> Material:
    """Ideal diffuse material."""
    return Material(albedo=albedo, name=name)


def mirror(color: npt.ArrayLike = (1.0, 1.0, 1.0), name: str = "") -> Material:
    """Perfect mirror tinted by `color`."""
    return Material(specular=color, name=name)


def metal(color: npt.ArrayLike, roughness: float = 0.0, name: str = "") -> Material:
    """Specular-only surface; roughness 0 is the same as `mirror`."""
    return Material(specular=color, roughness=roughness, name=name)


def emitter(emission: npt.ArrayLike, albedo: npt.ArrayLike = (0.0, 0.0, 0.0), name: str = "") -> Material:
    """Area light material; `albedo` lets the emitter also reflect light."""
    return Material(albedo=albedo, emission=emission, name=name)


def glossy(albedo: npt.ArrayLike, specular: npt.ArrayLike, roughness: float = 0.0, name: str = "") -> Material:
    """Diffuse base with a specular coat, e.g. varnished or plastic surfaces."""
    return Material(albedo=albedo, specular=specular, roughness=roughness, name=name)

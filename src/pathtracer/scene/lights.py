"""Light sources and the light sampler used for next-event estimation.

Lights are a derived view over the scene:

- AreaLight: one per primitive whose material emits light. Points are drawn
  uniformly over the primitive's surface, so the area density is 1 / area.
- PointLight: an explicit delta light with radiant intensity I (W/sr).

Light selection is power-weighted. The power of an area light is
lum(emission) * area * pi (Lambertian emitter), that of a point light is
4 * pi * lum(intensity). The LightSampler draws a light from the CDF of the
normalised powers; the same per-light probability is reported back through
`selection_probability` so the integrator's MIS weights for emitter hits
found by BSDF sampling match the sampling that produced light samples.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from pathtracer.core.ray import as_vec3, luminance
from pathtracer.geometry.shape import Shape

Vec3Array = npt.NDArray[np.float64]


@dataclass(frozen=True, eq=False)
class AreaLight:
    """An emissive primitive seen as a light source.

    Attributes:
        primitive_index: Index of the primitive in the scene.
        shape: The primitive's geometry; must support surface sampling.
        emission: Emitted radiance (RGB).
    """

    primitive_index: int
    shape: Shape
    emission: Vec3Array

    @property
    def area(self) -> float:
        return self.shape.area

    @property
    def power(self) -> float:
        return float(luminance(self.emission)) * self.area * np.pi

    @property
    def is_delta(self) -> bool:
        return False


@dataclass(frozen=True, eq=False)
class PointLight:
    """An isotropic point light.

    Attributes:
        position: Light position.
        intensity: Radiant intensity (RGB); irradiance at distance d is I / d^2.
    """

    position: Vec3Array
    intensity: Vec3Array

    def __post_init__(self) -> None:
        for name in ("position", "intensity"):
            value = as_vec3(getattr(self, name))
            value.flags.writeable = False
            object.__setattr__(self, name, value)

    @property
    def power(self) -> float:
        return 4.0 * np.pi * float(luminance(self.intensity))

    @property
    def is_delta(self) -> bool:
        return True


Light = AreaLight | PointLight


@dataclass(frozen=True)
class LightSample:
    """A batch of light samples, one per shading point.

    Attributes:
        position: Sampled point on the light, (N, 3).
        normal: Surface normal at the sampled point, zero for point lights.
        radiance: Emitted radiance (area lights) or intensity (point lights).
        pdf: Area density of the point on the chosen light, 1 for delta lights.
        selection_probability: Probability of having chosen the light.
        is_delta: True where a point light was chosen.
        primitive_index: Emissive primitive index, -1 for point lights.
    """

    position: Vec3Array
    normal: Vec3Array
    radiance: Vec3Array
    pdf: npt.NDArray[np.float64]
    selection_probability: npt.NDArray[np.float64]
    is_delta: npt.NDArray[np.bool_]
    primitive_index: npt.NDArray[np.int64]


class LightSampler:
    """Power-weighted selection of lights and points on them.

    The sampler is read-only after construction and safe to share between
    worker threads; randomness comes from the caller's generator.
    """

    def __init__(self, lights: Sequence[Light], primitive_count: int) -> None:
        self._lights = tuple(lights)

        powers = np.array([light.power for light in self._lights], dtype=np.float64)
        if self._lights and powers.sum() > 0.0:
            probabilities = powers / powers.sum()
        else:
            probabilities = np.full(len(self._lights), 1.0 / max(len(self._lights), 1))
        cdf = np.cumsum(probabilities)
        if cdf.size:
            cdf[-1] = 1.0
        self._probabilities = probabilities
        self._cdf = cdf

        # Lookup tables for MIS on emitter hits, indexed by primitive
        self._primitive_probability = np.zeros(primitive_count)
        self._primitive_area_pdf = np.zeros(primitive_count)
        for light, probability in zip(self._lights, probabilities):
            if isinstance(light, AreaLight):
                self._primitive_probability[light.primitive_index] = probability
                self._primitive_area_pdf[light.primitive_index] = 1.0 / light.area

        for array in (self._probabilities, self._cdf, self._primitive_probability, self._primitive_area_pdf):
            array.flags.writeable = False

    def __len__(self) -> int:
        return len(self._lights)

    @property
    def lights(self) -> tuple[Light, ...]:
        return self._lights

    @property
    def has_lights(self) -> bool:
        return bool(self._lights)

    @property
    def probabilities(self) -> npt.NDArray[np.float64]:
        """Selection probability of each light, in light order."""
        return self._probabilities

    def sample_light(self, points: Vec3Array, rng: np.random.Generator) -> LightSample:
        """Choose one light and one point on it for each shading point.

        Args:
            points: Shading points, (N, 3). Only the batch size is used: all
                lights are sampled independently of the receiving point.
            rng: The random source.

        Returns:
            The light samples.

        Raises:
            RuntimeError: If the scene has no lights.
        """
        if not self._lights:
            raise RuntimeError("Cannot sample lights: the scene has no light sources")

        count = points.shape[0]
        choice = np.minimum(np.searchsorted(self._cdf, rng.random(count), side="right"), len(self._lights) - 1)
        u = rng.random(count)
        v = rng.random(count)

        position = np.zeros((count, 3))
        normal = np.zeros((count, 3))
        radiance = np.zeros((count, 3))
        pdf = np.ones(count)
        is_delta = np.zeros(count, dtype=bool)
        primitive_index = np.full(count, -1, dtype=np.int64)

        for k, light in enumerate(self._lights):
            chosen = choice == k
            if not np.any(chosen):
                continue
            if isinstance(light, AreaLight):
                p, n = light.shape.sample_surface(u[chosen], v[chosen])
                position[chosen] = p
                normal[chosen] = n
                radiance[chosen] = light.emission
                pdf[chosen] = 1.0 / light.area
                primitive_index[chosen] = light.primitive_index
            else:
                position[chosen] = light.position
                radiance[chosen] = light.intensity
                is_delta[chosen] = True

        return LightSample(
            position=position,
            normal=normal,
            radiance=radiance,
            pdf=pdf,
            selection_probability=self._probabilities[choice],
            is_delta=is_delta,
            primitive_index=primitive_index,
        )

    def selection_probability(self, primitive_indices: npt.NDArray[np.int64]) -> npt.NDArray[np.float64]:
        """Probability that light sampling picks the given emissive primitives."""
        return self._primitive_probability[primitive_indices]

    def area_pdf(self, primitive_indices: npt.NDArray[np.int64]) -> npt.NDArray[np.float64]:
        """Area density of light sampling on the given emissive primitives."""
        return self._primitive_area_pdf[primitive_indices]

"""Scene builder: collects primitives and materials and validates them.

All validation happens in `build()`, before any render can start:

- degenerate geometry (zero radius, zero-area triangle or quad, zero plane
  normal, non-finite coordinates)
- invalid materials (negative or non-finite components, albedo + specular
  above 1, "black hole" materials that neither reflect nor emit)
- primitives referring to unknown material ids
- emissive planes (an infinite plane cannot be sampled as a light)
- point lights with non-positive or non-finite intensity

Problems are reported as SceneBuildError (or one of its subclasses). A
failed build leaves the builder untouched, so the caller can fix the
description and build again.

Example:
    >>> from pathtracer.scene.builder import SceneBuilder
    >>> from pathtracer.materials import emitter, lambertian
    >>> builder = SceneBuilder()
    >>> white = builder.add_material(lambertian((0.73, 0.73, 0.73)))
    >>> light = builder.add_material(emitter((15.0, 15.0, 15.0)))
    >>> builder.add_quad((0, 0, 0), (1, 0, 0), (0, 0, 1), material_id=white)
    0
    >>> builder.add_sphere((0.5, 2.0, 0.5), 0.2, material_id=light)
    1
    >>> scene = builder.build()
    >>> len(scene.light_sampler)
    1
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt

from pathtracer.errors import DegenerateGeometryError, SceneBuildError
from pathtracer.geometry import Plane, Quad, Shape, Sphere, Triangle
from pathtracer.materials.material import Material
from pathtracer.scene.environment import ConstantEnvironment, Environment
from pathtracer.scene.lights import AreaLight, Light, LightSampler, PointLight
from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)


class SceneBuilder:
    """Mutable scene description turned into an immutable Scene by build().

    Attributes:
        materials: Registered materials; the list index is the material id.
        primitives: (shape, material_id) pairs; the list index is the
            primitive index used in hit records.
        point_lights: Explicit point lights.
    """

    def __init__(self) -> None:
        self.materials: list[Material] = []
        self.primitives: list[tuple[Shape, int]] = []
        self.point_lights: list[PointLight] = []
        self.environment: Environment = ConstantEnvironment()

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_material(self, material: Material) -> int:
        """Register a material and return its id."""
        self.materials.append(material)
        return len(self.materials) - 1

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_shape(self, shape: Shape, material_id: int) -> int:
        """Add any primitive and return its index."""
        self.primitives.append((shape, int(material_id)))
        return len(self.primitives) - 1

    def add_sphere(self, center: npt.ArrayLike, radius: float, material_id: int) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (must be positive).
            material_id: Id returned by add_material().

        Returns:
            The index of the added primitive.
        """
        return self.add_shape(Sphere(center=center, radius=radius), material_id)

    def add_triangle(self, v0: npt.ArrayLike, v1: npt.ArrayLike, v2: npt.ArrayLike, material_id: int) -> int:
        """Add a triangle; its normal follows the winding v0 -> v1 -> v2."""
        return self.add_shape(Triangle(v0=v0, v1=v1, v2=v2), material_id)

    def add_quad(
        self,
        corner: npt.ArrayLike,
        edge_u: npt.ArrayLike,
        edge_v: npt.ArrayLike,
        material_id: int,
    ) -> int:
        """Add a quad (parallelogram) to the scene.

        The quad represents a parallelogram with vertices at:
        corner, corner+edge_u, corner+edge_v, corner+edge_u+edge_v
        """
        return self.add_shape(Quad(corner=corner, edge_u=edge_u, edge_v=edge_v), material_id)

    def add_plane(self, point: npt.ArrayLike, normal: npt.ArrayLike, material_id: int) -> int:
        """Add an infinite plane. Its material must not emit light."""
        return self.add_shape(Plane(point=point, normal=normal), material_id)

    def add_point_light(self, position: npt.ArrayLike, intensity: npt.ArrayLike) -> int:
        """Add an isotropic point light and return its index among point lights."""
        self.point_lights.append(PointLight(position=position, intensity=intensity))
        return len(self.point_lights) - 1

    def set_environment(self, environment: Environment) -> None:
        """Set the radiance seen by rays that leave the scene."""
        self.environment = environment

    def get_primitive_count(self) -> int:
        return len(self.primitives)

    # =========================================================================
    # Build
    # =========================================================================

    def build(self) -> Scene:
        """Validate the description and freeze it into a Scene.

        Raises:
            SceneBuildError: If any primitive, material, light or the
                environment is invalid.
        """
        for material in self.materials:
            material.validate()

        lights: list[Light] = []
        for index, (shape, material_id) in enumerate(self.primitives):
            try:
                shape.validate()
            except DegenerateGeometryError as err:
                raise DegenerateGeometryError(f"Primitive {index}: {err}") from err

            if not 0 <= material_id < len(self.materials):
                raise SceneBuildError(f"Primitive {index}: unknown material id {material_id}")

            material = self.materials[material_id]
            if material.is_emissive:
                if not shape.can_sample:
                    raise SceneBuildError(
                        f"Primitive {index}: {type(shape).__name__} cannot be an area light"
                    )
                lights.append(AreaLight(primitive_index=index, shape=shape, emission=material.emission))

        for index, light in enumerate(self.point_lights):
            if not (np.all(np.isfinite(light.position)) and np.all(np.isfinite(light.intensity))):
                raise SceneBuildError(f"Point light {index}: position and intensity must be finite")
            if np.any(light.intensity < 0.0) or not np.any(light.intensity > 0.0):
                raise SceneBuildError(f"Point light {index}: intensity must be non-negative and not all zero")
            lights.append(light)

        self._validate_environment()

        shapes = [shape for shape, _ in self.primitives]
        material_ids = [material_id for _, material_id in self.primitives]
        scene = Scene(
            primitives=shapes,
            material_ids=material_ids,
            materials=self.materials,
            light_sampler=LightSampler(lights, primitive_count=len(shapes)),
            environment=self.environment,
        )

        if not lights:
            logger.warning("Scene has no light sources; only the environment will illuminate it")
        logger.info(
            "Built scene: %d primitives, %d materials, %d lights",
            len(shapes),
            len(self.materials),
            len(lights),
        )
        return scene

    def _validate_environment(self) -> None:
        env = self.environment
        colors = [env.color] if isinstance(env, ConstantEnvironment) else [env.bottom, env.top]
        for color in colors:
            if not np.all(np.isfinite(color)) or np.any(color < 0.0):
                raise SceneBuildError(f"Environment radiance must be finite and non-negative, got {color.tolist()}")

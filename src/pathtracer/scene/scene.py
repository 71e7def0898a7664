"""Immutable scene store answering ray-scene intersection queries.

A Scene is produced by SceneBuilder.build() and never changes afterwards.
Every array it holds is read-only, so any number of worker threads can query
it concurrently without synchronisation.

Queries use a linear scan over primitives, vectorised across rays: each
primitive is tested against the whole batch, passing the closest hit found so
far as the per-ray t_max.

Example:
    >>> from pathtracer.scene import SceneBuilder
    >>> from pathtracer.materials import lambertian
    >>> from pathtracer.core.ray import Ray
    >>> builder = SceneBuilder()
    >>> red = builder.add_material(lambertian((0.8, 0.1, 0.1)))
    >>> builder.add_sphere(center=(0, 0, -1), radius=0.5, material_id=red)
    0
    >>> scene = builder.build()
    >>> record = scene.intersect(Ray(origin=(0, 0, 0), direction=(0, 0, -1)))
    >>> float(record.t)
    0.5
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from pathtracer.core.ray import T_MAX, T_MIN, Ray, dot
from pathtracer.geometry.shape import Shape
from pathtracer.materials.material import Material
from pathtracer.scene.environment import ConstantEnvironment, Environment
from pathtracer.scene.lights import LightSampler

Vec3Array = npt.NDArray[np.float64]


@dataclass(frozen=True, eq=False)
class IntersectionRecord:
    """Closest hit of a single ray.

    Attributes:
        point: The hit point.
        normal: Unit normal facing against the incoming ray.
        geometric_normal: Outward unit normal of the primitive.
        t: Ray parameter of the hit.
        front_face: True if the ray hit the outward-facing side.
        material: The hit primitive's material.
        primitive_index: Index of the hit primitive.
    """

    point: Vec3Array
    normal: Vec3Array
    geometric_normal: Vec3Array
    t: float
    front_face: bool
    material: Material
    primitive_index: int


@dataclass(frozen=True, eq=False)
class HitBatch:
    """Closest hits of a batch of rays.

    Rays that missed have primitive == -1, t == inf and zero vectors.
    """

    t: npt.NDArray[np.float64]
    primitive: npt.NDArray[np.int64]
    point: Vec3Array
    normal: Vec3Array
    geometric_normal: Vec3Array
    front_face: npt.NDArray[np.bool_]
    material_id: npt.NDArray[np.int64]

    @property
    def hit(self) -> npt.NDArray[np.bool_]:
        return self.primitive >= 0


class Scene:
    """Read-only collection of primitives, materials and lights."""

    def __init__(
        self,
        primitives: Sequence[Shape],
        material_ids: Sequence[int],
        materials: Sequence[Material],
        light_sampler: LightSampler,
        environment: Environment | None = None,
    ) -> None:
        self._primitives = tuple(primitives)
        self._materials = tuple(materials)
        material_id_array = np.asarray(material_ids, dtype=np.int64).reshape(-1)
        material_id_array.flags.writeable = False
        self._material_ids = material_id_array
        self._light_sampler = light_sampler
        self._environment = environment if environment is not None else ConstantEnvironment()

    def __repr__(self) -> str:
        return (
            f"Scene(primitives={len(self._primitives)}, materials={len(self._materials)}, "
            f"lights={len(self._light_sampler)})"
        )

    @property
    def primitives(self) -> tuple[Shape, ...]:
        return self._primitives

    @property
    def materials(self) -> tuple[Material, ...]:
        return self._materials

    @property
    def material_ids(self) -> npt.NDArray[np.int64]:
        return self._material_ids

    @property
    def light_sampler(self) -> LightSampler:
        return self._light_sampler

    @property
    def environment(self) -> Environment:
        return self._environment

    def material_of(self, primitive_index: int) -> Material:
        return self._materials[self._material_ids[primitive_index]]

    # =========================================================================
    # Queries
    # =========================================================================

    def intersect(self, ray: Ray) -> IntersectionRecord | None:
        """Find the closest hit with t in (ray.t_min, ray.t_max).

        Returns:
            The intersection record, or None if the ray hits nothing.
        """
        origins, directions = ray.as_batch()
        hits = self.intersect_batch(origins, directions, ray.t_min, ray.t_max)
        if not hits.hit[0]:
            return None
        primitive_index = int(hits.primitive[0])
        return IntersectionRecord(
            point=hits.point[0],
            normal=hits.normal[0],
            geometric_normal=hits.geometric_normal[0],
            t=float(hits.t[0]),
            front_face=bool(hits.front_face[0]),
            material=self.material_of(primitive_index),
            primitive_index=primitive_index,
        )

    def intersect_batch(
        self,
        origins: Vec3Array,
        directions: Vec3Array,
        t_min: float = T_MIN,
        t_max: float = T_MAX,
    ) -> HitBatch:
        """Closest hits for a batch of rays with unit directions."""
        count = origins.shape[0]
        closest = np.full(count, float(t_max))
        primitive = np.full(count, -1, dtype=np.int64)

        for index, shape in enumerate(self._primitives):
            t = shape.intersect(origins, directions, t_min, closest)
            closer = t < closest
            closest = np.where(closer, t, closest)
            primitive[closer] = index

        hit = primitive >= 0
        t = np.where(hit, closest, np.inf)
        point = np.zeros((count, 3))
        geometric_normal = np.zeros((count, 3))

        point[hit] = origins[hit] + t[hit, None] * directions[hit]
        for index in np.unique(primitive[hit]):
            rows = primitive == index
            geometric_normal[rows] = self._primitives[index].outward_normal(point[rows])

        # Shading normal always faces against the incoming ray
        front_face = dot(directions, geometric_normal) < 0.0
        normal = np.where(front_face[:, None], geometric_normal, -geometric_normal)
        material_id = np.full(count, -1, dtype=np.int64)
        material_id[hit] = self._material_ids[primitive[hit]]

        return HitBatch(
            t=t,
            primitive=primitive,
            point=point,
            normal=normal,
            geometric_normal=geometric_normal,
            front_face=front_face & hit,
            material_id=material_id,
        )

    def occluded(
        self,
        origins: Vec3Array,
        directions: Vec3Array,
        t_max: float | npt.NDArray[np.float64],
        t_min: float = T_MIN,
    ) -> npt.NDArray[np.bool_]:
        """Any-hit test: True where something lies within (t_min, t_max)."""
        count = origins.shape[0]
        t_max = np.broadcast_to(np.asarray(t_max, dtype=np.float64), (count,))
        blocked = np.zeros(count, dtype=bool)

        for shape in self._primitives:
            pending = np.flatnonzero(~blocked)
            if pending.size == 0:
                break
            t = shape.intersect(origins[pending], directions[pending], t_min, t_max[pending])
            blocked[pending[np.isfinite(t)]] = True

        return blocked

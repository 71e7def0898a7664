"""Cornell box scene configuration.

This module provides a factory function to create the classic Cornell box scene,
a standard test scene used in computer graphics for evaluating global illumination
algorithms.

The Cornell box consists of:
- 5 walls forming an open box (left, right, back, floor, ceiling)
- Left wall: red diffuse
- Right wall: green diffuse
- Back, floor, ceiling: white diffuse
- 3 spheres with different materials (diffuse, mirror, rough glossy)
- Area light on the ceiling (emissive quad)

The box spans from 0 to 555 in each dimension, with the camera positioned
outside looking in through the open front.

Example:
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>> scene, camera = create_cornell_box_scene(width=64, height=64)
    >>> len(scene.primitives)
    9
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from pathtracer.camera.pinhole import Camera
from pathtracer.materials.material import emitter, glossy, lambertian, mirror
from pathtracer.scene.builder import SceneBuilder
from pathtracer.scene.scene import Scene

# =============================================================================
# Cornell Box Parameters
# =============================================================================


@dataclass
class CornellBoxParams:
    """Parameters for configuring a Cornell box scene.

    All parameters have defaults matching the classic Cornell box
    configuration.

    Attributes:
        light_intensity: Scale applied to light_color to get the emitted
            radiance. Default is 15.0, which provides good illumination.
        light_color: RGB color of the light (each component in [0, 1]).
        left_wall_color: RGB albedo of the wall on the camera's left (red).
        right_wall_color: RGB albedo of the wall on the camera's right (green).
        back_wall_color: RGB albedo of the back wall, floor and ceiling.

    Example:
        >>> params = CornellBoxParams()
        >>> params.light_intensity
        15.0
        >>> custom = CornellBoxParams(light_intensity=20.0, light_color=(1.0, 0.9, 0.8))
    """

    light_intensity: float = 15.0
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    left_wall_color: tuple[float, float, float] = (0.65, 0.05, 0.05)
    right_wall_color: tuple[float, float, float] = (0.12, 0.45, 0.15)
    back_wall_color: tuple[float, float, float] = (0.73, 0.73, 0.73)

    def __post_init__(self) -> None:
        if self.light_intensity <= 0.0:
            raise ValueError(f"light_intensity must be positive, got {self.light_intensity}")


# =============================================================================
# Cornell Box Constants
# =============================================================================

# Classic Cornell box dimensions (approximately 555x555x555 units)
BOX_SIZE = 555.0

# Classic Cornell box light is ~130x105 units
LIGHT_WIDTH = 130.0
LIGHT_DEPTH = 105.0

# Sphere materials
DIFFUSE_SPHERE_ALBEDO = (0.73, 0.73, 0.73)
MIRROR_SPHERE_COLOR = (0.95, 0.93, 0.88)  # Silver reflectance
GLOSSY_SPHERE_ALBEDO = (0.55, 0.2, 0.15)
GLOSSY_SPHERE_SPECULAR = (0.3, 0.3, 0.3)
GLOSSY_SPHERE_ROUGHNESS = 0.3

SPHERE_RADIUS = 80.0


# =============================================================================
# Cornell Box Factory
# =============================================================================


def create_cornell_box_scene(
    box_size: float = BOX_SIZE,
    params: CornellBoxParams | None = None,
    width: int = 256,
    height: int = 256,
) -> tuple[Scene, Camera]:
    """Create a Cornell box scene with standard configuration.

    The coordinate system places the box origin at (0, 0, 0) with:
    - X-axis: right to left as seen from the camera (0 to box_size)
    - Y-axis: floor to ceiling (0 to box_size)
    - Z-axis: front to back (0 to box_size), camera looks toward +Z

    Args:
        box_size: The size of the box in each dimension. Default is 555.0.
        params: Optional CornellBoxParams for customizing light and wall colors.
        width: Image width of the returned camera.
        height: Image height of the returned camera.

    Returns:
        A tuple of (Scene, Camera) with the camera configured for the
        standard view.
    """
    if params is None:
        params = CornellBoxParams()

    builder = SceneBuilder()
    scale = box_size / BOX_SIZE

    # =========================================================================
    # Materials
    # =========================================================================

    red_mat = builder.add_material(lambertian(params.left_wall_color, name="red wall"))
    green_mat = builder.add_material(lambertian(params.right_wall_color, name="green wall"))
    white_mat = builder.add_material(lambertian(params.back_wall_color, name="white wall"))
    light_mat = builder.add_material(
        emitter(np.asarray(params.light_color) * params.light_intensity, name="ceiling light")
    )
    diffuse_mat = builder.add_material(lambertian(DIFFUSE_SPHERE_ALBEDO, name="diffuse sphere"))
    mirror_mat = builder.add_material(mirror(MIRROR_SPHERE_COLOR, name="mirror sphere"))
    glossy_mat = builder.add_material(
        glossy(GLOSSY_SPHERE_ALBEDO, GLOSSY_SPHERE_SPECULAR, GLOSSY_SPHERE_ROUGHNESS, name="glossy sphere")
    )

    # =========================================================================
    # Walls (5 quads forming the box, normals facing inward)
    # =========================================================================

    # Looking toward +Z with +Y up, +X is on the camera's left
    builder.add_quad(
        corner=(box_size, 0.0, 0.0),
        edge_u=(0.0, 0.0, box_size),  # Back
        edge_v=(0.0, box_size, 0.0),  # Up
        material_id=red_mat,
    )
    builder.add_quad(
        corner=(0.0, 0.0, 0.0),
        edge_u=(0.0, box_size, 0.0),  # Up
        edge_v=(0.0, 0.0, box_size),  # Back
        material_id=green_mat,
    )
    # Back wall - XY plane at z=box_size
    builder.add_quad(
        corner=(0.0, 0.0, box_size),
        edge_u=(0.0, box_size, 0.0),  # Up
        edge_v=(box_size, 0.0, 0.0),  # Across
        material_id=white_mat,
    )
    # Floor - XZ plane at y=0
    builder.add_quad(
        corner=(0.0, 0.0, 0.0),
        edge_u=(0.0, 0.0, box_size),  # Back
        edge_v=(box_size, 0.0, 0.0),  # Across
        material_id=white_mat,
    )
    # Ceiling - XZ plane at y=box_size
    builder.add_quad(
        corner=(0.0, box_size, 0.0),
        edge_u=(box_size, 0.0, 0.0),  # Across
        edge_v=(0.0, 0.0, box_size),  # Back
        material_id=white_mat,
    )

    # =========================================================================
    # Area Light (on ceiling)
    # =========================================================================

    light_width = LIGHT_WIDTH * scale
    light_depth = LIGHT_DEPTH * scale
    light_x_offset = (box_size - light_width) / 2.0
    light_z_offset = (box_size - light_depth) / 2.0

    # Light sits just below ceiling to avoid z-fighting
    light_y = box_size - 1.0 * scale

    builder.add_quad(
        corner=(light_x_offset, light_y, light_z_offset),
        edge_u=(light_width, 0.0, 0.0),
        edge_v=(0.0, 0.0, light_depth),
        material_id=light_mat,
    )

    # =========================================================================
    # Spheres (3 spheres resting on the floor)
    # =========================================================================

    radius = SPHERE_RADIUS * scale
    builder.add_sphere(center=(box_size * 0.73, radius, box_size * 0.35), radius=radius, material_id=diffuse_mat)
    builder.add_sphere(center=(box_size * 0.27, radius, box_size * 0.35), radius=radius, material_id=mirror_mat)
    builder.add_sphere(center=(box_size * 0.5, radius, box_size * 0.65), radius=radius, material_id=glossy_mat)

    scene = builder.build()

    # =========================================================================
    # Camera Setup
    # =========================================================================

    # Camera positioned outside the box, looking in through the open front
    camera_distance = 800.0 * scale
    camera = Camera(
        lookfrom=(box_size / 2.0, box_size / 2.0, -camera_distance),
        lookat=(box_size / 2.0, box_size / 2.0, box_size / 2.0),
        vup=(0.0, 1.0, 0.0),
        vfov=40.0,
        width=width,
        height=height,
    )

    return scene, camera


def get_cornell_box_bounds(box_size: float = BOX_SIZE) -> dict[str, tuple[float, float, float]]:
    """Get the bounding box of the Cornell box scene.

    Useful for setting up navigation speeds or camera near/far planes.

    Returns:
        A dictionary with keys 'min', 'max', 'center' and 'size'.
    """
    return {
        "min": (0.0, 0.0, 0.0),
        "max": (box_size, box_size, box_size),
        "center": (box_size / 2.0, box_size / 2.0, box_size / 2.0),
        "size": (box_size, box_size, box_size),
    }

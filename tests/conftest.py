"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules: seeded random
generators, small hand-built scenes with known answers, and a Taichi session
for the interactive viewer tests (skipped when Taichi is not installed).
"""

import numpy as np
import pytest

from pathtracer.camera.pinhole import Camera
from pathtracer.core.config import RenderConfig
from pathtracer.materials.material import emitter, lambertian
from pathtracer.scene.builder import SceneBuilder


@pytest.fixture(scope="session")
def taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti = pytest.importorskip("taichi")
    ti.init(arch=ti.cpu, random_seed=42)
    yield ti


@pytest.fixture
def rng():
    """Deterministic random generator."""
    return np.random.default_rng(12345)


@pytest.fixture
def small_config():
    """Fast settings for tests that render whole images."""
    return RenderConfig(max_depth=3, tile_size=4, worker_count=2, seed=7)


@pytest.fixture
def lit_sphere_scene():
    """Diffuse sphere lit by a small downward-facing square light.

    Sphere: radius 1 at the origin, albedo 0.8.
    Light: 0.2 x 0.2 quad centred at (0, 5, 0), emission 50, facing -y.
    """
    builder = SceneBuilder()
    grey = builder.add_material(lambertian((0.8, 0.8, 0.8), name="grey"))
    light = builder.add_material(emitter((50.0, 50.0, 50.0), name="light"))
    builder.add_sphere((0.0, 0.0, 0.0), 1.0, grey)
    builder.add_quad(
        corner=(-0.1, 5.0, -0.1),
        edge_u=(0.2, 0.0, 0.0),
        edge_v=(0.0, 0.0, 0.2),
        material_id=light,
    )
    return builder.build()


@pytest.fixture
def point_lit_floor_scene():
    """Infinite diffuse floor (albedo 0.5) with a point light 4 units above the origin."""
    builder = SceneBuilder()
    floor = builder.add_material(lambertian((0.5, 0.5, 0.5), name="floor"))
    builder.add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), floor)
    builder.add_point_light((0.0, 4.0, 0.0), (10.0, 10.0, 10.0))
    return builder.build()


@pytest.fixture
def emissive_sphere_scene():
    """A pure emitter sphere filling the view of `emitter_camera`."""
    builder = SceneBuilder()
    glow = builder.add_material(emitter((1.0, 0.5, 0.25), name="glow"))
    builder.add_sphere((0.0, 0.0, -3.0), 2.5, glow)
    return builder.build()


@pytest.fixture
def emitter_camera():
    """4x4 camera at the origin looking down -z with a narrow field of view."""
    return Camera(lookfrom=(0.0, 0.0, 0.0), lookat=(0.0, 0.0, -1.0), vfov=30.0, width=4, height=4)

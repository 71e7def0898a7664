"""Unit tests for the camera module.

Tests cover:
- Camera setup and orthonormal basis computation
- Ray generation for center and corner pixels
- Jittered sampling for anti-aliasing
- Value semantics (equality, with_resolution)
- Parameter validation
"""

import math

import numpy as np
import pytest

from pathtracer.camera import Camera
from pathtracer.core.ray import length


def _center_ray(camera, px, py):
    rng = np.random.default_rng(0)
    return camera.generate_rays(np.array([px]), np.array([py]), rng, jitter=False)


class TestCameraSetup:
    """Tests for camera setup and basis computation."""

    def test_orthonormal_basis(self):
        """u, v, w are unit length and mutually orthogonal."""
        camera = Camera(lookfrom=(1.0, 2.0, 3.0), lookat=(-2.0, 0.5, 0.0), vfov=60.0)
        u, v, w = camera.basis
        assert np.dot(u, v) == pytest.approx(0.0, abs=1e-12)
        assert np.dot(u, w) == pytest.approx(0.0, abs=1e-12)
        assert np.dot(v, w) == pytest.approx(0.0, abs=1e-12)
        for axis in (u, v, w):
            assert np.linalg.norm(axis) == pytest.approx(1.0)

    def test_basis_looking_down_negative_z(self):
        camera = Camera(lookfrom=(0.0, 0.0, 0.0), lookat=(0.0, 0.0, -1.0))
        u, v, w = camera.basis
        assert np.allclose(u, [1.0, 0.0, 0.0])
        assert np.allclose(v, [0.0, 1.0, 0.0])
        assert np.allclose(w, [0.0, 0.0, 1.0])

    def test_aspect_ratio(self):
        assert Camera(lookfrom=(0, 0, 1), lookat=(0, 0, 0), width=64, height=32).aspect_ratio == 2.0


class TestRayGeneration:
    """Tests for primary ray generation."""

    def test_pixel_ray_direction(self):
        camera = Camera(lookfrom=(0.0, 0.0, 3.0), lookat=(0.0, 0.0, 0.0), width=2, height=2)
        # Pixel (1, 1) sits right of and below the image center
        origins, directions = camera.generate_rays(
            np.array([1]), np.array([1]), np.random.default_rng(0), jitter=False
        )
        assert np.allclose(origins, [[0.0, 0.0, 3.0]])
        half_pixel = math.tan(math.radians(20.0)) / 2.0
        expected = np.array([half_pixel, -half_pixel, -1.0])
        assert np.allclose(directions[0], expected / np.linalg.norm(expected))

    def test_row_zero_is_top(self):
        camera = Camera(lookfrom=(0.0, 0.0, 0.0), lookat=(0.0, 0.0, -1.0), width=8, height=8)
        _, top = _center_ray(camera, 4, 0)
        _, bottom = _center_ray(camera, 4, 7)
        assert top[0, 1] > 0.0
        assert bottom[0, 1] < 0.0

    def test_column_zero_is_left(self):
        camera = Camera(lookfrom=(0.0, 0.0, 0.0), lookat=(0.0, 0.0, -1.0), width=8, height=8)
        _, left = _center_ray(camera, 0, 4)
        _, right = _center_ray(camera, 7, 4)
        assert left[0, 0] < 0.0
        assert right[0, 0] > 0.0

    def test_corner_ray_matches_field_of_view(self):
        camera = Camera(lookfrom=(0.0, 0.0, 0.0), lookat=(0.0, 0.0, -1.0), vfov=90.0, width=100, height=100)
        rng = np.random.default_rng(0)
        _, direction = camera.generate_rays(np.array([0]), np.array([0]), rng, jitter=False)
        # Center of the top-left pixel on the z = -1 viewport spanning [-1, 1]
        expected = np.array([-0.99, 0.99, -1.0])
        assert np.allclose(direction[0], expected / np.linalg.norm(expected))

    def test_directions_are_unit_length(self, rng):
        camera = Camera(lookfrom=(2.0, 1.0, 5.0), lookat=(0.0, 0.0, 0.0), width=16, height=9)
        px = rng.integers(0, 16, size=100)
        py = rng.integers(0, 9, size=100)
        _, directions = camera.generate_rays(px, py, rng)
        assert np.allclose(length(directions), 1.0)

    def test_jitter_stays_inside_pixel(self, rng):
        camera = Camera(lookfrom=(0.0, 0.0, 0.0), lookat=(0.0, 0.0, -1.0), vfov=90.0, width=4, height=4)
        px = np.full(500, 1)
        py = np.full(500, 2)
        _, directions = camera.generate_rays(px, py, rng)
        # Project back onto the z = -1 viewport plane spanning [-1, 1]
        x = directions[:, 0] / -directions[:, 2]
        y = directions[:, 1] / -directions[:, 2]
        assert np.all((x >= -0.5) & (x <= 0.0))
        assert np.all((y >= -0.5) & (y <= 0.0))
        assert np.std(x) > 0.0

    def test_aperture_spreads_origins(self, rng):
        camera = Camera(lookfrom=(0.0, 0.0, 0.0), lookat=(0.0, 0.0, -1.0), aperture=0.5, focus_distance=2.0)
        origins, _ = camera.generate_rays(np.zeros(200, dtype=np.int64), np.zeros(200, dtype=np.int64), rng)
        radii = np.linalg.norm(origins[:, :2], axis=1)
        assert np.all(radii <= 0.25 + 1e-12)
        assert np.allclose(origins[:, 2], 0.0)
        assert np.max(radii) > 0.0


class TestCameraValue:
    """Tests for camera equality and copies."""

    def test_equal_poses_compare_equal(self):
        a = Camera(lookfrom=[0, 0, 3], lookat=(0, 0, 0))
        b = Camera(lookfrom=(0.0, 0.0, 3.0), lookat=np.zeros(3))
        assert a == b
        assert hash(a) == hash(b)

    def test_moved_camera_differs(self):
        a = Camera(lookfrom=(0, 0, 3), lookat=(0, 0, 0))
        b = Camera(lookfrom=(0, 0, 3.001), lookat=(0, 0, 0))
        assert a != b

    def test_with_resolution(self):
        camera = Camera(lookfrom=(0, 0, 3), lookat=(0, 0, 0), width=10, height=10)
        resized = camera.with_resolution(20, 5)
        assert (resized.width, resized.height) == (20, 5)
        assert resized.lookfrom == camera.lookfrom
        assert camera.width == 10


class TestCameraValidation:
    """Tests for rejected camera parameters."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"vfov": 0.0},
            {"vfov": 180.0},
            {"width": 0},
            {"height": -1},
            {"aperture": -0.1},
            {"focus_distance": 0.0},
            {"lookat": (0.0, 0.0, 3.0)},
            {"vup": (0.0, 0.0, 1.0)},
            {"lookfrom": (np.nan, 0.0, 3.0)},
        ],
    )
    def test_invalid_parameters(self, kwargs):
        params = {"lookfrom": (0.0, 0.0, 3.0), "lookat": (0.0, 0.0, 0.0)}
        params.update(kwargs)
        with pytest.raises(ValueError):
            Camera(**params)

"""Unit tests for sphere intersection.

Tests cover:
- Ray hitting sphere from outside (front face)
- Ray missing sphere
- Ray starting inside sphere (back face)
- Ray tangent to sphere
- Numerical stability edge cases
- Area and uniform surface sampling
"""

import numpy as np
import pytest

from pathtracer.core.ray import normalize
from pathtracer.errors import DegenerateGeometryError
from pathtracer.geometry.sphere import Sphere


def _rays(origins, directions):
    return np.array(origins, dtype=np.float64), normalize(np.array(directions, dtype=np.float64))


class TestSphereBasics:
    """Tests for Sphere construction and validation."""

    def test_fields_are_converted(self):
        sphere = Sphere(center=(1, 2, 3), radius=2)
        assert sphere.center.dtype == np.float64
        assert np.allclose(sphere.center, [1.0, 2.0, 3.0])
        assert sphere.radius == 2.0

    def test_zero_radius_rejected(self):
        with pytest.raises(DegenerateGeometryError, match="radius"):
            Sphere(center=(0, 0, 0), radius=0.0).validate()

    def test_negative_radius_rejected(self):
        with pytest.raises(DegenerateGeometryError):
            Sphere(center=(0, 0, 0), radius=-1.0).validate()

    def test_non_finite_center_rejected(self):
        with pytest.raises(DegenerateGeometryError, match="non-finite"):
            Sphere(center=(np.nan, 0, 0), radius=1.0).validate()

    def test_area(self):
        assert Sphere(center=(0, 0, 0), radius=2.0).area == pytest.approx(16.0 * np.pi)


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_direct_hit(self):
        sphere = Sphere(center=(0, 0, 0), radius=1.0)
        o, d = _rays([[0, 0, 5]], [[0, 0, -1]])
        assert sphere.intersect(o, d, 1e-4, 1e10)[0] == pytest.approx(4.0)

    def test_miss(self):
        sphere = Sphere(center=(0, 0, 0), radius=1.0)
        o, d = _rays([[0, 5, 5]], [[0, 0, -1]])
        assert np.isinf(sphere.intersect(o, d, 1e-4, 1e10)[0])

    def test_sphere_behind_ray(self):
        sphere = Sphere(center=(0, 0, 0), radius=1.0)
        o, d = _rays([[0, 0, 5]], [[0, 0, 1]])
        assert np.isinf(sphere.intersect(o, d, 1e-4, 1e10)[0])

    def test_inside_hits_far_side(self):
        sphere = Sphere(center=(0, 0, 0), radius=2.0)
        o, d = _rays([[0, 0, 0]], [[1, 0, 0]])
        assert sphere.intersect(o, d, 1e-4, 1e10)[0] == pytest.approx(2.0)

    def test_tangent_ray(self):
        sphere = Sphere(center=(0, 0, 0), radius=1.0)
        o, d = _rays([[1, 0, 5]], [[0, 0, -1]])
        t = sphere.intersect(o, d, 1e-4, 1e10)[0]
        assert t == pytest.approx(5.0, abs=1e-6)

    def test_interval_respected(self):
        sphere = Sphere(center=(0, 0, 0), radius=1.0)
        o, d = _rays([[0, 0, 5]], [[0, 0, -1]])
        # Near root at 4 excluded by t_max, far root at 6 as well
        assert np.isinf(sphere.intersect(o, d, 1e-4, 3.5)[0])
        # Near root excluded by t_min: the far root is returned
        assert sphere.intersect(o, d, 4.5, 1e10)[0] == pytest.approx(6.0)

    def test_per_ray_t_max(self):
        sphere = Sphere(center=(0, 0, 0), radius=1.0)
        o, d = _rays([[0, 0, 5], [0, 0, 5]], [[0, 0, -1], [0, 0, -1]])
        t = sphere.intersect(o, d, 1e-4, np.array([10.0, 2.0]))
        assert t[0] == pytest.approx(4.0)
        assert np.isinf(t[1])

    def test_far_away_small_sphere_is_stable(self):
        # Large |h| relative to the discriminant exercises the robust formula
        sphere = Sphere(center=(0, 0, -1e6), radius=1.0)
        o, d = _rays([[0, 0, 0]], [[0, 0, -1]])
        assert sphere.intersect(o, d, 1e-4, 1e10)[0] == pytest.approx(1e6 - 1.0, rel=1e-9)

    def test_batch_matches_single(self, rng):
        sphere = Sphere(center=(0.3, -0.2, -4.0), radius=1.5)
        origins = rng.normal(size=(64, 3))
        directions = normalize(np.array([0.0, 0.0, -4.0]) - origins + rng.normal(scale=0.5, size=(64, 3)))
        batch = sphere.intersect(origins, directions, 1e-4, 1e10)
        for i in range(64):
            single = sphere.intersect(origins[i : i + 1], directions[i : i + 1], 1e-4, 1e10)[0]
            assert single == batch[i] or (np.isinf(single) and np.isinf(batch[i]))

    def test_outward_normal(self):
        sphere = Sphere(center=(1, 0, 0), radius=2.0)
        n = sphere.outward_normal(np.array([[3.0, 0.0, 0.0], [1.0, 2.0, 0.0]]))
        assert np.allclose(n, [[1, 0, 0], [0, 1, 0]])


class TestSphereSampling:
    """Tests for uniform surface sampling."""

    def test_samples_lie_on_surface(self, rng):
        sphere = Sphere(center=(1, 2, 3), radius=0.5)
        points, normals = sphere.sample_surface(rng.random(500), rng.random(500))
        assert np.allclose(np.linalg.norm(points - sphere.center, axis=1), 0.5)
        assert np.allclose(normals, (points - sphere.center) / 0.5)

    def test_samples_are_uniform_in_z(self, rng):
        # Archimedes: z is uniform on [-r, r]
        sphere = Sphere(center=(0, 0, 0), radius=1.0)
        points, _ = sphere.sample_surface(rng.random(20000), rng.random(20000))
        assert np.mean(points[:, 2]) == pytest.approx(0.0, abs=0.02)
        assert np.mean(points[:, 2] > 0.5) == pytest.approx(0.25, abs=0.02)

    def test_can_sample(self):
        assert Sphere(center=(0, 0, 0), radius=1.0).can_sample

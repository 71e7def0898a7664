"""Unit tests for the infinite plane primitive."""

import numpy as np
import pytest

from pathtracer.errors import DegenerateGeometryError
from pathtracer.geometry.plane import Plane


class TestPlane:
    """Tests for plane construction and intersection."""

    def test_normal_is_normalized(self):
        plane = Plane(point=(0, 0, 0), normal=(0, 3, 0))
        assert np.allclose(plane.normal, [0.0, 1.0, 0.0])

    def test_zero_normal_rejected(self):
        with pytest.raises(DegenerateGeometryError, match="zero length"):
            Plane(point=(0, 0, 0), normal=(0, 0, 0)).validate()

    def test_hit_far_from_point(self):
        plane = Plane(point=(0, -1, 0), normal=(0, 1, 0))
        t = plane.intersect(np.array([[1000.0, 4.0, -500.0]]), np.array([[0.0, -1.0, 0.0]]), 1e-4, 1e10)
        assert t[0] == pytest.approx(5.0)

    def test_parallel_ray_misses(self):
        plane = Plane(point=(0, 0, 0), normal=(0, 1, 0))
        t = plane.intersect(np.array([[0.0, 1.0, 0.0]]), np.array([[1.0, 0.0, 0.0]]), 1e-4, 1e10)
        assert np.isinf(t[0])

    def test_ray_pointing_away_misses(self):
        plane = Plane(point=(0, 0, 0), normal=(0, 1, 0))
        t = plane.intersect(np.array([[0.0, 1.0, 0.0]]), np.array([[0.0, 1.0, 0.0]]), 1e-4, 1e10)
        assert np.isinf(t[0])

    def test_cannot_be_sampled(self):
        plane = Plane(point=(0, 0, 0), normal=(0, 1, 0))
        assert not plane.can_sample
        with pytest.raises(NotImplementedError):
            plane.area
        with pytest.raises(NotImplementedError):
            plane.sample_surface(np.zeros(1), np.zeros(1))

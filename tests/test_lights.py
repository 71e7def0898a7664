"""Unit tests for lights and the power-weighted light sampler.

Tests cover:
- Light power for area and point lights
- Selection probabilities and lookup tables
- Light samples (positions, densities, delta flags)
- Sampling a scene without lights
"""

import numpy as np
import pytest

from pathtracer.geometry import Quad, Sphere
from pathtracer.scene.lights import AreaLight, LightSampler, PointLight


def _unit_quad_light(index=0, emission=(1.0, 1.0, 1.0)):
    shape = Quad(corner=(0, 2, 0), edge_u=(1, 0, 0), edge_v=(0, 0, 1))
    return AreaLight(primitive_index=index, shape=shape, emission=np.array(emission))


class TestLightPower:
    """Tests for light power used in selection."""

    def test_area_light_power(self):
        light = _unit_quad_light(emission=(2.0, 2.0, 2.0))
        assert light.power == pytest.approx(2.0 * 1.0 * np.pi)
        assert not light.is_delta

    def test_point_light_power(self):
        light = PointLight(position=(0, 0, 0), intensity=(3.0, 3.0, 3.0))
        assert light.power == pytest.approx(12.0 * np.pi)
        assert light.is_delta


class TestLightSampler:
    """Tests for LightSampler selection and sampling."""

    def test_probabilities_proportional_to_power(self):
        bright = _unit_quad_light(index=0, emission=(3.0, 3.0, 3.0))
        dim = _unit_quad_light(index=1, emission=(1.0, 1.0, 1.0))
        sampler = LightSampler([bright, dim], primitive_count=2)
        assert sampler.probabilities == pytest.approx([0.75, 0.25])
        assert sampler.probabilities.sum() == pytest.approx(1.0)

    def test_selection_frequencies(self, rng):
        bright = _unit_quad_light(index=0, emission=(3.0, 3.0, 3.0))
        dim = _unit_quad_light(index=1, emission=(1.0, 1.0, 1.0))
        sampler = LightSampler([bright, dim], primitive_count=2)
        sample = sampler.sample_light(np.zeros((20000, 3)), rng)
        assert np.mean(sample.primitive_index == 0) == pytest.approx(0.75, abs=0.015)
        assert np.allclose(sample.selection_probability[sample.primitive_index == 1], 0.25)

    def test_primitive_lookup_tables(self):
        light = _unit_quad_light(index=2)
        sampler = LightSampler([light], primitive_count=4)
        assert sampler.selection_probability(np.array([0, 2])) == pytest.approx([0.0, 1.0])
        assert sampler.area_pdf(np.array([2, 3])) == pytest.approx([1.0, 0.0])

    def test_area_light_sample(self, rng):
        sampler = LightSampler([_unit_quad_light()], primitive_count=1)
        sample = sampler.sample_light(np.zeros((100, 3)), rng)
        assert np.allclose(sample.position[:, 1], 2.0)
        assert np.allclose(sample.normal, [0.0, -1.0, 0.0])
        assert np.allclose(sample.pdf, 1.0)
        assert np.allclose(sample.radiance, 1.0)
        assert not np.any(sample.is_delta)

    def test_sphere_light_pdf(self, rng):
        sphere = Sphere(center=(0, 5, 0), radius=0.5)
        light = AreaLight(primitive_index=0, shape=sphere, emission=np.ones(3))
        sample = LightSampler([light], primitive_count=1).sample_light(np.zeros((10, 3)), rng)
        assert np.allclose(sample.pdf, 1.0 / sphere.area)

    def test_point_light_sample(self, rng):
        light = PointLight(position=(1, 2, 3), intensity=(5.0, 5.0, 5.0))
        sample = LightSampler([light], primitive_count=0).sample_light(np.zeros((4, 3)), rng)
        assert np.all(sample.is_delta)
        assert np.allclose(sample.position, [1.0, 2.0, 3.0])
        assert np.allclose(sample.radiance, 5.0)
        assert np.all(sample.primitive_index == -1)

    def test_mixed_lights(self, rng):
        area = _unit_quad_light(index=0, emission=(1.0, 1.0, 1.0))
        point = PointLight(position=(0, 3, 0), intensity=(1.0 / 4.0, 1.0 / 4.0, 1.0 / 4.0))
        sampler = LightSampler([area, point], primitive_count=1)
        # pi vs 4 * pi / 4: equal power
        assert sampler.probabilities == pytest.approx([0.5, 0.5])
        sample = sampler.sample_light(np.zeros((1000, 3)), rng)
        assert np.all(sample.is_delta == (sample.primitive_index == -1))

    def test_no_lights(self, rng):
        sampler = LightSampler([], primitive_count=3)
        assert len(sampler) == 0
        assert not sampler.has_lights
        with pytest.raises(RuntimeError, match="no light sources"):
            sampler.sample_light(np.zeros((1, 3)), rng)

    def test_tables_are_read_only(self):
        sampler = LightSampler([_unit_quad_light()], primitive_count=1)
        with pytest.raises(ValueError):
            sampler.probabilities[0] = 0.0

"""Scene module: geometry store, lights and scene presets.

This module handles scene representation and ray-scene queries:

Components:
    builder: SceneBuilder collecting and validating a scene description
    scene: Immutable Scene answering closest-hit and any-hit queries
    lights: Area and point lights with a power-weighted light sampler
    environment: Background radiance for escaping rays
    cornell_box: Classic Cornell box preset

The built Scene is read-only and shared between render worker threads
without locking.
"""

from .builder import SceneBuilder
from .cornell_box import BOX_SIZE, CornellBoxParams, create_cornell_box_scene, get_cornell_box_bounds
from .environment import ConstantEnvironment, GradientEnvironment
from .lights import AreaLight, LightSample, LightSampler, PointLight
from .scene import HitBatch, IntersectionRecord, Scene

__all__ = [
    "Scene",
    "SceneBuilder",
    "IntersectionRecord",
    "HitBatch",
    "AreaLight",
    "PointLight",
    "LightSample",
    "LightSampler",
    "ConstantEnvironment",
    "GradientEnvironment",
    "CornellBoxParams",
    "create_cornell_box_scene",
    "get_cornell_box_bounds",
    "BOX_SIZE",
]

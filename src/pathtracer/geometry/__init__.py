"""Geometry module for shape primitives.

This module provides geometric primitives and their batched intersection
routines:

Components:
    sphere: Sphere primitive with robust ray-sphere intersection
    triangle: Triangle primitive (Möller–Trumbore)
    quad: Parallelogram primitive used for walls and area lights
    plane: Infinite plane (never an area light)

Every intersection routine takes a batch of rays as (N, 3) NumPy arrays and
returns the hit distance per ray, inf on a miss:
    t = shape.intersect(origins, directions, t_min, t_max)
"""

from .plane import Plane
from .quad import Quad
from .shape import Shape
from .sphere import Sphere
from .triangle import Triangle

__all__ = [
    "Shape",
    "Sphere",
    "Triangle",
    "Quad",
    "Plane",
]

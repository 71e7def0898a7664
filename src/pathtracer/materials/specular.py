"""Perfect mirror (specular reflective) lobe.

The reflection formula is:
    R = I - 2(I . N)N

where I is the incident direction and N is the surface normal. The lobe is a
Dirac delta: its only direction is R, so it is handled as a special case with
weight = specular color and an implicit pdf of 1 along the mirror direction.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from pathtracer.core.ray import normalize, reflect

Vec3Array = npt.NDArray[np.float64]


def scatter_mirror(
    specular: Vec3Array, incident: Vec3Array, normal: Vec3Array
) -> tuple[Vec3Array, Vec3Array, npt.NDArray[np.float64]]:
    """Reflect incident directions about the normals.

    Args:
        specular: The reflective color (RGB, each component in [0, 1]).
        incident: Incoming ray directions, shape (N, 3).
        normal: Ray-facing surface normals, shape (N, 3).

    Returns:
        A tuple of (directions, weight, pdf) with weight = specular and pdf = 1.
    """
    directions = normalize(reflect(incident, normal))
    count = incident.shape[0]
    weight = np.broadcast_to(specular, (count, 3)).copy()
    return directions, weight, np.ones(count)

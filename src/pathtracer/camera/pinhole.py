"""Camera model for perspective projection ray generation.

This module implements the camera snapshot that generates primary rays for
rendering. The camera supports:
- Look-at positioning (lookfrom, lookat, vup)
- Vertical field of view specification
- Arbitrary image resolutions
- Jittered sampling for anti-aliasing
- Thin-lens depth of field (aperture > 0)

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

A Camera is an immutable value: a render session keeps one snapshot for its
whole lifetime, and two cameras compare equal exactly when every view
parameter matches.

Example:
    >>> import numpy as np
    >>> from pathtracer.camera.pinhole import Camera
    >>>
    >>> # Create camera looking at origin from z=3
    >>> camera = Camera(
    ...     lookfrom=(0.0, 0.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=60.0,
    ...     width=64,
    ...     height=36,
    ... )
    >>> rng = np.random.default_rng(0)
    >>> origins, directions = camera.generate_rays(np.array([32]), np.array([18]), rng, jitter=False)
    >>> directions.shape
    (1, 3)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

import numpy as np
import numpy.typing as npt

from pathtracer.core.ray import normalize

Vec3Array = npt.NDArray[np.float64]


def _as_point(name: str, value: npt.ArrayLike) -> tuple[float, float, float]:
    values = tuple(float(x) for x in np.asarray(value, dtype=np.float64).reshape(-1))
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    if not all(math.isfinite(x) for x in values):
        raise ValueError(f"{name} must be finite, got {values}")
    return values


@dataclass(frozen=True)
class Camera:
    """Immutable perspective camera snapshot.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        width: Image width in pixels.
        height: Image height in pixels.
        aperture: Lens diameter; 0 gives a pinhole camera.
        focus_distance: Distance to the plane in perfect focus.

    Raises:
        ValueError: If any parameter is out of range or the view direction
            is parallel to vup.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 40.0
    width: int = 256
    height: int = 256
    aperture: float = 0.0
    focus_distance: float = 1.0

    def __post_init__(self) -> None:
        for name in ("lookfrom", "lookat", "vup"):
            object.__setattr__(self, name, _as_point(name, getattr(self, name)))

        if int(self.width) != self.width or int(self.height) != self.height:
            raise ValueError(f"Resolution must be integral, got {self.width}x{self.height}")
        object.__setattr__(self, "width", int(self.width))
        object.__setattr__(self, "height", int(self.height))
        if self.width < 1 or self.height < 1:
            raise ValueError(f"Resolution must be at least 1x1, got {self.width}x{self.height}")
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if not (math.isfinite(self.aperture) and self.aperture >= 0.0):
            raise ValueError(f"aperture must be non-negative, got {self.aperture}")
        if not (math.isfinite(self.focus_distance) and self.focus_distance > 0.0):
            raise ValueError(f"focus_distance must be positive, got {self.focus_distance}")

        # w points from lookat toward lookfrom (backward)
        w = np.subtract(self.lookfrom, self.lookat)
        w_len = float(np.linalg.norm(w))
        if w_len < 1e-12:
            raise ValueError("lookfrom and lookat must be different points")
        w = w / w_len

        # u points right (perpendicular to w and vup)
        u = np.cross(self.vup, w)
        u_len = float(np.linalg.norm(u))
        if u_len < 1e-12:
            raise ValueError("vup must not be parallel to the view direction")
        u = u / u_len

        # v points up in the camera's frame
        v = np.cross(w, u)

        # Viewport on the focus plane
        h = math.tan(math.radians(self.vfov) / 2.0)
        viewport_height = 2.0 * h * self.focus_distance
        viewport_width = self.aspect_ratio * viewport_height
        origin = np.array(self.lookfrom)
        horizontal = viewport_width * u
        vertical = viewport_height * v
        lower_left = origin - self.focus_distance * w - horizontal / 2.0 - vertical / 2.0

        for name, value in (
            ("_origin", origin),
            ("_u", u),
            ("_v", v),
            ("_w", w),
            ("_horizontal", horizontal),
            ("_vertical", vertical),
            ("_lower_left", lower_left),
        ):
            value.flags.writeable = False
            object.__setattr__(self, name, value)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def lens_radius(self) -> float:
        return self.aperture / 2.0

    @property
    def basis(self) -> tuple[Vec3Array, Vec3Array, Vec3Array]:
        """The (u, v, w) basis: right, up, backward."""
        return self._u, self._v, self._w

    def with_resolution(self, width: int, height: int) -> Camera:
        """Same pose at a different image size."""
        return replace(self, width=width, height=height)

    def generate_rays(
        self,
        px: npt.NDArray[np.int64],
        py: npt.NDArray[np.int64],
        rng: np.random.Generator,
        jitter: bool = True,
    ) -> tuple[Vec3Array, Vec3Array]:
        """Primary rays through pixels (px, py), one per entry.

        Row 0 is the top of the image. With jitter the ray passes through a
        uniformly random point of the pixel, otherwise through its center.

        Args:
            px: Pixel columns, shape (N,).
            py: Pixel rows, shape (N,).
            rng: The random source.
            jitter: Whether to add a random sub-pixel offset.

        Returns:
            A tuple (origins, directions), each (N, 3), directions unit length.
        """
        count = px.shape[0]
        if jitter:
            jitter_x = rng.random(count)
            jitter_y = rng.random(count)
        else:
            jitter_x = np.full(count, 0.5)
            jitter_y = np.full(count, 0.5)

        # Normalized image coordinates: s left to right, t bottom to top
        s = (px + jitter_x) / self.width
        t = 1.0 - (py + jitter_y) / self.height

        target = self._lower_left + s[:, None] * self._horizontal + t[:, None] * self._vertical
        origins = np.broadcast_to(self._origin, (count, 3)).copy()

        if self.aperture > 0.0:
            disk = self.lens_radius * _random_in_unit_disk(rng, count)
            origins += disk[:, 0:1] * self._u + disk[:, 1:2] * self._v

        return origins, normalize(target - origins)


def _random_in_unit_disk(rng: np.random.Generator, count: int) -> npt.NDArray[np.float64]:
    """Uniform points in the unit disk, shape (count, 2)."""
    radius = np.sqrt(rng.random(count))
    theta = 2.0 * np.pi * rng.random(count)
    return np.stack([radius * np.cos(theta), radius * np.sin(theta)], axis=-1)

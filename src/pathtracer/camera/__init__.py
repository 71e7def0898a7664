"""Camera module for view and ray generation.

Components:
    pinhole: Perspective camera snapshot with optional thin-lens aperture

Camera responsibilities:
    - Transform pixel coordinates to world-space rays
    - Apply anti-aliasing jitter for sub-pixel sampling
    - Support look-at positioning with up vector

Pixel coordinates put row 0 at the top of the image.
"""

from .pinhole import Camera

__all__ = [
    "Camera",
]

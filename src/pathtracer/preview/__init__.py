"""Preview module for output and visualization.

This module handles rendering output and interactive preview:

Components:
    display: Tone mapping and Matplotlib-based preview display
    export: PNG export utilities
    navigation: FlyCamera pose producing camera snapshots
    interactive: Taichi GGUI fly-through viewer (requires taichi)

Features:
    - Tonemapping for HDR output (Reinhard, exposure-based)
    - Gamma-correct PNG export (sRGB)
    - Side-by-side comparison visualization
    - Interactive viewer with debounced progressive sessions

Example:
    >>> from pathtracer.preview import show_preview, save_png
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(scene, camera)
    >>> renderer.render(100)
    >>> show_preview(renderer, tone_map="reinhard")
    >>> save_png(renderer, "output.png", gamma=2.2)

The interactive viewer is not imported here because it needs Taichi:
    >>> from pathtracer.preview.interactive import InteractiveViewer
"""

from pathtracer.preview.display import (
    ToneMapMethod,
    apply_gamma,
    linear_image,
    process_image_for_display,
    show_comparison,
    show_preview,
    snapshot_of,
    tone_map_exposure,
    tone_map_reinhard,
)
from pathtracer.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_png,
    save_png_from_array,
)
from pathtracer.preview.navigation import FlyCamera

__all__ = [
    # Display functions
    "show_preview",
    "show_comparison",
    "snapshot_of",
    "linear_image",
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    # Export functions
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
    # Navigation
    "FlyCamera",
]

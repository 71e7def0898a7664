#!/usr/bin/env python3
"""Interactive Cornell box viewer with debounced progressive rendering.

This script opens a Taichi GGUI window on the Cornell box. Fly around with
the keyboard and mouse; rendering restarts once the camera has been still
for the debounce interval and refines until the camera moves again.

Usage:
    python examples/interactive_cornell_box.py [--size 384] [--workers N]

Controls:
    - W/S/A/D: Move forward/back/left/right
    - Q/E: Move down/up
    - Left mouse drag: Look around
    - Export PNG: Save current render with timestamp

Requires the preview extra (taichi).
"""

from __future__ import annotations

import argparse
import platform
import sys

import taichi as ti

from pathtracer.core.config import RenderConfig
from pathtracer.logging_config import setup_logging


def initialize_taichi() -> str:
    """Initialize Taichi with the best available backend.

    Taichi only drives the window here; rendering itself runs on CPU threads.

    Returns:
        Name of the backend being used.
    """
    if platform.system() == "Darwin":
        try:
            ti.init(arch=ti.metal)
            return "Metal (GPU)"
        except Exception:
            pass

    try:
        ti.init(arch=ti.gpu)
        return "GPU"
    except Exception:
        pass

    ti.init(arch=ti.cpu)
    return "CPU"


def main() -> int:
    """Main entry point for the interactive Cornell box viewer.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = argparse.ArgumentParser(description="Interactive Cornell box viewer.")
    parser.add_argument("--size", type=int, default=384, help="Window size in pixels (default: 384)")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: CPU count)")
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args()

    logger = setup_logging(level=args.log_level)

    backend = initialize_taichi()
    logger.info("Taichi backend: %s", backend)

    # Import after Taichi initialization
    from pathtracer.preview.interactive import InteractiveViewer
    from pathtracer.scene.cornell_box import create_cornell_box_scene

    if not InteractiveViewer.is_display_available():
        print("Error: No display available. Cannot run interactive preview.")
        print("This script requires a graphical display environment.")
        return 1

    scene, camera = create_cornell_box_scene(width=args.size, height=args.size)
    config = RenderConfig(max_depth=6, tile_size=32, worker_count=args.workers)
    viewer = InteractiveViewer(scene, camera, config)

    print("Starting interactive rendering...")
    print("  - W/S/A/D/Q/E to move, drag with the left mouse button to look")
    print("  - Click 'Export PNG' to save current render")
    print("  - Close window to exit")

    try:
        viewer.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        viewer.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())

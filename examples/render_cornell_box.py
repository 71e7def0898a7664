#!/usr/bin/env python3
"""Render the Cornell box scene.

This script demonstrates end-to-end rendering of the Cornell box scene: it
builds the scene and camera, renders progressive passes on a pool of worker
threads and saves a tone-mapped PNG.

Usage:
    python examples/render_cornell_box.py [options]

Options:
    --width WIDTH       Image width in pixels (default: 256)
    --height HEIGHT     Image height in pixels (default: 256)
    --passes PASSES     Number of passes, one sample per pixel each (default: 64)
    --output OUTPUT     Output file path (default: cornell_box.png)
    --batch-size SIZE   Passes per progress update (default: 8)
    --workers N         Worker threads (default: CPU count)
    --config PATH       Load render settings from a JSON file
    --log-level LEVEL   Logging level (default: INFO)
    --quiet             Suppress progress output

Example:
    python examples/render_cornell_box.py --width 128 --height 128 --passes 16
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from pathtracer.core.config import RenderConfig
from pathtracer.core.progressive import ProgressiveRenderer
from pathtracer.logging_config import setup_logging
from pathtracer.preview.export import save_png
from pathtracer.scene.cornell_box import create_cornell_box_scene


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the Cornell box scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=256, help="Image width in pixels (default: 256)")
    parser.add_argument("--height", type=int, default=256, help="Image height in pixels (default: 256)")
    parser.add_argument("--passes", type=int, default=64, help="Number of passes (default: 64)")
    parser.add_argument(
        "--output",
        type=str,
        default="cornell_box.png",
        help="Output file path (default: cornell_box.png)",
    )
    parser.add_argument("--batch-size", type=int, default=8, help="Passes per progress update (default: 8)")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: CPU count)")
    parser.add_argument("--config", type=Path, default=None, help="JSON file with render settings")
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_cornell_box(
    width: int = 256,
    height: int = 256,
    num_passes: int = 64,
    output_path: str = "cornell_box.png",
    batch_size: int = 8,
    config: RenderConfig | None = None,
    quiet: bool = False,
) -> Path:
    """Render the Cornell box scene and save to file.

    Returns:
        Path to the saved image file.
    """
    if config is None:
        config = RenderConfig()

    if not quiet:
        print(f"Creating Cornell box scene ({width}x{height})...")
    scene, camera = create_cornell_box_scene(width=width, height=height)
    renderer = ProgressiveRenderer(scene, camera, config)

    if not quiet:
        print(f"Rendering {num_passes} passes with {config.resolved_worker_count()} workers...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            passes_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} passes "
                f"({progress_pct:.1f}%) - {passes_per_sec:.2f} passes/s",
                end="",
                flush=True,
            )

    renderer.render(num_passes, batch_size=batch_size, callback=progress_callback)

    if not quiet:
        print()

    output_file = Path(output_path)
    save_png(renderer, output_file, tone_map="reinhard", gamma=2.2, exposure=1.0)

    total_time = time.time() - start_time
    if not quiet:
        if renderer.degraded:
            print("Warning: some tiles failed and were dropped; see the log")
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    setup_logging(level=args.log_level)

    try:
        config = RenderConfig.load(args.config) if args.config is not None else RenderConfig()
        if args.workers is not None:
            config = config.with_overrides(worker_count=args.workers)
        render_cornell_box(
            width=args.width,
            height=args.height,
            num_passes=args.passes,
            output_path=args.output,
            batch_size=args.batch_size,
            config=config,
            quiet=args.quiet,
        )
        return 0
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

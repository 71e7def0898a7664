"""Render configuration.

RenderConfig gathers every knob of the integrator, the tile scheduler and
the session controller in one validated, immutable value. It can be stored
as JSON so a viewer can restore its render settings.

Example:
    >>> from pathtracer.core.config import RenderConfig
    >>> config = RenderConfig(max_depth=4, tile_size=16)
    >>> RenderConfig.from_dict(config.to_dict()) == config
    True
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from pathtracer.core.ray import T_MAX, T_MIN


@dataclass(frozen=True)
class RenderConfig:
    """Render settings.

    Attributes:
        max_depth: Maximum number of path vertices (1 = camera hit only).
        samples_per_pass: Paths traced per pixel in each pass.
        tile_size: Edge length of the square work tiles, in pixels.
        worker_count: Worker threads; None uses os.cpu_count().
        roulette: Enable Russian-roulette termination.
        roulette_min_depth: Vertices traced before roulette may stop a path.
        roulette_min_probability: Lower clamp of the continuation probability.
        roulette_max_probability: Upper clamp of the continuation probability.
        next_event_estimation: Sample one light explicitly at each vertex.
        multiple_importance_sampling: Weight light and BSDF sampling with
            the power heuristic (only meaningful with next-event estimation).
        t_min: Ray interval start used for every intersection query.
        t_max: Ray interval end used for camera and bounce rays.
        seed: Global seed; tile generators derive from (seed, pass, tile).
        max_tile_retries: Times a failing tile is requeued before it is
            dropped and the run is marked degraded.
        debounce_seconds: Time the camera must stay still before a session
            starts.
        max_passes: Stop after this many passes; None refines until cancelled.
    """

    max_depth: int = 8
    samples_per_pass: int = 1
    tile_size: int = 32
    worker_count: int | None = None
    roulette: bool = True
    roulette_min_depth: int = 3
    roulette_min_probability: float = 0.05
    roulette_max_probability: float = 0.95
    next_event_estimation: bool = True
    multiple_importance_sampling: bool = True
    t_min: float = T_MIN
    t_max: float = T_MAX
    seed: int = 0
    max_tile_retries: int = 2
    debounce_seconds: float = 0.25
    max_passes: int | None = None

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")
        if self.samples_per_pass < 1:
            raise ValueError(f"samples_per_pass must be at least 1, got {self.samples_per_pass}")
        if self.tile_size < 1:
            raise ValueError(f"tile_size must be at least 1, got {self.tile_size}")
        if self.worker_count is not None and self.worker_count < 1:
            raise ValueError(f"worker_count must be at least 1, got {self.worker_count}")
        if self.roulette_min_depth < 1:
            raise ValueError(f"roulette_min_depth must be at least 1, got {self.roulette_min_depth}")
        if not 0.0 < self.roulette_min_probability <= self.roulette_max_probability <= 1.0:
            raise ValueError(
                "roulette probabilities must satisfy 0 < min <= max <= 1, got "
                f"min={self.roulette_min_probability}, max={self.roulette_max_probability}"
            )
        if not (math.isfinite(self.t_min) and 0.0 <= self.t_min < self.t_max):
            raise ValueError(f"Invalid ray interval: t_min={self.t_min}, t_max={self.t_max}")
        if self.seed < 0:
            raise ValueError(f"seed must be non-negative, got {self.seed}")
        if self.max_tile_retries < 0:
            raise ValueError(f"max_tile_retries must be non-negative, got {self.max_tile_retries}")
        if not (math.isfinite(self.debounce_seconds) and self.debounce_seconds >= 0.0):
            raise ValueError(f"debounce_seconds must be non-negative, got {self.debounce_seconds}")
        if self.max_passes is not None and self.max_passes < 1:
            raise ValueError(f"max_passes must be at least 1, got {self.max_passes}")

    def resolved_worker_count(self) -> int:
        """Number of worker threads to start."""
        if self.worker_count is not None:
            return self.worker_count
        return os.cpu_count() or 1

    def with_overrides(self, **changes: Any) -> RenderConfig:
        """Copy with some fields replaced (validated again)."""
        return replace(self, **changes)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RenderConfig:
        """Build a config from a dictionary.

        Raises:
            ValueError: If the dictionary holds unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown render config keys: {', '.join(unknown)}")
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Write the config as JSON."""
        Path(path).write_text(json.dumps(self.to_dict(), indent=2) + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: str | Path) -> RenderConfig:
        """Read a config written by `save`."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object")
        return cls.from_dict(data)

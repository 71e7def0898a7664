"""Tests for the multi-threaded tile scheduler.

Tests cover:
- Pass accounting and full image coverage
- Reproducibility across worker counts and repeated runs
- Cancellation between tiles
- Retrying and dropping failing tiles
- Callbacks
"""

import threading

import numpy as np
import pytest

from pathtracer.camera import Camera
from pathtracer.core import scheduler as scheduler_module
from pathtracer.core.accumulation import AccumulationBuffer
from pathtracer.core.config import RenderConfig
from pathtracer.core.integrator import PathIntegrator
from pathtracer.core.scheduler import TileScheduler, render_tile, tile_rng
from pathtracer.core.tiles import Tile
from pathtracer.scene.cornell_box import create_cornell_box_scene


class ConstantIntegrator:
    """Returns radiance 1 for every path."""

    def trace(self, origins, directions, rng):
        return np.ones((origins.shape[0], 3))


class FlakyIntegrator:
    """Raises on the first `failures` calls, then behaves like ConstantIntegrator."""

    def __init__(self, failures):
        self._failures = failures
        self._lock = threading.Lock()

    def trace(self, origins, directions, rng):
        with self._lock:
            if self._failures > 0:
                self._failures -= 1
                raise RuntimeError("transient failure")
        return np.ones((origins.shape[0], 3))


def _camera(width=10, height=7):
    return Camera(lookfrom=(0, 0, 3), lookat=(0, 0, 0), width=width, height=height)


def _scheduler(integrator, camera, config, cancel=None, on_tile_rendered=None):
    buffer = AccumulationBuffer(camera.width, camera.height, config.tile_size)
    cancel = cancel if cancel is not None else threading.Event()
    return TileScheduler(integrator, camera, buffer, config, cancel, on_tile_rendered), buffer


class TestTileHelpers:
    """Tests for tile_rng and render_tile."""

    def test_tile_rng_is_reproducible(self):
        assert np.array_equal(tile_rng(1, 2, 3).random(4), tile_rng(1, 2, 3).random(4))

    def test_tile_rng_streams_differ(self):
        base = tile_rng(1, 2, 3).random(4)
        assert not np.array_equal(base, tile_rng(1, 3, 3).random(4))
        assert not np.array_equal(base, tile_rng(1, 2, 4).random(4))
        assert not np.array_equal(base, tile_rng(2, 2, 3).random(4))

    def test_render_tile_sums_samples(self, rng):
        tile = Tile(index=0, x0=0, y0=0, x1=3, y1=2)
        sums = render_tile(ConstantIntegrator(), _camera(), tile, 4, rng)
        assert sums.shape == (2, 3, 3)
        assert np.allclose(sums, 4.0)


class TestPasses:
    """Tests for running passes."""

    def test_every_pixel_sampled_each_pass(self):
        config = RenderConfig(tile_size=4, worker_count=3, samples_per_pass=2)
        scheduler, buffer = _scheduler(ConstantIntegrator(), _camera(), config)
        assert scheduler.run(max_passes=3) == 3
        snapshot = buffer.snapshot()
        assert snapshot.passes == 3
        assert np.all(snapshot.count == 6)
        assert np.allclose(snapshot.image(), 1.0)
        assert scheduler.tiles_rendered == 3 * 6
        assert not scheduler.degraded

    def test_pass_limit_from_config(self):
        config = RenderConfig(tile_size=4, worker_count=2, max_passes=2)
        scheduler, buffer = _scheduler(ConstantIntegrator(), _camera(), config)
        assert scheduler.run() == 2
        assert buffer.passes == 2

    def test_more_workers_than_tiles(self):
        config = RenderConfig(tile_size=16, worker_count=8)
        scheduler, buffer = _scheduler(ConstantIntegrator(), _camera(), config)
        scheduler.run(max_passes=1)
        assert np.all(buffer.snapshot().count == 1)

    def test_pass_callback(self):
        config = RenderConfig(tile_size=4, worker_count=2)
        scheduler, _ = _scheduler(ConstantIntegrator(), _camera(), config)
        seen = []
        scheduler.run(max_passes=3, on_pass_complete=seen.append)
        assert seen == [1, 2, 3]

    def test_tile_callback_errors_are_not_fatal(self, caplog):
        def explode(tile):
            raise RuntimeError("display went away")

        config = RenderConfig(tile_size=4, worker_count=2)
        scheduler, buffer = _scheduler(ConstantIntegrator(), _camera(), config, on_tile_rendered=explode)
        assert scheduler.run(max_passes=1) == 1
        assert np.all(buffer.snapshot().count == 1)
        assert "on_tile_rendered callback failed" in caplog.text

    def test_resolution_mismatch(self):
        config = RenderConfig(tile_size=4)
        buffer = AccumulationBuffer(5, 5, 4)
        with pytest.raises(ValueError, match="camera renders"):
            TileScheduler(ConstantIntegrator(), _camera(), buffer, config, threading.Event())


class TestReproducibility:
    """Tests for deterministic rendering."""

    @pytest.fixture
    def cornell(self):
        return create_cornell_box_scene(width=12, height=12)

    def _render(self, cornell, worker_count, runs):
        scene, camera = cornell
        config = RenderConfig(max_depth=3, tile_size=4, worker_count=worker_count, seed=11)
        scheduler, buffer = _scheduler(PathIntegrator(scene, config), camera, config)
        for passes in runs:
            scheduler.run(max_passes=passes)
        return buffer.snapshot()

    def test_independent_of_worker_count(self, cornell):
        single = self._render(cornell, 1, [2])
        many = self._render(cornell, 4, [2])
        assert np.array_equal(single.sum, many.sum)

    def test_continued_run_matches_single_run(self, cornell):
        at_once = self._render(cornell, 2, [2])
        in_steps = self._render(cornell, 2, [1, 1])
        assert np.array_equal(at_once.sum, in_steps.sum)
        assert in_steps.passes == 2

    def test_seed_changes_image(self, cornell):
        scene, camera = cornell
        images = []
        for seed in (1, 2):
            config = RenderConfig(max_depth=3, tile_size=4, worker_count=2, seed=seed)
            scheduler, buffer = _scheduler(PathIntegrator(scene, config), camera, config)
            scheduler.run(max_passes=1)
            images.append(buffer.snapshot().sum)
        assert not np.array_equal(images[0], images[1])


class TestCancellation:
    """Tests for stopping a run."""

    def test_cancel_before_run(self):
        cancel = threading.Event()
        cancel.set()
        config = RenderConfig(tile_size=4, worker_count=2)
        scheduler, buffer = _scheduler(ConstantIntegrator(), _camera(), config, cancel=cancel)
        assert scheduler.run() == 0
        assert scheduler.tiles_rendered == 0
        assert buffer.snapshot().total_samples == 0

    def test_cancel_stops_between_tiles(self):
        cancel = threading.Event()
        config = RenderConfig(tile_size=2, worker_count=2)
        camera = _camera(16, 16)
        scheduler, buffer = _scheduler(
            ConstantIntegrator(), camera, config, cancel=cancel, on_tile_rendered=lambda tile: cancel.set()
        )
        assert scheduler.run() == 0
        # Each worker finishes at most the tile it was rendering
        assert 1 <= scheduler.tiles_rendered <= 2
        assert buffer.passes == 0
        assert buffer.snapshot().total_samples == scheduler.tiles_rendered * 4

    def test_cancel_from_another_thread(self):
        cancel = threading.Event()
        config = RenderConfig(tile_size=4, worker_count=2)
        scheduler, buffer = _scheduler(ConstantIntegrator(), _camera(), config, cancel=cancel)
        timer = threading.Timer(0.05, cancel.set)
        timer.start()
        try:
            completed = scheduler.run()
        finally:
            timer.cancel()
        assert completed == buffer.passes
        assert cancel.is_set()


class TestTileFailures:
    """Tests for retrying and dropping tiles."""

    def test_transient_failure_is_retried(self):
        config = RenderConfig(tile_size=4, worker_count=1, max_tile_retries=2)
        scheduler, buffer = _scheduler(FlakyIntegrator(failures=2), _camera(), config)
        assert scheduler.run(max_passes=1) == 1
        assert np.all(buffer.snapshot().count == 1)
        assert not scheduler.degraded

    def test_persistent_failure_degrades(self, monkeypatch, caplog):
        calls = []
        real_render_tile = scheduler_module.render_tile

        def failing_first_tile(integrator, camera, tile, samples, rng):
            if tile.index == 0:
                calls.append(tile.index)
                raise RuntimeError("bad tile")
            return real_render_tile(integrator, camera, tile, samples, rng)

        monkeypatch.setattr(scheduler_module, "render_tile", failing_first_tile)
        config = RenderConfig(tile_size=4, worker_count=2, max_tile_retries=2)
        scheduler, buffer = _scheduler(ConstantIntegrator(), _camera(), config)

        assert scheduler.run(max_passes=2) == 2
        assert scheduler.degraded
        assert [(p, t.index) for p, t in scheduler.failed_tiles] == [(0, 0), (1, 0)]
        assert len(calls) == 2 * 3
        counts = buffer.snapshot().count
        assert np.all(counts[:4, :4] == 0)
        assert np.all(counts[4:, :] == 2)
        assert "render is degraded" in caplog.text

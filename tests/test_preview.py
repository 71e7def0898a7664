"""Unit tests for the preview module.

Tests cover:
- Tone mapping functions (Reinhard, exposure)
- Gamma correction
- Image processing pipeline
- Reading images from renderers, sessions and snapshots
- PNG export
- Matplotlib preview and comparison figures
"""

import numpy as np
import pytest
from PIL import Image as PILImage

from pathtracer.core.accumulation import AccumulationSnapshot
from pathtracer.core.progressive import ProgressiveRenderer
from pathtracer.preview import (
    apply_gamma,
    compute_rmse,
    image_to_uint8,
    linear_image,
    process_image_for_display,
    save_png,
    save_png_from_array,
    snapshot_of,
    tone_map_exposure,
    tone_map_reinhard,
)


@pytest.fixture
def emitter_renderer(emissive_sphere_scene, emitter_camera, small_config):
    """Renderer whose image is exactly the emitter color (1, 0.5, 0.25)."""
    renderer = ProgressiveRenderer(emissive_sphere_scene, emitter_camera, small_config)
    renderer.render(1)
    return renderer


@pytest.fixture
def pyplot(monkeypatch):
    matplotlib = pytest.importorskip("matplotlib")
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    monkeypatch.setattr(plt, "show", lambda block=True: None)
    yield plt
    plt.close("all")


class TestToneMapReinhard:
    """Test Reinhard tone mapping."""

    def test_reinhard_preserves_black(self):
        """Test that Reinhard preserves black (0 -> 0)."""
        image = np.zeros((10, 10, 3), dtype=np.float32)
        assert np.allclose(tone_map_reinhard(image), 0.0)

    def test_reinhard_compresses_bright_values(self):
        """Test that Reinhard compresses bright HDR values."""
        image = np.full((10, 10, 3), 10.0, dtype=np.float32)
        # 10 / (1 + 10) = 10/11 ~ 0.909
        assert np.allclose(tone_map_reinhard(image), 10.0 / 11.0, atol=1e-5)

    def test_reinhard_output_in_01_range(self):
        image = np.full((10, 10, 3), 1000.0, dtype=np.float32)
        result = tone_map_reinhard(image)
        assert np.all((result >= 0.0) & (result <= 1.0))

    def test_reinhard_handles_negative_input(self):
        """Test that Reinhard clamps negative values to zero."""
        image = np.full((10, 10, 3), -1.0, dtype=np.float32)
        assert np.all(tone_map_reinhard(image) >= 0.0)


class TestToneMapExposure:
    """Test exposure-based tone mapping."""

    def test_exposure_preserves_black(self):
        image = np.zeros((4, 4, 3), dtype=np.float32)
        assert np.allclose(tone_map_exposure(image), 0.0)

    def test_exposure_higher_value_brighter(self):
        """Test that a higher exposure gives a brighter image."""
        image = np.full((4, 4, 3), 0.5, dtype=np.float32)
        assert np.all(tone_map_exposure(image, exposure=2.0) > tone_map_exposure(image, exposure=1.0))

    def test_exposure_formula(self):
        """Test exposure formula: 1 - exp(-L * exposure)."""
        image = np.full((2, 2, 3), 0.7, dtype=np.float32)
        assert np.allclose(tone_map_exposure(image, exposure=1.5), 1.0 - np.exp(-0.7 * 1.5), atol=1e-6)


class TestApplyGamma:
    """Test gamma correction."""

    def test_gamma_1_no_change(self):
        image = np.random.default_rng(0).random((4, 4, 3)).astype(np.float32)
        assert np.array_equal(apply_gamma(image, 1.0), image)

    def test_gamma_brightens_midtones(self):
        image = np.full((2, 2, 3), 0.5, dtype=np.float32)
        assert np.allclose(apply_gamma(image, 2.2), 0.5 ** (1.0 / 2.2), atol=1e-6)

    def test_gamma_preserves_black_and_white(self):
        image = np.array([[[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]]], dtype=np.float32)
        assert np.allclose(apply_gamma(image, 2.2), image)

    def test_gamma_clamps_negative(self):
        """Test that negative values do not produce NaN."""
        image = np.full((2, 2, 3), -0.5, dtype=np.float32)
        result = apply_gamma(image, 2.2)
        assert not np.any(np.isnan(result))
        assert np.allclose(result, 0.0)


class TestProcessImageForDisplay:
    """Test the full display pipeline."""

    def test_process_with_no_tone_map(self):
        image = np.full((2, 2, 3), 2.0, dtype=np.float32)
        assert np.allclose(process_image_for_display(image, gamma=1.0), 1.0)

    def test_process_with_reinhard(self):
        image = np.full((2, 2, 3), 1.0, dtype=np.float32)
        assert np.allclose(process_image_for_display(image, tone_map="reinhard", gamma=1.0), 0.5)

    def test_process_output_always_valid(self):
        image = np.array([[[np.float32(1e6), -3.0, 0.5]]], dtype=np.float32)
        for tone_map in ("none", "reinhard", "exposure"):
            result = process_image_for_display(image, tone_map=tone_map)
            assert result.dtype == np.float32
            assert np.all((result >= 0.0) & (result <= 1.0))

    def test_process_does_not_modify_input(self):
        image = np.full((2, 2, 3), 4.0, dtype=np.float32)
        process_image_for_display(image, tone_map="reinhard")
        assert np.all(image == 4.0)

    def test_process_invalid_tone_map_raises(self):
        with pytest.raises(ValueError, match="Unknown tone mapping method"):
            process_image_for_display(np.zeros((2, 2, 3), dtype=np.float32), tone_map="filmic")


class TestImageSources:
    """Test reading images from renderers and snapshots."""

    def test_snapshot_passes_through(self):
        snapshot = AccumulationSnapshot(sum=np.ones((1, 1, 3)), count=np.ones((1, 1), dtype=np.int64), passes=1)
        assert snapshot_of(snapshot) is snapshot

    def test_linear_image_is_unclamped(self, emitter_camera, small_config):
        from pathtracer.materials.material import emitter
        from pathtracer.scene.builder import SceneBuilder

        builder = SceneBuilder()
        builder.add_sphere((0.0, 0.0, -3.0), 2.5, builder.add_material(emitter((4.0, 4.0, 4.0))))
        renderer = ProgressiveRenderer(builder.build(), emitter_camera, small_config)
        renderer.render(1)
        image = linear_image(renderer)
        assert image.dtype == np.float32
        assert np.allclose(image, 4.0)

    def test_session_source(self, emissive_sphere_scene, emitter_camera, small_config):
        from pathtracer.core.session import RenderSession

        session = RenderSession(emissive_sphere_scene, emitter_camera, small_config.with_overrides(max_passes=1))
        session.start()
        session.wait(10.0)
        assert np.allclose(linear_image(session), [1.0, 0.5, 0.25])


class TestImageToUint8:
    """Test conversion to uint8."""

    def test_image_to_uint8_output_type(self):
        image = np.random.default_rng(1).random((10, 10, 3)).astype(np.float32)
        assert image_to_uint8(image, gamma=2.2).dtype == np.uint8

    def test_image_to_uint8_black_and_white(self):
        image = np.array([[[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]]], dtype=np.float32)
        result = image_to_uint8(image, gamma=1.0, tone_map="none")
        assert np.all(result[0, 0] == 0)
        assert np.all(result[0, 1] == 255)


class TestSavePng:
    """Test PNG export."""

    def test_save_png_creates_file(self, emitter_renderer, tmp_path):
        path = tmp_path / "render.png"
        save_png(emitter_renderer, path, gamma=1.0)
        with PILImage.open(path) as image:
            assert image.size == (4, 4)
            assert image.mode == "RGB"
            assert image.getpixel((0, 0)) == (255, 127, 63)

    def test_save_png_with_tone_mapping(self, emitter_renderer, tmp_path):
        path = tmp_path / "render.png"
        save_png(emitter_renderer, path, tone_map="reinhard", gamma=1.0)
        with PILImage.open(path) as image:
            # 1 / (1 + 1) = 0.5
            assert image.getpixel((2, 2))[0] == 127

    def test_save_png_from_snapshot(self, emitter_renderer, tmp_path):
        path = tmp_path / "snapshot.png"
        save_png(emitter_renderer.snapshot(), path)
        assert path.exists()

    def test_save_png_logs(self, emitter_renderer, tmp_path, caplog):
        with caplog.at_level("INFO", logger="pathtracer.preview.export"):
            save_png(emitter_renderer, tmp_path / "logged.png")
        assert "after 1 passes" in caplog.text

    def test_save_png_from_array_row_order(self, tmp_path):
        """Row 0 of the array is the top row of the PNG."""
        image = np.zeros((2, 3, 3), dtype=np.float32)
        image[0, :, 0] = 1.0
        path = tmp_path / "array.png"
        save_png_from_array(image, path, gamma=1.0)
        with PILImage.open(path) as saved:
            assert saved.size == (3, 2)
            assert saved.getpixel((1, 0)) == (255, 0, 0)
            assert saved.getpixel((1, 1)) == (0, 0, 0)


class TestComputeRmse:
    """Test RMSE computation."""

    def test_rmse_identical_images(self):
        image = np.random.default_rng(2).random((10, 10, 3)).astype(np.float32)
        assert np.isclose(compute_rmse(image, image), 0.0)

    def test_rmse_different_images(self):
        """RMSE should be 1.0 for all zeros vs all ones."""
        image_a = np.zeros((10, 10, 3), dtype=np.float32)
        image_b = np.ones((10, 10, 3), dtype=np.float32)
        assert np.isclose(compute_rmse(image_a, image_b), 1.0)

    def test_rmse_shape_mismatch_raises(self):
        image_a = np.zeros((10, 10, 3), dtype=np.float32)
        image_b = np.zeros((20, 20, 3), dtype=np.float32)
        with pytest.raises(ValueError, match="shapes must match"):
            compute_rmse(image_a, image_b)


class TestMatplotlibDisplay:
    """Test the Matplotlib figures (non-interactive backend)."""

    def test_show_preview_title(self, pyplot, emitter_renderer):
        from pathtracer.preview import show_preview

        show_preview(emitter_renderer, tone_map="reinhard", block=False)
        title = pyplot.gcf().axes[0].get_title()
        assert title == "Render Preview - 1 passes, 1 SPP (reinhard)"

    def test_show_preview_custom_title(self, pyplot, emitter_renderer):
        from pathtracer.preview import show_preview

        show_preview(emitter_renderer, title="Cornell", block=False)
        assert pyplot.gcf().axes[0].get_title() == "Cornell"

    def test_show_comparison_returns_rmse(self, pyplot):
        from pathtracer.preview import show_comparison

        image_a = np.zeros((4, 4, 3), dtype=np.float32)
        image_b = np.ones((4, 4, 3), dtype=np.float32)
        rmse = show_comparison(image_a, image_b, gamma=1.0, block=False)
        assert rmse == pytest.approx(1.0)
        assert len(pyplot.gcf().axes) == 3

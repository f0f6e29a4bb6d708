"""Tests for the Renderer.

Tests cover:
- Rendering a small image of the single-sphere scene
- Progress callbacks per band of rows
- Acceleration built once per geometry change
- Saving the result
- Duration formatting
"""

import os

import numpy as np
import pytest

_COS = 4.0 / np.sqrt(41.0)
END_TO_END_GRAY = 0.05 + 0.5 * _COS + 0.7 * _COS**10


@pytest.fixture
def small_settings(tmp_path):
    from src.whitted.core.settings import RenderSettings

    return RenderSettings(
        width=9,
        height=9,
        max_reflection_depth=2,
        output_filename=str(tmp_path / "render"),
        band_rows=4,
    )


@pytest.fixture
def end_to_end():
    from src.whitted.scene.presets import create_end_to_end_scene

    scene, camera = create_end_to_end_scene()
    yield scene, camera
    scene.clear()


class TestRender:
    def test_image_before_render_raises(self, end_to_end, small_settings):
        from src.whitted.core.renderer import Renderer

        scene, camera = end_to_end
        renderer = Renderer(scene, camera, small_settings)
        with pytest.raises(RuntimeError):
            renderer.get_image_numpy()

    def test_center_pixel(self, end_to_end, small_settings):
        from src.whitted.core.renderer import Renderer

        scene, camera = end_to_end
        renderer = Renderer(scene, camera, small_settings)
        stats = renderer.render()
        image = renderer.get_image_numpy()

        assert image.shape == (9, 9, 3)
        assert image.dtype == np.float32
        assert np.all(image >= 0.0) and np.all(image <= 1.0)
        np.testing.assert_allclose(image[4, 4], END_TO_END_GRAY, atol=1e-3)
        # Corners look past the sphere into the black background
        np.testing.assert_allclose(image[0, 0], 0.0)

        assert stats.width == 9 and stats.height == 9
        assert stats.shaded_rays >= 1
        assert stats.deepest_level == 0
        assert stats.elapsed_seconds >= 0.0

    def test_progress_per_band(self, end_to_end, small_settings):
        from src.whitted.core.renderer import Renderer

        scene, camera = end_to_end
        progress = []
        Renderer(scene, camera, small_settings).render(
            callback=lambda done, total: progress.append((done, total))
        )
        assert progress == [(4, 9), (8, 9), (9, 9)]

    def test_settings_applied_to_scene(self, end_to_end, small_settings):
        from src.whitted.core.renderer import Renderer

        scene, camera = end_to_end
        settings = small_settings.replace(max_reflection_depth=5, background=(0.0, 0.0, 1.0))
        renderer = Renderer(scene, camera, settings)
        renderer.render()

        assert scene.get_max_reflection_depth() == 5
        np.testing.assert_allclose(renderer.get_image_numpy()[0, 0], [0.0, 0.0, 1.0], atol=1e-6)

    def test_bvh_timed_when_triangles_present(self, small_settings):
        from src.whitted.core.renderer import Renderer
        from src.whitted.scene.presets import create_room_scene

        scene, camera = create_room_scene()
        stats = Renderer(scene, camera, small_settings).render()
        assert scene.has_valid_bvh
        assert stats.bvh_seconds > 0.0

        again = Renderer(scene, camera, small_settings).render()
        assert again.bvh_seconds == 0.0

    def test_sphere_scene_builds_acceleration_once(self, end_to_end, small_settings, monkeypatch):
        from src.whitted.core.renderer import Renderer

        scene, camera = end_to_end
        builds = []
        build = scene.build_acceleration_structure

        def counting_build():
            builds.append(1)
            return build()

        monkeypatch.setattr(scene, "build_acceleration_structure", counting_build)

        renderer = Renderer(scene, camera, small_settings)
        renderer.render()
        second = renderer.render()

        assert len(builds) == 1
        assert scene.has_valid_bvh
        assert scene.bvh is None
        assert second.bvh_seconds == 0.0
        np.testing.assert_allclose(renderer.get_image_numpy()[4, 4], END_TO_END_GRAY, atol=1e-3)

    def test_brute_force_matches_bvh(self, small_settings):
        from src.whitted.core.renderer import Renderer
        from src.whitted.scene.presets import create_room_scene

        scene, camera = create_room_scene()
        fast = Renderer(scene, camera, small_settings)
        fast.render()
        fast_image = fast.get_image_numpy()

        brute = Renderer(scene, camera, small_settings.replace(use_acceleration=False))
        brute.render()
        np.testing.assert_allclose(brute.get_image_numpy(), fast_image, atol=1e-5)

    def test_save(self, end_to_end, small_settings):
        from src.whitted.core.renderer import Renderer
        from src.whitted.preview.export import load_image

        scene, camera = end_to_end
        renderer = Renderer(scene, camera, small_settings)
        renderer.render()
        path = renderer.save()

        assert path == small_settings.output_file
        assert os.path.isfile(path)
        assert load_image(path).shape == (9, 9, 3)


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (4.25, "4.25s"),
            (0.0, "0.00s"),
            (125.0, "2m 05s"),
            (3723.0, "1h 02m 03s"),
        ],
    )
    def test_format(self, seconds, expected):
        from src.whitted.core.renderer import format_duration

        assert format_duration(seconds) == expected

    def test_ms_per_row(self):
        from src.whitted.core.renderer import RenderStats

        stats = RenderStats(width=10, height=4, elapsed_seconds=2.0, bvh_seconds=0.0, shaded_rays=0, deepest_level=0)
        assert stats.ms_per_row == pytest.approx(500.0)

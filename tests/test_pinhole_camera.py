"""Unit tests for the pinhole camera.

Tests cover:
- Camera configuration validation
- Viewport setup (basis, field of view, aspect ratio)
- Ray generation through pixel centers
- Serialization
"""

import math

import pytest
import taichi as ti


class TestCameraConfig:
    """Tests for PinholeCamera validation and helpers."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"vfov": 0.0},
            {"vfov": 180.0},
            {"aspect_ratio": 0.0},
            {"lookat": (0.0, 0.0, 0.0)},
            {"vup": (0.0, 0.0, 1.0)},
        ],
    )
    def test_invalid_config(self, kwargs):
        from src.whitted.camera.pinhole import PinholeCamera

        params = {"lookfrom": (0.0, 0.0, 0.0), "lookat": (0.0, 0.0, 1.0)}
        params.update(kwargs)
        with pytest.raises(ValueError):
            PinholeCamera(**params)

    def test_looking_forward(self):
        from src.whitted.camera.pinhole import PinholeCamera

        cam = PinholeCamera.looking_forward((1.0, 2.0, 3.0), aspect_ratio=2.0, vfov=60.0)
        assert cam.lookfrom == (1.0, 2.0, 3.0)
        assert cam.lookat == (1.0, 2.0, 4.0)
        assert cam.aspect_ratio == 2.0

    def test_with_aspect_ratio(self):
        from src.whitted.camera.pinhole import PinholeCamera

        cam = PinholeCamera.looking_forward((0.0, 0.0, 0.0))
        square = cam.with_aspect_ratio(1.0)
        assert square.aspect_ratio == 1.0
        assert square.lookat == cam.lookat
        assert cam.aspect_ratio == pytest.approx(16.0 / 9.0)

    def test_dict_round_trip(self):
        from src.whitted.camera.pinhole import PinholeCamera

        cam = PinholeCamera(lookfrom=(1, 2, 3), lookat=(0, 0, 0), vfov=45.0, aspect_ratio=1.5)
        restored = PinholeCamera.from_dict(cam.to_dict())
        assert restored.vfov == 45.0
        assert tuple(restored.lookfrom) == tuple(cam.lookfrom)


class TestCameraSetup:
    """Tests for camera initialization and basis vectors."""

    def test_viewport_looking_forward(self):
        """90 degree FOV at unit distance gives a viewport 2 units tall."""
        from src.whitted.camera.pinhole import PinholeCamera, get_camera_info, setup_camera

        setup_camera(PinholeCamera.looking_forward((0.0, 0.0, 0.0), aspect_ratio=2.0))
        info = get_camera_info()

        assert info["origin"] == pytest.approx((0.0, 0.0, 0.0))
        # Looking along +z with +y up, right is -x
        assert info["horizontal"] == pytest.approx((-4.0, 0.0, 0.0), abs=1e-5)
        assert info["vertical"] == pytest.approx((0.0, 2.0, 0.0), abs=1e-5)
        assert info["lower_left"] == pytest.approx((2.0, -1.0, 1.0), abs=1e-5)

    def test_narrow_fov(self):
        from src.whitted.camera.pinhole import PinholeCamera, get_camera_info, setup_camera

        setup_camera(PinholeCamera(lookfrom=(0, 0, 0), lookat=(0, 0, -1), vfov=60.0, aspect_ratio=1.0))
        info = get_camera_info()

        expected = 2.0 * math.tan(math.radians(30.0))
        assert math.hypot(*info["vertical"]) == pytest.approx(expected, abs=1e-5)
        assert math.hypot(*info["horizontal"]) == pytest.approx(expected, abs=1e-5)


class TestRayGeneration:
    """Tests for rays through pixel centers."""

    def test_center_pixel_looks_forward(self):
        from src.whitted.camera.pinhole import PinholeCamera, pixel_direction, setup_camera

        setup_camera(PinholeCamera.looking_forward((0.0, 0.0, 0.0), aspect_ratio=1.0))
        d = pixel_direction(50, 50, 101, 101)

        assert d == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)

    def test_directions_are_unit(self):
        from src.whitted.camera.pinhole import PinholeCamera, pixel_direction, setup_camera

        setup_camera(PinholeCamera(lookfrom=(1, 2, 3), lookat=(4, 0, -2), vfov=70.0))
        for i, j in [(0, 0), (159, 0), (0, 89), (80, 45)]:
            d = pixel_direction(i, j, 160, 90)
            assert math.sqrt(sum(c * c for c in d)) == pytest.approx(1.0, abs=1e-5)

    def test_pixel_centers_not_corners(self):
        """With 2x2 pixels and 90 degree FOV the corner pixel ray hits (+-0.5, +-0.5)."""
        from src.whitted.camera.pinhole import PinholeCamera, pixel_direction, setup_camera

        setup_camera(PinholeCamera.looking_forward((0.0, 0.0, 0.0), aspect_ratio=1.0))
        d = pixel_direction(0, 0, 2, 2)

        # Bottom-left pixel: right is -x, so left is +x
        scale = 1.0 / d[2]
        assert d[0] * scale == pytest.approx(0.5, abs=1e-5)
        assert d[1] * scale == pytest.approx(-0.5, abs=1e-5)

    def test_corner_rays_symmetric(self):
        from src.whitted.camera.pinhole import PinholeCamera, pixel_direction, setup_camera

        setup_camera(PinholeCamera.looking_forward((0.0, 0.0, 0.0)))
        bottom_left = pixel_direction(0, 0, 64, 36)
        top_right = pixel_direction(63, 35, 64, 36)

        assert bottom_left[0] == pytest.approx(-top_right[0], abs=1e-5)
        assert bottom_left[1] == pytest.approx(-top_right[1], abs=1e-5)
        assert bottom_left[2] == pytest.approx(top_right[2], abs=1e-5)

    def test_ray_origin_is_camera_origin(self):
        from src.whitted.camera.pinhole import PinholeCamera, get_pixel_ray, setup_camera

        setup_camera(PinholeCamera(lookfrom=(1.0, 2.0, 3.0), lookat=(0.0, 0.0, 0.0)))
        origin = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            origin[None] = get_pixel_ray(3, 4, 10, 10).origin

        test_kernel()
        o = origin[None]
        assert (o[0], o[1], o[2]) == pytest.approx((1.0, 2.0, 3.0))

    def test_looking_down(self):
        from src.whitted.camera.pinhole import PinholeCamera, pixel_direction, setup_camera

        setup_camera(PinholeCamera(lookfrom=(0, 5, 0), lookat=(0, 0, 0), vup=(0, 0, 1), aspect_ratio=1.0))
        d = pixel_direction(10, 10, 21, 21)
        assert d == pytest.approx((0.0, -1.0, 0.0), abs=1e-5)

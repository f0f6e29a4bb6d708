"""Unit tests for the dielectric interface helpers.

Tests cover:
- Refraction direction entering and leaving a medium (Snell's law)
- Total internal reflection (TIR)
- Fresnel reflectance limits (Schlick approximation)
- IOR validation
"""

import math

import pytest
import taichi as ti


def _split(ior, direction, normal):
    from src.whitted.materials.dielectric import split_dielectric

    reflected = ti.Vector.field(3, dtype=ti.f32, shape=())
    refracted = ti.Vector.field(3, dtype=ti.f32, shape=())
    fresnel = ti.field(dtype=ti.f32, shape=())
    tir = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(n: ti.f32, d: ti.math.vec3, nrm: ti.math.vec3):
        refl_dir, refr_dir, f, total = split_dielectric(n, d.normalized(), nrm)
        reflected[None] = refl_dir
        refracted[None] = refr_dir
        fresnel[None] = f
        tir[None] = total

    test_kernel(ior, ti.math.vec3(*direction), ti.math.vec3(*normal))
    return reflected[None], refracted[None], fresnel[None], tir[None]


class TestRefraction:
    """Tests for refraction (Snell's law)."""

    def test_normal_incidence_passes_straight(self):
        _, refr, fresnel, tir = _split(1.5, (0.0, -1.0, 0.0), (0.0, 1.0, 0.0))

        assert tir == 0
        assert abs(refr[0]) < 1e-5
        assert abs(refr[1] + 1.0) < 1e-5
        assert abs(refr[2]) < 1e-5
        # r0 for glass
        assert abs(fresnel - 0.04) < 1e-3

    def test_snells_law_entering(self):
        """45 degrees into glass: sin(theta_t) = sin(45) / 1.5."""
        _, refr, _, tir = _split(1.5, (1.0, -1.0, 0.0), (0.0, 1.0, 0.0))

        assert tir == 0
        sin_t = math.sqrt(refr[0] ** 2 + refr[2] ** 2)
        assert abs(sin_t - math.sin(math.radians(45.0)) / 1.5) < 1e-4
        assert refr[1] < 0.0

    def test_leaving_medium_bends_away_from_normal(self):
        """A ray leaving glass at 30 degrees exits at asin(1.5 * sin(30))."""
        theta = math.radians(30.0)
        # Outward normal +y, ray travels upward from inside
        _, refr, _, tir = _split(1.5, (math.sin(theta), math.cos(theta), 0.0), (0.0, 1.0, 0.0))

        assert tir == 0
        assert refr[1] > 0.0
        assert abs(refr[0] - 1.5 * math.sin(theta)) < 1e-4

    def test_refracted_direction_is_unit(self):
        _, refr, _, _ = _split(1.33, (0.3, -1.0, 0.2), (0.0, 1.0, 0.0))
        assert abs(math.sqrt(sum(float(c) ** 2 for c in refr)) - 1.0) < 1e-5


class TestTotalInternalReflection:
    """Tests for total internal reflection."""

    def test_beyond_critical_angle(self):
        """Leaving glass at 60 degrees (critical angle ~41.8) reflects totally."""
        theta = math.radians(60.0)
        refl, refr, fresnel, tir = _split(1.5, (math.sin(theta), math.cos(theta), 0.0), (0.0, 1.0, 0.0))

        assert tir == 1
        assert fresnel == 1.0
        # The refracted branch follows the mirror direction
        for k in range(3):
            assert abs(refr[k] - refl[k]) < 1e-6
        assert refl[1] < 0.0

    def test_no_tir_when_entering(self):
        """Entering the denser medium never reflects totally."""
        theta = math.radians(89.0)
        _, _, _, tir = _split(2.4, (math.sin(theta), -math.cos(theta), 0.0), (0.0, 1.0, 0.0))
        assert tir == 0

    @pytest.mark.parametrize("ior, degrees, expected", [(1.5, 40.0, 0), (1.5, 43.0, 1), (1.33, 50.0, 1)])
    def test_will_reflect(self, ior, degrees, expected):
        from src.whitted.materials.dielectric import will_reflect

        result = ti.field(dtype=ti.i32, shape=())
        theta = math.radians(degrees)

        @ti.kernel
        def test_kernel(n: ti.f32, sx: ti.f32, cy: ti.f32):
            result[None] = will_reflect(n, ti.math.vec3(sx, cy, 0.0), ti.math.vec3(0.0, 1.0, 0.0))

        test_kernel(ior, math.sin(theta), math.cos(theta))
        assert result[None] == expected


class TestFresnel:
    """Tests for Schlick reflectance."""

    def _fresnel(self, ior, cos_theta):
        from src.whitted.materials.dielectric import fresnel_reflectance

        result = ti.field(dtype=ti.f32, shape=())
        sin_theta = math.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))

        @ti.kernel
        def test_kernel(n: ti.f32, sx: ti.f32, cy: ti.f32):
            result[None] = fresnel_reflectance(n, ti.math.vec3(sx, -cy, 0.0), ti.math.vec3(0.0, 1.0, 0.0))

        test_kernel(ior, sin_theta, cos_theta)
        return result[None]

    def test_index_matched_reflects_nothing(self):
        assert self._fresnel(1.0, 0.5) == 0.0

    def test_grazing_approaches_one(self):
        assert self._fresnel(1.5, 0.0) > 0.99

    def test_increases_toward_grazing(self):
        values = [self._fresnel(1.5, c) for c in (1.0, 0.8, 0.5, 0.2, 0.05)]
        assert values == sorted(values)
        assert all(0.0 <= v <= 1.0 for v in values)


class TestValidation:
    @pytest.mark.parametrize("ior", [1.0, 1.33, 1.5, 2.4])
    def test_valid_ior(self, ior):
        from src.whitted.materials.dielectric import validate_ior

        assert validate_ior(ior) == ior

    @pytest.mark.parametrize("ior", [0.0, 0.5, 0.999])
    def test_invalid_ior(self, ior):
        from src.whitted.materials.dielectric import validate_ior

        with pytest.raises(ValueError):
            validate_ior(ior)

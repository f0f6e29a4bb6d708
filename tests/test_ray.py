"""Unit tests for the ray module.

Tests cover:
- Ray dataclass, ray_at and make_ray normalization
- Vector utility functions (dot, cross, normalize, length, reflect, refract)
- Schlick approximation and color clamping
"""

import math

import pytest
import taichi as ti


class TestRayBasics:
    """Tests for Ray dataclass and basic operations."""

    def test_ray_at_positive_t(self):
        """Test ray_at computes correct point along ray."""
        from src.whitted.core.ray import Ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 2.0, 3.0), direction=vec3(1.0, 0.0, 0.0))
            result[None] = ray_at(ray, 5.0)

        test_kernel()
        r = result[None]
        assert abs(r[0] - 6.0) < 1e-6
        assert abs(r[1] - 2.0) < 1e-6
        assert abs(r[2] - 3.0) < 1e-6

    def test_make_ray_normalizes_direction(self):
        """make_ray stores a unit direction whatever the input length."""
        from src.whitted.core.ray import make_ray, vec3

        direction = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 3.0, 4.0))
            direction[None] = ray.direction

        test_kernel()
        d = direction[None]
        assert abs(d[0]) < 1e-6
        assert abs(d[1] - 0.6) < 1e-6
        assert abs(d[2] - 0.8) < 1e-6

    def test_make_ray_zero_direction(self):
        """A zero direction stays zero instead of turning into NaN."""
        from src.whitted.core.ray import make_ray, vec3

        direction = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 1.0, 1.0), vec3(0.0, 0.0, 0.0))
            direction[None] = ray.direction

        test_kernel()
        d = direction[None]
        assert d[0] == 0.0 and d[1] == 0.0 and d[2] == 0.0


class TestVectorUtilities:
    """Tests for vector utility functions."""

    def test_length(self):
        from src.whitted.core.ray import length, length_squared, vec3

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            v = vec3(3.0, 4.0, 0.0)
            result[0] = length(v)
            result[1] = length_squared(v)

        test_kernel()
        assert abs(result[0] - 5.0) < 1e-6
        assert abs(result[1] - 25.0) < 1e-5

    @pytest.mark.parametrize(
        "v",
        [(1.0, 2.0, 3.0), (-7.5, 0.0, 0.25), (1e-3, 1e-3, 0.0), (1e5, -1e5, 3.0)],
    )
    def test_normalize_has_unit_length(self, v):
        """Normalizing a non-degenerate vector gives length 1."""
        from src.whitted.core.ray import normalize, vec3

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(x: ti.f32, y: ti.f32, z: ti.f32):
            result[None] = normalize(vec3(x, y, z)).norm()

        test_kernel(*v)
        assert abs(result[None] - 1.0) < 1e-5

    def test_normalize_near_zero_gives_zero(self):
        """A vector shorter than the epsilon normalizes to the zero vector."""
        from src.whitted.core.ray import normalize, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = normalize(vec3(1e-10, 0.0, -1e-10))

        test_kernel()
        r = result[None]
        assert r[0] == 0.0 and r[1] == 0.0 and r[2] == 0.0
        assert not any(math.isnan(float(c)) for c in r)

    def test_dot_and_cross(self):
        from src.whitted.core.ray import cross, dot, vec3

        d = ti.field(dtype=ti.f32, shape=())
        c = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            d[None] = dot(vec3(1.0, 2.0, 3.0), vec3(4.0, 5.0, 6.0))
            c[None] = cross(vec3(1.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        assert abs(d[None] - 32.0) < 1e-5
        r = c[None]
        assert abs(r[0]) < 1e-6 and abs(r[1]) < 1e-6 and abs(r[2] - 1.0) < 1e-6

    def test_reflect(self):
        """Reflecting a 45-degree ray off a floor flips its y component."""
        from src.whitted.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=2)

        @ti.kernel
        def test_kernel():
            incident = vec3(1.0, -1.0, 0.0).normalized()
            result[0] = reflect(incident, vec3(0.0, 1.0, 0.0))
            # Same line, opposite orientation: same result
            result[1] = reflect(incident, vec3(0.0, -1.0, 0.0))

        test_kernel()
        s = 1.0 / math.sqrt(2.0)
        for k in range(2):
            r = result[k]
            assert abs(r[0] - s) < 1e-5
            assert abs(r[1] - s) < 1e-5
            assert abs(r[2]) < 1e-6

    def test_refract_straight_through(self):
        """Perpendicular incidence passes without bending."""
        from src.whitted.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = refract(vec3(0.0, 0.0, 1.0), vec3(0.0, 0.0, -1.0), 1.0 / 1.5)

        test_kernel()
        r = result[None]
        assert abs(r[0]) < 1e-6 and abs(r[1]) < 1e-6
        assert abs(r[2] - 1.0) < 1e-5

    def test_refract_snell(self):
        """The refracted angle satisfies Snell's law."""
        from src.whitted.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())
        eta = 1.0 / 1.5
        theta = math.radians(40.0)

        @ti.kernel
        def test_kernel(sx: ti.f32, cz: ti.f32, ratio: ti.f32):
            result[None] = refract(vec3(sx, 0.0, cz), vec3(0.0, 0.0, -1.0), ratio)

        test_kernel(math.sin(theta), math.cos(theta), eta)
        r = result[None]
        sin_t = float(r[0])
        assert abs(sin_t - eta * math.sin(theta)) < 1e-5

    def test_refract_total_internal_reflection(self):
        """Past the critical angle refract returns the zero vector."""
        from src.whitted.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())
        theta = math.radians(60.0)

        @ti.kernel
        def test_kernel(sx: ti.f32, cz: ti.f32):
            # Leaving glass (n=1.5) into air
            result[None] = refract(vec3(sx, 0.0, cz), vec3(0.0, 0.0, -1.0), 1.5)

        test_kernel(math.sin(theta), math.cos(theta))
        r = result[None]
        assert r[0] == 0.0 and r[1] == 0.0 and r[2] == 0.0

    def test_schlick_limits(self):
        """Normal incidence gives r0, grazing incidence approaches 1."""
        from src.whitted.core.ray import schlick_fresnel

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = schlick_fresnel(1.0, 1.0 / 1.5)
            result[1] = schlick_fresnel(0.0, 1.0 / 1.5)

        test_kernel()
        r0 = ((1.0 - 1.0 / 1.5) / (1.0 + 1.0 / 1.5)) ** 2
        assert abs(result[0] - r0) < 1e-6
        assert abs(result[1] - 1.0) < 1e-6

    def test_clamp_color(self):
        """Channels are clamped to [0, 1]."""
        from src.whitted.core.ray import clamp_color, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = clamp_color(vec3(1.5, -0.25, 0.5))

        test_kernel()
        r = result[None]
        assert r[0] == 1.0
        assert r[1] == 0.0
        assert abs(r[2] - 0.5) < 1e-6

"""Unit tests for axis-aligned bounding boxes.

Covers the host-side BoundingBox used during BVH construction and the
hit_aabb() slab test used during traversal.
"""

import numpy as np
import pytest
import taichi as ti


class TestBoundingBox:
    """Tests for the NumPy BoundingBox."""

    def test_from_points(self):
        from src.whitted.geometry.aabb import BoundingBox

        box = BoundingBox.from_points([(1, 5, -2), (-3, 0, 4), (0, 2, 0)])

        np.testing.assert_allclose(box.minimum, [-3, 0, -2])
        np.testing.assert_allclose(box.maximum, [1, 5, 4])

    def test_from_points_empty_raises(self):
        from src.whitted.geometry.aabb import BoundingBox

        with pytest.raises(ValueError):
            BoundingBox.from_points([])

    def test_union_and_centroid(self):
        from src.whitted.geometry.aabb import BoundingBox

        a = BoundingBox.from_points([(0, 0, 0), (1, 1, 1)])
        b = BoundingBox.from_points([(2, -1, 0), (3, 0, 0.5)])
        u = a.union(b)

        np.testing.assert_allclose(u.minimum, [0, -1, 0])
        np.testing.assert_allclose(u.maximum, [3, 1, 1])
        np.testing.assert_allclose(u.centroid(), [1.5, 0, 0.5])

    @pytest.mark.parametrize(
        "corner, axis",
        [
            ((4, 1, 1), 0),
            ((1, 4, 1), 1),
            ((1, 1, 4), 2),
            ((2, 2, 2), 0),  # all equal: x wins
            ((1, 3, 3), 1),  # y and z tie: y wins
        ],
    )
    def test_largest_axis(self, corner, axis):
        from src.whitted.geometry.aabb import BoundingBox

        box = BoundingBox.from_points([(0, 0, 0), corner])
        assert box.largest_axis() == axis

    def test_contains_point_is_inclusive(self):
        from src.whitted.geometry.aabb import BoundingBox

        box = BoundingBox.from_points([(0, 0, 0), (1, 1, 1)])
        assert box.contains_point((1, 1, 1))
        assert box.contains_point((0.5, 0.0, 0.2))
        assert not box.contains_point((1.01, 0.5, 0.5))

    def test_intersects_ray(self):
        from src.whitted.geometry.aabb import BoundingBox

        box = BoundingBox.from_points([(-1, -1, 4), (1, 1, 6)])

        assert box.intersects_ray((0, 0, 0), (0, 0, 1))
        assert not box.intersects_ray((0, 0, 0), (0, 0, -1))
        assert not box.intersects_ray((0, 2, 0), (0, 0, 1))
        # Ray starting inside the box
        assert box.intersects_ray((0, 0, 5), (1, 0, 0))

    def test_axis_parallel_ray_on_slab_boundary(self):
        """Zero direction components test the origin against the slab inclusively."""
        from src.whitted.geometry.aabb import BoundingBox

        box = BoundingBox.from_points([(-1, -1, 4), (1, 1, 6)])

        assert box.intersects_ray((1.0, 0.0, 0.0), (0, 0, 1))
        assert not box.intersects_ray((1.001, 0.0, 0.0), (0, 0, 1))


class TestHitAABB:
    """Tests for the in-kernel slab test."""

    def _hit(self, origin, direction, box_min, box_max):
        from src.whitted.geometry.aabb import hit_aabb, vec3

        result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel(o: ti.math.vec3, d: ti.math.vec3, lo: ti.math.vec3, hi: ti.math.vec3):
            result[None] = hit_aabb(o, d, lo, hi)

        test_kernel(vec3(*origin), vec3(*direction), vec3(*box_min), vec3(*box_max))
        return result[None]

    @pytest.mark.parametrize(
        "origin, direction, expected",
        [
            ((0, 0, 0), (0, 0, 1), 1),
            ((0, 0, 0), (0, 0, -1), 0),
            ((0, 3, 0), (0, 0, 1), 0),
            ((0, 0, 5), (0, 1, 0), 1),  # inside
            ((0, 0, 0), (0.1, 0.1, 1.0), 1),
            ((5, 0, 5), (-1, 0, 0), 1),
            ((5, 0, 5), (1, 0, 0), 0),
        ],
    )
    def test_slab_cases(self, origin, direction, expected):
        assert self._hit(origin, direction, (-1, -1, 4), (1, 1, 6)) == expected

    def test_agrees_with_host_box(self):
        """The kernel test and the NumPy test agree on random rays."""
        from src.whitted.geometry.aabb import BoundingBox

        rng = np.random.default_rng(7)
        box = BoundingBox.from_points([(-1, -2, 3), (2, 1, 5)])

        for _ in range(25):
            origin = rng.uniform(-4, 4, size=3)
            direction = rng.normal(size=3)
            expected = box.intersects_ray(origin, direction)
            got = self._hit(tuple(origin), tuple(direction), tuple(box.minimum), tuple(box.maximum))
            assert bool(got) == expected

"""Tests for BVH construction, flattening and traversal.

Tests cover:
- Leaf size limits and box containment
- Deterministic construction for identical input
- Pre-order flattening with skip links
- BVH queries matching brute force nearest hits
"""

import numpy as np
import pytest


def _random_triangles(n, seed=0, spread=10.0, size=0.5):
    rng = np.random.default_rng(seed)
    centers = rng.uniform(-spread, spread, size=(n, 1, 3))
    offsets = rng.uniform(-size, size, size=(n, 3, 3))
    return (centers + offsets).astype(np.float32)


class TestBuild:
    """Tests for the host-side tree."""

    def test_small_input_is_single_leaf(self):
        from src.whitted.geometry.bvh import build_bvh

        root = build_bvh(_random_triangles(10))
        assert root.is_leaf
        assert len(root.triangles) == 10

    def test_leaves_respect_size_limit(self):
        from src.whitted.geometry.bvh import MAX_TRIANGLES_PER_LEAF, build_bvh

        root = build_bvh(_random_triangles(500))
        leaves = list(root.iter_leaves())

        assert all(1 <= len(leaf.triangles) <= MAX_TRIANGLES_PER_LEAF for leaf in leaves)
        collected = np.sort(np.concatenate([leaf.triangles for leaf in leaves]))
        np.testing.assert_array_equal(collected, np.arange(500))

    def test_children_are_contained(self):
        """Every node's box encloses the triangles beneath it."""
        from src.whitted.geometry.bvh import build_bvh

        verts = _random_triangles(300, seed=3)
        root = build_bvh(verts)

        stack = [root]
        while stack:
            node = stack.pop()
            for leaf in node.iter_leaves():
                pts = verts[leaf.triangles].reshape(-1, 3)
                assert np.all(pts >= node.box.minimum - 1e-6)
                assert np.all(pts <= node.box.maximum + 1e-6)
            if not node.is_leaf:
                stack.extend([node.left, node.right])

    def test_midpoint_split(self):
        """Internal nodes split their triangle list at the midpoint index."""
        from src.whitted.geometry.bvh import build_bvh

        root = build_bvh(_random_triangles(101, seed=5))
        left = sum(len(leaf.triangles) for leaf in root.left.iter_leaves())
        right = sum(len(leaf.triangles) for leaf in root.right.iter_leaves())
        assert (left, right) == (50, 51)

    def test_split_along_largest_axis(self):
        """Triangles spread along z are ordered by z centroid."""
        from src.whitted.geometry.bvh import build_bvh, triangle_centroids

        base = np.array([[0, 0, 0], [0.1, 0, 0], [0, 0.1, 0]], dtype=np.float32)
        verts = np.stack([base + np.array([0, 0, z], dtype=np.float32) for z in range(40)[::-1]])
        root = build_bvh(verts)

        centroids = triangle_centroids(verts)
        left_z = max(centroids[leaf.triangles, 2].max() for leaf in root.left.iter_leaves())
        right_z = min(centroids[leaf.triangles, 2].min() for leaf in root.right.iter_leaves())
        assert left_z < right_z

    def test_deterministic(self):
        from src.whitted.geometry.bvh import build_bvh, flatten_bvh

        verts = _random_triangles(250, seed=11)
        a = flatten_bvh(build_bvh(verts))
        b = flatten_bvh(build_bvh(verts.copy()))

        np.testing.assert_array_equal(a.triangle_order, b.triangle_order)
        np.testing.assert_array_equal(a.skip, b.skip)
        np.testing.assert_array_equal(a.box_min, b.box_min)

    def test_equal_centroids_keep_insertion_order(self):
        from src.whitted.geometry.bvh import build_bvh, flatten_bvh

        tri = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=np.float32)
        verts = np.repeat(tri[None], 25, axis=0)
        flat = flatten_bvh(build_bvh(verts))

        np.testing.assert_array_equal(flat.triangle_order, np.arange(25))

    def test_invalid_arguments(self):
        from src.whitted.geometry.bvh import build_bvh

        with pytest.raises(ValueError):
            build_bvh(np.zeros((0, 3, 3), dtype=np.float32))
        with pytest.raises(ValueError):
            build_bvh(_random_triangles(4), leaf_size=0)


class TestFlatten:
    """Tests for the pre-order arrays."""

    def test_skip_links(self):
        from src.whitted.geometry.bvh import build_bvh, flatten_bvh

        root = build_bvh(_random_triangles(200, seed=2))
        flat = flatten_bvh(root)

        assert flat.node_count == root.node_count()
        assert flat.skip[0] == flat.node_count
        for i in range(flat.node_count):
            if flat.leaf_count[i] > 0:
                assert flat.skip[i] == i + 1
            else:
                assert flat.leaf_start[i] == -1
                assert flat.skip[i] > i + 1
        assert flat.triangle_order.shape[0] == 200

    def test_upload_and_clear(self):
        from src.whitted.geometry.bvh import (
            build_bvh,
            clear_bvh,
            flatten_bvh,
            get_bvh_node_count,
            upload_bvh,
        )

        flat = flatten_bvh(build_bvh(_random_triangles(64)))
        upload_bvh(flat)
        assert get_bvh_node_count() == flat.node_count

        clear_bvh()
        assert get_bvh_node_count() == 0


class TestTraversal:
    """BVH queries must find the same nearest hit as brute force."""

    def _load(self, verts, use_bvh):
        from src.whitted.geometry.bvh import build_bvh, flatten_bvh, upload_bvh
        from src.whitted.materials.phong import Material, add_material
        from src.whitted.scene.intersection import add_triangles, clear_scene, set_bvh_active

        clear_scene()
        material_id = add_material(Material())
        add_triangles(verts, object_id=0, material_id=material_id)
        if use_bvh:
            upload_bvh(flatten_bvh(build_bvh(verts)))
        set_bvh_active(use_bvh)

    def test_matches_brute_force(self):
        from src.whitted.core.tracer import find_nearest

        verts = _random_triangles(400, seed=21, spread=4.0)
        rng = np.random.default_rng(99)
        origins = rng.uniform(-8, 8, size=(40, 3))
        targets = rng.uniform(-3, 3, size=(40, 3))

        results = {}
        for use_bvh in (False, True):
            self._load(verts, use_bvh)
            results[use_bvh] = [find_nearest(o, t - o) for o, t in zip(origins, targets)]

        hits = 0
        for brute, fast in zip(results[False], results[True]):
            assert (brute is None) == (fast is None)
            if brute is not None:
                hits += 1
                assert abs(brute["t"] - fast["t"]) < 1e-4
                assert brute["index"] == fast["index"]
        assert hits > 0

    def test_miss_outside_root_box(self):
        from src.whitted.core.tracer import find_nearest

        self._load(_random_triangles(100, spread=1.0), use_bvh=True)
        assert find_nearest((50.0, 50.0, 50.0), (1.0, 0.0, 0.0)) is None

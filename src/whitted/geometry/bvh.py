"""Bounding Volume Hierarchy over triangles.

The hierarchy is built on the host with NumPy and then flattened into Taichi
fields for traversal inside kernels.

Construction (build_bvh):
    - A list of at most MAX_TRIANGLES_PER_LEAF triangles becomes a leaf.
    - Otherwise the list's bounding box picks the split axis (largest extent,
      ties resolved x, then y, then z), the triangles are sorted by centroid
      along that axis with a stable sort, and the list is split at its
      midpoint index.

Equal centroids keep their insertion order, so the same triangle list always
produces the same tree.

Flattening (flatten_bvh) writes the nodes in pre-order. Every node stores a
skip index: the position of the first node after its subtree. A node's left
child is always the next node in pre-order, so the tree can be walked without
a stack:

    box hit, internal node  -> node + 1
    box hit, leaf           -> test the leaf's triangles, then skip
    box missed              -> skip (prunes the whole subtree)

The walk visits both children of every node whose box is hit, left subtree
first, with no distance-ordered early exit.

Example:
    >>> import numpy as np
    >>> verts = np.random.default_rng(0).random((100, 3, 3), dtype=np.float32)
    >>> root = build_bvh(verts)
    >>> flat = flatten_bvh(root)
    >>> upload_bvh(flat)  # requires ti.init()
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from .aabb import BoundingBox, hit_aabb

logger = logging.getLogger(__name__)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Leaves hold at most this many triangles
MAX_TRIANGLES_PER_LEAF = 10

# Capacity of the flattened hierarchy (preallocated to avoid recompilation)
MAX_BVH_NODES = 131072
MAX_BVH_TRIANGLES = 131072


# =============================================================================
# Host-side Tree
# =============================================================================


@dataclass
class BVHNode:
    """A node of the host-side hierarchy.

    Attributes:
        box: Box enclosing every triangle below this node.
        left: Left child (None for leaves).
        right: Right child (None for leaves).
        triangles: Triangle indices held by a leaf (None for internal nodes).
    """

    box: BoundingBox
    left: "BVHNode | None" = None
    right: "BVHNode | None" = None
    triangles: np.ndarray | None = None

    @property
    def is_leaf(self) -> bool:
        return self.triangles is not None

    def iter_leaves(self) -> Iterator["BVHNode"]:
        """Yield leaves left to right."""
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                yield node
            else:
                stack.append(node.right)
                stack.append(node.left)

    def node_count(self) -> int:
        if self.is_leaf:
            return 1
        return 1 + self.left.node_count() + self.right.node_count()

    def depth(self) -> int:
        if self.is_leaf:
            return 1
        return 1 + max(self.left.depth(), self.right.depth())


def triangle_centroids(vertices: np.ndarray) -> np.ndarray:
    """Centroids of an (n, 3, 3) triangle array."""
    return np.asarray(vertices, dtype=np.float32).mean(axis=1)


def build_bvh(vertices, leaf_size: int = MAX_TRIANGLES_PER_LEAF) -> BVHNode:
    """Build a hierarchy over a triangle soup.

    Args:
        vertices: (n, 3, 3) array of triangle vertices. Triangle i keeps index
            i in the resulting leaves.
        leaf_size: Maximum number of triangles per leaf.

    Returns:
        The root BVHNode.

    Raises:
        ValueError: If there are no triangles or leaf_size is not positive.
    """
    if leaf_size < 1:
        raise ValueError(f"leaf_size must be at least 1, got {leaf_size}")

    verts = np.asarray(vertices, dtype=np.float32).reshape(-1, 3, 3)
    centroids = triangle_centroids(verts)
    indices = np.arange(verts.shape[0], dtype=np.int32)

    root = _build_node(verts, centroids, indices, leaf_size)
    logger.info(
        "Built BVH with %d triangles (%d nodes, depth %d)",
        verts.shape[0],
        root.node_count(),
        root.depth(),
    )
    return root


def _build_node(
    verts: np.ndarray,
    centroids: np.ndarray,
    indices: np.ndarray,
    leaf_size: int,
) -> BVHNode:
    box = BoundingBox.from_triangles(verts[indices])

    if len(indices) <= leaf_size:
        return BVHNode(box=box, triangles=indices.copy())

    axis = box.largest_axis()
    order = np.argsort(centroids[indices, axis], kind="stable")
    ordered = indices[order]
    mid = len(ordered) // 2

    left = _build_node(verts, centroids, ordered[:mid], leaf_size)
    right = _build_node(verts, centroids, ordered[mid:], leaf_size)
    return BVHNode(box=box, left=left, right=right)


# =============================================================================
# Flattening
# =============================================================================


@dataclass
class FlatBVH:
    """Pre-order array form of a hierarchy.

    Attributes:
        box_min: (m, 3) float32 node box minima.
        box_max: (m, 3) float32 node box maxima.
        skip: (m,) int32 index of the first node after each subtree.
        leaf_start: (m,) int32 offset into triangle_order, -1 for internal nodes.
        leaf_count: (m,) int32 triangle count, 0 for internal nodes.
        triangle_order: (k,) int32 triangle indices grouped by leaf.
    """

    box_min: np.ndarray
    box_max: np.ndarray
    skip: np.ndarray
    leaf_start: np.ndarray
    leaf_count: np.ndarray
    triangle_order: np.ndarray

    @property
    def node_count(self) -> int:
        return int(self.skip.shape[0])


def flatten_bvh(root: BVHNode) -> FlatBVH:
    """Flatten a hierarchy into pre-order arrays with skip links."""
    mins: list[np.ndarray] = []
    maxs: list[np.ndarray] = []
    skips: list[int] = []
    starts: list[int] = []
    counts: list[int] = []
    order: list[int] = []

    def visit(node: BVHNode) -> None:
        idx = len(mins)
        mins.append(node.box.minimum)
        maxs.append(node.box.maximum)
        skips.append(-1)
        if node.is_leaf:
            starts.append(len(order))
            counts.append(len(node.triangles))
            order.extend(int(i) for i in node.triangles)
        else:
            starts.append(-1)
            counts.append(0)
            visit(node.left)
            visit(node.right)
        skips[idx] = len(mins)

    visit(root)

    return FlatBVH(
        box_min=np.asarray(mins, dtype=np.float32).reshape(-1, 3),
        box_max=np.asarray(maxs, dtype=np.float32).reshape(-1, 3),
        skip=np.asarray(skips, dtype=np.int32),
        leaf_start=np.asarray(starts, dtype=np.int32),
        leaf_count=np.asarray(counts, dtype=np.int32),
        triangle_order=np.asarray(order, dtype=np.int32),
    )


# =============================================================================
# Taichi Fields for the Flattened Hierarchy
# =============================================================================

bvh_box_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_box_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_skip = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_leaf_start = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_leaf_count = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_triangle_order = ti.field(dtype=ti.i32, shape=MAX_BVH_TRIANGLES)

# Number of active nodes; 0 means no hierarchy is loaded
bvh_node_count = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _upload_nodes(
    box_min: ti.types.ndarray(),
    box_max: ti.types.ndarray(),
    skip: ti.types.ndarray(),
    leaf_start: ti.types.ndarray(),
    leaf_count: ti.types.ndarray(),
    n: ti.i32,
):
    for i in range(n):
        bvh_box_min[i] = vec3(box_min[i, 0], box_min[i, 1], box_min[i, 2])
        bvh_box_max[i] = vec3(box_max[i, 0], box_max[i, 1], box_max[i, 2])
        bvh_skip[i] = skip[i]
        bvh_leaf_start[i] = leaf_start[i]
        bvh_leaf_count[i] = leaf_count[i]


@ti.kernel
def _upload_order(order: ti.types.ndarray(), n: ti.i32):
    for i in range(n):
        bvh_triangle_order[i] = order[i]


def upload_bvh(flat: FlatBVH) -> None:
    """Copy a flattened hierarchy into the Taichi fields.

    Raises:
        RuntimeError: If the hierarchy exceeds the preallocated capacity.
    """
    if flat.node_count > MAX_BVH_NODES:
        raise RuntimeError(f"Maximum number of BVH nodes ({MAX_BVH_NODES}) exceeded")
    if flat.triangle_order.shape[0] > MAX_BVH_TRIANGLES:
        raise RuntimeError(f"Maximum number of BVH triangles ({MAX_BVH_TRIANGLES}) exceeded")

    _upload_nodes(
        np.ascontiguousarray(flat.box_min),
        np.ascontiguousarray(flat.box_max),
        np.ascontiguousarray(flat.skip),
        np.ascontiguousarray(flat.leaf_start),
        np.ascontiguousarray(flat.leaf_count),
        flat.node_count,
    )
    _upload_order(np.ascontiguousarray(flat.triangle_order), flat.triangle_order.shape[0])
    bvh_node_count[None] = flat.node_count


def clear_bvh() -> None:
    """Unload the hierarchy; traversal then visits nothing."""
    bvh_node_count[None] = 0


def get_bvh_node_count() -> int:
    """Number of nodes currently loaded."""
    return int(bvh_node_count[None])


# =============================================================================
# Traversal (Taichi-compatible)
# =============================================================================


@ti.func
def bvh_step(node: ti.i32, ray_origin: vec3, ray_direction: vec3):
    """Advance the stackless walk by one node.

    Args:
        node: Current node index (must be < bvh_node_count).
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray.

    Returns:
        A tuple (next_node, leaf_start, leaf_count). leaf_count is 0 unless
        node is a leaf whose box the ray hits; the caller then tests
        bvh_triangle_order[leaf_start : leaf_start + leaf_count]. The walk is
        finished once next_node reaches bvh_node_count.
    """
    next_node = bvh_skip[node]
    start = 0
    count = 0
    if hit_aabb(ray_origin, ray_direction, bvh_box_min[node], bvh_box_max[node]) == 1:
        if bvh_leaf_count[node] > 0:
            start = bvh_leaf_start[node]
            count = bvh_leaf_count[node]
        else:
            next_node = node + 1
    return next_node, start, count

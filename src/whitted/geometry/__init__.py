"""Geometry module for shape primitives and spatial acceleration.

This module provides geometric primitives and intersection algorithms:

Components:
    sphere: Sphere primitive, the shared HitRecord and ray-sphere intersection
    triangle: Moller-Trumbore ray-triangle intersection
    plane: Infinite plane intersection
    box: Boxes tessellated into triangles (with rotation)
    aabb: Axis-Aligned Bounding Box utilities and slab test
    bvh: Bounding Volume Hierarchy build, flattening and traversal

All intersection routines are implemented as Taichi functions (@ti.func).
Degenerate configurations (parallel rays, negative discriminants, hits
behind the origin) are reported as misses, never raised.
"""

from .aabb import BoundingBox, hit_aabb
from .box import box_corners, box_triangles, rotation_matrix
from .bvh import (
    MAX_TRIANGLES_PER_LEAF,
    BVHNode,
    FlatBVH,
    build_bvh,
    flatten_bvh,
    upload_bvh,
)
from .plane import Plane, hit_plane, make_plane
from .sphere import HitRecord, Sphere, hit_sphere, make_sphere
from .triangle import Triangle, hit_triangle, hit_triangle_uv

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_sphere",
    "Triangle",
    "hit_triangle",
    "hit_triangle_uv",
    "Plane",
    "hit_plane",
    "make_plane",
    "BoundingBox",
    "hit_aabb",
    "box_corners",
    "box_triangles",
    "rotation_matrix",
    "BVHNode",
    "FlatBVH",
    "build_bvh",
    "flatten_bvh",
    "upload_bvh",
    "MAX_TRIANGLES_PER_LEAF",
]

"""Axis-aligned bounding boxes.

BoundingBox is the host-side (NumPy) box used while building the BVH. The
hit_aabb() Taichi function performs the same slab test inside kernels on the
flattened node boxes.

Slab test: for each axis the ray enters the slab at
(min - origin) / direction and leaves at (max - origin) / direction (swapped
for negative directions). The running interval [tmin, tmax] is intersected
across the three axes and the box is hit when the interval is non-empty and
ends in front of the origin:

    tmax >= tmin and tmax > 0

A direction component that is exactly zero is handled explicitly instead of
relying on division by zero: the ray then hits that slab only if the origin
lies inside it (bounds inclusive).

Example:
    >>> box = BoundingBox.from_points([(0, 0, 0), (1, 2, 3)])
    >>> box.intersects_ray((0.5, 1.0, -5.0), (0.0, 0.0, 1.0))
    True
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Stand-in for infinity inside kernels
_SLAB_INF = 1e30


@dataclass
class BoundingBox:
    """An axis-aligned box given by its minimum and maximum corners.

    Attributes:
        minimum: Per-axis lower bounds, float32 array of shape (3,).
        maximum: Per-axis upper bounds, float32 array of shape (3,).
    """

    minimum: np.ndarray
    maximum: np.ndarray

    @classmethod
    def from_points(cls, points) -> "BoundingBox":
        """Build the tightest box around a set of points.

        Args:
            points: Anything convertible to an (n, 3) float array.

        Returns:
            The enclosing BoundingBox.

        Raises:
            ValueError: If no points are given.
        """
        pts = np.asarray(points, dtype=np.float32).reshape(-1, 3)
        if pts.shape[0] == 0:
            raise ValueError("Cannot build a bounding box from an empty point list")
        return cls(minimum=pts.min(axis=0), maximum=pts.max(axis=0))

    @classmethod
    def from_triangles(cls, vertices: np.ndarray) -> "BoundingBox":
        """Build the box enclosing every vertex of an (n, 3, 3) triangle array."""
        return cls.from_points(np.asarray(vertices, dtype=np.float32).reshape(-1, 3))

    def union(self, other: "BoundingBox") -> "BoundingBox":
        """Return the smallest box enclosing both boxes."""
        return BoundingBox(
            minimum=np.minimum(self.minimum, other.minimum),
            maximum=np.maximum(self.maximum, other.maximum),
        )

    def extent(self) -> np.ndarray:
        """Per-axis size of the box."""
        return self.maximum - self.minimum

    def centroid(self) -> np.ndarray:
        """Center point of the box."""
        return (self.minimum + self.maximum) * 0.5

    def largest_axis(self) -> int:
        """Axis with the greatest extent.

        Ties resolve toward the lower axis: y must be strictly larger than x
        to win, and z strictly larger than the current winner.
        """
        ext = self.extent()
        axis = 0
        if ext[1] > ext[0]:
            axis = 1
        if ext[2] > ext[axis]:
            axis = 2
        return axis

    def contains_point(self, point) -> bool:
        """Inclusive containment test."""
        p = np.asarray(point, dtype=np.float32)
        return bool(np.all(p >= self.minimum) and np.all(p <= self.maximum))

    def intersects_ray(self, origin, direction) -> bool:
        """Slab test of a ray against the box.

        Args:
            origin: Ray origin (x, y, z).
            direction: Ray direction (x, y, z). Need not be normalized.

        Returns:
            True if the ray hits the box in front of its origin (a ray
            starting inside the box counts as a hit).
        """
        tmin = -math.inf
        tmax = math.inf
        for axis in range(3):
            o = float(origin[axis])
            d = float(direction[axis])
            lo = float(self.minimum[axis])
            hi = float(self.maximum[axis])
            if d == 0.0:
                if o < lo or o > hi:
                    return False
                continue
            t1 = (lo - o) / d
            t2 = (hi - o) / d
            tmin = max(tmin, min(t1, t2))
            tmax = min(tmax, max(t1, t2))
        return tmax >= tmin and tmax > 0.0


@ti.func
def hit_aabb(ray_origin: vec3, ray_direction: vec3, box_min: vec3, box_max: vec3) -> ti.i32:
    """Slab test of a ray against an axis-aligned box inside a kernel.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray.
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.

    Returns:
        1 if the ray hits the box in front of its origin, 0 otherwise.
    """
    tmin = -_SLAB_INF
    tmax = _SLAB_INF
    outside = 0

    for axis in ti.static(range(3)):
        o = ray_origin[axis]
        d = ray_direction[axis]
        if d == 0.0:
            if o < box_min[axis] or o > box_max[axis]:
                outside = 1
        else:
            t1 = (box_min[axis] - o) / d
            t2 = (box_max[axis] - o) / d
            tmin = ti.max(tmin, ti.min(t1, t2))
            tmax = ti.min(tmax, ti.max(t1, t2))

    result = 0
    # NaN fails every comparison below, so it never counts as a hit
    if outside == 0 and tmax >= tmin and tmax > 0.0:
        result = 1
    return result

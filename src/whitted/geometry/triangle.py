"""Triangle primitive with Moller-Trumbore ray-triangle intersection.

Triangles are the only primitive stored in the BVH. Boxes and imported
meshes are tessellated into triangles before they reach the scene storage.

The Moller-Trumbore algorithm solves

    origin + t * direction = (1 - u - v) * v0 + u * v1 + v * v2

directly for (t, u, v) using two cross products, without precomputing the
triangle's plane. A hit requires u >= 0, v >= 0, u + v <= 1 and t past the
minimum distance.

The normal is normalize(cross(v1 - v0, v2 - v0)), so counter-clockwise
winding (seen from the front) gives a normal that points toward the viewer.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.geometry.triangle import Triangle, hit_triangle
    >>> tri = Triangle(
    ...     v0=ti.math.vec3(-1, -1, 0),
    ...     v1=ti.math.vec3(1, -1, 0),
    ...     v2=ti.math.vec3(0, 1, 0),
    ... )
    >>> # Use hit_triangle within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Determinants smaller than this mean the ray is parallel to the triangle
TRIANGLE_EPSILON = 1e-8


@ti.dataclass
class Triangle:
    """A triangle defined by three vertices.

    Attributes:
        v0: First vertex (vec3).
        v1: Second vertex (vec3).
        v2: Third vertex (vec3).
    """

    v0: vec3
    v1: vec3
    v2: vec3


@ti.func
def hit_triangle_uv(
    ray_origin: vec3,
    ray_direction: vec3,
    tri: Triangle,
    t_min: ti.f32,
    t_max: ti.f32,
):
    """Moller-Trumbore intersection that also reports barycentric weights.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        tri: The triangle to test.
        t_min: Distances at or below this value are rejected.
        t_max: Distances at or above this value are rejected.

    Returns:
        A tuple (record, u, v) where u and v are the barycentric weights of
        v1 and v2. u and v are only meaningful when record.hit == 1.
    """
    edge1 = tri.v1 - tri.v0
    edge2 = tri.v2 - tri.v0

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0
    u = 0.0
    v = 0.0

    p = tm.cross(ray_direction, edge2)
    det = tm.dot(edge1, p)

    if ti.abs(det) >= TRIANGLE_EPSILON:
        inv_det = 1.0 / det
        s = ray_origin - tri.v0
        u = tm.dot(s, p) * inv_det

        if u >= 0.0 and u <= 1.0:
            q = tm.cross(s, edge1)
            v = tm.dot(ray_direction, q) * inv_det

            if v >= 0.0 and u + v <= 1.0:
                t = tm.dot(edge2, q) * inv_det

                if t > t_min and t < t_max:
                    n = tm.cross(edge1, edge2)
                    n_len = tm.length(n)
                    if n_len > 0.0:
                        did_hit = 1
                        hit_t = t
                        hit_point = ray_origin + t * ray_direction
                        hit_normal = n / n_len
                        if tm.dot(ray_direction, hit_normal) > 0.0:
                            is_front_face = 0
                        else:
                            is_front_face = 1

    rec = HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )
    return rec, u, v


@ti.func
def hit_triangle(
    ray_origin: vec3,
    ray_direction: vec3,
    tri: Triangle,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-triangle intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        tri: The triangle to test.
        t_min: Distances at or below this value are rejected.
        t_max: Distances at or above this value are rejected.

    Returns:
        A HitRecord with the geometric normal of the triangle.
    """
    rec, _, _ = hit_triangle_uv(ray_origin, ray_direction, tri, t_min, t_max)
    return rec
